"""Exception types shared by the probing core and its collaborators."""

from __future__ import annotations


class ProberError(Exception):
    """Base class for prober errors."""


class ProbeFailure(ProberError):
    """Raised by a probe implementation when its target misbehaves."""


class ProbeTimeout(ProbeFailure):
    """Synthetic failure for a probe call that outlived its interval."""


class AlertDeliveryError(ProberError):
    """No alert channel accepted the notification."""


class OutcomeLogError(ProberError):
    """The durable outcome log could not be opened or written.

    This is fatal: the monitor stops rather than run without an audit trail.
    """
