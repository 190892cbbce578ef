"""Probing core — runner loop, badness, alert throttling, record logs."""

from .badness import BadnessAccumulator
from .contracts import Prober
from .enablement import AllowAll, EnablementFilter, SelectionFilter
from .errors import AlertDeliveryError, OutcomeLogError, ProbeFailure, ProberError, ProbeTimeout
from .monitor import Monitor
from .probe import Probe, ProbeRunner
from .records import OutcomeLog, Record, RecordLog
from .throttle import AlertThrottle
