"""HTTP probe — verifies a target's status code and response body."""

from __future__ import annotations

import logging

import httpx

from prober.checks.base import NotifyingProber
from prober.core.errors import ProbeFailure
from prober.core.probe import Probe
from prober.notifications import AlertNotifier

logger = logging.getLogger(__name__)

MAX_RESPONSE = 1_000_000  # largest response size read, in bytes
DEFAULT_NAME = "WebProber"


class WebProber(NotifyingProber):
    """Probes a target's HTTP response."""

    def __init__(
        self,
        target: str,
        method: str = "GET",
        expected_status: int = 200,
        want_in_response: str = "",
        body: bytes | str | None = None,
        request_timeout: float = 30.0,
        notifier: AlertNotifier | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(notifier)
        self.target = target
        self.method = method.upper()
        self.expected_status = expected_status
        self.want_in_response = want_in_response
        self.body = body
        self.request_timeout = request_timeout
        self._transport = transport

    def probe(self) -> None:
        """Raise ProbeFailure unless the response is as expected."""
        try:
            with httpx.Client(
                timeout=self.request_timeout, follow_redirects=True, transport=self._transport,
            ) as client:
                with client.stream(self.method, self.target, content=self.body) as resp:
                    if resp.status_code != self.expected_status:
                        raise ProbeFailure(
                            f"non-success HTTP response: {resp.status_code} {resp.reason_phrase}"
                        )
                    text = _read_limited(resp)
        except httpx.HTTPError as e:
            raise ProbeFailure(f"failed to send HTTP request: {type(e).__name__}: {e}") from e

        if self.want_in_response not in text:
            raise ProbeFailure(
                f"response doesn't contain {self.want_in_response!r}: \n{text[:500]}\n"
            )
        logger.debug("HTTP %s %s OK", self.method, self.target)


def _read_limited(resp: httpx.Response) -> str:
    chunks: list[bytes] = []
    size = 0
    for chunk in resp.iter_bytes():
        chunks.append(chunk)
        size += len(chunk)
        if size >= MAX_RESPONSE:
            break
    raw = b"".join(chunks)[:MAX_RESPONSE]
    return raw.decode(resp.encoding or "utf-8", errors="replace")


def new_web_probe(
    target: str,
    method: str = "GET",
    expected_status: int = 200,
    *,
    name: str = "",
    want_in_response: str = "",
    notifier: AlertNotifier | None = None,
    **probe_options: object,
) -> Probe:
    """Build a Probe around a WebProber, named ``WebProber_<name>``."""
    prober = WebProber(
        target, method, expected_status, want_in_response=want_in_response, notifier=notifier,
    )
    probe_name = f"{DEFAULT_NAME}_{name}" if name else DEFAULT_NAME
    return Probe(prober, probe_name, f"Probes HTTP response of {target}", **probe_options)
