"""DNS probe — verifies MX, A, NS, CNAME and TXT records.

A and CNAME go through the system resolver (socket); MX, NS and TXT need
record-type queries and use dnspython.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass

import dns.exception
import dns.resolver

from prober.checks.base import NotifyingProber
from prober.core.errors import ProbeFailure
from prober.core.probe import Probe
from prober.notifications import AlertNotifier

logger = logging.getLogger(__name__)

DEFAULT_NAME = "DnsProber"
DEFAULT_DNS_INTERVAL = 5 * 60.0  # DNS changes slowly
DEFAULT_DNS_PENALTY = 5


def _norm_host(host: str) -> str:
    return host.rstrip(".").lower()


@dataclass(frozen=True, order=True)
class MxRecord:
    """Mail exchanger; sorts by preference, then host."""

    pref: int
    host: str

    def __str__(self) -> str:
        return f"{self.host} ({self.pref})"


class DnsProber(NotifyingProber):
    """Probes a target host's DNS records."""

    def __init__(
        self,
        target: str,
        a_records: list[str] | None = None,
        cname: str = "",
        mx: list[MxRecord] | None = None,
        ns: list[str] | None = None,
        txt: list[str] | None = None,
        notifier: AlertNotifier | None = None,
    ) -> None:
        super().__init__(notifier)
        self.target = target
        self.want_a = sorted(a_records or [])
        self.want_cname = cname
        self.want_mx = sorted(MxRecord(m.pref, _norm_host(m.host)) for m in mx or [])
        self.want_ns = sorted(_norm_host(h) for h in ns or [])
        self.want_txt = sorted(txt or [])

    def probe(self) -> None:
        if self.want_mx:
            logger.debug("Checking %d MX records..", len(self.want_mx))
            self.check_mx()
        if self.want_a:
            logger.debug("Checking %d A records..", len(self.want_a))
            self.check_a()
        if self.want_ns:
            logger.debug("Checking %d NS records..", len(self.want_ns))
            self.check_ns()
        if self.want_cname:
            logger.debug("Checking CNAME record..")
            self.check_cname()
        if self.want_txt:
            logger.debug("Checking %d TXT records..", len(self.want_txt))
            self.check_txt()

    # ── socket lookups ──

    def check_a(self) -> None:
        try:
            infos = socket.getaddrinfo(self.target, None, socket.AF_INET)
        except socket.gaierror as e:
            raise ProbeFailure(f"failed to look up A records for {self.target}: {e}") from e
        addrs = sorted({info[4][0] for info in infos})
        if len(addrs) != len(self.want_a):
            raise ProbeFailure(f"got {len(addrs)} A records, want {len(self.want_a)}: {', '.join(addrs)}")
        for i, (got, want) in enumerate(zip(addrs, self.want_a)):
            if got != want:
                raise ProbeFailure(f"bad A record {got!r} at #{i}; want {want!r}")

    def check_cname(self) -> None:
        try:
            canonical, _, _ = socket.gethostbyname_ex(self.target)
        except (socket.gaierror, socket.herror) as e:
            raise ProbeFailure(f"failed to look up CNAME for {self.target}: {e}") from e
        if _norm_host(canonical) != _norm_host(self.want_cname):
            raise ProbeFailure(f"bad CNAME {canonical!r}; want {self.want_cname!r}")

    # ── record-type queries ──

    def _resolve(self, rdtype: str) -> dns.resolver.Answer:
        try:
            return dns.resolver.resolve(self.target, rdtype)
        except dns.exception.DNSException as e:
            raise ProbeFailure(f"failed to look up {rdtype} records for {self.target}: {e}") from e

    def check_mx(self) -> None:
        got = sorted(
            MxRecord(r.preference, _norm_host(r.exchange.to_text())) for r in self._resolve("MX")
        )
        if len(got) != len(self.want_mx):
            raise ProbeFailure(
                f"want {len(self.want_mx)} MX records, got {len(got)}: {', '.join(map(str, got))}"
            )
        for i, (g, w) in enumerate(zip(got, self.want_mx)):
            if g.host != w.host:
                raise ProbeFailure(f"bad host {g.host!r} for MX record #{i}; want {w.host!r}")
            if g.pref != w.pref:
                raise ProbeFailure(f"bad prio {g.pref} for MX record #{i}; want {w.pref}")

    def check_ns(self) -> None:
        got = sorted(_norm_host(r.target.to_text()) for r in self._resolve("NS"))
        if len(got) != len(self.want_ns):
            raise ProbeFailure(f"want {len(self.want_ns)} NS records, got {len(got)}: {', '.join(got)}")
        for i, (g, w) in enumerate(zip(got, self.want_ns)):
            if g != w:
                raise ProbeFailure(f"bad NS record {g!r} at #{i}; want {w!r}")

    def check_txt(self) -> None:
        got = sorted(
            b"".join(r.strings).decode("utf-8", errors="replace") for r in self._resolve("TXT")
        )
        if len(got) != len(self.want_txt):
            raise ProbeFailure(f"want {len(self.want_txt)} TXT records, got {len(got)}: {got}")
        for i, (g, w) in enumerate(zip(got, self.want_txt)):
            if g != w:
                raise ProbeFailure(f"bad TXT record {g!r} at #{i}; want {w!r}")


def new_dns_probe(
    target: str,
    *,
    a_records: list[str] | None = None,
    cname: str = "",
    mx: list[MxRecord] | None = None,
    ns: list[str] | None = None,
    txt: list[str] | None = None,
    name: str = "",
    notifier: AlertNotifier | None = None,
    **probe_options: object,
) -> Probe:
    """Build a Probe around a DnsProber with DNS-friendly defaults."""
    probe_options.setdefault("interval", DEFAULT_DNS_INTERVAL)
    probe_options.setdefault("failure_penalty", DEFAULT_DNS_PENALTY)
    prober = DnsProber(
        target, a_records=a_records, cname=cname, mx=mx, ns=ns, txt=txt, notifier=notifier,
    )
    probe_name = f"{DEFAULT_NAME}_{name}" if name else DEFAULT_NAME
    return Probe(prober, probe_name, f"Probes DNS records of {target}", **probe_options)
