"""Probe catalog — loads probes.yaml and builds Probe objects.

Example::

    probes:
      - name: homepage
        type: web
        target: https://example.com/
        want: "Welcome"
      - name: example
        type: dns
        target: example.com
        a_records: [93.184.216.34]
        mx:
          - {host: mail.example.com, pref: 10}
        ns: [a.iana-servers.net, b.iana-servers.net]
        interval_seconds: 300
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from prober.checks import MxRecord, new_dns_probe, new_web_probe
from prober.config import Settings
from prober.core.probe import Probe
from prober.notifications import AlertNotifier

logger = logging.getLogger(__name__)

PROBE_TYPES = ("web", "dns")


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass
class ProbeDef:
    """Definition of a single probe from the catalog."""

    name: str
    type: str  # web | dns
    target: str
    description: str = ""
    # web
    method: str = "GET"
    expected_status: int = 200
    want: str = ""
    # dns
    a_records: list[str] = field(default_factory=list)
    cname: str = ""
    mx: list[MxRecord] = field(default_factory=list)
    ns: list[str] = field(default_factory=list)
    txt: list[str] = field(default_factory=list)
    # scheduling / badness; None = type default
    interval_seconds: float | None = None
    timeout_seconds: float | None = None
    failure_penalty: int | None = None
    success_reward: int | None = None


# ── Catalog ──────────────────────────────────────────────────────────────────


class ProbeCatalog:
    """Loads and caches probe definitions from probes.yaml."""

    def __init__(self, path: Path | str | None = None) -> None:
        self._path = Path(path) if path else Path("probes.yaml")
        self._defs: list[ProbeDef] = []
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> list[ProbeDef]:
        """Parse probes.yaml and return ProbeDef list."""
        if self._loaded and not force:
            return self._defs

        self._defs = []
        if not self._path.exists():
            logger.warning("Probe catalog not found: %s", self._path)
            self._loaded = True
            return self._defs

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to parse %s: %s", self._path, e)
            self._loaded = True
            return self._defs

        seen: set[str] = set()
        for entry in raw.get("probes") or []:
            try:
                d = _parse_probe_def(entry)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed probe entry: %s", e)
                continue
            if d.name in seen:
                logger.warning("Skipping duplicate probe name: %s", d.name)
                continue
            seen.add(d.name)
            self._defs.append(d)

        self._loaded = True
        logger.info("Loaded %d probe definitions from %s", len(self._defs), self._path)
        return self._defs

    @property
    def definitions(self) -> list[ProbeDef]:
        return self.load()

    def get(self, name: str) -> ProbeDef | None:
        return next((d for d in self.definitions if d.name == name), None)

    def build(
        self,
        settings: Settings,
        notifier: AlertNotifier | None = None,
    ) -> list[Probe]:
        """Create a Probe for each definition, honouring global settings."""
        if settings.probes_disabled:
            logger.info("Probes are disabled with probes_disabled")
            return []
        return [build_probe(d, settings, notifier) for d in self.definitions]


# ── Builders / parsers ───────────────────────────────────────────────────────


def build_probe(d: ProbeDef, settings: Settings, notifier: AlertNotifier | None = None) -> Probe:
    options: dict[str, Any] = {"capacity": settings.record_capacity}
    if d.interval_seconds is not None:
        options["interval"] = d.interval_seconds
    elif d.type == "web":
        options["interval"] = settings.probe_interval
    if d.timeout_seconds is not None:
        options["timeout"] = d.timeout_seconds
    if d.failure_penalty is not None:
        options["failure_penalty"] = d.failure_penalty
    if d.success_reward is not None:
        options["success_reward"] = d.success_reward

    if d.type == "dns":
        probe = new_dns_probe(
            d.target, a_records=d.a_records, cname=d.cname,
            mx=d.mx, ns=d.ns, txt=d.txt, name=d.name,
            notifier=notifier, **options,
        )
    else:
        probe = new_web_probe(
            d.target, d.method, d.expected_status, name=d.name,
            want_in_response=d.want, notifier=notifier, **options,
        )
    if d.description:
        probe.description = d.description
    return probe


def _parse_probe_def(raw: dict[str, Any]) -> ProbeDef:
    probe_type = raw.get("type", "web")
    if probe_type not in PROBE_TYPES:
        raise ValueError(f"unknown probe type {probe_type!r} (expected one of {PROBE_TYPES})")
    target = raw["target"]
    return ProbeDef(
        name=raw.get("name") or target,
        type=probe_type,
        target=target,
        description=raw.get("description", ""),
        method=raw.get("method", "GET"),
        expected_status=int(raw.get("expected_status", 200)),
        want=raw.get("want", ""),
        a_records=[str(a) for a in raw.get("a_records") or []],
        cname=raw.get("cname", ""),
        mx=[MxRecord(int(m.get("pref", 0)), m["host"]) for m in raw.get("mx") or []],
        ns=[str(h) for h in raw.get("ns") or []],
        txt=[str(t) for t in raw.get("txt") or []],
        interval_seconds=_opt_float(raw.get("interval_seconds")),
        timeout_seconds=_opt_float(raw.get("timeout_seconds")),
        failure_penalty=_opt_int(raw.get("failure_penalty")),
        success_reward=_opt_int(raw.get("success_reward")),
    )


def _opt_float(v: Any) -> float | None:
    return None if v is None else float(v)


def _opt_int(v: Any) -> int | None:
    return None if v is None else int(v)

