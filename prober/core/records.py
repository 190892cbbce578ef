"""Probe records — the bounded in-memory history and the durable outcome log.

Every probe cycle produces exactly one Record. It is appended to the probe's
RecordLog (bounded, oldest evicted first) and to the process-wide OutcomeLog
(an append-only stream of YAML documents shared by all probes).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, TextIO

import yaml

from prober.core.errors import OutcomeLogError
from prober.timeutils import desc_duration, stamp_milli, utcnow

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 200  # maximum number of records per probe
RECENT_WINDOW = timedelta(hours=1)


# ── Record ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Record:
    """Result of a single probe run."""

    passed: bool
    details: str = ""
    timestamp: datetime = field(default_factory=utcnow)

    @classmethod
    def success(cls, timestamp: datetime | None = None) -> Record:
        return cls(passed=True, timestamp=timestamp or utcnow())

    @classmethod
    def failure(cls, details: str, timestamp: datetime | None = None) -> Record:
        return cls(passed=False, details=details, timestamp=timestamp or utcnow())

    @property
    def time_millis(self) -> str:
        return stamp_milli(self.timestamp)

    def ago(self, now: datetime | None = None) -> str:
        return desc_duration((now or utcnow()) - self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "time_millis": self.time_millis,
            "passed": self.passed,
        }
        if self.details:
            d["details"] = self.details
        return d

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Record:
        ts = raw["timestamp"]
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts)
        return cls(passed=bool(raw["passed"]), details=raw.get("details") or "", timestamp=ts)

    def marshal(self) -> str:
        """Serialize as one YAML document."""
        return yaml.safe_dump(self.to_dict(), explicit_start=True, sort_keys=False)


# ── Bounded history ──────────────────────────────────────────────────────────


class RecordLog:
    """Chronological, bounded sequence of records for one probe."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._records: list[Record] = []

    def add(self, record: Record) -> None:
        """Append the record, dropping the oldest entries beyond capacity."""
        self._records.append(record)
        over = len(self._records) - self.capacity
        if over > 0:
            logger.debug("Record buffer over %d, dropping %d oldest", self.capacity, over)
            del self._records[:over]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records))

    @property
    def latest(self) -> Record | None:
        return self._records[-1] if self._records else None

    def snapshot(self) -> list[Record]:
        return list(self._records)

    def recent_failures(self, now: datetime | None = None) -> list[Record]:
        """Failures from the last hour, most recent first."""
        cutoff = (now or utcnow()) - RECENT_WINDOW
        failures = [r for r in self._records if not r.passed and r.timestamp >= cutoff]
        failures.sort(key=lambda r: r.timestamp, reverse=True)
        return failures


# ── Durable outcome log ──────────────────────────────────────────────────────


class OutcomeLog:
    """Process-wide append-only log of every probe outcome.

    Opened once at startup and handed to every runner::

        with OutcomeLog(path) as outcomes:
            monitor = Monitor(probes, outcomes)
            ...
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._fh: TextIO | None = None

    @property
    def is_open(self) -> bool:
        return self._fh is not None

    def open(self) -> OutcomeLog:
        if self._fh is not None:
            return self
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self.path, "a", encoding="utf-8")
        except OSError as e:
            raise OutcomeLogError(f"failed to open {self.path}: {e}") from e
        logger.info("Outcome log opened: %s", self.path)
        return self

    def append(self, record: Record) -> None:
        if self._fh is None:
            raise OutcomeLogError(f"outcome log {self.path} is not open")
        try:
            self._fh.write(record.marshal())
            self._fh.flush()
        except OSError as e:
            raise OutcomeLogError(f"failed to write record to {self.path}: {e}") from e

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> OutcomeLog:
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    @staticmethod
    def read(path: Path | str) -> list[Record]:
        """Parse an outcome log back into records (oldest first)."""
        p = Path(path)
        if not p.exists():
            return []
        with open(p, encoding="utf-8") as f:
            return [Record.from_dict(doc) for doc in yaml.safe_load_all(f) if doc]
