"""Enablement filters — which probes are allowed to run."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


def parse_names(value: str | Iterable[str] | None) -> frozenset[str]:
    """Parse ``"FooProbe,BarProbe"`` (or an iterable of names) into a set."""
    if not value:
        return frozenset()
    if isinstance(value, str):
        value = value.split(",")
    return frozenset(n.strip() for n in value if n and n.strip())


class EnablementFilter(ABC):
    @abstractmethod
    def is_enabled(self, name: str) -> bool:
        """Return True if the named probe should keep running."""


class AllowAll(EnablementFilter):
    def is_enabled(self, name: str) -> bool:
        return True


class SelectionFilter(EnablementFilter):
    """Allow-list / deny-list selection.

    A non-empty ``only`` set wins outright: only names in it run and
    ``disabled`` is ignored. Otherwise every name not in ``disabled`` runs.
    """

    def __init__(
        self,
        only: str | Iterable[str] | None = None,
        disabled: str | Iterable[str] | None = None,
    ) -> None:
        self.only = parse_names(only)
        self.disabled = parse_names(disabled)

    def is_enabled(self, name: str) -> bool:
        if self.only:
            return name in self.only
        return name not in self.disabled

    def __repr__(self) -> str:
        return f"SelectionFilter(only={sorted(self.only)}, disabled={sorted(self.disabled)})"
