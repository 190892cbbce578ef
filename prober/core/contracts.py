"""The capability pair every probe implementation provides."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from prober.core.records import Record


class Prober(ABC):
    """A mechanism that can probe some target(s).

    ``probe()`` checks the target once; raising any exception marks the run
    as failed and the exception text becomes the record details.
    ``alert()`` sends one notification; raising means it was not delivered.

    Either method may be a coroutine function or a plain blocking function.
    Blocking calls run on the monitor's thread pool.
    """

    @abstractmethod
    def probe(self) -> Any:
        ...

    @abstractmethod
    def alert(self, name: str, description: str, badness: int, records: list[Record]) -> Any:
        ...
