"""Badness — a decaying failure score kept per probe."""

from __future__ import annotations

DEFAULT_MIN_BADNESS = 0  # floor for badness
DEFAULT_BADNESS_INC = 10  # increment on failed probe
DEFAULT_BADNESS_DEC = 1  # decrement on successful probe


class BadnessAccumulator:
    """Failure score that grows fast on failure and decays slowly on success.

    The value never drops below ``floor``.
    """

    def __init__(
        self,
        increment: int = DEFAULT_BADNESS_INC,
        decrement: int = DEFAULT_BADNESS_DEC,
        floor: int = DEFAULT_MIN_BADNESS,
    ) -> None:
        if increment < 0 or decrement < 0:
            raise ValueError("badness increment and decrement must be non-negative")
        self.increment = increment
        self.decrement = decrement
        self.floor = floor
        self.value = floor

    def fail(self) -> int:
        self.value += self.increment
        return self.value

    def succeed(self) -> int:
        if self.value > self.floor:
            self.value = max(self.floor, self.value - self.decrement)
        return self.value

    def reset(self) -> None:
        self.value = self.floor

    def reached(self, threshold: int) -> bool:
        return self.value >= threshold

    def __repr__(self) -> str:
        return (
            f"BadnessAccumulator(value={self.value}, +{self.increment}/-{self.decrement}, "
            f"floor={self.floor})"
        )
