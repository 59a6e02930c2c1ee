"""Scalar weight cells used by the two-level tables."""

from __future__ import annotations


class Weight:
    """A single trainable scalar."""

    __slots__ = ("_value",)

    def __init__(self, value: float = 0.0) -> None:
        self._value = float(value)

    def get(self) -> float:
        return self._value

    def set(self, value: float) -> None:
        self._value = float(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Weight):
            return NotImplemented
        return self._value == other._value

    def __repr__(self) -> str:
        return f"Weight({self._value!r})"


class AveragedWeight(Weight):
    """A weight that tracks its time-weighted mean since time zero.

    ``summed`` holds the integral of the value over every interval that has
    been closed by a :meth:`set`; the open interval since ``last_update`` is
    folded in lazily by :meth:`get_average`.

    Callers must pass non-decreasing times and only request an average for a
    time greater than zero. Neither condition is checked here; violating them
    produces a meaningless average rather than an error.
    """

    __slots__ = ("summed", "last_update")

    def __init__(self, value: float = 0.0) -> None:
        super().__init__(value)
        self.summed = 0.0
        self.last_update = 0

    def set(self, value: float, time: int) -> None:  # type: ignore[override]
        self.summed += self._value * (time - self.last_update)
        self._value = float(value)
        self.last_update = time

    def get_average(self, time: int) -> float:
        return (self.summed + self._value * (time - self.last_update)) / time

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AveragedWeight):
            return NotImplemented
        return (
            self._value == other._value
            and self.summed == other.summed
            and self.last_update == other.last_update
        )

    def __repr__(self) -> str:
        return (
            f"AveragedWeight({self._value!r}, summed={self.summed!r}, "
            f"last_update={self.last_update!r})"
        )


__all__ = ["AveragedWeight", "Weight"]
