"""Averaged-perceptron accumulators and the finalised multinomial models.

Training mutates an ``*AveragedPerceptron`` whose cells remember how long
each value was held. :meth:`average` (or ``from_averaged`` on the matching
model class) collapses every cell to its time-weighted mean at the current
clock value and returns an immutable ``*MultinomialPerceptron`` that can be
scored or persisted with :mod:`perceptronix.codec`.
"""

from __future__ import annotations

from typing import BinaryIO, ClassVar, Dict, Iterable, Iterator, Optional, Tuple, Type

import numpy as _np

from .common import DENSE, NO_LABEL, SPARSE, SPARSE_DENSE, is_reserved
from .tables import DenseTable, SparseDenseTable, SparseTable
from .weights import AveragedWeight, Weight


# ---------------------------------------------------------------------------
# Accumulators


class _AveragedPerceptron:
    variant: ClassVar[str]

    def __init__(self, table) -> None:
        self._table = table
        self._time = 0

    @property
    def time(self) -> int:
        return self._time

    @property
    def outer_size(self) -> int:
        return self._table.outer_size

    @property
    def inner_size(self) -> int:
        return self._table.inner_size

    def tick(self, steps: int = 1) -> int:
        """Advance the clock by ``steps`` updates and return the new time."""

        self._time += steps
        return self._time

    def get(self, outer, inner) -> float:
        """Return the raw (unaveraged) weight used for scoring during training."""

        return self._table.get(outer, inner)

    def set(self, outer, inner, value: float, time: Optional[int] = None) -> None:
        """Store ``value`` at ``(outer, inner)`` as of ``time``.

        ``time`` defaults to the current clock. A time ahead of the clock moves
        the clock forward to it. Times must never decrease for a given cell.
        """

        if time is None:
            time = self._time
        elif time > self._time:
            self._time = time
        self._table.cell(outer, inner).set(value, time)

    def average(self) -> "_MultinomialPerceptron":
        return _FINALISED[self.variant].from_averaged(self)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(outer_size={self.outer_size}, "
            f"inner_size={self.inner_size}, time={self._time})"
        )


class DenseAveragedPerceptron(_AveragedPerceptron):
    variant = DENSE

    def __init__(self, outer_size: int, inner_size: int) -> None:
        super().__init__(DenseTable(outer_size, inner_size, AveragedWeight))


class SparseDenseAveragedPerceptron(_AveragedPerceptron):
    variant = SPARSE_DENSE

    def __init__(self, inner_size: int) -> None:
        super().__init__(SparseDenseTable(inner_size, AveragedWeight))

    def __contains__(self, outer: object) -> bool:
        return outer in self._table


class SparseAveragedPerceptron(_AveragedPerceptron):
    variant = SPARSE

    def __init__(self, inner_size: int) -> None:
        super().__init__(SparseTable(inner_size, AveragedWeight))

    def __contains__(self, outer: object) -> bool:
        return outer in self._table


# ---------------------------------------------------------------------------
# Finalised models


class _MultinomialPerceptron:
    variant: ClassVar[str]

    def __init__(self, table, metadata: str = "") -> None:
        self._table = table
        self.metadata = metadata

    @property
    def outer_size(self) -> int:
        return self._table.outer_size

    @property
    def inner_size(self) -> int:
        return self._table.inner_size

    def get(self, outer, inner) -> float:
        return self._table.get(outer, inner)

    def row(self, outer):
        return self._table.row(outer)

    def items(self) -> Iterator[Tuple[object, object]]:
        """Yield ``(outer, row)`` pairs with plain float values."""

        for outer, row in self._table.items():
            yield outer, self._table.row(outer)

    def values(self) -> Dict[object, Dict[object, float]]:
        return self._table.values()

    @classmethod
    def from_averaged(cls, avg: _AveragedPerceptron):
        """Snapshot ``avg`` at its current time into a new finalised model."""

        if avg.variant != cls.variant:
            raise TypeError(
                f"Cannot build {cls.__name__} from {type(avg).__name__}"
            )
        if avg.time <= 0:
            raise ValueError("Cannot average an accumulator before its first tick")
        model = cls._empty(avg)
        model._fill_from(avg._table, avg.time)
        return model

    @classmethod
    def _empty(cls, avg: _AveragedPerceptron):
        return cls(avg.inner_size)

    def _fill_from(self, source, time: int) -> None:
        for outer, row in source.items():
            self._table.ensure_row(outer)
            for inner, cell in enumerate(row):
                self._table.cell(outer, inner).set(cell.get_average(time))

    @classmethod
    def read(cls, stream: BinaryIO):
        """Read a record of this variant; ``None`` when it cannot be parsed."""

        from . import codec

        return codec.read(stream, cls.variant)

    def write(self, stream: BinaryIO, metadata: Optional[str] = None) -> bool:
        """Write this model; ``metadata`` defaults to ``self.metadata``.

        Returns ``False`` if the stream failed.
        """

        from . import codec

        return codec.write(self, stream, metadata)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._table == other._table

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(outer_size={self.outer_size}, "
            f"inner_size={self.inner_size}, metadata={self.metadata!r})"
        )


class DenseMultinomialPerceptron(_MultinomialPerceptron):
    variant = DENSE

    def __init__(self, outer_size: int, inner_size: int, metadata: str = "") -> None:
        super().__init__(DenseTable(outer_size, inner_size, Weight), metadata)
        self._array: Optional[_np.ndarray] = None

    @classmethod
    def _empty(cls, avg: _AveragedPerceptron):
        return cls(avg.outer_size, avg.inner_size)

    def _fill_from(self, source, time: int) -> None:
        for outer, row in source.items():
            for inner, cell in enumerate(row):
                self._table.cell(outer, inner).set(cell.get_average(time))

    def as_array(self) -> _np.ndarray:
        """Return the weights as a read-only ``(outer_size, inner_size)`` matrix."""

        if self._array is None:
            array = _np.zeros((self.outer_size, self.inner_size), dtype=_np.float64)
            for outer, row in self._table.items():
                array[outer] = [cell.get() for cell in row]
            array.setflags(write=False)
            self._array = array
        return self._array

    def score(self, features: Iterable[int]) -> _np.ndarray:
        """Sum the rows of the active ``features``; one score per class."""

        indices = _np.fromiter(features, dtype=_np.int64)
        if indices.size and (indices.min() < 0 or indices.max() >= self.outer_size):
            raise IndexError(f"feature index out of range [0, {self.outer_size})")
        return self.as_array()[indices].sum(axis=0)

    def predict(self, features: Iterable[int]) -> int:
        if self.inner_size == 0:
            raise ValueError("Cannot predict with a model that has no classes")
        return int(_np.argmax(self.score(features)))


class SparseDenseMultinomialPerceptron(_MultinomialPerceptron):
    variant = SPARSE_DENSE

    def __init__(self, inner_size: int, metadata: str = "") -> None:
        super().__init__(SparseDenseTable(inner_size, Weight), metadata)

    def score(self, features: Iterable[int]) -> _np.ndarray:
        """Sum the rows of the active ``features``; unknown features are ignored."""

        scores = _np.zeros(self.inner_size, dtype=_np.float64)
        for feature in features:
            if feature in self._table:
                scores += self._table.row(feature)
        return scores

    def predict(self, features: Iterable[int]) -> int:
        if self.inner_size == 0:
            raise ValueError("Cannot predict with a model that has no classes")
        return int(_np.argmax(self.score(features)))

    def __contains__(self, outer: object) -> bool:
        return outer in self._table


class SparseMultinomialPerceptron(_MultinomialPerceptron):
    variant = SPARSE

    def __init__(self, inner_size: int, metadata: str = "") -> None:
        super().__init__(SparseTable(inner_size, Weight), metadata)

    def _fill_from(self, source, time: int) -> None:
        for outer, row in source.items():
            self._table.ensure_row(outer)
            for label, cell in row.items():
                if label is NO_LABEL:
                    continue
                self._table.cell(outer, label).set(cell.get_average(time))

    def labels(self):
        return self._table.labels()

    def score(self, features: Iterable[int]) -> Dict[str, float]:
        """Sum label weights over the active ``features``; unknown features are ignored."""

        scores: Dict[str, float] = {}
        for feature in features:
            for label, value in self._table.row(feature).items():
                if is_reserved(label):
                    continue
                scores[label] = scores.get(label, 0.0) + value
        return scores

    def predict(self, features: Iterable[int]) -> Optional[str]:
        """Return the best label, or ``None`` when no feature carries a label.

        Ties go to the lexicographically smallest label.
        """

        scores = self.score(features)
        if not scores:
            return None
        return min(scores, key=lambda label: (-scores[label], label))

    def __contains__(self, outer: object) -> bool:
        return outer in self._table


_FINALISED: Dict[str, Type[_MultinomialPerceptron]] = {
    DENSE: DenseMultinomialPerceptron,
    SPARSE_DENSE: SparseDenseMultinomialPerceptron,
    SPARSE: SparseMultinomialPerceptron,
}


def model_type(variant: str) -> Type[_MultinomialPerceptron]:
    """Return the finalised model class for a variant tag."""

    try:
        return _FINALISED[variant]
    except KeyError:
        raise ValueError(f"Unknown storage variant {variant!r}") from None


__all__ = [
    "DenseAveragedPerceptron",
    "DenseMultinomialPerceptron",
    "SparseAveragedPerceptron",
    "SparseDenseAveragedPerceptron",
    "SparseDenseMultinomialPerceptron",
    "SparseMultinomialPerceptron",
    "model_type",
]
