"""Two-level weight tables in three storage layouts.

Every table maps an outer key (a feature or class index) to an inner row of
cells keyed by class. The layouts differ in how each level is stored:

``DenseTable``
    Outer and inner levels are fixed-size, zero-indexed lists.
``SparseDenseTable``
    The outer level is a dict keyed by integer identifiers; each stored row
    is a fixed-size list of ``inner_size`` cells.
``SparseTable``
    The outer level is a dict keyed by integer identifiers; each row is a
    dict keyed by string labels (or :data:`~perceptronix.common.NO_LABEL`).

Tables are parameterised by a ``cell_factory`` so the same layout holds
:class:`~perceptronix.weights.AveragedWeight` cells while training and plain
:class:`~perceptronix.weights.Weight` cells once a model is finalised.

Reads of absent keys in the sparse layouts return ``0.0`` without inserting
anything; only :meth:`cell` (used by writers) creates missing rows and slots.
"""

from __future__ import annotations

from typing import Callable, Dict, Generic, Iterator, List, Mapping, Sequence, Tuple, TypeVar

from .common import NO_LABEL, normalise_label, outer_key
from .weights import Weight

CellT = TypeVar("CellT", bound=Weight)
CellFactory = Callable[[], CellT]


def _check_size(name: str, value: int) -> int:
    value = int(value)
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


class _Table(Generic[CellT]):
    inner_size: int

    def __init__(self, inner_size: int, cell_factory: CellFactory) -> None:
        self.inner_size = _check_size("inner_size", inner_size)
        self._cell_factory = cell_factory

    def values(self) -> Dict[object, Dict[object, float]]:
        """Return a plain ``{outer: {inner: value}}`` copy of the table."""

        return {
            outer: dict(self._row_items(row)) for outer, row in self.items()
        }

    def _row_items(self, row) -> Iterator[Tuple[object, float]]:
        for inner, cell in enumerate(row):
            yield inner, cell.get()

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self.inner_size == other.inner_size and self.values() == other.values()


class DenseTable(_Table[CellT]):
    """Fixed ``outer_size`` x ``inner_size`` grid of cells."""

    def __init__(self, outer_size: int, inner_size: int, cell_factory: CellFactory) -> None:
        super().__init__(inner_size, cell_factory)
        outer_size = _check_size("outer_size", outer_size)
        self._rows: List[List[CellT]] = [
            [cell_factory() for _ in range(self.inner_size)] for _ in range(outer_size)
        ]

    @property
    def outer_size(self) -> int:
        return len(self._rows)

    def _index(self, outer: int, inner: int) -> Tuple[int, int]:
        if not 0 <= outer < len(self._rows):
            raise IndexError(f"outer index {outer} out of range [0, {len(self._rows)})")
        if not 0 <= inner < self.inner_size:
            raise IndexError(f"inner index {inner} out of range [0, {self.inner_size})")
        return outer, inner

    def cell(self, outer: int, inner: int) -> CellT:
        outer, inner = self._index(outer, inner)
        return self._rows[outer][inner]

    def get(self, outer: int, inner: int) -> float:
        return self.cell(outer, inner).get()

    def row(self, outer: int) -> Tuple[float, ...]:
        if not 0 <= outer < len(self._rows):
            raise IndexError(f"outer index {outer} out of range [0, {len(self._rows)})")
        return tuple(cell.get() for cell in self._rows[outer])

    def items(self) -> Iterator[Tuple[int, Sequence[CellT]]]:
        for outer, row in enumerate(self._rows):
            yield outer, row

    def __len__(self) -> int:
        return len(self._rows)


class SparseDenseTable(_Table[CellT]):
    """Dict of integer outer keys to fixed-size rows of cells."""

    def __init__(self, inner_size: int, cell_factory: CellFactory) -> None:
        super().__init__(inner_size, cell_factory)
        self._rows: Dict[int, List[CellT]] = {}

    @property
    def outer_size(self) -> int:
        return len(self._rows)

    def _check_inner(self, inner: int) -> int:
        if not 0 <= inner < self.inner_size:
            raise IndexError(f"inner index {inner} out of range [0, {self.inner_size})")
        return inner

    def cell(self, outer: int, inner: int) -> CellT:
        """Return the cell at ``(outer, inner)``, creating the row if needed."""

        inner = self._check_inner(inner)
        outer = outer_key(outer)
        self.ensure_row(outer)
        return self._rows[outer][inner]

    def get(self, outer: int, inner: int) -> float:
        inner = self._check_inner(inner)
        outer = outer_key(outer)
        row = self._rows.get(outer)
        if row is None:
            return 0.0
        return row[inner].get()

    def ensure_row(self, outer: int) -> None:
        outer = outer_key(outer)
        if outer not in self._rows:
            self._rows[outer] = [self._cell_factory() for _ in range(self.inner_size)]

    def row(self, outer: int) -> Tuple[float, ...]:
        outer = outer_key(outer)
        row = self._rows.get(outer)
        if row is None:
            return (0.0,) * self.inner_size
        return tuple(cell.get() for cell in row)

    def items(self) -> Iterator[Tuple[int, Sequence[CellT]]]:
        return iter(self._rows.items())

    def __contains__(self, outer: object) -> bool:
        try:
            return outer_key(outer) in self._rows
        except TypeError:
            return False

    def __len__(self) -> int:
        return len(self._rows)


class SparseTable(_Table[CellT]):
    """Dict of integer outer keys to dicts of label-keyed cells.

    ``inner_size`` records the number of classes the model was configured
    with; rows are not required to hold a cell for every class.
    """

    def __init__(self, inner_size: int, cell_factory: CellFactory) -> None:
        super().__init__(inner_size, cell_factory)
        self._rows: Dict[int, Dict[object, CellT]] = {}

    @property
    def outer_size(self) -> int:
        return len(self._rows)

    def cell(self, outer: int, label: object) -> CellT:
        """Return the cell at ``(outer, label)``, creating row and slot if needed."""

        label = normalise_label(label)
        outer = outer_key(outer)
        row = self._rows.setdefault(outer, {})
        cell = row.get(label)
        if cell is None:
            cell = self._cell_factory()
            row[label] = cell
        return cell

    def get(self, outer: int, label: object) -> float:
        label = normalise_label(label)
        outer = outer_key(outer)
        row = self._rows.get(outer)
        if row is None:
            return 0.0
        cell = row.get(label)
        return 0.0 if cell is None else cell.get()

    def ensure_row(self, outer: int) -> None:
        self._rows.setdefault(outer_key(outer), {})

    def row(self, outer: int) -> Dict[object, float]:
        outer = outer_key(outer)
        row = self._rows.get(outer)
        if row is None:
            return {}
        return {label: cell.get() for label, cell in row.items()}

    def labels(self) -> List[str]:
        """Return every label with a stored cell, sorted, without ``NO_LABEL``."""

        found = set()
        for row in self._rows.values():
            found.update(label for label in row if label is not NO_LABEL)
        return sorted(found)

    def items(self) -> Iterator[Tuple[int, Mapping[object, CellT]]]:
        return iter(self._rows.items())

    def _row_items(self, row) -> Iterator[Tuple[object, float]]:
        for label, cell in row.items():
            yield label, cell.get()

    def __contains__(self, outer: object) -> bool:
        try:
            return outer_key(outer) in self._rows
        except TypeError:
            return False

    def __len__(self) -> int:
        return len(self._rows)


__all__ = ["CellFactory", "DenseTable", "SparseDenseTable", "SparseTable"]
