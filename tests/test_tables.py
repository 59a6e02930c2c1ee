from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import numpy as np
import pytest

from perceptronix.common import NO_LABEL
from perceptronix.tables import DenseTable, SparseDenseTable, SparseTable
from perceptronix.weights import AveragedWeight, Weight


def test_dense_table_defaults_to_zero() -> None:
    table = DenseTable(2, 3, Weight)

    assert table.outer_size == 2
    assert table.inner_size == 3
    assert table.row(1) == (0.0, 0.0, 0.0)
    assert all(table.get(i, j) == 0.0 for i in range(2) for j in range(3))


def test_dense_table_cells_are_independent() -> None:
    table = DenseTable(2, 2, AveragedWeight)
    table.cell(0, 1).set(5.0, 1)

    assert table.get(0, 1) == 5.0
    assert table.get(1, 1) == 0.0
    assert table.cell(0, 1) is not table.cell(1, 1)


@pytest.mark.parametrize("outer, inner", [(2, 0), (0, 3), (-1, 0), (0, -1)])
def test_dense_table_rejects_out_of_range(outer: int, inner: int) -> None:
    table = DenseTable(2, 3, Weight)

    with pytest.raises(IndexError):
        table.get(outer, inner)


def test_tables_reject_negative_sizes() -> None:
    with pytest.raises(ValueError):
        DenseTable(-1, 2, Weight)
    with pytest.raises(ValueError):
        SparseDenseTable(-3, Weight)


def test_sparse_dense_read_does_not_create_rows() -> None:
    table = SparseDenseTable(3, Weight)

    assert table.get(42, 2) == 0.0
    assert table.row(42) == (0.0, 0.0, 0.0)
    assert table.outer_size == 0
    assert 42 not in table


def test_sparse_dense_write_creates_zero_row() -> None:
    table = SparseDenseTable(3, Weight)
    table.cell(5, 1).set(2.0)

    assert table.outer_size == 1
    assert 5 in table
    assert table.row(5) == (0.0, 2.0, 0.0)


def test_sparse_dense_checks_inner_index() -> None:
    table = SparseDenseTable(2, Weight)

    with pytest.raises(IndexError):
        table.cell(1, 2)
    with pytest.raises(IndexError):
        table.get(1, -1)
    assert table.outer_size == 0


def test_sparse_table_creates_labels_on_demand() -> None:
    table = SparseTable(4, Weight)
    table.cell(9, "DET").set(0.25)

    assert table.get(9, "DET") == 0.25
    assert table.get(9, "NOUN") == 0.0
    assert table.get(10, "DET") == 0.0
    assert table.outer_size == 1
    assert table.row(9) == {"DET": 0.25}


def test_sparse_table_folds_empty_label_into_reserved_slot() -> None:
    table = SparseTable(2, Weight)
    table.cell(1, "").set(3.0)

    assert table.get(1, NO_LABEL) == 3.0
    assert table.row(1) == {NO_LABEL: 3.0}
    assert table.labels() == []


def test_sparse_table_labels_are_sorted_and_unique() -> None:
    table = SparseTable(3, Weight)
    table.cell(1, "VERB").set(1.0)
    table.cell(2, "ADJ").set(1.0)
    table.cell(2, "VERB").set(1.0)

    assert table.labels() == ["ADJ", "VERB"]


def test_sparse_table_rejects_non_string_labels() -> None:
    table = SparseTable(2, Weight)

    with pytest.raises(TypeError):
        table.cell(1, 3)


def test_table_equality_compares_values() -> None:
    left = SparseDenseTable(2, Weight)
    right = SparseDenseTable(2, Weight)
    left.cell(1, 0).set(1.0)
    right.cell(1, 0).set(1.0)

    assert left == right

    right.cell(2, 0)
    assert left != right


@pytest.mark.parametrize("factory", [lambda: SparseDenseTable(2, Weight), lambda: SparseTable(2, Weight)])
def test_sparse_tables_store_numpy_keys_as_int(factory) -> None:
    table = factory()
    inner = 0 if isinstance(table, SparseDenseTable) else "X"

    table.cell(np.int64(5), inner).set(2.0)

    assert [type(outer) for outer, _ in table.items()] == [int]
    assert table.get(5, inner) == 2.0
    assert table.get(np.int32(5), inner) == 2.0
    assert np.int64(5) in table
    assert "x" not in table


@pytest.mark.parametrize("factory", [lambda: SparseDenseTable(2, Weight), lambda: SparseTable(2, Weight)])
@pytest.mark.parametrize("key", ["x", True, 1.5])
def test_sparse_tables_reject_non_integer_keys(factory, key) -> None:
    table = factory()
    inner = 0 if isinstance(table, SparseDenseTable) else "X"

    with pytest.raises(TypeError):
        table.cell(key, inner)
    assert len(table) == 0
