from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import numpy as np
import pytest

from perceptronix import (
    NO_LABEL,
    DenseAveragedPerceptron,
    DenseMultinomialPerceptron,
    SparseAveragedPerceptron,
    SparseDenseAveragedPerceptron,
    SparseDenseMultinomialPerceptron,
    SparseMultinomialPerceptron,
)


def test_accumulator_clock_follows_updates() -> None:
    avg = DenseAveragedPerceptron(2, 2)
    assert avg.time == 0

    avg.set(0, 0, 1.0, time=3)
    assert avg.time == 3
    assert avg.tick() == 4

    avg.set(1, 1, 2.0)
    assert avg.time == 4
    assert avg.get(1, 1) == 2.0


def test_dense_conversion_averages_every_cell() -> None:
    avg = DenseAveragedPerceptron(2, 3)
    avg.set(0, 1, 1.0, time=1)
    avg.set(1, 2, 3.0, time=2)
    avg.set(0, 1, 2.0, time=4)

    model = avg.average()

    assert isinstance(model, DenseMultinomialPerceptron)
    assert model.outer_size == avg.outer_size == 2
    assert model.inner_size == avg.inner_size == 3
    assert model.get(0, 1) == pytest.approx(3.0 / 4)
    assert model.get(1, 2) == pytest.approx(6.0 / 4)
    assert model.get(1, 0) == 0.0
    assert model.metadata == ""


def test_conversion_leaves_accumulator_usable() -> None:
    avg = DenseAveragedPerceptron(1, 2)
    avg.set(0, 1, 1.0, time=1)
    avg.set(0, 1, 2.0, time=4)

    first = DenseMultinomialPerceptron.from_averaged(avg)
    assert avg.get(0, 1) == 2.0

    avg.tick()
    second = avg.average()

    assert first.get(0, 1) == pytest.approx(0.75)
    assert second.get(0, 1) == pytest.approx((3.0 + 2.0) / 5)


def test_sparse_dense_conversion_keeps_key_set() -> None:
    avg = SparseDenseAveragedPerceptron(3)
    avg.set(5, 1, 2.0, time=1)
    avg.set(5, 1, 4.0, time=3)

    model = avg.average()

    assert isinstance(model, SparseDenseMultinomialPerceptron)
    assert model.outer_size == avg.outer_size == 1
    assert 5 in model
    assert 6 not in model
    assert model.get(5, 1) == pytest.approx(4.0 / 3.0)
    assert model.row(5) == pytest.approx((0.0, 4.0 / 3.0, 0.0))


def test_sparse_conversion_drops_reserved_label() -> None:
    avg = SparseAveragedPerceptron(2)
    avg.set(7, "A", 1.0, time=1)
    avg.set(7, "", 5.0, time=1)
    avg.set(8, NO_LABEL, 2.0, time=2)

    model = avg.average()

    assert isinstance(model, SparseMultinomialPerceptron)
    assert model.outer_size == avg.outer_size == 2
    assert model.row(7) == {"A": pytest.approx(0.5)}
    assert model.row(8) == {}
    assert 8 in model
    assert model.labels() == ["A"]


def test_conversion_requires_elapsed_time() -> None:
    avg = SparseDenseAveragedPerceptron(2)
    avg.set(1, 0, 1.0)

    with pytest.raises(ValueError):
        avg.average()


def test_conversion_rejects_mismatched_variant() -> None:
    avg = SparseAveragedPerceptron(2)
    avg.tick()

    with pytest.raises(TypeError):
        SparseDenseMultinomialPerceptron.from_averaged(avg)


def _dense_model() -> DenseMultinomialPerceptron:
    avg = DenseAveragedPerceptron(3, 2)
    avg.set(0, 0, 1.0, time=0)
    avg.set(1, 1, 2.0, time=0)
    avg.set(2, 0, -1.0, time=0)
    avg.tick()
    return avg.average()


def test_dense_model_as_array() -> None:
    model = _dense_model()

    array = model.as_array()

    assert array.shape == (3, 2)
    assert array.dtype == np.float64
    np.testing.assert_allclose(array, [[1.0, 0.0], [0.0, 2.0], [-1.0, 0.0]])
    assert not array.flags.writeable


def test_dense_model_scores_and_predicts() -> None:
    model = _dense_model()

    np.testing.assert_allclose(model.score([0, 1]), [1.0, 2.0])
    np.testing.assert_allclose(model.score([]), [0.0, 0.0])
    assert model.predict([0, 1]) == 1
    # Ties resolve to the lowest class index.
    assert model.predict([0, 2]) == 0

    with pytest.raises(IndexError):
        model.score([5])


def test_sparse_dense_model_ignores_unknown_features() -> None:
    avg = SparseDenseAveragedPerceptron(2)
    avg.set(10, 0, 1.5, time=0)
    avg.set(20, 1, 0.5, time=0)
    avg.tick()
    model = avg.average()

    np.testing.assert_allclose(model.score([10, 20, 99]), [1.5, 0.5])
    assert model.predict([10, 20, 99]) == 0
    assert model.predict([20]) == 1


def test_sparse_model_predicts_labels() -> None:
    avg = SparseAveragedPerceptron(2)
    avg.set(1, "NOUN", 1.0, time=0)
    avg.set(1, "VERB", 1.0, time=0)
    avg.set(2, "VERB", 0.5, time=0)
    avg.tick()
    model = avg.average()

    assert model.score([1, 2]) == {"NOUN": 1.0, "VERB": 1.5}
    assert model.predict([1, 2]) == "VERB"
    assert model.predict([1]) == "NOUN"
    assert model.predict([3]) is None


def test_models_compare_by_weights() -> None:
    assert _dense_model() == _dense_model()

    other = DenseMultinomialPerceptron(3, 2)
    assert _dense_model() != other
    assert _dense_model() != SparseDenseMultinomialPerceptron(2)
