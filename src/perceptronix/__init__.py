"""Averaged multinomial perceptrons with dense and sparse weight tables."""

from .common import (
    DENSE,
    NO_LABEL,
    SPARSE,
    SPARSE_DENSE,
    PerceptronixError,
    RecordFormatError,
)
from .perceptron import (
    DenseAveragedPerceptron,
    DenseMultinomialPerceptron,
    SparseAveragedPerceptron,
    SparseDenseAveragedPerceptron,
    SparseDenseMultinomialPerceptron,
    SparseMultinomialPerceptron,
)
from .weights import AveragedWeight, Weight

__all__ = [
    "AveragedWeight",
    "DENSE",
    "DenseAveragedPerceptron",
    "DenseMultinomialPerceptron",
    "NO_LABEL",
    "PerceptronixError",
    "RecordFormatError",
    "SPARSE",
    "SPARSE_DENSE",
    "SparseAveragedPerceptron",
    "SparseDenseAveragedPerceptron",
    "SparseDenseMultinomialPerceptron",
    "SparseMultinomialPerceptron",
    "Weight",
]
