"""Shared constants, errors and markers used across perceptronix."""

from __future__ import annotations

import operator
from typing import Dict, Tuple

RECORD_FORMAT = 1
DENSE = "dense"
SPARSE_DENSE = "sparse_dense"
SPARSE = "sparse"
VARIANTS: Tuple[str, ...] = (DENSE, SPARSE_DENSE, SPARSE)
VARIANT_DESCRIPTIONS: Dict[str, str] = {
    DENSE: "dense outer / dense inner",
    SPARSE_DENSE: "sparse outer / dense inner",
    SPARSE: "sparse outer / sparse inner",
}
RECORD_KEYS: Tuple[str, ...] = ("format", "variant", "metadata", "inner_size", "table")


class PerceptronixError(RuntimeError):
    """Base class for errors raised by perceptronix."""


class RecordFormatError(PerceptronixError):
    """Raised when a persisted record does not match the expected schema."""


class _NoLabel:
    """Marker for the reserved "no class yet observed" inner slot."""

    _instance: "_NoLabel | None" = None

    def __new__(cls) -> "_NoLabel":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_LABEL"

    def __reduce__(self) -> str:
        return "NO_LABEL"


NO_LABEL = _NoLabel()


def outer_key(key: object) -> int:
    """Coerce a sparse outer key to a plain ``int``.

    Accepts anything implementing ``__index__`` (so numpy integers work) but
    rejects ``bool``.
    """

    if isinstance(key, bool):
        raise TypeError("Outer keys must be integers, got bool")
    try:
        return operator.index(key)
    except TypeError:
        raise TypeError(
            f"Outer keys must be integers, got {type(key).__name__}"
        ) from None


def normalise_label(label: object) -> "str | _NoLabel":
    """Map ``label`` onto the sparse inner key space.

    The empty string is the legacy spelling of the reserved slot, so it is
    folded into :data:`NO_LABEL`.
    """

    if label is NO_LABEL or label == "":
        return NO_LABEL
    if not isinstance(label, str):
        raise TypeError(f"Sparse labels must be str, got {type(label).__name__}")
    return label


def is_reserved(label: object) -> bool:
    return label is NO_LABEL or label == ""


__all__ = [
    "DENSE",
    "NO_LABEL",
    "PerceptronixError",
    "RECORD_FORMAT",
    "RECORD_KEYS",
    "RecordFormatError",
    "SPARSE",
    "SPARSE_DENSE",
    "VARIANTS",
    "VARIANT_DESCRIPTIONS",
    "is_reserved",
    "normalise_label",
    "outer_key",
]
