"""Binary persistence for finalised multinomial perceptrons.

A record is a single msgpack map with a fixed key set::

    {
        "format": 1,
        "variant": "dense" | "sparse_dense" | "sparse",
        "metadata": <caller supplied string>,
        "inner_size": <int>,
        "table": <variant specific>,
    }

``table`` is a list of ``inner_size``-long float lists for ``dense``, a map
of integer outer keys to such lists for ``sparse_dense`` and a map of integer
outer keys to ``{label: float}`` maps for ``sparse``. The reserved
:data:`~perceptronix.common.NO_LABEL` slot is never written.

The public entry points never raise on bad input: :func:`write` reports
failure as ``False`` and :func:`read` as ``None``. The reason is logged at
DEBUG level.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Mapping, Optional, Union

import msgpack
from msgpack.exceptions import UnpackException

from .common import (
    DENSE,
    RECORD_FORMAT,
    RECORD_KEYS,
    SPARSE,
    SPARSE_DENSE,
    VARIANTS,
    RecordFormatError,
    is_reserved,
    outer_key,
)
from .perceptron import (
    DenseMultinomialPerceptron,
    SparseDenseMultinomialPerceptron,
    SparseMultinomialPerceptron,
    _MultinomialPerceptron,
    model_type,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# Encoding


def _outer_key(key: object) -> int:
    try:
        return outer_key(key)
    except TypeError as exc:
        raise RecordFormatError(f"{exc}: {key!r}") from None


def _encode_table(model: _MultinomialPerceptron) -> Any:
    if isinstance(model, DenseMultinomialPerceptron):
        return model.as_array().tolist()
    if isinstance(model, SparseDenseMultinomialPerceptron):
        return {_outer_key(outer): list(row) for outer, row in model.items()}
    if isinstance(model, SparseMultinomialPerceptron):
        return {
            _outer_key(outer): {
                label: value for label, value in row.items() if not is_reserved(label)
            }
            for outer, row in model.items()
        }
    raise TypeError(f"Unsupported model type {type(model).__name__}")


def encode_record(
    model: _MultinomialPerceptron, metadata: Optional[str] = None
) -> Dict[str, Any]:
    """Return the record for ``model`` as plain msgpack-compatible values.

    ``metadata`` defaults to the model's own ``metadata`` attribute.
    """

    if metadata is None:
        metadata = getattr(model, "metadata", "")
    if not isinstance(metadata, str):
        raise TypeError(f"metadata must be str, got {type(metadata).__name__}")
    return {
        "format": RECORD_FORMAT,
        "variant": model.variant,
        "metadata": metadata,
        "inner_size": model.inner_size,
        "table": _encode_table(model),
    }


def dumps(model: _MultinomialPerceptron, metadata: Optional[str] = None) -> bytes:
    return msgpack.packb(encode_record(model, metadata), use_bin_type=True)


# ---------------------------------------------------------------------------
# Decoding


def _scalar(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordFormatError(f"Weights must be numbers, got {value!r}")
    return float(value)


def _dense_row(row: object, inner_size: int) -> List[float]:
    if not isinstance(row, list):
        raise RecordFormatError(f"Rows must be arrays, got {type(row).__name__}")
    if len(row) != inner_size:
        raise RecordFormatError(
            f"Row length mismatch: expected {inner_size}, got {len(row)}"
        )
    return [_scalar(value) for value in row]


def _mapping(value: object, what: str) -> Mapping:
    if not isinstance(value, dict):
        raise RecordFormatError(f"{what} must be a map, got {type(value).__name__}")
    return value


def _decode_dense(table: object, inner_size: int, metadata: str) -> DenseMultinomialPerceptron:
    if not isinstance(table, list):
        raise RecordFormatError("Dense table must be an array of rows")
    rows = [_dense_row(row, inner_size) for row in table]
    model = DenseMultinomialPerceptron(len(rows), inner_size, metadata)
    for outer, row in enumerate(rows):
        for inner, value in enumerate(row):
            model._table.cell(outer, inner).set(value)
    return model


def _decode_sparse_dense(
    table: object, inner_size: int, metadata: str
) -> SparseDenseMultinomialPerceptron:
    model = SparseDenseMultinomialPerceptron(inner_size, metadata)
    for outer, row in _mapping(table, "Sparse table").items():
        values = _dense_row(row, inner_size)
        outer = _outer_key(outer)
        model._table.ensure_row(outer)
        for inner, value in enumerate(values):
            model._table.cell(outer, inner).set(value)
    return model


def _decode_sparse(table: object, inner_size: int, metadata: str) -> SparseMultinomialPerceptron:
    model = SparseMultinomialPerceptron(inner_size, metadata)
    for outer, row in _mapping(table, "Sparse table").items():
        outer = _outer_key(outer)
        model._table.ensure_row(outer)
        for label, value in _mapping(row, "Sparse row").items():
            if not isinstance(label, str):
                raise RecordFormatError(f"Labels must be strings, got {label!r}")
            if is_reserved(label):
                continue
            model._table.cell(outer, label).set(_scalar(value))
    return model


_DECODERS = {
    DENSE: _decode_dense,
    SPARSE_DENSE: _decode_sparse_dense,
    SPARSE: _decode_sparse,
}


def decode_record(blob: object, variant: Optional[str] = None) -> _MultinomialPerceptron:
    """Build a model from an unpacked record.

    Raises :class:`RecordFormatError` when ``blob`` does not follow the record
    schema or holds a variant other than ``variant``.
    """

    record = _mapping(blob, "Record")
    missing = [key for key in RECORD_KEYS if key not in record]
    if missing:
        raise RecordFormatError("Record is missing " + ", ".join(missing))
    if record["format"] != RECORD_FORMAT:
        raise RecordFormatError(f"Unsupported record format {record['format']!r}")
    stored_variant = record["variant"]
    if stored_variant not in VARIANTS:
        raise RecordFormatError(f"Unknown storage variant {stored_variant!r}")
    if variant is not None and stored_variant != variant:
        raise RecordFormatError(
            f"Expected a {variant!r} record, found {stored_variant!r}"
        )
    metadata = record["metadata"]
    if not isinstance(metadata, str):
        raise RecordFormatError("Record metadata must be a string")
    inner_size = record["inner_size"]
    if isinstance(inner_size, bool) or not isinstance(inner_size, int) or inner_size < 0:
        raise RecordFormatError(f"Invalid inner_size {inner_size!r}")
    return _DECODERS[stored_variant](record["table"], inner_size, metadata)


def loads(data: bytes, variant: Optional[str] = None) -> Optional[_MultinomialPerceptron]:
    """Parse ``data`` into a model, or return ``None`` if it is not a valid record."""

    try:
        blob = msgpack.unpackb(data, raw=False, strict_map_key=False)
        return decode_record(blob, variant)
    except (UnpackException, RecordFormatError, ValueError, TypeError) as exc:
        logger.debug("Discarding malformed %s record: %s", variant or "perceptron", exc)
        return None


# ---------------------------------------------------------------------------
# Streams


def write(
    model: _MultinomialPerceptron, stream: BinaryIO, metadata: Optional[str] = None
) -> bool:
    """Write ``model`` and ``metadata`` to ``stream`` as a single record.

    Without ``metadata`` the model's own ``metadata`` is stored, so a loaded
    model keeps its tag when written back.

    Returns ``False`` when the model cannot be encoded or the stream rejects
    the bytes. A failed write may leave a partial record behind; callers must
    discard it.
    """

    try:
        payload = dumps(model, metadata)
    except (RecordFormatError, TypeError, ValueError, OverflowError) as exc:
        logger.debug("Unable to encode %s: %s", type(model).__name__, exc)
        return False
    try:
        written = stream.write(payload)
        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()
    except (OSError, ValueError, TypeError) as exc:
        logger.debug("Unable to write %s record: %s", model.variant, exc)
        return False
    if written is not None and written != len(payload):
        logger.debug("Short write: %s of %s bytes", written, len(payload))
        return False
    return True


def read(stream: BinaryIO, variant: Optional[str] = None) -> Optional[_MultinomialPerceptron]:
    """Read one record from ``stream``.

    With ``variant`` set, records of any other variant are rejected. The
    stored metadata is available as ``model.metadata``.
    """

    if variant is not None:
        model_type(variant)
    try:
        data = stream.read()
    except (OSError, ValueError) as exc:
        logger.debug("Unable to read record: %s", exc)
        return None
    return loads(data, variant)


def read_model(stream: BinaryIO) -> Optional[_MultinomialPerceptron]:
    """Read a record of any variant, dispatching on its stored tag."""

    return read(stream)


# ---------------------------------------------------------------------------
# Paths


def save(
    model: _MultinomialPerceptron, path: PathLike, metadata: Optional[str] = None
) -> bool:
    """Write ``model`` to ``path``, creating parent directories as needed."""

    path = Path(path).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as fh:
            ok = write(model, fh, metadata)
    except OSError as exc:
        logger.debug("Unable to save model to %s: %s", path, exc)
        return False
    logger.debug("Saved %s model to %s (ok=%s)", model.variant, path, ok)
    return ok


def load(path: PathLike, variant: Optional[str] = None) -> Optional[_MultinomialPerceptron]:
    """Read a model from ``path``; ``None`` if it is missing or malformed."""

    path = Path(path).expanduser()
    try:
        with path.open("rb") as fh:
            model = read(fh, variant)
    except OSError as exc:
        logger.debug("Unable to load model from %s: %s", path, exc)
        return None
    logger.debug("Loaded model from %s: %r", path, model)
    return model


__all__ = [
    "decode_record",
    "dumps",
    "encode_record",
    "load",
    "loads",
    "read",
    "read_model",
    "save",
    "write",
]
