"""Inspect persisted perceptron models.

Loads a record written by :mod:`perceptronix.codec` and prints its storage
variant, metadata, dimensions and simple weight statistics::

    python -m perceptronix.tools.model_info model.bin --format json
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import numpy as _np

from .. import codec
from ..common import VARIANT_DESCRIPTIONS, VARIANTS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelSummary:
    """Description of a persisted model file."""

    path: Path
    variant: str
    metadata: str
    outer_size: int
    inner_size: int
    weights: int
    nonzero: int
    min_weight: float
    max_weight: float
    labels: Tuple[str, ...]
    bytes: int

    def to_dict(self) -> Dict[str, object]:
        """Serialise the summary into JSON-serialisable primitives."""

        return {
            "path": str(self.path),
            "variant": self.variant,
            "metadata": self.metadata,
            "outer_size": self.outer_size,
            "inner_size": self.inner_size,
            "weights": self.weights,
            "nonzero": self.nonzero,
            "min_weight": self.min_weight,
            "max_weight": self.max_weight,
            "labels": list(self.labels),
            "bytes": self.bytes,
        }


def summarise(model, path: Path) -> ModelSummary:
    values: List[float] = []
    for _, row in model.items():
        values.extend(row.values() if isinstance(row, dict) else row)
    array = _np.asarray(values, dtype=_np.float64)
    labels = tuple(model.labels()) if hasattr(model, "labels") else ()
    return ModelSummary(
        path=path,
        variant=model.variant,
        metadata=model.metadata,
        outer_size=model.outer_size,
        inner_size=model.inner_size,
        weights=int(array.size),
        nonzero=int(_np.count_nonzero(array)),
        min_weight=float(array.min()) if array.size else 0.0,
        max_weight=float(array.max()) if array.size else 0.0,
        labels=labels,
        bytes=path.stat().st_size,
    )


def format_summary(summary: ModelSummary) -> str:
    """Return a human-friendly multi-line summary of a model file."""

    header = "Perceptron Model Summary"
    lines = [header, "=" * len(header)]
    lines.append(f"Path    : {summary.path}")
    lines.append(
        f"Variant : {summary.variant} ({VARIANT_DESCRIPTIONS[summary.variant]})"
    )
    lines.append(f"Metadata: {summary.metadata or '<empty>'}")
    lines.append(f"Size    : {summary.outer_size} outer x {summary.inner_size} inner")
    if summary.labels:
        lines.append("Labels  : " + ", ".join(summary.labels))
    lines.append("")
    lines.append(
        f"Weights: {summary.weights} | Non-zero: {summary.nonzero} | "
        f"Range: [{summary.min_weight:g}, {summary.max_weight:g}]"
    )
    lines.append(f"Record bytes: {summary.bytes}")
    return "\n".join(lines)


def render_summary(summary: ModelSummary, *, format: str = "table") -> str:
    """Serialise ``summary`` as ``"table"`` or ``"json"`` (case-insensitive)."""

    normalized = format.lower()
    if normalized == "table":
        return format_summary(summary)
    if normalized == "json":
        return json.dumps(summary.to_dict(), indent=2, sort_keys=True)
    raise ValueError(f"Unsupported summary format: {format}")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Summarise a persisted multinomial perceptron model.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("model", type=Path, help="Path to the model record")
    parser.add_argument(
        "--variant",
        choices=VARIANTS,
        default=None,
        help="Require the record to use this storage variant",
    )
    parser.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Format to use when rendering the summary",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional path to write the summary to instead of stdout",
    )
    parser.add_argument(
        "--verbose",
        dest="verbose",
        action="store_true",
        default=None,
        help="Enable verbose logging (can also set PERCEPTRONIX_VERBOSE=1)",
    )
    parser.add_argument(
        "--quiet",
        dest="verbose",
        action="store_false",
        help="Disable verbose logging",
    )

    args = parser.parse_args(argv)
    args.model = args.model.expanduser()
    if args.output is not None:
        args.output = args.output.expanduser()

    if args.verbose is None:
        env_value = os.environ.get("PERCEPTRONIX_VERBOSE")
        if env_value is None:
            args.verbose = False
        else:
            args.verbose = env_value.lower() not in {"", "0", "false", "no"}
    return args


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger("perceptronix").setLevel(logging.DEBUG)

    model = codec.load(args.model, args.variant)
    if model is None:
        expected = f" {args.variant}" if args.variant else ""
        print(
            f"model_info: {args.model} is not a readable{expected} model record",
            file=sys.stderr,
        )
        raise SystemExit(1)

    summary = summarise(model, args.model)
    logger.info("Read %r from %s", model, args.model)
    rendered = render_summary(summary, format=args.format)

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        text = rendered if rendered.endswith("\n") else rendered + "\n"
        args.output.write_text(text, encoding="utf-8")
    else:
        print(rendered)
    return 0


if __name__ == "__main__":
    sys.exit(main())
