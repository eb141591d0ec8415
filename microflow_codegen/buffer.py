"""Constant matrix buffers rendered as matrix literals."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional


def _to_f32(value: float) -> float:
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        raise ValueError(f"{value!r} does not fit in a single-precision float") from None


def _format_f32(value: float) -> str:
    """Shortest decimal text that reads back as the same single-precision float."""
    single = _to_f32(value)
    if not math.isfinite(single):
        raise ValueError(f"cannot render non-finite float {value!r}")
    text = next(
        candidate
        for candidate in (f"{single:.{digits}g}" for digits in range(1, 10))
        if _to_f32(float(candidate)) == single
    )
    return format(Decimal(text), "f")


def _literal(value: Any, dtype: str) -> str:
    """Render one value as a suffixed literal of the given element type."""
    if dtype == "f32":
        return f"{_format_f32(value)}f32"
    return f"{int(value)}{dtype}"


def _array(values: Iterable[Any], dtype: str) -> str:
    return "[" + ", ".join(_literal(value, dtype) for value in values) + "]"


@dataclass
class Buffer2D:
    """A two-dimensional constant buffer, or an empty placeholder when ``data`` is None."""

    dtype: str
    data: Optional[list[list[Any]]] = None

    def __post_init__(self) -> None:
        if self.data is not None:
            self.data = [list(row) for row in self.data]

    @property
    def matrix(self) -> list[list[Any]]:
        """The rows of the buffer; raises ValueError when the buffer is empty."""
        if self.data is None:
            raise ValueError("buffer is empty")
        return self.data

    def to_tokens(self) -> str:
        """Render the buffer as a matrix literal, rows separated by semicolons."""
        rows = "; ".join(
            ", ".join(_literal(value, self.dtype) for value in row) for row in self.matrix
        )
        return f"nalgebra::matrix![{rows}]"


@dataclass
class Buffer4D:
    """A batch of matrices whose elements are channel vectors."""

    dtype: str
    data: Optional[list[list[list[list[Any]]]]] = None

    def __post_init__(self) -> None:
        if self.data is not None:
            self.data = [
                [[list(element) for element in row] for row in batch]
                for batch in self.data
            ]

    @property
    def batches(self) -> list[list[list[list[Any]]]]:
        """The batches of the buffer; raises ValueError when the buffer is empty."""
        if self.data is None:
            raise ValueError("buffer is empty")
        return self.data

    def to_tokens(self) -> str:
        """Render the buffer as an array of matrix literals of channel arrays."""
        matrices = []
        for batch in self.batches:
            rows = "; ".join(
                ", ".join(_array(element, self.dtype) for element in row) for row in batch
            )
            matrices.append(f"nalgebra::matrix![{rows}]")
        return "[" + ", ".join(matrices) + "]"