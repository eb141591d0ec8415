"""Quantized tensors of a model and their rendering as constant expressions."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Sequence, Union

from microflow_codegen.buffer import Buffer2D, Buffer4D, _array
from microflow_codegen.model import TensorInfo


class ElementType(Enum):
    """Quantized element types, valued by their runtime type name."""

    INT8 = "i8"
    UINT8 = "u8"
    INT32 = "i32"

    @classmethod
    def from_tflite(cls, code: int) -> ElementType:
        """Map a TensorFlow Lite ``TensorType`` code to an element type."""
        try:
            return _TFLITE_CODES[code]
        except KeyError:
            raise NotImplementedError(f"unsupported tensor type: {code}") from None

    @property
    def size(self) -> int:
        """Size of one element in bytes."""
        return struct.calcsize(_STRUCT_FORMATS[self])

    @property
    def signed(self) -> bool:
        return _STRUCT_FORMATS[self].islower()

    def decode(self, data: bytes) -> list[int]:
        """Decode little-endian elements; trailing bytes short of an element are ignored."""
        usable = len(data) - len(data) % self.size
        return [value for (value,) in struct.iter_unpack("<" + _STRUCT_FORMATS[self], data[:usable])]

    def _cast(self, value: int) -> int:
        """Wrap an integer into the range of this type."""
        bits = 8 * self.size
        wrapped = int(value) & ((1 << bits) - 1)
        if self.signed and wrapped >= 1 << (bits - 1):
            wrapped -= 1 << bits
        return wrapped


_TFLITE_CODES = {9: ElementType.INT8, 3: ElementType.UINT8, 2: ElementType.INT32}
_STRUCT_FORMATS = {ElementType.INT8: "b", ElementType.UINT8: "B", ElementType.INT32: "i"}


class Padding(Enum):
    """Padding of a tensor view used by windowed operators."""

    SAME = "Same"
    VALID = "Valid"

    @classmethod
    def from_tflite(cls, code: int) -> Padding:
        """Map a TensorFlow Lite ``Padding`` code to a variant."""
        try:
            return _PADDING_CODES[code]
        except KeyError:
            raise ValueError(f"invalid padding: {code}") from None

    def to_tokens(self) -> str:
        return f"microflow::tensor::TensorViewPadding::{self.value}"


_PADDING_CODES = {0: Padding.SAME, 1: Padding.VALID}


def _take(values: list[int], count: int) -> list[int]:
    if len(values) < count:
        raise ValueError(f"tensor buffer holds {len(values)} values, {count} needed")
    return values[:count]


def _chunks(items: Sequence[Any], size: int) -> list[list[Any]]:
    if size <= 0:
        raise ValueError(f"invalid tensor dimension: {size}")
    return [list(items[start:start + size]) for start in range(0, len(items), size)]


@dataclass
class _QuantizedTensor:
    dtype: ElementType
    buffer: Union[Buffer2D, Buffer4D]
    shape: list[int]
    scale: list[float]
    zero_point: list[int]

    _kind: ClassVar[str] = ""

    @classmethod
    def _quantization(cls, tensor: TensorInfo) -> tuple[ElementType, list[float], list[int]]:
        dtype = ElementType.from_tflite(tensor.type_code)
        return dtype, list(tensor.scale), [dtype._cast(z) for z in tensor.zero_point]

    def _render_type(self) -> str:
        dims = ", ".join(f"{dim}usize" for dim in self.shape)
        return f"microflow::tensor::{self._kind}<{self.dtype.value}, {dims}, {len(self.scale)}usize>"

    def _render_new(self) -> str:
        return (
            f"microflow::tensor::{self._kind}::new("
            f"{self.buffer.to_tokens()}, "
            f"{_array(self.scale, 'f32')}, "
            f"{_array(self.zero_point, self.dtype.value)})"
        )


@dataclass
class Tensor2D(_QuantizedTensor):
    """A two-dimensional quantized tensor."""

    buffer: Buffer2D

    _kind: ClassVar[str] = "Tensor2D"

    @classmethod
    def from_empty_tensor(cls, tensor: TensorInfo) -> Tensor2D:
        """Build a tensor without data; a one-dimensional shape gains a leading 1."""
        dtype, scale, zero_point = cls._quantization(tensor)
        shape = list(tensor.shape)
        if len(shape) == 1:
            shape.insert(0, 1)
        return cls(dtype, Buffer2D(dtype.value), shape, scale, zero_point)

    @classmethod
    def from_buffered_tensor(cls, tensor: TensorInfo, buffers: Sequence[bytes]) -> Tensor2D:
        """Build a tensor from its buffer, stored transposed with the shape swapped."""
        result = cls.from_empty_tensor(tensor)
        rows, cols = result.shape[1], result.shape[0]
        values = _take(result.dtype.decode(buffers[tensor.buffer]), rows * cols)
        columns = _chunks(values, rows)
        result.buffer = Buffer2D(result.dtype.value, [list(row) for row in zip(*columns)])
        result.shape.reverse()
        return result

    def type_tokens(self) -> str:
        """Render the tensor's type with its element type, shape and quantization count."""
        return self._render_type()

    def to_tokens(self) -> str:
        """Render a constructor call holding the buffer and quantization parameters."""
        return self._render_new()


@dataclass
class Tensor4D(_QuantizedTensor):
    """A four-dimensional quantized tensor: batches of matrices of channel vectors."""

    buffer: Buffer4D

    _kind: ClassVar[str] = "Tensor4D"

    @classmethod
    def from_empty_tensor(cls, tensor: TensorInfo) -> Tensor4D:
        """Build a tensor without data."""
        dtype, scale, zero_point = cls._quantization(tensor)
        return cls(dtype, Buffer4D(dtype.value), list(tensor.shape), scale, zero_point)

    @classmethod
    def from_buffered_tensor(cls, tensor: TensorInfo, buffers: Sequence[bytes]) -> Tensor4D:
        """Build a tensor from its row-major buffer."""
        result = cls.from_empty_tensor(tensor)
        if len(result.shape) != 4:
            raise ValueError(f"expected a four-dimensional shape, got {result.shape}")
        batches, rows, cols, channels = result.shape
        values = _take(
            result.dtype.decode(buffers[tensor.buffer]), batches * rows * cols * channels
        )
        elements = _chunks(values, channels)
        result.buffer = Buffer4D(
            result.dtype.value, _chunks(_chunks(elements, cols), rows)
        )
        return result

    def type_tokens(self) -> str:
        """Render the tensor's type with its element type, shape and quantization count."""
        return self._render_type()

    def to_tokens(self) -> str:
        """Render a constructor call holding the buffer and quantization parameters."""
        return self._render_new()