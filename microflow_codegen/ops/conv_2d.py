"""Two-dimensional convolution layers of a model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, TypeVar

from microflow_codegen.activation import FusedActivation
from microflow_codegen.buffer import Buffer2D, _to_f32
from microflow_codegen.model import OperatorInfo, TensorInfo
from microflow_codegen.ops.average_pool_2d import (
    _let_input,
    _load_operands,
    _options_tokens,
    _quantization_arrays,
    _require_quantized,
    _window_options,
)
from microflow_codegen.tensor import Padding, Tensor2D, Tensor4D

_T = TypeVar("_T")


def _at_or_first(values: Sequence[_T], index: int) -> _T:
    return values[index] if index < len(values) else values[0]


def _kernel_constants(
    input: Tensor4D,
    kernel: Tensor4D,
    biases: Tensor2D,
    output: Tensor4D,
    count: int,
    unit: str,
) -> tuple[Buffer2D, Buffer2D]:
    """Compute ``count`` bias constants and one scale constant per kernel scale."""
    out_scale = _to_f32(output.scale[0])
    bias_values = [value for column in zip(*biases.buffer.matrix) for value in column]
    if len(bias_values) < count:
        raise ValueError(f"{len(bias_values)} biases given for {count} {unit}")

    def bias_constant(index: int) -> float:
        scale = _to_f32(_at_or_first(biases.scale, index))
        zero_point = _at_or_first(biases.zero_point, index)
        centred = _to_f32(float(bias_values[index] - zero_point))
        return _to_f32(_to_f32(scale / out_scale) * centred)

    in_scale = _to_f32(input.scale[0])
    bias_constants = Buffer2D("f32", [[bias_constant(index)] for index in range(count)])
    scale_constants = Buffer2D(
        "f32",
        [[_to_f32(_to_f32(in_scale * _to_f32(scale)) / out_scale)] for scale in kernel.scale],
    )
    return bias_constants, scale_constants


def _render_kernel_layer(
    function: str,
    options_name: str,
    ident: str,
    kernel: Tensor4D,
    output: Tensor4D,
    fused_activation: FusedActivation,
    view_padding: Padding,
    strides: tuple[int, int],
    constants: tuple[Buffer2D, Buffer2D],
) -> str:
    """Render a kernel constant and the statement applying a convolution to it."""
    constant_0, constant_1 = constants
    options = _options_tokens(options_name, fused_activation, view_padding, strides)
    return (
        f"const {ident}: {kernel.type_tokens()} = {kernel.to_tokens()}; "
        f"{_let_input('Tensor4D', output.shape)}"
        f"microflow::ops::{function}(input, &{ident}, "
        f"{_quantization_arrays(output)}, {options}, "
        f"({constant_0.to_tokens()}, {constant_1.to_tokens()}));"
    )


def preprocess(
    input: Tensor4D, filters: Tensor4D, biases: Tensor2D, output: Tensor4D
) -> tuple[Buffer2D, Buffer2D]:
    """Compute the per-filter bias and scale constants folded into the layer."""
    return _kernel_constants(input, filters, biases, output, filters.shape[0], "filters")


@dataclass
class Conv2D:
    """A two-dimensional convolution layer with constant filters."""

    filters: Tensor4D
    output: Tensor4D
    fused_activation: FusedActivation
    view_padding: Padding
    strides: tuple[int, int]
    constants: tuple[Buffer2D, Buffer2D]
    index: int

    @classmethod
    def from_operator(
        cls,
        operator: OperatorInfo,
        tensors: Sequence[TensorInfo],
        buffers: Sequence[bytes],
        index: int,
    ) -> Conv2D:
        """Build the layer from a model operator, the model tensors and buffers."""
        input, filters, biases, output = _load_operands(
            operator, tensors, buffers, Tensor4D, "convolution", "filters"
        )
        fused_activation, view_padding, strides = _window_options(operator.options)
        return cls(
            filters=filters,
            output=output,
            fused_activation=fused_activation,
            view_padding=view_padding,
            strides=strides,
            constants=preprocess(input, filters, biases, output),
            index=index,
        )

    def to_tokens(self) -> str:
        """Render the filters constant and the statement applying the convolution."""
        return _render_kernel_layer(
            "conv_2d",
            "Conv2DOptions",
            f"filters_{self.index}",
            self.filters,
            self.output,
            self.fused_activation,
            self.view_padding,
            self.strides,
            self.constants,
        )


def parse(
    operator: OperatorInfo,
    tensors: Sequence[TensorInfo],
    buffers: Sequence[bytes],
    index: int,
) -> Conv2D:
    """Build a convolution layer, checking that its input is quantized."""
    _require_quantized(operator, tensors, "convolution")
    return Conv2D.from_operator(operator, tensors, buffers, index)