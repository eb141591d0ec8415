"""Fully connected layers of a model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from microflow_codegen.activation import FusedActivation
from microflow_codegen.buffer import Buffer2D, _literal, _to_f32
from microflow_codegen.model import OperatorInfo, TensorInfo
from microflow_codegen.ops.average_pool_2d import (
    _fused_activation,
    _let_input,
    _load_operands,
    _options_tokens,
    _require_quantized,
)
from microflow_codegen.tensor import ElementType, Tensor2D

_i32 = ElementType.INT32._cast


def preprocess(
    input: Tensor2D, weights: Tensor2D, biases: Tensor2D, output: Tensor2D
) -> tuple[Buffer2D, float, Buffer2D, int]:
    """Compute the bias, scale and zero-point constants folded into the layer."""
    out_scale = _to_f32(output.scale[0])
    bias_ratio = _to_f32(_to_f32(biases.scale[0]) / out_scale)
    bias_zero_point = biases.zero_point[0]
    bias_constants = Buffer2D(
        "f32",
        [
            [_to_f32(bias_ratio * _to_f32(float(_i32(value - bias_zero_point)))) for value in row]
            for row in biases.buffer.matrix
        ],
    )
    scale = _to_f32(
        _to_f32(_to_f32(input.scale[0]) * _to_f32(weights.scale[0])) / out_scale
    )
    input_zero_point = int(input.zero_point[0])
    column_sums = [_i32(sum(column)) for column in zip(*weights.buffer.matrix)]
    weight_sums = Buffer2D("i32", [[_i32(total * input_zero_point) for total in column_sums]])
    zero_point_product = _i32(
        int(input.shape[1]) * input_zero_point * int(weights.zero_point[0])
    )
    return bias_constants, scale, weight_sums, zero_point_product


@dataclass
class FullyConnected:
    """A fully connected layer with constant weights."""

    weights: Tensor2D
    output: Tensor2D
    fused_activation: FusedActivation
    constants: tuple[Buffer2D, float, Buffer2D, int]
    index: int
    reshape: bool

    @classmethod
    def from_operator(
        cls,
        operator: OperatorInfo,
        tensors: Sequence[TensorInfo],
        buffers: Sequence[bytes],
        index: int,
    ) -> FullyConnected:
        """Build the layer from a model operator, the model tensors and buffers."""
        input, weights, biases, output = _load_operands(
            operator, tensors, buffers, Tensor2D, "fully connected", "weights"
        )
        return cls(
            weights=weights,
            output=output,
            fused_activation=_fused_activation(operator.options),
            constants=preprocess(input, weights, biases, output),
            index=index,
            reshape=len(input.shape) != 2,
        )

    def to_tokens(self) -> str:
        """Render the weights constant and the statement applying the layer."""
        ident = f"weights_{self.index}"
        argument = "input.into()" if self.reshape else "input"
        constant_0, constant_1, constant_2, constant_3 = self.constants
        options = _options_tokens("FullyConnectedOptions", self.fused_activation)
        return (
            f"const {ident}: {self.weights.type_tokens()} = {self.weights.to_tokens()}; "
            f"{_let_input('Tensor2D', self.output.shape)}"
            f"microflow::ops::fully_connected({argument}, &{ident}, "
            f"[{_literal(self.output.scale[0], 'f32')}], "
            f"[{_literal(self.output.zero_point[0], self.output.dtype.value)}], "
            f"{options}, "
            f"({constant_0.to_tokens()}, {_literal(constant_1, 'f32')}, "
            f"{constant_2.to_tokens()}, {_literal(constant_3, 'i32')}));"
        )


def parse(
    operator: OperatorInfo,
    tensors: Sequence[TensorInfo],
    buffers: Sequence[bytes],
    index: int,
) -> FullyConnected:
    """Build a fully connected layer, checking that its input is quantized."""
    _require_quantized(operator, tensors, "fully connected")
    return FullyConnected.from_operator(operator, tensors, buffers, index)