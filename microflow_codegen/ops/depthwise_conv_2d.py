"""Depthwise two-dimensional convolution layers of a model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from microflow_codegen.activation import FusedActivation
from microflow_codegen.buffer import Buffer2D
from microflow_codegen.model import OperatorInfo, TensorInfo
from microflow_codegen.ops.average_pool_2d import (
    _load_operands,
    _require_quantized,
    _window_options,
)
from microflow_codegen.ops.conv_2d import _kernel_constants, _render_kernel_layer
from microflow_codegen.tensor import Padding, Tensor2D, Tensor4D


def preprocess(
    input: Tensor4D, weights: Tensor4D, biases: Tensor2D, output: Tensor4D
) -> tuple[Buffer2D, Buffer2D]:
    """Compute the per-channel bias and scale constants folded into the layer."""
    if len(weights.shape) != 4:
        raise ValueError(f"expected four-dimensional weights, got shape {weights.shape}")
    return _kernel_constants(input, weights, biases, output, weights.shape[3], "channels")


@dataclass
class DepthwiseConv2D:
    """A depthwise two-dimensional convolution layer with constant weights."""

    weights: Tensor4D
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
    ) -> DepthwiseConv2D:
        """Build the layer from a model operator, the model tensors and buffers."""
        input, weights, biases, output = _load_operands(
            operator, tensors, buffers, Tensor4D, "depthwise convolution", "weights"
        )
        fused_activation, view_padding, strides = _window_options(operator.options)
        return cls(
            weights=weights,
            output=output,
            fused_activation=fused_activation,
            view_padding=view_padding,
            strides=strides,
            constants=preprocess(input, weights, biases, output),
            index=index,
        )

    def to_tokens(self) -> str:
        """Render the weights constant and the statement applying the convolution."""
        return _render_kernel_layer(
            "depthwise_conv_2d",
            "DepthwiseConv2DOptions",
            f"weights_{self.index}",
            self.weights,
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
) -> DepthwiseConv2D:
    """Build a depthwise convolution layer, checking that its input is quantized."""
    _require_quantized(operator, tensors, "depthwise convolution")
    return DepthwiseConv2D.from_operator(operator, tensors, buffers, index)