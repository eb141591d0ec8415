"""Generation of inference code for a whole model."""

from __future__ import annotations

from typing import Callable

from microflow_codegen.buffer import _literal
from microflow_codegen.model import ModelInfo, OperatorInfo, TensorInfo
from microflow_codegen.ops import (
    average_pool_2d,
    conv_2d,
    depthwise_conv_2d,
    fully_connected,
    reshape,
    softmax,
)
from microflow_codegen.tensor import ElementType

_FULLY_CONNECTED = 9
_DEPTHWISE_CONV_2D = 4
_CONV_2D = 3
_AVERAGE_POOL_2D = 1
_SOFTMAX = 25
_RESHAPE = 22

_QUANTIZED_TYPES = (ElementType.INT8, ElementType.UINT8)
_KINDS = {2: ("Tensor2D", "Buffer2D"), 4: ("Tensor4D", "Buffer4D")}


class UnsupportedOperatorError(ValueError):
    """Raised when the model holds an operator with no code generator."""


_Builder = Callable[[OperatorInfo, ModelInfo, int], str]

_BUILDERS: dict[int, _Builder] = {
    _FULLY_CONNECTED: lambda op, m, i: fully_connected.parse(
        op, m.tensors, m.buffers, i
    ).to_tokens(),
    _DEPTHWISE_CONV_2D: lambda op, m, i: depthwise_conv_2d.parse(
        op, m.tensors, m.buffers, i
    ).to_tokens(),
    _CONV_2D: lambda op, m, i: conv_2d.parse(op, m.tensors, m.buffers, i).to_tokens(),
    _AVERAGE_POOL_2D: lambda op, m, i: average_pool_2d.parse(op, m.tensors).to_tokens(),
    _SOFTMAX: lambda op, m, i: softmax.parse(op, m.tensors).to_tokens(),
    _RESHAPE: lambda op, m, i: reshape.parse(op, m.tensors).to_tokens(),
}


def generate_layers(model: ModelInfo) -> str:
    """Render every operator of the model, in order, as a sequence of statements."""
    layers = []
    for index, operator in enumerate(model.operators):
        code = model.operator_codes[operator.opcode_index]
        builder = _BUILDERS.get(code)
        if builder is None:
            raise UnsupportedOperatorError(f"unsupported operator: {code}")
        layers.append(builder(operator, model, index))
    return " ".join(layers)


def _signature(tensor: TensorInfo) -> tuple[ElementType, list[int], str, str]:
    dtype = ElementType.from_tflite(tensor.type_code)
    if dtype not in _QUANTIZED_TYPES:
        raise NotImplementedError(f"unsupported model tensor type: {dtype.value}")
    shape = list(tensor.shape)
    if len(shape) == 1:
        shape.insert(0, 1)
    try:
        tensor_kind, buffer_kind = _KINDS[len(shape)]
    except KeyError:
        raise NotImplementedError(f"unsupported model tensor rank: {len(shape)}") from None
    return dtype, shape, tensor_kind, buffer_kind


def generate_model(model: ModelInfo, name: str) -> str:
    """Render a struct named ``name`` with prediction functions for the model."""
    input = model.input_tensor()
    in_type, in_shape, in_tensor, in_buffer = _signature(input)
    out_type, out_shape, out_tensor, out_buffer = _signature(model.output_tensor())

    in_dims = ", ".join(f"{dim}usize" for dim in in_shape)
    out_dims = ", ".join(f"{dim}usize" for dim in out_shape)
    scale = ", ".join(_literal(s, "f32") for s in input.scale)
    zero_point = ", ".join(
        _literal(in_type._cast(z), in_type.value) for z in input.zero_point
    )
    layers = generate_layers(model)
    quant = f"[{scale}], [{zero_point}]"
    out_buffer_type = f"microflow::buffer::{out_buffer}<f32, {out_dims}>"

    return "\n".join(
        [
            f"struct {name};",
            f"impl {name} {{",
            f"    pub fn predict(input: microflow::buffer::{in_buffer}<f32, {in_dims}>)"
            f" -> {out_buffer_type} {{",
            f"        let input = microflow::tensor::{in_tensor}::quantize(input, {quant});",
            "        Self::predict_inner(input).dequantize()",
            "    }",
            f"    pub fn predict_quantized(input: microflow::buffer::{in_buffer}"
            f"<{in_type.value}, {in_dims}>) -> {out_buffer_type} {{",
            f"        let input = microflow::tensor::{in_tensor}::new(input, {quant});",
            "        Self::predict_inner(input).dequantize()",
            "    }",
            f"    fn predict_inner(input: microflow::tensor::{in_tensor}"
            f"<{in_type.value}, {in_dims}, 1usize>) -> microflow::tensor::{out_tensor}"
            f"<{out_type.value}, {out_dims}, 1usize> {{",
            f"        {layers}",
            "        input",
            "    }",
            "}",
        ]
    )