"""Average pooling layers of a model, and the rendering helpers shared by all layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from microflow_codegen.activation import FusedActivation
from microflow_codegen.buffer import _array, _literal, _to_f32
from microflow_codegen.model import OperatorInfo, TensorInfo
from microflow_codegen.tensor import ElementType, Padding, Tensor2D, Tensor4D

_QUANTIZED_TYPES = (ElementType.INT8, ElementType.UINT8)


def _usize_list(values: Sequence[int]) -> str:
    return ", ".join(f"{value}usize" for value in values)


def _let_input(kind: str, shape: Sequence[int]) -> str:
    """Render the start of a statement rebinding ``input`` to a tensor of ``shape``."""
    return f"let input: microflow::tensor::{kind}<_, {_usize_list(shape)}, 1usize> = "


def _quantization_arrays(tensor: Tensor2D | Tensor4D) -> str:
    """Render the scale and zero-point arrays of a tensor."""
    return f"{_array(tensor.scale, 'f32')}, {_array(tensor.zero_point, tensor.dtype.value)}"


def _require_quantized(
    operator: OperatorInfo, tensors: Sequence[TensorInfo], what: str
) -> None:
    """Raise unless the operator's first input is an 8-bit quantized tensor."""
    if not operator.inputs:
        raise ValueError(f"{what} operator has no input")
    dtype = ElementType.from_tflite(tensors[operator.inputs[0]].type_code)
    if dtype not in _QUANTIZED_TYPES:
        raise NotImplementedError(f"unsupported {what} input type: {dtype.value}")


def _fused_activation(options: Mapping[str, Any]) -> FusedActivation:
    return FusedActivation.from_tflite(options.get("fused_activation_function", 0))


def _window_options(
    options: Mapping[str, Any],
) -> tuple[FusedActivation, Padding, tuple[int, int]]:
    """Read the activation, padding and strides of a windowed operator."""
    return (
        _fused_activation(options),
        Padding.from_tflite(options.get("padding", 0)),
        (int(options.get("stride_h", 0)), int(options.get("stride_w", 0))),
    )


def _options_tokens(
    name: str,
    fused_activation: FusedActivation,
    view_padding: Optional[Padding] = None,
    strides: Optional[tuple[int, int]] = None,
) -> str:
    """Render an options struct literal of the runtime library."""
    fields = [f"fused_activation: {fused_activation.to_tokens()}"]
    if view_padding is not None:
        fields.append(f"view_padding: {view_padding.to_tokens()}")
    if strides is not None:
        fields.append(f"strides: ({strides[0]}usize, {strides[1]}usize)")
    return f"microflow::ops::{name} {{ " + "".join(f"{field}, " for field in fields) + "}"


def _load_operands(
    operator: OperatorInfo,
    tensors: Sequence[TensorInfo],
    buffers: Sequence[bytes],
    tensor_cls: type,
    what: str,
    kernel: str,
) -> tuple[Any, Any, Tensor2D, Any]:
    """Load the input, constant kernel, biases and output of a weighted operator."""
    if len(operator.inputs) < 3 or not operator.outputs:
        raise ValueError(f"{what} operator needs input, {kernel}, biases and output")
    return (
        tensor_cls.from_empty_tensor(tensors[operator.inputs[0]]),
        tensor_cls.from_buffered_tensor(tensors[operator.inputs[1]], buffers),
        Tensor2D.from_buffered_tensor(tensors[operator.inputs[2]], buffers),
        tensor_cls.from_empty_tensor(tensors[operator.outputs[0]]),
    )


def preprocess(input: Tensor4D, output: Tensor4D) -> tuple[float, float]:
    """Compute the rescaling factor and offset folded into the pooling layer."""
    in_scale = _to_f32(input.scale[0])
    out_scale = _to_f32(output.scale[0])
    ratio = _to_f32(in_scale / out_scale)
    shifted = _to_f32(_to_f32(in_scale * _to_f32(float(input.zero_point[0]))) / out_scale)
    offset = _to_f32(_to_f32(float(output.zero_point[0])) - shifted)
    return ratio, offset


@dataclass
class AveragePool2D:
    """A two-dimensional average pooling layer."""

    filter_shape: tuple[int, int]
    output: Tensor4D
    fused_activation: FusedActivation
    view_padding: Padding
    strides: tuple[int, int]
    constants: tuple[float, float]

    @classmethod
    def from_operator(
        cls, operator: OperatorInfo, tensors: Sequence[TensorInfo]
    ) -> AveragePool2D:
        """Build the layer from a model operator and the model tensors."""
        if not operator.inputs or not operator.outputs:
            raise ValueError("average pooling operator needs an input and an output")
        input = Tensor4D.from_empty_tensor(tensors[operator.inputs[0]])
        output = Tensor4D.from_empty_tensor(tensors[operator.outputs[0]])
        options = operator.options
        fused_activation, view_padding, strides = _window_options(options)
        return cls(
            filter_shape=(
                int(options.get("filter_height", 0)),
                int(options.get("filter_width", 0)),
            ),
            output=output,
            fused_activation=fused_activation,
            view_padding=view_padding,
            strides=strides,
            constants=preprocess(input, output),
        )

    def to_tokens(self) -> str:
        """Render the layer as a statement rebinding ``input`` to the pooled tensor."""
        filter_h, filter_w = self.filter_shape
        constant_0, constant_1 = self.constants
        options = _options_tokens(
            "AveragePool2DOptions", self.fused_activation, self.view_padding, self.strides
        )
        return (
            f"{_let_input('Tensor4D', self.output.shape)}"
            "microflow::ops::average_pool_2d(input, "
            f"(nalgebra::Const::<{filter_h}usize>, nalgebra::Const::<{filter_w}usize>), "
            f"{_quantization_arrays(self.output)}, {options}, "
            f"({_literal(constant_0, 'f32')}, {_literal(constant_1, 'f32')}));"
        )


def parse(operator: OperatorInfo, tensors: Sequence[TensorInfo]) -> AveragePool2D:
    """Build an average pooling layer, checking that its input is quantized."""
    _require_quantized(operator, tensors, "average pooling")
    return AveragePool2D.from_operator(operator, tensors)