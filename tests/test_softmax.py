import pytest

from microflow_codegen.buffer import Buffer2D
from microflow_codegen.model import OperatorInfo, TensorInfo
from microflow_codegen.ops.softmax import Softmax, parse
from microflow_codegen.tensor import ElementType, Tensor2D


def _setup():
    return Softmax(
        output=Tensor2D(ElementType.INT8, Buffer2D("i8"), [2, 3], [0.3], [4])
    )


def test_softmax_to_tokens():
    assert _setup().to_tokens() == (
        "let input: microflow::tensor::Tensor2D<_, 2usize, 3usize, 1usize> = "
        "microflow::ops::softmax(input, [0.3f32], [4i8]);"
    )


def test_parse_pads_one_dimensional_output():
    tensors = [
        TensorInfo((1, 3), 9, scale=(0.5,), zero_point=(1,)),
        TensorInfo((3,), 9, scale=(0.25,), zero_point=(-128,)),
    ]
    layer = parse(OperatorInfo(0, (0,), (1,)), tensors)
    assert layer.output.shape == [1, 3]
    assert layer.output.scale == [0.25]
    assert layer.output.zero_point == [-128]


def test_parse_rejects_float_input():
    tensors = [TensorInfo((1, 3), 0), TensorInfo((1, 3), 0)]
    with pytest.raises(NotImplementedError):
        parse(OperatorInfo(0, (0,), (1,)), tensors)


def test_parse_rejects_int32_input():
    tensors = [TensorInfo((1, 3), 2), TensorInfo((1, 3), 2)]
    with pytest.raises(NotImplementedError):
        parse(OperatorInfo(0, (0,), (1,)), tensors)