import struct

import pytest

from microflow_codegen.activation import FusedActivation
from microflow_codegen.buffer import Buffer4D
from microflow_codegen.model import OperatorInfo, TensorInfo
from microflow_codegen.ops.average_pool_2d import AveragePool2D, parse, preprocess
from microflow_codegen.tensor import ElementType, Padding, Tensor4D


def f32(value):
    return struct.unpack("<f", struct.pack("<f", value))[0]


def setup():
    return AveragePool2D(
        filter_shape=(2, 3),
        output=Tensor4D(ElementType.INT8, Buffer4D("i8"), [1, 2, 3, 2], [0.1], [2]),
        fused_activation=FusedActivation.NONE,
        view_padding=Padding.SAME,
        strides=(1, 1),
        constants=(3.0, 4.0),
    )


def model_tensors(type_code=9):
    return [
        TensorInfo(shape=(1, 4, 4, 2), type_code=type_code, scale=(0.5,), zero_point=(6,)),
        TensorInfo(shape=(1, 2, 2, 2), type_code=type_code, scale=(0.1,), zero_point=(2,)),
    ]


def pool_operator():
    return OperatorInfo(
        opcode_index=0,
        inputs=(0,),
        outputs=(1,),
        options={
            "filter_height": 2,
            "filter_width": 3,
            "stride_h": 2,
            "stride_w": 1,
            "padding": 1,
            "fused_activation_function": 1,
        },
    )


def test_average_pool_2d_preprocess():
    layer = setup()
    input = Tensor4D(ElementType.INT8, Buffer4D("i8"), [1, 2, 3, 2], [0.5], [6])
    constants = preprocess(input, layer.output)
    assert constants[0] == 5.0
    assert constants[1] == -28.0


def test_average_pool_2d_to_tokens():
    layer = setup()
    expected = (
        "let input: microflow::tensor::Tensor4D<_, 1usize, 2usize, 3usize, 2usize, 1usize> = "
        "microflow::ops::average_pool_2d(input, "
        "(nalgebra::Const::<2usize>, nalgebra::Const::<3usize>), "
        "[0.1f32], [2i8], "
        "microflow::ops::AveragePool2DOptions { "
        "fused_activation: microflow::activation::FusedActivation::None, "
        "view_padding: microflow::tensor::TensorViewPadding::Same, "
        "strides: (1usize, 1usize), "
        "}, (3f32, 4f32));"
    )
    assert layer.to_tokens() == expected


def test_from_operator_reads_options_and_output():
    layer = AveragePool2D.from_operator(pool_operator(), model_tensors())
    assert layer.filter_shape == (2, 3)
    assert layer.strides == (2, 1)
    assert layer.view_padding is Padding.VALID
    assert layer.fused_activation is FusedActivation.RELU
    assert layer.output.shape == [1, 2, 2, 2]
    assert layer.output.scale == [0.1]
    assert layer.output.zero_point == [2]
    assert layer.constants == (5.0, -28.0)


def test_parse_accepts_uint8_input():
    layer = parse(pool_operator(), model_tensors(type_code=3))
    assert layer.output.dtype is ElementType.UINT8
    assert "[2u8]" in layer.to_tokens()


def test_parse_rejects_int32_input():
    with pytest.raises(NotImplementedError):
        parse(pool_operator(), model_tensors(type_code=2))


def test_preprocess_rounds_to_single_precision():
    input = Tensor4D(ElementType.INT8, Buffer4D("i8"), [1, 1, 1, 1], [0.3], [0])
    output = Tensor4D(ElementType.INT8, Buffer4D("i8"), [1, 1, 1, 1], [0.7], [0])
    ratio, offset = preprocess(input, output)
    assert ratio == f32(f32(0.3) / f32(0.7))
    assert offset == 0.0