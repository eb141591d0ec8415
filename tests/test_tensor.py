import struct

import pytest

from microflow_codegen.buffer import Buffer2D, Buffer4D
from microflow_codegen.model import TensorInfo
from microflow_codegen.tensor import ElementType, Padding, Tensor2D, Tensor4D


def setup_2d():
    return Tensor2D(
        dtype=ElementType.INT8,
        buffer=Buffer2D("i8", [[1, 2, 3], [4, 5, 6]]),
        shape=[2, 3],
        scale=[0.7],
        zero_point=[8],
    )


def setup_4d():
    return Tensor4D(
        dtype=ElementType.INT8,
        buffer=Buffer4D(
            "i8",
            [
                [[[9, 10], [11, 12], [13, 14]], [[15, 16], [17, 18], [19, 20]]],
                [[[21, 22], [23, 24], [25, 26]], [[27, 28], [29, 30], [31, 32]]],
            ],
        ),
        shape=[2, 2, 3, 2],
        scale=[0.33, 0.34],
        zero_point=[35, 36],
    )


def test_view_padding_to_tokens():
    padding = Padding.from_tflite(1)
    assert padding.to_tokens() == "microflow::tensor::TensorViewPadding::Valid"


def test_padding_same_and_invalid():
    assert Padding.from_tflite(0) is Padding.SAME
    with pytest.raises(ValueError):
        Padding.from_tflite(2)


def test_tensor_2d_type_tokens():
    assert setup_2d().type_tokens() == "microflow::tensor::Tensor2D<i8, 2usize, 3usize, 1usize>"


def test_tensor_2d_to_tokens():
    tensor = setup_2d()
    buffer = tensor.buffer.to_tokens()
    assert tensor.to_tokens() == f"microflow::tensor::Tensor2D::new({buffer}, [0.7f32], [8i8])"


def test_tensor_4d_type_tokens():
    assert (
        setup_4d().type_tokens()
        == "microflow::tensor::Tensor4D<i8, 2usize, 2usize, 3usize, 2usize, 2usize>"
    )


def test_tensor_4d_to_tokens():
    tensor = setup_4d()
    buffer = tensor.buffer.to_tokens()
    assert (
        tensor.to_tokens()
        == f"microflow::tensor::Tensor4D::new({buffer}, [0.33f32, 0.34f32], [35i8, 36i8])"
    )


def test_element_type_from_tflite():
    assert ElementType.from_tflite(9) is ElementType.INT8
    assert ElementType.from_tflite(3) is ElementType.UINT8
    assert ElementType.from_tflite(2) is ElementType.INT32
    with pytest.raises(NotImplementedError):
        ElementType.from_tflite(0)


def test_decode_signed_and_unsigned_bytes():
    assert ElementType.INT8.decode(bytes([1, 255])) == [1, -1]
    assert ElementType.UINT8.decode(bytes([1, 255])) == [1, 255]


def test_decode_int32_little_endian_ignores_trailing_bytes():
    data = struct.pack("<ii", 1, -1) + b"\x07"
    assert ElementType.INT32.decode(data) == [1, -1]


def test_from_empty_tensor_pads_one_dimensional_shape():
    info = TensorInfo(shape=(3,), type_code=9, scale=(0.5,), zero_point=(200,))
    tensor = Tensor2D.from_empty_tensor(info)
    assert tensor.shape == [1, 3]
    assert tensor.zero_point == [-56]
    assert tensor.buffer.data is None
    assert tensor.dtype is ElementType.INT8


def test_from_buffered_2d_tensor_is_transposed():
    info = TensorInfo(shape=(2, 3), type_code=9, buffer=1, scale=(0.7,), zero_point=(8,))
    tensor = Tensor2D.from_buffered_tensor(info, [b"", bytes([1, 2, 3, 4, 5, 6])])
    assert tensor.shape == [3, 2]
    assert tensor.buffer.matrix == [[1, 4], [2, 5], [3, 6]]


def test_from_buffered_bias_tensor_is_a_column():
    info = TensorInfo(shape=(2,), type_code=2, buffer=0, scale=(0.39, 0.4), zero_point=(41, 42))
    tensor = Tensor2D.from_buffered_tensor(info, [struct.pack("<ii", 37, 38)])
    assert tensor.shape == [2, 1]
    assert tensor.buffer.matrix == [[37], [38]]
    assert tensor.buffer.dtype == "i32"


def test_from_buffered_4d_tensor_matches_layout():
    info = TensorInfo(shape=(2, 2, 3, 2), type_code=9, scale=(0.33, 0.34), zero_point=(35, 36))
    tensor = Tensor4D.from_buffered_tensor(info, [bytes(range(9, 33))])
    assert tensor.buffer == setup_4d().buffer
    assert tensor.to_tokens() == setup_4d().to_tokens()


def test_from_buffered_tensor_with_short_buffer_raises():
    info = TensorInfo(shape=(2, 3), type_code=9, scale=(0.7,), zero_point=(8,))
    with pytest.raises(ValueError):
        Tensor2D.from_buffered_tensor(info, [bytes([1, 2, 3])])


def test_from_buffered_4d_requires_four_dimensions():
    info = TensorInfo(shape=(2, 3), type_code=9, scale=(0.7,), zero_point=(8,))
    with pytest.raises(ValueError):
        Tensor4D.from_buffered_tensor(info, [bytes(6)])


def test_empty_tensor_cannot_be_rendered():
    info = TensorInfo(shape=(1, 2, 3, 2), type_code=3, scale=(0.1,), zero_point=(2,))
    tensor = Tensor4D.from_empty_tensor(info)
    assert tensor.type_tokens() == "microflow::tensor::Tensor4D<u8, 1usize, 2usize, 3usize, 2usize, 1usize>"
    with pytest.raises(ValueError):
        tensor.to_tokens()