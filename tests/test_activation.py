import pytest

from microflow_codegen.activation import FusedActivation


def test_fused_activation_to_tokens():
    activation = FusedActivation.from_tflite(1)
    assert activation.to_tokens() == "microflow::activation::FusedActivation::Relu"


@pytest.mark.parametrize(
    "code, expected",
    [
        (0, FusedActivation.NONE),
        (1, FusedActivation.RELU),
        (3, FusedActivation.RELU6),
    ],
)
def test_from_tflite_maps_supported_codes(code, expected):
    assert FusedActivation.from_tflite(code) is expected


def test_none_and_relu6_tokens():
    assert FusedActivation.NONE.to_tokens() == "microflow::activation::FusedActivation::None"
    assert FusedActivation.RELU6.to_tokens() == "microflow::activation::FusedActivation::Relu6"


@pytest.mark.parametrize("code", [2, 4, 5, 42])
def test_from_tflite_rejects_unsupported_codes(code):
    with pytest.raises(NotImplementedError):
        FusedActivation.from_tflite(code)