"""Fused activation functions attached to model operators."""

from __future__ import annotations

from enum import Enum


class FusedActivation(Enum):
    """Activation fused into an operator, rendered as a runtime enum variant."""

    NONE = "None"
    RELU = "Relu"
    RELU6 = "Relu6"

    @classmethod
    def from_tflite(cls, code: int) -> FusedActivation:
        """Map a TensorFlow Lite ``ActivationFunctionType`` code to a variant."""
        try:
            return _TFLITE_CODES[code]
        except KeyError:
            raise NotImplementedError(
                f"unsupported fused activation function: {code}"
            ) from None

    def to_tokens(self) -> str:
        """Render the variant as a path expression."""
        return f"microflow::activation::FusedActivation::{self.value}"


_TFLITE_CODES = {
    0: FusedActivation.NONE,
    1: FusedActivation.RELU,
    3: FusedActivation.RELU6,
}