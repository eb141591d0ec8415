"""Softmax layers of a model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from microflow_codegen.model import OperatorInfo, TensorInfo
from microflow_codegen.ops.average_pool_2d import (
    _let_input,
    _quantization_arrays,
    _require_quantized,
)
from microflow_codegen.tensor import Tensor2D


@dataclass
class Softmax:
    """A softmax layer."""

    output: Tensor2D

    @classmethod
    def from_operator(
        cls, operator: OperatorInfo, tensors: Sequence[TensorInfo]
    ) -> Softmax:
        """Build the layer from a model operator and the model tensors."""
        if not operator.outputs:
            raise ValueError("softmax operator has no output")
        return cls(output=Tensor2D.from_empty_tensor(tensors[operator.outputs[0]]))

    def to_tokens(self) -> str:
        """Render the layer as a statement rebinding ``input`` to the softmax result."""
        return (
            f"{_let_input('Tensor2D', self.output.shape)}"
            f"microflow::ops::softmax(input, {_quantization_arrays(self.output)});"
        )


def parse(operator: OperatorInfo, tensors: Sequence[TensorInfo]) -> Softmax:
    """Build a softmax layer, checking that its input is quantized."""
    _require_quantized(operator, tensors, "softmax")
    return Softmax.from_operator(operator, tensors)