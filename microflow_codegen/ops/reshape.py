"""Reshape layers of a model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from microflow_codegen.model import OperatorInfo, TensorInfo

_TENSOR_KINDS = {2: "Tensor2D", 4: "Tensor4D"}


@dataclass
class Reshape:
    """A layer that reinterprets its input with a new shape."""

    output_shape: list[int] = field(default_factory=list)

    @classmethod
    def from_operator(
        cls, operator: OperatorInfo, tensors: Sequence[TensorInfo]
    ) -> Reshape:
        """Build the layer from a model operator and the model tensors."""
        if not operator.outputs:
            raise ValueError("reshape operator has no output")
        return cls(output_shape=list(tensors[operator.outputs[0]].shape))

    def to_tokens(self) -> str:
        """Render the layer as a statement rebinding ``input`` to the reshaped tensor."""
        try:
            kind = _TENSOR_KINDS[len(self.output_shape)]
        except KeyError:
            raise NotImplementedError(
                f"unsupported reshape output rank: {len(self.output_shape)}"
            ) from None
        dims = ", ".join(f"{dim}usize" for dim in self.output_shape)
        return (
            f"let input: microflow::tensor::{kind}<_, {dims}, 1usize> = "
            "microflow::ops::reshape(input);"
        )


def parse(operator: OperatorInfo, tensors: Sequence[TensorInfo]) -> Reshape:
    """Build a reshape layer from a model operator."""
    return Reshape.from_operator(operator, tensors)