"""In-memory description of a TensorFlow Lite model graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class TensorInfo:
    """A tensor of the graph: shape, element type code, buffer index and quantization."""

    shape: tuple[int, ...]
    type_code: int
    buffer: int = 0
    scale: tuple[float, ...] = ()
    zero_point: tuple[int, ...] = ()
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", tuple(int(dim) for dim in self.shape))
        object.__setattr__(self, "scale", tuple(float(s) for s in self.scale))
        object.__setattr__(self, "zero_point", tuple(int(z) for z in self.zero_point))


@dataclass(frozen=True)
class OperatorInfo:
    """An operator of the graph.

    ``options`` holds the builtin options by their TensorFlow Lite field names,
    such as ``padding``, ``stride_h``, ``stride_w``, ``filter_height``,
    ``filter_width`` and ``fused_activation_function``.
    """

    opcode_index: int
    inputs: tuple[int, ...]
    outputs: tuple[int, ...]
    options: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))
        object.__setattr__(self, "options", dict(self.options))


@dataclass(frozen=True)
class ModelInfo:
    """The first subgraph of a model together with its buffers and operator codes."""

    tensors: tuple[TensorInfo, ...] = ()
    buffers: tuple[bytes, ...] = ()
    operators: tuple[OperatorInfo, ...] = ()
    operator_codes: tuple[int, ...] = ()
    inputs: tuple[int, ...] = ()
    outputs: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tensors", tuple(self.tensors))
        object.__setattr__(self, "buffers", tuple(bytes(b) for b in self.buffers))
        object.__setattr__(self, "operators", tuple(self.operators))
        object.__setattr__(self, "operator_codes", tuple(self.operator_codes))
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "outputs", tuple(self.outputs))

    def _tensor_at(self, indices: tuple[int, ...], role: str) -> TensorInfo:
        if not indices:
            raise ValueError(f"model has no {role} tensor")
        index = indices[0]
        if not 0 <= index < len(self.tensors):
            raise ValueError(f"{role} tensor index {index} is out of range")
        return self.tensors[index]

    def input_tensor(self) -> TensorInfo:
        """The first input tensor of the graph."""
        return self._tensor_at(self.inputs, "input")

    def output_tensor(self) -> TensorInfo:
        """The first output tensor of the graph."""
        return self._tensor_at(self.outputs, "output")