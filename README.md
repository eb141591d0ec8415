# microflow_codegen

`microflow_codegen` turns the graph of a quantized TensorFlow Lite model into
the source text of an allocation-free inference routine. Each supported
operator is read from a model description, its constant preprocessing terms
(bias, scale and zero-point corrections) are computed ahead of time in
single-precision arithmetic, and the layer is emitted as a statement that
calls the runtime's operator functions (`microflow::ops::...`).

The package has no dependencies outside the standard library.

## What it does not do

- It does not read `.tflite` files. The model graph is described in Python
  with the dataclasses in `microflow_codegen.model`; decoding a flatbuffer
  into those objects is left to the caller.
- It does not run inference. It only produces source text; the runtime that
  the generated code calls is not part of this package.
- It has no command-line interface and writes no files.

## Describing a model

`microflow_codegen.model` holds three frozen dataclasses:

- `TensorInfo(shape, type_code, buffer=0, scale=(), zero_point=(), name="")`
- `OperatorInfo(opcode_index, inputs, outputs, options={})` — `options` holds
  builtin options by their TensorFlow Lite field names: `padding`, `stride_h`,
  `stride_w`, `filter_height`, `filter_width`, `fused_activation_function`.
- `ModelInfo(tensors, buffers, operators, operator_codes, inputs, outputs)` —
  the first subgraph of a model. `input_tensor()` and `output_tensor()` return
  the first input and output tensor, raising `ValueError` if there is none.

Codes are the TensorFlow Lite numeric values:

| Kind | Supported codes |
| --- | --- |
| Tensor type (`ElementType.from_tflite`) | `9` INT8, `3` UINT8, `2` INT32 (biases) |
| Fused activation (`FusedActivation.from_tflite`) | `0` NONE, `1` RELU, `3` RELU6 |
| Padding (`Padding.from_tflite`) | `0` SAME, `1` VALID |
| Operator (`operator_codes`) | `1` AVERAGE_POOL_2D, `3` CONV_2D, `4` DEPTHWISE_CONV_2D, `9` FULLY_CONNECTED, `22` RESHAPE, `25` SOFTMAX |

Operator inputs must be INT8 or UINT8.

## Generating code

```python
from microflow_codegen.codegen import generate_layers, generate_model
from microflow_codegen.model import ModelInfo, OperatorInfo, TensorInfo

model = ModelInfo(
    tensors=(
        TensorInfo(shape=(1, 1), type_code=9, scale=(0.02,), zero_point=(-128,)),
        TensorInfo(shape=(1, 1), type_code=9, buffer=1, scale=(0.01,), zero_point=(0,)),
        TensorInfo(shape=(1,), type_code=2, buffer=2, scale=(0.0002,), zero_point=(0,)),
        TensorInfo(shape=(1, 1), type_code=9, scale=(0.01,), zero_point=(-5,)),
    ),
    buffers=(b"", bytes([5]), (100).to_bytes(4, "little", signed=True)),
    operators=(
        OperatorInfo(
            opcode_index=0,
            inputs=(0, 1, 2),
            outputs=(3,),
            options={"fused_activation_function": 1},
        ),
    ),
    operator_codes=(9,),
    inputs=(0,),
    outputs=(3,),
)

print(generate_model(model, "Sine"))  # struct with predict / predict_quantized
print(generate_layers(model))         # only the operator statements
```

`generate_model(model, name)` renders a struct named `name` with `predict`
(takes float input and quantizes it), `predict_quantized` (takes already
quantized input) and a private `predict_inner` holding the layers. Model
input and output tensors must be INT8 or UINT8 with rank 1, 2 or 4; a rank-1
shape gains a leading `1`.

`generate_layers(model)` renders every operator in order, joined by spaces.
An operator code with no generator raises `UnsupportedOperatorError` (a
`ValueError`); unsupported tensor types, activations and ranks raise
`NotImplementedError`; malformed tensors, buffers and options raise
`ValueError`.

## Building blocks

Each part can be used on its own; every one renders itself with `to_tokens()`.

```python
from microflow_codegen.activation import FusedActivation
from microflow_codegen.buffer import Buffer2D, Buffer4D
from microflow_codegen.tensor import Padding

Buffer2D("i8", [[1, 2, 3], [4, 5, 6]]).to_tokens()
# 'nalgebra::matrix![1i8, 2i8, 3i8; 4i8, 5i8, 6i8]'
FusedActivation.RELU.to_tokens()
# 'microflow::activation::FusedActivation::Relu'
Padding.VALID.to_tokens()
# 'microflow::tensor::TensorViewPadding::Valid'
```

- `microflow_codegen.buffer`: `Buffer2D(dtype, data=None)` and
  `Buffer4D(dtype, data=None)`; an empty buffer raises `ValueError` when used.
  Floats are rendered as the shortest text that reads back as the same
  single-precision value.
- `microflow_codegen.tensor`: `ElementType` (with `decode(data)` for
  little-endian bytes), `Padding`, and the quantized tensors `Tensor2D` and
  `Tensor4D`, built with `from_empty_tensor(tensor)` or
  `from_buffered_tensor(tensor, buffers)`, rendering their type with
  `type_tokens()` and a constructor call with `to_tokens()`.
- `microflow_codegen.ops`: one module per operator — `average_pool_2d`
  (`AveragePool2D`), `conv_2d` (`Conv2D`), `depthwise_conv_2d`
  (`DepthwiseConv2D`), `fully_connected` (`FullyConnected`), `reshape`
  (`Reshape`) and `softmax` (`Softmax`). Each has a `parse` function and a
  `from_operator` class method; those that precompute constants also expose
  `preprocess`.