"""Source code generation for quantized TensorFlow Lite model graphs."""

__version__ = "0.1.0"