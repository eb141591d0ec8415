[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "microflow_codegen"
version = "0.1.0"
description = "Generate inference source code for quantized TensorFlow Lite model graphs"
requires-python = ">=3.10"
dependencies = []
keywords = ["tflite", "quantization", "code generation", "inference", "embedded"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Code Generators",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["microflow_codegen"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
