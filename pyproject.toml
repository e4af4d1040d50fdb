[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mtensor"
version = "2.0.0"
description = "Small CPU tensor library on NumPy: strided tensors, element-wise math, activations, joining, matmul and normalization with gradient bookkeeping."
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["tensor", "autograd", "neural-network", "numpy", "normalization", "matmul"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest", "numpy"]

[tool.hatch.build.targets.wheel]
packages = ["mtensor"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
