"""CPU tensor operations with gradient bookkeeping, built on NumPy."""

__version__ = "2.0.0"
__all__ = [
    "memory",
    "joining",
    "matmul",
    "eltwise_math",
    "activations",
    "normalization",
]