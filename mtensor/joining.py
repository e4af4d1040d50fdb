"""Concatenation and stacking of tensors."""

from __future__ import annotations

import numpy as np

from .memory import Operation, Tensor, row_major_stride


def _result(op: Operation, operands, data: np.ndarray, dim: int) -> Tensor:
    needing_grad = [t for t in operands if t.requires_grad]
    grad_fn = op._graph_node(needing_grad, dim) if needing_grad else None
    data = np.ascontiguousarray(data, dtype=np.float32)
    return Tensor(
        data.reshape(-1),
        data.shape,
        row_major_stride(data.shape),
        0,
        grad_fn,
        bool(needing_grad),
        True,
    )


class Cat(Operation):
    """Join tensors along an existing dimension."""

    def __init__(self, dim, inc_counter=False):
        if dim < 0:
            raise ValueError("error: Cat() invalide dim was passed")
        super().__init__(inc_counter)
        self.dim = int(dim)

    def forward(self, operands):
        if not operands:
            raise ValueError("error: Cat() needs at least one operand")
        ref_shape = operands[0].shape
        if self.dim >= len(ref_shape):
            raise ValueError("error: Cat() m_dim is out of range of the operands")
        for t in operands:
            if len(t.shape) != len(ref_shape):
                raise ValueError("error: Cat() all operands must have the same shape size")
            if any(
                i != self.dim and a != b
                for i, (a, b) in enumerate(zip(t.shape, ref_shape))
            ):
                raise ValueError(
                    "error: Cat() all operands must have shape of equal dims except m_dim"
                )
        data = np.concatenate([t.numpy() for t in operands], axis=self.dim)
        return _result(self, operands, data, self.dim)


class Stack(Operation):
    """Join equally shaped tensors along a new dimension."""

    def __init__(self, dim, inc_counter=False):
        if dim < 0:
            raise ValueError("error: Stack() invalide dim was passed")
        super().__init__(inc_counter)
        self.dim = int(dim)

    def forward(self, operands):
        if not operands:
            raise ValueError("error: Stack() needs at least one operand")
        ref_shape = operands[0].shape
        if self.dim > len(ref_shape):
            raise ValueError("error: Stack() m_dim is out of range of the operands")
        if any(t.shape != ref_shape for t in operands):
            raise ValueError("error: Stack() all operands must have the same shape")
        data = np.stack([t.numpy() for t in operands], axis=self.dim)
        return _result(self, operands, data, self.dim)