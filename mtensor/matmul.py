"""Batched matrix multiplication with an optional bias."""

from __future__ import annotations

import numpy as np

from .memory import Contiguous, Operation, Tensor, row_major_stride


class Matmul(Operation):
    """Multiply two tensors with broadcast batch dims, optionally adding a bias."""

    def forward(self, operands):
        try:
            return self._forward(operands)
        except (ValueError, IndexError) as exc:
            raise RuntimeError(f"error : Matmul() {exc}") from exc

    def _forward(self, operands):
        if len(operands) not in (2, 3):
            raise ValueError(" invalide operand number be 2 or 3")
        contiguous = Contiguous()
        inputs = [t if t.contiguous else contiguous.forward([t]) for t in operands]
        left, right = inputs[0], inputs[1]
        bias = inputs[2] if len(inputs) == 3 else None

        if len(left.shape) < 2 or len(right.shape) < 2:
            raise ValueError("operands must have at least 2 dims")
        if left.shape[-1] != right.shape[-2]:
            raise ValueError("inner dims of the operands do not match")
        batch = np.broadcast_shapes(left.shape[:-2], right.shape[:-2])
        dst_shape = tuple(batch) + (left.shape[-2], right.shape[-1])

        result = np.matmul(left.numpy(), right.numpy())
        if bias is not None:
            result = result + np.broadcast_to(bias.numpy(), dst_shape)
        result = np.ascontiguousarray(result, dtype=np.float32)

        requires_grad = any(t.requires_grad for t in inputs)
        grad_fn = self._graph_node(inputs) if requires_grad else None
        return Tensor(
            result.reshape(-1),
            dst_shape,
            row_major_stride(dst_shape),
            0,
            grad_fn,
            requires_grad,
            True,
        )