"""Element-wise mathematical operations: exp, log, sqrt, pow and linear."""

from __future__ import annotations

from abc import abstractmethod

import numpy as np

from .memory import Contiguous, Operation, Tensor, row_major_stride


def _dense_tensor(data, grad_fn, requires_grad: bool) -> Tensor:
    """Wrap an array as a fresh row-major tensor."""
    data = np.ascontiguousarray(data, dtype=np.float32)
    return Tensor(
        data.reshape(-1),
        data.shape,
        row_major_stride(data.shape),
        0,
        grad_fn,
        requires_grad,
        True,
    )


class UnaryElementwise(Operation):
    """An operation that maps every element of one tensor through a function."""

    @abstractmethod
    def _apply(self, x: np.ndarray) -> np.ndarray:
        """Compute the function for every element of ``x``."""

    @abstractmethod
    def _derivative(self, x: np.ndarray) -> np.ndarray:
        """Compute the derivative of the function for every element of ``x``."""

    def _args(self) -> tuple:
        """Constructor arguments that reproduce this operation."""
        return ()

    def forward(self, operands):
        source = operands[0]
        in_tensor = source if source.contiguous else Contiguous().forward([source])

        with np.errstate(all="ignore"):
            result = self._apply(in_tensor.numpy())

        grad_fn = (
            self._graph_node([in_tensor], *self._args())
            if in_tensor.requires_grad
            else None
        )
        return _dense_tensor(
            np.reshape(result, in_tensor.shape), grad_fn, in_tensor.requires_grad
        )

    def backward(self, diff_loss_out):
        """Propagate ``diff_loss_out`` into the gradient of the operand."""
        if not self.operands:
            raise RuntimeError(f"error: {type(self).__name__}() has no operands")
        x = self.operands[0]
        if diff_loss_out.shape != x.shape:
            raise ValueError(
                f"error: {type(self).__name__}() gradient shape must match operand shape"
            )
        with np.errstate(all="ignore"):
            grad = diff_loss_out.numpy() * self._derivative(x.numpy())
        x.accumulate_grad(Tensor.from_array(grad.astype(np.float32)))


class _AlphaBeta(UnaryElementwise):
    """An element-wise operation with two scalar parameters."""

    def __init__(self, alpha, beta, inc_counter=False):
        super().__init__(inc_counter)
        self.alpha = float(alpha)
        self.beta = float(beta)

    def _args(self):
        return (self.alpha, self.beta)


class Exp(UnaryElementwise):
    """Element-wise natural exponential."""

    def _apply(self, x):
        return np.exp(x)

    _derivative = _apply


class Log(UnaryElementwise):
    """Element-wise natural logarithm."""

    def _apply(self, x):
        return np.log(x)

    def _derivative(self, x):
        return np.float32(1.0) / x


class Sqrt(UnaryElementwise):
    """Element-wise square root."""

    def _apply(self, x):
        return np.sqrt(x)

    def _derivative(self, x):
        return np.float32(0.5) / np.sqrt(x)


class Pow(_AlphaBeta):
    """Element-wise ``beta * x ** alpha``."""

    def __init__(self, alpha, beta, inc_counter=False):
        super().__init__(alpha, beta, inc_counter)

    def _apply(self, x):
        return np.float32(self.beta) * np.power(x, np.float32(self.alpha))

    def _derivative(self, x):
        if self.alpha == 0.0:
            return np.zeros_like(x)
        return np.float32(self.beta * self.alpha) * np.power(
            x, np.float32(self.alpha - 1.0)
        )


class Linear(_AlphaBeta):
    """Element-wise ``alpha * x + beta``."""

    def __init__(self, alpha, beta, inc_counter=False):
        super().__init__(alpha, beta, inc_counter)

    def _apply(self, x):
        return np.float32(self.alpha) * x + np.float32(self.beta)

    def _derivative(self, x):
        return np.full_like(x, self.alpha)