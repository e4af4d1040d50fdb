"""Strided tensor storage, the operation base class and memory-layout operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from math import prod
from typing import ClassVar, Optional, Sequence

import numpy as np
from numpy.lib.stride_tricks import as_strided

_DTYPE = np.float32
_ITEMSIZE = np.dtype(_DTYPE).itemsize


def row_major_stride(shape: Sequence[int]) -> tuple[int, ...]:
    """Return the element strides of a dense row-major layout for ``shape``."""
    strides = []
    step = 1
    for dim in reversed(tuple(shape)):
        strides.append(step)
        step *= dim
    return tuple(reversed(strides))


class Tensor:
    """A float32 tensor viewing a flat storage through a shape, strides and offset."""

    def __init__(
        self,
        storage,
        shape,
        stride=None,
        offset=0,
        grad_fn=None,
        requires_grad=False,
        contiguous=True,
    ):
        self.storage = np.asarray(storage, dtype=_DTYPE).reshape(-1)
        self.shape = tuple(int(d) for d in shape)
        self.stride = (
            row_major_stride(self.shape)
            if stride is None
            else tuple(int(s) for s in stride)
        )
        if len(self.stride) != len(self.shape):
            raise ValueError("stride and shape must have the same number of dims")
        self.offset = int(offset)
        self.grad_fn: Optional[Operation] = grad_fn
        self.requires_grad = bool(requires_grad)
        self.contiguous = bool(contiguous)
        self.grad: Optional[Tensor] = None

    @classmethod
    def from_array(cls, array, requires_grad=False) -> "Tensor":
        """Build a dense row-major tensor holding a copy of ``array``."""
        data = np.array(array, dtype=_DTYPE, order="C")
        return cls(
            data.reshape(-1).copy(),
            data.shape,
            row_major_stride(data.shape),
            0,
            None,
            requires_grad,
            True,
        )

    def _view(self) -> np.ndarray:
        """A read-only ndarray view of the tensor's elements."""
        base = self.storage[self.offset:]
        return as_strided(
            base,
            shape=self.shape,
            strides=tuple(s * _ITEMSIZE for s in self.stride),
            writeable=False,
        )

    def numpy(self) -> np.ndarray:
        """Return the elements as a new, dense numpy array."""
        return np.array(self._view(), dtype=_DTYPE, order="C")

    def numel(self) -> int:
        """Number of elements."""
        return prod(self.shape)

    def accumulate_grad(self, grad: "Tensor") -> None:
        """Store ``grad`` as this tensor's gradient, or add it to the existing one."""
        if grad.shape != self.shape:
            raise ValueError("gradient shape must match tensor shape")
        if self.grad is None:
            self.grad = grad
        else:
            self.grad = Tensor.from_array(self.grad.numpy() + grad.numpy())

    def __repr__(self) -> str:
        return (
            f"Tensor(shape={self.shape}, stride={self.stride}, "
            f"requires_grad={self.requires_grad})"
        )


class Operation(ABC):
    """Base of all operations; numbered instances serve as graph nodes."""

    _counters: ClassVar[dict] = {}

    def __init__(self, inc_counter=False):
        self.name = ""
        self.operands: list[Tensor] = []
        if inc_counter:
            cls = type(self)
            number = Operation._counters.get(cls, 0)
            self.name = f"{cls.__name__}{number}"
            Operation._counters[cls] = number + 1

    @abstractmethod
    def forward(self, operands: Sequence[Tensor]) -> Tensor:
        """Compute the result tensor from ``operands``."""

    def _graph_node(self, operands: Sequence[Tensor], *args) -> "Operation":
        node = type(self)(*args, inc_counter=True)
        node.operands = list(operands)
        return node


class Contiguous(Operation):
    """Copy a tensor into a dense row-major layout."""

    def forward(self, operands):
        in_tensor = operands[0]
        data = in_tensor.numpy()
        grad_fn = self._graph_node([in_tensor]) if in_tensor.requires_grad else None
        return Tensor(
            data.reshape(-1),
            in_tensor.shape,
            row_major_stride(in_tensor.shape),
            0,
            grad_fn,
            in_tensor.requires_grad,
            True,
        )


class Clone(Operation):
    """Copy a tensor, keeping its strides unless some are zero."""

    def forward(self, operands):
        in_tensor = operands[0]
        shape = in_tensor.shape
        has_zero_stride = 0 in in_tensor.stride
        out_stride = row_major_stride(shape) if has_zero_stride else in_tensor.stride

        numel = in_tensor.numel()
        extent = 0 if numel == 0 else 1 + sum(
            (d - 1) * abs(s) for d, s in zip(shape, out_stride)
        )
        storage = np.zeros(max(numel, extent), dtype=_DTYPE)
        if numel:
            dst = as_strided(
                storage,
                shape=shape,
                strides=tuple(s * _ITEMSIZE for s in out_stride),
            )
            dst[...] = in_tensor._view()

        grad_fn = self._graph_node([in_tensor]) if in_tensor.requires_grad else None
        return Tensor(
            storage,
            shape,
            out_stride,
            0,
            grad_fn,
            in_tensor.requires_grad,
            True if has_zero_stride else in_tensor.contiguous,
        )