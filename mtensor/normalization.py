"""Batch, group and layer normalization."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .eltwise_math import _dense_tensor
from .memory import Operation, Tensor

_EPSILON = 1.0e-10
_GENERIC_SHAPE_ERROR = (
    " in_tensor must be 2D, higher while scale & shift must be 1D "
    "contiguous tensors with same shape "
)


def _is_1d_contiguous(tensor: Optional[Tensor]) -> bool:
    return tensor is not None and tensor.contiguous and len(tensor.shape) == 1


def _check_shapes(in_tensor, scale, shift, message, max_rank=None) -> None:
    rank = len(in_tensor.shape)
    if (
        rank < 2
        or (max_rank is not None and rank > max_rank)
        or len(scale.shape) != 1
        or scale.shape != shift.shape
    ):
        raise ValueError(message)


def _check_contiguous(scale: Tensor, shift: Tensor) -> None:
    if not scale.contiguous or not shift.contiguous:
        raise ValueError(" scale & shift must be contiguous ")


def _channel_view(vector: np.ndarray, ndim: int) -> np.ndarray:
    """Reshape a per-channel vector so it broadcasts over axis 1."""
    return vector.reshape((1, -1) + (1,) * (ndim - 2))


def _as_f64(tensor: Tensor) -> np.ndarray:
    return tensor.numpy().astype(np.float64)


def _standardize(x, mean, variance):
    return (x - mean) / np.sqrt(variance + _EPSILON)


def _needs_grad(*tensors: Tensor) -> bool:
    return any(t.requires_grad for t in tensors)


class _Normalization(Operation):
    """Shared state and error reporting of the normalization operations."""

    def __init__(self, inc_counter=False):
        super().__init__(inc_counter)
        self.mean: Optional[np.ndarray] = None
        self.variance: Optional[np.ndarray] = None

    def _checked_forward(self, operands):
        try:
            return self._forward(operands[0], operands[1], operands[2])
        except (ValueError, IndexError) as exc:
            raise ValueError(
                f"error: {type(self).__name__}() was not possible for in_tensor: {exc}"
            ) from exc

    def _finish(self, result, operands, node_args, mean, variance):
        """Build the output, recording statistics on a graph node when needed."""
        grad_fn = None
        requires_grad = _needs_grad(*operands)
        if requires_grad:
            grad_fn = self._graph_node(list(operands), *node_args)
            grad_fn.mean = mean.astype(np.float32)
            grad_fn.variance = variance.astype(np.float32)
        return _dense_tensor(result, grad_fn, requires_grad), grad_fn


class BatchNormalization(_Normalization):
    """Normalize each channel over the batch and spatial dims."""

    def __init__(
        self,
        training,
        running_mean,
        running_variance,
        momentum=0.1,
        inc_counter=False,
    ):
        if (
            not _is_1d_contiguous(running_mean)
            or not _is_1d_contiguous(running_variance)
            or running_mean.shape[0] != running_variance.shape[0]
        ):
            raise ValueError(
                "error BatchNormalization() : must provide two 1D tensors for "
                "running_mean and running_variance (must have same dim0 value)"
            )
        super().__init__(inc_counter)
        self.training = bool(training)
        self.running_mean = running_mean
        self.running_variance = running_variance
        self.momentum = float(momentum)

    def forward(self, operands):
        return self._checked_forward(operands)

    @staticmethod
    def _running(tensor: Tensor) -> np.ndarray:
        """A writable view of a running statistic's elements."""
        return tensor.storage[tensor.offset:tensor.offset + tensor.shape[0]]

    def _update_running(self, tensor: Tensor, current: np.ndarray) -> None:
        running = self._running(tensor)
        running[:] = (
            (1.0 - self.momentum) * running + self.momentum * current
        ).astype(np.float32)

    def _forward(self, in_tensor, scale, shift):
        src_shape = in_tensor.shape
        _check_shapes(
            in_tensor,
            scale,
            shift,
            " in_tensor must be 2D,3D or 4D while scale & shift must be 1D "
            "contiguous tensors with same shape ",
            max_rank=4,
        )
        _check_contiguous(scale, shift)
        channels = scale.shape[0]
        if channels != self.running_mean.shape[0] or src_shape[1] != channels:
            raise ValueError(
                " in_tensor and scale_shift and running_mean_variance must have "
                "same channels number (ie, in_tensor.shape[1] = "
                "scale_shift.shape[0] .. ) ! "
            )

        ndim = len(src_shape)
        x = _as_f64(in_tensor)
        if self.training:
            axes = (0,) + tuple(range(2, ndim))
            mean, variance = x.mean(axis=axes), x.var(axis=axes)
        else:
            mean = self._running(self.running_mean).astype(np.float64)
            variance = self._running(self.running_variance).astype(np.float64)

        normalized = _standardize(
            x, _channel_view(mean, ndim), _channel_view(variance, ndim)
        )
        result = _channel_view(_as_f64(scale), ndim) * normalized + _channel_view(
            _as_f64(shift), ndim
        )

        if not self.training:
            return _dense_tensor(result, None, False)

        output, grad_fn = self._finish(
            result,
            (in_tensor, scale, shift),
            (True, self.running_mean, self.running_variance, self.momentum),
            mean,
            variance,
        )
        if grad_fn is not None:
            self._update_running(self.running_mean, grad_fn.mean)
            self._update_running(self.running_variance, grad_fn.variance)
        return output


class GroupNormalization(_Normalization):
    """Normalize groups of channels per sample."""

    def __init__(self, groups, inc_counter=False):
        super().__init__(inc_counter)
        self.groups = int(groups)

    def forward(self, operands):
        return self._checked_forward(operands)

    def _forward(self, in_tensor, scale, shift):
        src_shape = in_tensor.shape
        _check_shapes(in_tensor, scale, shift, _GENERIC_SHAPE_ERROR)
        _check_contiguous(scale, shift)
        channels = src_shape[1]
        if self.groups <= 0 or self.groups > channels or channels % self.groups != 0:
            raise ValueError(
                " in_tensor channels must be equal or bigger than normalization "
                "groups and divisible by it (C % G = 0)"
            )
        if scale.shape[0] != channels:
            raise ValueError(" scale & shift must have one value per channel ")

        ndim = len(src_shape)
        grouped = _as_f64(in_tensor).reshape((src_shape[0], self.groups, -1))
        mean, variance = grouped.mean(axis=2), grouped.var(axis=2)
        normalized = _standardize(
            grouped, mean[:, :, None], variance[:, :, None]
        ).reshape(src_shape)
        result = _channel_view(_as_f64(scale), ndim) * normalized + _channel_view(
            _as_f64(shift), ndim
        )
        output, _ = self._finish(
            result, (in_tensor, scale, shift), (self.groups,), mean, variance
        )
        return output


class LayerNormalization(_Normalization):
    """Normalize over the last dimension of every row."""

    def forward(self, operands):
        return self._checked_forward(operands)

    def _forward(self, in_tensor, scale, shift):
        _check_shapes(in_tensor, scale, shift, _GENERIC_SHAPE_ERROR)
        if in_tensor.shape[-1] != scale.shape[0]:
            raise ValueError(
                " the dim of scale_shift must be equal to the last dim of the "
                "in_tensor !"
            )
        _check_contiguous(scale, shift)

        x = _as_f64(in_tensor)
        mean, variance = x.mean(axis=-1), x.var(axis=-1)
        normalized = _standardize(x, mean[..., None], variance[..., None])
        result = _as_f64(scale) * normalized + _as_f64(shift)
        output, _ = self._finish(result, (in_tensor, scale, shift), (), mean, variance)
        return output