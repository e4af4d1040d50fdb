"""Element-wise activation functions: abs, clip, relu, sigmoid and tanh."""

from __future__ import annotations

import numpy as np

from .eltwise_math import UnaryElementwise, _AlphaBeta


class Abs(UnaryElementwise):
    """Element-wise absolute value."""

    def _apply(self, x):
        return np.abs(x)

    def _derivative(self, x):
        return np.sign(x).astype(np.float32)


class Clip(_AlphaBeta):
    """Element-wise clamp of every value into ``[alpha, beta]``."""

    def __init__(self, alpha, beta, inc_counter=False):
        if alpha > beta:
            raise ValueError("error: Clip() alpha must be less than or equal to beta")
        super().__init__(alpha, beta, inc_counter)

    def _apply(self, x):
        return np.clip(x, np.float32(self.alpha), np.float32(self.beta))

    def _derivative(self, x):
        inside = (x > np.float32(self.alpha)) & (x <= np.float32(self.beta))
        return inside.astype(np.float32)


class Relu(UnaryElementwise):
    """Element-wise rectifier; negative inputs are scaled by ``alpha``."""

    def __init__(self, alpha=0.0, inc_counter=False):
        super().__init__(inc_counter)
        self.alpha = float(alpha)

    def _args(self):
        return (self.alpha,)

    def _apply(self, x):
        return np.where(x > 0, x, np.float32(self.alpha) * x)

    def _derivative(self, x):
        slope = np.where(x > 0, np.float32(1.0), np.float32(self.alpha))
        return slope.astype(np.float32)


class Sigmoid(UnaryElementwise):
    """Element-wise logistic function ``1 / (1 + exp(-x))``."""

    def _apply(self, x):
        return np.float32(1.0) / (np.float32(1.0) + np.exp(-x))

    def _derivative(self, x):
        y = self._apply(x)
        return y * (np.float32(1.0) - y)


class Tanh(UnaryElementwise):
    """Element-wise hyperbolic tangent."""

    def _apply(self, x):
        return np.tanh(x)

    def _derivative(self, x):
        y = np.tanh(x)
        return np.float32(1.0) - y * y