"""Activation maths shared by the activation layers."""

from __future__ import annotations

import numpy as np

from .types import Array


def relu(x: Array) -> Array:
    """Return the ReLU activation."""

    return np.maximum(x, 0.0)


def relu_mask(x: Array) -> Array:
    """Indicator of ``x > 0``; zero at and below zero."""

    return (x > 0).astype(np.float64)


def softmax(z: Array) -> Array:
    """Numerically stable softmax over a 1-D vector.

    Falls back to the uniform distribution when the exponential sum is
    degenerate (non-finite input, or a sum that is zero or not finite).
    """

    z = np.asarray(z, dtype=np.float64)
    if z.size == 0:
        return z.copy()
    with np.errstate(invalid="ignore", over="ignore"):
        shifted = z - np.max(z)
        e = np.exp(shifted)
        total = float(np.sum(e))
    if not np.isfinite(total) or total <= 0.0 or not np.all(np.isfinite(e)):
        return np.full(z.shape, 1.0 / z.size, dtype=np.float64)
    return e / total


def softmax_vjp(s: Array, gradient: Array) -> Array:
    """Vector-Jacobian product of softmax at output ``s``.

    ``result_i = sum_j s_i (delta_ij - s_j) g_j = s_i (g_i - <s, g>)``.
    """

    return s * (gradient - np.dot(s, gradient))


__all__ = ["relu", "relu_mask", "softmax", "softmax_vjp"]
