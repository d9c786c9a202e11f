"""Weight initialisation policies for dense layers."""

from __future__ import annotations

import numpy as np

from .types import Array

# Activation variances add across fan-in, so each weight gets target / fan_in.
VARIANCE_TARGET = 0.5


def equal_weights(input_size: int, output_size: int) -> Array:
    """Every entry set to ``1 / input_size``."""

    return np.full((input_size, output_size), 1.0 / input_size, dtype=np.float64)


def normal_weights(
    input_size: int,
    output_size: int,
    rng: np.random.Generator,
    *,
    variance_target: float = VARIANCE_TARGET,
) -> Array:
    """Zero-mean normal with std ``sqrt(variance_target / input_size)``."""

    std = np.sqrt(variance_target / input_size)
    return rng.normal(0.0, std, size=(input_size, output_size)).astype(np.float64)


def initial_weights(
    init: str | Array,
    input_size: int,
    output_size: int,
    rng: np.random.Generator,
) -> Array:
    """Resolve ``init`` (``"equal"``, ``"normal"`` or a matrix) into weights."""

    if isinstance(init, str):
        if init == "equal":
            return equal_weights(input_size, output_size)
        if init == "normal":
            return normal_weights(input_size, output_size, rng)
        raise ValueError(f"Unknown weight initialisation: {init!r}")
    weights = np.array(init, dtype=np.float64)
    if weights.shape != (input_size, output_size):
        raise ValueError(
            f"Custom weights have shape {weights.shape}, expected {(input_size, output_size)}"
        )
    return weights


__all__ = ["VARIANCE_TARGET", "equal_weights", "normal_weights", "initial_weights"]
