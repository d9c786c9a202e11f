"""Reciprocal learning-rate decay."""

from __future__ import annotations

from typing import Iterator, Tuple

from ..core.types import TrainingRateConfig


def reciprocal_schedule(config: TrainingRateConfig) -> Tuple[float, float]:
    """Solve ``rate(e) = a / (e + 1) + c`` for ``(a, c)``.

    ``rate(0)`` is the initial rate and ``rate(epochs - 1)`` the final rate.
    A single epoch only ever sees the initial rate.
    """

    epochs = int(config.epochs)
    initial = float(config.initial_training_rate)
    final = float(config.final_training_rate)
    if epochs == 1:
        return 0.0, initial
    a = (initial - final) * epochs / (epochs - 1)
    return a, initial - a


def training_rate(config: TrainingRateConfig, epoch: int) -> float:
    """Learning rate for the 0-based ``epoch``."""

    a, c = reciprocal_schedule(config)
    return a / (epoch + 1) + c


def iter_rates(config: TrainingRateConfig) -> Iterator[Tuple[int, float]]:
    a, c = reciprocal_schedule(config)
    for epoch in range(int(config.epochs)):
        yield epoch, a / (epoch + 1) + c


__all__ = ["reciprocal_schedule", "training_rate", "iter_rates"]
