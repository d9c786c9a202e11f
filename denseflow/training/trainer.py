"""Stochastic, row-at-a-time training loop."""

from __future__ import annotations

import logging
import time
from typing import Mapping, Sequence

import numpy as np

from ..core.errors import ShapeMismatchError
from ..core.types import Array, EpochRecord, LabeledData, TrainingHistory, TrainingRateConfig
from .schedule import iter_rates

logger = logging.getLogger(__name__)

# Keeps predictions off exact 0/1 for losses that take logarithms.
CLAMP_MIN = 1e-7
CLAMP_MAX = 1.0 - 1e-7


class Trainer:
    """Run ``epochs`` passes over a dataset, one example per update."""

    def __init__(
        self,
        model,
        callbacks: Sequence[object] | None = None,
        *,
        progress_every: int | None = None,
    ) -> None:
        self.model = model
        self.callbacks = list(callbacks or [])
        self.progress_every = progress_every

    def run(self, data: LabeledData, rate_config: TrainingRateConfig) -> TrainingHistory:
        rows = len(data)
        if rows == 0:
            raise ValueError("cannot train on an empty dataset")
        output_shape = self.model.output_shape()
        if output_shape is not None and tuple(data.labels.shape[1:]) != output_shape:
            raise ShapeMismatchError(
                f"Label shape {list(data.labels.shape[1:])} does not match model "
                f"output shape {list(output_shape)}"
            )

        history = TrainingHistory()
        for epoch, rate in iter_rates(rate_config):
            started = time.perf_counter()
            total = 0.0
            for index in range(rows):
                total += self._train_example(data.inputs[index], data.labels[index], rate)
                if self.progress_every and (index + 1) % self.progress_every == 0:
                    logger.debug(
                        "epoch %d row %d/%d running loss %.6f",
                        epoch + 1,
                        index + 1,
                        rows,
                        total / (index + 1),
                    )
            record = EpochRecord(
                epoch=epoch + 1,
                loss=total / rows,
                training_rate=rate,
                seconds=time.perf_counter() - started,
            )
            history.epochs.append(record)
            logger.info(
                "epoch %d/%d loss %.6f rate %.6g (%.3fs, avg %.3fs)",
                record.epoch,
                rate_config.epochs,
                record.loss,
                record.training_rate,
                record.seconds,
                history.average_seconds,
            )
            self._emit_epoch(
                record.epoch,
                {
                    "loss": record.loss,
                    "training_rate": record.training_rate,
                    "seconds": record.seconds,
                },
            )
        return history

    # ------------------------------------------------------------------
    # Internal helpers

    def _train_example(self, inputs: Array, labels: Array, rate: float) -> float:
        predicted = self.model.forward_with_context(inputs)
        predicted = np.clip(predicted, CLAMP_MIN, CLAMP_MAX)
        result = self.model.loss.compute(predicted, labels)
        self.model.backward(result.gradient, rate)
        return result.loss

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["CLAMP_MIN", "CLAMP_MAX", "Trainer"]
