"""Core typing contracts for denseflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

Array = np.ndarray
Shape = Tuple[int, ...]


@dataclass(frozen=True)
class LabeledData:
    """Feature rows paired with one-hot label rows."""

    inputs: Array
    labels: Array

    def __post_init__(self) -> None:
        inputs = np.asarray(self.inputs, dtype=np.float64)
        labels = np.asarray(self.labels, dtype=np.float64)
        if inputs.ndim == 0 or labels.ndim == 0:
            raise ValueError("inputs and labels must have a leading row axis")
        if inputs.shape[0] != labels.shape[0]:
            raise ValueError(
                f"inputs have {inputs.shape[0]} rows but labels have {labels.shape[0]}"
            )
        object.__setattr__(self, "inputs", inputs)
        object.__setattr__(self, "labels", labels)

    def __len__(self) -> int:
        return int(self.inputs.shape[0])

    def rows(self, start: int, stop: int) -> "LabeledData":
        return LabeledData(self.inputs[start:stop], self.labels[start:stop])

    @staticmethod
    def concatenate(parts: Sequence["LabeledData"]) -> "LabeledData":
        if not parts:
            raise ValueError("cannot concatenate an empty sequence of datasets")
        return LabeledData(
            np.concatenate([p.inputs for p in parts], axis=0),
            np.concatenate([p.labels for p in parts], axis=0),
        )


@dataclass(frozen=True)
class TrainingRateConfig:
    """Epoch count and the learning-rate endpoints of the decay schedule."""

    epochs: int
    initial_training_rate: float
    final_training_rate: float

    def __post_init__(self) -> None:
        if int(self.epochs) < 1:
            raise ValueError(f"epochs must be positive, got {self.epochs}")
        if self.initial_training_rate <= 0 or self.final_training_rate <= 0:
            raise ValueError("training rates must be positive")


@dataclass(frozen=True)
class LossResult:
    """Scalar loss together with dL/dprediction."""

    loss: float
    gradient: Array


@dataclass(frozen=True)
class EpochRecord:
    epoch: int
    loss: float
    training_rate: float
    seconds: float


@dataclass
class TrainingHistory:
    """Per-epoch records produced by :class:`denseflow.training.trainer.Trainer`."""

    epochs: List[EpochRecord] = field(default_factory=list)

    @property
    def final_loss(self) -> float:
        return self.epochs[-1].loss if self.epochs else float("nan")

    @property
    def average_seconds(self) -> float:
        if not self.epochs:
            return 0.0
        return float(np.mean([record.seconds for record in self.epochs]))


@dataclass(frozen=True)
class FoldResult:
    fold: int
    train_rows: int
    test_rows: int
    score: float


@dataclass(frozen=True)
class CrossValidationResult:
    """Per-fold scores and their mean."""

    folds: List[FoldResult]
    mean_score: float


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`denseflow.training.pipelines.run_pipeline`."""

    metrics_path: str
    manifest_path: str
    summary_path: str = ""
    model_path: str = ""
    mean_score: float | None = None


__all__ = [
    "Array",
    "Shape",
    "LabeledData",
    "TrainingRateConfig",
    "LossResult",
    "EpochRecord",
    "TrainingHistory",
    "FoldResult",
    "CrossValidationResult",
    "RunResult",
]
