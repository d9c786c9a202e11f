"""Per-example scoring callbacks and dataset-level metrics."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, Mapping

import numpy as np

from ..core.types import Array

ScoreFn = Callable[[Array, Array], float]


def argmax_accuracy(predicted: Array, actual: Array) -> float:
    """1.0 when the predicted and actual arg-max positions agree."""

    return float(np.argmax(predicted) == np.argmax(actual))


def squared_error(predicted: Array, actual: Array) -> float:
    return float(np.mean(np.square(np.asarray(predicted) - np.asarray(actual))))


SCORES: Dict[str, ScoreFn] = {
    "accuracy": argmax_accuracy,
    "squared_error": squared_error,
}


def get_score(name: str | ScoreFn) -> ScoreFn:
    if callable(name):
        return name
    try:
        return SCORES[name]
    except KeyError as exc:
        available = ", ".join(sorted(SCORES))
        raise KeyError(f"Unknown score {name!r}. Available scores: {available}") from exc


def compute_metric(name: str, predictions: Array, targets: Array) -> float:
    """Dataset-level metric over stacked prediction/target rows."""

    key = name.lower()
    preds = np.asarray(predictions, dtype=np.float64)
    targs = np.asarray(targets, dtype=np.float64)
    if preds.shape[0] == 0:
        return float("nan")
    if key == "accuracy":
        flat_p = preds.reshape(preds.shape[0], -1)
        flat_t = targs.reshape(targs.shape[0], -1)
        return float(np.mean(np.argmax(flat_p, axis=1) == np.argmax(flat_t, axis=1)))
    if key == "mae":
        return float(np.mean(np.abs(preds - targs)))
    if key == "rmse":
        return float(np.sqrt(np.mean((preds - targs) ** 2)))
    raise KeyError(f"Unknown metric: {name}")


def compute_metrics(
    names: Iterable[str], predictions: Array, targets: Array
) -> Mapping[str, float]:
    return {name.lower(): compute_metric(name, predictions, targets) for name in names}


__all__ = [
    "ScoreFn",
    "SCORES",
    "argmax_accuracy",
    "squared_error",
    "get_score",
    "compute_metric",
    "compute_metrics",
]
