"""K-fold cross-validation over contiguous row ranges."""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence, Tuple

import numpy as np

from ..core.types import CrossValidationResult, FoldResult, LabeledData, TrainingRateConfig
from .metrics import ScoreFn, get_score

logger = logging.getLogger(__name__)

ModelGenerator = Callable[[], object]


def fold_ranges(rows: int, folds: int) -> List[Tuple[int, int]]:
    """Split ``rows`` into ``folds`` contiguous ``(start, stop)`` ranges.

    Each fold holds ``rows // folds`` rows; the remainder joins the last fold.
    """

    if folds < 2:
        raise ValueError(f"cross-validation needs at least 2 folds, got {folds}")
    if folds > rows:
        raise ValueError(f"cannot split {rows} rows into {folds} folds")
    size = rows // folds
    ranges = [(k * size, (k + 1) * size) for k in range(folds)]
    ranges[-1] = (ranges[-1][0], rows)
    return ranges


def split_fold(
    data: LabeledData, ranges: Sequence[Tuple[int, int]], fold: int
) -> Tuple[LabeledData, LabeledData]:
    """Return ``(train, test)`` where ``test`` is fold ``fold``."""

    start, stop = ranges[fold]
    train = LabeledData.concatenate(
        [data.rows(a, b) for idx, (a, b) in enumerate(ranges) if idx != fold]
    )
    return train, data.rows(start, stop)


def score_model(model, data: LabeledData, score: ScoreFn) -> float:
    """Mean of ``score(prediction, label)`` over every row of ``data``."""

    values = [
        score(model.forward(data.inputs[idx]), data.labels[idx]) for idx in range(len(data))
    ]
    return float(np.mean(values))


def cross_validate(
    generator: ModelGenerator,
    data: LabeledData,
    folds: int,
    rate_config: TrainingRateConfig,
    score: ScoreFn | str,
    callbacks: Sequence[object] | None = None,
) -> CrossValidationResult:
    """Train a fresh model per fold and score it on the held-out rows."""

    score_fn = get_score(score)
    ranges = fold_ranges(len(data), folds)
    results: List[FoldResult] = []
    for fold in range(folds):
        train, test = split_fold(data, ranges, fold)
        model = generator()
        model.train(train, rate_config, callbacks=callbacks)
        value = score_model(model, test, score_fn)
        results.append(
            FoldResult(fold=fold, train_rows=len(train), test_rows=len(test), score=value)
        )
        logger.info(
            "fold %d/%d score %.4f (train %d rows, test %d rows)",
            fold + 1,
            folds,
            value,
            len(train),
            len(test),
        )
    mean_score = float(np.mean([r.score for r in results]))
    logger.info("cross-validation mean score %.4f over %d folds", mean_score, folds)
    return CrossValidationResult(folds=results, mean_score=mean_score)


__all__ = ["fold_ranges", "split_fold", "score_model", "cross_validate"]
