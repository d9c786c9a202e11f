import numpy as np
import pytest

from denseflow.core.layers import Dense, Relu, Softmax
from denseflow.core.types import LabeledData, TrainingRateConfig
from denseflow.data import get_dataset
from denseflow.model import Model
from denseflow.training.evaluation import cross_validate, fold_ranges, split_fold
from denseflow.training.losses import MeanSquared


def _indexed(rows):
    ids = np.arange(rows, dtype=float).reshape(-1, 1)
    return LabeledData(ids, np.ones((rows, 1)))


class SpyModel:
    """Records which rows it was trained on and which it was scored on."""

    def __init__(self):
        self.trained_on = set()
        self.scored_on = set()

    def train(self, data, rate_config, callbacks=None):
        self.trained_on.update(int(v) for v in data.inputs[:, 0])

    def forward(self, value, training=False):
        self.scored_on.add(int(value[0]))
        return np.ones(1)


def test_remainder_joins_last_fold():
    assert fold_ranges(10, 3) == [(0, 3), (3, 6), (6, 10)]


@pytest.mark.parametrize("rows,folds", [(10, 2), (11, 3), (7, 7), (100, 6)])
def test_folds_are_contiguous_and_cover_every_row(rows, folds):
    ranges = fold_ranges(rows, folds)
    assert len(ranges) == folds
    assert ranges[0][0] == 0 and ranges[-1][1] == rows
    assert all(prev[1] == nxt[0] for prev, nxt in zip(ranges, ranges[1:]))
    assert sum(stop - start for start, stop in ranges) == rows
    assert all(stop - start == rows // folds for start, stop in ranges[:-1])


@pytest.mark.parametrize("rows,folds", [(10, 1), (10, 0), (3, 4)])
def test_invalid_fold_counts(rows, folds):
    with pytest.raises(ValueError):
        fold_ranges(rows, folds)


def test_split_fold_partitions_rows():
    data = _indexed(11)
    ranges = fold_ranges(11, 3)
    for fold in range(3):
        train, test = split_fold(data, ranges, fold)
        train_ids = set(train.inputs[:, 0].astype(int))
        test_ids = set(test.inputs[:, 0].astype(int))
        assert not train_ids & test_ids
        assert train_ids | test_ids == set(range(11))
        start, stop = ranges[fold]
        assert test_ids == set(range(start, stop))


def test_held_out_rows_are_never_trained_on():
    spies = []

    def generator():
        spies.append(SpyModel())
        return spies[-1]

    result = cross_validate(
        generator, _indexed(10), 3, TrainingRateConfig(1, 0.1, 0.1), lambda p, a: 1.0
    )

    assert len(spies) == 3
    for spy, fold in zip(spies, result.folds):
        assert not spy.trained_on & spy.scored_on
        assert len(spy.scored_on) == fold.test_rows
        assert len(spy.trained_on) == fold.train_rows
    assert [fold.test_rows for fold in result.folds] == [3, 3, 4]
    assert result.mean_score == 1.0


def test_each_fold_gets_a_fresh_model():
    data = get_dataset("blobs", n_points=30, seed=2).data
    rng = np.random.default_rng(0)
    built = []

    def generator():
        model = Model(
            [Dense(2, 6, rng=rng), Relu(6), Dense(6, 3, rng=rng), Softmax(3)], MeanSquared()
        )
        built.append(model)
        return model

    result = cross_validate(generator, data, 3, TrainingRateConfig(2, 0.1, 0.05), "accuracy")

    assert len({id(model) for model in built}) == 3
    assert sum(fold.test_rows for fold in result.folds) == len(data)
    assert all(0.0 <= fold.score <= 1.0 for fold in result.folds)
    assert result.mean_score == pytest.approx(np.mean([fold.score for fold in result.folds]))


def test_unknown_score_name():
    with pytest.raises(KeyError):
        cross_validate(
            SpyModel, _indexed(4), 2, TrainingRateConfig(1, 0.1, 0.1), "f1"
        )
