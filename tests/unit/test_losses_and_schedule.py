from typing import ClassVar

import numpy as np
import pytest

from denseflow.core.types import LossResult, TrainingRateConfig
from denseflow.training.losses import LossRegistry, MeanSquared, resolve_loss
from denseflow.training.schedule import iter_rates, reciprocal_schedule, training_rate


class AbsoluteLoss:
    name: ClassVar[str] = "Absolute Loss"

    def compute(self, predicted, actual):
        diff = predicted - actual
        return LossResult(loss=float(np.mean(np.abs(diff))), gradient=np.sign(diff))

    def config(self):
        return {"type": self.name}


def test_mean_squared_reference_values():
    result = MeanSquared().compute(np.array([0.5, 0.5]), np.array([1.0, 0.0]))
    assert result.loss == pytest.approx(0.25)
    np.testing.assert_allclose(result.gradient, [-1.0, 1.0])


def test_mean_squared_is_zero_on_exact_match():
    target = np.array([0.2, 0.3, 0.5])
    result = MeanSquared().compute(target, target)
    assert result.loss == 0.0
    np.testing.assert_array_equal(result.gradient, np.zeros(3))


@pytest.mark.parametrize("descriptor", ["mse", "mean_squared", {"type": "Mean Squared Loss"}])
def test_loss_descriptors_resolve(descriptor):
    loss = resolve_loss(descriptor)
    assert isinstance(loss, MeanSquared)
    assert loss.config() == {"type": "Mean Squared Loss"}


def test_unknown_loss_lists_available():
    with pytest.raises(KeyError, match="Mean Squared Loss"):
        resolve_loss("hinge")


def test_custom_registry_accepts_new_losses():
    registry = LossRegistry()
    registry.register(AbsoluteLoss, "abs")
    loss = registry.resolve("abs")
    result = loss.compute(np.array([1.0, -2.0]), np.zeros(2))
    assert result.loss == pytest.approx(1.5)
    assert list(registry.names()) == ["Absolute Loss"]


def test_schedule_hits_both_endpoints():
    config = TrainingRateConfig(epochs=10, initial_training_rate=0.1, final_training_rate=0.01)
    assert training_rate(config, 0) == pytest.approx(0.1)
    assert training_rate(config, 9) == pytest.approx(0.01)


def test_schedule_decays_monotonically():
    config = TrainingRateConfig(epochs=6, initial_training_rate=0.5, final_training_rate=0.05)
    rates = [rate for _, rate in iter_rates(config)]
    assert len(rates) == 6
    assert all(a > b for a, b in zip(rates, rates[1:]))


def test_schedule_follows_reciprocal_form():
    config = TrainingRateConfig(epochs=4, initial_training_rate=0.2, final_training_rate=0.05)
    a, c = reciprocal_schedule(config)
    for epoch, rate in iter_rates(config):
        assert rate == pytest.approx(a / (epoch + 1) + c)


def test_single_epoch_uses_initial_rate():
    config = TrainingRateConfig(epochs=1, initial_training_rate=0.3, final_training_rate=0.1)
    assert reciprocal_schedule(config) == (0.0, 0.3)
    assert [rate for _, rate in iter_rates(config)] == [pytest.approx(0.3)]


def test_equal_endpoints_give_constant_rate():
    config = TrainingRateConfig(epochs=5, initial_training_rate=0.05, final_training_rate=0.05)
    assert all(rate == pytest.approx(0.05) for _, rate in iter_rates(config))


@pytest.mark.parametrize(
    "epochs,initial,final",
    [(0, 0.1, 0.01), (3, 0.0, 0.01), (3, 0.1, -0.01)],
)
def test_rate_config_rejects_invalid_values(epochs, initial, final):
    with pytest.raises(ValueError):
        TrainingRateConfig(epochs=epochs, initial_training_rate=initial, final_training_rate=final)
