"""Ordered layer pipeline paired with a loss."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np

from .core.errors import ShapeMismatchError
from .core.layers import Layer, layer_from_config
from .core.types import Array, LabeledData, Shape, TrainingHistory, TrainingRateConfig
from .training.losses import Loss, resolve_loss
from .training.trainer import Trainer


def _check_chain(layers: Sequence[Layer]) -> None:
    for idx, (layer, following) in enumerate(zip(layers, layers[1:])):
        if tuple(layer.output_shape()) != tuple(following.input_shape()):
            raise ShapeMismatchError(
                f"{layer.name} [{idx}] with output shape {list(layer.output_shape())} "
                f"does not match {following.name} [{idx + 1}] with input shape "
                f"{list(following.input_shape())}"
            )


class Model:
    """Feed-forward model: layers run in order forward and in reverse backward."""

    def __init__(self, layers: Sequence[Layer], loss: Loss) -> None:
        layers = list(layers)
        _check_chain(layers)
        self.layers: List[Layer] = layers
        self.loss = loss

    @classmethod
    def from_config(
        cls, config: Mapping[str, object], rng: np.random.Generator | None = None
    ) -> "Model":
        """Build an untrained model from ``{"layers": [...], "loss": {...}}``."""

        rng = rng if rng is not None else np.random.default_rng()
        layers = [layer_from_config(desc, rng=rng) for desc in config["layers"]]  # type: ignore[union-attr]
        return cls(layers, resolve_loss(config.get("loss", "mse")))  # type: ignore[arg-type]

    def input_shape(self) -> Shape | None:
        return tuple(self.layers[0].input_shape()) if self.layers else None

    def output_shape(self) -> Shape | None:
        return tuple(self.layers[-1].output_shape()) if self.layers else None

    def forward(self, value: Array, training: bool = False) -> Array:
        x = np.asarray(value, dtype=np.float64)
        if self.layers and tuple(x.shape) != self.input_shape():
            first = self.layers[0]
            raise ShapeMismatchError(
                f"Data shape {list(x.shape)} does not match first layer "
                f"({first.name} [0]) input shape {list(first.input_shape())}"
            )
        for layer in self.layers:
            x = layer.forward_actual(x, training)
        return x

    def forward_with_context(self, value: Array) -> Array:
        return self.forward(value, training=True)

    def backward(self, gradient: Array, training_rate: float) -> Array:
        g = np.asarray(gradient, dtype=np.float64)
        for layer in reversed(self.layers):
            g = layer.backward_actual(g, training_rate)
        return g

    def predict(self, inputs: Array) -> Array:
        """Inference over every row of ``inputs``."""

        rows = [self.forward(row) for row in np.asarray(inputs, dtype=np.float64)]
        if not rows:
            return np.empty((0,) + (self.output_shape() or ()), dtype=np.float64)
        return np.stack(rows)

    def train(
        self,
        data: LabeledData,
        rate_config: TrainingRateConfig,
        callbacks: Sequence[object] | None = None,
        progress_every: int | None = None,
    ) -> TrainingHistory:
        trainer = Trainer(self, callbacks=callbacks, progress_every=progress_every)
        return trainer.run(data, rate_config)

    def config(self) -> Dict[str, object]:
        return {
            "layers": [layer.config() for layer in self.layers],
            "loss": self.loss.config(),
        }

    def config_json(self) -> str:
        return json.dumps(self.config(), indent=2)

    def parameter_count(self) -> int:
        return int(sum(p.size for layer in self.layers for p in layer.parameters()))

    def save(self, folder: str | Path, overwrite: bool = False, weights: bool = True) -> Path:
        from .persistence import save_model

        return save_model(self, folder, overwrite=overwrite, weights=weights)

    @classmethod
    def load(
        cls,
        folder: str | Path,
        weights: bool = True,
        rng: np.random.Generator | None = None,
    ) -> "Model":
        from .persistence import load_model

        return load_model(folder, weights=weights, rng=rng)

    def __repr__(self) -> str:
        inner = ", ".join(repr(layer) for layer in self.layers)
        return f"Model([{inner}], loss={self.loss!r})"


__all__ = ["Model"]
