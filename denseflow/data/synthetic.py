"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from ..core.types import LabeledData
from .registry import DatasetSpec, register_dataset
from .utils import one_hot


def _make_blobs(
    n_points: int, d_in: int, classes: int, spread: float, seed: int
) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    centers = rng.uniform(-3.0, 3.0, size=(classes, d_in))
    labels = np.arange(n_points) % classes
    X = centers[labels] + spread * rng.standard_normal((n_points, d_in))
    order = rng.permutation(n_points)
    return X[order], labels[order]


@register_dataset("blobs")
def make_blobs(
    n_points: int = 150,
    d_in: int = 2,
    classes: int = 3,
    spread: float = 0.4,
    seed: int = 0,
) -> DatasetSpec:
    """Gaussian clusters around random centres, one class per cluster."""

    X, labels = _make_blobs(n_points, d_in, classes, spread, seed)
    provenance = {
        "type": "blobs",
        "n_points": n_points,
        "d_in": d_in,
        "classes": classes,
        "spread": spread,
        "seed": seed,
    }
    return DatasetSpec(
        name="blobs",
        data=LabeledData(X, one_hot(labels, classes)),
        num_classes=classes,
        provenance=provenance,
    )


__all__ = ["make_blobs"]
