"""CSV loader producing one-hot labelled classification data."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
from sklearn.preprocessing import LabelEncoder

from ..core.types import LabeledData
from .registry import DatasetSpec, register_dataset
from .utils import one_hot, shuffle_rows, standardize


def _load_csv(path: Path, target_col: str | int) -> tuple[np.ndarray, np.ndarray]:
    df = pd.read_csv(path)
    if isinstance(target_col, int):
        target_col = df.columns[target_col]
    if target_col not in df.columns:
        raise KeyError(f"Target column {target_col!r} not found in CSV")
    y = df.pop(target_col).to_numpy()
    X = df.to_numpy(dtype=np.float64)
    return X, y


@register_dataset("csv")
def load_csv_classification(
    *,
    csv_path: str | Path,
    target_col: str | int = "target",
    standardize_inputs: bool = True,
    shuffle: bool = False,
    seed: int = 0,
    max_rows: int | None = None,
) -> DatasetSpec:
    """Load a classification dataset from a CSV file."""

    path = Path(csv_path)
    X, y_raw = _load_csv(path, target_col)
    encoder = LabelEncoder()
    y_encoded = encoder.fit_transform(y_raw)
    num_classes = int(len(encoder.classes_))
    y = one_hot(y_encoded, num_classes)

    if shuffle:
        X, y = shuffle_rows(X, y, np.random.default_rng(seed))
    if max_rows is not None:
        X, y = X[:max_rows], y[:max_rows]

    normalization: dict[str, list[float]] = {}
    if standardize_inputs:
        X, mean, std = standardize(X)
        normalization = {"mean": mean.flatten().tolist(), "std": std.flatten().tolist()}

    provenance = {
        "path": str(path),
        "target_col": str(target_col),
        "rows": int(X.shape[0]),
        "shuffle": shuffle,
        "seed": seed,
        "classes": [str(c) for c in encoder.classes_.tolist()],
        "normalization": normalization,
    }

    return DatasetSpec(
        name="csv",
        data=LabeledData(X, y),
        num_classes=num_classes,
        provenance=provenance,
    )


__all__ = ["load_csv_classification"]
