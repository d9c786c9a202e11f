"""Model directories: ``config.json`` plus ``weights/<layer>/<part>.dat`` blobs."""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import List

import numpy as np

from .core.errors import ModelExistsError
from .model import Model

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
WEIGHTS_DIR = "weights"


def _prepare_folder(folder: Path, overwrite: bool) -> None:
    if folder.exists():
        if not overwrite:
            raise ModelExistsError(f"Model '{folder}' already exists!")
        if folder.is_dir():
            shutil.rmtree(folder)
        else:
            folder.unlink()
    folder.mkdir(parents=True)


def save_model(
    model: Model, folder: str | Path, *, overwrite: bool = False, weights: bool = True
) -> Path:
    """Write ``model`` to ``folder``; an existing folder needs ``overwrite``."""

    folder = Path(folder)
    _prepare_folder(folder, overwrite)
    (folder / CONFIG_FILE).write_text(model.config_json())

    if weights:
        weights_dir = folder / WEIGHTS_DIR
        weights_dir.mkdir()
        for idx, layer in enumerate(model.layers):
            subfolder = weights_dir / str(idx)
            subfolder.mkdir()
            for part_idx, blob in enumerate(layer.serialize()):
                (subfolder / f"{part_idx}.dat").write_bytes(blob)

    logger.info("Model '%s' saved (%s)", folder, "with weights" if weights else "no weights")
    return folder


def read_parts(subfolder: Path) -> List[bytes]:
    """Read ``0.dat``, ``1.dat``, ... stopping at the first missing index."""

    parts: List[bytes] = []
    idx = 0
    while True:
        path = subfolder / f"{idx}.dat"
        if not path.exists():
            return parts
        parts.append(path.read_bytes())
        idx += 1


def load_model(
    folder: str | Path,
    *,
    weights: bool = True,
    rng: np.random.Generator | None = None,
) -> Model:
    """Rebuild a model from ``folder``; weights are restored when requested."""

    folder = Path(folder)
    config = json.loads((folder / CONFIG_FILE).read_text())
    model = Model.from_config(config, rng=rng)

    if weights:
        weights_dir = folder / WEIGHTS_DIR
        if not weights_dir.is_dir():
            raise FileNotFoundError(f"Model '{folder}' has no {WEIGHTS_DIR}/ directory")
        for idx, layer in enumerate(model.layers):
            layer.deserialize(read_parts(weights_dir / str(idx)))

    logger.info("Model '%s' loaded (%s)", folder, "with weights" if weights else "no weights")
    return model


__all__ = ["CONFIG_FILE", "WEIGHTS_DIR", "save_model", "load_model", "read_parts"]
