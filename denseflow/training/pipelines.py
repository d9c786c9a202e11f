"""Pipeline assembly: dataset, model, cross-validation, training and artifacts."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Mapping

from ..core.types import RunResult, TrainingRateConfig
from ..data import get_dataset
from ..data.utils import seed_everything
from ..model import Model
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .evaluation import cross_validate
from .metrics import compute_metrics

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "blobs-small": {
        "data": {
            "name": "blobs",
            "options": {"n_points": 90, "d_in": 2, "classes": 3, "seed": 0},
        },
        "model": {
            "layers": [
                {"type": "Dense Layer", "input_size": 2, "output_size": 8},
                {"type": "Relu Activation", "size": [8]},
                {"type": "Dense Layer", "input_size": 8, "output_size": 3},
                {"type": "Softmax Activation", "size": 3},
            ],
            "loss": {"type": "Mean Squared Loss"},
        },
        "train": {
            "epochs": 20,
            "initial_training_rate": 0.1,
            "final_training_rate": 0.01,
            "seed": 0,
            "run_dir": "runs/blobs-small",
            "enable_plots": False,
        },
        "evaluate": {"folds": 3, "score": "accuracy"},
    },
    "tabular-54": {
        "data": {
            "name": "csv",
            "options": {"csv_path": "data/train.csv", "target_col": "label", "shuffle": True},
        },
        "model": {
            "layers": [
                {"type": "Dense Layer", "input_size": 54, "output_size": 54},
                {"type": "Relu Activation", "size": [54]},
                {"type": "Dropout Layer", "size": 54, "remove": 10},
                {"type": "Dense Layer", "input_size": 54, "output_size": 27},
                {"type": "Relu Activation", "size": [27]},
                {"type": "Dropout Layer", "size": 27, "remove": 2},
                {"type": "Dense Layer", "input_size": 27, "output_size": 2},
                {"type": "Softmax Activation", "size": 2},
            ],
            "loss": {"type": "Mean Squared Loss"},
        },
        "train": {
            "epochs": 10,
            "initial_training_rate": 0.05,
            "final_training_rate": 0.005,
            "seed": 1,
            "run_dir": "runs/tabular-54",
            "enable_plots": False,
        },
        "evaluate": {"folds": 5, "score": "accuracy"},
        "save": {"path": "models/model1", "overwrite": True, "weights": True},
    },
}

_REQUIRED_SECTIONS = {"data", "model", "train"}


def load_config(path: str | Path) -> Mapping[str, object]:
    """Read a run configuration from a JSON or YAML file."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    missing = _REQUIRED_SECTIONS - set(data)
    if missing:
        raise KeyError(f"Config {path.name} is missing required sections: {', '.join(sorted(missing))}")
    return data


def presets() -> Mapping[str, Mapping[str, object]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str) -> Mapping[str, object]:
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def rate_config_from(train_cfg: Mapping[str, object]) -> TrainingRateConfig:
    return TrainingRateConfig(
        epochs=int(train_cfg.get("epochs", 1)),
        initial_training_rate=float(train_cfg["initial_training_rate"]),
        final_training_rate=float(train_cfg["final_training_rate"]),
    )


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])
    eval_cfg = config.get("evaluate")
    save_cfg = config.get("save")

    seed = int(train_cfg.get("seed", 0))
    rng = seed_everything(seed)
    dataset = get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options", {})))
    rate_config = rate_config_from(train_cfg)

    def generator() -> Model:
        return Model.from_config(model_cfg, rng=rng)

    model = generator()
    _log_startup_summary(dataset.name, len(dataset.data), model, rate_config)

    cross_validation = None
    if eval_cfg:
        cross_validation = cross_validate(
            generator,
            dataset.data,
            int(eval_cfg.get("folds", 5)),
            rate_config,
            str(eval_cfg.get("score", "accuracy")),
        )

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)
    jsonl = JsonlSink(run_dir / "metrics.jsonl", phase="train", seed=seed)
    csv_sink = CsvSink(run_dir / "metrics.csv", phase="train")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    progress_every = train_cfg.get("progress_every")
    history = model.train(
        dataset.data,
        rate_config,
        callbacks=[jsonl, csv_sink, plots],
        progress_every=int(progress_every) if progress_every else None,
    )
    plots.close()

    final_metrics = dict(
        compute_metrics(
            ["accuracy", "rmse"], model.predict(dataset.data.inputs), dataset.data.labels
        )
    )
    final_metrics["loss"] = history.final_loss
    final_metrics["average_epoch_seconds"] = history.average_seconds
    (run_dir / "metrics_final.json").write_text(json.dumps(final_metrics, indent=2))

    manifest = write_manifest(
        run_dir / "manifest.json",
        config=json.loads(json.dumps(config)),
        dataset_provenance=dataset.provenance,
        model_config=model.config(),
        parameter_count=model.parameter_count(),
    )
    summary_path = write_summary(
        jsonl.path, run_dir / "summary.json", cross_validation=cross_validation
    )

    model_path = ""
    if save_cfg:
        saved = model.save(
            save_cfg["path"],
            overwrite=bool(save_cfg.get("overwrite", False)),
            weights=bool(save_cfg.get("weights", True)),
        )
        model_path = str(saved)

    return RunResult(
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
        model_path=model_path,
        mean_score=cross_validation.mean_score if cross_validation else None,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _log_startup_summary(
    dataset_name: str, rows: int, model: Model, rate_config: TrainingRateConfig
) -> None:
    logger.info("=== denseflow run ===")
    logger.info("Dataset       : %s (%d rows)", dataset_name, rows)
    logger.info("Layers        : %s", ", ".join(layer.name for layer in model.layers))
    logger.info("Loss          : %s", model.loss.name)
    logger.info("Parameters    : %d", model.parameter_count())
    logger.info(
        "Schedule      : %d epochs, rate %g -> %g",
        rate_config.epochs,
        rate_config.initial_training_rate,
        rate_config.final_training_rate,
    )


__all__ = ["load_config", "load_preset", "presets", "rate_config_from", "run_pipeline"]
