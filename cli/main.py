"""Command line entry point for denseflow training runs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Iterable

from denseflow.training import pipelines


def _format_result(result) -> str:
    payload = {
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
        "summary": result.summary_path,
    }
    if result.model_path:
        payload["model"] = result.model_path
    if result.mean_score is not None:
        payload["mean_score"] = result.mean_score
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="blobs-small",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--run-dir", type=Path, help="Directory for metrics and manifest")
    parser.add_argument("--save", type=Path, help="Save the trained model to this directory")
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace an existing model directory when saving",
    )
    parser.add_argument(
        "--no-weights",
        action="store_true",
        help="Save only config.json without the weights/ directory",
    )
    parser.add_argument("--folds", type=int, help="Cross-validation folds (0 disables)")
    parser.add_argument("--epochs", type=int, help="Override the number of epochs")
    parser.add_argument("--seed", type=int, help="Seed used for initialisation and dropout")
    parser.add_argument(
        "--enable-plots", action="store_true", help="Write a loss curve to the run directory"
    )
    parser.add_argument(
        "--progress-every",
        type=int,
        help="Log the running loss at DEBUG level every N rows",
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Print the resolved config as JSON and exit",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    return parser.parse_args(argv)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = json.loads(json.dumps(pipelines.load_config(args.config)))
        config = _merge(config, override)

    train = config.setdefault("train", {})
    if args.run_dir:
        train["run_dir"] = str(args.run_dir)
    if args.epochs is not None:
        train["epochs"] = int(args.epochs)
    if args.seed is not None:
        train["seed"] = int(args.seed)
    if args.enable_plots:
        train["enable_plots"] = True
    if args.progress_every:
        train["progress_every"] = int(args.progress_every)

    if args.folds is not None:
        if args.folds == 0:
            config.pop("evaluate", None)
        else:
            config.setdefault("evaluate", {})["folds"] = int(args.folds)

    if args.save:
        config["save"] = {
            "path": str(args.save),
            "overwrite": bool(args.overwrite),
            "weights": not args.no_weights,
        }
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)
    if args.print_config:
        print(json.dumps(config, indent=2))
        raise SystemExit(0)

    result = pipelines.run_pipeline(config)
    print(_format_result(result))


if __name__ == "__main__":
    main()
