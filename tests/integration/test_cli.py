import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from cli.main import main
from denseflow.model import Model


def test_cli_runs_preset_and_saves_model(tmp_path, capsys):
    main(
        [
            "--preset",
            "blobs-small",
            "--epochs",
            "2",
            "--folds",
            "2",
            "--run-dir",
            str(tmp_path / "run"),
            "--save",
            str(tmp_path / "model"),
            "--log-level",
            "WARNING",
        ]
    )
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert Path(payload["metrics"]).exists()
    assert Path(payload["manifest"]).exists()
    assert Path(payload["summary"]).exists()
    assert 0.0 <= payload["mean_score"] <= 1.0
    assert (tmp_path / "model" / "config.json").exists()
    assert (tmp_path / "model" / "weights" / "0" / "0.dat").exists()


def test_cli_tabular_preset_on_generated_csv(tmp_path, capsys):
    rng = np.random.default_rng(0)
    features = rng.normal(size=(40, 54))
    labels = np.where(features[:, 0] > 0, "yes", "no")
    frame = pd.DataFrame(features, columns=[f"f{i}" for i in range(54)])
    frame["label"] = labels
    csv_path = tmp_path / "train.csv"
    frame.to_csv(csv_path, index=False)

    override = tmp_path / "override.json"
    override.write_text(
        json.dumps(
            {
                "data": {"options": {"csv_path": str(csv_path)}},
                "model": {},
                "train": {"epochs": 1},
            }
        )
    )
    main(
        [
            "--preset",
            "tabular-54",
            "--config",
            str(override),
            "--folds",
            "2",
            "--run-dir",
            str(tmp_path / "run"),
            "--save",
            str(tmp_path / "model"),
            "--overwrite",
            "--log-level",
            "WARNING",
        ]
    )
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    model = Model.load(payload["model"])
    assert model.input_shape() == (54,)
    assert model.output_shape() == (2,)
    assert [layer.name for layer in model.layers].count("Dropout Layer") == 2


def test_cli_config_only_save(tmp_path, capsys):
    main(
        [
            "--epochs",
            "1",
            "--folds",
            "0",
            "--run-dir",
            str(tmp_path / "run"),
            "--save",
            str(tmp_path / "model"),
            "--no-weights",
            "--log-level",
            "WARNING",
        ]
    )
    payload = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert "mean_score" not in payload
    assert (tmp_path / "model" / "config.json").exists()
    assert not (tmp_path / "model" / "weights").exists()


def test_cli_list_presets(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--list-presets"])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.split() == ["blobs-small", "tabular-54"]


def test_cli_print_config_applies_overrides(capsys):
    with pytest.raises(SystemExit):
        main(["--print-config", "--epochs", "7", "--seed", "9", "--folds", "0"])
    config = json.loads(capsys.readouterr().out)
    assert config["train"]["epochs"] == 7
    assert config["train"]["seed"] == 9
    assert "evaluate" not in config


def test_cli_progress_flag_reaches_train_config(capsys):
    with pytest.raises(SystemExit):
        main(["--print-config", "--progress-every", "25"])
    config = json.loads(capsys.readouterr().out)
    assert config["train"]["progress_every"] == 25
