import csv
import json

import numpy as np
import pandas as pd
import pytest

from denseflow.core.types import CrossValidationResult, FoldResult, LabeledData
from denseflow.data import available_datasets, get_dataset, register_dataset
from denseflow.data.registry import DatasetSpec
from denseflow.reporting import CsvSink, JsonlSink, PlotAdapter, write_manifest, write_summary
from denseflow.training.metrics import compute_metrics


def test_labeled_data_validates_rows():
    with pytest.raises(ValueError):
        LabeledData(np.zeros((3, 2)), np.zeros((2, 1)))
    data = LabeledData([[1, 2], [3, 4]], [[1, 0], [0, 1]])
    assert data.inputs.dtype == np.float64
    assert len(data.rows(1, 2)) == 1
    assert len(LabeledData.concatenate([data, data])) == 4


def test_blobs_are_deterministic_and_one_hot():
    first = get_dataset("blobs", n_points=30, d_in=3, classes=4, seed=5)
    second = get_dataset("blobs", n_points=30, d_in=3, classes=4, seed=5)
    np.testing.assert_array_equal(first.data.inputs, second.data.inputs)
    assert first.d_in == 3
    assert first.data.labels.shape == (30, 4)
    np.testing.assert_array_equal(first.data.labels.sum(axis=1), np.ones(30))


def test_csv_loader_encodes_labels(tmp_path):
    path = tmp_path / "train.csv"
    frame = pd.DataFrame(
        {
            "a": [1.0, 2.0, 3.0, 4.0],
            "b": [0.5, 0.5, 1.5, 1.5],
            "label": ["no", "yes", "no", "yes"],
        }
    )
    frame.to_csv(path, index=False)

    spec = get_dataset("csv", csv_path=path, target_col="label")
    assert spec.num_classes == 2
    assert spec.data.inputs.shape == (4, 2)
    np.testing.assert_array_equal(spec.data.labels.argmax(axis=1), [0, 1, 0, 1])
    np.testing.assert_allclose(spec.data.inputs.mean(axis=0), 0.0, atol=1e-12)
    assert spec.provenance["classes"] == ["no", "yes"]

    by_index = get_dataset("csv", csv_path=path, target_col=2, standardize_inputs=False)
    np.testing.assert_array_equal(by_index.data.inputs[:, 0], [1.0, 2.0, 3.0, 4.0])

    with pytest.raises(KeyError):
        get_dataset("csv", csv_path=path, target_col="missing")


def test_registry_accepts_direct_registration():
    def tiny():
        return DatasetSpec("tiny", LabeledData(np.zeros((2, 1)), np.eye(2)), num_classes=2)

    register_dataset("tiny", tiny)
    assert "tiny" in available_datasets()
    assert len(get_dataset("tiny").data) == 2
    with pytest.raises(KeyError):
        get_dataset("no-such-dataset")


def test_compute_metrics_on_stacked_rows():
    preds = np.array([[0.9, 0.1], [0.2, 0.8], [0.6, 0.4]])
    targs = np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
    metrics = compute_metrics(["accuracy", "rmse"], preds, targs)
    assert metrics["accuracy"] == pytest.approx(2 / 3)
    assert metrics["rmse"] == pytest.approx(np.sqrt(np.mean((preds - targs) ** 2)))


def test_sinks_write_one_record_per_epoch(tmp_path):
    jsonl = JsonlSink(tmp_path / "metrics.jsonl", seed=3, sha="abc")
    csv_sink = CsvSink(tmp_path / "metrics.csv")
    for epoch in (1, 2):
        metrics = {"loss": 1.0 / epoch, "training_rate": 0.1, "seconds": 0.01}
        jsonl.on_epoch(epoch, metrics)
        csv_sink(epoch, metrics)

    records = [json.loads(line) for line in jsonl.path.read_text().splitlines()]
    assert [r["epoch"] for r in records] == [1, 2]
    assert records[0]["sha"] == "abc" and records[0]["seed"] == 3
    assert records[1]["loss"] == pytest.approx(0.5)

    with csv_sink.path.open() as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 2
    assert rows[0]["phase"] == "train"


def test_summary_includes_cross_validation(tmp_path):
    jsonl = JsonlSink(tmp_path / "metrics.jsonl", sha="abc")
    jsonl(1, {"loss": 0.4})
    jsonl(2, {"loss": 0.2})
    cv = CrossValidationResult(
        folds=[FoldResult(0, 6, 3, 0.5), FoldResult(1, 5, 4, 1.0)], mean_score=0.75
    )
    out = write_summary(jsonl.path, tmp_path / "summary.json", cross_validation=cv)
    summary = json.loads(open(out).read())
    assert summary["records"] == 2
    assert summary["metrics"]["loss"] == {"min": 0.2, "max": 0.4, "mean": pytest.approx(0.3), "last": 0.2}
    assert summary["cross_validation"]["mean_score"] == 0.75
    assert [f["test_rows"] for f in summary["cross_validation"]["folds"]] == [3, 4]


def test_manifest_records_model_and_dataset(tmp_path):
    path = write_manifest(
        tmp_path / "manifest.json",
        config={"train": {"seed": 1}},
        dataset_provenance={"type": "blobs"},
        model_config={"layers": [], "loss": {"type": "Mean Squared Loss"}},
        parameter_count=0,
    )
    manifest = json.loads(open(path).read())
    assert manifest["dataset"]["type"] == "blobs"
    assert manifest["model"]["loss"]["type"] == "Mean Squared Loss"
    assert manifest["parameter_count"] == 0
    assert "numpy" in manifest["environment"]


def test_plot_adapter_writes_loss_curve_headless(tmp_path):
    plots = PlotAdapter(tmp_path, enable_plots=True)
    for epoch in (1, 2, 3):
        plots.on_epoch(epoch, {"loss": 1.0 / epoch, "training_rate": 0.1 / epoch})
    path = plots.close()
    assert path is not None and path.exists()

    disabled = PlotAdapter(tmp_path / "off")
    disabled.on_epoch(1, {"loss": 1.0})
    assert disabled.close() is None
    assert not (tmp_path / "off").exists()
