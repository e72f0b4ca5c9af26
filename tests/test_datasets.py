"""
Tests for data-driven datasets.

Run with: uv run pytest tests/test_datasets.py -v
"""

import json

import pytest

from xray_reporter.datasets import DatasetStore, dataset_params, load_dataset
from xray_reporter.exceptions import DatasetError
from xray_reporter.models.xray import XrayParameter


class TestLoadDataset:
    def test_valid_file(self, datasets_dir):
        dataset = load_dataset(datasets_dir, "X-4")

        assert len(dataset.dataset) == 2
        assert dataset.dataset[1].parameters == [XrayParameter(name="query", value="hats")]

    def test_missing_file(self, datasets_dir):
        with pytest.raises(DatasetError, match="Cannot read dataset for X-99"):
            load_dataset(datasets_dir, "X-99")

    def test_invalid_content(self, datasets_dir):
        (datasets_dir / "BAD-1.dataset.json").write_text(json.dumps({"rows": []}))

        with pytest.raises(DatasetError, match="Invalid dataset for BAD-1"):
            load_dataset(datasets_dir, "BAD-1")


class TestDatasetStore:
    def test_parameters_by_index(self, datasets_dir):
        store = DatasetStore(datasets_dir)

        assert store.parameters("X-3", 2) == [XrayParameter(name="user", value="carol")]

    def test_out_of_range(self, datasets_dir):
        assert DatasetStore(datasets_dir).parameters("X-3", 3) is None

    def test_missing_dataset_is_cached(self, datasets_dir, caplog):
        store = DatasetStore(datasets_dir)

        assert store.parameters("X-99", 0) is None
        assert store.parameters("X-99", 1) is None
        assert caplog.text.count("Cannot read dataset for X-99") == 1

    def test_returns_copies(self, datasets_dir):
        store = DatasetStore(datasets_dir)

        store.parameters("X-4", 0).clear()

        assert store.parameters("X-4", 0) == [XrayParameter(name="query", value="shoes")]


class TestDatasetParams:
    def test_ids_and_values(self, datasets_dir):
        params = dataset_params("X-3", datasets_dir)

        assert [p.id for p in params] == ["Iteration 1", "Iteration 2", "Iteration 3"]
        assert params[0].values == ({"user": "alice"},)

    def test_default_directory_from_settings(self, datasets_dir, monkeypatch):
        monkeypatch.setenv("XRAY_DATASETS_DIR", str(datasets_dir))

        assert len(dataset_params("X-4")) == 2

    def test_missing_dataset_raises(self, tmp_path):
        with pytest.raises(DatasetError):
            dataset_params("X-1", tmp_path)
