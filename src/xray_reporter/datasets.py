"""Data-driven test datasets.

One file per DDT identifier, `<datasets_dir>/<KEY>.dataset.json`:

    {"dataset": [{"parameters": [{"name": "user", "value": "alice"}]}]}

Entry N of the dataset feeds "Iteration N + 1" of the test.
"""

import logging
from pathlib import Path
from typing import Any

import pytest
from pydantic import BaseModel, ValidationError

from xray_reporter.config import get_settings
from xray_reporter.exceptions import DatasetError
from xray_reporter.models.xray import XrayParameter

logger = logging.getLogger(__name__)


class DatasetEntry(BaseModel):
    """Parameters of one iteration."""

    parameters: list[XrayParameter]


class Dataset(BaseModel):
    """Content of a dataset file."""

    dataset: list[DatasetEntry]


def dataset_path(datasets_dir: Path, key: str) -> Path:
    return Path(datasets_dir) / f"{key}.dataset.json"


def load_dataset(datasets_dir: Path, key: str) -> Dataset:
    """Read and validate a dataset file.

    Raises:
        DatasetError: If the file is missing, unreadable or invalid.
    """
    path = dataset_path(datasets_dir, key)
    try:
        return Dataset.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise DatasetError(f"Cannot read dataset for {key}: {e}") from e
    except ValidationError as e:
        raise DatasetError(f"Invalid dataset for {key} ({path}): {e}") from e


class DatasetStore:
    """Cached access to iteration parameters."""

    def __init__(self, datasets_dir: Path) -> None:
        self.datasets_dir = Path(datasets_dir)
        self._datasets: dict[str, Dataset | None] = {}

    def get(self, key: str) -> Dataset | None:
        """Dataset of a DDT identifier, None (logged once) when unavailable."""
        if key not in self._datasets:
            try:
                self._datasets[key] = load_dataset(self.datasets_dir, key)
            except DatasetError as e:
                logger.warning(f"[DatasetStore] {e}")
                self._datasets[key] = None
        return self._datasets[key]

    def parameters(self, key: str, index: int) -> list[XrayParameter] | None:
        """Parameters of iteration `index` (0-based), None when unavailable."""
        dataset = self.get(key)
        if dataset is None:
            return None
        if not 0 <= index < len(dataset.dataset):
            logger.warning(
                f"[DatasetStore] Dataset for {key} has no entry for iteration {index + 1} "
                f"({len(dataset.dataset)} entries)"
            )
            return None
        return list(dataset.dataset[index].parameters)


def dataset_params(key: str, datasets_dir: Path | str | None = None) -> list[Any]:
    """Build parametrize values for a data-driven test.

    Each dataset entry becomes one `pytest.param` holding a `{name: value}`
    dict, with id `Iteration <N>` so the reporter can match it back.

    Example:
        # @DDT PROV-110
        @pytest.mark.parametrize("row", dataset_params("PROV-110"))
        def test_search(row): ...

    Raises:
        DatasetError: If the dataset cannot be loaded (collection fails).
    """
    directory = Path(datasets_dir) if datasets_dir is not None else get_settings().datasets_dir
    dataset = load_dataset(directory, key)
    return [
        pytest.param({p.name: p.value for p in entry.parameters}, id=f"Iteration {n}")
        for n, entry in enumerate(dataset.dataset, start=1)
    ]
