"""
Pytest configuration and shared fixtures for the Xray reporter tests.
"""

import json
import os
from pathlib import Path

import pytest

from xray_reporter.config import reset_settings


@pytest.fixture(autouse=True)
def clean_xray_env(monkeypatch):
    """Run every test without XRAY_* variables and with fresh settings."""
    for key in list(os.environ):
        if key.startswith("XRAY_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def datasets_dir(tmp_path: Path) -> Path:
    """Directory with a three-iteration dataset for X-3 and a two-iteration one for X-4."""
    directory = tmp_path / "datasets"
    directory.mkdir()
    (directory / "X-3.dataset.json").write_text(
        json.dumps(
            {
                "dataset": [
                    {"parameters": [{"name": "user", "value": "alice"}]},
                    {"parameters": [{"name": "user", "value": "bob"}]},
                    {"parameters": [{"name": "user", "value": "carol"}]},
                ]
            }
        )
    )
    (directory / "X-4.dataset.json").write_text(
        json.dumps(
            {
                "dataset": [
                    {"parameters": [{"name": "query", "value": "shoes"}]},
                    {"parameters": [{"name": "query", "value": "hats"}]},
                ]
            }
        )
    )
    return directory
