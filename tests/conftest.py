"""Shared test fixtures."""

import json
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_config_path() -> Path:
    return FIXTURES_DIR / "sample_config.toml"


@pytest.fixture
def video_info_data() -> dict:
    return json.loads((FIXTURES_DIR / "video_info.json").read_text())
