import json
from pathlib import Path

import pytest

SAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "sample_config.json"


@pytest.fixture
def sample_config_path() -> Path:
    return SAMPLE_CONFIG


@pytest.fixture
def sample_config_dict() -> dict:
    return json.loads(SAMPLE_CONFIG.read_text(encoding="utf-8"))
