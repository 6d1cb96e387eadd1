"""Pytest fixtures and configuration for mailtag tests.

Provides common fixtures for configuration, tag data, and mocked stores.
"""

import os
from pathlib import Path
from typing import Any, Generator
from unittest.mock import AsyncMock

import pytest

from mailtag.config import reset_config
from mailtag.config_schema import AppConfig


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory."""
    data = tmp_path / "data"
    data.mkdir()
    return data


@pytest.fixture
def sample_config_yaml(data_dir: Path) -> str:
    """Return a minimal valid config.yaml content with two custom tags."""
    return f"""
schema_version: 1

logging:
  level: "DEBUG"
  json_output: false

prompt:
  max_chars: 2000

tags:
  store_path: "{data_dir / 'tags.db'}"
  custom_tags:
    - key: "is_bill"
      name: "Bill"
      color: "#f4b136"
      prompt: "check if email contains bill or invoice information."
    - key: "is_newsletter"
      name: "Newsletter"
      color: "#607D8B"
      prompt: "check if email is a newsletter."
"""


@pytest.fixture
def sample_config_dict() -> dict[str, Any]:
    """Return a minimal valid config as a dictionary."""
    return {
        "schema_version": 1,
        "prompt": {"max_chars": 2000},
        "tags": {
            "custom_tags": [
                {
                    "key": "is_bill",
                    "name": "Bill",
                    "color": "#f4b136",
                    "prompt": "check if email contains bill or invoice information.",
                },
            ],
        },
    }


@pytest.fixture
def sample_config(sample_config_dict: dict[str, Any]) -> AppConfig:
    """Return a minimal valid AppConfig instance."""
    return AppConfig(**sample_config_dict)


@pytest.fixture
def config_file(temp_config_dir: Path, sample_config_yaml: str) -> Path:
    """Create a temporary config file with valid content."""
    config_path = temp_config_dir / "config.yaml"
    config_path.write_text(sample_config_yaml)
    return config_path


@pytest.fixture
def set_config_env(config_file: Path) -> Generator[None, None, None]:
    """Set the MAILTAG_CONFIG_PATH environment variable."""
    old_value = os.environ.get("MAILTAG_CONFIG_PATH")
    os.environ["MAILTAG_CONFIG_PATH"] = str(config_file)
    yield
    if old_value is None:
        del os.environ["MAILTAG_CONFIG_PATH"]
    else:
        os.environ["MAILTAG_CONFIG_PATH"] = old_value


@pytest.fixture
def mock_tag_store() -> AsyncMock:
    """Return a tag store mock with an empty tag list."""
    store = AsyncMock()
    store.get_all_tags.return_value = []
    store.create_tag.return_value = None
    return store
