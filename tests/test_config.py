from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from document_reader_core.config import APP_NAME, MAX_RECENT, AppConfig, load_config

_ENV_VARS = (
    "DOCUMENT_READER_HOME",
    "DOCUMENT_READER_MAX_RECENT",
    "DOCUMENT_READER_LOG_LEVEL",
    "DOCUMENT_READER_APP_NAME",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config()
    assert config.app_name == APP_NAME
    assert config.max_recent == MAX_RECENT == 20
    assert config.data_dir == Path.home() / ".document_reader_core"
    assert config.log_level == "INFO"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DOCUMENT_READER_HOME", str(tmp_path))
    monkeypatch.setenv("DOCUMENT_READER_MAX_RECENT", "5")
    monkeypatch.setenv("DOCUMENT_READER_LOG_LEVEL", "debug")

    config = load_config()
    assert config.data_dir == tmp_path
    assert config.max_recent == 5
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("value", ["abc", "0", "-3"])
def test_invalid_max_recent(monkeypatch, value):
    monkeypatch.setenv("DOCUMENT_READER_MAX_RECENT", value)
    with pytest.raises(ValidationError):
        load_config()


def test_keyword_arguments(tmp_path):
    config = AppConfig(data_dir=tmp_path, max_recent=3)
    assert config.data_dir == tmp_path
    assert config.max_recent == 3
    with pytest.raises(ValidationError):
        AppConfig(max_recent=0)


def test_config_is_frozen():
    config = AppConfig()
    with pytest.raises(ValidationError):
        config.max_recent = 1
