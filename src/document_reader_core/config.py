# src/document_reader_core/config.py
"""
アプリ設定。既定値に DOCUMENT_READER_* 環境変数の上書きを重ねるだけの薄い層。
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "document-reader-core"
MAX_RECENT = 20


def default_data_dir() -> Path:
    return Path.home() / ".document_reader_core"


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DOCUMENT_READER_",
        frozen=True,
        populate_by_name=True,
        case_sensitive=False,
    )

    app_name: str = APP_NAME
    # 環境変数名は DOCUMENT_READER_HOME（prefix は alias には付かない）
    data_dir: Path = Field(default_factory=default_data_dir, validation_alias="DOCUMENT_READER_HOME")
    max_recent: PositiveInt = MAX_RECENT
    log_level: str = "INFO"

    @field_validator("data_dir")
    @classmethod
    def _expand_home(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


def load_config() -> AppConfig:
    return AppConfig()
