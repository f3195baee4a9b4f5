# src/document_reader_core/models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from document_reader_core.errors import InvalidRecordError

UNKNOWN_SIZE = "Unknown"


def iso_timestamp(dt: datetime | None = None) -> str:
    """UTC のミリ秒精度 ISO-8601 文字列（末尾 Z）を返す。"""
    dt = dt or datetime.now(timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    """ISO-8601 文字列を UTC の datetime に。解釈できなければ None。"""
    if not value:
        return None
    text = value.strip()
    # Python 3.10 の fromisoformat は末尾 Z を受け付けない
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class DocumentRecord(BaseModel):
    # JSON 上は既存の保存データと互換の camelCase（lastModified / accessedAt）
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    uri: StrictStr
    name: StrictStr
    type: StrictStr = ""
    size: Union[StrictStr, StrictInt, StrictFloat] = UNKNOWN_SIZE
    last_modified: Optional[StrictStr] = None
    accessed_at: Optional[StrictStr] = None

    @field_validator("uri", "name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("type")
    @classmethod
    def _lower_type(cls, value: str) -> str:
        return value.lower()

    def touched(self, when: datetime | None = None) -> DocumentRecord:
        return self.model_copy(update={"accessed_at": iso_timestamp(when)})

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(cls, data: Any) -> DocumentRecord:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidRecordError(f"invalid document record: {e}") from e

    @classmethod
    def from_json(cls, text: str) -> DocumentRecord:
        try:
            return cls.model_validate_json(text)
        except ValidationError as e:
            raise InvalidRecordError(f"invalid document record: {e}") from e
