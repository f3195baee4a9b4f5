"""
テスト共通のフィクスチャ。
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from document_reader_core.models import DocumentRecord
from document_reader_core.services.metadata_store import DocumentMetadataStore
from document_reader_core.services.storage import MemoryStorage


class TickingClock:
    """呼ばれるたびに1秒進む時計。"""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class FailingStorage(MemoryStorage):
    def __init__(self, fail_get: bool = False, fail_set: bool = False, fail_remove: bool = False, **kw) -> None:
        super().__init__(**kw)
        self.fail_get = fail_get
        self.fail_set = fail_set
        self.fail_remove = fail_remove
        self.set_calls = 0

    async def get(self, key: str) -> str | None:
        if self.fail_get:
            raise OSError("disk unavailable")
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        self.set_calls += 1
        if self.fail_set:
            raise OSError("disk full")
        await super().set(key, value)

    async def remove(self, key: str) -> None:
        if self.fail_remove:
            raise OSError("read-only filesystem")
        await super().remove(key)


def make_record(uri: str, name: str | None = None, type: str | None = None, **kw) -> DocumentRecord:
    name = name or f"{uri}.pdf"
    if type is None:
        type = name.rsplit(".", 1)[-1] if "." in name else ""
    return DocumentRecord(uri=uri, name=name, type=type, **kw)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage, clock) -> DocumentMetadataStore:
    return DocumentMetadataStore(storage, clock=clock)
