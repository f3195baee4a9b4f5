# src/document_reader_core/services/metadata_store.py
"""
最近開いたドキュメントとブックマークのメタデータストア。

- 読み込み失敗（キーなし / JSON 破損 / Storage 例外）は空リスト扱い
- 書き込み失敗は StorageWriteError で呼び出し側に通知する
- 更新系は asyncio.Lock で直列化し、read-modify-write の取りこぼしを防ぐ
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping

from document_reader_core.config import MAX_RECENT, AppConfig
from document_reader_core.errors import InvalidRecordError, StorageReadError, StorageWriteError
from document_reader_core.models import DocumentRecord, parse_timestamp
from document_reader_core.services.file_metadata import parse_file_size
from document_reader_core.services.storage import JsonFileStorage, Storage

logger = logging.getLogger(__name__)

RECENT_DOCUMENTS_KEY = "recentDocuments"
BOOKMARKS_KEY = "bookmarks"

SORT_KEYS = ("name", "type", "size", "lastModified", "accessedAt")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique(records: Iterable[DocumentRecord]) -> list[DocumentRecord]:
    seen: set[str] = set()
    out: list[DocumentRecord] = []
    for r in records:
        if r.uri in seen:
            continue
        seen.add(r.uri)
        out.append(r)
    return out


def _size_key(size: Any) -> float:
    if isinstance(size, (int, float)):
        return float(size)
    parsed = parse_file_size(str(size))
    return parsed if parsed is not None else 0.0


_NO_TIME = datetime.min.replace(tzinfo=timezone.utc)


def _time_key(value: str | None) -> datetime:
    # オフセット付きの時刻も UTC に揃えて比較する。未設定・解釈不能は先頭
    return parse_timestamp(value) or _NO_TIME


def sort_documents(
    records: Iterable[DocumentRecord], key: str = "name", descending: bool = False
) -> list[DocumentRecord]:
    if key == "name":
        sort_key: Callable[[DocumentRecord], Any] = lambda r: r.name.lower()
    elif key == "type":
        sort_key = lambda r: r.type
    elif key == "size":
        sort_key = lambda r: _size_key(r.size)
    elif key == "lastModified":
        sort_key = lambda r: _time_key(r.last_modified)
    elif key == "accessedAt":
        sort_key = lambda r: _time_key(r.accessed_at)
    else:
        raise ValueError(f"unknown sort key {key!r} (expected one of {', '.join(SORT_KEYS)})")
    return sorted(records, key=sort_key, reverse=descending)


def _coerce(record: DocumentRecord | Mapping[str, Any]) -> DocumentRecord:
    if isinstance(record, DocumentRecord):
        return record
    if isinstance(record, Mapping):
        return DocumentRecord.from_dict(dict(record))
    raise InvalidRecordError(f"expected a DocumentRecord, got {type(record).__name__}")


class DocumentMetadataStore:
    def __init__(
        self,
        storage: Storage,
        max_recent: int = MAX_RECENT,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if max_recent < 1:
            raise ValueError(f"max_recent must be >= 1, got {max_recent}")
        self._storage = storage
        self._max_recent = max_recent
        self._clock = clock or _utcnow
        self._write_lock = asyncio.Lock()

    @property
    def max_recent(self) -> int:
        return self._max_recent

    # ---- persistence ----

    def _decode(self, key: str, raw: str | None) -> list[DocumentRecord]:
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError):
            logger.warning("storage key %r holds invalid JSON; treating as empty", key)
            return []
        if not isinstance(data, list):
            logger.warning("storage key %r holds %s instead of a list; treating as empty", key, type(data).__name__)
            return []

        items: list[DocumentRecord] = []
        for entry in data:
            try:
                items.append(DocumentRecord.from_dict(entry))
            except InvalidRecordError as e:
                logger.warning("skipping invalid record under %r: %s", key, e)
        return _unique(items)

    async def _load(self, key: str) -> list[DocumentRecord]:
        try:
            raw = await self._storage.get(key)
        except Exception:
            logger.warning("failed to read storage key %r; treating as empty", key, exc_info=True)
            return []
        return self._decode(key, raw)

    async def _load_for_update(self, key: str) -> list[DocumentRecord]:
        # 更新中の読み込み失敗は空扱いにしない（既存データを上書きしてしまうため）
        try:
            raw = await self._storage.get(key)
        except Exception as e:
            logger.error("failed to read storage key %r before update", key, exc_info=True)
            raise StorageReadError(key) from e
        return self._decode(key, raw)

    async def _save(self, key: str, items: list[DocumentRecord]) -> None:
        payload = json.dumps([r.to_dict() for r in items], ensure_ascii=False)
        try:
            await self._storage.set(key, payload)
        except Exception as e:
            logger.error("failed to write storage key %r", key, exc_info=True)
            raise StorageWriteError(key) from e

    async def _remove_key(self, key: str) -> None:
        try:
            await self._storage.remove(key)
        except Exception as e:
            logger.error("failed to remove storage key %r", key, exc_info=True)
            raise StorageWriteError(key) from e

    # ---- recent ----

    async def get_recent(self) -> list[DocumentRecord]:
        return (await self._load(RECENT_DOCUMENTS_KEY))[: self._max_recent]

    async def get_last(self) -> DocumentRecord | None:
        items = await self.get_recent()
        return items[0] if items else None

    async def add_to_recent(self, record: DocumentRecord | Mapping[str, Any]) -> DocumentRecord:
        record = _coerce(record).touched(self._clock())
        async with self._write_lock:
            items = [r for r in await self._load_for_update(RECENT_DOCUMENTS_KEY) if r.uri != record.uri]
            items.insert(0, record)
            items = items[: self._max_recent]
            await self._save(RECENT_DOCUMENTS_KEY, items)
        logger.debug("recent: %s moved to front (%d entries)", record.uri, len(items))
        return record

    async def clear_recent(self) -> None:
        async with self._write_lock:
            await self._save(RECENT_DOCUMENTS_KEY, [])

    # ---- bookmarks ----

    async def get_bookmarks(self) -> list[DocumentRecord]:
        return await self._load(BOOKMARKS_KEY)

    async def is_bookmarked(self, uri: str) -> bool:
        return any(r.uri == uri for r in await self.get_bookmarks())

    async def add_bookmark(self, record: DocumentRecord | Mapping[str, Any]) -> bool:
        record = _coerce(record)
        async with self._write_lock:
            return await self._add_bookmark_locked(record)

    async def _add_bookmark_locked(self, record: DocumentRecord) -> bool:
        items = await self._load_for_update(BOOKMARKS_KEY)
        if any(r.uri == record.uri for r in items):
            return False
        items.insert(0, record)
        await self._save(BOOKMARKS_KEY, items)
        logger.debug("bookmark added: %s", record.uri)
        return True

    async def remove_bookmark(self, uri: str) -> bool:
        async with self._write_lock:
            return await self._remove_bookmark_locked(uri)

    async def _remove_bookmark_locked(self, uri: str) -> bool:
        items = await self._load_for_update(BOOKMARKS_KEY)
        kept = [r for r in items if r.uri != uri]
        if len(kept) == len(items):
            return False
        await self._save(BOOKMARKS_KEY, kept)
        logger.debug("bookmark removed: %s", uri)
        return True

    async def toggle_bookmark(self, record: DocumentRecord | Mapping[str, Any]) -> bool:
        """ブックマーク状態を反転し、反転後の状態を返す。"""
        record = _coerce(record)
        async with self._write_lock:
            if await self._remove_bookmark_locked(record.uri):
                return False
            await self._add_bookmark_locked(record)
            return True

    # ---- queries ----

    async def get_all_documents(self) -> list[DocumentRecord]:
        recent = await self.get_recent()
        bookmarks = await self.get_bookmarks()
        return _unique([*recent, *bookmarks])

    async def get_documents_by_type(self, type: str) -> list[DocumentRecord]:
        wanted = type.lower()
        return [r for r in await self.get_all_documents() if r.type == wanted]

    async def search_documents(self, query: str) -> list[DocumentRecord]:
        # 空クエリは全件ではなく空を返す（従来挙動のまま）
        q = query.strip().lower()
        if not q:
            return []
        return [r for r in await self.get_all_documents() if q in r.name.lower() or q in r.type.lower()]

    # ---- store-wide ----

    async def clear_all(self) -> None:
        async with self._write_lock:
            await self._remove_key(RECENT_DOCUMENTS_KEY)
            await self._remove_key(BOOKMARKS_KEY)


def open_store(config: AppConfig) -> DocumentMetadataStore:
    storage = JsonFileStorage(config.data_dir, config.app_name)
    return DocumentMetadataStore(storage, max_recent=config.max_recent)
