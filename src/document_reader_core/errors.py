# src/document_reader_core/errors.py
"""
メタデータストアの例外階層。

読み込み失敗は呼び出し側に出さない（空リスト扱い）が、
書き込み失敗は UI に通知できるよう必ず送出する。
"""

from __future__ import annotations


class DocumentStoreError(Exception):
    pass


class StorageReadError(DocumentStoreError):
    def __init__(self, key: str, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"failed to read storage key {key!r}")


class StorageWriteError(DocumentStoreError):
    def __init__(self, key: str, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"failed to write storage key {key!r}")


class InvalidRecordError(DocumentStoreError, ValueError):
    pass
