# src/document_reader_core/services/file_metadata.py
from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from document_reader_core.models import UNKNOWN_SIZE, DocumentRecord, iso_timestamp

logger = logging.getLogger(__name__)

SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]

MIME_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "rtf": "application/rtf",
    "csv": "text/csv",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
    "zip": "application/zip",
    "rar": "application/vnd.rar",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "xml": "application/xml",
    "epub": "application/epub+zip",
    "mobi": "application/x-mobipocket-ebook",
}

SUPPORTED_FORMATS = frozenset({
    "pdf", "txt", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "rtf", "csv",
    "html", "htm", "xml", "json",
    "jpg", "jpeg", "png", "gif", "bmp", "webp", "svg",
})

CATEGORIES: list[tuple[str, frozenset[str]]] = [
    ("document", frozenset({"pdf", "doc", "docx", "txt", "rtf"})),
    ("spreadsheet", frozenset({"xls", "xlsx", "csv"})),
    ("presentation", frozenset({"ppt", "pptx"})),
    ("image", frozenset({"jpg", "jpeg", "png", "gif", "bmp", "webp", "svg"})),
    ("audio", frozenset({"mp3", "wav", "m4a", "aac"})),
    ("video", frozenset({"mp4", "avi", "mov", "wmv"})),
    ("archive", frozenset({"zip", "rar", "7z", "tar", "gz"})),
    ("web", frozenset({"html", "htm", "css", "js", "json", "xml"})),
    ("ebook", frozenset({"epub", "mobi"})),
]

_SIZE_RE = re.compile(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*([A-Za-z]+)\s*$")
# 2文字以上のスキーム（C: などのドライブレターは除く）
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]+:")


def has_scheme(uri: str) -> bool:
    return bool(_SCHEME_RE.match(uri))


def filename_from_uri(uri: str) -> str:
    if not uri:
        return ""
    # Windows のパス区切りも考慮する
    last = re.split(r"[\\/]", uri)[-1]
    if not has_scheme(uri):
        # ローカルパスの # や ? はファイル名の一部
        return last
    return last.split("#")[0].split("?")[0]


def file_extension(name_or_uri: str) -> str:
    filename = filename_from_uri(name_or_uri)
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def mime_type(extension: str) -> str:
    return MIME_TYPES.get(extension.lower(), "application/octet-stream")


def is_supported(extension: str) -> bool:
    return extension.lower() in SUPPORTED_FORMATS


def file_category(extension: str) -> str:
    ext = extension.lower()
    for category, exts in CATEGORIES:
        if ext in exts:
            return category
    return "other"


def format_file_size(num_bytes: int | float) -> str:
    if num_bytes <= 0:
        return "0 Bytes"
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    return f"{float(f'{value:.2f}'):g} {SIZE_UNITS[i]}"


def parse_file_size(text: str) -> float | None:
    """format_file_size の逆変換。解釈できなければ None。"""
    m = _SIZE_RE.match(text or "")
    if not m:
        return None
    unit = m.group(2).upper()
    units = [u.upper() for u in SIZE_UNITS]
    if unit == "B":
        unit = "BYTES"
    if unit not in units:
        return None
    return float(m.group(1)) * 1024 ** units.index(unit)


def uri_to_path(uri: str) -> Path:
    if uri.startswith("file:"):
        parsed = urlparse(uri)
        return Path(url2pathname(unquote(parsed.path)))
    return Path(uri).expanduser()


class FileMetadataProvider:
    def _stat(self, uri: str) -> DocumentRecord | None:
        path = uri_to_path(uri)
        if not path.is_file():
            return None
        st = path.stat()
        name = path.name
        return DocumentRecord(
            uri=uri,
            name=name,
            type=file_extension(name),
            size=format_file_size(st.st_size) if st.st_size else UNKNOWN_SIZE,
            last_modified=iso_timestamp(datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)),
        )

    async def describe(self, uri: str) -> DocumentRecord | None:
        try:
            return await asyncio.to_thread(self._stat, uri)
        except OSError:
            logger.warning("could not stat %s", uri, exc_info=True)
            return None

    async def document_info(self, uri: str, name: str, type: str) -> DocumentRecord:
        info = await self.describe(uri)
        if info is not None:
            return info
        # ファイル情報が取れない場合は呼び出し側の値で最低限のレコードを作る
        return DocumentRecord(
            uri=uri,
            name=name,
            type=type,
            size=UNKNOWN_SIZE,
            last_modified=iso_timestamp(),
        )
