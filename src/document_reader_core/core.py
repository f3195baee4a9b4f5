# src/document_reader_core/core.py
"""
プロジェクトの中核ロジック。
設定を読み込み、メタデータストアを組み立てて UI（PyQt）を起動する。
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from PyQt6.QtWidgets import QApplication

from document_reader_core.config import load_config
from document_reader_core.services.file_metadata import file_extension, is_supported
from document_reader_core.services.metadata_store import open_store
from document_reader_core.ui.main_window import MainWindow

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    config = load_config()
    configure_logging(config.log_level)
    logger.info("starting %s (data dir: %s)", config.app_name, config.data_dir)

    app = QApplication(sys.argv)
    # ストアは起動時に1つだけ作り、ウィンドウへ渡す
    store = open_store(config)
    win = MainWindow(store)

    # 起動引数でドキュメントパスを受け取る（任意）
    # 例: document-reader path.pdf
    if len(sys.argv) >= 2:
        p = Path(sys.argv[1]).expanduser()
        if p.exists() and p.is_file() and is_supported(file_extension(p.name)):
            win.open_document(str(p))
        else:
            logger.warning("ignoring unsupported or missing file: %s", p)

    win.show()
    sys.exit(app.exec())
