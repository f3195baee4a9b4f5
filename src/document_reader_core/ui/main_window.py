# src/document_reader_core/ui/main_window.py
from __future__ import annotations

import asyncio
from typing import Any, Coroutine, TypeVar

from PyQt6.QtCore import Qt, QUrl
from PyQt6.QtGui import QAction, QDesktopServices, QKeySequence
from PyQt6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QTabWidget,
    QToolBar,
)

from document_reader_core.errors import DocumentStoreError
from document_reader_core.models import DocumentRecord
from document_reader_core.services.file_metadata import (
    SUPPORTED_FORMATS,
    FileMetadataProvider,
    uri_to_path,
)
from document_reader_core.services.metadata_store import DocumentMetadataStore, sort_documents

T = TypeVar("T")

_RECORD_ROLE = Qt.ItemDataRole.UserRole

# (表示名, sort_documents のキー)。None は保存順のまま
SORT_CHOICES: list[tuple[str, str | None]] = [
    ("Default order", None),
    ("Name", "name"),
    ("Type", "type"),
    ("Size", "size"),
    ("Modified", "lastModified"),
    ("Opened", "accessedAt"),
]

ALL_TYPES = "All types"


def _open_filter() -> str:
    patterns = " ".join(f"*.{ext}" for ext in sorted(SUPPORTED_FORMATS))
    return f"Documents ({patterns});;All Files (*)"


class MainWindow(QMainWindow):
    def __init__(
        self,
        store: DocumentMetadataStore,
        provider: FileMetadataProvider | None = None,
        restore_last: bool = True,
    ) -> None:
        super().__init__()
        self.setWindowTitle("document-reader-core")

        self._store = store
        self._provider = provider or FileMetadataProvider()
        # ストアはコルーチンなので、ウィンドウ専用のイベントループで回す
        self._loop = asyncio.new_event_loop()

        self._tabs = QTabWidget(self)
        self._recent_list = self._make_list()
        self._bookmark_list = self._make_list()
        self._all_list = self._make_list()
        self._search_list = self._make_list()
        self._tabs.addTab(self._recent_list, "Recent")
        self._tabs.addTab(self._bookmark_list, "Bookmarks")
        self._tabs.addTab(self._all_list, "All")
        self._tabs.addTab(self._search_list, "Search")
        self._tabs.currentChanged.connect(lambda _: self._update_bookmark_action())
        self.setCentralWidget(self._tabs)

        self._build_toolbar()
        self._build_menus()
        self.refresh()

        # 起動時に最後に開いたドキュメントを選択状態に戻す（履歴があれば）
        if restore_last:
            self._restore_last()

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        # 閉じた後にシグナルが来た / 再表示された場合はループを作り直す
        if self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(coro)

    def _make_list(self) -> QListWidget:
        lst = QListWidget(self)
        lst.itemActivated.connect(self._on_item_activated)
        lst.currentItemChanged.connect(lambda *_: self._update_bookmark_action())
        return lst

    def _build_toolbar(self) -> None:
        tb = QToolBar("Main")
        tb.setMovable(False)
        self.addToolBar(tb)

        act_open = QAction("Open", self)
        act_open.setShortcut(QKeySequence.StandardKey.Open)
        act_open.triggered.connect(self.open_document_dialog)
        tb.addAction(act_open)

        self._act_bookmark = QAction("Bookmark", self)
        self._act_bookmark.setCheckable(True)
        self._act_bookmark.setShortcut(QKeySequence("Ctrl+D"))
        self._act_bookmark.triggered.connect(self.on_toggle_bookmark)
        tb.addAction(self._act_bookmark)

        tb.addSeparator()

        self._search = QLineEdit(self)
        self._search.setPlaceholderText("Search recent and bookmarked documents...")
        self._search.returnPressed.connect(self.on_search)
        tb.addWidget(self._search)

        tb.addSeparator()

        # All / Search タブの並び順と種類の絞り込み
        self._type_combo = QComboBox(self)
        self._type_combo.addItem(ALL_TYPES)
        self._type_combo.currentIndexChanged.connect(lambda _: self._refresh_all())
        tb.addWidget(self._type_combo)

        self._sort_combo = QComboBox(self)
        for label, key in SORT_CHOICES:
            self._sort_combo.addItem(label, key)
        self._sort_combo.currentIndexChanged.connect(lambda _: self._on_sort_changed())
        tb.addWidget(self._sort_combo)

        tb.addSeparator()

        self._lbl_status = QLabel("", self)
        self._lbl_status.setAlignment(Qt.AlignmentFlag.AlignVCenter | Qt.AlignmentFlag.AlignRight)
        self._lbl_status.setMinimumWidth(140)
        tb.addWidget(self._lbl_status)

        # Ctrl+F で検索欄へ
        act_focus_find = QAction("Find", self)
        act_focus_find.setShortcut(QKeySequence.StandardKey.Find)
        act_focus_find.triggered.connect(self._focus_search)
        self.addAction(act_focus_find)

    def _build_menus(self) -> None:
        m_file = self.menuBar().addMenu("File")

        act_open = QAction("Open...", self)
        act_open.triggered.connect(self.open_document_dialog)
        m_file.addAction(act_open)

        self._recent_menu = m_file.addMenu("Recent")

        act_clear = QAction("Clear Recent", self)
        act_clear.triggered.connect(self.on_clear_recent)
        m_file.addAction(act_clear)

        m_file.addSeparator()

        act_exit = QAction("Exit", self)
        act_exit.setShortcut(QKeySequence.StandardKey.Quit)
        act_exit.triggered.connect(self.close)
        m_file.addAction(act_exit)

        self._bookmarks_menu = self.menuBar().addMenu("Bookmarks")

    # ---- rendering ----

    def refresh(self) -> None:
        recent = self._run(self._store.get_recent())
        bookmarks = self._run(self._store.get_bookmarks())

        self._fill_list(self._recent_list, recent)
        self._fill_list(self._bookmark_list, bookmarks)
        self._fill_menu(self._recent_menu, recent)
        self._fill_menu(self._bookmarks_menu, bookmarks)
        self._refresh_type_choices()
        self._refresh_all()
        # 検索中なら結果も最新の状態に合わせる
        if self._search.text().strip():
            self._refresh_search()
        self._lbl_status.setText(f"{len(recent)} recent / {len(bookmarks)} bookmarked")
        self._update_bookmark_action()

    def _sorted(self, records: list[DocumentRecord]) -> list[DocumentRecord]:
        key = self._sort_combo.currentData()
        if key is None:
            return records
        return sort_documents(records, key, descending=key in ("lastModified", "accessedAt"))

    def _refresh_type_choices(self) -> None:
        current = self._type_combo.currentText()
        docs = self._run(self._store.get_all_documents())
        types = sorted({r.type for r in docs if r.type})

        self._type_combo.blockSignals(True)
        self._type_combo.clear()
        self._type_combo.addItem(ALL_TYPES)
        self._type_combo.addItems(types)
        idx = self._type_combo.findText(current)
        self._type_combo.setCurrentIndex(idx if idx >= 0 else 0)
        self._type_combo.blockSignals(False)

    def _refresh_all(self) -> None:
        doc_type = self._type_combo.currentText()
        if doc_type and doc_type != ALL_TYPES:
            docs = self._run(self._store.get_documents_by_type(doc_type))
        else:
            docs = self._run(self._store.get_all_documents())
        self._fill_list(self._all_list, self._sorted(docs))

    def _refresh_search(self) -> list[DocumentRecord]:
        results = self._sorted(self._run(self._store.search_documents(self._search.text())))
        self._fill_list(self._search_list, results)
        return results

    def _fill_list(self, lst: QListWidget, records: list[DocumentRecord]) -> None:
        lst.clear()
        for r in records:
            item = QListWidgetItem(f"{r.name}  [{r.type or '?'}]  {r.size}")
            item.setToolTip(r.uri)
            item.setData(_RECORD_ROLE, r)
            lst.addItem(item)

    def _fill_menu(self, menu, records: list[DocumentRecord]) -> None:
        menu.clear()
        for r in records:
            act = QAction(r.name, self)
            act.setToolTip(r.uri)
            act.triggered.connect(lambda _=False, rec=r: self.open_document(rec.uri))
            menu.addAction(act)
        if not records:
            menu.addAction("(empty)").setEnabled(False)

    def _restore_last(self) -> None:
        last = self._run(self._store.get_last())
        if last is None or not uri_to_path(last.uri).exists():
            return
        self._tabs.setCurrentWidget(self._recent_list)
        self._recent_list.setCurrentRow(0)
        self.statusBar().showMessage(f"Last opened: {last.name}", 3000)

    def _selected_record(self) -> DocumentRecord | None:
        lst = self._tabs.currentWidget()
        if not isinstance(lst, QListWidget) or lst.currentItem() is None:
            return None
        return lst.currentItem().data(_RECORD_ROLE)

    def _update_bookmark_action(self) -> None:
        rec = self._selected_record()
        self._act_bookmark.setEnabled(rec is not None)
        self._act_bookmark.setChecked(rec is not None and self._run(self._store.is_bookmarked(rec.uri)))

    def _focus_search(self) -> None:
        self._search.setFocus(Qt.FocusReason.ShortcutFocusReason)
        self._search.selectAll()

    def _notify_write_failed(self, what: str, err: DocumentStoreError) -> None:
        QMessageBox.warning(self, "Save failed", f"Failed to update {what}.\n\n{err}")

    # ---- actions ----

    def open_document_dialog(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Open Document", "", _open_filter())
        if not path:
            return
        self.open_document(path)

    def open_document(self, uri: str) -> None:
        record = self._run(self._provider.describe(uri))
        if record is None:
            QMessageBox.critical(self, "Open failed", f"File not found:\n{uri}")
            return

        try:
            self._run(self._store.add_to_recent(record))
        except DocumentStoreError as e:
            self._notify_write_failed("recent documents", e)

        # 描画はホスト OS のビューアに任せる
        QDesktopServices.openUrl(QUrl.fromLocalFile(str(uri_to_path(uri))))
        self.refresh()

    def _on_item_activated(self, item: QListWidgetItem) -> None:
        rec: DocumentRecord = item.data(_RECORD_ROLE)
        self.open_document(rec.uri)

    def on_toggle_bookmark(self) -> None:
        rec = self._selected_record()
        if rec is None:
            return
        try:
            state = self._run(self._store.toggle_bookmark(rec))
        except DocumentStoreError as e:
            self._notify_write_failed("bookmark", e)
        else:
            self.statusBar().showMessage("Bookmarked" if state else "Bookmark removed", 1500)
        self.refresh()

    def on_clear_recent(self) -> None:
        try:
            self._run(self._store.clear_recent())
        except DocumentStoreError as e:
            self._notify_write_failed("recent documents", e)
        self.refresh()

    def on_search(self) -> None:
        results = self._refresh_search()
        self._tabs.setCurrentWidget(self._search_list)
        if not results:
            self.statusBar().showMessage("No matches", 1500)

    def _on_sort_changed(self) -> None:
        self._refresh_all()
        if self._search.text().strip():
            self._refresh_search()

    def closeEvent(self, event) -> None:
        if not self._loop.is_closed():
            self._loop.run_until_complete(self._loop.shutdown_default_executor())
            self._loop.close()
        super().closeEvent(event)
