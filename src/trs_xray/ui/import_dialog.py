# src/trs_xray/ui/import_dialog.py
"""
trs80gpのダンプを貼り付けて取り込むダイアログ。
"""
import logging
from typing import Any, Callable

from PySide6.QtCore import Slot
from PySide6.QtWidgets import QDialog, QLabel, QPlainTextEdit, QPushButton, QVBoxLayout

from trs_xray.common.errors import MalformedImportError
from trs_xray.ui.fonts import get_monospace_font

logger = logging.getLogger(__name__)


# @intent:responsibility 貼り付けられたテキストを取り込み関数へ渡し、失敗時はエラーを表示して開いたままにします。
class ImportDialog(QDialog):
    def __init__(self, import_text: Callable[[str], Any], parent=None):
        super().__init__(parent)
        self.setWindowTitle("Import trs80gp dump")
        self.resize(600, 400)
        self._import_text = import_text

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel("Paste the JSON exported by trs80gp:"))
        self.text_edit = QPlainTextEdit()
        self.text_edit.setFont(get_monospace_font(10))
        self.text_edit.setStyleSheet("background-color: #101010; color: #BBBBBB;")
        layout.addWidget(self.text_edit)

        self.error_label = QLabel("")
        self.error_label.setStyleSheet("color: #FF5555;")
        self.error_label.setWordWrap(True)
        layout.addWidget(self.error_label)

        self.import_button = QPushButton("Import")
        self.import_button.setStyleSheet("background-color: #333; color: #EEE; border: 1px solid #444; padding: 4px;")
        self.import_button.clicked.connect(self._on_import)
        layout.addWidget(self.import_button)

    @Slot()
    def _on_import(self):
        try:
            self._import_text(self.text_edit.toPlainText())
        except MalformedImportError as e:
            logger.warning("Import failed: %s", e)
            self.error_label.setText(f"Failed to import trs80gp JSON: {e}")
            return
        self.error_label.setText("")
        self.accept()
