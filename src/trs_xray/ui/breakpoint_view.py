# src/trs_xray/ui/breakpoint_view.py
"""
ブレークポイントの一覧表示UIウィジェット。
ステップ予測器が設置した合成ブレークポイントは表示しません。
"""
from typing import List

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtWidgets import (
    QHeaderView, QPushButton, QTableWidget, QTableWidgetItem, QVBoxLayout, QWidget
)

from trs_xray.debugger.breakpoints import Breakpoint
from trs_xray.ui.fonts import get_monospace_font


class BreakpointView(QWidget):
    """
    ユーザーのブレークポイントを一覧表示するウィジェット。
    行をクリックするとそのアドレスを選択し、Removeボタンで削除を要求します。
    """
    address_selected = Signal(int)
    breakpoint_removed = Signal(int)  # id

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setStyleSheet("background-color: #121212; color: #BBBBBB;")

        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(5, 5, 5, 5)

        self.bp_table = QTableWidget()
        self.bp_table.setColumnCount(3)
        self.bp_table.setHorizontalHeaderLabels(["Address", "Type", "ID"])
        self.bp_table.horizontalHeader().setSectionResizeMode(0, QHeaderView.Stretch)
        self.bp_table.horizontalHeader().setSectionResizeMode(1, QHeaderView.ResizeToContents)
        self.bp_table.horizontalHeader().setSectionResizeMode(2, QHeaderView.ResizeToContents)
        self.bp_table.verticalHeader().setVisible(False)
        self.bp_table.setSelectionBehavior(QTableWidget.SelectRows)
        self.bp_table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.bp_table.setFont(get_monospace_font(10))
        self.bp_table.setStyleSheet("""
            QTableWidget {
                background-color: #121212;
                color: #BBBBBB;
                gridline-color: #303030;
                border: none;
            }
            QHeaderView::section {
                background-color: #252525;
                color: #BBBBBB;
                border: 1px solid #333;
            }
        """)
        self.bp_table.itemSelectionChanged.connect(self._on_selection_changed)
        self.bp_table.cellClicked.connect(self._on_cell_clicked)
        self.layout.addWidget(self.bp_table)

        self.remove_button = QPushButton("Remove Selected")
        self.remove_button.setStyleSheet("background-color: #333; color: #EEE; border: 1px solid #444; padding: 4px;")
        self.remove_button.setEnabled(False)
        self.remove_button.clicked.connect(self._remove_selected_breakpoint)
        self.layout.addWidget(self.remove_button)

    # @intent:responsibility 表示中の一覧を置き換えます。
    def set_breakpoints(self, breakpoints: List[Breakpoint]) -> None:
        self.bp_table.setRowCount(0)
        for bp in breakpoints:
            row = self.bp_table.rowCount()
            self.bp_table.insertRow(row)
            address_item = QTableWidgetItem(f"{bp.address >> 8:02X} {bp.address & 0xFF:02X}")
            address_item.setData(Qt.UserRole, bp)
            self.bp_table.setItem(row, 0, address_item)
            self.bp_table.setItem(row, 1, QTableWidgetItem(bp.type.label))
            self.bp_table.setItem(row, 2, QTableWidgetItem(str(bp.id)))

    def breakpoint_at(self, row: int) -> Breakpoint:
        return self.bp_table.item(row, 0).data(Qt.UserRole)

    @Slot(int, int)
    def _on_cell_clicked(self, row: int, col: int):
        self.address_selected.emit(self.breakpoint_at(row).address)

    @Slot()
    def _on_selection_changed(self):
        self.remove_button.setEnabled(len(self.bp_table.selectedItems()) > 0)

    @Slot()
    def _remove_selected_breakpoint(self):
        rows = sorted(set(item.row() for item in self.bp_table.selectedItems()))
        for row in rows:
            # 一覧の更新はSUTからの応答で行われる
            self.breakpoint_removed.emit(self.breakpoint_at(row).id)
