"""
逆アセンブルコードを表示するウィジェット。
"""
from typing import Iterable, List, Optional

from PySide6.QtGui import QColor
from PySide6.QtWidgets import QHeaderView, QTableWidget, QTableWidgetItem, QVBoxLayout, QWidget

from trs_xray.arch.z80.decoder import Instruction
from trs_xray.ui.fonts import get_monospace_font

PC_HIGHLIGHT = QColor("#404000")  # Dark Yellow
NORMAL_BACKGROUND = QColor("#101010")
BREAKPOINT_COLOR = QColor("#DD3333")


# @intent:responsibility セッションが生成した命令リストを表形式で表示し、現在のPCをハイライトします。
class CodeView(QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(0, 0, 0, 0)

        self.table = QTableWidget()
        self.table.setColumnCount(4)
        self.table.setHorizontalHeaderLabels(["", "Address", "Bytes", "Mnemonic"])
        self.table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeToContents)  # Breakpoint
        self.table.horizontalHeader().setSectionResizeMode(1, QHeaderView.ResizeToContents)  # Address
        self.table.horizontalHeader().setSectionResizeMode(2, QHeaderView.ResizeToContents)  # Bytes
        self.table.horizontalHeader().setSectionResizeMode(3, QHeaderView.Stretch)           # Mnemonic
        self.table.setFont(get_monospace_font(10))
        self.table.verticalHeader().setVisible(False)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        self.table.setShowGrid(False)
        self.table.setStyleSheet("background-color: #101010; color: #BBBBBB; gridline-color: #303030;")
        self.layout.addWidget(self.table)

        self.listing: List[Instruction] = []

    # @intent:responsibility 命令リストで表示を置き換え、PCの行をハイライトしてスクロールします。
    def update_code(self, listing: List[Instruction], pc: Optional[int], breakpoints: Iterable[int] = ()):
        self.listing = list(listing)
        marked = set(breakpoints)
        self.table.setRowCount(len(self.listing))

        pc_row = -1
        for row, instruction in enumerate(self.listing):
            marker_item = QTableWidgetItem("●" if instruction.address in marked else "")
            marker_item.setForeground(BREAKPOINT_COLOR)
            items = [
                marker_item,
                QTableWidgetItem(f"{instruction.address:04X}"),
                QTableWidgetItem(instruction.hex_dump),
                QTableWidgetItem(instruction.text),
            ]
            background = PC_HIGHLIGHT if instruction.address == pc else NORMAL_BACKGROUND
            for col, item in enumerate(items):
                item.setBackground(background)
                self.table.setItem(row, col, item)
            if instruction.address == pc:
                pc_row = row

        if pc_row != -1:
            self.table.scrollToItem(self.table.item(pc_row, 1), QTableWidget.PositionAtTop)

    def row_text(self, row: int) -> str:
        return self.table.item(row, 3).text()
