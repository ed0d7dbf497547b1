# src/trs_xray/ui/hex_view.py
"""
メモリの内容を16進数とASCIIで表示するウィジェット。

直近の更新で変化したバイトを赤、選択中のバイトを青、PCの位置を黄で強調表示します。
下部の選択エディタで、アドレスの選択・値の書き込み・ブレークポイントの追加を行います。
"""
from typing import List, Optional

from PySide6.QtCore import QAbstractTableModel, QModelIndex, Qt, Signal, Slot
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QComboBox, QHBoxLayout, QHeaderView, QLabel, QLineEdit, QPushButton, QTableView,
    QVBoxLayout, QWidget
)

from trs_xray.config.models import MemoryRegion
from trs_xray.core.memory import MEMORY_SIZE, MemoryModel
from trs_xray.debugger.breakpoints import BreakpointType
from trs_xray.ui.fonts import get_monospace_font

BYTES_PER_ROW = 16
CHANGED_COLOR = QColor("#602020")
SELECTED_COLOR = QColor("#2A4A8A")
PC_COLOR = QColor("#404000")
FIELD_STYLE = "background-color: #252525; color: #EEE; border: 1px solid #444;"
BUTTON_STYLE = "background-color: #333; color: #EEE; border: 1px solid #444; padding: 4px;"


# @intent:responsibility メモリイメージを表形式で提供するモデル。1セルはbyte_sizeバイトのグループです。
class MemoryTableModel(QAbstractTableModel):
    def __init__(self, memory: MemoryModel, parent=None):
        super().__init__(parent)
        self._memory = memory
        self.selection: Optional[int] = None
        self.pc: Optional[int] = None

    @property
    def group_size(self) -> int:
        return self._memory.byte_size

    @property
    def group_count(self) -> int:
        return -(-BYTES_PER_ROW // self.group_size)

    def rowCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else MEMORY_SIZE // BYTES_PER_ROW

    def columnCount(self, parent=QModelIndex()) -> int:
        return 0 if parent.isValid() else self.group_count + 1  # 末尾はASCII列

    # @intent:responsibility セルに対応するアドレス範囲を返します。ASCII列の場合は行全体です。
    def addresses_at(self, row: int, column: int) -> range:
        row_start = row * BYTES_PER_ROW
        if column >= self.group_count:
            return range(row_start, row_start + BYTES_PER_ROW)
        start = row_start + column * self.group_size
        return range(start, min(start + self.group_size, row_start + BYTES_PER_ROW))

    def data(self, index: QModelIndex, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        addresses = self.addresses_at(index.row(), index.column())
        is_ascii = index.column() >= self.group_count

        if role == Qt.DisplayRole:
            values = self._memory.read(addresses.start, len(addresses))
            if is_ascii:
                return "".join(chr(b) if 32 <= b <= 126 else "." for b in values)
            return "".join(f"{b:02X}" for b in values)
        if role == Qt.BackgroundRole and not is_ascii:
            if self.pc is not None and self.pc in addresses:
                return PC_COLOR
            if self.selection is not None and self.selection in addresses:
                return SELECTED_COLOR
            if any(self._memory.is_changed(addr) for addr in addresses):
                return CHANGED_COLOR
        if role == Qt.TextAlignmentRole:
            return int(Qt.AlignCenter)
        return None

    def headerData(self, section: int, orientation, role=Qt.DisplayRole):
        if role != Qt.DisplayRole:
            return None
        if orientation == Qt.Vertical:
            return f"{section * BYTES_PER_ROW:04X}"
        if section >= self.group_count:
            return "ASCII"
        return f"+{section * self.group_size:X}"

    def refresh_rows(self, touched: range) -> None:
        if len(touched) == 0:
            return
        first = touched.start // BYTES_PER_ROW
        last = (touched.stop - 1) // BYTES_PER_ROW
        self.dataChanged.emit(self.index(first, 0), self.index(last, self.columnCount() - 1))

    def reset(self) -> None:
        self.beginResetModel()
        self.endResetModel()


# @intent:responsibility メモリダンプと選択エディタを表示します。
class HexView(QWidget):
    """
    選択エディタへの入力は検証せずにシグナルとして送出し、検証はセッションが行います。
    """
    address_clicked = Signal(int)
    selection_entered = Signal(str, str)           # hi, lo
    value_entered = Signal(str)
    breakpoint_requested = Signal(str, str, object)  # hi, lo, BreakpointType

    def __init__(self, memory: MemoryModel, regions: Optional[List[MemoryRegion]] = None, parent=None):
        super().__init__(parent)
        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(0, 0, 0, 0)

        self.model = MemoryTableModel(memory, self)
        self.table = QTableView()
        self.table.setModel(self.model)
        self.table.setFont(get_monospace_font(10))
        self.table.setShowGrid(False)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        self.table.setStyleSheet("background-color: #101010; color: #BBBBBB;")
        self.table.clicked.connect(self._on_cell_clicked)

        self.region_combo = QComboBox()
        self.region_combo.setStyleSheet(FIELD_STYLE)
        self.region_combo.addItem("Jump to region...", None)
        for region in regions or []:
            self.region_combo.addItem(f"{region.start:04X}-{region.end:04X} {region.label}", region.start)
        self.region_combo.activated.connect(self._on_region_selected)
        self.layout.addWidget(self.region_combo)
        self.layout.addWidget(self.table)
        self.layout.addLayout(self._create_selection_editor())

        memory.subscribe(self.model.refresh_rows)
        memory.subscribe_byte_size(lambda _: self.model.reset())

    def _create_selection_editor(self) -> QHBoxLayout:
        editor = QHBoxLayout()
        editor.addWidget(QLabel("Addr:"))
        self.addr_hi_input = QLineEdit()
        self.addr_lo_input = QLineEdit()
        for field in (self.addr_hi_input, self.addr_lo_input):
            field.setMaxLength(2)
            field.setFixedWidth(32)
            field.setStyleSheet(FIELD_STYLE)
            field.editingFinished.connect(self._on_address_edited)
            editor.addWidget(field)

        editor.addWidget(QLabel("Value:"))
        self.value_input = QLineEdit()
        self.value_input.setMaxLength(2)
        self.value_input.setFixedWidth(32)
        self.value_input.setStyleSheet(FIELD_STYLE)
        self.value_input.returnPressed.connect(lambda: self.value_entered.emit(self.value_input.text()))
        editor.addWidget(self.value_input)

        for bp_type in BreakpointType:
            button = QPushButton(f"+{bp_type.label} BP")
            button.setStyleSheet(BUTTON_STYLE)
            button.clicked.connect(lambda _=False, t=bp_type: self.breakpoint_requested.emit(
                self.addr_hi_input.text(), self.addr_lo_input.text(), t))
            editor.addWidget(button)
        editor.addStretch()
        return editor

    # @intent:responsibility 選択アドレスとその値を選択エディタと強調表示へ反映します。
    def set_selection(self, address: Optional[int], value: Optional[int] = None) -> None:
        previous = self.model.selection
        self.model.selection = address
        if address is not None:
            self.addr_hi_input.setText(f"{address >> 8:02X}")
            self.addr_lo_input.setText(f"{address & 0xFF:02X}")
            self.value_input.setText("" if value is None else f"{value:02X}")
            self.model.refresh_rows(range(address, address + 1))
        else:
            # 選択解除時は古いアドレスを残さない
            for field in (self.addr_hi_input, self.addr_lo_input, self.value_input):
                field.clear()
        if previous is not None:
            self.model.refresh_rows(range(previous, previous + 1))

    def set_pc(self, pc: Optional[int]) -> None:
        previous = self.model.pc
        self.model.pc = pc
        for addr in (previous, pc):
            if addr is not None:
                self.model.refresh_rows(range(addr, addr + 1))

    def scroll_to_address(self, address: int) -> None:
        self.table.scrollTo(self.model.index(address // BYTES_PER_ROW, 0), QTableView.PositionAtTop)

    @Slot(QModelIndex)
    def _on_cell_clicked(self, index: QModelIndex):
        if index.column() < self.model.group_count:
            self.address_clicked.emit(self.model.addresses_at(index.row(), index.column()).start)

    @Slot()
    def _on_address_edited(self):
        self.selection_entered.emit(self.addr_hi_input.text(), self.addr_lo_input.text())

    @Slot(int)
    def _on_region_selected(self, index: int):
        start = self.region_combo.itemData(index)
        if start is not None:
            self.scroll_to_address(start)
