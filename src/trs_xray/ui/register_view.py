# src/trs_xray/ui/register_view.py
"""
Z80のレジスタを表示するウィジェット。
レジスタ配置定義（Z80_REGISTER_LAYOUT）に基づいてUIを構築します。
"""
from typing import Dict, List, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QFormLayout, QGroupBox, QLabel, QVBoxLayout, QWidget

from trs_xray.common.types import RegisterLayoutInfo, Z80_REGISTER_LAYOUT
from trs_xray.core.state import RegisterSet
from trs_xray.ui.fonts import get_monospace_font_family

GROUP_STYLE = """
    QGroupBox {
        font-weight: bold;
        border: 1px solid #222;
        border-radius: 4px;
        margin-top: 20px;
        color: #EEE;
        background-color: #121212;
    }
    QGroupBox::title {
        subcontrol-origin: margin;
        subcontrol-position: top left;
        padding: 0 5px;
        left: 10px;
        color: #00AAAA;
    }
"""


# @intent:responsibility SUTのレジスタ値と実行状態（Tステート・クロック）を表示します。
class RegisterView(QWidget):
    def __init__(self, layout_info: List[RegisterLayoutInfo] = Z80_REGISTER_LAYOUT, parent=None):
        super().__init__(parent)
        self.setStyleSheet("background-color: #121212; color: #BBBBBB;")

        self.layout = QVBoxLayout(self)
        self.layout.setContentsMargins(5, 5, 5, 5)

        self._font_family = get_monospace_font_family()
        self._register_labels: Dict[str, QLabel] = {}
        self._register_widths: Dict[str, int] = {}
        self._setup_ui(layout_info)

    def _setup_ui(self, layout_info: List[RegisterLayoutInfo]) -> None:
        value_style = f"font-family: '{self._font_family}', monospace; color: #FFD700;"
        for group in layout_info:
            group_box = QGroupBox(group.group_name)
            group_box.setStyleSheet(GROUP_STYLE)
            group_layout = QFormLayout(group_box)
            group_layout.setLabelAlignment(Qt.AlignLeft)
            group_layout.setContentsMargins(10, 15, 10, 10)
            group_layout.setSpacing(5)

            for reg in group.registers:
                hex_width = (reg.width + 3) // 4  # 16bit -> 4chars, 8bit -> 2chars
                self._register_widths[reg.name] = hex_width

                label_name = QLabel(f"{reg.name}:")
                label_name.setStyleSheet("font-weight: bold; color: #BBBBBB;")
                label_value = QLabel("-" * hex_width)
                label_value.setStyleSheet(value_style)
                label_value.setAlignment(Qt.AlignRight)

                group_layout.addRow(label_name, label_value)
                self._register_labels[reg.name] = label_value

            self.layout.addWidget(group_box)

        self.t_states_label = QLabel("T-states: -")
        self.t_states_label.setStyleSheet(value_style)
        self.clock_label = QLabel("Clock: -")
        self.clock_label.setStyleSheet(value_style)
        self.layout.addWidget(self.t_states_label)
        self.layout.addWidget(self.clock_label)
        self.layout.addStretch()

    # @intent:responsibility レジスタセットの値で表示を更新します。Noneの場合は未受信表示に戻します。
    def update_registers(self, registers: Optional[RegisterSet]) -> None:
        if registers is None:
            for name, label in self._register_labels.items():
                label.setText("-" * self._register_widths[name])
            return

        for name, value in registers.get_register_map().items():
            if name in self._register_labels:
                width = self._register_widths[name]
                self._register_labels[name].setText(f"{value:0{width}X}")
        self.t_states_label.setText(f"T-states: {registers.z80_t_state_counter}")
        self.clock_label.setText(f"Clock: {registers.z80_clockspeed:.2f} MHz")

    def register_text(self, name: str) -> str:
        return self._register_labels[name].text()
