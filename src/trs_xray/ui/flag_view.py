# src/trs_xray/ui/flag_view.py
"""
Z80のフラグを表示するウィジェット。
フラグはレジスタセットのAFから導出された値をそのまま表示します。
"""
from typing import Dict, Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QHBoxLayout, QLabel, QWidget

from trs_xray.core.state import RegisterSet
from trs_xray.ui.fonts import get_monospace_font_family


# @intent:responsibility フラグ状態を1/0で表示します。
class FlagView(QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setStyleSheet("background-color: #121212; color: #BBBBBB;")

        self.layout = QHBoxLayout(self)
        self.layout.setContentsMargins(10, 10, 10, 10)
        self.layout.setSpacing(15)

        self._font_family = get_monospace_font_family()
        self._flag_labels: Dict[str, QLabel] = {}

        # フラグの並びはRegisterSet.get_flag_state()のキー順に従う
        for flag_name in RegisterSet().get_flag_state().keys():
            label_name = QLabel(f"{flag_name}:")
            label_name.setStyleSheet("font-weight: bold; color: #BBBBBB;")

            label_value = QLabel("0")
            label_value.setStyleSheet(f"font-family: '{self._font_family}', monospace; color: #FFD700;")
            label_value.setFixedWidth(15)
            label_value.setAlignment(Qt.AlignCenter)

            self.layout.addWidget(label_name)
            self.layout.addWidget(label_value)
            self._flag_labels[flag_name] = label_value

        self.layout.addStretch(1)

    def update_flags(self, registers: Optional[RegisterSet]) -> None:
        flag_state = (registers or RegisterSet()).get_flag_state()
        for name, is_set in flag_state.items():
            self._flag_labels[name].setText("1" if is_set else "0")

    def flag_text(self, name: str) -> str:
        return self._flag_labels[name].text()
