"""
UIフォント管理モジュール。

ダンプ・逆アセンブル・レジスタ表示で桁を揃えるための等幅フォントを選択します。
"""
from PySide6.QtGui import QFont, QFontDatabase

PREFERRED_FONTS = ("Consolas", "Menlo", "DejaVu Sans Mono", "Courier New")


# @intent:responsibility 現在のシステムで利用可能な等幅フォントファミリー名を返します。
def get_monospace_font_family() -> str:
    available_families = QFontDatabase.families()
    for font in PREFERRED_FONTS:
        if font in available_families:
            return font
    return QFontDatabase.systemFont(QFontDatabase.FixedFont).family()


def get_monospace_font(size: int = 10) -> QFont:
    return QFont(get_monospace_font_family(), size)
