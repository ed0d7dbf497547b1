"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用される汎用的な型エイリアスなどを定義します。
"""
from typing import Callable, List, NamedTuple

# @intent:data_structure SUTへ送出するコマンド文字列を受け取るシンク。送信できた場合Trueを返す。
# Breakpoint Registry, Step Predictor, Sessionなど複数のレイヤーで共通して使用されます。
CommandSink = Callable[[str], bool]

# @intent:data_structure 単一のレジスタの表示定義。UIが動的にフィールドを生成するために使用される。
class RegisterInfo(NamedTuple):
    name: str
    width: int  # ビット幅 (8 or 16)

# @intent:data_structure レジスタグループの表示定義。関連するレジスタ（例: "Main", "Index"）をまとめる。
class RegisterLayoutInfo(NamedTuple):
    group_name: str
    registers: List[RegisterInfo]


# @intent:data_structure Z80レジスタパネルの配置定義。
Z80_REGISTER_LAYOUT: List[RegisterLayoutInfo] = [
    RegisterLayoutInfo("Main Registers", [
        RegisterInfo("AF", 16), RegisterInfo("BC", 16), RegisterInfo("DE", 16), RegisterInfo("HL", 16)
    ]),
    RegisterLayoutInfo("Alternate Registers", [
        RegisterInfo("AF'", 16), RegisterInfo("BC'", 16), RegisterInfo("DE'", 16), RegisterInfo("HL'", 16)
    ]),
    RegisterLayoutInfo("Index & Control", [
        RegisterInfo("IX", 16), RegisterInfo("IY", 16), RegisterInfo("SP", 16), RegisterInfo("PC", 16)
    ]),
    RegisterLayoutInfo("Special", [
        RegisterInfo("I", 8), RegisterInfo("R1", 8), RegisterInfo("R2", 8), RegisterInfo("IM", 8),
        RegisterInfo("IFF1", 8), RegisterInfo("IFF2", 8)
    ]),
]
