# trs_xray/core/state.py
"""
SUT（System Under Test）の状態定義。

このモジュールは、SUTから受信したコンテキストとZ80レジスタセットを保持する
不変のデータ構造を定義します。フラグは`af`の下位バイトから導出され、独立して保持されません。
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping

# Z80フラグビットマスク
# @intent:constant Z80フラグレジスタ内の各フラグビットの位置を定義します。
SIGN_MASK = 0b10000000        # Sign (符号)
ZERO_MASK = 0b01000000        # Zero (ゼロ)
UNDOC5_MASK = 0b00100000      # 未定義ビット5
HALF_CARRY_MASK = 0b00010000  # Half Carry (ハーフキャリー)
UNDOC3_MASK = 0b00001000      # 未定義ビット3
OVERFLOW_MASK = 0b00000100    # Parity/Overflow (パリティ/オーバーフロー)
SUBTRACT_MASK = 0b00000010    # Add/Subtract (加減算)
CARRY_MASK = 0b00000001       # Carry (キャリー)


# @intent:responsibility SUTのシステム情報と実行モードを保持します。
@dataclass(frozen=True)
class SutContext:
    """
    SUTのコンテキスト。コンテキストメッセージを受信するたびに丸ごと置き換えられます。
    """
    system_name: str = "N/A"
    model: int = 0
    running: bool = False
    alt_single_step_mode: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SutContext":
        # 古いSUTは running / alt_single_step_mode を送らないため既定値で補う
        return cls(
            system_name=str(data["system_name"]),
            model=int(data["model"]),
            running=bool(data.get("running", False)),
            alt_single_step_mode=bool(data.get("alt_single_step_mode", False)),
        )


# @intent:responsibility Z80の全レジスタ値を不変に保持します。
@dataclass(frozen=True)
class RegisterSet:
    """
    SUTのZ80レジスタセット。フィールド名はワイヤ形式のキーと一致します。
    レジスタメッセージごとに丸ごと置き換えられ、部分更新は行われません。
    """
    af: int = 0x0000
    bc: int = 0x0000
    de: int = 0x0000
    hl: int = 0x0000
    af_prime: int = 0x0000
    bc_prime: int = 0x0000
    de_prime: int = 0x0000
    hl_prime: int = 0x0000
    ix: int = 0x0000
    iy: int = 0x0000
    sp: int = 0x0000
    pc: int = 0x0000
    i: int = 0x00
    r_1: int = 0x00  # Refresh Register (下位)
    r_2: int = 0x00  # Refresh Register (上位)
    z80_iff1: int = 0
    z80_iff2: int = 0
    z80_interrupt_mode: int = 0
    z80_t_state_counter: int = 0
    z80_clockspeed: float = 0.0

    # @intent:responsibility ワイヤ形式の辞書からレジスタセットを生成します。
    # @intent:pre-condition 整数フィールドは全て存在する必要があります。欠落時はKeyErrorとなります。
    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RegisterSet":
        values: Dict[str, Any] = {}
        for name in _WORD_FIELDS:
            values[name] = int(data[name]) & 0xFFFF
        for name in _BYTE_FIELDS:
            values[name] = int(data[name]) & 0xFF
        for name in _COUNTER_FIELDS:
            values[name] = int(data.get(name, 0))
        values["z80_clockspeed"] = float(data.get("z80_clockspeed", 0.0))
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # 8bitレジスタ
    @property
    def a(self) -> int:
        return (self.af >> 8) & 0xFF

    @property
    def f(self) -> int:
        return self.af & 0xFF

    @property
    def b(self) -> int:
        return (self.bc >> 8) & 0xFF

    @property
    def c(self) -> int:
        return self.bc & 0xFF

    @property
    def h(self) -> int:
        return (self.hl >> 8) & 0xFF

    @property
    def l(self) -> int:
        return self.hl & 0xFF

    # @intent:accessor Fレジスタの各フラグビットを読み取り専用プロパティとして提供します。
    @property
    def flag_sign(self) -> bool:
        return (self.f & SIGN_MASK) != 0

    @property
    def flag_zero(self) -> bool:
        return (self.f & ZERO_MASK) != 0

    @property
    def flag_undoc5(self) -> bool:
        return (self.f & UNDOC5_MASK) != 0

    @property
    def flag_half_carry(self) -> bool:
        return (self.f & HALF_CARRY_MASK) != 0

    @property
    def flag_undoc3(self) -> bool:
        return (self.f & UNDOC3_MASK) != 0

    @property
    def flag_overflow(self) -> bool:
        return (self.f & OVERFLOW_MASK) != 0

    @property
    def flag_subtract(self) -> bool:
        return (self.f & SUBTRACT_MASK) != 0

    @property
    def flag_carry(self) -> bool:
        return (self.f & CARRY_MASK) != 0

    # @intent:responsibility 条件コード名(NZ, Z, NC, C, PO, PE, P, M)の成立を判定します。
    def condition(self, cc: str) -> bool:
        return {
            "NZ": not self.flag_zero,
            "Z": self.flag_zero,
            "NC": not self.flag_carry,
            "C": self.flag_carry,
            "PO": not self.flag_overflow,
            "PE": self.flag_overflow,
            "P": not self.flag_sign,
            "M": self.flag_sign,
        }[cc]

    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を表示名をキーとする辞書で返す。
        """
        return {
            "AF": self.af, "BC": self.bc, "DE": self.de, "HL": self.hl,
            "AF'": self.af_prime, "BC'": self.bc_prime, "DE'": self.de_prime, "HL'": self.hl_prime,
            "IX": self.ix, "IY": self.iy, "SP": self.sp, "PC": self.pc,
            "I": self.i, "R1": self.r_1, "R2": self.r_2, "IM": self.z80_interrupt_mode,
            "IFF1": self.z80_iff1, "IFF2": self.z80_iff2,
        }

    def get_flag_state(self) -> Dict[str, bool]:
        return {
            "S": self.flag_sign,
            "Z": self.flag_zero,
            "5": self.flag_undoc5,
            "H": self.flag_half_carry,
            "3": self.flag_undoc3,
            "PV": self.flag_overflow,
            "N": self.flag_subtract,
            "C": self.flag_carry,
        }


_WORD_FIELDS = (
    "af", "bc", "de", "hl", "af_prime", "bc_prime", "de_prime", "hl_prime",
    "ix", "iy", "sp", "pc",
)
_BYTE_FIELDS = ("i", "r_1", "r_2")
_COUNTER_FIELDS = ("z80_iff1", "z80_iff2", "z80_interrupt_mode", "z80_t_state_counter")
