# trs_xray/debugger/breakpoints.py
"""
Breakpoint Registry

SUTが管理するブレークポイントの一覧をクライアント側に保持し、追加・削除・全置換を扱います。
ステップ予測器が設置した一時的なブレークポイント（合成ブレークポイント）は、
クライアント側でのみ識別され、SUTには区別が伝わりません。
"""
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, List, Mapping, Sequence, Set

from trs_xray.common.observer import Observable
from trs_xray.common.types import CommandSink

logger = logging.getLogger(__name__)


# @intent:responsibility ブレークポイントの種類を定義します。値はSUTの符号化と一致する必要があります。
class BreakpointType(IntEnum):
    PC = 0       # プログラムカウンタ
    MEMORY = 1   # メモリウォッチ
    IO = 2       # I/Oウォッチ

    @property
    def command_name(self) -> str:
        return {BreakpointType.PC: "pc", BreakpointType.MEMORY: "memory", BreakpointType.IO: "io"}[self]

    @property
    def label(self) -> str:
        return {BreakpointType.PC: "PC", BreakpointType.MEMORY: "Memory", BreakpointType.IO: "IO"}[self]


# @intent:responsibility SUTから報告された1件のブレークポイントを表します。
@dataclass(frozen=True)
class Breakpoint:
    id: int
    address: int
    type: BreakpointType

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Breakpoint":
        return cls(
            id=int(data["id"]),
            address=int(data["address"]) & 0xFFFF,
            type=BreakpointType(int(data["type"])),
        )

    # @intent:rationale ブレークポイント条件は、一度受信したら変更されないため、不変にします（frozen=True）。


# @intent:responsibility ブレークポイント一覧の保持、変更検出、ブレークポイント操作コマンドの送出を行います。
class BreakpointRegistry:
    """
    ブレークポイントの一覧を保持するレジストリ。

    追加・削除はSUTへのコマンド送出のみを行い、一覧の更新はSUTから
    権威ある一覧を受信した時点（replace_all）で行われます。
    合成タグは add_synthetic 経由で要求されたPCアドレスの集合から導出されます。
    """
    def __init__(self, send: CommandSink):
        self._send = send
        self._breakpoints: List[Breakpoint] = []
        self._pending_synthetic: Set[int] = set()
        self._synthetic_ids: Set[int] = set()
        self._changed: Observable[List[Breakpoint]] = Observable()

    # @intent:responsibility SUTから受信した一覧で全置換します。
    # @intent:post-condition 保存済みの一覧と順序を含めて同一であれば何もせず、通知も行いません。
    def replace_all(self, new_list: Sequence[Breakpoint]) -> bool:
        """
        一覧を置き換えた場合にTrueを返します。
        SUTは無関係なイベントでも一覧を再送するため、同一の一覧による再通知を抑止します。
        """
        new_list = list(new_list)
        if new_list == self._breakpoints:
            return False

        self._breakpoints = new_list
        self._synthetic_ids = {
            bp.id for bp in new_list
            if bp.type is BreakpointType.PC and bp.address in self._pending_synthetic
        }
        logger.debug("Breakpoints replaced: %d entries (%d synthetic)", len(new_list), len(self._synthetic_ids))
        self._changed.notify(list(new_list))
        return True

    # @intent:responsibility ユーザー操作によるブレークポイント追加コマンドを送出します。
    def add_real(self, address: int, bp_type: BreakpointType = BreakpointType.PC) -> bool:
        address &= 0xFFFF
        if bp_type is BreakpointType.PC:
            self._pending_synthetic.discard(address)
        return self._send(f"add_breakpoint/{bp_type.command_name}/{address}")

    # @intent:responsibility ステップ予測器による合成PCブレークポイントの追加コマンドを送出します。
    def add_synthetic(self, address: int) -> bool:
        address &= 0xFFFF
        self._pending_synthetic.add(address)
        return self._send(f"add_breakpoint/{BreakpointType.PC.command_name}/{address}")

    def remove(self, bp_id: int) -> bool:
        return self._send(f"remove_breakpoint/{bp_id}")

    # @intent:responsibility SUT上の全ブレークポイントを消去するコマンドを送出し、合成アドレスの記録を破棄します。
    # @intent:pre-condition 合成ブレークポイントの設置中は他のクライアントがブレークポイントを変更しないこと。
    def clear_synthetic(self) -> bool:
        """
        SUT側には合成/ユーザーの区別がないため、ユーザーのブレークポイントも同時に消去されます。
        """
        self._pending_synthetic.clear()
        return self._send("clear_breakpoints")

    @property
    def breakpoints(self) -> List[Breakpoint]:
        return list(self._breakpoints)

    def is_synthetic(self, bp: Breakpoint) -> bool:
        return bp.id in self._synthetic_ids

    def user_breakpoints(self) -> List[Breakpoint]:
        """合成ブレークポイントを除いた一覧を返します。"""
        return [bp for bp in self._breakpoints if not self.is_synthetic(bp)]

    def subscribe(self, callback: Callable[[List[Breakpoint]], None]) -> Callable[[], None]:
        return self._changed.subscribe(callback)
