# trs_xray/debugger/session.py
"""
デバッグセッションモジュール。

各状態モデル（コンテキスト・レジスタ・メモリ・ブレークポイント）を束ね、
ユーザー操作をSUTへのコマンドに変換し、状態の変化を表示層へ通知する責務を負います。
"""
import logging
import re
from enum import Enum
from typing import Callable, List, Optional

from trs_xray.arch.z80.decoder import Instruction
from trs_xray.arch.z80.disassembler import Disassembler
from trs_xray.common.errors import InvalidAddressInputError, InvalidValueInputError
from trs_xray.common.observer import Observable
from trs_xray.common.types import CommandSink
from trs_xray.config.models import SessionConfig
from trs_xray.core.memory import MemoryModel
from trs_xray.core.registers import RegisterModel
from trs_xray.core.state import RegisterSet, SutContext
from trs_xray.debugger.breakpoints import Breakpoint, BreakpointRegistry, BreakpointType
from trs_xray.debugger.stepper import StepPredictor
from trs_xray.loader.trs80gp import ImportedDump, Trs80gpImporter
from trs_xray.transport.connection import ConnectionHealth, ConnectionManager
from trs_xray.transport.protocol import Frame, MessageRouter, decode_message

logger = logging.getLogger(__name__)

_HEX_BYTE = re.compile(r"^[0-9A-Fa-f]{2}$")
_HEX_VALUE = re.compile(r"^[0-9A-Fa-f]{1,2}$")

# @intent:constant 表示確認用の固定メッセージ（sdlTRSから受信した実データ）。
TEST_DATA = {
    "context": {"system_name": "sdlTRS", "model": 3, "running": True, "alt_single_step_mode": False},
    "breakpoints": [
        {"id": 0, "address": 4656, "type": 0},
        {"id": 1, "address": 6163, "type": 0},
        {"id": 2, "address": 9545, "type": 0},
    ],
    "registers": {
        "pc": 2, "sp": 65535, "af": 68, "bc": 0, "de": 0, "hl": 0,
        "af_prime": 0, "bc_prime": 0, "de_prime": 0, "hl_prime": 0,
        "ix": 0, "iy": 0, "i": 0, "r_1": 0, "r_2": 2,
        "z80_t_state_counter": 8, "z80_clockspeed": 2.0299999713897705,
        "z80_iff1": 0, "z80_iff2": 0, "z80_interrupt_mode": 0,
    },
}


# @intent:responsibility セッションが購読者へ通知するイベントの種類を定義します。
class SessionEvent(Enum):
    CONTEXT = "CONTEXT"
    REGISTERS = "REGISTERS"
    MEMORY = "MEMORY"
    BREAKPOINTS = "BREAKPOINTS"
    SELECTION = "SELECTION"
    LISTING = "LISTING"
    CONNECTION = "CONNECTION"


def parse_hex_address(hi: str, lo: str) -> int:
    """
    2桁の16進数フィールド2つから16bitアドレス（hi*256+lo）を組み立てます。
    """
    hi = hi.strip()
    lo = lo.strip()
    if not _HEX_BYTE.match(hi) or not _HEX_BYTE.match(lo):
        raise InvalidAddressInputError(f"Invalid address: '{hi}' '{lo}'")
    return int(hi, 16) * 256 + int(lo, 16)


# @intent:responsibility デバッグセッション全体の状態を保持し、ユーザー操作を実行します。
class DebugSession:
    """
    コンテキストと選択カーソルはセッションが所有し、その他の状態は各モデルが所有します。
    コマンドの送出先（CommandSink）は接続の付け替えに備えて間接的に参照されます。
    """
    def __init__(self, config: Optional[SessionConfig] = None, send: Optional[CommandSink] = None):
        self.config = config or SessionConfig()
        self._sink: CommandSink = send or _unavailable
        self._connection: Optional[ConnectionManager] = None

        self._context = SutContext()
        self._selection: Optional[int] = None
        self._listing: List[Instruction] = []
        self.full_memory_update = self.config.full_memory_update

        self.registers = RegisterModel()
        self.memory = MemoryModel()
        self.breakpoints = BreakpointRegistry(self.send_command)
        self.disassembler = Disassembler(self.memory)
        self.importer = Trs80gpImporter()
        self._stepper = StepPredictor(
            send=self.send_command,
            registry=self.breakpoints,
            predictor=self.disassembler.predict_next_pc,
            context_provider=lambda: self._context,
            registers_provider=lambda: self.registers.registers,
        )
        self.router = MessageRouter(
            on_context=self._on_context,
            on_breakpoints=self.breakpoints.replace_all,
            on_registers=self.registers.update,
            on_memory=self.memory.apply_update,
        )
        self._events: Observable[SessionEvent] = Observable()

        self.registers.subscribe(self._on_registers_updated)
        self.memory.subscribe(self._on_memory_updated)
        self.breakpoints.subscribe(lambda _: self._notify(SessionEvent.BREAKPOINTS))

    # --- 接続 ---

    # @intent:responsibility コネクションマネージャを接続し、コマンドの送出先と健全性の通知を結び付けます。
    def attach_connection(self, connection: ConnectionManager) -> None:
        self._connection = connection
        self._sink = connection.send_command
        connection.subscribe(lambda _: self._notify(SessionEvent.CONNECTION))

    @property
    def connection(self) -> Optional[ConnectionManager]:
        return self._connection

    @property
    def connection_health(self) -> ConnectionHealth:
        if self._connection is None:
            return ConnectionHealth.DEGRADED
        return self._connection.health

    def send_command(self, action: str) -> bool:
        return self._sink(action)

    # @intent:responsibility デコード済みのフレームを各モデルへ配送します。
    def handle_frame(self, frame: Frame) -> None:
        self.router.route(frame)

    # --- 状態の参照 ---

    @property
    def context(self) -> SutContext:
        return self._context

    @property
    def selection(self) -> Optional[int]:
        return self._selection

    @property
    def listing(self) -> List[Instruction]:
        return list(self._listing)

    def user_breakpoints(self) -> List[Breakpoint]:
        return self.breakpoints.user_breakpoints()

    def subscribe(self, callback: Callable[[SessionEvent], None]) -> Callable[[], None]:
        return self._events.subscribe(callback)

    # --- 実行制御 ---

    # @intent:responsibility ステップを要求します。通常モードではステップ後にメモリ更新も要求します。
    def step(self) -> List[int]:
        context = self._context
        installed = self._stepper.request_step()
        if not context.running and not context.alt_single_step_mode:
            self.request_memory_update()
        return installed

    def resume(self) -> None:
        self.send_command("continue")
        self.request_memory_update()

    def stop(self) -> None:
        self.send_command("stop")
        self.request_memory_update()

    def soft_reset(self) -> None:
        self.send_command("soft_reset")
        self.request_memory_update()

    def hard_reset(self) -> None:
        self.send_command("hard_reset")
        self.request_memory_update()

    def force_refresh(self) -> None:
        self.send_command("refresh")
        self.send_command("get_memory/force_update")

    def inject_demo(self) -> None:
        self.send_command("inject_demo")

    # @intent:responsibility メモリ更新ポリシーに従ってメモリの取得を要求します。
    def request_memory_update(self) -> bool:
        if self.full_memory_update:
            return self.send_command("get_memory/0/65536")
        window = self.config.partial_window
        return self.send_command(f"get_memory/{window.start}/{window.length}")

    def toggle_full_memory_update(self) -> bool:
        self.full_memory_update = not self.full_memory_update
        logger.info("Full memory update %s", "enabled" if self.full_memory_update else "disabled")
        return self.full_memory_update

    # --- 入力 ---

    # @intent:responsibility SUTへキーイベントを送出します。キーリピートの抑止は呼び出し元が行います。
    def send_key(self, down: bool, shift: bool, key: str) -> bool:
        return self.send_command(f"key_event/{int(down)}/{int(shift)}/{key}")

    def select_address(self, address: Optional[int]) -> None:
        self._selection = None if address is None else address & 0xFFFF
        self._notify(SessionEvent.SELECTION)

    # @intent:responsibility 2つの16進数フィールドから選択アドレスを設定します。
    # @intent:pre-condition 入力が不正な場合はInvalidAddressInputErrorを送出し、選択状態は変更されません。
    def select_from_hex_fields(self, hi: str, lo: str) -> int:
        address = parse_hex_address(hi, lo)
        self.select_address(address)
        return address

    # @intent:responsibility 選択中のアドレスへ16進数の値を書き込むコマンドを送出します。
    def write_selected(self, value_text: str) -> bool:
        if self._selection is None:
            raise InvalidValueInputError("No address selected.")
        value_text = value_text.strip()
        if not _HEX_VALUE.match(value_text):
            raise InvalidValueInputError(f"Invalid value: '{value_text}'")
        return self.send_command(f"set_memory/{self._selection}/{int(value_text, 16)}")

    def add_breakpoint_from_hex_fields(self, hi: str, lo: str,
                                       bp_type: BreakpointType = BreakpointType.PC) -> bool:
        address = parse_hex_address(hi, lo)
        return self.breakpoints.add_real(address, bp_type)

    def remove_breakpoint(self, bp_id: int) -> bool:
        return self.breakpoints.remove(bp_id)

    # --- インポート・診断 ---

    # @intent:responsibility trs80gpのダンプを取り込みます。解析に失敗した場合、状態は一切変更されません。
    def import_trs80gp(self, text: str) -> ImportedDump:
        dump = self.importer.parse(text)
        self._on_context(dump.context)
        self.registers.update(dump.registers)
        # 2回適用して変更マップを全てクリアする
        self.memory.apply_update(dump.memory_block)
        self.memory.apply_update(dump.memory_block)
        return dump

    def insert_test_data(self) -> None:
        logger.info("Inserting test data for debugging...")
        self.router.route(decode_message(TEST_DATA))

    # --- 内部ハンドラ ---

    def _on_context(self, context: SutContext) -> None:
        self._context = context
        logger.debug("Context: %s M%d running=%s alt_step=%s", context.system_name, context.model,
                     context.running, context.alt_single_step_mode)
        self._notify(SessionEvent.CONTEXT)

    def _on_registers_updated(self, registers: RegisterSet) -> None:
        self._notify(SessionEvent.REGISTERS)
        self._refresh_listing()

    def _on_memory_updated(self, touched: range) -> None:
        # 更新後はアドレスの意味が変わりうるため選択を解除する
        self._selection = None
        self._notify(SessionEvent.MEMORY)
        self._notify(SessionEvent.SELECTION)
        self._refresh_listing()

    def _refresh_listing(self) -> None:
        registers = self.registers.registers
        if registers is None:
            self._listing = []
        else:
            self._listing = self.disassembler.listing(
                registers.pc, self.config.listing_length, self.memory.last_nonzero_address()
            )
        self._notify(SessionEvent.LISTING)

    def _notify(self, event: SessionEvent) -> None:
        self._events.notify(event)


def _unavailable(action: str) -> bool:
    logger.debug("Command dropped, no connection: %s", action)
    return False
