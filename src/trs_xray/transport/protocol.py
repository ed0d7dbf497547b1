# trs_xray/transport/protocol.py
"""
Protocol Message Router

SUTから受信したフレームを境界で一度だけデコードし、タグ付きの型
（StructuredFrame / MemoryBlockFrame）へ変換したうえで、各状態モデルへ配送します。
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Union

from trs_xray.common.errors import FrameDecodeError
from trs_xray.core.state import RegisterSet, SutContext
from trs_xray.debugger.breakpoints import Breakpoint

logger = logging.getLogger(__name__)

HEADER_LENGTH = 2


# @intent:data_structure テキストフレームのデコード結果。各要素は任意の組み合わせで同時に存在しえます。
@dataclass(frozen=True)
class StructuredFrame:
    context: Optional[SutContext] = None
    registers: Optional[RegisterSet] = None
    breakpoints: Optional[List[Breakpoint]] = field(default=None)

    def is_empty(self) -> bool:
        return self.context is None and self.registers is None and self.breakpoints is None


# @intent:data_structure バイナリフレームのデコード結果。常に単独で届きます。
@dataclass(frozen=True)
class MemoryBlockFrame:
    block: bytes

    @property
    def start(self) -> int:
        return (self.block[0] << 8) | self.block[1]

    @property
    def payload_length(self) -> int:
        return len(self.block) - HEADER_LENGTH


Frame = Union[StructuredFrame, MemoryBlockFrame]


# @intent:responsibility テキストフレームをStructuredFrameへデコードします。
# @intent:pre-condition textはJSONオブジェクトであること。形式不正はFrameDecodeErrorとなります。
def decode_text_frame(text: str) -> StructuredFrame:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise FrameDecodeError(f"Invalid JSON frame: {e}") from e
    return decode_message(data)


# @intent:responsibility 解析済みのメッセージ辞書をStructuredFrameへ変換します。
def decode_message(data: Any) -> StructuredFrame:
    if not isinstance(data, dict):
        raise FrameDecodeError(f"Structured frame must be an object, got {type(data).__name__}.")

    # nullのセクションは存在しないものとして扱う
    raw_context = data.get("context")
    raw_registers = data.get("registers")
    raw_breakpoints = data.get("breakpoints")
    try:
        context = SutContext.from_dict(raw_context) if raw_context is not None else None
        registers = RegisterSet.from_dict(raw_registers) if raw_registers is not None else None
        breakpoints = None
        if raw_breakpoints is not None:
            if not isinstance(raw_breakpoints, list):
                raise TypeError("breakpoints must be a list")
            breakpoints = [Breakpoint.from_dict(bp) for bp in raw_breakpoints]
    except (KeyError, TypeError, ValueError) as e:
        raise FrameDecodeError(f"Malformed structured frame: {e!r}") from e

    return StructuredFrame(context=context, registers=registers, breakpoints=breakpoints)


# @intent:responsibility バイナリフレームをMemoryBlockFrameへデコードします。
def decode_binary_frame(data: bytes) -> MemoryBlockFrame:
    if len(data) < HEADER_LENGTH:
        raise FrameDecodeError(f"Memory block frame too short: {len(data)} bytes.")
    return MemoryBlockFrame(bytes(data))


# @intent:responsibility デコード済みフレームを種類に応じて各ハンドラへ配送します。
class MessageRouter:
    """
    フレーム内の適用順序は context → breakpoints → registers です。
    レジスタ更新による再逆アセンブルが最新のブレークポイント一覧を参照できるようにするためです。
    """
    def __init__(
        self,
        on_context: Callable[[SutContext], None],
        on_breakpoints: Callable[[List[Breakpoint]], Any],
        on_registers: Callable[[RegisterSet], None],
        on_memory: Callable[[bytes], Any],
    ):
        self._on_context = on_context
        self._on_breakpoints = on_breakpoints
        self._on_registers = on_registers
        self._on_memory = on_memory

    def route(self, frame: Frame) -> None:
        if isinstance(frame, MemoryBlockFrame):
            self._on_memory(frame.block)
            return

        if frame.is_empty():
            logger.debug("Structured frame without known keys ignored.")
            return
        if frame.context is not None:
            self._on_context(frame.context)
        if frame.breakpoints is not None:
            self._on_breakpoints(frame.breakpoints)
        if frame.registers is not None:
            self._on_registers(frame.registers)
