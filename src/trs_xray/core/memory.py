# trs_xray/core/memory.py
"""
Memory Model

SUTの64KBメモリイメージと、直近の更新で変化したアドレスを示す変更マップを保持します。
イメージを変更できるのはこのモジュールの apply_update だけであり、他のコンポーネントは読み取りのみ行います。
"""
import logging
from typing import Callable, List

from trs_xray.common.observer import Observable

logger = logging.getLogger(__name__)

# @intent:constant Z80のアドレス空間サイズ。
MEMORY_SIZE = 0x10000
# @intent:constant メモリブロック先頭の開始アドレスヘッダ長（ビッグエンディアン16bit）。
HEADER_LENGTH = 2

MIN_BYTE_SIZE = 1
MAX_BYTE_SIZE = 8


# @intent:responsibility メモリイメージと変更マップを保持し、オフセット付きブロックによる更新を適用します。
class MemoryModel:
    """
    64KBのメモリイメージと、同じ長さの変更マップを保持するモデル。
    部分更新（ビデオRAMの窓だけなど）と全体更新の両方を同じ操作で扱います。
    """
    # @intent:responsibility イメージと変更マップをゼロで初期化します。
    def __init__(self):
        self._image = bytearray(MEMORY_SIZE)
        self._changed = bytearray(MEMORY_SIZE)
        self._byte_size = MIN_BYTE_SIZE
        self._updated: Observable[range] = Observable()
        self._byte_size_changed: Observable[int] = Observable()

    # @intent:responsibility オフセット付きブロックをイメージへ適用し、触れたアドレスの変更マップを再計算します。
    # @intent:pre-condition blockは先頭2バイトに開始アドレスを持つ必要があります。
    # @intent:post-condition ブロックに含まれないアドレスの変更フラグは変化しません。
    def apply_update(self, block: bytes) -> range:
        """
        ブロックをイメージへ書き込み、書き込んだアドレス範囲を返します。
        各アドレスについて、値が異なれば変更フラグを立てて書き込み、同じであればフラグを下ろします。
        """
        if len(block) < HEADER_LENGTH:
            raise ValueError(f"Memory block too short: {len(block)} bytes.")

        start = (block[0] << 8) | block[1]
        payload = block[HEADER_LENGTH:]
        if start + len(payload) > MEMORY_SIZE:
            logger.warning(
                "Memory block at %04X with %d bytes exceeds the address space; dropping %d bytes.",
                start, len(payload), start + len(payload) - MEMORY_SIZE,
            )
            payload = payload[:MEMORY_SIZE - start]

        image = self._image
        changed = self._changed
        for offset, value in enumerate(payload):
            addr = start + offset
            if image[addr] != value:
                changed[addr] = 1
                image[addr] = value
            else:
                changed[addr] = 0

        touched = range(start, start + len(payload))
        logger.debug("Applied memory block %04X-%04X", start, max(start, touched.stop - 1))
        self._updated.notify(touched)
        return touched

    # @intent:responsibility 指定されたアドレスのバイトを返します。アドレスは16bitで折り返されます。
    def peek(self, address: int) -> int:
        return self._image[address & 0xFFFF]

    # @intent:responsibility 指定範囲のバイト列を返します。範囲がアドレス空間の末尾を越える場合は先頭へ折り返します。
    def read(self, start: int, length: int) -> bytes:
        start &= 0xFFFF
        if start + length <= MEMORY_SIZE:
            return bytes(self._image[start:start + length])
        return bytes(self._image[(start + i) & 0xFFFF] for i in range(length))

    # @intent:responsibility 16bitワード（リトルエンディアン）を読み出します。
    def peek_word(self, address: int) -> int:
        return self.peek(address) | (self.peek(address + 1) << 8)

    def is_changed(self, address: int) -> bool:
        return self._changed[address & 0xFFFF] != 0

    def changed_addresses(self) -> List[int]:
        return [addr for addr, flag in enumerate(self._changed) if flag]

    # @intent:responsibility 非ゼロのバイトを持つ最後のアドレスを返します。全てゼロなら-1。
    def last_nonzero_address(self) -> int:
        stripped = self._image.rstrip(b"\x00")
        return len(stripped) - 1

    @property
    def image(self) -> memoryview:
        """読み取り専用のイメージビュー。"""
        return memoryview(self._image).toreadonly()

    @property
    def changed(self) -> memoryview:
        """読み取り専用の変更マップビュー（1 = 変更あり）。"""
        return memoryview(self._changed).toreadonly()

    # @intent:responsibility 表示上のバイトグルーピング幅を管理します。イメージ自体は再計算しません。
    @property
    def byte_size(self) -> int:
        return self._byte_size

    def increase_byte_size(self) -> int:
        return self._set_byte_size(self._byte_size + 1)

    def decrease_byte_size(self) -> int:
        return self._set_byte_size(self._byte_size - 1)

    def _set_byte_size(self, value: int) -> int:
        value = max(MIN_BYTE_SIZE, min(MAX_BYTE_SIZE, value))
        if value != self._byte_size:
            self._byte_size = value
            self._byte_size_changed.notify(value)
        return self._byte_size

    def subscribe(self, callback: Callable[[range], None]) -> Callable[[], None]:
        return self._updated.subscribe(callback)

    def subscribe_byte_size(self, callback: Callable[[int], None]) -> Callable[[], None]:
        return self._byte_size_changed.subscribe(callback)
