# trs_xray/transport/channel.py
"""
SUTとの双方向チャネルとタイマーの抽象化。

状態コアはこのモジュールの抽象クラスにのみ依存し、Qtによる実装
（transport/qt_channel.py）はイベントループを持つアプリケーション側で注入されます。
"""
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Callable, Optional


# @intent:responsibility チャネルの接続状態を定義します。
class ChannelState(Enum):
    CONNECTING = auto()
    OPEN = auto()
    CLOSING = auto()
    CLOSED = auto()


# @intent:responsibility メッセージチャネルの共通インターフェースを定義します。
class Channel(ABC):
    """
    コネクションマネージャは生成直後のチャネルにハンドラを設定し、その後 open() を呼び出します。
    """
    def __init__(self):
        self.on_open: Optional[Callable[[], None]] = None
        self.on_close: Optional[Callable[[], None]] = None
        self.on_text: Optional[Callable[[str], None]] = None
        self.on_binary: Optional[Callable[[bytes], None]] = None

    @property
    @abstractmethod
    def state(self) -> ChannelState:
        pass

    @abstractmethod
    def open(self) -> None:
        pass

    @abstractmethod
    def send_text(self, text: str) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    # 実装クラスから呼ばれるイベント配送ヘルパー
    def _emit_open(self) -> None:
        if self.on_open:
            self.on_open()

    def _emit_close(self) -> None:
        if self.on_close:
            self.on_close()

    def _emit_text(self, text: str) -> None:
        if self.on_text:
            self.on_text(text)

    def _emit_binary(self, data: bytes) -> None:
        if self.on_binary:
            self.on_binary(data)


# @intent:responsibility 遅延呼び出しの共通インターフェースを定義します。
class Scheduler(ABC):
    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> None:
        pass


