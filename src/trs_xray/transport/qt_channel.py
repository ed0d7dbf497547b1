# trs_xray/transport/qt_channel.py
"""
Qtイベントループ上で動作するチャネルとスケジューラの実装。
"""
import logging
from typing import Callable

from PySide6.QtCore import QByteArray, QTimer, QUrl
from PySide6.QtNetwork import QAbstractSocket
from PySide6.QtWebSockets import QWebSocket

from trs_xray.transport.channel import Channel, ChannelState, Scheduler

logger = logging.getLogger(__name__)

_STATE_MAP = {
    QAbstractSocket.SocketState.ConnectedState: ChannelState.OPEN,
    QAbstractSocket.SocketState.ClosingState: ChannelState.CLOSING,
    QAbstractSocket.SocketState.UnconnectedState: ChannelState.CLOSED,
}


# @intent:responsibility QWebSocketによるチャネル実装。URLは ws://<host><path> です。
class QtWebSocketChannel(Channel):
    def __init__(self, host: str, path: str = "/channel"):
        super().__init__()
        self.url = f"ws://{host}{path}"
        self._socket = QWebSocket()
        self._socket.connected.connect(self._on_connected)
        self._socket.disconnected.connect(self._on_disconnected)
        self._socket.textMessageReceived.connect(self._emit_text)
        self._socket.binaryMessageReceived.connect(self._on_binary_message)

    @property
    def state(self) -> ChannelState:
        # HostLookup / Connecting / Bound などは全て接続中として扱う
        return _STATE_MAP.get(self._socket.state(), ChannelState.CONNECTING)

    def open(self) -> None:
        logger.info("Connecting to %s", self.url)
        self._socket.open(QUrl(self.url))

    def send_text(self, text: str) -> None:
        self._socket.sendTextMessage(text)

    def close(self) -> None:
        self._socket.close()

    def _on_connected(self) -> None:
        logger.info("Connected to %s", self.url)
        self._emit_open()

    def _on_disconnected(self) -> None:
        logger.info("Disconnected from %s: %s", self.url, self._socket.errorString())
        self._emit_close()

    def _on_binary_message(self, data: QByteArray) -> None:
        self._emit_binary(bytes(data.data()))


# @intent:responsibility QTimer.singleShotによる遅延呼び出しの実装。
class QtScheduler(Scheduler):
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> None:
        QTimer.singleShot(delay_ms, callback)
