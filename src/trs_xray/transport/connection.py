# trs_xray/transport/connection.py
"""
Connection Manager

SUTとのチャネルを所有し、コマンドの送出、受信フレームのデコード、
および生存確認ループ（HEALTHY / DEGRADED の2状態）による自動再接続を行います。
"""
import logging
from enum import Enum
from typing import Callable, Optional

from trs_xray.common.errors import FrameDecodeError
from trs_xray.common.observer import Observable
from trs_xray.transport.channel import Channel, ChannelState, Scheduler
from trs_xray.transport.protocol import Frame, decode_binary_frame, decode_text_frame

logger = logging.getLogger(__name__)

# @intent:constant 生存確認ループの再確認間隔（ミリ秒）。
RETRY_DELAY_MS = 200
HEALTHY_DELAY_MS = 500


# @intent:responsibility 接続の健全性を定義します。
class ConnectionHealth(Enum):
    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"


# @intent:responsibility チャネルのライフサイクルとコマンド送出を管理します。
class ConnectionManager:
    """
    チャネルが開いていない間のコマンド送出は何もせずFalseを返します。
    呼び出し元が接続状態を確認する必要はありません。チャネルの回復は生存確認ループが行います。
    """
    def __init__(
        self,
        channel_factory: Callable[[], Channel],
        scheduler: Scheduler,
        on_frame: Callable[[Frame], None],
        retry_delay_ms: int = RETRY_DELAY_MS,
        healthy_delay_ms: int = HEALTHY_DELAY_MS,
        offline: bool = False,
    ):
        self._channel_factory = channel_factory
        self._scheduler = scheduler
        self._on_frame = on_frame
        self.retry_delay_ms = retry_delay_ms
        self.healthy_delay_ms = healthy_delay_ms
        self.offline = offline
        self._channel: Optional[Channel] = None
        self._health = ConnectionHealth.DEGRADED
        self._running = False
        self._health_changed: Observable[ConnectionHealth] = Observable()

    # @intent:responsibility 生存確認ループを開始します。オフラインモードでは開始しません。
    def start(self) -> None:
        if self.offline:
            logger.info("Offline mode: liveness loop suppressed.")
            return
        if self._running:
            return
        self._running = True
        self.tick()

    def stop(self) -> None:
        self._running = False
        if self._channel is not None:
            self._channel.close()

    # @intent:responsibility ループの1周期を実行し、次の周期を予約します。
    def tick(self) -> None:
        if not self._running:
            return

        channel = self._channel
        state = channel.state if channel is not None else None
        if state is ChannelState.OPEN:
            self._set_health(ConnectionHealth.HEALTHY)
            delay = self.healthy_delay_ms
        else:
            self._set_health(ConnectionHealth.DEGRADED)
            if state is None or state in (ChannelState.CLOSED, ChannelState.CLOSING):
                self._open_channel()
            delay = self.retry_delay_ms

        self._scheduler.call_later(delay, self.tick)

    # @intent:responsibility `action/<action>` 形式でコマンドを送出します。
    # @intent:post-condition チャネルが開いていない場合は何も送出せずFalseを返します。
    def send_command(self, action: str) -> bool:
        channel = self._channel
        if channel is None or channel.state is not ChannelState.OPEN:
            logger.debug("Command dropped, channel unavailable: %s", action)
            return False
        channel.send_text(f"action/{action}")
        logger.debug("Sent action/%s", action)
        return True

    # @intent:responsibility 再接続後にSUTの全状態（レジスタ・ブレークポイント・メモリ）を要求します。
    def force_refresh(self) -> None:
        self.send_command("refresh")
        self.send_command("get_memory/force_update")

    @property
    def health(self) -> ConnectionHealth:
        return self._health

    @property
    def channel(self) -> Optional[Channel]:
        return self._channel

    def subscribe(self, callback: Callable[[ConnectionHealth], None]) -> Callable[[], None]:
        return self._health_changed.subscribe(callback)

    def _set_health(self, health: ConnectionHealth) -> None:
        if health is self._health:
            return
        self._health = health
        logger.info("Connection %s", health.value.lower())
        self._health_changed.notify(health)

    def _open_channel(self) -> None:
        channel = self._channel_factory()
        # 置き換え済みの古いチャネルからのイベントは無視する
        channel.on_open = lambda: self._handle_open(channel)
        channel.on_close = lambda: self._handle_close(channel)
        channel.on_text = lambda text: self._handle_text(channel, text)
        channel.on_binary = lambda data: self._handle_binary(channel, data)
        self._channel = channel
        channel.open()

    def _handle_open(self, channel: Channel) -> None:
        if channel is not self._channel:
            return
        self._set_health(ConnectionHealth.HEALTHY)
        self.force_refresh()

    # 切断は次の周期を待たずに健全性へ反映する。再接続は生存確認ループが行う
    def _handle_close(self, channel: Channel) -> None:
        if channel is not self._channel:
            return
        self._set_health(ConnectionHealth.DEGRADED)

    def _handle_text(self, channel: Channel, text: str) -> None:
        if channel is not self._channel:
            return
        try:
            frame = decode_text_frame(text)
        except FrameDecodeError as e:
            logger.warning("Dropped text frame: %s", e)
            return
        self._on_frame(frame)

    def _handle_binary(self, channel: Channel, data: bytes) -> None:
        if channel is not self._channel:
            return
        try:
            frame = decode_binary_frame(data)
        except FrameDecodeError as e:
            logger.warning("Dropped binary frame: %s", e)
            return
        self._on_frame(frame)
