# tests/transport/test_connection_manager.py
"""
trs_xray.transport.connectionモジュールの単体テスト。
生存確認ループの状態遷移、再接続時の再同期、受信フレームの分類を検証します。
"""
from typing import Callable, List, Tuple

import pytest

from trs_xray.transport.channel import Channel, ChannelState, Scheduler
from trs_xray.transport.connection import ConnectionHealth, ConnectionManager
from trs_xray.transport.protocol import MemoryBlockFrame, StructuredFrame


# @intent:test_helper 状態を手動で操作できるチャネル。
class FakeChannel(Channel):
    def __init__(self):
        super().__init__()
        self._state = ChannelState.CLOSED
        self.sent: List[str] = []
        self.opened = False

    @property
    def state(self) -> ChannelState:
        return self._state

    def open(self) -> None:
        self.opened = True
        self._state = ChannelState.CONNECTING

    def send_text(self, text: str) -> None:
        self.sent.append(text)

    def close(self) -> None:
        self._state = ChannelState.CLOSED

    # テストから呼び出すイベント
    def accept(self) -> None:
        self._state = ChannelState.OPEN
        self._emit_open()

    def drop(self, state: ChannelState = ChannelState.CLOSED) -> None:
        self._state = state
        self._emit_close()

    def receive_text(self, text: str) -> None:
        self._emit_text(text)

    def receive_binary(self, data: bytes) -> None:
        self._emit_binary(data)


# @intent:test_helper 予約された呼び出しを記録し、テストから1件ずつ実行するスケジューラ。
class ManualScheduler(Scheduler):
    def __init__(self):
        self.pending: List[Tuple[int, Callable[[], None]]] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> None:
        self.pending.append((delay_ms, callback))

    def run_next(self) -> int:
        delay, callback = self.pending.pop(0)
        callback()
        return delay


class ConnectionFixture:
    def __init__(self, offline: bool = False):
        self.channels: List[FakeChannel] = []
        self.frames = []
        self.health_changes = []
        self.scheduler = ManualScheduler()
        self.manager = ConnectionManager(
            channel_factory=self._create_channel,
            scheduler=self.scheduler,
            on_frame=self.frames.append,
            offline=offline,
        )
        self.manager.subscribe(self.health_changes.append)

    def _create_channel(self) -> FakeChannel:
        channel = FakeChannel()
        self.channels.append(channel)
        return channel

    @property
    def channel(self) -> FakeChannel:
        return self.channels[-1]


@pytest.fixture
def fx():
    return ConnectionFixture()


class TestLivenessLoop:
    # @intent:test_case_initial_tick 開始時にチャネルを開き、短い間隔で再確認を予約することを検証します。
    def test_start_opens_channel_and_retries_quickly(self, fx):
        fx.manager.start()

        assert len(fx.channels) == 1
        assert fx.channel.opened
        assert fx.manager.health is ConnectionHealth.DEGRADED
        assert [delay for delay, _ in fx.scheduler.pending] == [200]

    def test_connecting_channel_is_not_replaced(self, fx):
        fx.manager.start()
        fx.scheduler.run_next()

        assert len(fx.channels) == 1
        assert fx.manager.health is ConnectionHealth.DEGRADED

    # @intent:test_case_healthy 開いたチャネルは HEALTHY となり、長い間隔で再確認されることを検証します。
    def test_open_channel_is_healthy(self, fx):
        fx.manager.start()
        fx.channel.accept()
        fx.scheduler.run_next()

        assert fx.manager.health is ConnectionHealth.HEALTHY
        assert fx.scheduler.pending[-1][0] == 500
        assert fx.health_changes == [ConnectionHealth.HEALTHY]

    @pytest.mark.parametrize("state", [ChannelState.CLOSED, ChannelState.CLOSING])
    def test_lost_channel_is_reopened(self, fx, state):
        fx.manager.start()
        fx.channel.accept()
        fx.scheduler.run_next()

        fx.channel.drop(state)
        delay = fx.scheduler.run_next()

        assert delay == 500
        assert len(fx.channels) == 2
        assert fx.manager.health is ConnectionHealth.DEGRADED
        assert fx.scheduler.pending[-1][0] == 200
        assert fx.health_changes == [ConnectionHealth.HEALTHY, ConnectionHealth.DEGRADED]

    # @intent:test_case_close_event 切断イベントで次の周期を待たずに DEGRADED となることを検証します。
    def test_close_event_degrades_immediately(self, fx):
        fx.manager.start()
        fx.channel.accept()
        fx.scheduler.run_next()
        pending = len(fx.scheduler.pending)

        fx.channel.drop()

        assert fx.manager.health is ConnectionHealth.DEGRADED
        assert fx.health_changes == [ConnectionHealth.HEALTHY, ConnectionHealth.DEGRADED]
        # 再接続は次の周期で行う
        assert len(fx.channels) == 1
        assert len(fx.scheduler.pending) == pending

    def test_close_from_replaced_channel_is_ignored(self, fx):
        fx.manager.start()
        stale = fx.channel
        stale.drop()
        fx.scheduler.run_next()
        fx.channel.accept()
        fx.scheduler.run_next()

        stale.drop()

        assert fx.manager.health is ConnectionHealth.HEALTHY
        assert fx.health_changes == [ConnectionHealth.HEALTHY]

    def test_offline_mode_suppresses_loop(self):
        fx = ConnectionFixture(offline=True)
        fx.manager.start()

        assert fx.channels == []
        assert fx.scheduler.pending == []

    def test_stop_ends_loop(self, fx):
        fx.manager.start()
        fx.manager.stop()
        fx.scheduler.run_next()

        assert fx.scheduler.pending == []
        assert fx.channel.state is ChannelState.CLOSED


class TestCommands:
    def test_send_without_open_channel_is_silent_noop(self, fx):
        assert fx.manager.send_command("step") is False
        fx.manager.start()
        assert fx.manager.send_command("step") is False
        assert fx.channel.sent == []

    # @intent:test_case_resync 接続確立時に強制リフレッシュを要求することを検証します。
    def test_open_triggers_force_refresh(self, fx):
        fx.manager.start()
        fx.channel.accept()

        assert fx.channel.sent == ["action/refresh", "action/get_memory/force_update"]

    def test_send_command_prefix(self, fx):
        fx.manager.start()
        fx.channel.accept()
        fx.channel.sent.clear()

        assert fx.manager.send_command("get_memory/0/65536") is True
        assert fx.channel.sent == ["action/get_memory/0/65536"]


class TestInboundFrames:
    def test_text_and_binary_frames_are_decoded(self, fx):
        fx.manager.start()
        fx.channel.accept()

        fx.channel.receive_text('{"breakpoints": []}')
        fx.channel.receive_binary(b"\x3C\x00\x20")

        assert fx.frames == [StructuredFrame(breakpoints=[]), MemoryBlockFrame(b"\x3C\x00\x20")]

    def test_malformed_frames_are_dropped(self, fx):
        fx.manager.start()
        fx.channel.receive_text("{broken")
        fx.channel.receive_binary(b"\x01")

        assert fx.frames == []

    def test_events_from_replaced_channel_are_ignored(self, fx):
        fx.manager.start()
        stale = fx.channel
        stale.drop()
        fx.scheduler.run_next()

        stale.receive_binary(b"\x00\x00\x01")
        stale.accept()

        assert len(fx.channels) == 2
        assert fx.frames == []
        assert stale.sent == []
