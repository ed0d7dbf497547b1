# tests/conftest.py
"""
テスト全体で共有するフィクスチャ。
"""
from typing import List

import pytest


# @intent:test_helper 送出されたコマンド文字列を記録するコマンドシンク。
class RecordingSink:
    def __init__(self, connected: bool = True):
        self.commands: List[str] = []
        self.connected = connected

    def __call__(self, action: str) -> bool:
        if not self.connected:
            return False
        self.commands.append(action)
        return True

    def clear(self) -> None:
        self.commands.clear()


@pytest.fixture
def sink():
    return RecordingSink()
