# tests/debugger/test_breakpoint_registry.py
"""
trs_xray.debugger.breakpointsモジュールの単体テスト。
全置換の変更検出（再通知の抑止）、合成タグの導出、送出されるコマンドを検証します。
"""
import pytest

from trs_xray.debugger.breakpoints import Breakpoint, BreakpointRegistry, BreakpointType


def bp(bp_id, address, bp_type=BreakpointType.PC):
    return Breakpoint(id=bp_id, address=address, type=bp_type)


class TestBreakpointRegistry:
    @pytest.fixture
    def registry(self, sink):
        return BreakpointRegistry(sink)

    # @intent:test_case_anti_thrash 同一の一覧による全置換は通知を発生させないことを検証します。
    def test_identical_list_does_not_notify(self, registry):
        notifications = []
        registry.subscribe(notifications.append)

        assert registry.replace_all([bp(0, 0x1230), bp(1, 0x1813)]) is True
        assert registry.replace_all([bp(0, 0x1230), bp(1, 0x1813)]) is False
        assert len(notifications) == 1

    def test_empty_list_on_empty_registry_does_not_notify(self, registry):
        notifications = []
        registry.subscribe(notifications.append)
        assert registry.replace_all([]) is False
        assert notifications == []

    @pytest.mark.parametrize("changed", [
        [bp(1, 0x1813), bp(0, 0x1230)],                        # 並び替え
        [bp(0, 0x1230), bp(1, 0x1814)],                        # アドレス違い
        [bp(0, 0x1230), bp(1, 0x1813, BreakpointType.MEMORY)],  # 種類違い
        [bp(0, 0x1230), bp(2, 0x1813)],                        # ID違い
        [bp(0, 0x1230)],                                       # 削除
    ])
    def test_any_difference_notifies(self, registry, changed):
        registry.replace_all([bp(0, 0x1230), bp(1, 0x1813)])
        notifications = []
        registry.subscribe(notifications.append)

        assert registry.replace_all(changed) is True
        assert notifications == [changed]
        assert registry.breakpoints == changed

    def test_from_dict_uses_wire_type_codes(self):
        assert Breakpoint.from_dict({"id": 3, "address": 9545, "type": 2}) == bp(3, 9545, BreakpointType.IO)

    # @intent:test_case_commands 追加・削除・消去のコマンド文字列を検証します。
    def test_commands(self, registry, sink):
        registry.add_real(0x1234, BreakpointType.MEMORY)
        registry.add_real(0x10, BreakpointType.IO)
        registry.add_synthetic(0x4000)
        registry.remove(7)
        registry.clear_synthetic()

        assert sink.commands == [
            "add_breakpoint/memory/4660",
            "add_breakpoint/io/16",
            "add_breakpoint/pc/16384",
            "remove_breakpoint/7",
            "clear_breakpoints",
        ]

    # @intent:test_case_synthetic 合成タグは追加の経路のみで決まり、ユーザー一覧から除外されることを検証します。
    def test_synthetic_tag_comes_from_add_path(self, registry):
        registry.add_real(0x1000)
        registry.add_synthetic(0x2000)
        registry.replace_all([bp(0, 0x1000), bp(1, 0x2000)])

        assert not registry.is_synthetic(bp(0, 0x1000))
        assert registry.is_synthetic(bp(1, 0x2000))
        assert registry.user_breakpoints() == [bp(0, 0x1000)]

    def test_synthetic_tag_applies_to_pc_breakpoints_only(self, registry):
        registry.add_synthetic(0x2000)
        registry.replace_all([bp(0, 0x2000, BreakpointType.MEMORY)])
        assert registry.user_breakpoints() == [bp(0, 0x2000, BreakpointType.MEMORY)]

    def test_add_real_claims_synthetic_address(self, registry):
        registry.add_synthetic(0x2000)
        registry.add_real(0x2000)
        registry.replace_all([bp(5, 0x2000)])
        assert registry.user_breakpoints() == [bp(5, 0x2000)]

    def test_clear_forgets_pending_synthetic_addresses(self, registry):
        registry.add_synthetic(0x2000)
        registry.clear_synthetic()
        registry.replace_all([bp(0, 0x2000)])
        assert not registry.is_synthetic(bp(0, 0x2000))

    def test_commands_without_connection_report_failure(self):
        registry = BreakpointRegistry(lambda action: False)
        assert registry.add_real(0x1000) is False
        assert registry.clear_synthetic() is False
