# tests/core/test_register_state.py
"""
trs_xray.core.state / trs_xray.core.registers の単体テスト。
フラグがAFの下位バイトから導出されること、ワイヤ形式からの変換、モデルの通知を検証します。
"""
import pytest

from trs_xray.core.registers import RegisterModel
from trs_xray.core.state import RegisterSet, SutContext

WIRE_REGISTERS = {
    "pc": 2, "sp": 65535, "af": 68, "bc": 0x1234, "de": 0, "hl": 0xABCD,
    "af_prime": 1, "bc_prime": 2, "de_prime": 3, "hl_prime": 4,
    "ix": 0x4000, "iy": 0x5000, "i": 0x3F, "r_1": 0x12, "r_2": 2,
    "z80_t_state_counter": 8, "z80_clockspeed": 2.0299999713897705,
    "z80_iff1": 1, "z80_iff2": 0, "z80_interrupt_mode": 1,
}


class TestFlags:
    # @intent:test_case_flags_boundary 境界値を含む全てのAFについて、フラグがマスクの結果と一致することを検証します。
    @pytest.mark.parametrize("af", [0x0000, 0xFFFF, 0x4400, 0x00AA, 0x0055, 0x1281])
    def test_flags_follow_af(self, af):
        regs = RegisterSet(af=af)

        assert regs.flag_carry == bool(af & 0x01)
        assert regs.flag_subtract == bool(af & 0x02)
        assert regs.flag_overflow == bool(af & 0x04)
        assert regs.flag_undoc3 == bool(af & 0x08)
        assert regs.flag_half_carry == bool(af & 0x10)
        assert regs.flag_undoc5 == bool(af & 0x20)
        assert regs.flag_zero == bool(af & 0x40)
        assert regs.flag_sign == bool(af & 0x80)

    def test_all_flags_clear_and_set(self):
        assert not any(RegisterSet(af=0x0000).get_flag_state().values())
        assert all(RegisterSet(af=0xFFFF).get_flag_state().values())

    def test_high_byte_does_not_affect_flags(self):
        assert RegisterSet(af=0xFF00).get_flag_state() == RegisterSet(af=0x0000).get_flag_state()

    @pytest.mark.parametrize("af, cc, expected", [
        (0x0040, "Z", True), (0x0040, "NZ", False),
        (0x0001, "C", True), (0x0000, "NC", True),
        (0x0004, "PE", True), (0x0000, "PO", True),
        (0x0080, "M", True), (0x0000, "P", True),
    ])
    def test_condition_codes(self, af, cc, expected):
        assert RegisterSet(af=af).condition(cc) is expected


class TestRegisterSetFromWire:
    def test_from_dict(self):
        regs = RegisterSet.from_dict(WIRE_REGISTERS)

        assert regs.pc == 2
        assert regs.sp == 0xFFFF
        assert regs.af == 68
        assert regs.a == 0x00 and regs.f == 68
        assert regs.h == 0xAB and regs.l == 0xCD
        assert regs.r_2 == 2
        assert regs.z80_clockspeed == pytest.approx(2.03)
        assert regs.to_dict()["hl"] == 0xABCD

    def test_values_are_masked(self):
        data = dict(WIRE_REGISTERS, pc=0x12345, i=0x1FF)
        regs = RegisterSet.from_dict(data)

        assert regs.pc == 0x2345
        assert regs.i == 0xFF

    def test_missing_register_raises(self):
        data = dict(WIRE_REGISTERS)
        del data["pc"]
        with pytest.raises(KeyError):
            RegisterSet.from_dict(data)

    def test_register_map_uses_display_names(self):
        reg_map = RegisterSet.from_dict(WIRE_REGISTERS).get_register_map()
        assert reg_map["AF'"] == 1
        assert reg_map["IX"] == 0x4000
        assert reg_map["R2"] == 2


class TestSutContext:
    def test_missing_mode_keys_default_to_false(self):
        ctx = SutContext.from_dict({"system_name": "sdlTRS", "model": 3})
        assert ctx == SutContext("sdlTRS", 3, False, False)


class TestRegisterModel:
    # @intent:test_case_replace レジスタセットが丸ごと置き換えられ、購読者へ通知されることを検証します。
    def test_update_replaces_and_notifies(self):
        model = RegisterModel()
        received = []
        model.subscribe(received.append)
        assert model.registers is None
        assert model.pc is None

        first = RegisterSet(pc=0x100, sp=0x8000)
        second = RegisterSet(pc=0x200)
        model.update(first)
        model.update(second)

        assert model.registers is second
        assert model.pc == 0x200
        assert model.sp == 0
        assert received == [first, second]

    def test_unsubscribe(self):
        model = RegisterModel()
        received = []
        unsubscribe = model.subscribe(received.append)
        unsubscribe()
        model.update(RegisterSet())
        assert received == []
