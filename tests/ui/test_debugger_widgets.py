# tests/ui/test_debugger_widgets.py
"""
表示層ウィジェットのテスト。
ウィジェットはセッションの状態を描画するだけなので、表示内容とシグナルの送出を確認します。
"""
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import Qt
from PySide6.QtTest import QTest
from PySide6.QtWidgets import QApplication, QDialog

from trs_xray.arch.z80.disassembler import disassemble
from trs_xray.core.memory import MemoryModel
from trs_xray.core.state import RegisterSet, SutContext
from trs_xray.debugger.breakpoints import Breakpoint, BreakpointType
from trs_xray.debugger.session import DebugSession
from trs_xray.transport.connection import ConnectionManager
from trs_xray.transport.protocol import MemoryBlockFrame, StructuredFrame
from trs_xray.ui.breakpoint_view import BreakpointView
from trs_xray.ui.code_view import CodeView, PC_HIGHLIGHT
from trs_xray.ui.flag_view import FlagView
from trs_xray.ui.hex_view import CHANGED_COLOR, SELECTED_COLOR, HexView
from trs_xray.ui.import_dialog import ImportDialog
from trs_xray.ui.main_window import ERROR_TITLE_STYLE, TITLE_STYLE, MainWindow
from trs_xray.ui.register_view import RegisterView


# PySide6のテストにはQApplicationのインスタンスが必要
@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


class TestStatusViews:
    def test_register_view(self, qapp):
        view = RegisterView()
        assert view.register_text("PC") == "----"

        view.update_registers(RegisterSet(pc=0x0002, sp=0xFFFF, af=0x0044, r_2=2, z80_t_state_counter=8))
        assert view.register_text("PC") == "0002"
        assert view.register_text("SP") == "FFFF"
        assert view.register_text("R2") == "02"
        assert view.t_states_label.text() == "T-states: 8"

        view.update_registers(None)
        assert view.register_text("AF") == "----"

    def test_flag_view(self, qapp):
        view = FlagView()
        view.update_flags(RegisterSet(af=0x0044))  # Z, PV
        assert [view.flag_text(n) for n in ("S", "Z", "PV", "C")] == ["0", "1", "1", "0"]


class TestBreakpointView:
    def test_rows_and_signals(self, qapp):
        view = BreakpointView()
        selected, removed = [], []
        view.address_selected.connect(selected.append)
        view.breakpoint_removed.connect(removed.append)

        view.set_breakpoints([Breakpoint(0, 0x1230, BreakpointType.PC), Breakpoint(4, 0x3C00, BreakpointType.MEMORY)])
        assert view.bp_table.rowCount() == 2
        assert view.bp_table.item(0, 0).text() == "12 30"

        view._on_cell_clicked(1, 0)
        view.bp_table.selectRow(1)
        view.remove_button.click()

        assert selected == [0x3C00]
        assert removed == [4]


class TestCodeView:
    def test_pc_row_is_highlighted(self, qapp):
        memory = MemoryModel()
        memory.apply_update(b"\x00\x00\xF3\xAF\xC3\x00\x10")
        view = CodeView()

        view.update_code(disassemble(memory, 0, 5), pc=0x0001, breakpoints=[0x0002])

        assert view.table.rowCount() == 3
        assert view.row_text(2) == "JP $1000"
        assert view.table.item(1, 0).background().color() == PC_HIGHLIGHT
        assert view.table.item(2, 0).text() == "●"


class TestHexView:
    def test_model_shows_bytes_and_highlights(self, qapp):
        memory = MemoryModel()
        view = HexView(memory)
        model = view.model
        memory.apply_update(b"\x3C\x00\x41\x42")

        index = model.index(0x3C00 // 16, 0)
        assert model.data(index) == "41"
        assert model.data(model.index(0x3C00 // 16, model.group_count)).startswith("AB")
        assert model.data(index, Qt.BackgroundRole) == CHANGED_COLOR

        view.set_selection(0x3C00, 0x41)
        assert model.data(index, Qt.BackgroundRole) == SELECTED_COLOR
        assert (view.addr_hi_input.text(), view.addr_lo_input.text()) == ("3C", "00")
        assert view.value_input.text() == "41"

    def test_byte_size_groups_cells(self, qapp):
        memory = MemoryModel()
        view = HexView(memory)
        memory.apply_update(b"\x00\x10\x12\x34")
        memory.increase_byte_size()

        assert view.model.columnCount() == 9
        assert view.model.data(view.model.index(1, 0)) == "1234"

    def test_editor_forwards_raw_fields(self, qapp):
        view = HexView(MemoryModel())
        entered = []
        view.selection_entered.connect(lambda hi, lo: entered.append((hi, lo)))
        view.addr_hi_input.setText("1")
        view.addr_lo_input.setText("30")

        view._on_address_edited()

        # 検証はセッション側で行うため、不正な値もそのまま送出される
        assert entered == [("1", "30")]


class TestImportDialog:
    # @intent:test_case_import_error 不正なダンプではエラーを表示し、ダイアログが開いたままであることを検証します。
    def test_malformed_dump_keeps_dialog_open(self, qapp, sink):
        session = DebugSession(send=sink)
        dialog = ImportDialog(session.import_trs80gp)
        dialog.text_edit.setPlainText("{AF: 1,")
        dialog.import_button.click()

        assert dialog.error_label.text() != ""
        assert dialog.result() != QDialog.Accepted
        assert session.registers.registers is None

    def test_valid_dump_is_accepted(self, qapp, sink):
        session = DebugSession(send=sink)
        dialog = ImportDialog(session.import_trs80gp)
        dialog.text_edit.setPlainText("{AF: 17408, PC: 2, SP: 65535, mem: [0, 0, 62, 1]}")
        dialog.import_button.click()

        assert dialog.result() == QDialog.Accepted
        assert session.registers.pc == 2


class TestMainWindow:
    @pytest.fixture
    def window(self, qapp, sink):
        win = MainWindow(DebugSession(send=sink))
        # ウィンドウ全体のショートカットはアクティブなウィンドウでのみ発火する
        win.show()
        win.activateWindow()
        QTest.qWaitForWindowActive(win)
        yield win
        win.close()

    # @intent:test_case_shortcuts テーブルがフォーカスを持っていてもショートカットが発火することを検証します。
    @pytest.mark.parametrize("table_name, key, command", [
        ("hex_view", Qt.Key_1, "step"),
        ("code_view", Qt.Key_2, "continue"),
        ("hex_view", Qt.Key_3, "stop"),
    ])
    def test_shortcuts_fire_with_table_focus(self, window, sink, table_name, key, command):
        view = getattr(window, table_name)
        window.tab_widget.setCurrentWidget(view)
        table = view.table
        table.setFocus()

        QTest.keyClick(table, key)

        assert sink.commands == [command, "get_memory/0/65536"]

    def test_byte_size_shortcut(self, window):
        window.hex_view.table.setFocus()
        QTest.keyClick(window.hex_view.table, Qt.Key_Minus)
        QTest.keyClick(window.hex_view.table, Qt.Key_Equal)
        assert window.session.memory.byte_size == 2

    def test_captured_keys_go_to_sut(self, window, sink):
        window.capture_keys_action.setChecked(True)
        window.hex_view.table.setFocus()

        QTest.keyClick(window.hex_view.table, Qt.Key_A)
        QTest.keyClick(window.hex_view.table, Qt.Key_1)

        # キャプチャ中はショートカットを実行しない
        assert sink.commands == ["key_event/1/0/a", "key_event/0/0/a", "key_event/1/0/1", "key_event/0/0/1"]

    def test_capture_off_restores_shortcuts(self, window, sink):
        window.capture_keys_action.setChecked(True)
        window.capture_keys_action.setChecked(False)
        window.hex_view.table.setFocus()

        QTest.keyClick(window.hex_view.table, Qt.Key_1)

        assert sink.commands == ["step", "get_memory/0/65536"]

    def test_memory_apply_clears_editor_fields(self, window):
        session = window.session
        session.select_from_hex_fields("3C", "00")
        assert window.hex_view.addr_hi_input.text() == "3C"

        session.handle_frame(MemoryBlockFrame(b"\x3C\x00\x41"))

        assert window.hex_view.addr_hi_input.text() == ""
        assert window.hex_view.addr_lo_input.text() == ""
        assert window.hex_view.value_input.text() == ""

    def test_invalid_input_is_reported(self, window, sink):
        window._select_from_fields("G", "00")
        assert window.statusBar().currentMessage() != ""
        assert sink.commands == []

    def test_session_events_update_views(self, window):
        session = window.session
        session.handle_frame(MemoryBlockFrame(b"\x00\x00\x3E\x01"))
        session.handle_frame(StructuredFrame(
            context=SutContext("sdlTRS", 3),
            breakpoints=[Breakpoint(0, 0x0000, BreakpointType.PC)],
            registers=RegisterSet(pc=0x0000),
        ))

        assert "sdlTRS" in window.title_label.text()
        assert window.register_view.register_text("PC") == "0000"
        assert window.breakpoint_view.bp_table.rowCount() == 1
        assert window.code_view.row_text(0) == "LD A,$01"

    def test_degraded_connection_turns_title_red(self, qapp, sink):
        session = DebugSession(send=sink)
        window = MainWindow(session)
        assert window.title_label.styleSheet() == TITLE_STYLE

        session.attach_connection(ConnectionManager(
            channel_factory=lambda: None, scheduler=None, on_frame=session.handle_frame
        ))
        session.handle_frame(StructuredFrame(context=SutContext("sdlTRS", 3)))

        assert window.title_label.styleSheet() == ERROR_TITLE_STYLE
        window.close()
