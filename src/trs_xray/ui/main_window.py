# src/trs_xray/ui/main_window.py
"""
メインウィンドウの実装。
デバッグセッションの通知を購読して各ビューを更新し、ユーザー操作をセッションへ転送します。
"""
import logging
from typing import Callable, List

from PySide6.QtCore import QEvent, Qt, Slot
from PySide6.QtGui import QAction, QColor, QKeyEvent, QKeySequence, QPalette, QShortcut
from PySide6.QtWidgets import (
    QApplication, QDockWidget, QLabel, QMainWindow, QTabWidget, QToolBar, QVBoxLayout, QWidget
)

from trs_xray.common.errors import InvalidInputError
from trs_xray.debugger.session import DebugSession, SessionEvent
from trs_xray.transport.connection import ConnectionHealth
from .breakpoint_view import BreakpointView
from .code_view import CodeView
from .flag_view import FlagView
from .fonts import get_monospace_font_family
from .hex_view import HexView
from .import_dialog import ImportDialog
from .register_view import RegisterView

logger = logging.getLogger(__name__)

TITLE_STYLE = "font-size: 14pt; font-weight: bold; color: #E0E0E0; padding: 4px;"
ERROR_TITLE_STYLE = "font-size: 14pt; font-weight: bold; color: #FF4040; padding: 4px;"


# @intent:responsibility アプリケーションのメインウィンドウを定義し、UIの主要なコンポーネントを組み立てます。
class MainWindow(QMainWindow):
    """
    表示層はセッションの状態を参照するだけで、状態を保持しません。
    """
    def __init__(self, session: DebugSession, parent=None):
        super(MainWindow, self).__init__(parent)
        self.session = session
        self.setWindowTitle("TRS-Xray")
        self.setGeometry(100, 100, 1200, 800)
        self.setDockNestingEnabled(True)

        self._set_dark_theme()
        self._create_toolbar()
        self._create_central_area()
        self._create_status_inspector()
        self._create_breakpoint_pane()
        self.shortcuts = self._create_shortcuts()

        session.subscribe(self._on_session_event)
        self._update_title()

    # @intent:responsibility 実行制御用のツールバーを作成します。
    def _create_toolbar(self):
        toolbar = QToolBar("Main Toolbar")
        self.addToolBar(toolbar)

        self.step_action = QAction("Step", self)
        self.step_action.triggered.connect(self.session.step)
        toolbar.addAction(self.step_action)

        self.continue_action = QAction("Continue", self)
        self.continue_action.triggered.connect(self.session.resume)
        toolbar.addAction(self.continue_action)

        self.stop_action = QAction("Stop", self)
        self.stop_action.triggered.connect(self.session.stop)
        toolbar.addAction(self.stop_action)

        self.reset_action = QAction("Reset", self)
        self.reset_action.setToolTip("Soft reset (Shift-click for hard reset)")
        self.reset_action.triggered.connect(self._reset)
        toolbar.addAction(self.reset_action)

        toolbar.addSeparator()

        self.refresh_action = QAction("Refresh", self)
        self.refresh_action.triggered.connect(self.session.force_refresh)
        toolbar.addAction(self.refresh_action)

        self.demo_action = QAction("Demo", self)
        self.demo_action.triggered.connect(self.session.inject_demo)
        toolbar.addAction(self.demo_action)

        self.import_action = QAction("Import", self)
        self.import_action.triggered.connect(self.open_import_dialog)
        toolbar.addAction(self.import_action)

        self.capture_keys_action = QAction("Capture Keys", self)
        self.capture_keys_action.setCheckable(True)
        self.capture_keys_action.setToolTip("Send key presses to the SUT keyboard")
        self.capture_keys_action.toggled.connect(self._set_key_capture)
        toolbar.addAction(self.capture_keys_action)

    def _create_central_area(self):
        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        self.title_label = QLabel()
        layout.addWidget(self.title_label)

        self.tab_widget = tab_widget = QTabWidget()
        self.hex_view = HexView(self.session.memory, self.session.config.memory_regions)
        self.hex_view.address_clicked.connect(self._select_address)
        self.hex_view.selection_entered.connect(self._select_from_fields)
        self.hex_view.value_entered.connect(self._write_value)
        self.hex_view.breakpoint_requested.connect(self._add_breakpoint)
        tab_widget.addTab(self.hex_view, "Memory")
        self.code_view = CodeView()
        tab_widget.addTab(self.code_view, "Disassembly")
        layout.addWidget(tab_widget)
        self.setCentralWidget(central)

    # @intent:responsibility 右側のステータスインスペクタを作成します。
    def _create_status_inspector(self):
        status_dock = QDockWidget("Status Inspector", self)
        status_dock.setAllowedAreas(Qt.RightDockWidgetArea)
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
        self.register_view = RegisterView()
        self.flag_view = FlagView()
        layout.addWidget(self.register_view)
        layout.addWidget(self.flag_view)
        status_dock.setWidget(container)
        self.addDockWidget(Qt.RightDockWidgetArea, status_dock)

    def _create_breakpoint_pane(self):
        bp_dock = QDockWidget("Breakpoints", self)
        bp_dock.setAllowedAreas(Qt.LeftDockWidgetArea | Qt.RightDockWidgetArea)
        self.breakpoint_view = BreakpointView()
        self.breakpoint_view.address_selected.connect(self._select_address)
        self.breakpoint_view.breakpoint_removed.connect(self.session.remove_breakpoint)
        bp_dock.setWidget(self.breakpoint_view)
        self.addDockWidget(Qt.LeftDockWidgetArea, bp_dock)

    # @intent:responsibility キーボードショートカットと操作の対応を定義します。
    # 子ウィジェット（テーブル等）がフォーカスを持っていても発火するよう、ウィンドウ全体のQShortcutとして登録する
    def _create_shortcuts(self) -> List[QShortcut]:
        session = self.session
        shortcut_map = [
            ("1", session.step),
            ("2", session.resume),
            ("3", session.stop),
            ("4", session.soft_reset),
            ("$", session.hard_reset),
            ("+", session.memory.increase_byte_size),
            ("=", session.memory.increase_byte_size),
            ("-", session.memory.decrease_byte_size),
            ("M", session.toggle_full_memory_update),
            ("R", session.force_refresh),
            ("Shift+I", self.open_import_dialog),
            ("T", session.insert_test_data),
        ]
        shortcuts = []
        for sequence, handler in shortcut_map:
            shortcut = QShortcut(QKeySequence(sequence), self)
            shortcut.activated.connect(handler)
            shortcuts.append(shortcut)
        return shortcuts

    # @intent:responsibility キーキャプチャの切り替え。有効な間はショートカットを止め、全てのキー入力をSUTへ転送します。
    @Slot(bool)
    def _set_key_capture(self, enabled: bool):
        for shortcut in self.shortcuts:
            shortcut.setEnabled(not enabled)
        app = QApplication.instance()
        if enabled:
            app.installEventFilter(self)
        else:
            app.removeEventFilter(self)
        logger.info("Key capture %s", "enabled" if enabled else "disabled")

    def eventFilter(self, watched, event):
        if (event.type() in (QEvent.KeyPress, QEvent.KeyRelease)
                and isinstance(watched, QWidget) and watched.window() is self):
            self._forward_key(event)
            return True
        return super().eventFilter(watched, event)

    def _forward_key(self, event: QKeyEvent) -> None:
        # キーリピートは転送しない
        if event.isAutoRepeat() or not event.text():
            return
        shift = bool(event.modifiers() & Qt.ShiftModifier)
        self.session.send_key(event.type() == QEvent.KeyPress, shift, event.text())

    @Slot()
    def open_import_dialog(self) -> ImportDialog:
        dialog = ImportDialog(self.session.import_trs80gp, self)
        dialog.open()
        return dialog

    @Slot()
    def _reset(self):
        if QApplication.keyboardModifiers() & Qt.ShiftModifier:
            self.session.hard_reset()
        else:
            self.session.soft_reset()

    # --- 入力の転送 ---

    @Slot(int)
    def _select_address(self, address: int):
        self.session.select_address(address)

    @Slot(str, str)
    def _select_from_fields(self, hi: str, lo: str):
        self._report_input(lambda: self.session.select_from_hex_fields(hi, lo))

    @Slot(str)
    def _write_value(self, text: str):
        self._report_input(lambda: self.session.write_selected(text))

    def _add_breakpoint(self, hi: str, lo: str, bp_type):
        self._report_input(lambda: self.session.add_breakpoint_from_hex_fields(hi, lo, bp_type))

    def _report_input(self, operation: Callable[[], object]) -> None:
        try:
            operation()
        except InvalidInputError as e:
            self.statusBar().showMessage(str(e), 5000)

    # --- セッション通知の反映 ---

    def _on_session_event(self, event: SessionEvent) -> None:
        session = self.session
        if event in (SessionEvent.CONTEXT, SessionEvent.CONNECTION):
            self._update_title()
        elif event is SessionEvent.REGISTERS:
            registers = session.registers.registers
            self.register_view.update_registers(registers)
            self.flag_view.update_flags(registers)
            self.hex_view.set_pc(session.registers.pc)
        elif event is SessionEvent.BREAKPOINTS:
            self.breakpoint_view.set_breakpoints(session.user_breakpoints())
            self._update_code_view()
        elif event is SessionEvent.SELECTION:
            selection = session.selection
            value = session.memory.peek(selection) if selection is not None else None
            self.hex_view.set_selection(selection, value)
        elif event is SessionEvent.LISTING:
            self._update_code_view()

    def _update_code_view(self) -> None:
        addresses = [bp.address for bp in self.session.user_breakpoints()]
        self.code_view.update_code(self.session.listing, self.session.registers.pc, addresses)

    # @intent:responsibility SUT名・モデル・実行状態を表示し、接続が劣化している間はタイトルを赤くします。
    def _update_title(self) -> None:
        context = self.session.context
        state = "running" if context.running else "stopped"
        mode = " [alt-step]" if context.alt_single_step_mode else ""
        self.title_label.setText(f"{context.system_name}  M{context.model}  ({state}){mode}")
        degraded = (self.session.connection is not None
                    and self.session.connection_health is ConnectionHealth.DEGRADED)
        self.title_label.setStyleSheet(ERROR_TITLE_STYLE if degraded else TITLE_STYLE)

    # @intent:responsibility アプリケーションにダークテーマのスタイルシートを適用します。
    def _set_dark_theme(self):
        dark_palette = QPalette()
        dark_palette.setColor(QPalette.Window, QColor(29, 29, 29))
        dark_palette.setColor(QPalette.WindowText, QColor(224, 224, 224))
        dark_palette.setColor(QPalette.Base, QColor(30, 30, 30))
        dark_palette.setColor(QPalette.AlternateBase, QColor(53, 53, 53))
        dark_palette.setColor(QPalette.Text, QColor(224, 224, 224))
        dark_palette.setColor(QPalette.Button, QColor(53, 53, 53))
        dark_palette.setColor(QPalette.ButtonText, QColor(224, 224, 224))
        dark_palette.setColor(QPalette.Highlight, QColor(42, 130, 218))
        dark_palette.setColor(QPalette.HighlightedText, QColor(0, 0, 0))
        QApplication.setPalette(dark_palette)

        font_family = get_monospace_font_family()
        self.setStyleSheet(f"""
            QWidget {{ font-family: '{font_family}', monospace; font-size: 10pt; }}
            QMainWindow, QToolBar {{ background-color: #1D1D1D; border: none; }}
            QDockWidget::title {{ text-align: left; background: #101010; padding: 4px; font-weight: bold; }}
            QTabWidget::pane {{ border-top: 2px solid #2A82DA; }}
            QTabBar::tab {{
                background: #1E1E1E;
                border: 1px solid #1E1E1E;
                border-bottom-color: #2A82DA;
                padding: 8px 12px;
                min-width: 80px;
            }}
            QTabBar::tab:selected {{ background: #101010; border: 1px solid #2A82DA; border-bottom-color: #101010; }}
        """)

    def closeEvent(self, event):
        self.capture_keys_action.setChecked(False)
        if self.session.connection is not None:
            self.session.connection.stop()
        event.accept()
