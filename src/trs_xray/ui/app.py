# src/trs_xray/ui/app.py
"""
PySide6アプリケーションのエントリポイント。
設定を読み込み、デバッグセッションと接続を組み立ててメインウィンドウを起動します。
"""
import argparse
import logging
import sys
from typing import List, Optional

from PySide6.QtWidgets import QApplication

from trs_xray.config.loader import ConfigLoader
from trs_xray.config.models import SessionConfig
from trs_xray.debugger.session import DebugSession
from trs_xray.transport.connection import ConnectionManager
from trs_xray.transport.qt_channel import QtScheduler, QtWebSocketChannel
from .main_window import MainWindow

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="trs-xray", description="Remote debugger front end for TRS-80 emulators.")
    parser.add_argument("--connect", metavar="HOST", help="SUT host[:port] serving the /channel websocket")
    parser.add_argument("--config", metavar="FILE", help="YAML session configuration")
    parser.add_argument("--offline", action="store_true", help="do not connect; import dumps only")
    parser.add_argument("--verbose", "-v", action="store_true", help="enable debug logging")
    return parser.parse_args(argv)


# @intent:responsibility コマンドライン引数で設定ファイルの値を上書きします。
def build_config(args: argparse.Namespace) -> SessionConfig:
    config = ConfigLoader().load_from_file(args.config) if args.config else SessionConfig()
    if args.connect:
        config.host = args.connect
    if args.offline:
        config.offline = True
    return config


# @intent:responsibility セッションを生成し、接続先がある場合はコネクションマネージャを接続します。
def build_session(config: SessionConfig) -> DebugSession:
    session = DebugSession(config)
    if config.host and not config.offline:
        connection = ConnectionManager(
            channel_factory=lambda: QtWebSocketChannel(config.host, config.channel_path),
            scheduler=QtScheduler(),
            on_frame=session.handle_frame,
            retry_delay_ms=config.retry_delay_ms,
            healthy_delay_ms=config.healthy_delay_ms,
            offline=config.offline,
        )
        session.attach_connection(connection)
    return session


# @intent:responsibility アプリケーションを起動し、メインウィンドウを表示します。
def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv[:1])
    config = build_config(args)
    session = build_session(config)
    main_win = MainWindow(session)
    main_win.show()

    if session.connection is not None:
        session.connection.start()
    else:
        # 接続先がなければダンプの取り込みから始める
        logger.info("No SUT host given; starting in import mode.")
        main_win.open_import_dialog()

    sys.exit(app.exec())


if __name__ == '__main__':
    main()
