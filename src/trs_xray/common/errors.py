# trs_xray/common/errors.py
"""
共通の例外定義。

セッション内で発生するエラーの分類を定義します。
いずれの例外もプロセスにとって致命的ではなく、呼び出し元でユーザーへの報告またはログ出力に変換されます。
"""


# @intent:responsibility 本パッケージが送出する全ての例外の基底クラスです。
class XrayError(Exception):
    """TRS-Xray固有の例外の基底クラス。"""


# @intent:responsibility 受信フレームの形式不正を表します。
class FrameDecodeError(XrayError):
    """
    受信したテキスト/バイナリフレームがデコードできない場合に送出されます。
    コネクションマネージャはこの例外をログに記録し、フレームを破棄します。
    """


# @intent:responsibility インポート対象ダンプの解析失敗を表します。
class MalformedImportError(XrayError):
    """
    外部ツールのダンプ（非標準JSON）を正規化後も解析できない場合に送出されます。
    セッション状態は一切変更されません。
    """


class InvalidInputError(XrayError):
    """ユーザー入力（アドレス・値フィールド）が不正な場合の基底クラス。"""


# @intent:responsibility アドレス入力フィールドの不正（桁数不足・16進数以外）を表します。
class InvalidAddressInputError(InvalidInputError):
    pass


# @intent:responsibility メモリ書き込み値の不正、または書き込み先未選択を表します。
class InvalidValueInputError(InvalidInputError):
    pass


# @intent:responsibility 設定ファイルの値が不正であることを表します。
class ConfigError(XrayError):
    pass
