# trs_xray/common/observer.py
"""
状態モデルの更新通知を購読者へ配送する仕組みを提供します。
表示層はこの仕組みを通じてのみ状態コアの変化を受け取ります。
"""
import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


# @intent:responsibility 購読者の登録・解除と、通知の順次配送を行います。
class Observable(Generic[T]):
    """
    コールバックのリストを保持し、登録順に通知を配送する。
    """
    def __init__(self):
        self._callbacks: List[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        コールバックを登録し、登録解除用の関数を返します。
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    # @intent:responsibility 全ての購読者へ値を通知します。
    # @intent:pre-condition 購読者は例外を送出しないことが期待されます。送出された例外はそのまま呼び出し元へ伝播します。
    def notify(self, value: T) -> None:
        for callback in list(self._callbacks):
            callback(value)
