# trs_xray/core/registers.py
"""
Register State Model

SUTから最後に受信したレジスタセットを保持し、更新と参照のアクセサを提供します。
"""
import logging
from typing import Callable, Optional

from trs_xray.common.observer import Observable
from trs_xray.core.state import RegisterSet

logger = logging.getLogger(__name__)


# @intent:responsibility 最新のレジスタセットを保持し、更新を購読者へ通知します。
class RegisterModel:
    """
    レジスタセットは常に丸ごと置き換えられます。フラグはRegisterSetのプロパティとして
    `af`から導出されるため、このモデルはフラグを別途保持しません。
    """
    def __init__(self):
        self._registers: Optional[RegisterSet] = None
        self._updated: Observable[RegisterSet] = Observable()

    # @intent:responsibility レジスタセットを置き換え、購読者へ通知します。
    def update(self, registers: RegisterSet) -> None:
        self._registers = registers
        logger.debug("Registers updated: PC=%04X SP=%04X AF=%04X", registers.pc, registers.sp, registers.af)
        self._updated.notify(registers)

    @property
    def registers(self) -> Optional[RegisterSet]:
        """最後に受信したレジスタセット。未受信の場合はNone。"""
        return self._registers

    @property
    def pc(self) -> Optional[int]:
        return self._registers.pc if self._registers else None

    @property
    def sp(self) -> Optional[int]:
        return self._registers.sp if self._registers else None

    def subscribe(self, callback: Callable[[RegisterSet], None]) -> Callable[[], None]:
        return self._updated.subscribe(callback)
