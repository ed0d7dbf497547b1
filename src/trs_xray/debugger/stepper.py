# trs_xray/debugger/stepper.py
"""
Step Predictor (Alt Single-Step Engine)

ネイティブのシングルステップを持たないSUTに対し、現在の命令の後続PCを静的に予測し、
合成ブレークポイントを設置してから実行を再開することで命令単位のステップを模擬します。
"""
import logging
from typing import Callable, List, Optional

from trs_xray.common.types import CommandSink
from trs_xray.core.state import RegisterSet, SutContext
from trs_xray.debugger.breakpoints import BreakpointRegistry

logger = logging.getLogger(__name__)

# @intent:data_structure 現在のレジスタセットから次PCの候補を返す関数。
NextPcPredictor = Callable[[RegisterSet], List[int]]


# @intent:responsibility ステップ要求をSUTへのコマンド列に変換します。
class StepPredictor:
    """
    ステップ要求ごとに完結する（fire-and-forget）エンジン。
    SUTが停止したことは次のレジスタ更新で判明するため、内部状態としては追跡しません。
    """
    def __init__(
        self,
        send: CommandSink,
        registry: BreakpointRegistry,
        predictor: NextPcPredictor,
        context_provider: Callable[[], SutContext],
        registers_provider: Callable[[], Optional[RegisterSet]],
    ):
        self._send = send
        self._registry = registry
        self._predictor = predictor
        self._context_provider = context_provider
        self._registers_provider = registers_provider

    # @intent:responsibility 実行モードに応じてステップコマンドを送出し、設置した合成ブレークポイントのアドレスを返します。
    # @intent:pre-condition SUTが実行中の場合、要求は無視されコマンドは送出されません。
    def request_step(self) -> List[int]:
        context = self._context_provider()
        if context.running:
            logger.info("Step ignored: SUT is running.")
            return []

        if not context.alt_single_step_mode:
            self._send("step")
            return []

        registers = self._registers_provider()
        candidates = self._predictor(registers) if registers is not None else []
        if not candidates:
            logger.warning("Step ignored: no next PC could be predicted.")
            return []

        # 送出順序: clear → 候補ごとのadd → continue。応答は待たない。
        self._registry.clear_synthetic()
        for address in candidates:
            self._registry.add_synthetic(address)
        self._send("continue")
        logger.debug("Alt step from %04X via %s", registers.pc, ", ".join(f"{a:04X}" for a in candidates))
        return list(candidates)
