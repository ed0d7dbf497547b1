"""
Z80逆アセンブラモジュール。

メモリイメージ上のバイナリデータを解析し、Z80アセンブリ言語のニーモニック形式に変換します。
また、静的な逆アセンブルにより現在の命令の次に実行されうるPCの候補を予測します。
"""
import logging
from typing import List, Optional

from trs_xray.arch.z80.decoder import FlowType, Instruction, MemoryReader, decode
from trs_xray.core.state import RegisterSet

logger = logging.getLogger(__name__)


# @intent:responsibility 指定されたメモリ範囲のバイナリデータを解析し、命令のリストを返します。
def disassemble(memory: MemoryReader, start_addr: int, length: int) -> List[Instruction]:
    """
    start_addrからlengthバイトの範囲に先頭を持つ命令をデコードして返します。
    アドレス空間の末尾を越える命令はその手前で打ち切ります。
    """
    result = []
    current_addr = start_addr
    end_addr = min(start_addr + length, 0x10000)

    while current_addr < end_addr:
        instruction = decode(memory, current_addr)
        result.append(instruction)
        current_addr += instruction.length

    return result


# @intent:responsibility 現在のPCの命令を静的に解析し、次に実行されうるPCの候補を返します。
# @intent:pre-condition registersはSUTから受信済みのレジスタセットであること。
def predict_next_pc(memory: MemoryReader, registers: RegisterSet) -> List[int]:
    """
    条件分岐は成立・不成立の両方を候補とします。フラグの評価は行いません。
    戻り値は出現順を保って重複を除いた16bitアドレスのリストです。
    """
    pc = registers.pc
    instruction = decode(memory, pc)
    fall_through = instruction.next_address
    flow = instruction.flow

    if flow in (FlowType.NEXT, FlowType.HALT):
        candidates = [fall_through]
    elif flow in (FlowType.JUMP, FlowType.CALL, FlowType.RESTART):
        candidates = [instruction.target]
    elif flow in (FlowType.CONDITIONAL_JUMP, FlowType.CONDITIONAL_CALL):
        candidates = [instruction.target, fall_through]
    elif flow is FlowType.RETURN:
        candidates = [_stack_top(memory, registers.sp)]
    elif flow is FlowType.CONDITIONAL_RETURN:
        candidates = [_stack_top(memory, registers.sp), fall_through]
    elif flow is FlowType.JUMP_INDIRECT:
        candidates = [getattr(registers, instruction.indirect_register)]
    elif flow is FlowType.REPEAT:
        candidates = [pc, fall_through]
    else:
        raise ValueError(f"Unhandled flow type: {flow}")

    result: List[int] = []
    for addr in candidates:
        addr &= 0xFFFF
        if addr not in result:
            result.append(addr)
    logger.debug("Predicted next PC for %04X %s: %s", pc, instruction.text,
                 ", ".join(f"{a:04X}" for a in result))
    return result


def _stack_top(memory: MemoryReader, sp: int) -> int:
    return memory.peek(sp & 0xFFFF) | (memory.peek((sp + 1) & 0xFFFF) << 8)


# @intent:responsibility メモリモデルに束縛された逆アセンブル・次PC予測の窓口を提供します。
class Disassembler:
    """
    メモリを保持し、PCを中心とした命令リストの生成と次PCの予測を行います。
    """
    def __init__(self, memory: MemoryReader):
        self._memory = memory

    # @intent:responsibility PCから始まる命令リストを生成します。メモリ末尾のゼロ領域は含めません。
    def listing(self, pc: int, length: int, last_nonzero: Optional[int] = None) -> List[Instruction]:
        if last_nonzero is not None and last_nonzero >= pc:
            length = min(length, last_nonzero - pc + 1)
        elif last_nonzero is not None:
            length = 1
        return disassemble(self._memory, pc, length)

    def predict_next_pc(self, registers: Optional[RegisterSet]) -> List[int]:
        if registers is None:
            return []
        return predict_next_pc(self._memory, registers)
