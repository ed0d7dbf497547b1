# trs_xray/loader/trs80gp.py
"""
Import Adapter

trs80gpのデバッグエクスポート（キーがクォートされていない非標準JSON）を読み込み、
SUTコンテキスト・レジスタセット・メモリブロックの正規形へ変換します。
非標準JSONの修復はこのモジュールの内部に閉じています。
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List

from trs_xray.common.errors import MalformedImportError
from trs_xray.core.state import RegisterSet, SutContext

logger = logging.getLogger(__name__)

IMPORT_SYSTEM_NAME = "trs80gp-import"

# @intent:constant クォートの有無に関わらずキーを "key": の形へ正規化するパターン。
_KEY_PATTERN = re.compile(r"(['\"])?([a-z0-9A-Z_]+)(['\"])?:")

# @intent:constant trs80gpのフィールド名とレジスタセットのフィールド名の対応。
_REGISTER_FIELDS = {
    "AF": "af", "AFp": "af_prime",
    "BC": "bc", "BCp": "bc_prime",
    "DE": "de", "DEp": "de_prime",
    "HL": "hl", "HLp": "hl_prime",
    "IX": "ix", "IY": "iy",
    "PC": "pc", "SP": "sp",
    "I": "i", "R": "r_1",
    "IFF1": "z80_iff1", "IFF2": "z80_iff2",
}

# @intent:constant 省略できないレジスタフィールド。その他は省略時に0とみなします。
_REQUIRED_FIELDS = ("AF", "PC", "SP")


# @intent:data_structure インポート結果。セッションはこの順序（context, registers, memory）で適用します。
@dataclass(frozen=True)
class ImportedDump:
    context: SutContext
    registers: RegisterSet
    memory_block: bytes


# @intent:responsibility trs80gpのダンプテキストを解析します。
class Trs80gpImporter:
    """
    解析は全て完了してから結果を返すため、失敗時に呼び出し元の状態が変更されることはありません。
    """
    def normalize(self, text: str) -> str:
        return _KEY_PATTERN.sub(r'"\2": ', text)

    # @intent:responsibility ダンプテキストをImportedDumpへ変換します。
    # @intent:pre-condition 解析できない場合、またはフィールドが欠落・型不正の場合はMalformedImportErrorを送出します。
    def parse(self, text: str) -> ImportedDump:
        try:
            data = json.loads(self.normalize(text))
        except ValueError as e:
            raise MalformedImportError(f"Failed to parse trs80gp JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedImportError("trs80gp dump must be a JSON object.")

        registers = self._parse_registers(data)
        memory_block = bytes([0, 0]) + self._parse_memory(data)
        context = SutContext(
            system_name=IMPORT_SYSTEM_NAME,
            model=0,
            running=False,
            alt_single_step_mode=False,
        )
        logger.info("Parsed trs80gp dump: PC=%04X, %d memory bytes", registers.pc, len(memory_block) - 2)
        return ImportedDump(context=context, registers=registers, memory_block=memory_block)

    def _parse_registers(self, data: Dict[str, Any]) -> RegisterSet:
        values: Dict[str, Any] = {}
        for source, target in _REGISTER_FIELDS.items():
            value = data.get(source, None if source in _REQUIRED_FIELDS else 0)
            if not _is_int(value):
                raise MalformedImportError(f"Missing or invalid register field '{source}': {value!r}")
            values[target] = value

        # Rは8bitのため上位側(r_2)へは分割できない。下位側のみに格納する。
        values["r_2"] = 0
        values["z80_clockspeed"] = 0.0
        values["z80_interrupt_mode"] = 0
        values["z80_t_state_counter"] = 0
        return RegisterSet.from_dict(values)

    def _parse_memory(self, data: Dict[str, Any]) -> bytes:
        mem: List[Any] = data.get("mem")
        if not isinstance(mem, list):
            raise MalformedImportError("Missing or invalid field 'mem'.")
        if not all(_is_int(b) and 0 <= b <= 0xFF for b in mem):
            raise MalformedImportError("Field 'mem' must contain byte values (0-255).")
        return bytes(mem)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
