# trs_xray/arch/z80/decoder.py
"""
Z80命令デコーダ。

メモリイメージ上の1命令を解析し、命令長・ニーモニック・オペランドに加えて、
制御フローの種類（分岐先や条件）を持つInstructionオブジェクトへ変換します。
CB/ED/DD/FDおよびDDCB/FDCBプレフィックス命令を含む全ての公式命令を扱います。
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Tuple


# @intent:responsibility デコーダが必要とするメモリ読み出しインターフェースを定義します。
class MemoryReader(Protocol):
    def peek(self, address: int) -> int:
        ...


# @intent:responsibility 命令実行後のPCの決まり方を分類します。
class FlowType(Enum):
    NEXT = "NEXT"                               # 次の命令へ進む
    JUMP = "JUMP"                               # JP nn, JR e
    CONDITIONAL_JUMP = "CONDITIONAL_JUMP"       # JP cc,nn / JR cc,e / DJNZ e
    CALL = "CALL"                               # CALL nn
    CONDITIONAL_CALL = "CONDITIONAL_CALL"       # CALL cc,nn
    RETURN = "RETURN"                           # RET / RETI / RETN
    CONDITIONAL_RETURN = "CONDITIONAL_RETURN"   # RET cc
    JUMP_INDIRECT = "JUMP_INDIRECT"             # JP (HL) / JP (IX) / JP (IY)
    RESTART = "RESTART"                         # RST p
    REPEAT = "REPEAT"                           # LDIR などのブロック繰り返し命令
    HALT = "HALT"


# @intent:responsibility デコードされた1命令の詳細を不変に記録します。
@dataclass(frozen=True)
class Instruction:
    """
    デコード結果。`target`は分岐先アドレス、`indirect_register`はJP (rr)の参照レジスタ名（小文字）。
    """
    address: int
    mnemonic: str  # 例: "JP"
    operands: List[str] = field(default_factory=list)  # 例: ["NZ", "$1234"]
    opcode_bytes: List[int] = field(default_factory=list)  # プレフィックスとオペランドを含む全バイト
    flow: FlowType = FlowType.NEXT
    target: Optional[int] = None
    condition: Optional[str] = None
    indirect_register: Optional[str] = None

    @property
    def length(self) -> int:
        return len(self.opcode_bytes)

    @property
    def next_address(self) -> int:
        return (self.address + self.length) & 0xFFFF

    @property
    def hex_dump(self) -> str:
        return " ".join(f"{b:02X}" for b in self.opcode_bytes)

    @property
    def text(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {','.join(self.operands)}"
        return self.mnemonic


# Helper tables for operand decoding
REGISTERS = ("B", "C", "D", "E", "H", "L", "(HL)", "A")
REGISTER_PAIRS_SP = ("BC", "DE", "HL", "SP")
REGISTER_PAIRS_AF = ("BC", "DE", "HL", "AF")
CONDITIONS = ("NZ", "Z", "NC", "C", "PO", "PE", "P", "M")
ALU_OPERATIONS = (
    ("ADD", True), ("ADC", True), ("SUB", False), ("SBC", True),
    ("AND", False), ("XOR", False), ("OR", False), ("CP", False),
)
ROTATIONS = ("RLC", "RRC", "RL", "RR", "SLA", "SRA", "SLL", "SRL")
ACCUMULATOR_OPERATIONS = ("RLCA", "RRCA", "RLA", "RRA", "DAA", "CPL", "SCF", "CCF")
INTERRUPT_MODES = ("0", "0", "1", "2", "0", "0", "1", "2")
BLOCK_OPERATIONS = (
    ("LDI", "CPI", "INI", "OUTI"),
    ("LDD", "CPD", "IND", "OUTD"),
    ("LDIR", "CPIR", "INIR", "OTIR"),
    ("LDDR", "CPDR", "INDR", "OTDR"),
)
PREFIXES = (0xCB, 0xDD, 0xED, 0xFD)


def _hex8(value: int) -> str:
    return f"${value:02X}"


def _hex16(value: int) -> str:
    return f"${value:04X}"


# @intent:responsibility 命令バイトを先頭から順に読み進め、読み取ったバイトを記録します。
class _Reader:
    def __init__(self, memory: MemoryReader, address: int):
        self._memory = memory
        self.address = address & 0xFFFF
        self.bytes: List[int] = []

    def next(self) -> int:
        value = self._memory.peek((self.address + len(self.bytes)) & 0xFFFF)
        self.bytes.append(value)
        return value

    def peek_next(self) -> int:
        return self._memory.peek((self.address + len(self.bytes)) & 0xFFFF)

    def word(self) -> int:
        low = self.next()
        high = self.next()
        return (high << 8) | low

    def displacement(self) -> int:
        value = self.next()
        return value - 256 if value >= 128 else value

    def relative_target(self) -> int:
        offset = self.displacement()
        return (self.address + len(self.bytes) + offset) & 0xFFFF

    def build(self, mnemonic: str, operands: Tuple[str, ...] = (), **kwargs) -> Instruction:
        return Instruction(
            address=self.address,
            mnemonic=mnemonic,
            operands=list(operands),
            opcode_bytes=list(self.bytes),
            **kwargs,
        )


# @intent:responsibility インデックスレジスタ（IX/IY）による(HL)/H/L/HLの置き換えを扱います。
class _Operands:
    """
    index が None の場合は通常の命令、"IX"/"IY" の場合は DD/FD プレフィックス付き命令として
    オペランド名を生成します。(HL) を含む命令では H/L は置き換えられません。
    """
    def __init__(self, reader: _Reader, index: Optional[str]):
        self.reader = reader
        self.index = index

    def register(self, code: int, uses_memory: bool = False) -> str:
        if code == 6:
            if self.index is None:
                return "(HL)"
            d = self.reader.displacement()
            sign = "-" if d < 0 else "+"
            return f"({self.index}{sign}{_hex8(abs(d))})"
        if self.index is not None and not uses_memory and code in (4, 5):
            return self.index + ("H" if code == 4 else "L")
        return REGISTERS[code]

    def pair(self, code: int, table: Tuple[str, ...] = REGISTER_PAIRS_SP) -> str:
        name = table[code]
        if name == "HL" and self.index is not None:
            return self.index
        return name


# @intent:responsibility 指定アドレスの1命令をデコードします。
# @intent:pre-condition memoryはpeek(address)を提供する必要があります。アドレスは16bitで折り返されます。
def decode(memory: MemoryReader, address: int) -> Instruction:
    """
    Z80命令を1つデコードし、Instructionオブジェクトを返します。
    未定義のプレフィックス列は1バイトのデータ(DB)として扱います。
    """
    reader = _Reader(memory, address)
    opcode = reader.next()

    if opcode == 0xCB:
        return _decode_cb(reader)
    if opcode == 0xED:
        return _decode_ed(reader)
    if opcode in (0xDD, 0xFD):
        index = "IX" if opcode == 0xDD else "IY"
        # 後続がプレフィックスの場合、このプレフィックスは単独のNOPとして振る舞う
        if reader.peek_next() in (0xDD, 0xED, 0xFD):
            return reader.build("DB", (_hex8(opcode),))
        second = reader.next()
        if second == 0xCB:
            return _decode_index_cb(reader, index)
        return _decode_main(reader, second, _Operands(reader, index))
    return _decode_main(reader, opcode, _Operands(reader, None))


def _decode_main(reader: _Reader, opcode: int, ops: _Operands) -> Instruction:
    x = opcode >> 6
    y = (opcode >> 3) & 0b111
    z = opcode & 0b111
    p = y >> 1
    q = y & 1

    if x == 0:
        return _decode_x0(reader, ops, y, z, p, q)

    if x == 1:
        if z == 6 and y == 6:
            return reader.build("HALT", flow=FlowType.HALT)
        uses_memory = y == 6 or z == 6
        dst = ops.register(y, uses_memory)
        src = ops.register(z, uses_memory)
        return reader.build("LD", (dst, src))

    if x == 2:
        return _alu(reader, y, ops.register(z))

    return _decode_x3(reader, ops, y, z, p, q)


def _alu(reader: _Reader, y: int, operand: str) -> Instruction:
    mnemonic, with_accumulator = ALU_OPERATIONS[y]
    operands = ("A", operand) if with_accumulator else (operand,)
    return reader.build(mnemonic, operands)


def _decode_x0(reader: _Reader, ops: _Operands, y: int, z: int, p: int, q: int) -> Instruction:
    if z == 0:
        if y == 0:
            return reader.build("NOP")
        if y == 1:
            return reader.build("EX", ("AF", "AF'"))
        if y == 2:
            target = reader.relative_target()
            return reader.build("DJNZ", (_hex16(target),), flow=FlowType.CONDITIONAL_JUMP,
                                target=target, condition="B!=0")
        if y == 3:
            target = reader.relative_target()
            return reader.build("JR", (_hex16(target),), flow=FlowType.JUMP, target=target)
        cc = CONDITIONS[y - 4]
        target = reader.relative_target()
        return reader.build("JR", (cc, _hex16(target)), flow=FlowType.CONDITIONAL_JUMP,
                            target=target, condition=cc)

    if z == 1:
        if q == 0:
            return reader.build("LD", (ops.pair(p), _hex16(reader.word())))
        return reader.build("ADD", (ops.pair(2), ops.pair(p)))

    if z == 2:
        if p == 0:
            return reader.build("LD", ("(BC)", "A") if q == 0 else ("A", "(BC)"))
        if p == 1:
            return reader.build("LD", ("(DE)", "A") if q == 0 else ("A", "(DE)"))
        nn = f"({_hex16(reader.word())})"
        reg = ops.pair(2) if p == 2 else "A"
        return reader.build("LD", (nn, reg) if q == 0 else (reg, nn))

    if z == 3:
        return reader.build("INC" if q == 0 else "DEC", (ops.pair(p),))

    if z == 4:
        return reader.build("INC", (ops.register(y),))

    if z == 5:
        return reader.build("DEC", (ops.register(y),))

    if z == 6:
        # (IX+d) の変位バイトは即値より先に並ぶ
        dst = ops.register(y)
        return reader.build("LD", (dst, _hex8(reader.next())))

    return reader.build(ACCUMULATOR_OPERATIONS[y])


def _decode_x3(reader: _Reader, ops: _Operands, y: int, z: int, p: int, q: int) -> Instruction:
    if z == 0:
        cc = CONDITIONS[y]
        return reader.build("RET", (cc,), flow=FlowType.CONDITIONAL_RETURN, condition=cc)

    if z == 1:
        if q == 0:
            return reader.build("POP", (ops.pair(p, REGISTER_PAIRS_AF),))
        if p == 0:
            return reader.build("RET", flow=FlowType.RETURN)
        if p == 1:
            return reader.build("EXX")
        if p == 2:
            reg = ops.pair(2)
            return reader.build("JP", (f"({reg})",), flow=FlowType.JUMP_INDIRECT,
                                indirect_register=reg.lower())
        return reader.build("LD", ("SP", ops.pair(2)))

    if z == 2:
        cc = CONDITIONS[y]
        target = reader.word()
        return reader.build("JP", (cc, _hex16(target)), flow=FlowType.CONDITIONAL_JUMP,
                            target=target, condition=cc)

    if z == 3:
        if y == 0:
            target = reader.word()
            return reader.build("JP", (_hex16(target),), flow=FlowType.JUMP, target=target)
        if y == 2:
            return reader.build("OUT", (f"({_hex8(reader.next())})", "A"))
        if y == 3:
            return reader.build("IN", ("A", f"({_hex8(reader.next())})"))
        if y == 4:
            return reader.build("EX", ("(SP)", ops.pair(2)))
        if y == 5:
            return reader.build("EX", ("DE", "HL"))
        if y == 6:
            return reader.build("DI")
        if y == 7:
            return reader.build("EI")
        # y == 1 (CB) はdecode()で処理済み
        return reader.build("DB", (_hex8(reader.bytes[-1]),))

    if z == 4:
        cc = CONDITIONS[y]
        target = reader.word()
        return reader.build("CALL", (cc, _hex16(target)), flow=FlowType.CONDITIONAL_CALL,
                            target=target, condition=cc)

    if z == 5:
        if q == 0:
            return reader.build("PUSH", (ops.pair(p, REGISTER_PAIRS_AF),))
        if p == 0:
            target = reader.word()
            return reader.build("CALL", (_hex16(target),), flow=FlowType.CALL, target=target)
        return reader.build("DB", (_hex8(reader.bytes[-1]),))

    if z == 6:
        return _alu(reader, y, _hex8(reader.next()))

    target = y * 8
    return reader.build("RST", (_hex8(target),), flow=FlowType.RESTART, target=target)


# @intent:responsibility CBプレフィックス命令（ローテート・シフト・ビット操作）をデコードします。
def _decode_cb(reader: _Reader) -> Instruction:
    opcode = reader.next()
    x = opcode >> 6
    y = (opcode >> 3) & 0b111
    reg = REGISTERS[opcode & 0b111]
    if x == 0:
        return reader.build(ROTATIONS[y], (reg,))
    return reader.build(("BIT", "RES", "SET")[x - 1], (str(y), reg))


# @intent:responsibility DDCB/FDCB命令をデコードします。変位バイトはオペコードより前に並びます。
def _decode_index_cb(reader: _Reader, index: str) -> Instruction:
    d = reader.displacement()
    opcode = reader.next()
    x = opcode >> 6
    y = (opcode >> 3) & 0b111
    z = opcode & 0b111
    sign = "-" if d < 0 else "+"
    target = f"({index}{sign}{_hex8(abs(d))})"

    if x == 1:
        return reader.build("BIT", (str(y), target))
    mnemonic = ROTATIONS[y] if x == 0 else ("RES", "SET")[x - 2]
    operands = (target,) if x == 0 else (str(y), target)
    if z != 6:
        # 非公式: 結果をレジスタにもコピーする
        operands = operands + (REGISTERS[z],)
    return reader.build(mnemonic, operands)


# @intent:responsibility EDプレフィックス命令をデコードします。
def _decode_ed(reader: _Reader) -> Instruction:
    opcode = reader.next()
    x = opcode >> 6
    y = (opcode >> 3) & 0b111
    z = opcode & 0b111
    p = y >> 1
    q = y & 1

    if x == 1:
        if z == 0:
            return reader.build("IN", ("(C)",) if y == 6 else (REGISTERS[y], "(C)"))
        if z == 1:
            return reader.build("OUT", ("(C)", "0" if y == 6 else REGISTERS[y]))
        if z == 2:
            return reader.build("SBC" if q == 0 else "ADC", ("HL", REGISTER_PAIRS_SP[p]))
        if z == 3:
            nn = f"({_hex16(reader.word())})"
            pair = REGISTER_PAIRS_SP[p]
            return reader.build("LD", (nn, pair) if q == 0 else (pair, nn))
        if z == 4:
            return reader.build("NEG")
        if z == 5:
            return reader.build("RETI" if y == 1 else "RETN", flow=FlowType.RETURN)
        if z == 6:
            return reader.build("IM", (INTERRUPT_MODES[y],))
        return reader.build(*{
            0: ("LD", ("I", "A")),
            1: ("LD", ("R", "A")),
            2: ("LD", ("A", "I")),
            3: ("LD", ("A", "R")),
            4: ("RRD", ()),
            5: ("RLD", ()),
        }.get(y, ("NOP", ())))

    if x == 2 and z <= 3 and y >= 4:
        mnemonic = BLOCK_OPERATIONS[y - 4][z]
        flow = FlowType.REPEAT if y >= 6 else FlowType.NEXT
        return reader.build(mnemonic, flow=flow)

    return reader.build("DB", (_hex8(0xED), _hex8(opcode)))
