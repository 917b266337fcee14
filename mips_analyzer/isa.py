"""
MIPS32 instruction metadata and disassembly.

The table lists the basic (non-pseudo) integer instructions together with
the generic format a MARS-style simulator reports for them. Loads and stores
are listed as plain I-type instructions; the classifier separates them by
opcode.
"""

import re
from dataclasses import dataclass
from typing import Optional

from capstone import Cs, CS_ARCH_MIPS, CS_MODE_BIG_ENDIAN, CS_MODE_MIPS32, CsError

from .decoder import FormatTag, GenericFormat

R, I, BRANCH, J = GenericFormat.R, GenericFormat.I, GenericFormat.BRANCH, GenericFormat.J

OP_SPECIAL = 0x00
OP_REGIMM = 0x01
OP_COP0 = 0x10
OP_SPECIAL2 = 0x1C


@dataclass(frozen=True)
class InstructionSpec:
    mnemonic: str
    opcode: int
    key: Optional[int]
    format: GenericFormat


_TABLE = [
    # SPECIAL, keyed by funct
    ("sll", OP_SPECIAL, 0x00, R), ("srl", OP_SPECIAL, 0x02, R), ("sra", OP_SPECIAL, 0x03, R),
    ("sllv", OP_SPECIAL, 0x04, R), ("srlv", OP_SPECIAL, 0x06, R), ("srav", OP_SPECIAL, 0x07, R),
    ("jr", OP_SPECIAL, 0x08, R), ("jalr", OP_SPECIAL, 0x09, R),
    ("movz", OP_SPECIAL, 0x0A, R), ("movn", OP_SPECIAL, 0x0B, R),
    ("syscall", OP_SPECIAL, 0x0C, R), ("break", OP_SPECIAL, 0x0D, R),
    ("mfhi", OP_SPECIAL, 0x10, R), ("mthi", OP_SPECIAL, 0x11, R),
    ("mflo", OP_SPECIAL, 0x12, R), ("mtlo", OP_SPECIAL, 0x13, R),
    ("mult", OP_SPECIAL, 0x18, R), ("multu", OP_SPECIAL, 0x19, R),
    ("div", OP_SPECIAL, 0x1A, R), ("divu", OP_SPECIAL, 0x1B, R),
    ("add", OP_SPECIAL, 0x20, R), ("addu", OP_SPECIAL, 0x21, R),
    ("sub", OP_SPECIAL, 0x22, R), ("subu", OP_SPECIAL, 0x23, R),
    ("and", OP_SPECIAL, 0x24, R), ("or", OP_SPECIAL, 0x25, R),
    ("xor", OP_SPECIAL, 0x26, R), ("nor", OP_SPECIAL, 0x27, R),
    ("slt", OP_SPECIAL, 0x2A, R), ("sltu", OP_SPECIAL, 0x2B, R),
    ("tge", OP_SPECIAL, 0x30, R), ("tgeu", OP_SPECIAL, 0x31, R),
    ("tlt", OP_SPECIAL, 0x32, R), ("tltu", OP_SPECIAL, 0x33, R),
    ("teq", OP_SPECIAL, 0x34, R), ("tne", OP_SPECIAL, 0x36, R),
    # SPECIAL2, keyed by funct
    ("madd", OP_SPECIAL2, 0x00, R), ("maddu", OP_SPECIAL2, 0x01, R),
    ("mul", OP_SPECIAL2, 0x02, R), ("msub", OP_SPECIAL2, 0x04, R),
    ("msubu", OP_SPECIAL2, 0x05, R), ("clz", OP_SPECIAL2, 0x20, R),
    ("clo", OP_SPECIAL2, 0x21, R),
    # REGIMM, keyed by rt
    ("bltz", OP_REGIMM, 0x00, BRANCH), ("bgez", OP_REGIMM, 0x01, BRANCH),
    ("tgei", OP_REGIMM, 0x08, I), ("tgeiu", OP_REGIMM, 0x09, I),
    ("tlti", OP_REGIMM, 0x0A, I), ("tltiu", OP_REGIMM, 0x0B, I),
    ("teqi", OP_REGIMM, 0x0C, I), ("tnei", OP_REGIMM, 0x0E, I),
    ("bltzal", OP_REGIMM, 0x10, BRANCH), ("bgezal", OP_REGIMM, 0x11, BRANCH),
    # COP0, keyed by rs
    ("mfc0", OP_COP0, 0x00, R), ("mtc0", OP_COP0, 0x04, R), ("eret", OP_COP0, 0x10, R),
    # Opcode only
    ("j", 0x02, None, J), ("jal", 0x03, None, J),
    ("beq", 0x04, None, BRANCH), ("bne", 0x05, None, BRANCH),
    ("blez", 0x06, None, BRANCH), ("bgtz", 0x07, None, BRANCH),
    ("addi", 0x08, None, I), ("addiu", 0x09, None, I),
    ("slti", 0x0A, None, I), ("sltiu", 0x0B, None, I),
    ("andi", 0x0C, None, I), ("ori", 0x0D, None, I),
    ("xori", 0x0E, None, I), ("lui", 0x0F, None, I),
    ("lb", 0x20, None, I), ("lh", 0x21, None, I), ("lwl", 0x22, None, I),
    ("lw", 0x23, None, I), ("lbu", 0x24, None, I), ("lhu", 0x25, None, I),
    ("lwr", 0x26, None, I),
    ("sb", 0x28, None, I), ("sh", 0x29, None, I), ("swl", 0x2A, None, I),
    ("sw", 0x2B, None, I), ("swr", 0x2E, None, I),
    ("ll", 0x30, None, I), ("lwc1", 0x31, None, I), ("ldc1", 0x35, None, I),
    ("sc", 0x38, None, I), ("swc1", 0x39, None, I), ("sdc1", 0x3D, None, I),
]

NOP = InstructionSpec("nop", OP_SPECIAL, 0x00, R)

INSTRUCTIONS = {(op, key): InstructionSpec(m, op, key, fmt) for m, op, key, fmt in _TABLE}

MNEMONICS = frozenset([spec.mnemonic for spec in INSTRUCTIONS.values()] + [NOP.mnemonic])


def _secondary_key(opcode: int, word: int) -> Optional[int]:
    if opcode in (OP_SPECIAL, OP_SPECIAL2):
        return word & 0x3F
    if opcode == OP_REGIMM:
        return (word >> 16) & 0x1F
    if opcode == OP_COP0:
        return (word >> 21) & 0x1F
    return None


def lookup(word: int) -> Optional[InstructionSpec]:
    """Find the basic instruction encoded by word, or None when there is none."""
    if word == 0:
        return NOP
    opcode = (word >> 26) & 0x3F
    spec = INSTRUCTIONS.get((opcode, _secondary_key(opcode, word)))
    if spec is not None and spec.mnemonic == "eret" and word & 0x3F != 0x18:
        return None
    return spec


def parse_mnemonic_list(text: str):
    """Split user input such as '{add, sub,jal}' into mnemonics."""
    text = text.strip()
    if text.startswith("{") and text.endswith("}"):
        text = text[1:-1]
    return [token.strip().lower() for token in text.split(",") if token.strip()]


def convert_hex_immediates_to_decimal(disasm: str) -> str:
    # capstone already writes negative immediates as -0x..
    return re.sub(r'0x[0-9a-fA-F]+', lambda m: str(int(m.group(0), 16)), disasm)


class Disassembler:
    def __init__(self):
        self.md = Cs(CS_ARCH_MIPS, CS_MODE_MIPS32 + CS_MODE_BIG_ENDIAN)

    def disassemble(self, word: int, address: int, tag: Optional[FormatTag] = None) -> str:
        try:
            decoded = list(self.md.disasm(word.to_bytes(4, "big"), address))
        except CsError:
            decoded = []
        if not decoded:
            return f".word 0x{word:08x}"
        asm = f"{decoded[0].mnemonic} {decoded[0].op_str}".strip()
        # Branch and jump operands are addresses, keep them in hex
        if tag not in (FormatTag.BRANCH, FormatTag.J):
            asm = convert_hex_immediates_to_decimal(asm)
        return asm
