"""
Instruction decoding and format classification.

Bit positions follow the MIPS reference card convention used in the datapath
trace: bit 0 is the most significant bit of the word, so the opcode occupies
bits 0-5 and the funct field bits 26-31.

    R  | opcode | rs   | rt    | rd    | shamt | funct |
       | 0-5    | 6-10 | 11-15 | 16-20 | 21-25 | 26-31 |
    I  | opcode | rs   | rt    | immediate             |
       | 0-5    | 6-10 | 11-15 | 16-31                 |
    J  | opcode | address                              |
       | 0-5    | 6-31                                 |
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

WORD_MASK = 0xFFFFFFFF

LOAD_PREFIX = 0b100
STORE_PREFIX = 0b101


class Sentinel(Enum):
    """Placeholders that are never a real signal value or register number."""
    DONT_CARE = "X"
    NO_REGISTER = "XXXXX"

    def __str__(self):
        return self.value


class GenericFormat(Enum):
    """Instruction format as reported by the instruction metadata table."""
    R = "R"
    I = "I"
    BRANCH = "BRANCH"
    J = "J"


class FormatTag(Enum):
    R = "R-type instruction"
    I_PLAIN = "I-type instruction"
    BRANCH = "I-type BRANCH instruction"
    LOAD = "I-type LOAD instruction"
    STORE = "I-type STORE instruction"
    J = "J-type instruction"

    @property
    def label(self) -> str:
        return self.value

    @property
    def family(self) -> str:
        """R, I or J, as counted by the instruction-format tallies."""
        if self is FormatTag.R:
            return "R"
        if self is FormatTag.J:
            return "J"
        return "I"


def _bits(value: int, width: int) -> str:
    return format(value, f"0{width}b")


@dataclass(frozen=True)
class DecodedFields:
    """Every field of a 32-bit word, each as fixed-width bit text."""
    word: int
    code: str
    opcode: str
    rs: str
    rt: str
    rd: str
    shamt: str
    funct: str
    immediate: str
    address: str

    @property
    def opcode_value(self) -> int:
        return self.word >> 26

    @property
    def immediate_value(self) -> int:
        """The 16-bit immediate, sign extended."""
        imm = self.word & 0xFFFF
        return imm - 0x10000 if imm & 0x8000 else imm


def decode(word: int) -> DecodedFields:
    if not 0 <= word <= WORD_MASK:
        raise ValueError(f"0x{word:x} is not a 32-bit instruction word")
    return DecodedFields(
        word=word,
        code=_bits(word, 32),
        opcode=_bits((word >> 26) & 0x3F, 6),
        rs=_bits((word >> 21) & 0x1F, 5),
        rt=_bits((word >> 16) & 0x1F, 5),
        rd=_bits((word >> 11) & 0x1F, 5),
        shamt=_bits((word >> 6) & 0x1F, 5),
        funct=_bits(word & 0x3F, 6),
        immediate=_bits(word & 0xFFFF, 16),
        address=_bits(word & 0x03FFFFFF, 26),
    )


_GENERIC_TO_TAG = {
    GenericFormat.R: FormatTag.R,
    GenericFormat.I: FormatTag.I_PLAIN,
    GenericFormat.BRANCH: FormatTag.BRANCH,
    GenericFormat.J: FormatTag.J,
}


def classify(opcode: int, generic: Optional[GenericFormat]) -> Optional[FormatTag]:
    """
    Resolve the FormatTag of an instruction.

    The metadata table does not tell loads and stores apart from other I-type
    instructions, so the opcode ranges 100xxx (loads) and 101xxx (stores) are
    checked first. Returns None when there is no generic format to fall back
    on.
    """
    prefix = (opcode >> 3) & 0b111
    if prefix == LOAD_PREFIX:
        return FormatTag.LOAD
    if prefix == STORE_PREFIX:
        return FormatTag.STORE
    if generic is None:
        return None
    return _GENERIC_TO_TAG[generic]


def register_fields(fields: DecodedFields, tag: FormatTag):
    """(read register 1, read register 2, write register) for the given format."""
    if tag is FormatTag.R:
        return fields.rs, fields.rt, fields.rd
    if tag is FormatTag.J:
        return Sentinel.NO_REGISTER, Sentinel.NO_REGISTER, Sentinel.NO_REGISTER
    if tag in (FormatTag.BRANCH, FormatTag.STORE):
        return fields.rs, fields.rt, Sentinel.NO_REGISTER
    return fields.rs, fields.rt, fields.rt
