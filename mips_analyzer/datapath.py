import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from .decoder import DecodedFields, FormatTag, GenericFormat, classify, decode, register_fields
from .signals import SignalTable


@dataclass(frozen=True)
class AnnotatedInstruction:
    """One executed instruction with its register fields and control signals."""
    address: int
    tag: FormatTag
    fields: DecodedFields
    read_register_1: object
    read_register_2: object
    write_register: object
    signals: dict = field(default_factory=dict)
    basic: str = ""
    source: str = ""

    @property
    def payload(self) -> dict:
        """Format-specific fields beyond the shared opcode and register slots."""
        if self.tag is FormatTag.R:
            return {"shamt": self.fields.shamt, "funct": self.fields.funct}
        if self.tag is FormatTag.J:
            return {"address": self.fields.address}
        return {"Immediate": self.fields.immediate}

    def to_text(self) -> str:
        f = self.fields
        lines = [
            self.tag.label,
            "-------Basic Instruction Info-------",
            f"Address: 0x{self.address:08x}",
            f"Source: {self.source}",
            f"Compiled assembly: {self.basic}",
            f"Instruction code: {f.code}",
        ]
        if self.tag is FormatTag.R:
            lines.append("-------R-Type Instruction Analysis-------")
        elif self.tag is FormatTag.J:
            lines.append("-------J-Type Instruction Analysis-------")
        else:
            lines.append("-------I-Type Instruction Analysis-------")
        lines.append(f"opcode: {f.opcode}")
        if self.tag is FormatTag.R:
            lines += [f"rs: {f.rs}", f"rt: {f.rt}", f"rd: {f.rd}"]
        elif self.tag is not FormatTag.J:
            lines += [f"rs: {f.rs}", f"rt: {f.rt}"]
        lines += [f"{name}: {value}" for name, value in self.payload.items()]
        lines += [
            "-------Register File analytics-------",
            f"RegRead 1: {self.read_register_1}",
            f"RegRead 2: {self.read_register_2}",
            f"RegWrite: {self.write_register}",
            "-------Control Unit Signals-------",
        ]
        lines += [f"{name}: {value}" for name, value in self.signals.items()]
        return "\n".join(lines) + "\n"


def annotate(table: SignalTable, address: int, word: int,
             generic: Optional[GenericFormat], basic: str = "",
             source: str = "") -> Optional[AnnotatedInstruction]:
    """
    Decode and classify one instruction word and attach its control signals.

    Returns None when the word cannot be classified (no generic format and
    not a load/store opcode).
    """
    fields = decode(word)
    tag = classify(fields.opcode_value, generic)
    if tag is None:
        return None
    read1, read2, write = register_fields(fields, tag)
    return AnnotatedInstruction(
        address=address,
        tag=tag,
        fields=fields,
        read_register_1=read1,
        read_register_2=read2,
        write_register=write,
        signals=table.signals_for(tag),
        basic=basic,
        source=source,
    )


class TraceRecorder:
    """
    Ordered log of annotated instructions.

    The log has no capacity bound and keeps every record until reset(), so
    memory grows linearly with the number of observed instructions.
    """

    def __init__(self):
        self._records = []
        self._lock = threading.Lock()

    def append(self, record: AnnotatedInstruction):
        with self._lock:
            self._records.append(record)

    def reset(self):
        with self._lock:
            self._records.clear()

    @property
    def records(self):
        with self._lock:
            return tuple(self._records)

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self.records)

    def format_counts(self) -> Counter:
        return Counter(record.tag for record in self.records)

    def to_text(self) -> str:
        return "\n".join(record.to_text() for record in self.records)
