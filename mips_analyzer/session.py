from typing import Optional

from . import isa
from .cpi import CPILedger
from .datapath import AnnotatedInstruction, TraceRecorder, annotate
from .decoder import GenericFormat, classify
from .export import export_cpi, export_trace
from .signals import SignalTable


class Session:
    """
    One analysis session: a loaded signal table plus the CPI ledger and the
    datapath trace fed from the same stream of executed instructions.
    """

    def __init__(self, table: SignalTable, disassembler: Optional[isa.Disassembler] = None):
        self.table = table
        self.disassembler = disassembler or isa.Disassembler()
        self.ledger = CPILedger(isa.MNEMONICS)
        self.recorder = TraceRecorder()
        self.last_address = None
        self.dropped = 0

    def on_instruction_observed(self, address: int, word: int, mnemonic: str,
                                disassembly: str, source: str,
                                generic: GenericFormat) -> Optional[AnnotatedInstruction]:
        record = annotate(self.table, address, word, generic, basic=disassembly, source=source)
        if record is None:
            return None
        self.recorder.append(record)
        self.ledger.observe(mnemonic, record.tag)
        return record

    def feed(self, address: int, word: int, source: str = "") -> Optional[AnnotatedInstruction]:
        """
        Entry point for raw (address, word) events from a trace.

        Re-reads of the address observed immediately before are ignored.
        Events that do not hold a known 32-bit instruction are dropped and
        counted in `dropped`.
        """
        if address == self.last_address:
            return None
        self.last_address = address

        if not 0 <= address <= 0xFFFFFFFF or not 0 <= word <= 0xFFFFFFFF:
            self.dropped += 1
            return None
        spec = isa.lookup(word)
        if spec is None:
            self.dropped += 1
            return None

        tag = classify(word >> 26, spec.format)
        disassembly = self.disassembler.disassemble(word, address, tag)
        return self.on_instruction_observed(address, word, spec.mnemonic, disassembly,
                                            source, spec.format)

    def reset(self):
        self.ledger.reset()
        self.recorder.reset()
        self.last_address = None
        self.dropped = 0

    def current_stats_text(self) -> str:
        return self.ledger.to_text()

    def current_trace_text(self) -> str:
        return self.recorder.to_text()

    def export_cpi(self, destination):
        export_cpi(self.ledger, destination)

    def export_trace(self, destination):
        export_trace(self.recorder, destination)
