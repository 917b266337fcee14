"""
Cycles-per-instruction bookkeeping.

The ledger counts how often each mnemonic executes and keeps an editable CPI
per mnemonic. Cycle totals are never stored: every snapshot multiplies the
current frequency by the current CPI, so a CPI edit applies to everything
observed so far.
"""

import math
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .decoder import FormatTag
from .errors import InvalidInputError

DEFAULT_CPI = 1.0


@dataclass
class FormatTally:
    total: int = 0
    r_type: int = 0
    i_type: int = 0
    j_type: int = 0

    def count(self, tag: FormatTag):
        self.total += 1
        family = tag.family
        if family == "R":
            self.r_type += 1
        elif family == "I":
            self.i_type += 1
        else:
            self.j_type += 1


@dataclass(frozen=True)
class CPIRow:
    mnemonic: str
    frequency: int
    cpi: float
    total_cycles: float
    usage_percentage: float


@dataclass(frozen=True)
class CPISnapshot:
    rows: List[CPIRow]
    total_cycles: float
    instructions: int

    @property
    def average_cpi(self) -> float:
        if self.instructions == 0:
            return 0.0
        return self.total_cycles / self.instructions

    def row(self, mnemonic: str) -> Optional[CPIRow]:
        for r in self.rows:
            if r.mnemonic == mnemonic:
                return r
        return None


def parse_cpi(value) -> float:
    """Validate a CPI given as a number or as user-entered text."""
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid CPI value: {value!r}", token=value)
    try:
        cpi = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid CPI value: {value!r}", token=value) from None
    if not math.isfinite(cpi) or cpi < 0:
        raise InvalidInputError(f"CPI must be a finite, non-negative number, got {value!r}", token=value)
    return cpi


class CPILedger:
    def __init__(self, mnemonics: Optional[Iterable[str]] = None):
        # Universe of valid mnemonics, None accepts any
        self.mnemonics = frozenset(mnemonics) if mnemonics is not None else None
        self._lock = threading.Lock()
        self._frequency = {}
        self._cpi = {}
        self._filter = frozenset()
        self.tally = FormatTally()

    def _check_mnemonic(self, mnemonic):
        if self.mnemonics is not None and mnemonic not in self.mnemonics:
            raise InvalidInputError(f"Invalid instruction: {mnemonic}", token=mnemonic)

    @property
    def filter(self) -> frozenset:
        return self._filter

    def accepts(self, mnemonic: str) -> bool:
        return not self._filter or mnemonic in self._filter

    def observe(self, mnemonic: str, tag: FormatTag) -> bool:
        """Count one execution. Returns False when the filter dropped it."""
        with self._lock:
            if not self.accepts(mnemonic):
                return False
            self._frequency[mnemonic] = self._frequency.get(mnemonic, 0) + 1
            self.tally.count(tag)
            return True

    def frequency(self, mnemonic: str) -> int:
        return self._frequency.get(mnemonic, 0)

    def cpi(self, mnemonic: str) -> float:
        return self._cpi.get(mnemonic, DEFAULT_CPI)

    def set_cpi(self, mnemonic: str, value):
        cpi = parse_cpi(value)
        self._check_mnemonic(mnemonic)
        with self._lock:
            self._cpi[mnemonic] = cpi

    def set_filter(self, mnemonics: Iterable[str]):
        """Replace the filter. Nothing changes if any mnemonic is invalid."""
        wanted = list(mnemonics)
        for mnemonic in wanted:
            self._check_mnemonic(mnemonic)
        with self._lock:
            self._filter = frozenset(wanted)

    def clear_filter(self):
        with self._lock:
            self._filter = frozenset()

    def reset(self):
        with self._lock:
            self._frequency.clear()
            self._cpi.clear()
            self._filter = frozenset()
            self.tally = FormatTally()

    def snapshot(self) -> CPISnapshot:
        with self._lock:
            counted = [(m, f, self._cpi.get(m, DEFAULT_CPI)) for m, f in self._frequency.items() if f > 0]

        cycles = [(m, f, c, f * c) for m, f, c in counted]
        total = sum(t for _, _, _, t in cycles)
        rows = [
            CPIRow(m, f, c, t, t / total if total > 0 else 0.0)
            for m, f, c, t in cycles
        ]
        return CPISnapshot(rows=rows, total_cycles=total,
                           instructions=sum(f for _, f, _ in counted))

    def to_text(self) -> str:
        with self._lock:
            t = self.tally
            frequencies = list(self._frequency.items())
        lines = [
            f"Total instructions executed: {t.total}",
            f"R-type instructions executed: {t.r_type}",
            f"I-type instructions executed: {t.i_type}",
            f"J-type instructions executed: {t.j_type}",
            "Metrics by instruction:",
        ]
        lines += [f"  {m}: {f}" for m, f in frequencies]
        return "\n".join(lines) + "\n"
