import contextlib
import os

import pandas as pd

from .cpi import CPILedger, CPISnapshot
from .datapath import TraceRecorder
from .errors import ExportError, SignalTableError

DELIMITER = ","

CPI_COLUMNS = ["Instruction Type", "CPI", "Frequency", "CPI * Frequency", "Usage Percentage"]

TRACE_SIGNALS = ["RegDst", "Branch", "MemRead", "MemtoReg", "ALUOp0", "ALUOp1",
                 "MemWrite", "ALUSrc", "RegWrite"]
TRACE_COLUMNS = ["Instruction Type", "Source", "Basic",
                 "Read Register 1", "Read Register 2", "Write Register"] + TRACE_SIGNALS


def cpi_table(snapshot: CPISnapshot) -> pd.DataFrame:
    rows = [
        {
            "Instruction Type": row.mnemonic,
            "CPI": f"{row.cpi:.3f}",
            "Frequency": row.frequency,
            "CPI * Frequency": f"{row.total_cycles:.3f}",
            "Usage Percentage": f"{row.usage_percentage * 100:.3f}%",
        }
        for row in snapshot.rows
    ]
    return pd.DataFrame(rows, columns=CPI_COLUMNS)


def cpi_csv(ledger: CPILedger) -> str:
    df = cpi_table(ledger.snapshot())
    return df.to_csv(index=False, sep=DELIMITER, lineterminator="\n")


def _quoted(value) -> str:
    return '"' + str(value).replace('"', '""') + '"'


def _field(value) -> str:
    text = "" if value is None else str(value)
    if DELIMITER in text or '"' in text or "\n" in text:
        return _quoted(text)
    return text


def trace_csv(recorder: TraceRecorder) -> str:
    # Hand-joined: DataFrame.to_csv cannot force quoting on only some columns
    records = recorder.records
    if records:
        missing = [name for name in TRACE_SIGNALS if name not in records[0].signals]
        if missing:
            raise SignalTableError(
                f"Signal table lacks {', '.join(missing)} needed by the datapath CSV")
    lines = [DELIMITER.join(TRACE_COLUMNS)]
    for record in records:
        cells = [_field(record.tag.label)]
        # Source, Basic and the register fields are always quoted
        cells += [_quoted(v) for v in (record.source, record.basic, record.read_register_1,
                                       record.read_register_2, record.write_register)]
        cells += [_field(record.signals.get(name)) for name in TRACE_SIGNALS]
        lines.append(DELIMITER.join(cells))
    return "\n".join(lines) + "\n"


def with_csv_suffix(path: str) -> str:
    return path if path.lower().endswith(".csv") else path + ".csv"


def write_text(destination, text: str):
    """Write text to destination, removing a partial file if writing fails."""
    created = False
    try:
        with open(destination, "w", encoding="utf-8", newline="") as f:
            created = True
            f.write(text)
    except OSError as e:
        if created:
            with contextlib.suppress(OSError):
                os.remove(destination)
        raise ExportError(destination, e) from e


def export_cpi(ledger: CPILedger, destination):
    write_text(destination, cpi_csv(ledger))


def export_trace(recorder: TraceRecorder, destination):
    write_text(destination, trace_csv(recorder))
