import pytest

from mips_analyzer.cpi import CPILedger
from mips_analyzer.datapath import TraceRecorder, annotate
from mips_analyzer.decoder import FormatTag, GenericFormat
from mips_analyzer.errors import ExportError, SignalTableError
from mips_analyzer.export import (cpi_csv, export_cpi, export_trace, trace_csv,
                                  with_csv_suffix)
from mips_analyzer.signals import SignalTable

CPI_HEADER = "Instruction Type,CPI,Frequency,CPI * Frequency,Usage Percentage\n"
TRACE_HEADER = ("Instruction Type,Source,Basic,Read Register 1,Read Register 2,Write Register,"
                "RegDst,Branch,MemRead,MemtoReg,ALUOp0,ALUOp1,MemWrite,ALUSrc,RegWrite\n")

ADD = (9 << 21) | (10 << 16) | (8 << 11) | 0x20
BEQ = (0x04 << 26) | (8 << 21) | (9 << 16) | 3


def test_empty_exports_are_header_only():
    assert cpi_csv(CPILedger()) == CPI_HEADER
    assert trace_csv(TraceRecorder()) == TRACE_HEADER


def test_cpi_rows():
    ledger = CPILedger()
    for _ in range(4):
        ledger.observe("add", FormatTag.R)
    ledger.observe("sub", FormatTag.R)
    ledger.set_cpi("add", 2)
    lines = cpi_csv(ledger).splitlines()
    assert lines[1:] == ["add,2.000,4,8.000,88.889%", "sub,1.000,1,1.000,11.111%"]


def test_cpi_after_reset_is_header_only():
    ledger = CPILedger()
    ledger.observe("add", FormatTag.R)
    ledger.reset()
    assert cpi_csv(ledger) == CPI_HEADER


def test_trace_rows(table):
    recorder = TraceRecorder()
    recorder.append(annotate(table, 0, ADD, GenericFormat.R,
                             basic="add $t0, $t1, $t2", source="add $t0,$t1,$t2"))
    recorder.append(annotate(table, 4, BEQ, GenericFormat.BRANCH,
                             basic="beq $t0, $t1, 0x10", source='beq $t0,$t1,"loop"'))
    lines = trace_csv(recorder).splitlines()
    assert lines[1] == ('R-type instruction,"add $t0,$t1,$t2","add $t0, $t1, $t2",'
                        '"01001","01010","01000",1,0,0,0,0,1,0,0,1')
    assert lines[2] == ('I-type BRANCH instruction,"beq $t0,$t1,""loop""","beq $t0, $t1, 0x10",'
                        '"01000","01001","XXXXX",X,1,0,X,1,0,0,0,0')


def test_export_writes_file(tmp_path, table):
    recorder = TraceRecorder()
    recorder.append(annotate(table, 0, ADD, GenericFormat.R))
    path = tmp_path / "trace.csv"
    export_trace(recorder, str(path))
    assert path.read_text().startswith(TRACE_HEADER)

    cpi_path = tmp_path / "cpi.csv"
    export_cpi(CPILedger(), str(cpi_path))
    assert cpi_path.read_text() == CPI_HEADER


def test_export_failure_reports_cause(tmp_path):
    destination = tmp_path / "missing" / "cpi.csv"
    with pytest.raises(ExportError) as exc:
        export_cpi(CPILedger(), str(destination))
    assert isinstance(exc.value.cause, OSError)
    assert not destination.exists()


def test_csv_suffix():
    assert with_csv_suffix("out") == "out.csv"
    assert with_csv_suffix("out.CSV") == "out.CSV"


def test_trace_csv_needs_every_exported_signal():
    table = SignalTable.from_rows([{"name": "RegWrite", "RType": "1", "IType": "1", "Branch": "0",
                                    "Load": "1", "Store": "0", "JType": "0"}])
    recorder = TraceRecorder()
    assert trace_csv(recorder) == TRACE_HEADER
    recorder.append(annotate(table, 0, ADD, GenericFormat.R))
    with pytest.raises(SignalTableError, match="RegDst"):
        trace_csv(recorder)


def test_export_trace_with_incomplete_table_writes_nothing(tmp_path):
    table = SignalTable.from_rows([{"name": "Jump", "RType": "0", "IType": "0", "Branch": "0",
                                    "Load": "0", "Store": "0", "JType": "1"}])
    recorder = TraceRecorder()
    recorder.append(annotate(table, 0, ADD, GenericFormat.R))
    path = tmp_path / "trace.csv"
    with pytest.raises(SignalTableError):
        export_trace(recorder, str(path))
    assert not path.exists()
