import pytest

from mips_analyzer.errors import TraceFormatError
from mips_analyzer.trace_reader import read_events, read_text_events, read_vcd_events


def _vcd(samples, pc_name="pc"):
    lines = [
        "$timescale 1ns $end",
        "$scope module top $end",
        "$var wire 1 ! clk $end",
        f'$var wire 32 " {pc_name} [31:0] $end',
        "$var wire 32 # instr [31:0] $end",
        "$upscope $end",
        "$enddefinitions $end",
    ]
    t = 0
    for pc, instr in samples:
        lines += [f"#{t}", "0!", f'b{pc} "', f"b{instr} #"]
        lines += [f"#{t + 5}", "1!"]
        t += 10
    lines.append(f"#{t}")
    return "\n".join(lines) + "\n"


def _bin(value):
    return format(value, "b")


def test_vcd_events(tmp_path):
    path = tmp_path / "cpu.vcd"
    path.write_text(_vcd([
        (_bin(0x400000), _bin(0x012A4020)),
        (_bin(0x400004), _bin(0x8FA80004)),
        ("x" * 32, "x" * 32),
    ]))
    events = list(read_vcd_events(str(path)))
    assert events == [(0x400000, 0x012A4020, ""), (0x400004, 0x8FA80004, "")]


def test_vcd_signal_candidates_from_config(tmp_path):
    path = tmp_path / "cpu.vcd"
    path.write_text(_vcd([(_bin(0x400000), _bin(0x012A4020))], pc_name="fetch_pc"))
    with pytest.raises(TraceFormatError):
        list(read_vcd_events(str(path)))
    events = list(read_vcd_events(str(path), {"PC": ["top.fetch_pc", "fetch_pc"]}))
    assert events == [(0x400000, 0x012A4020, "")]


def test_text_events(tmp_path, capsys):
    path = tmp_path / "trace.txt"
    path.write_text(
        "# address word source\n"
        "00400000 012a4020 add $t0,$t1,$t2\n"
        "\n"
        "0x00400004 0x8fa80004   lw $t0,4($sp)  # load\n"
        "00400008\n"
        "0x0040000c zz\n"
        "0x00400010 0b1000\n"
    )
    events = list(read_text_events(str(path)))
    assert events == [
        (0x400000, 0x012A4020, "add $t0,$t1,$t2"),
        (0x400004, 0x8FA80004, "lw $t0,4($sp)"),
        (0x400010, 8, ""),
    ]
    out = capsys.readouterr().out
    assert ":5:" in out and ":6:" in out


def test_missing_text_trace(tmp_path):
    with pytest.raises(TraceFormatError):
        list(read_text_events(str(tmp_path / "nope.txt")))


def test_read_events_dispatches_on_suffix(tmp_path):
    path = tmp_path / "trace.txt"
    path.write_text("0 0\n")
    assert list(read_events(str(path))) == [(0, 0, "")]


def test_text_events_survive_invalid_utf8(tmp_path, capsys):
    path = tmp_path / "trace.txt"
    path.write_bytes(b"00400000 012a4020 add\n"
                     b"00400004 8fa8\xff0004\n"
                     b"00400008 012a4022 s\xffub\n")
    events = list(read_text_events(str(path)))
    assert events == [(0x400000, 0x012A4020, "add"),
                      (0x400008, 0x012A4022, "s\ufffdub")]
    assert ":2:" in capsys.readouterr().out
