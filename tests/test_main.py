import json

import pytest

from mips_analyzer import config
from mips_analyzer.main import main

PROGRAM = """\
00400000 012a4020 add $t0,$t1,$t2
00400000 012a4020 add $t0,$t1,$t2
00400004 8fa80004 lw $t0,4($sp)
00400008 11090003 beq $t0,$t1,done
0040000c fc000000
00400010 08100000 j main
"""


@pytest.fixture
def trace(tmp_path):
    path = tmp_path / "program.txt"
    path.write_text(PROGRAM)
    return str(path)


def test_parse_cpi_overrides():
    assert config.parse_cpi_overrides(["lw=5", " ADD = 2"]) == {"lw": "5", "add": "2"}
    with pytest.raises(ValueError):
        config.parse_cpi_overrides(["lw"])


def test_load_config_merges_file_and_flags(tmp_path, trace):
    cfg_path = tmp_path / "run.json"
    cfg_path.write_text(json.dumps({"CPI": {"lw": 5, "beq": 3}, "ONLY": "{lw,beq}",
                                    "PC": "top.pc"}))
    cfg = config.load_config([trace, "-c", str(cfg_path), "--cpi", "beq=4"])
    assert cfg["cpi"] == {"lw": 5, "beq": "4"}
    assert cfg["only"] == ["lw", "beq"]
    assert cfg["signal_map"] == {"PC": "top.pc"}


def test_load_yaml_config(tmp_path, trace):
    cfg_path = tmp_path / "run.yaml"
    cfg_path.write_text("ONLY: [add, j]\nCPI:\n  add: 2\n")
    cfg = config.load_config([trace, "--config", str(cfg_path), "--only", "sub"])
    assert cfg["only"] == ["sub"]
    assert cfg["cpi"] == {"add": 2}


def test_trace_file_is_required():
    with pytest.raises(SystemExit):
        config.load_config([])


def test_end_to_end(tmp_path, trace, capsys):
    cpi_out = tmp_path / "cpi"
    trace_out = tmp_path / "datapath.csv"
    status = main([trace, "--cpi", "lw=5", "--cpi-csv", str(cpi_out),
                   "--trace-csv", str(trace_out), "--show-trace"])
    assert status == 0

    out = capsys.readouterr().out
    assert "Total instructions executed: 4" in out
    assert "Total clock cycles: 8.000" in out
    assert "Average CPI: 2.000" in out
    assert "1 event(s)" in out
    assert "Datapath records by format:" in out
    assert "  I-type LOAD instruction: 1" in out
    assert "  J-type instruction: 1" in out

    rows = (tmp_path / "cpi.csv").read_text().splitlines()
    assert rows[0] == "Instruction Type,CPI,Frequency,CPI * Frequency,Usage Percentage"
    assert rows[1:] == ["add,1.000,1,1.000,12.500%", "lw,5.000,1,5.000,62.500%",
                        "beq,1.000,1,1.000,12.500%", "j,1.000,1,1.000,12.500%"]

    trace_rows = trace_out.read_text().splitlines()
    assert len(trace_rows) == 5
    assert trace_rows[2].startswith('I-type LOAD instruction,"lw $t0,4($sp)",')


def test_invalid_cpi_aborts(trace, capsys):
    assert main([trace, "--cpi", "lw=fast"]) == 1
    assert "Invalid CPI value" in capsys.readouterr().out


def test_invalid_filter_aborts(trace, capsys):
    assert main([trace, "--only", "{add,bogus}"]) == 1
    assert "bogus" in capsys.readouterr().out


def test_list_signals(capsys):
    assert main(["--list-signals"]) == 0
    assert "RegWrite" in capsys.readouterr().out


@pytest.mark.parametrize("content", [{"CPI": ["add"]}, {"CPI": 3}, {"ONLY": 5}, {"ONLY": ["add", 1]}])
def test_malformed_config_exits_with_error(tmp_path, trace, capsys, content):
    cfg_path = tmp_path / "bad.json"
    cfg_path.write_text(json.dumps(content))
    with pytest.raises(SystemExit) as exc:
        main([trace, "-c", str(cfg_path)])
    assert exc.value.code == 1
    assert "Error loading config" in capsys.readouterr().out
