import argparse
import json
import os
import sys

import yaml

from .isa import parse_mnemonic_list

CONFIG_DIR = "configs"


def _is_yaml(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in {".yml", ".yaml"}


def build_parser():
    parser = argparse.ArgumentParser(
        description="Analyze the datapath signals and CPI of an executed MIPS instruction trace.")
    parser.add_argument("trace_file", nargs='?', default=None,
                        help="Trace to analyze: a VCD file or a text file of 'ADDRESS WORD [SOURCE]' lines.")
    parser.add_argument("-c", "--config", default=None,
                        help="Optional: Name of the JSON/YAML config file.")
    parser.add_argument("--signals", default=None,
                        help="Signal table (JSON or YAML). Defaults to the bundled single-cycle table.")
    parser.add_argument("--cpi", action="append", default=[], metavar="MNEMONIC=VALUE",
                        help="Set the CPI of one instruction. Can be repeated.")
    parser.add_argument("--only", default=None,
                        help="Count only these instructions, e.g. '{add,sub,jal}'.")
    parser.add_argument("--cpi-csv", default=None, help="Export the CPI table to this CSV file.")
    parser.add_argument("--trace-csv", default=None, help="Export the datapath trace to this CSV file.")
    parser.add_argument("--show-trace", action="store_true",
                        help="Print the per-instruction datapath analysis.")
    parser.add_argument("--list-signals", action="store_true",
                        help="Print the loaded signal table and exit.")
    return parser


def resolve_config_path(config_input):
    if os.path.splitext(config_input)[1] == "":
        config_input += ".json"
    for candidate in (config_input,
                      os.path.join(CONFIG_DIR, config_input),
                      os.path.join(CONFIG_DIR, os.path.basename(config_input))):
        if os.path.exists(candidate):
            return candidate
    # Let it fail in the loader
    return config_input


def load_config_file(config_file):
    """Load a JSON or YAML config object."""
    with open(config_file, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) if _is_yaml(config_file) else json.load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Config must be an object/dict at the top level.")
    if data.get("CPI") is not None and not isinstance(data["CPI"], dict):
        raise ValueError("CPI must map instruction names to CPI values.")
    only = data.get("ONLY")
    if only is not None and not isinstance(only, str) and not (
            isinstance(only, list) and all(isinstance(m, str) for m in only)):
        raise ValueError("ONLY must be a string like '{add,sub}' or a list of instruction names.")
    return data


def parse_cpi_overrides(items):
    overrides = {}
    for item in items:
        mnemonic, sep, value = item.partition("=")
        if not sep or not mnemonic.strip():
            raise ValueError(f"Expected MNEMONIC=VALUE, got '{item}'")
        overrides[mnemonic.strip().lower()] = value.strip()
    return overrides


def load_config(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    data = {}
    config_file = None
    if args.config:
        config_file = resolve_config_path(args.config)
        print(f"⚙️  Using Configuration: {config_file}")
        try:
            data = load_config_file(config_file)
        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"❌ Error loading config: {e}")
            sys.exit(1)

    if args.trace_file is None and not args.list_signals:
        parser.error("a trace file is required")

    cpi = {str(k).lower(): v for k, v in (data.get("CPI") or {}).items()}
    try:
        cpi.update(parse_cpi_overrides(args.cpi))
    except ValueError as e:
        parser.error(str(e))

    only = args.only if args.only is not None else data.get("ONLY")
    if isinstance(only, str):
        only = parse_mnemonic_list(only)

    signal_map = {key: data[key] for key in ("PC", "INSTR", "CLOCK") if key in data}

    return {
        "trace_path": args.trace_file,
        "config_path": config_file,
        "signals_path": args.signals or data.get("SIGNALS"),
        "signal_map": signal_map,
        "cpi": cpi,
        "only": [str(m).lower() for m in only] if only else [],
        "cpi_csv": args.cpi_csv,
        "trace_csv": args.trace_csv,
        "show_trace": args.show_trace,
        "list_signals": args.list_signals,
    }
