import sys

from . import config
from . import trace_reader
from .errors import AnalyzerError
from .export import with_csv_suffix
from .session import Session
from .signals import FORMAT_FIELDS, SignalTable


def print_signal_table(table):
    print("\n" + "="*50)
    print(" Control Signal Table")
    print("="*50)
    print(f"{'Signal':<10} " + " ".join(f"{field:>8}" for field in FORMAT_FIELDS.values()))
    for entry in table:
        print(f"{entry.name:<10} " + " ".join(f"{str(v):>8}" for v in entry.values.values()))
    print("="*50 + "\n")


def build_session(cfg):
    table = SignalTable.load(cfg["signals_path"])
    print(f"✅ Loaded {len(table)} control signals.")
    session = Session(table)
    for mnemonic, value in cfg["cpi"].items():
        session.ledger.set_cpi(mnemonic, value)
    if cfg["only"]:
        session.ledger.set_filter(cfg["only"])
        print(f"ℹ️  Only instructions {sorted(session.ledger.filter)} will be recorded.")
    return session


def print_summary(session):
    snapshot = session.ledger.snapshot()
    print("\n" + "="*50)
    print(" Instruction Statistics")
    print("="*50)
    print(session.current_stats_text(), end="")
    print(f"Total clock cycles: {snapshot.total_cycles:.3f}")
    print(f"Average CPI: {snapshot.average_cpi:.3f}")
    print("Datapath records by format:")
    for tag, count in session.recorder.format_counts().items():
        print(f"  {tag.label}: {count}")
    if session.dropped:
        print(f"⚠️  {session.dropped} event(s) did not hold a known instruction and were skipped.")
    print("="*50 + "\n")


def main(argv=None):
    # 1. Setup
    cfg = config.load_config(argv)
    try:
        session = build_session(cfg)
    except AnalyzerError as e:
        print(f"❌ Error: {e}")
        return 1

    if cfg["list_signals"]:
        print_signal_table(session.table)
        return 0

    # 2. Feed the trace
    try:
        for address, word, source in trace_reader.read_events(cfg["trace_path"], cfg["signal_map"]):
            session.feed(address, word, source)
    except AnalyzerError as e:
        print(f"❌ Error: {e}")
        return 1
    print(f"✅ Analyzed {len(session.recorder)} instructions.")

    # 3. Report
    if cfg["show_trace"]:
        print(session.current_trace_text())
    print_summary(session)

    # 4. Export
    status = 0
    for key, export in (("cpi_csv", session.export_cpi), ("trace_csv", session.export_trace)):
        if not cfg[key]:
            continue
        destination = with_csv_suffix(cfg[key])
        try:
            export(destination)
            print(f"✅ Successfully generated '{destination}'.")
        except AnalyzerError as e:
            print(f"❌ Error: {e}")
            status = 1
    return status


if __name__ == "__main__":
    sys.exit(main())
