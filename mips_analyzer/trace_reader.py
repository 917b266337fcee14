from vcdvcd import VCDVCD

from .errors import TraceFormatError

DEFAULT_PC_SIGNALS = ["pc", "PC", "pc_out", "if_pc"]
DEFAULT_INSTR_SIGNALS = ["instr", "instruction", "inst", "if_instr"]


def resolve_signal(signal_names, vcd):
    """First candidate present in the VCD, matched by full name then by last path element."""
    if signal_names is None: return None
    if isinstance(signal_names, str): signal_names = [signal_names]
    for name in signal_names:
        if name in vcd.signals: return name
    for name in signal_names:
        for sig in vcd.signals:
            if sig.split(".")[-1].split("[")[0] == name: return sig
    return None


def resolve_signals_with_log(signal_dict, vcd, label=""):
    resolved = {}
    print(f"\n🔎 Looking for {label} signals:")
    for key, candidates in signal_dict.items():
        selected = resolve_signal(candidates, vcd)
        resolved[key] = selected
        if selected:
            print(f"✅ {key} → {selected}")
        else:
            print(f"⚠️ {key} not found in VCD file.")
    return resolved


def find_clock(vcd, candidates=None):
    if candidates:
        clock = resolve_signal(candidates, vcd)
        if clock: return clock
    found = [sig for sig in vcd.signals if "clk" in sig.lower() or "clock" in sig.lower()]
    if not found:
        raise TraceFormatError("No clock signal found.")
    return found[0]


def rising_edges(vcd, clock_signal):
    edges = []
    prev_val = '0'
    for t, val in sorted(vcd[clock_signal].tv, key=lambda x: x[0]):
        if prev_val == '0' and val == '1': edges.append(t)
        prev_val = val
    return edges


def sample_at_edges(vcd, sig_name, edges):
    """Value of a signal at each rising edge as an int, None while it holds x/z bits."""
    tv_sorted = sorted(vcd[sig_name].tv, key=lambda x: x[0])
    tv_idx = 0
    last_val = None
    samples = []
    for rise_time in edges:
        while tv_idx < len(tv_sorted) and tv_sorted[tv_idx][0] <= rise_time:
            last_val = tv_sorted[tv_idx][1]
            tv_idx += 1
        val = None
        if last_val is not None and not any(c in str(last_val).lower() for c in "xz"):
            val = int(str(last_val).lstrip("bB"), 2)
        samples.append(val)
    return samples


def read_vcd_events(vcd_path, signal_map=None):
    """
    Yield one (pc, instruction word, source) event per rising clock edge.

    signal_map may hold candidate names under "PC", "INSTR" and "CLOCK".
    """
    signal_map = signal_map or {}
    print(f"📂 Loading VCD: {vcd_path}...")
    try:
        vcd = VCDVCD(vcd_path, store_tvs=True)
    except OSError as e:
        raise TraceFormatError(f"Cannot read VCD file '{vcd_path}': {e}") from e

    clock_signal = find_clock(vcd, signal_map.get("CLOCK"))
    edges = rising_edges(vcd, clock_signal)
    print(f"Detected {len(edges)} clock cycles.")

    resolved = resolve_signals_with_log({
        "PC": signal_map.get("PC", DEFAULT_PC_SIGNALS),
        "INSTR": signal_map.get("INSTR", DEFAULT_INSTR_SIGNALS),
    }, vcd, "Fetch")
    missing = [key for key, sig in resolved.items() if not sig]
    if missing:
        raise TraceFormatError(f"Required signal(s) not found in VCD: {', '.join(missing)}")

    pcs = sample_at_edges(vcd, resolved["PC"], edges)
    instrs = sample_at_edges(vcd, resolved["INSTR"], edges)
    for pc, instr in zip(pcs, instrs):
        if pc is None or instr is None: continue
        yield pc, instr, ""


def _parse_number(token):
    token = token.strip().replace("_", "")
    if token.lower().startswith(("0x", "0b", "0o")):
        return int(token, 0)
    return int(token, 16)


def read_text_events(path):
    """
    Yield (address, word, source) events from a text trace.

    Each line reads `ADDRESS WORD [SOURCE...]`; numbers are hexadecimal unless
    they carry a 0x/0b/0o prefix, and `#` starts a comment.
    """
    try:
        f = open(path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise TraceFormatError(f"Cannot read trace file '{path}': {e}") from e
    with f:
        for lineno, line in enumerate(f, start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            parts = line.split(None, 2)
            try:
                if len(parts) < 2:
                    raise ValueError("expected an address and an instruction word")
                address = _parse_number(parts[0])
                word = _parse_number(parts[1])
            except ValueError as e:
                print(f"⚠️ {path}:{lineno}: skipped ({e})")
                continue
            yield address, word, parts[2] if len(parts) > 2 else ""


def read_events(path, signal_map=None):
    if str(path).lower().endswith(".vcd"):
        return read_vcd_events(path, signal_map)
    return read_text_events(path)
