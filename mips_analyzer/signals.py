import json
import os
from dataclasses import dataclass
from importlib import resources

import yaml

from .decoder import FormatTag, Sentinel
from .errors import SignalTableError

# Field names of one row in the signal resource, keyed by format
FORMAT_FIELDS = {
    FormatTag.R: "RType",
    FormatTag.I_PLAIN: "IType",
    FormatTag.BRANCH: "Branch",
    FormatTag.LOAD: "Load",
    FormatTag.STORE: "Store",
    FormatTag.J: "JType",
}

DONT_CARE_MARKER = Sentinel.DONT_CARE.value


def _is_yaml(path: str) -> bool:
    return os.path.splitext(path)[1].lower() in {".yml", ".yaml"}


def _signal_value(raw):
    if isinstance(raw, bool):
        return "1" if raw else "0"
    value = str(raw).strip()
    if value.upper() == DONT_CARE_MARKER:
        return Sentinel.DONT_CARE
    return value


@dataclass(frozen=True)
class SignalEntry:
    name: str
    values: dict

    def value_for(self, tag: FormatTag):
        return self.values[tag]


class SignalTable:
    """
    Control-unit signal values per instruction format.

    The table is built once from a list of rows and never changes afterwards.
    Rows keep their declaration order, which is also the order signals are
    listed in every annotated instruction.
    """

    def __init__(self, entries):
        self._entries = {}
        for entry in entries:
            if entry.name in self._entries:
                raise SignalTableError(f"Signal '{entry.name}' is declared more than once")
            self._entries[entry.name] = entry

    @classmethod
    def from_rows(cls, rows, source="<rows>"):
        if not isinstance(rows, list) or not rows:
            raise SignalTableError(f"{source}: expected a non-empty list of signal objects")

        entries = []
        for i, row in enumerate(rows):
            if not isinstance(row, dict):
                raise SignalTableError(f"{source}: row {i} is not an object")
            name = row.get("name")
            if not isinstance(name, str) or not name.strip():
                raise SignalTableError(f"{source}: row {i} has no 'name'")
            missing = [field for field in FORMAT_FIELDS.values() if row.get(field) is None]
            if missing:
                raise SignalTableError(
                    f"{source}: signal '{name}' is missing {', '.join(missing)}")
            values = {tag: _signal_value(row[field]) for tag, field in FORMAT_FIELDS.items()}
            entries.append(SignalEntry(name.strip(), values))
        return cls(entries)

    @classmethod
    def load(cls, path=None):
        """Load a JSON or YAML signal file, or the bundled table when path is None."""
        try:
            if path is None:
                text = resources.files("mips_analyzer").joinpath("signals.json").read_text(encoding="utf-8")
                path = "signals.json"
            else:
                with open(path, "r", encoding="utf-8") as f:
                    text = f.read()
            rows = yaml.safe_load(text) if _is_yaml(str(path)) else json.loads(text)
        except OSError as e:
            raise SignalTableError(f"Cannot read signal table '{path}': {e}") from e
        except (ValueError, yaml.YAMLError) as e:
            raise SignalTableError(f"Cannot parse signal table '{path}': {e}") from e
        return cls.from_rows(rows, source=str(path))

    @property
    def names(self):
        return list(self._entries)

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.values())

    def __contains__(self, name):
        return name in self._entries

    def lookup(self, name: str, tag: FormatTag):
        try:
            entry = self._entries[name]
        except KeyError:
            raise KeyError(f"Unknown signal '{name}'") from None
        return entry.value_for(tag)

    def signals_for(self, tag: FormatTag) -> dict:
        return {entry.name: entry.value_for(tag) for entry in self._entries.values()}
