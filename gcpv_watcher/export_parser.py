# gcpv_watcher/export_parser.py
"""
GCPV export parser
==================

Registration exports are flat CSV rows whose columns move around between
exports. Each logical field is found by *label + offset*: locate the cell whose
text equals the configured label (trimmed, case-insensitive) and read the cell
`offset` columns to the right of it.

    Event :,1500 111M,Open Men B  male,...,Race,25A,...,Lane,,,1,...

Key behaviors
-------------
- Every row must yield all seven fields; any miss is a FormatError and the
  whole parse is abandoned (no partial race lists).
- Optional suffix stop words strip one trailing word such as "male" from the
  value (longest exact, case-sensitive suffix wins).
- Rows are grouped per race number in first-seen order; lanes inside a race
  are ordered by their integer value.
"""

from __future__ import annotations

import csv
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence

from .errors import ConfigurationError, FormatError
from .models import ExportLane, ExportRace, KeyFieldConfig
from .providers import RowSource

log = logging.getLogger("gcpv.parse")

FIELD_NAMES = (
    "track_params",
    "race_group",
    "stage",
    "race_number",
    "lane",
    "racer",
    "affiliation",
)


@dataclass(frozen=True)
class _RowData:
    race_number: str
    track_params: str
    race_group: str
    stage: str
    lane: str
    racer: str
    affiliation: str


# ---------- cell helpers ----------

def split_csv_row(row: str) -> List[str]:
    """Parse one CSV record into trimmed cells."""
    if row is None or not row.strip():
        raise FormatError("Row cannot be null or empty.")
    try:
        records = list(csv.reader([row]))
    except csv.Error as ex:
        raise FormatError(f"Error parsing GCPV export row: {ex}. Row: {row}") from ex
    if not records or not records[0]:
        raise FormatError(f"No data found in row: {row}")
    return [cell.strip() for cell in records[0]]


def strip_suffix_stop_words(value: str, stop_words: Sequence[str]) -> str:
    if not value or not value.strip():
        return value
    for word in sorted((w for w in stop_words if w and w.strip()), key=len, reverse=True):
        if value.endswith(word):
            return value[: len(value) - len(word)].strip()
    return value


def value_by_key(cells: Sequence[str], field_name: str, key_field: KeyFieldConfig) -> str:
    wanted = key_field.key.strip().casefold()
    key_index = -1
    for i, cell in enumerate(cells):
        if cell.strip().casefold() == wanted:
            key_index = i
            break
    if key_index == -1:
        raise FormatError(f"Key '{key_field.key}' not found in row for field '{field_name}'.")

    target = key_index + key_field.offset
    if target < 0 or target >= len(cells):
        raise FormatError(
            f"Target column index {target} is out of bounds for field '{field_name}'. "
            f"Row has {len(cells)} columns."
        )

    value = cells[target].strip()
    if key_field.suffix_stop_words:
        value = strip_suffix_stop_words(value, key_field.suffix_stop_words)
    return value


def _lane_sort_key(lane: str):
    # non-numeric lanes go last; the converter drops them
    try:
        return (0, int(lane))
    except ValueError:
        return (1, 0)


# ---------- parser ----------

class GcpvExportParser:
    def __init__(self, source: RowSource, key_fields: Mapping[str, KeyFieldConfig]):
        missing = [name for name in FIELD_NAMES if name not in (key_fields or {})]
        if missing:
            raise ConfigurationError(f"Key field(s) missing from configuration: {', '.join(missing)}")
        self.source = source
        self.key_fields: Dict[str, KeyFieldConfig] = dict(key_fields)

    def parse(self) -> List[ExportRace]:
        rows = [self._parse_row(row) for row in self.source.read_rows()]

        groups: "OrderedDict[str, List[_RowData]]" = OrderedDict()
        for r in rows:
            groups.setdefault(r.race_number, []).append(r)

        races = []
        for race_number, members in groups.items():
            first = members[0]
            lanes = tuple(
                ExportLane(m.lane, m.racer, m.affiliation)
                for m in sorted(members, key=lambda m: _lane_sort_key(m.lane))
            )
            races.append(ExportRace(race_number, first.track_params, first.race_group, first.stage, lanes))

        log.debug("export parsed: %d rows, %d races", len(rows), len(races))
        return races

    def _parse_row(self, row: str) -> _RowData:
        cells = split_csv_row(row)
        values = {name: value_by_key(cells, name, self.key_fields[name]) for name in FIELD_NAMES}
        return _RowData(**values)
