# gcpv_watcher/evt_parser.py
"""
FinishLynx event file (Lynx.evt) reader and writer.

Two-level line format, one block per race:

    21A,,,"Open Men B (1500 111M) Heat, 2 +2",,,,,,,,,13.5   <- race info (13 fields)
    ,689,1                                                   <- racer: (unused, racer id, lane)
    ,963,2

Race info fields: 0 = race number, 3 = title, 12 = laps; the rest is padding
that is written back empty. Blank and comment lines (';' / '#') are removed by
the row source before parsing.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import FormatError
from .models import Race
from .providers import RowSource
from .race_number import is_race_number, sort_races

log = logging.getLogger("gcpv.parse")

RACE_INFO_FIELDS = 13
_INT_RE = re.compile(r"[+-]?\d+", re.ASCII)
_DECIMAL_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)", re.ASCII)


# ---------- small helpers ----------

def _fields(line: str) -> List[str]:
    try:
        records = list(csv.reader([line]))
    except csv.Error as ex:
        raise FormatError(f"Error parsing EVT line: {ex}. Line: {line}") from ex
    if len(records) != 1:
        raise FormatError(f"Invalid EVT line format. Expected 1 record, got {len(records)}. Line: {line}")
    return [f.strip() for f in records[0]]


def parse_int(text: str) -> Optional[int]:
    text = (text or "").strip()
    if not _INT_RE.fullmatch(text):
        return None
    return int(text)


def parse_laps(text: str) -> Optional[Decimal]:
    """Plain decimal text only; exponents, NaN and Infinity are rejected."""
    text = (text or "").strip()
    if not _DECIMAL_RE.fullmatch(text):
        return None
    return Decimal(text)


def format_laps(laps: Decimal) -> str:
    """4.50 -> '4.5', 14.0 -> '14'."""
    return format(laps.normalize(), "f")


# ---------- reader ----------

class EvtParser:
    def __init__(self, source: RowSource):
        self.source = source

    def parse(self) -> List[Race]:
        return parse_evt_lines(self.source.read_rows())


def parse_evt_lines(lines: Iterable[str]) -> List[Race]:
    races: List[Race] = []
    current: Optional[Tuple[str, str, Decimal]] = None
    racers: Dict[int, int] = {}

    for line in lines:
        if not line.strip():
            continue
        fields = _fields(line)

        if fields and is_race_number(fields[0]):
            if current is not None:
                races.append(Race(*current, racers))
            current = _race_info(fields, line)
            racers = {}
            continue

        if len(fields) >= RACE_INFO_FIELDS:
            raise FormatError(f"Invalid race info line format. Line: {line}")

        if current is None:
            log.warning("Racer line before any race info line ignored: %s", line)
            continue

        racer_id, lane = _racer_line(fields, line)
        racers[racer_id] = lane  # later line wins

    if current is not None:
        races.append(Race(*current, racers))

    return sort_races(races)


def _race_info(fields: List[str], line: str) -> Tuple[str, str, Decimal]:
    if len(fields) < RACE_INFO_FIELDS:
        raise FormatError(
            f"Invalid race info line format. Expected {RACE_INFO_FIELDS} fields, got {len(fields)}. Line: {line}"
        )
    laps = parse_laps(fields[12])
    if laps is None:
        raise FormatError(f"Invalid number of laps format: {fields[12]!r}. Line: {line}")
    return fields[0], fields[3], laps


def _racer_line(fields: List[str], line: str) -> Tuple[int, int]:
    if len(fields) < 3:
        raise FormatError(f"Invalid racer line format. Expected 3 fields, got {len(fields)}. Line: {line}")
    racer_id = parse_int(fields[1])
    if racer_id is None:
        raise FormatError(f"Invalid racer ID format: {fields[1]!r}. Line: {line}")
    lane = parse_int(fields[2])
    if lane is None:
        raise FormatError(f"Invalid lane format: {fields[2]!r}. Line: {line}")
    return racer_id, lane


# ---------- writer ----------

def render_evt(races: Iterable[Race]) -> str:
    """Render races in race-number order. Output ends with an extra line break."""
    buf = io.StringIO()
    w = csv.writer(buf, lineterminator="\n")
    for race in sort_races(races):
        w.writerow([race.race_number, "", "", race.title] + [""] * 8 + [format_laps(race.laps)])
        for racer_id, lane in race.racers_by_lane():
            w.writerow(["", racer_id, lane])
    return buf.getvalue() + "\n"
