# gcpv_watcher/roster.py
"""
Roster (Lynx.ppl) reader and display helpers.

    ; id,last,first,affiliation
    689,Dixon,Frankie,Hamilton

Used only to make race lists readable for an operator; reconciliation never
looks at it. Bad rows are skipped with a warning rather than failing the load.
"""

from __future__ import annotations

import csv
import logging
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

from .evt_parser import parse_int
from .models import Racer
from .providers import RowSource

log = logging.getLogger("gcpv.roster")


def parse_roster(rows: Iterable[str]) -> Dict[int, Racer]:
    racers: Dict[int, Racer] = {}
    for row in rows:
        racer = _parse_roster_row(row)
        if racer is not None:
            racers[racer.racer_id] = racer
    return racers


def _parse_roster_row(row: str) -> Optional[Racer]:
    if not row or not row.strip():
        return None
    try:
        fields = next(csv.reader([row]), [])
    except csv.Error:
        log.warning("Problem parsing roster row: %s", row)
        return None
    fields = [f.strip() for f in fields]
    if len(fields) < 4:
        log.warning("Problem parsing roster row (expected 4 fields): %s", row)
        return None

    racer_id = parse_int(fields[0])
    last, first, affiliation = fields[1], fields[2], fields[3]
    if racer_id is None or not last or not first or not affiliation:
        log.warning("Problem parsing roster row: %s", row)
        return None
    return Racer(racer_id, last, first, affiliation)


class RosterParser:
    def __init__(self, source: RowSource):
        self.source = source

    def parse(self) -> Dict[int, Racer]:
        return parse_roster(self.source.read_rows())


def roster_snapshot(racers: Optional[Mapping[int, Racer]]) -> Mapping[int, Racer]:
    """Read-only copy handed to listeners."""
    return MappingProxyType(dict(racers or {}))


def describe_racers(racers: Mapping[int, int], roster: Optional[Mapping[int, Racer]] = None) -> str:
    """One-line, lane-ordered description of a race's racers."""
    if not racers:
        return "No racers"
    parts = []
    for racer_id, lane in sorted(racers.items(), key=lambda kv: kv[1]):
        person = (roster or {}).get(racer_id)
        if person is None:
            parts.append(f"Lane {lane}: {racer_id}")
        else:
            parts.append(f"Lane {lane}: {racer_id} {person.display_name} ({person.affiliation})")
    return ", ".join(parts)
