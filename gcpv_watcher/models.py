# gcpv_watcher/models.py
"""
Data structs shared by the parsers, the converter and the store.

Race is the normalized record written to the EVT file. ExportRace/ExportLane are
the raw groups pulled out of a registration export before conversion.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Tuple

from .errors import FormatError

RACE_NUMBER_RE = re.compile(r"(\d+)([A-Z])", re.ASCII)


# ----------------------------- Races -----------------------------

@dataclass(frozen=True)
class Race:
    race_number: str
    title: str
    laps: Decimal
    racers: Dict[int, int] = field(default_factory=dict)  # racer_id -> lane

    def __post_init__(self):
        if not isinstance(self.race_number, str) or not RACE_NUMBER_RE.fullmatch(self.race_number):
            raise FormatError(f"Invalid race number format: {self.race_number!r}")
        laps = self.laps if isinstance(self.laps, Decimal) else Decimal(str(self.laps))
        object.__setattr__(self, "laps", laps)
        # private copy so callers can't mutate a constructed race
        object.__setattr__(self, "racers", {int(k): int(v) for k, v in (self.racers or {}).items()})

    def __hash__(self) -> int:
        return hash((self.race_number, self.title, self.laps, frozenset(self.racers.items())))

    def racers_by_lane(self) -> List[Tuple[int, int]]:
        """(racer_id, lane) pairs ordered by lane."""
        return sorted(self.racers.items(), key=lambda kv: kv[1])

    def __str__(self) -> str:
        racers = ", ".join(f"Racer {rid} in Lane {lane}" for rid, lane in self.racers_by_lane())
        return f"Race {self.race_number}: {self.title} ({self.laps} laps) - {racers}"


@dataclass(frozen=True)
class ExportLane:
    lane: str
    racer: str
    affiliation: str


@dataclass(frozen=True)
class ExportRace:
    race_number: str
    track_params: str
    race_group: str
    stage: str
    lanes: Tuple[ExportLane, ...] = ()


@dataclass(frozen=True)
class Racer:
    """Roster entry; display only."""
    racer_id: int
    last_name: str
    first_name: str
    affiliation: str

    @property
    def display_name(self) -> str:
        return f"{self.last_name}, {self.first_name}"


# ----------------------------- Export addressing -----------------------------

@dataclass(frozen=True)
class KeyFieldConfig:
    """Locate a value by finding the cell equal to `key` and reading `offset` cells to its right."""
    key: str
    offset: int
    suffix_stop_words: Tuple[str, ...] = ()


# ----------------------------- Reconcile results -----------------------------

@dataclass
class ProcessingStats:
    added: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)

    @property
    def races_added(self) -> int:
        return len(self.added)

    @property
    def races_updated(self) -> int:
        return len(self.updated)

    @property
    def races_unchanged(self) -> int:
        return len(self.unchanged)

    @property
    def races_removed(self) -> int:
        return len(self.removed)

    @property
    def total_processed(self) -> int:
        return self.races_added + self.races_updated + self.races_unchanged

    def _parts(self, with_numbers: bool) -> List[str]:
        parts = []
        for label, numbers in (("added", self.added), ("updated", self.updated),
                               ("unchanged", self.unchanged), ("removed", self.removed)):
            if not numbers:
                continue
            text = f"{len(numbers)} {label}"
            if with_numbers:
                text += f" ({', '.join(numbers)})"
            parts.append(text)
        return parts

    def summary(self) -> str:
        return ", ".join(self._parts(False)) or "no races"

    def detailed(self) -> str:
        return ", ".join(self._parts(True)) or "no races"

    def __str__(self) -> str:
        return self.summary()
