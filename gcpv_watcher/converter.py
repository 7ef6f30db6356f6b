# gcpv_watcher/converter.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .errors import ConversionError
from .evt_parser import parse_int
from .lap_calculator import calculate_laps
from .models import ExportRace, Race

log = logging.getLogger("gcpv.convert")


def parse_racer_id(racer_field: str) -> Optional[int]:
    """
    Racer cells look like "689 Dixon, Frankie"; the id is everything before the
    first space. Returns None when there is no usable id.
    """
    if not racer_field or not racer_field.strip():
        return None
    space = racer_field.find(" ")
    if space <= 0:
        return None
    return parse_int(racer_field[:space])


def convert_race(export_race: ExportRace) -> Race:
    laps = calculate_laps(export_race.track_params)
    if laps <= 0:
        raise ConversionError(
            f"Could not determine number of laps for race {export_race.race_number} "
            f"with track params: {export_race.track_params!r}"
        )

    title = f"{export_race.race_group} ({export_race.track_params}) {export_race.stage}"

    racers: Dict[int, int] = {}
    for entry in export_race.lanes:
        lane = parse_int(entry.lane)
        if lane is None:
            log.warning("Could not parse lane number %r for racer %r in race %s",
                        entry.lane, entry.racer, export_race.race_number)
            continue
        racer_id = parse_racer_id(entry.racer)
        if racer_id is None:
            log.warning("Could not parse racer ID from %r in race %s", entry.racer, export_race.race_number)
            continue
        racers[racer_id] = lane  # a repeated racer keeps its last lane

    try:
        return Race(export_race.race_number, title, laps, racers)
    except ValueError as ex:
        raise ConversionError(f"Race {export_race.race_number!r} rejected: {ex}") from ex


def convert_races(export_races: Iterable[ExportRace]) -> List[Race]:
    """Convert a batch; a race that fails is logged and skipped."""
    races = []
    for export_race in export_races:
        try:
            races.append(convert_race(export_race))
        except ConversionError as ex:
            log.warning("Error converting race %s: %s", export_race.race_number, ex)
    return races
