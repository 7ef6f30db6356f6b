from decimal import Decimal

import pytest

from gcpv_watcher.converter import convert_race, convert_races, parse_racer_id
from gcpv_watcher.errors import ConversionError
from gcpv_watcher.models import ExportLane, ExportRace


def export_race(number="25A", track="1500 111M", lanes=()):
    return ExportRace(number, track, "Open Men B", "Heat, 2 +2", tuple(lanes))


class TestConvertRace:
    def test_title_laps_and_racers(self):
        r = convert_race(export_race(lanes=[
            ExportLane("1", "689 Dixon, Frankie", "Hamilton"),
            ExportLane("2", "963 White, Gale", "Hamilton"),
        ]))
        assert r.race_number == "25A"
        assert r.title == "Open Men B (1500 111M) Heat, 2 +2"
        assert r.laps == Decimal("13.5")
        assert r.racers == {689: 1, 963: 2}

    def test_zero_laps_rejected(self):
        with pytest.raises(ConversionError):
            convert_race(export_race(track="Relay"))

    def test_bad_lane_entries_are_skipped(self):
        r = convert_race(export_race(lanes=[
            ExportLane("x", "689 Dixon, Frankie", "Hamilton"),
            ExportLane("2", "Dixon", "Hamilton"),
            ExportLane("3", "abc Dixon", "Hamilton"),
            ExportLane("4", "700 Ok, Racer", "Oakville"),
        ]))
        assert r.racers == {700: 4}

    def test_repeated_racer_keeps_last_lane(self):
        # deliberate: the later lane entry for the same racer wins
        r = convert_race(export_race(lanes=[
            ExportLane("1", "689 Dixon, Frankie", "Hamilton"),
            ExportLane("5", "689 Dixon, Frankie", "Hamilton"),
        ]))
        assert r.racers == {689: 5}

    def test_invalid_race_number(self):
        with pytest.raises(ConversionError):
            convert_race(export_race(number="25"))


def test_convert_races_skips_failures():
    races = convert_races([
        export_race("1A"),
        export_race("2A", track="Relay"),
        export_race("3A", track="500 111M"),
    ])
    assert [r.race_number for r in races] == ["1A", "3A"]


@pytest.mark.parametrize("field, expected", [
    ("689 Dixon, Frankie", 689),
    ("1167 Ellis", 1167),
    ("689", None),
    (" 689 Dixon", None),
    ("", None),
    (None, None),
    ("x1 Dixon", None),
])
def test_parse_racer_id(field, expected):
    assert parse_racer_id(field) == expected
