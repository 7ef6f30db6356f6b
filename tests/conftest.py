from __future__ import annotations

import csv
import io
from decimal import Decimal
from pathlib import Path
from typing import Dict, List

import pytest

from gcpv_watcher.config_loader import WatcherConfig
from gcpv_watcher.models import KeyFieldConfig, Race

STOP_WORDS = ("male", "female", "Genders Mixed")


def make_key_fields() -> Dict[str, KeyFieldConfig]:
    return {
        "track_params": KeyFieldConfig("Event :", 1),
        "race_group": KeyFieldConfig("Event :", 2, STOP_WORDS),
        "stage": KeyFieldConfig("Stage :", 1),
        "race_number": KeyFieldConfig("Race", 1),
        "lane": KeyFieldConfig("Lane", 3),
        "racer": KeyFieldConfig("Skaters", 3),
        "affiliation": KeyFieldConfig("Club", 3),
    }


def export_row(race: str, lane, racer: str, club: str, *,
               track: str = "1500 111M", group: str = "Open Men B  male",
               stage: str = "Heat, 2 +2") -> str:
    """One export record laid out the way the registration software writes it."""
    cells = ["Event :", track, group, "Stage :", stage,
             "Race", race,
             "Lane", "", "", str(lane),
             "Skaters", "", "", racer,
             "Club", "", "", club]
    buf = io.StringIO()
    csv.writer(buf, lineterminator="").writerow(cells)
    return buf.getvalue()


def write_export(path: Path, rows: List[str]) -> Path:
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return path


def race(number: str, title: str = "Title", laps="4.5", racers=None) -> Race:
    return Race(number, title, Decimal(laps), racers or {})


@pytest.fixture
def key_fields():
    return make_key_fields()


@pytest.fixture
def dirs(tmp_path):
    watch = tmp_path / "exports"
    lynx = tmp_path / "lynx"
    watch.mkdir()
    lynx.mkdir()
    return watch, lynx


@pytest.fixture
def watcher_cfg(dirs):
    watch, lynx = dirs
    return WatcherConfig(
        watch_dir=watch,
        lynx_dir=lynx,
        key_fields=make_key_fields(),
        debounce_s=2.0,
        settle_delay_s=0.0,
        cleanup_delay_s=0.05,
        poll_interval_s=60.0,
        workers=1,
        seed_timeout_s=5.0,
        roster_timeout_s=5.0,
    )


class RecordingListener:
    def __init__(self):
        self.processed = []
        self.errors = []
        self.updates = []

    def on_file_processed(self, path, message):
        self.processed.append((path, message))

    def on_error(self, message):
        self.errors.append(message)

    def on_races_updated(self, races, roster):
        self.updates.append((list(races), roster))


@pytest.fixture
def listener():
    return RecordingListener()
