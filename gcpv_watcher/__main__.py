# gcpv_watcher/__main__.py
"""
Command line entry point.

    python -m gcpv_watcher --config config/config.yaml [--watch-dir DIR] [--lynx-dir DIR]

Runs until SIGINT/SIGTERM. Notifications go to the log.
"""

from __future__ import annotations

import argparse
import logging
import signal
import threading
from pathlib import Path
from typing import List, Mapping, Optional

from . import config_loader as _config_module
from .config_loader import WatcherConfig, describe, get_log_level, load_config
from .errors import WatcherError
from .models import Race, Racer
from .roster import describe_racers
from .watcher import FileWatcherService

log = logging.getLogger("gcpv.cli")


class LoggingListener:
    """Writes watcher notifications to the log."""

    def __init__(self, show_races: bool = False):
        self.show_races = show_races

    def on_file_processed(self, path: Path, message: str) -> None:
        log.info(message)

    def on_error(self, message: str) -> None:
        log.error(message)

    def on_races_updated(self, races: List[Race], roster: Mapping[int, Racer]) -> None:
        log.info("%d race(s) in event file", len(races))
        if not self.show_races:
            return
        for race in races:
            log.info("  %s %s [%s laps] %s", race.race_number, race.title, race.laps,
                     describe_racers(race.racers, roster))


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="GCPV export -> FinishLynx event file watcher")
    ap.add_argument("--config", help="Path to config/config.yaml (optional)")
    ap.add_argument("--watch-dir", help="Override app.watcher.watch_dir")
    ap.add_argument("--lynx-dir", help="Override app.output.lynx_dir")
    ap.add_argument("--show-races", action="store_true", help="Log every race after each update")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    cfg_dict = load_config(args.config)
    _config_module.CONFIG = cfg_dict  # helper accessors read the same config

    logging.basicConfig(
        level=getattr(logging, get_log_level("INFO"), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = WatcherConfig.from_app(cfg_dict, watch_dir=args.watch_dir, lynx_dir=args.lynx_dir)
    for line in describe(cfg):
        log.info(line)

    stop_evt = threading.Event()

    def handle_sig(sig, frame):
        stop_evt.set()

    signal.signal(signal.SIGINT, handle_sig)
    signal.signal(signal.SIGTERM, handle_sig)

    svc = FileWatcherService(cfg, LoggingListener(show_races=args.show_races))
    try:
        svc.start()
    except (WatcherError, OSError) as ex:
        log.error("could not start: %s", ex)
        return 1

    try:
        while not stop_evt.wait(0.5):
            pass
    finally:
        svc.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
