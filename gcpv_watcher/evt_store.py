# gcpv_watcher/evt_store.py
"""
EvtStore: the authoritative race list behind Lynx.evt.

Purpose
-------
Every export file in the watch directory is a *source*. Each source owns a
bucket with the races it last supplied; races already present in Lynx.evt when
the service started live in a reserved seed bucket (SEED_KEY). After every
change the merged view is written back to Lynx.evt, sorted by race number.

Key behaviors
-------------
- One re-entrant lock guards all state and every physical write; listeners are
  called under the same lock so they observe updates in completion order.
- The seed is read once (lazily) under a hard time bound. A timeout is fatal,
  a corrupt file is logged and treated as empty.
- Export races always win over seed races sharing a number. The seed bucket is
  folded with every merge so it tracks the latest reconciled truth.
- A timestamped backup of the previous Lynx.evt is taken before each rewrite.

Threading
---------
Safe to call from the watcher's worker pool. Read-only queries take the lock
briefly and return copies.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .errors import StartupTimeoutError
from .evt_parser import EvtParser, render_evt
from .file_ops import create_backup, write_text_file
from .models import ProcessingStats, Race
from .providers import FileRowSource, filter_comment_lines
from .race_number import sort_race_numbers, sort_races
from .timeouts import run_with_timeout

log = logging.getLogger("gcpv.store")

SEED_KEY = "<seed>"
MIN_SEED_BYTES = 10

RacesListener = Callable[[List[Race]], None]


class EvtStore:
    def __init__(self, evt_path: Path, *, backup_dir: Path | str = "backups",
                 encoding: str = "ascii", seed_timeout_s: float = 5.0):
        self.evt_path = Path(evt_path)
        backup_dir = Path(backup_dir)
        self.backup_dir = backup_dir if backup_dir.is_absolute() else self.evt_path.parent / backup_dir
        self.encoding = encoding
        self.seed_timeout_s = seed_timeout_s

        self._lock = threading.RLock()
        self._buckets: Dict[str, List[Race]] = {}
        self._seed: Dict[str, Race] = {}
        self._seed_loaded = False
        self._listeners: List[RacesListener] = []

    # ---------- observers ----------
    def add_listener(self, callback: RacesListener) -> None:
        with self._lock:
            self._listeners.append(callback)

    def _notify(self, races: List[Race]) -> None:
        for cb in list(self._listeners):
            try:
                cb(list(races))
            except Exception:
                log.exception("races listener failed")

    # ---------- seed ----------
    @property
    def seed_loaded(self) -> bool:
        return self._seed_loaded

    def load_seed_once(self, timeout_s: Optional[float] = None) -> None:
        """Read Lynx.evt into the seed bucket, once. Raises StartupTimeoutError on timeout."""
        with self._lock:
            if self._seed_loaded:
                return
            timeout_s = self.seed_timeout_s if timeout_s is None else timeout_s
            races: List[Race] = []
            if self._seed_worth_reading():
                try:
                    races = run_with_timeout(self._read_seed, timeout_s, "seed load")
                except StartupTimeoutError:
                    log.error("loading %s timed out after %.1fs", self.evt_path, timeout_s)
                    raise
                except Exception as ex:
                    log.warning("could not load existing races from %s (%s); starting empty",
                                self.evt_path, ex)
                    races = []
            self._seed = {r.race_number: r for r in races}
            self._seed_loaded = True
            log.info("seed loaded: %d race(s) from %s", len(self._seed), self.evt_path)

    def _seed_worth_reading(self) -> bool:
        try:
            return self.evt_path.is_file() and self.evt_path.stat().st_size >= MIN_SEED_BYTES
        except OSError:
            return False

    def _read_seed(self) -> List[Race]:
        source = FileRowSource(self.evt_path, encoding=self.encoding, line_filter=filter_comment_lines)
        return EvtParser(source).parse()

    # ---------- merge helpers ----------
    def _merged(self) -> List[Race]:
        # bucket order is reconcile order, so the latest source wins a shared number
        view = dict(self._seed)
        for races in self._buckets.values():
            for r in races:
                view[r.race_number] = r
        return sort_races(view.values())

    def _contributor(self, race_number: str, keys: Iterable[str]) -> Optional[Race]:
        for key in reversed(list(keys)):
            for r in self._buckets.get(key, ()):
                if r.race_number == race_number:
                    return r
        return None

    def _drop_from_seed(self, numbers: Iterable[str], exclude: str) -> None:
        """Remove races from the seed unless another bucket still supplies them."""
        others = [k for k in self._buckets if k != exclude]
        for num in numbers:
            other = self._contributor(num, others)
            if other is not None:
                self._seed[num] = other
            else:
                self._seed.pop(num, None)

    def _persist(self, races: List[Race]) -> None:
        create_backup(self.evt_path, self.backup_dir)
        write_text_file(self.evt_path, render_evt(races), self.encoding)
        log.debug("wrote %d race(s) to %s", len(races), self.evt_path)

    # ---------- operations ----------
    def reconcile(self, source_key: str, races: Iterable[Race]) -> ProcessingStats:
        """Replace the races supplied by `source_key` and rewrite Lynx.evt."""
        source_key = str(source_key)
        if source_key == SEED_KEY:
            raise ValueError(f"{SEED_KEY!r} is reserved for races loaded from the event file")
        with self._lock:
            self.load_seed_once()

            incoming: Dict[str, Race] = {}
            for r in races:
                if r.race_number in incoming:
                    log.warning("duplicate race %s in %s; keeping the last one", r.race_number, source_key)
                incoming[r.race_number] = r  # last occurrence wins, first position kept

            previous = {r.race_number: r for r in self._buckets.get(source_key, ())}
            stats = ProcessingStats()
            for num, race in incoming.items():
                old = previous.get(num)
                if old is None:
                    stats.added.append(num)
                elif old != race:
                    stats.updated.append(num)
                else:
                    stats.unchanged.append(num)
            stats.removed.extend(sort_race_numbers(n for n in previous if n not in incoming))
            for lst in (stats.added, stats.updated, stats.unchanged):
                lst[:] = sort_race_numbers(lst)

            self._buckets.pop(source_key, None)
            self._buckets[source_key] = list(incoming.values())

            self._drop_from_seed(stats.removed, exclude=source_key)
            self._seed.update(incoming)

            merged = self._merged()
            self._persist(merged)
            log.info("reconciled %s: %s", source_key, stats.summary())
            self._notify(merged)
            return stats

    def remove(self, source_key: str) -> None:
        """Forget a source (its file was deleted) and rewrite Lynx.evt."""
        source_key = str(source_key)
        with self._lock:
            self.load_seed_once()
            gone = self._buckets.pop(source_key, [])
            self._drop_from_seed((r.race_number for r in gone), exclude=source_key)
            merged = self._merged()
            self._persist(merged)
            log.info("removed source %s (%d race(s))", source_key, len(gone))
            self._notify(merged)

    def cleanup(self, active_source_keys: Iterable[str]) -> List[str]:
        """Drop races no active source supplies. Returns the orphaned race numbers."""
        active = {str(k) for k in active_source_keys}
        with self._lock:
            self.load_seed_once()
            before = self._merged()

            for key in [k for k in self._buckets if k not in active]:
                log.debug("dropping inactive source %s", key)
                del self._buckets[key]

            supplied = {r.race_number for races in self._buckets.values() for r in races}
            orphans = [num for num in self._seed if num not in supplied]
            for num in orphans:
                del self._seed[num]

            merged = self._merged()
            if merged == before:
                return []
            kept = {r.race_number for r in merged}
            dropped = sort_race_numbers({r.race_number for r in before} - kept)
            if dropped:
                log.info("cleanup removed orphaned race(s): %s", ", ".join(dropped))
            self._persist(merged)
            self._notify(merged)
            return dropped

    def get_all(self) -> List[Race]:
        with self._lock:
            return self._merged()

    def sources(self) -> List[str]:
        with self._lock:
            return list(self._buckets)
