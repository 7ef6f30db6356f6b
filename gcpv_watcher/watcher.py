# gcpv_watcher/watcher.py
"""
FileWatcherService: keeps Lynx.evt in step with the GCPV exports in a folder.

Purpose
-------
Watch an export directory, turn every matching CSV into races and reconcile
them into the EvtStore, which rewrites Lynx.evt.

Startup (fails fast; on any failure everything is stopped, one error
notification is emitted and the exception is re-raised)
  1) watch and Lynx directories must exist
  2) Lynx.evt is created empty if missing
  3) existing races are loaded from Lynx.evt (time bounded)
  4) the roster (Lynx.ppl) is loaded for display (time bounded)
  5) every matching export is processed once, then orphans are cleaned up
  6) the directory poller starts

Events
------
- create/change: debounced per path, then handled on a worker pool after a
  short settle delay (the exporter may still be writing).
- delete: the file's races are removed, then a debounced cleanup pass runs.
- poller errors: reported, not fatal.

Listeners implement any subset of WatcherListener.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Protocol

from .config_loader import WatcherConfig
from .converter import convert_races
from .dirwatch import DirectoryPoller
from .errors import StartupTimeoutError
from .evt_store import EvtStore
from .export_parser import GcpvExportParser
from .file_ops import ensure_evt_file
from .models import ProcessingStats, Race, Racer
from .providers import FileRowSource, filter_comment_lines
from .roster import RosterParser, roster_snapshot
from .timeouts import run_with_timeout

log = logging.getLogger("gcpv.watcher")


class WatcherListener(Protocol):
    def on_file_processed(self, path: Path, message: str) -> None: ...
    def on_error(self, message: str) -> None: ...
    def on_races_updated(self, races: List[Race], roster: Mapping[int, Racer]) -> None: ...


class FileWatcherService:
    def __init__(self, cfg: WatcherConfig, listener: Optional[object] = None, *,
                 store: Optional[EvtStore] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.cfg = cfg
        self.store = store or EvtStore(
            cfg.evt_path,
            backup_dir=cfg.backup_path,
            encoding=cfg.encoding,
            seed_timeout_s=cfg.seed_timeout_s,
        )
        self.store.add_listener(self._on_store_updated)

        self._listeners: List[object] = [listener] if listener is not None else []
        self._clock = clock
        self._sleep = sleep

        self._poller = DirectoryPoller(
            cfg.watch_dir,
            cfg.export_glob,
            poll_interval_s=cfg.poll_interval_s,
            on_created=self.handle_file_changed,
            on_changed=self.handle_file_changed,
            on_deleted=self.handle_file_deleted,
            on_error=self.handle_watch_error,
        )
        self._executor: Optional[ThreadPoolExecutor] = None

        self._roster: Dict[int, Racer] = {}
        self._last_seen: Dict[str, float] = {}
        self._debounce_lock = threading.Lock()
        self._cleanup_timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()
        self._running = False

    # ---------- listeners ----------
    def add_listener(self, listener: object) -> None:
        self._listeners.append(listener)

    def _emit(self, method: str, *args) -> None:
        for listener in list(self._listeners):
            fn = getattr(listener, method, None)
            if not callable(fn):
                continue
            try:
                fn(*args)
            except Exception:
                log.exception("listener %s.%s failed", type(listener).__name__, method)

    def _emit_error(self, message: str) -> None:
        self._emit("on_error", message)

    def _on_store_updated(self, races: List[Race]) -> None:
        self._emit("on_races_updated", races, self.roster)

    # ---------- queries ----------
    @property
    def roster(self) -> Mapping[int, Racer]:
        return roster_snapshot(self._roster)

    @property
    def notification_sound(self) -> Optional[str]:
        """Sound to play on notifications, or None when disabled."""
        return self.cfg.sound_path if self.cfg.sound_enabled else None

    def get_all_races(self) -> List[Race]:
        return self.store.get_all()

    def is_running(self) -> bool:
        return self._running

    # ---------- lifecycle ----------
    def start(self) -> None:
        if self._running:
            return
        try:
            self._startup()
        except Exception as ex:
            log.error("startup failed: %s", ex)
            self.stop()
            self._emit_error(f"Failed to start file watcher: {ex}")
            raise
        self._running = True
        log.info("watching %s for %s", self.cfg.watch_dir, self.cfg.export_glob)

    def _startup(self) -> None:
        if not self.cfg.watch_dir.is_dir():
            raise FileNotFoundError(f"Watch directory not found: {self.cfg.watch_dir}")
        if not self.cfg.lynx_dir.is_dir():
            raise FileNotFoundError(f"Lynx directory not found: {self.cfg.lynx_dir}")

        ensure_evt_file(self.cfg.evt_path)
        self.store.load_seed_once(self.cfg.seed_timeout_s)
        self._roster = self._load_roster()

        self._executor = ThreadPoolExecutor(max_workers=self.cfg.workers, thread_name_prefix="gcpv-worker")
        self._poller.prime()
        existing = self._poller.matching_files()
        for path in existing:
            self.process_file(path)
        if existing:
            self.run_cleanup(existing)

        self._poller.start()

    def _load_roster(self) -> Dict[int, Racer]:
        path = self.cfg.roster_path
        if not path.is_file():
            log.info("no roster at %s", path)
            return {}
        source = FileRowSource(path, encoding=self.cfg.encoding, line_filter=filter_comment_lines)
        try:
            roster = run_with_timeout(RosterParser(source).parse, self.cfg.roster_timeout_s, "roster load")
        except StartupTimeoutError:
            raise
        except Exception as ex:
            log.warning("could not load roster %s: %s", path, ex)
            return {}
        log.info("roster loaded: %d racer(s)", len(roster))
        return roster

    def stop(self) -> None:
        self._poller.stop()
        with self._timer_lock:
            if self._cleanup_timer is not None:
                self._cleanup_timer.cancel()
                self._cleanup_timer = None
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True, cancel_futures=True)
        if self._running:
            log.info("stopped watching %s", self.cfg.watch_dir)
        self._running = False

    def __enter__(self) -> "FileWatcherService":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    # ---------- processing ----------
    def process_file(self, path: Path) -> Optional[ProcessingStats]:
        """parse -> convert -> reconcile one export. Failures are reported, not raised."""
        path = Path(path).resolve()
        try:
            source = FileRowSource(path)
            export_races = GcpvExportParser(source, self.cfg.key_fields).parse()
            races = convert_races(export_races)
            stats = self.store.reconcile(str(path), races)
        except Exception as ex:
            log.exception("error processing %s", path)
            self._emit_error(f'Error processing "{path.name}": {ex}')
            return None
        self._emit("on_file_processed", path, f'Processed "{path.name}": {stats.detailed()}')
        return stats

    def _settle_and_process(self, path: Path) -> Optional[ProcessingStats]:
        if self.cfg.settle_delay_s > 0:
            self._sleep(self.cfg.settle_delay_s)
        return self.process_file(path)

    def handle_file_changed(self, path: Path) -> Optional[Future]:
        """Create/change event. Returns the queued job, or None when debounced or stopped."""
        path = Path(path).resolve()
        key = str(path)
        now = self._clock()
        with self._debounce_lock:
            last = self._last_seen.get(key)
            if last is not None and now - last < self.cfg.debounce_s:
                log.debug("ignoring repeat event for %s", path.name)
                return None
            self._last_seen[key] = now

        executor = self._executor
        if executor is None:
            log.debug("not running; dropping event for %s", path.name)
            return None
        try:
            return executor.submit(self._settle_and_process, path)
        except RuntimeError:
            # pool already shut down
            return None

    def handle_file_deleted(self, path: Path) -> None:
        path = Path(path).resolve()
        with self._debounce_lock:
            self._last_seen.pop(str(path), None)
        try:
            self.store.remove(str(path))
        except Exception as ex:
            log.exception("error removing races of %s", path)
            self._emit_error(f'Error removing races from "{path.name}": {ex}')
            return
        self._emit("on_file_processed", path, f'Removed races from deleted file "{path.name}"')
        self.schedule_cleanup()

    def handle_watch_error(self, error: Exception) -> None:
        self._emit_error(f"File watcher error: {error}")

    # ---------- cleanup ----------
    def schedule_cleanup(self) -> None:
        """(Re)arm the cleanup timer; a burst of deletions results in one cleanup."""
        with self._timer_lock:
            if self._cleanup_timer is not None:
                self._cleanup_timer.cancel()
            t = threading.Timer(self.cfg.cleanup_delay_s, self._cleanup_from_timer)
            t.daemon = True
            self._cleanup_timer = t
            t.start()

    def _cleanup_from_timer(self) -> None:
        with self._timer_lock:
            self._cleanup_timer = None
        self.run_cleanup()

    def run_cleanup(self, active: Optional[Iterable[Path]] = None) -> List[str]:
        """Drop races no matching export supplies anymore. Defaults to the files on disk."""
        try:
            files = self._poller.matching_files() if active is None else active
            removed = self.store.cleanup(str(p) for p in files)
        except Exception as ex:
            log.exception("cleanup failed")
            self._emit_error(f"Error cleaning up orphaned races: {ex}")
            return []
        return removed
