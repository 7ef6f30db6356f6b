# gcpv_watcher/dirwatch.py
"""
Polling directory watcher.

Scans `watch_dir.glob(pattern)` every `poll_interval_s` and reports files that
appeared, changed (mtime/size) or disappeared since the previous scan. One
daemon thread, stopped via a threading.Event.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

log = logging.getLogger("gcpv.dirwatch")

PathCallback = Callable[[Path], None]
ErrorCallback = Callable[[Exception], None]
Fingerprint = Tuple[int, int]  # (mtime_ns, size)


def _noop(*_a) -> None:
    pass


class DirectoryPoller:
    def __init__(self, watch_dir: Path, pattern: str = "*.csv", *,
                 poll_interval_s: float = 0.5,
                 on_created: Optional[PathCallback] = None,
                 on_changed: Optional[PathCallback] = None,
                 on_deleted: Optional[PathCallback] = None,
                 on_error: Optional[ErrorCallback] = None):
        self.watch_dir = Path(watch_dir)
        self.pattern = pattern
        self.poll_interval_s = poll_interval_s
        self.on_created = on_created or _noop
        self.on_changed = on_changed or _noop
        self.on_deleted = on_deleted or _noop
        self.on_error = on_error or _noop

        self._known: Dict[Path, Fingerprint] = {}
        self._t: Optional[threading.Thread] = None
        self._stop = threading.Event()

    # ---------- scanning ----------
    def scan(self) -> Dict[Path, Fingerprint]:
        """Current matching files (absolute paths) with their fingerprints."""
        found: Dict[Path, Fingerprint] = {}
        for p in self.watch_dir.glob(self.pattern):
            try:
                if not p.is_file():
                    continue
                st = p.stat()
            except FileNotFoundError:
                continue  # vanished between glob and stat
            found[p.resolve()] = (st.st_mtime_ns, st.st_size)
        return found

    def matching_files(self):
        return sorted(self.scan())

    def prime(self) -> None:
        """Record the current directory state as the baseline; nothing is reported."""
        self._known = self.scan()

    def poll(self) -> None:
        """Run one scan and dispatch create/change/delete callbacks."""
        current = self.scan()
        previous = self._known
        self._known = current

        for path in sorted(previous.keys() - current.keys()):
            self._dispatch(self.on_deleted, path)
        for path in sorted(current):
            before = previous.get(path)
            if before is None:
                self._dispatch(self.on_created, path)
            elif before != current[path]:
                self._dispatch(self.on_changed, path)

    def _dispatch(self, cb: PathCallback, path: Path) -> None:
        try:
            cb(path)
        except Exception:
            log.exception("watch callback failed for %s", path)

    # ---------- thread ----------
    def start(self) -> None:
        if self._t and self._t.is_alive():
            return
        self._stop.clear()
        self._t = threading.Thread(target=self._run_loop, name="DirectoryPoller", daemon=True)
        self._t.start()

    def stop(self) -> None:
        self._stop.set()
        if self._t and self._t.is_alive() and self._t is not threading.current_thread():
            self._t.join(timeout=2.0)

    def is_running(self) -> bool:
        return bool(self._t and self._t.is_alive())

    def _run_loop(self) -> None:
        log.debug("polling %s for %s every %.2fs", self.watch_dir, self.pattern, self.poll_interval_s)
        while not self._stop.wait(self.poll_interval_s):
            try:
                self.poll()
            except Exception as ex:
                log.warning("scan of %s failed: %s", self.watch_dir, ex)
                try:
                    self.on_error(ex)
                except Exception:
                    log.exception("watch error callback failed")
