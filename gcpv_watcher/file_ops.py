# gcpv_watcher/file_ops.py
from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

log = logging.getLogger("gcpv.store")

BACKUP_STAMP = "%Y%m%d_%H%M%S"


def ensure_evt_file(path: Path) -> bool:
    """Create an empty EVT file if it is missing. Returns True when one was created."""
    path = Path(path)
    if path.exists():
        return False
    path.touch()
    log.info("created empty event file %s", path)
    return True


def backup_name(source: Path, backup_dir: Path, now: Optional[datetime] = None) -> Path:
    """<name>.<YYYYmmdd_HHMMSS>, then .1, .2, ... until the name is free."""
    stamp = (now or datetime.now()).strftime(BACKUP_STAMP)
    base = backup_dir / f"{source.name}.{stamp}"
    candidate = base
    n = 1
    while candidate.exists():
        candidate = base.with_name(f"{base.name}.{n}")
        n += 1
    return candidate


def create_backup(source: Path, backup_dir: Path, now: Optional[datetime] = None) -> Optional[Path]:
    """Copy `source` into `backup_dir` (created on demand). No-op when `source` does not exist."""
    source = Path(source)
    if not source.is_file():
        return None
    backup_dir = Path(backup_dir)
    backup_dir.mkdir(parents=True, exist_ok=True)
    target = backup_name(source, backup_dir, now)
    shutil.copy2(source, target)
    log.debug("backup %s -> %s", source.name, target)
    return target


def write_text_file(path: Path, content: str, encoding: str) -> None:
    # text mode: "\n" becomes the platform line ending
    with open(path, "w", encoding=encoding, errors="replace") as f:
        f.write(content)
