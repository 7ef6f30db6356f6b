# gcpv_watcher/config_loader.py
from __future__ import annotations
"""
Configuration loader for the GCPV watcher.

Single source of truth:
    config/config.yaml

Design notes
------------
- One YAML file with a top-level 'app:' mapping; unknown keys pass through.
- A missing or broken file raises ConfigurationError with absolute paths.
- Required: every export key field, and an output encoding we know how to write.
- Paths are absolute (resolved against the repo root) unless already absolute.

Public API
----------
- CONFIG: dict                              # last config loaded via load_config()
- load_config(path: str|Path|None = None)   # load + validate, returns the raw dict
- get_watcher_cfg() / get_output_cfg() / get_startup_cfg() -> dict
- get_key_fields() -> dict[str, KeyFieldConfig]
- get_output_encoding(name) -> str          # python codec name, ascii fallback
- get_log_level(default: str = "INFO") -> str
- WatcherConfig.from_app(cfg)               # typed snapshot used by the service
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .errors import ConfigurationError
from .export_parser import FIELD_NAMES
from .models import KeyFieldConfig

# ---------- Files & roots ----------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR   = PROJECT_ROOT / "config"
DEFAULT_CFG  = CONFIG_DIR / "config.yaml"

# config value -> python codec
OUTPUT_ENCODINGS = {
    "ascii": "ascii",
    "utf-8": "utf-8",
    "utf-16": "utf-16",
}


# ---------- I/O helpers ----------
def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping from `path`. Human-friendly errors, strict root type."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(
            f"Missing configuration file: {path}\n"
            f"Expected a single-file config with an 'app:' section.\n"
            f"Repo root: {PROJECT_ROOT}"
        ) from None
    except OSError as ex:
        raise ConfigurationError(f"Failed to read {path}: {type(ex).__name__}: {ex}") from ex

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as ex:
        raise ConfigurationError(f"Failed to parse YAML {path}: {type(ex).__name__}: {ex}") from ex

    if not isinstance(data, dict):
        raise ConfigurationError(f"Root of {path} must be a mapping/object, not {type(data).__name__}")
    return data


def _resolve_path(p: str | os.PathLike[str], base: Path = PROJECT_ROOT) -> Path:
    """Return absolute path; resolve relative to `base` (repo root by default)."""
    pth = Path(p).expanduser()
    return pth if pth.is_absolute() else (base / pth).resolve()


def get_output_encoding(name: Optional[str]) -> str:
    """Map a configured encoding to a codec name. Unknown or blank -> ascii."""
    return OUTPUT_ENCODINGS.get(str(name or "").strip().lower(), "ascii")


# ---------- Loader ----------
def load_config(path: str | os.PathLike[str] | None = None) -> Dict[str, Any]:
    """
    Load a single YAML file (default: config/config.yaml), validate required shape,
    and return the raw dict (unmodified).
    """
    cfg_path = _resolve_path(path) if path else DEFAULT_CFG
    cfg = _load_yaml(cfg_path)
    validate_config(cfg, source=str(cfg_path))
    return cfg


def validate_config(cfg: Dict[str, Any], source: str = "<config>") -> None:
    app = cfg.get("app")
    if not isinstance(app, dict):
        raise ConfigurationError(
            f"{source}: missing top-level 'app:' mapping. See config/config.yaml template."
        )

    encoding = (app.get("output") or {}).get("encoding", "ascii")
    if str(encoding).strip().lower() not in OUTPUT_ENCODINGS:
        raise ConfigurationError(
            f"{source}: app.output.encoding must be one of {', '.join(OUTPUT_ENCODINGS)}, got {encoding!r}"
        )

    pattern = (app.get("watcher") or {}).get("export_glob", "*.csv")
    if not isinstance(pattern, str) or not pattern.strip():
        raise ConfigurationError(f"{source}: app.watcher.export_glob must be a non-empty string")

    # raises on missing/malformed key fields
    _key_fields_from(app, source)


def _key_fields_from(app: Dict[str, Any], source: str = "<config>") -> Dict[str, KeyFieldConfig]:
    raw = app.get("key_fields")
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{source}: app.key_fields must be a mapping of field name -> {{key, offset}}")

    out: Dict[str, KeyFieldConfig] = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"{source}: app.key_fields.{name} must be a mapping")
        key = entry.get("key")
        if not isinstance(key, str) or not key.strip():
            raise ConfigurationError(f"{source}: app.key_fields.{name}.key must be a non-empty string")
        try:
            offset = int(entry.get("offset", 0))
        except (TypeError, ValueError):
            raise ConfigurationError(f"{source}: app.key_fields.{name}.offset must be an integer") from None
        stop_words = entry.get("suffix_stop_words") or ()
        if isinstance(stop_words, str) or not all(isinstance(w, str) for w in stop_words):
            raise ConfigurationError(f"{source}: app.key_fields.{name}.suffix_stop_words must be a list of strings")
        out[str(name)] = KeyFieldConfig(key, offset, tuple(stop_words))

    missing = [n for n in FIELD_NAMES if n not in out]
    if missing:
        raise ConfigurationError(f"{source}: app.key_fields missing: {', '.join(missing)}")
    return out


# Set by load_config() callers (CLI); accessors read it when no cfg is passed.
CONFIG: Dict[str, Any] = {}


# ---------- Accessors ----------
def _app(cfg: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return ((CONFIG if cfg is None else cfg).get("app") or {})


def get_watcher_cfg(cfg: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return watcher block (watch_dir, export_glob, timings) or {}."""
    return _app(cfg).get("watcher", {}) or {}


def get_output_cfg(cfg: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return output block (lynx_dir, evt_file, encoding, backup_dir) or {}."""
    return _app(cfg).get("output", {}) or {}


def get_startup_cfg(cfg: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return _app(cfg).get("startup", {}) or {}


def get_key_fields(cfg: Optional[Dict[str, Any]] = None) -> Dict[str, KeyFieldConfig]:
    return _key_fields_from(_app(cfg))


def get_log_level(default: str = "INFO", cfg: Optional[Dict[str, Any]] = None) -> str:
    lvl = (((CONFIG if cfg is None else cfg).get("log", {})) or {}).get("level", default)
    return str(lvl).upper()


# ---------- Typed snapshot ----------
@dataclass
class WatcherConfig:
    watch_dir: Path
    lynx_dir: Path
    key_fields: Dict[str, KeyFieldConfig] = field(default_factory=dict)
    export_glob: str = "*.csv"

    evt_file: str = "Lynx.evt"
    roster_file: str = "Lynx.ppl"
    encoding: str = "ascii"          # python codec name
    backup_dir: str = "backups"      # relative to lynx_dir unless absolute

    debounce_s: float = 2.0
    settle_delay_s: float = 0.5
    cleanup_delay_s: float = 1.0
    poll_interval_s: float = 0.5
    workers: int = 2

    seed_timeout_s: float = 5.0
    roster_timeout_s: float = 5.0

    # carried for the UI layer; playback is not done here
    sound_enabled: bool = True
    sound_path: Optional[str] = None

    @property
    def evt_path(self) -> Path:
        return self.lynx_dir / self.evt_file

    @property
    def roster_path(self) -> Path:
        return self.lynx_dir / self.roster_file

    @property
    def backup_path(self) -> Path:
        return _resolve_path(self.backup_dir, base=self.lynx_dir)

    @classmethod
    def from_app(cls, cfg: Dict[str, Any], *,
                 watch_dir: str | os.PathLike[str] | None = None,
                 lynx_dir: str | os.PathLike[str] | None = None) -> "WatcherConfig":
        validate_config(cfg)
        app = cfg.get("app") or {}
        w = get_watcher_cfg(cfg)
        out = get_output_cfg(cfg)
        st = get_startup_cfg(cfg)
        notif = app.get("notifications", {}) or {}

        watch = watch_dir or w.get("watch_dir")
        lynx = lynx_dir or out.get("lynx_dir")
        if not watch or not lynx:
            raise ConfigurationError(
                "Both app.watcher.watch_dir and app.output.lynx_dir are required "
                "(or pass --watch-dir / --lynx-dir)."
            )

        try:
            return cls(
                watch_dir=_resolve_path(watch),
                lynx_dir=_resolve_path(lynx),
                key_fields=get_key_fields(cfg),
                export_glob=str(w.get("export_glob", "*.csv")),

                evt_file=str(out.get("evt_file", "Lynx.evt")),
                roster_file=str(out.get("roster_file", "Lynx.ppl")),
                encoding=get_output_encoding(out.get("encoding", "ascii")),
                backup_dir=str(out.get("backup_dir", "backups")),

                debounce_s=float(w.get("debounce_s", 2.0)),
                settle_delay_s=float(w.get("settle_delay_s", 0.5)),
                cleanup_delay_s=float(w.get("cleanup_delay_s", 1.0)),
                poll_interval_s=float(w.get("poll_interval_s", 0.5)),
                workers=max(1, int(w.get("workers", 2))),

                seed_timeout_s=float(st.get("seed_timeout_s", 5.0)),
                roster_timeout_s=float(st.get("roster_timeout_s", 5.0)),

                sound_enabled=bool(notif.get("sound_enabled", True)),
                sound_path=str(notif["sound_path"]) if notif.get("sound_path") else None,
            )
        except (TypeError, ValueError) as ex:
            raise ConfigurationError(f"Invalid configuration value: {ex}") from ex


def describe(cfg: WatcherConfig) -> Tuple[str, ...]:
    """Human-readable lines for the startup log."""
    return (
        f"watch_dir={cfg.watch_dir} pattern={cfg.export_glob}",
        f"evt={cfg.evt_path} encoding={cfg.encoding} backups={cfg.backup_path}",
    )
# ---------- End of config_loader.py ----------
