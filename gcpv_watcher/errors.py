# gcpv_watcher/errors.py
"""
Exception hierarchy for the watcher.

- ConfigurationError : broken/missing config, fatal at load time.
- FormatError        : a file or line could not be parsed; aborts that parse call.
- ConversionError    : one export race could not be turned into a Race; skipped.
- StartupTimeoutError: a guarded startup step ran past its bound; fatal.

Filesystem problems are left as the builtin OSError family.
"""

from __future__ import annotations


class WatcherError(Exception):
    """Base class for every error raised on purpose by this package."""


class ConfigurationError(WatcherError, RuntimeError):
    pass


class FormatError(WatcherError, ValueError):
    pass


class ConversionError(WatcherError, ValueError):
    pass


class StartupTimeoutError(WatcherError, TimeoutError):
    pass
