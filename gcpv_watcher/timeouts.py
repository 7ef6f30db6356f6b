# gcpv_watcher/timeouts.py
from __future__ import annotations

import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Callable, TypeVar

from .errors import StartupTimeoutError

T = TypeVar("T")


def run_with_timeout(fn: Callable[[], T], timeout_s: float, what: str) -> T:
    """
    Run `fn` on a daemon helper thread and wait at most `timeout_s` for its result.

    Exceptions raised by `fn` propagate unchanged. Running past the bound raises
    StartupTimeoutError; the helper thread is abandoned, not killed, and does not
    keep the interpreter alive at exit.
    """
    future: Future = Future()

    def _runner() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            result = fn()
        except BaseException as ex:
            future.set_exception(ex)
        else:
            future.set_result(result)

    threading.Thread(target=_runner, name=f"guard-{what}", daemon=True).start()
    try:
        return future.result(timeout=timeout_s)
    except FuturesTimeoutError:
        if future.done():
            # fn itself raised a TimeoutError; hand it back as-is
            return future.result()
        raise StartupTimeoutError(f"{what} did not finish within {timeout_s:.1f}s") from None
