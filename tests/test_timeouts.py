import subprocess
import sys
import textwrap
import time
from pathlib import Path

import pytest

from gcpv_watcher.errors import StartupTimeoutError
from gcpv_watcher.timeouts import run_with_timeout

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def test_returns_result():
    assert run_with_timeout(lambda: 42, 1.0, "answer") == 42


def test_errors_propagate_unchanged():
    def boom():
        raise ValueError("bad file")

    with pytest.raises(ValueError, match="bad file"):
        run_with_timeout(boom, 1.0, "boom")


def test_own_timeout_error_is_not_rewrapped():
    def slow_io():
        raise TimeoutError("socket")

    with pytest.raises(TimeoutError, match="socket"):
        run_with_timeout(slow_io, 1.0, "io")


def test_running_past_the_bound_raises():
    started = time.monotonic()
    with pytest.raises(StartupTimeoutError, match="seed load"):
        run_with_timeout(lambda: time.sleep(2), 0.05, "seed load")
    assert time.monotonic() - started < 1.5


def test_hung_helper_does_not_hold_the_process_open():
    script = textwrap.dedent("""
        import time
        from gcpv_watcher.errors import StartupTimeoutError
        from gcpv_watcher.timeouts import run_with_timeout
        try:
            run_with_timeout(lambda: time.sleep(30), 0.1, "seed load")
        except StartupTimeoutError:
            print("timed out")
    """)
    started = time.monotonic()
    out = subprocess.run(
        [sys.executable, "-c", script],
        cwd=PROJECT_ROOT, capture_output=True, text=True, timeout=20,
    )
    assert out.returncode == 0, out.stderr
    assert out.stdout.strip() == "timed out"
    assert time.monotonic() - started < 10
