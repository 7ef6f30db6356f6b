import logging
import signal
from decimal import Decimal

import yaml

from gcpv_watcher import __main__ as cli
from gcpv_watcher.config_loader import DEFAULT_CFG
from gcpv_watcher.models import Race, Racer


def write_cfg(tmp_path, watch_dir, lynx_dir):
    cfg = yaml.safe_load(DEFAULT_CFG.read_text(encoding="utf-8"))
    cfg["app"]["watcher"]["watch_dir"] = str(watch_dir)
    cfg["app"]["output"]["lynx_dir"] = str(lynx_dir)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


def test_args():
    args = cli._parse_args(["--config", "c.yaml", "--watch-dir", "in", "--show-races"])
    assert args.config == "c.yaml"
    assert args.watch_dir == "in"
    assert args.lynx_dir is None
    assert args.show_races is True


def test_start_failure_exits_nonzero(tmp_path, monkeypatch):
    monkeypatch.setattr(signal, "signal", lambda *a: None)
    cfg_path = write_cfg(tmp_path, tmp_path / "missing", tmp_path)
    assert cli.main(["--config", str(cfg_path)]) == 1


def test_logging_listener_lists_races(caplog):
    caplog.set_level(logging.INFO, logger="gcpv.cli")
    listener = cli.LoggingListener(show_races=True)
    listener.on_races_updated(
        [Race("1A", "Final", Decimal(4), {689: 1})],
        {689: Racer(689, "Dixon", "Frankie", "Hamilton")},
    )
    assert "1 race(s) in event file" in caplog.text
    assert "Lane 1: 689 Dixon, Frankie (Hamilton)" in caplog.text


def test_logging_listener_errors(caplog):
    caplog.set_level(logging.INFO, logger="gcpv.cli")
    cli.LoggingListener().on_error("boom")
    assert any(r.levelno == logging.ERROR and r.message == "boom" for r in caplog.records)
