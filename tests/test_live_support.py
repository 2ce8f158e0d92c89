import json
import logging

import pytest

from autotrader.core.broker_api import AccountSnapshot
from autotrader.data.bot_state import BotState
from autotrader.live.broadcast import JsonFileBroadcaster, LoggingBroadcaster
from autotrader.live.scheduler import TickScheduler
from autotrader.utils.logger import setup_logger


class CountingEngine:
    def __init__(self, on_tick=None):
        self.ticks = 0
        self.on_tick = on_tick

    def tick(self):
        self.ticks += 1
        if self.on_tick is not None:
            self.on_tick()


def test_scheduler_runs_requested_ticks():
    engine = CountingEngine()
    scheduler = TickScheduler(engine, interval_seconds=0.001)
    assert scheduler.run_forever(max_ticks=3) == 3
    assert engine.ticks == 3


def test_scheduler_stop_from_tick():
    engine = CountingEngine()
    scheduler = TickScheduler(engine, interval_seconds=60)
    engine.on_tick = scheduler.stop
    assert scheduler.run_forever() == 1
    assert scheduler.stopped


def test_scheduler_keeps_going_after_tick_exception():
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    engine = CountingEngine(on_tick=flaky)
    assert TickScheduler(engine, 0.001).run_forever(max_ticks=2) == 2
    assert engine.ticks == 2


def test_scheduler_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        TickScheduler(CountingEngine(), 0)


def snapshot():
    state = BotState()
    state.account = AccountSnapshot(equity=1234.5, cash=1000.0, buying_power=1000.0, pnl=34.5)
    return state.snapshot()


def test_json_file_broadcaster_writes_sorted_payload(tmp_path):
    path = tmp_path / "state" / "bot.json"
    snap = snapshot()

    JsonFileBroadcaster(path)(snap)

    text = path.read_text(encoding="utf-8")
    assert text == snap.to_json()
    assert json.loads(text)["account"]["equity"] == 1234.5
    assert not path.with_suffix(".json.tmp").exists()


def test_logging_broadcaster_summarises(caplog):
    with caplog.at_level(logging.INFO, logger="autotrader.live"):
        LoggingBroadcaster()(snapshot())
    assert "equity=1,234.50" in caplog.text
    assert "last_signal=-" in caplog.text


def test_setup_logger_console_only(tmp_path):
    logger = setup_logger(name="autotrader.test_console", level="debug", log_dir="", console=True)
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert setup_logger(name="autotrader.test_console", log_dir="") is logger
    assert len(logger.handlers) == 1


def test_setup_logger_file_handler(tmp_path):
    logger = setup_logger(name="autotrader.test_file", log_dir=str(tmp_path), console=False)
    logger.info("hello")
    for handler in logger.handlers:
        handler.flush()
    files = list(tmp_path.glob("autotrader.test_file_*.log"))
    assert len(files) == 1
    assert "hello" in files[0].read_text(encoding="utf-8")


def test_setup_logger_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logger(name="autotrader.test_bad", level="LOUD", log_dir="")
