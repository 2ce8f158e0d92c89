from datetime import datetime, timezone

import pytest

from autotrader.core.broker_api import AccountSnapshot
from autotrader.data.bot_state import BotState
from autotrader.data.event_log import BoundedLog, ErrorRecord


def test_bounded_log_drops_oldest_first():
    log = BoundedLog(3)
    for i in range(5):
        log.append(i)
    assert log.items() == (2, 3, 4)
    assert len(log) == 3
    assert log.latest() == 4


def test_bounded_log_under_capacity_keeps_insertion_order():
    log = BoundedLog(10)
    for item in ["a", "b", "c"]:
        log.append(item)
    assert list(log) == ["a", "b", "c"]


def test_bounded_log_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        BoundedLog(0)


def test_bounded_log_items_is_a_copy():
    log = BoundedLog(2)
    log.append(1)
    items = log.items()
    log.append(2)
    assert items == (1,)


def test_bounded_log_clear():
    log = BoundedLog(2)
    log.append(1)
    log.clear()
    assert len(log) == 0
    assert log.latest() is None


def test_error_record_to_dict():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    record = ErrorRecord(message="boom", timestamp=ts, symbol="ETH/USD")
    assert record.to_dict() == {"symbol": "ETH/USD", "message": "boom", "timestamp": ts.isoformat()}


def test_bot_state_initial_values_and_capacities():
    state = BotState(signal_log_size=2, trade_log_size=3, error_log_size=1)
    assert state.account == AccountSnapshot(0.0, 0.0, 0.0, 0.0)
    assert state.positions == {}
    assert state.last_tick is None
    assert state.signals.capacity == 2
    assert state.trades.capacity == 3
    assert state.errors.capacity == 1


def test_snapshot_is_decoupled_from_later_mutation():
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
    state = BotState(error_log_size=2)
    state.errors.append(ErrorRecord("first", ts))
    snapshot = state.snapshot()
    state.errors.append(ErrorRecord("second", ts))
    assert [e.message for e in snapshot.errors] == ["first"]
    assert snapshot.to_dict()["last_tick"] is None
