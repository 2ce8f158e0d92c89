import json
from pathlib import Path

import pytest

from autotrader.utils.config import Config, ConfigError, parse_param

ROOT = Path(__file__).resolve().parents[1]


def test_example_config_loads_and_validates():
    config = Config.from_yaml(ROOT / "config.yaml").validate()
    assert config.strategy.name == "rsi"
    assert config.strategy.symbols == ["BTC/USD", "ETH/USD"]
    assert config.risk.max_positions == 5
    assert config.trading.timeframe == "5Min"
    assert config.broker.name == "mock"


def test_defaults_match_documented_values():
    config = Config()
    assert config.risk.risk_per_trade == 0.02
    assert config.risk.stop_loss_pct == 0.03
    assert config.risk.take_profit_pct == 0.06
    assert config.trading.bar_limit == 100
    assert config.trading.tick_interval_seconds == 300
    assert (config.trading.signal_log_size, config.trading.trade_log_size, config.trading.error_log_size) == (50, 50, 20)
    assert config.validate() is config


def test_yaml_round_trip(tmp_path):
    config = Config()
    config.strategy.name = "macd"
    config.strategy.params = {"fast": 8}
    config.risk.max_positions = 2
    path = tmp_path / "nested" / "config.yaml"

    config.save_yaml(path)
    loaded = Config.from_yaml(path)

    assert loaded.strategy.name == "macd"
    assert loaded.strategy.params == {"fast": 8}
    assert loaded.risk.max_positions == 2


def test_from_json_and_flat_strategy_params(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "strategy": {"name": "EMA-Crossover", "symbols": ["SOL/USD"], "fast": 5, "slow": 13},
        "trading": {"bar_limit": 200, "unknown_key": 1},
    }), encoding="utf-8")

    config = Config.from_json(path)

    assert config.strategy.name == "ema-crossover"
    assert config.strategy.params == {"fast": 5, "slow": 13}
    assert config.trading.bar_limit == 200


@pytest.mark.parametrize("mutate,message", [
    (lambda c: setattr(c.strategy, "name", "martingale"), "알 수 없는 전략"),
    (lambda c: setattr(c.strategy, "symbols", []), "symbols"),
    (lambda c: (setattr(c.strategy, "name", "macd"), c.strategy.params.update(fast=26, slow=12)), "macd fast"),
    (lambda c: (setattr(c.strategy, "name", "macd"), c.strategy.params.update(fast=30)), "macd fast"),
    (lambda c: setattr(c.broker, "name", "alpaca"), "브로커"),
    (lambda c: setattr(c.risk, "risk_per_trade", 0.0), "risk_per_trade"),
    (lambda c: setattr(c.risk, "stop_loss_pct", 1.5), "stop_loss_pct"),
    (lambda c: setattr(c.risk, "max_positions", 0), "max_positions"),
    (lambda c: setattr(c.trading, "bar_limit", 10), "bar_limit"),
    (lambda c: setattr(c.trading, "tick_interval_seconds", 0), "tick_interval_seconds"),
])
def test_validate_rejects_bad_values(mutate, message):
    config = Config()
    mutate(config)
    with pytest.raises(ConfigError) as exc:
        config.validate()
    assert message in str(exc.value)


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


@pytest.mark.parametrize("raw,expected", [
    ("period=21", ("period", 21)),
    ("oversold=25.5", ("oversold", 25.5)),
    ("enabled=yes", ("enabled", True)),
    ("enabled=false", ("enabled", False)),
    (" name = rsi ", ("name", "rsi")),
])
def test_parse_param(raw, expected):
    assert parse_param(raw) == expected
