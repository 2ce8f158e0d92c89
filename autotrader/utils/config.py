"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 Config 객체로 변환.
    전략/리스크/틱 루프/브로커/백테스트/DB/로깅 설정을 통합 관리.
    실행 중에는 읽기 전용.

[ 설정 파일 구조 (config.yaml) ]
    strategy:         → StrategyConfig (전략 이름, 종목, 파라미터)
    risk:             → RiskConfig (포지션 사이징 / 손절 / 익절 / 최대 포지션 수)
    trading:          → TradingConfig (봉 주기, 봉 개수, 틱 간격, 로그 용량)
    broker:           → BrokerConfig (브로커 종류, 모의 브로커 파라미터)
    backtest:         → BacktestConfig (백테스트 파라미터)
    database:         → DatabaseConfig (ClickHouse 봉 캐시)
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로

[ 호출하는 곳 ]
    - run_bot.py, run_backtest.py에서 Config.from_yaml()로 로드 후 validate()
    - 전략 생성 시 config.strategy의 값을 params로 전달
    - 엔진 생성 시 config.risk / config.trading 사용
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

STRATEGY_NAMES = ("rsi", "ema-crossover", "macd", "trend-pullback", "hybrid-predictive")
BROKER_NAMES = ("mock",)


class ConfigError(ValueError):
    """설정 오류. 틱 실행 전에 프로세스를 중단시킨다."""


@dataclass
class StrategyConfig:
    """전략 설정. config.yaml의 strategy 섹션에 대응.

    전략별 파라미터는 params dict에 자유롭게 넣는다.
    각 전략 클래스의 DEFAULT_PARAMS가 기본값 역할을 하므로,
    여기서는 오버라이드할 값만 지정하면 된다.
    """
    name: str = "rsi"
    symbols: list[str] = field(default_factory=lambda: ["BTC/USD", "ETH/USD"])
    params: dict[str, Any] = field(default_factory=dict)
    model_path: str = ""   # hybrid-predictive 전용 (없으면 중립 예측)


@dataclass
class RiskConfig:
    """리스크 설정. config.yaml의 risk 섹션에 대응."""
    risk_per_trade: float = 0.02    # 1회 진입 시 자산 대비 비율
    stop_loss_pct: float = 0.03
    take_profit_pct: float = 0.06
    max_positions: int = 5


@dataclass
class TradingConfig:
    """틱 루프 설정. config.yaml의 trading 섹션에 대응."""
    timeframe: str = "5Min"
    bar_limit: int = 100
    min_bars: int = 30              # 이보다 봉이 적으면 종목 스킵
    tick_interval_seconds: float = 300
    signal_log_size: int = 50
    trade_log_size: int = 50
    error_log_size: int = 20
    state_path: str = ""            # 비어 있으면 JSON 상태 파일 미기록


@dataclass
class BrokerConfig:
    """브로커 설정. config.yaml의 broker 섹션에 대응."""
    name: str = "mock"
    initial_cash: float = 10_000
    commission_rate: float = 0.001
    slippage_rate: float = 0.0005


@dataclass
class BacktestConfig:
    """백테스트 설정. config.yaml의 backtest 섹션에 대응."""
    initial_cash: float = 10_000
    bar_limit: int = 2000
    window: int = 50       # 전략에 전달하는 과거 봉 수 (현재 봉 제외)
    min_bars: int = 50
    cache_bars: bool = False


@dataclass
class DatabaseConfig:
    """데이터베이스 설정. config.yaml의 database 섹션에 대응."""
    host: str = "localhost"
    port: int = 8123
    database: str = "default"
    user: str = "default"
    password: str = ""


@dataclass
class Config:
    """전체 설정. from_yaml() 또는 from_json()으로 파일에서 로드."""
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    broker: BrokerConfig = field(default_factory=BrokerConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """YAML 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls._from_dict(data)

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        """JSON 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """딕셔너리에서 Config 생성. 섹션 내 알 수 없는 키는 무시."""
        strategy_data = data.get("strategy", {}) or {}

        # strategy 섹션 파싱: name, symbols, model_path는 직접 필드, 나머지는 params로
        direct = ("name", "symbols", "model_path")
        if "params" in strategy_data:
            strategy_params = strategy_data["params"] or {}
        else:
            strategy_params = {k: v for k, v in strategy_data.items() if k not in direct}
        strategy = StrategyConfig(
            name=str(strategy_data.get("name", "rsi")).lower(),
            symbols=list(strategy_data.get("symbols", StrategyConfig().symbols)),
            params=dict(strategy_params),
            model_path=strategy_data.get("model_path", ""),
        )

        return cls(
            strategy=strategy,
            risk=_section(RiskConfig, data.get("risk")),
            trading=_section(TradingConfig, data.get("trading")),
            broker=_section(BrokerConfig, data.get("broker")),
            backtest=_section(BacktestConfig, data.get("backtest")),
            database=_section(DatabaseConfig, data.get("database")),
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
        )

    def validate(self) -> "Config":
        """설정 검증. 문제가 있으면 ConfigError."""
        if self.strategy.name not in STRATEGY_NAMES:
            raise ConfigError(
                f"알 수 없는 전략: '{self.strategy.name}'. 사용 가능: {', '.join(STRATEGY_NAMES)}"
            )
        if not self.strategy.symbols:
            raise ConfigError("strategy.symbols가 비어 있습니다.")
        if self.strategy.name == "macd":
            fast = int(self.strategy.params.get("fast", 12))
            slow = int(self.strategy.params.get("slow", 26))
            if fast >= slow:
                raise ConfigError(f"macd fast({fast})는 slow({slow})보다 작아야 합니다.")
        if self.broker.name not in BROKER_NAMES:
            raise ConfigError(f"알 수 없는 브로커: '{self.broker.name}'. 사용 가능: {', '.join(BROKER_NAMES)}")

        risk = self.risk
        for key in ("risk_per_trade", "stop_loss_pct", "take_profit_pct"):
            value = getattr(risk, key)
            if not 0 < value <= 1:
                raise ConfigError(f"risk.{key}는 (0, 1] 범위여야 합니다: {value}")
        if risk.max_positions < 1:
            raise ConfigError(f"risk.max_positions는 1 이상이어야 합니다: {risk.max_positions}")

        trading = self.trading
        if trading.min_bars < 1:
            raise ConfigError(f"trading.min_bars는 1 이상이어야 합니다: {trading.min_bars}")
        if trading.bar_limit < trading.min_bars:
            raise ConfigError(
                f"trading.bar_limit({trading.bar_limit})가 min_bars({trading.min_bars})보다 작습니다."
            )
        if trading.tick_interval_seconds <= 0:
            raise ConfigError("trading.tick_interval_seconds는 0보다 커야 합니다.")
        return self

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환."""
        from dataclasses import asdict
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, allow_unicode=True, default_flow_style=False)


def _section(cls, data: dict[str, Any] | None):
    """섹션 dict → dataclass. 정의되지 않은 키는 무시."""
    data = data or {}
    return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def parse_param(param_str: str) -> tuple[str, object]:
    """'key=value' 문자열을 파싱하여 (key, value) 반환. 숫자면 자동 변환."""
    key, _, value = param_str.partition("=")
    key = key.strip()
    value = value.strip()

    # 숫자 자동 변환
    try:
        if "." in value:
            return key, float(value)
        return key, int(value)
    except ValueError:
        # bool 변환
        if value.lower() in ("true", "yes"):
            return key, True
        if value.lower() in ("false", "no"):
            return key, False
        return key, value
