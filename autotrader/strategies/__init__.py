"""
전략 모듈.

[ 전략 등록 방식 ]
    @register("전략이름") 데코레이터를 붙이면 STRATEGY_REGISTRY에 자동 등록.
    엔트리포인트(run_bot.py, run_backtest.py)는 config의 이름만으로
    전략 인스턴스를 시작 시 한 번 생성한다.

[ 등록된 전략 ]
    rsi / ema-crossover / macd / trend-pullback / hybrid-predictive

[ 새 전략 추가 방법 ]
    1. 이 디렉토리에 새 .py 파일 생성
    2. TradingStrategy를 상속받아 analyze()와 required_bars 구현
    3. @register("이름") 데코레이터 추가
    4. config.yaml에서 strategy.name을 해당 이름으로 설정
    → 끝. 엔진/엔트리포인트 수정 불필요.
"""

from importlib import import_module
from pathlib import Path
from typing import Any

from autotrader.core.predictor import ModelFilePredictor
from autotrader.core.trading_strategy import TradingStrategy
from autotrader.utils.config import StrategyConfig

# 전략 이름 → 전략 클래스 매핑
STRATEGY_REGISTRY: dict[str, type[TradingStrategy]] = {}


def register(name: str):
    """전략 클래스를 STRATEGY_REGISTRY에 등록하는 데코레이터."""
    def decorator(cls: type[TradingStrategy]):
        STRATEGY_REGISTRY[name] = cls
        return cls
    return decorator


def create_strategy(name: str, params: dict[str, Any] | None = None, **kwargs: Any) -> TradingStrategy:
    """이름으로 전략 인스턴스를 생성.

    Args:
        name: 등록된 전략 이름 (예: "rsi", "ema-crossover")
        params: 전략 파라미터 (각 전략의 DEFAULT_PARAMS를 오버라이드)
        **kwargs: 전략별 협력 객체 (예: hybrid-predictive의 predictor)

    Raises:
        ValueError: 등록되지 않은 전략 이름
    """
    if name not in STRATEGY_REGISTRY:
        available = ", ".join(sorted(STRATEGY_REGISTRY.keys()))
        raise ValueError(f"알 수 없는 전략: '{name}'. 사용 가능: {available}")
    return STRATEGY_REGISTRY[name](params=params, **kwargs)


def strategy_from_config(config: StrategyConfig, params: dict[str, Any] | None = None) -> TradingStrategy:
    """StrategyConfig로 전략 생성. hybrid-predictive는 model_path가 있으면 파일 모델을 붙인다."""
    kwargs: dict[str, Any] = {}
    if config.name == "hybrid-predictive" and config.model_path:
        kwargs["predictor"] = ModelFilePredictor(config.model_path)
    merged = dict(config.params) if params is None else params
    return create_strategy(config.name, params=merged, **kwargs)


def list_strategies() -> list[str]:
    """등록된 전략 이름 목록 반환."""
    return sorted(STRATEGY_REGISTRY.keys())


def _auto_discover():
    """이 디렉토리의 모든 전략 모듈을 자동 임포트하여 @register가 실행되게 한다."""
    strategies_dir = Path(__file__).parent
    for py_file in strategies_dir.glob("*.py"):
        if py_file.name.startswith("_"):
            continue
        module_name = f"autotrader.strategies.{py_file.stem}"
        import_module(module_name)


# 모듈 로드 시 자동 탐색
_auto_discover()
