"""
자동매매 봇 실행 스크립트.

[ 사용법 ]
    # config.yaml 설정으로 스케줄러 실행 (Ctrl+C로 종료)
    python run_bot.py

    # 틱 한 번만 실행하고 종료
    python run_bot.py --once

    # 지정한 횟수만큼 틱 실행
    python run_bot.py --ticks 10

    # 전략 / 파라미터 오버라이드
    python run_bot.py --strategy macd -p fast=8 -p slow=21

[ 브로커 ]
    broker.name == "mock": 샘플 봉을 로드한 MockBroker.
    틱마다 봉을 하나씩 공개하여 실시간 피드를 흉내 낸다.
"""

import argparse
import logging
import sys
from pathlib import Path

from autotrader.brokers.mock_broker import MockBroker
from autotrader.brokers.sample_data import generate_sample_bars
from autotrader.core.trading_strategy import TradingStrategy
from autotrader.live.broadcast import JsonFileBroadcaster, LoggingBroadcaster
from autotrader.live.engine import TradingEngine
from autotrader.live.scheduler import TickScheduler
from autotrader.risk.risk_manager import RiskManager
from autotrader.strategies import strategy_from_config
from autotrader.utils.config import Config, ConfigError, parse_param
from autotrader.utils.logger import setup_logger

logger = logging.getLogger("autotrader.live")

# 봇 시작 후 공개할 미래 봉 수 (mock 피드)
MOCK_FEED_BARS = 1000


class FeedAdvancingEngine(TradingEngine):
    """틱마다 MockBroker 피드를 한 봉 전진시키는 엔진."""

    def _run_cycle(self) -> None:
        # 잠금 안에서만 전진: 건너뛴 틱은 피드를 소비하지 않는다
        self.broker.advance()
        super()._run_cycle()


def build_broker(config: Config, warmup: int) -> MockBroker:
    broker = MockBroker(
        initial_cash=config.broker.initial_cash,
        commission_rate=config.broker.commission_rate,
        slippage_rate=config.broker.slippage_rate,
    )
    for symbol in config.strategy.symbols:
        bars = generate_sample_bars(symbol, warmup + MOCK_FEED_BARS, config.trading.timeframe)
        broker.load_bars(symbol, bars, start=warmup)
    return broker


def warn_if_underfed(strategy: TradingStrategy, config: Config) -> None:
    """bar_limit이 전략이 요구하는 봉 수보다 작으면 경고. 전략은 계속 HOLD만 낸다."""
    if strategy.required_bars > config.trading.bar_limit:
        logger.warning(
            f"[Bot] {strategy.name} 전략은 {strategy.required_bars}개 봉이 필요하지만 "
            f"trading.bar_limit={config.trading.bar_limit} → 시그널이 나오지 않습니다."
        )


def main():
    parser = argparse.ArgumentParser(description="자동매매 봇 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--strategy", type=str, default=None, help="전략 이름 (config.yaml 대신 지정)")
    parser.add_argument("-p", "--param", action="append", default=[], help="파라미터 오버라이드 (예: -p period=21)")
    parser.add_argument("--once", action="store_true", help="틱 한 번만 실행")
    parser.add_argument("--ticks", type=int, default=None, help="실행할 틱 수 (기본: 무한)")
    args = parser.parse_args()

    # 설정 로드
    config_path = Path(args.config)
    if config_path.exists():
        config = Config.from_yaml(config_path)
    else:
        print(f"설정 파일 없음: {config_path}, 기본값 사용")
        config = Config()
    if args.strategy:
        config.strategy.name = args.strategy.lower()
    for p in args.param:
        key, value = parse_param(p)
        config.strategy.params[key] = value

    try:
        config.validate()
    except ConfigError as exc:
        print(f"설정 오류: {exc}")
        sys.exit(1)

    setup_logger(level=config.log_level, log_dir=config.log_dir)

    strategy = strategy_from_config(config.strategy)
    warn_if_underfed(strategy, config)

    broker = build_broker(config, warmup=max(config.trading.bar_limit, strategy.required_bars))
    engine = FeedAdvancingEngine(
        broker=broker,
        strategy=strategy,
        symbols=config.strategy.symbols,
        risk_manager=RiskManager(config.risk),
        trading_config=config.trading,
    )
    engine.subscribe(LoggingBroadcaster())
    if config.trading.state_path:
        engine.subscribe(JsonFileBroadcaster(config.trading.state_path))

    logger.info(
        f"[Bot] 시작: 전략={strategy.name}, 종목={', '.join(config.strategy.symbols)}, "
        f"봉={config.trading.timeframe}, 간격={config.trading.tick_interval_seconds}초"
    )

    max_ticks = 1 if args.once else args.ticks
    scheduler = TickScheduler(engine, config.trading.tick_interval_seconds)
    try:
        scheduler.run_forever(max_ticks=max_ticks)
    except KeyboardInterrupt:
        scheduler.stop()
        logger.info("[Bot] 사용자 중단")


if __name__ == "__main__":
    main()
