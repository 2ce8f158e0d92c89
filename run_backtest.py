"""
백테스트 실행 스크립트.

[ 사용법 ]
    # 기본 실행 (config.yaml의 전략, 샘플 데이터)
    python run_backtest.py

    # 전략 지정 + 파라미터 오버라이드
    python run_backtest.py --strategy ema-crossover -p fast=12 -p slow=26

    # 샘플 봉을 ClickHouse에 캐싱하면서 실행
    python run_backtest.py --cache

    # ClickHouse에 캐싱된 봉으로 실행
    python run_backtest.py --source clickhouse

    # 여러 전략 비교
    python run_backtest.py --compare rsi macd ema-crossover

    # 등록된 전략 목록 확인
    python run_backtest.py --list
"""

import argparse
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

from autotrader.backtest.engine import BacktestEngine
from autotrader.backtest.metrics import BacktestMetrics
from autotrader.brokers.mock_broker import MockBroker
from autotrader.brokers.sample_data import generate_sample_bars, timeframe_to_timedelta
from autotrader.data.clickhouse_store import ClickHouseBarStore
from autotrader.ingestion.bar_cache import cache_bars
from autotrader.risk.risk_manager import RiskManager
from autotrader.strategies import list_strategies, strategy_from_config
from autotrader.utils.config import STRATEGY_NAMES, Config, ConfigError, parse_param
from autotrader.utils.logger import setup_logger


def connect_store(config: Config) -> ClickHouseBarStore:
    db = config.database
    return ClickHouseBarStore.connect(db.host, db.port, db.database, db.user, db.password)


def validate_compare_names(names: list[str]) -> list[str]:
    """--compare 전략 이름 검증 (소문자로 정규화). 알 수 없는 이름이 있으면 ConfigError."""
    normalized = [name.lower() for name in names]
    unknown = [name for name in normalized if name not in STRATEGY_NAMES]
    if unknown:
        raise ConfigError(
            f"알 수 없는 전략: '{', '.join(unknown)}'. 사용 가능: {', '.join(STRATEGY_NAMES)}"
        )
    return normalized


def load_data(config: Config, source: str, cache: bool) -> dict[str, pd.DataFrame]:
    """데이터 소스에서 종목별 봉 로드."""
    symbols = config.strategy.symbols
    timeframe = config.trading.timeframe
    limit = config.backtest.bar_limit

    if source == "sample":
        print("샘플 데이터 생성 중...")
        broker = MockBroker(initial_cash=config.backtest.initial_cash)
        for symbol in symbols:
            broker.load_bars(symbol, generate_sample_bars(symbol, limit, timeframe))

        store = connect_store(config) if cache else None
        try:
            data = {s: cache_bars(broker, store, s, timeframe, limit) for s in symbols}
        finally:
            if store is not None:
                store.close()
        for symbol, df in data.items():
            print(f"  {symbol}: {len(df)}개 봉")
        return data

    if source == "clickhouse":
        print("ClickHouse에서 데이터 조회 중...")
        store = connect_store(config)
        try:
            available = set(store.get_symbols())
            end = datetime.now(timezone.utc)
            start = end - timeframe_to_timedelta(timeframe) * limit
            data = {}
            for symbol in symbols:
                if symbol not in available:
                    print(f"  [SKIP] {symbol}: ClickHouse에 데이터 없음")
                    continue
                df = store.get_bars(symbol, timeframe, start, end)
                if df.empty:
                    print(f"  [SKIP] {symbol}: 기간 내 데이터 없음")
                    continue
                data[symbol] = df
                print(f"  {symbol}: {len(df)}개 봉 로드")
        finally:
            store.close()

        if not data:
            print("\n오류: 백테스트할 데이터가 없습니다.")
            print("  --cache 옵션으로 먼저 봉을 캐싱하거나 --source sample 사용")
        return data

    print(f"오류: 알 수 없는 데이터 소스: {source}")
    return {}


def run_single(config: Config, strategy_name: str, strategy_params: dict, data: dict[str, pd.DataFrame]) -> BacktestEngine:
    """단일 전략 백테스트 실행."""
    strategy_config = replace(config.strategy, name=strategy_name)
    strategy = strategy_from_config(strategy_config, params=strategy_params)
    engine = BacktestEngine(
        risk_manager=RiskManager(config.risk),
        initial_equity=config.backtest.initial_cash,
        window=config.backtest.window,
        min_bars=config.backtest.min_bars,
    )
    engine.run_backtest(strategy, data)
    return engine


def print_single_result(strategy_name: str, engine: BacktestEngine):
    """단일 전략 결과 출력."""
    report = engine.generate_report()
    trades = report["trades"]
    closes = [t for t in trades if t["realized_pnl"] is not None]

    print(f"\n[전략: {strategy_name}]")
    print(engine.metrics.summary())

    if closes:
        print("\n최근 청산 거래 (최대 5건):")
        for t in closes[-5:]:
            pnl = t["realized_pnl"]
            pnl_str = f"+{pnl:,.2f}" if pnl > 0 else f"{pnl:,.2f}"
            print(f"  [{t['timestamp']}] {t['symbol']} {t['action']} ({t['reason']}) @ {t['price']:,.4f} -> {pnl_str}")


def print_comparison(results: dict[str, BacktestMetrics], config: Config):
    """여러 전략 비교 결과 출력."""
    names = list(results.keys())
    col_width = max(14, max(len(n) for n in names) + 2)
    line = "=" * (20 + col_width * len(names))

    print(f"\n{line}")
    print(f"전략 비교 결과 ({', '.join(config.strategy.symbols)}, {config.trading.timeframe})")
    print(line)

    header = f"{'':>20}" + "".join(f"{n:>{col_width}}" for n in names)
    print(header)
    print("-" * len(header))

    rows = [
        ("총 수익률", lambda m: f"{m.total_return:.2f}%"),
        ("최대 낙폭(MDD)", lambda m: f"{m.max_drawdown:.2f}%"),
        ("총 거래 횟수", lambda m: f"{m.total_trades}"),
        ("승률", lambda m: f"{m.win_rate:.1f}%"),
        ("수익 팩터", lambda m: f"{m.profit_factor:.2f}"),
        ("평균 수익", lambda m: f"{m.avg_profit:,.2f}"),
        ("평균 손실", lambda m: f"{m.avg_loss:,.2f}"),
        ("최대 연속 수익", lambda m: f"{m.max_consecutive_wins}"),
        ("최대 연속 손실", lambda m: f"{m.max_consecutive_losses}"),
    ]
    for label, fmt in rows:
        print(f"{label:>20}" + "".join(f"{fmt(results[n]):>{col_width}}" for n in names))
    print(line)


def main():
    parser = argparse.ArgumentParser(description="자동매매 전략 백테스트 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--strategy", type=str, default=None, help="전략 이름 (config.yaml 대신 지정)")
    parser.add_argument("-p", "--param", action="append", default=[], help="파라미터 오버라이드 (예: -p period=21)")
    parser.add_argument("--source", type=str, default="sample", choices=["sample", "clickhouse"], help="데이터 소스")
    parser.add_argument("--cache", action="store_true", help="조회한 봉을 ClickHouse에 캐싱")
    parser.add_argument("--compare", nargs="+", metavar="STRATEGY", help="여러 전략 비교 (예: --compare rsi macd)")
    parser.add_argument("--list", action="store_true", help="등록된 전략 목록 출력")
    args = parser.parse_args()

    if args.list:
        print("등록된 전략:")
        for name in list_strategies():
            print(f"  - {name}")
        return

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
        if args.compare:
            args.compare = validate_compare_names(args.compare)
    except ConfigError as exc:
        print(f"설정 오류: {exc}")
        sys.exit(1)

    setup_logger(level=config.log_level, log_dir=config.log_dir)

    data = load_data(config, args.source, args.cache or config.backtest.cache_bars)
    if not data:
        sys.exit(1)

    # ─── 비교 모드 ───────────────────────────────────────────────────────
    if args.compare:
        print(f"\n{len(args.compare)}개 전략 비교 실행...")
        results = {}
        for name in args.compare:
            print(f"\n--- {name} 실행 중 ---")
            # 비교 모드에서는 전략별 기본 파라미터 사용
            results[name] = run_single(config, name, {}, data).metrics
        print_comparison(results, config)
        return

    # ─── 단일 실행 모드 ─────────────────────────────────────────────────
    print(f"\n전략: {config.strategy.name}")
    if args.param:
        print(f"파라미터 오버라이드: {dict(parse_param(p) for p in args.param)}")

    engine = run_single(config, config.strategy.name, dict(config.strategy.params), data)
    print_single_result(config.strategy.name, engine)


if __name__ == "__main__":
    main()
