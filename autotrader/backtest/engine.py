"""
백테스팅 엔진 모듈.

[ 역할 ]
    과거 봉에 전략을 적용하여 가상 매매를 시뮬레이션하고 성과를 측정.
    브로커 계좌 대신 Portfolio가 실현손익을 로컬로 누적한다.

[ 실행 흐름 ]
    run_backtest() 호출 시 종목별로:
        1. 봉 조회 (bar_store가 있으면 캐싱) → min_bars 미만이면 스킵
        2. window+1개 봉 윈도우를 한 봉씩 밀며:
           → 보유 중이면 현재가로 평가 후 risk.check_exit() 먼저
           → strategy.analyze()
           → BUY + 미보유: 누적 자산 기준 사이징 후 진입
           → SELL + 보유: 청산
        3. 데이터 끝에 남은 포지션은 마지막 종가로 청산 (END_OF_DATA)
    마지막에 metrics.calculate_metrics()로 성과 지표 계산

[ 의존성 ]
    - core/trading_strategy.py::TradingStrategy (전략 인터페이스)
    - risk/risk_manager.py::RiskManager (청산 점검 / 사이징)
    - data/portfolio.py::Portfolio (포지션/거래기록 관리)
    - backtest/metrics.py::calculate_metrics() (성과 계산)

[ 호출하는 곳 ]
    - run_backtest.py (진입점)에서 생성 및 실행
"""

import logging
from typing import Any, Optional

import pandas as pd

from autotrader.backtest.metrics import BacktestMetrics, calculate_metrics
from autotrader.core.broker_api import BrokerAPI
from autotrader.core.data_provider import BarStore, normalize_bars
from autotrader.core.trading_strategy import SignalType, TradingStrategy
from autotrader.data.portfolio import Portfolio, TradeAction
from autotrader.ingestion.bar_cache import cache_bars
from autotrader.risk.risk_manager import RiskManager

logger = logging.getLogger("autotrader.backtest")


class BacktestEngine:
    """백테스팅 엔진. run_backtest()로 시뮬레이션 실행."""

    def __init__(
        self,
        risk_manager: RiskManager | None = None,
        initial_equity: float = 10_000,
        window: int = 50,
        min_bars: int = 50,
    ):
        self.risk = risk_manager or RiskManager()
        self.initial_equity = initial_equity
        self.window = window
        self.min_bars = min_bars

        # 백테스트 실행 후 채워지는 결과
        self.portfolio: Portfolio | None = None
        self.metrics: BacktestMetrics | None = None

    def run_backtest(
        self,
        strategy: TradingStrategy,
        data: dict[str, pd.DataFrame],
    ) -> BacktestMetrics:
        """백테스트 실행.

        Args:
            strategy: 매매 전략
            data: {symbol: 봉 DataFrame} 형태의 데이터

        Returns:
            BacktestMetrics: 성과 지표
        """
        self.portfolio = Portfolio(self.initial_equity)
        logger.info(f"백테스트 시작: 전략={strategy.name}, 종목={', '.join(data)}, 초기자산={self.initial_equity:,.2f}")
        if strategy.required_bars > self.window + 1:
            logger.warning(
                f"[Backtest] {strategy.name} 전략은 {strategy.required_bars}개 봉이 필요하지만 "
                f"윈도우는 {self.window + 1}개 → 시그널이 나오지 않습니다. backtest.window를 늘리세요."
            )

        for symbol, df in data.items():
            bars = normalize_bars(df)
            if len(bars) < self.min_bars:
                logger.warning(f"[Backtest] {symbol} 데이터 부족 ({len(bars)}개) → 스킵")
                continue
            logger.info(f"[Backtest] {symbol} {len(bars)}개 봉 분석 중...")
            self._run_symbol(strategy, symbol, bars)

        self.metrics = calculate_metrics(
            trade_history=self.portfolio.trade_history,
            equity_curve=self.portfolio.equity_curve,
            initial_equity=self.initial_equity,
        )
        logger.info(f"백테스트 완료. 총 수익률: {self.metrics.total_return:.2f}%")
        return self.metrics

    def run_from_broker(
        self,
        strategy: TradingStrategy,
        broker: BrokerAPI,
        symbols: list[str],
        limit: int,
        timeframe: str = "5Min",
        bar_store: Optional[BarStore] = None,
    ) -> BacktestMetrics:
        """브로커에서 과거 봉을 받아(선택적으로 캐싱) 백테스트 실행."""
        data = {
            symbol: cache_bars(broker, bar_store, symbol, timeframe, limit)
            for symbol in symbols
        }
        return self.run_backtest(strategy, data)

    def _run_symbol(self, strategy: TradingStrategy, symbol: str, bars: pd.DataFrame) -> None:
        """종목 하나를 시간순으로 시뮬레이션. 종목당 포지션은 최대 1개."""
        portfolio = self.portfolio

        for i in range(self.window, len(bars)):
            window = bars.iloc[i - self.window: i + 1]
            current = bars.iloc[i]
            price = float(current["close"])
            timestamp = pd.Timestamp(current["time"]).to_pydatetime()

            # 청산 점검 먼저
            position = portfolio.mark(symbol, price)
            if position is not None:
                reason = self.risk.check_exit(position, price)
                if reason is not None:
                    portfolio.close(symbol, price, timestamp, TradeAction.CLOSE, reason.value)
                    position = None

            decision = strategy.analyze(symbol, window, position)

            if decision.signal == SignalType.BUY and position is None:
                quantity = self.risk.position_size(portfolio.equity, price)
                if quantity > 0:
                    portfolio.open(symbol, quantity, price, timestamp, decision.reason)
            elif decision.signal == SignalType.SELL and position is not None:
                portfolio.close(symbol, price, timestamp, TradeAction.SELL, decision.reason)

        # 데이터 끝에 남은 포지션 청산
        if portfolio.get_position(symbol) is not None:
            last = bars.iloc[-1]
            portfolio.close(
                symbol,
                float(last["close"]),
                pd.Timestamp(last["time"]).to_pydatetime(),
                TradeAction.CLOSE,
                "END_OF_DATA",
            )

    def generate_report(self) -> dict[str, Any]:
        """백테스트 리포트 생성."""
        if self.metrics is None or self.portfolio is None:
            return {"error": "백테스트를 먼저 실행하세요."}

        return {
            "metrics": self.metrics.to_dict(),
            "portfolio_summary": self.portfolio.get_summary(),
            "trade_count": len(self.portfolio.trade_history),
            "trades": [t.to_dict() for t in self.portfolio.trade_history],
        }
