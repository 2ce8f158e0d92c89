"""
백테스트 성과 지표 계산 모듈.

[ 역할 ]
    백테스트 결과(거래기록 + 실현자산 곡선)를 받아 성과 지표를 계산.
    calculate_metrics() 함수가 핵심.

[ 계산하는 지표 ]
    - 총 수익률
    - MDD (실현자산 곡선 기준 최대 낙폭)
    - 승률, 평균 수익/손실, 수익 팩터
    - 연속 승/패

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run_backtest() 완료 시 호출

[ 입력 데이터 ]
    - trade_history: data/portfolio.py::Portfolio.trade_history (청산 거래만 분석)
    - equity_curve: Portfolio.equity_curve (청산 시점마다 기록된 자산)
"""

from dataclasses import dataclass
from typing import Any

from autotrader.data.portfolio import TradeRecord


@dataclass
class BacktestMetrics:
    """백테스트 성과 지표. summary()로 포맷된 리포트 출력 가능."""
    initial_equity: float = 0.0
    final_equity: float = 0.0
    total_return: float = 0.0         # 총 수익률 (%)
    max_drawdown: float = 0.0         # 최대 낙폭 MDD (%)
    win_rate: float = 0.0             # 승률 (%)
    avg_profit: float = 0.0           # 수익 거래 평균 이익
    avg_loss: float = 0.0             # 손실 거래 평균 손실
    profit_factor: float = 0.0        # 총이익 / 총손실 (1 이상이면 수익)
    total_trades: int = 0             # 청산 거래 횟수
    winning_trades: int = 0
    losing_trades: int = 0
    max_consecutive_wins: int = 0
    max_consecutive_losses: int = 0

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환."""
        from dataclasses import asdict
        return asdict(self)

    def summary(self) -> str:
        """성과 요약 문자열."""
        lines = [
            "=" * 50,
            "백테스트 성과 리포트",
            "=" * 50,
            f"시작 자산:       {self.initial_equity:>12,.2f}",
            f"최종 자산:       {self.final_equity:>12,.2f}",
            f"총 수익률:       {self.total_return:>12.2f}%",
            f"최대 낙폭(MDD):  {self.max_drawdown:>12.2f}%",
            "-" * 50,
            f"총 거래 횟수:    {self.total_trades:>12d}",
            f"승률:            {self.win_rate:>12.2f}% ({self.winning_trades} W / {self.losing_trades} L)",
            f"평균 수익:       {self.avg_profit:>12,.2f}",
            f"평균 손실:       {self.avg_loss:>12,.2f}",
            f"수익 팩터:       {self.profit_factor:>12.2f}",
            "-" * 50,
            f"최대 연속 수익:  {self.max_consecutive_wins:>12d}",
            f"최대 연속 손실:  {self.max_consecutive_losses:>12d}",
            "=" * 50,
        ]
        return "\n".join(lines)


def calculate_metrics(
    trade_history: list[TradeRecord],
    equity_curve: list[float],
    initial_equity: float,
) -> BacktestMetrics:
    """성과 지표 계산. engine.py에서 백테스트 완료 후 호출됨.

    Args:
        trade_history: Portfolio.trade_history (매수+청산 전체)
        equity_curve: 실현자산 곡선 (첫 값 = 초기 자산)
        initial_equity: 초기 자금
    """
    metrics = BacktestMetrics(initial_equity=initial_equity, final_equity=initial_equity)

    if equity_curve:
        metrics.final_equity = equity_curve[-1]
    if initial_equity > 0:
        metrics.total_return = (metrics.final_equity - initial_equity) / initial_equity * 100

    # ─── MDD (Maximum Drawdown) ────────────────────────────────────────────
    if equity_curve:
        peak = equity_curve[0]
        max_dd = 0.0
        for value in equity_curve:
            if value > peak:
                peak = value
            if peak > 0:
                max_dd = max(max_dd, (peak - value) / peak * 100)
        metrics.max_drawdown = max_dd

    # ─── 거래 기반 지표 (청산 거래만 분석) ─────────────────────────────────
    closing = [t for t in trade_history if t.action.is_closing and t.realized_pnl is not None]
    metrics.total_trades = len(closing)
    if not closing:
        return metrics

    profits = [t.realized_pnl for t in closing]
    winners = [p for p in profits if p > 0]
    losers = [p for p in profits if p <= 0]

    metrics.winning_trades = len(winners)
    metrics.losing_trades = len(losers)
    metrics.win_rate = len(winners) / len(closing) * 100

    if winners:
        metrics.avg_profit = sum(winners) / len(winners)
    if losers:
        metrics.avg_loss = sum(losers) / len(losers)

    total_profit = sum(winners)
    total_loss = abs(sum(losers))
    metrics.profit_factor = total_profit / total_loss if total_loss > 0 else float("inf")

    # 연속 승패
    wins = losses = max_wins = max_losses = 0
    for p in profits:
        if p > 0:
            wins += 1
            losses = 0
            max_wins = max(max_wins, wins)
        else:
            losses += 1
            wins = 0
            max_losses = max(max_losses, losses)
    metrics.max_consecutive_wins = max_wins
    metrics.max_consecutive_losses = max_losses

    return metrics
