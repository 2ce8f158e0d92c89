"""두 시계열의 교차 판정 (ema_cross_strategy, macd_strategy, trend_pullback_strategy 공용)."""


def crossed_above(prev_a: float, prev_b: float, now_a: float, now_b: float) -> bool:
    """a가 b를 아래에서 위로 교차 (직전 a <= b, 현재 a > b)."""
    return prev_a <= prev_b and now_a > now_b


def crossed_below(prev_a: float, prev_b: float, now_a: float, now_b: float) -> bool:
    """a가 b를 위에서 아래로 교차 (직전 a >= b, 현재 a < b)."""
    return prev_a >= prev_b and now_a < now_b
