"""
예측 모델 입력 특징 생성.

[ 특징 (봉마다 5개, 모두 0~1로 클램프) ]
    1. 정규화 종가            (윈도우 min/max 기준)
    2. 정규화 거래량          (윈도우 min/max 기준)
    3. RSI(14) / 100
    4. EMA9 - EMA21 스프레드  (±최대종가×5% 범위로 정규화)
    5. MACD 히스토그램        (±최대종가×2% 범위로 정규화)

[ 호출하는 곳 ]
    - strategies/hybrid_predictive_strategy.py에서 predictor.predict() 입력으로 사용
"""

import pandas as pd

from autotrader.utils.indicators import ema_series, macd_series, rsi_series

MIN_FEATURE_BARS = 50


def normalize(value: float, lo: float, hi: float) -> float:
    """[lo, hi] → [0, 1] 선형 변환 + 클램프. 범위가 0이면 0.5."""
    if hi == lo:
        return 0.5
    n = (value - lo) / (hi - lo)
    return max(0.0, min(1.0, n))


def prepare_features(bars: pd.DataFrame) -> list[list[float]]:
    """봉 DataFrame → 특징 행 리스트 (MACD 히스토그램 길이에 맞춰 끝 정렬)."""
    if len(bars) < MIN_FEATURE_BARS:
        return []

    closes = bars["close"].astype(float).tolist()
    volumes = bars["volume"].astype(float).tolist()

    rsi_values = rsi_series(closes, 14)
    ema_fast = ema_series(closes, 9)
    ema_slow = ema_series(closes, 21)
    macd_values = macd_series(closes, 12, 26, 9)
    if macd_values is None:
        return []

    length = len(macd_values.histogram)
    closes = closes[-length:]
    volumes = volumes[-length:]
    rsi_values = rsi_values[-length:]
    ema_fast = ema_fast[-length:]
    ema_slow = ema_slow[-length:]
    histogram = macd_values.histogram

    min_close, max_close = min(closes), max(closes)
    min_vol, max_vol = min(volumes), max(volumes)

    features = []
    for i in range(length):
        spread = ema_fast[i] - ema_slow[i]
        features.append([
            normalize(closes[i], min_close, max_close),
            normalize(volumes[i], min_vol, max_vol),
            rsi_values[i] / 100,
            normalize(spread, -max_close * 0.05, max_close * 0.05),
            normalize(histogram[i], -max_close * 0.02, max_close * 0.02),
        ])
    return features
