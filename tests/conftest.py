import sys
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
import pytest

# 프로젝트 루트를 sys.path에 추가 (설치 없이 autotrader 임포트)
ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def build_bars(closes, opens=None, volumes=None, start="2024-01-01", freq="5min") -> pd.DataFrame:
    """종가 리스트로 봉 DataFrame 생성. high/low는 몸통 ±1."""
    closes = [float(c) for c in closes]
    opens = [float(o) for o in opens] if opens is not None else list(closes)
    volumes = list(volumes) if volumes is not None else [1.0] * len(closes)
    times = pd.date_range(start=start, periods=len(closes), freq=freq, tz="UTC")
    return pd.DataFrame({
        "time": times,
        "open": opens,
        "high": [max(o, c) + 1 for o, c in zip(opens, closes)],
        "low": [min(o, c) - 1 for o, c in zip(opens, closes)],
        "close": closes,
        "volume": volumes,
    })


@pytest.fixture
def make_bars():
    return build_bars


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
