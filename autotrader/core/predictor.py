"""
예측 모델 인터페이스 (hybrid-predictive 전략 전용).

[ 역할 ]
    특징 윈도우(ml/features.py::prepare_features()의 출력)를 받아
    상승 확신도(0~1)를 반환. 모델이 없으면 중립값 0.5.
    모델 학습은 이 시스템 범위 밖 (가중치 파일만 소비).

[ 구현체 ]
    NeutralPredictor   - 항상 0.5
    ModelFilePredictor - JSON 로지스틱 모델 ({"weights": [...], "bias": b})

[ 호출하는 곳 ]
    - strategies/hybrid_predictive_strategy.py::HybridPredictiveStrategy.analyze()
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

logger = logging.getLogger("autotrader.ml")

NEUTRAL_CONFIDENCE = 0.5


class Predictor(ABC):
    """예측 모델 추상 클래스."""

    @abstractmethod
    def predict(self, features: Sequence[Sequence[float]]) -> float:
        """상승 확신도 반환 (0~1)."""
        ...


class NeutralPredictor(Predictor):
    def predict(self, features: Sequence[Sequence[float]]) -> float:
        return NEUTRAL_CONFIDENCE


class ModelFilePredictor(Predictor):
    """JSON 파일에 저장된 로지스틱 모델.

    마지막 특징 행에 대해 sigmoid(w·x + b)를 계산한다.
    파일이 없거나 아직 로드되지 않았으면 0.5를 반환한다.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._weights: Optional[np.ndarray] = None
        self._bias: float = 0.0
        self._load()

    @property
    def loaded(self) -> bool:
        return self._weights is not None

    def _load(self) -> None:
        if not self.path.exists():
            logger.warning(f"[ML] 모델 파일 없음: {self.path} → 중립값(0.5) 사용")
            return
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self._weights = np.asarray(data["weights"], dtype=float)
        self._bias = float(data.get("bias", 0.0))
        logger.info(f"[ML] 모델 로드 완료: {self.path}")

    def predict(self, features: Sequence[Sequence[float]]) -> float:
        if self._weights is None or len(features) == 0:
            return NEUTRAL_CONFIDENCE
        x = np.asarray(features[-1], dtype=float)
        if x.shape != self._weights.shape:
            raise ValueError(
                f"특징 차원 불일치: 입력 {x.shape[0]}, 모델 {self._weights.shape[0]}"
            )
        z = float(np.dot(self._weights, x) + self._bias)
        return float(1.0 / (1.0 + np.exp(-z)))
