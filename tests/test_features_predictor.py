import json
import math

import pytest

from autotrader.core.predictor import ModelFilePredictor, NeutralPredictor
from autotrader.ml.features import MIN_FEATURE_BARS, normalize, prepare_features


def wave_bars(make_bars, n):
    closes = [100 + 5 * math.sin(i / 4) for i in range(n)]
    return make_bars(closes, volumes=[1 + (i % 5) for i in range(n)])


def test_normalize_clamps_and_handles_flat_range():
    assert normalize(5, 0, 10) == 0.5
    assert normalize(-3, 0, 10) == 0.0
    assert normalize(30, 0, 10) == 1.0
    assert normalize(7, 7, 7) == 0.5


def test_prepare_features_shape_and_range(make_bars):
    features = prepare_features(wave_bars(make_bars, 60))
    # MACD 히스토그램 길이: 60 - 26 + 1 - 9 + 1
    assert len(features) == 27
    assert all(len(row) == 5 for row in features)
    assert all(0.0 <= v <= 1.0 for row in features for v in row)


def test_prepare_features_short_history_is_empty(make_bars):
    assert prepare_features(wave_bars(make_bars, MIN_FEATURE_BARS - 1)) == []


def test_neutral_predictor():
    assert NeutralPredictor().predict([[0.1] * 5]) == 0.5


def test_model_file_missing_is_neutral(tmp_path):
    predictor = ModelFilePredictor(tmp_path / "nope.json")
    assert not predictor.loaded
    assert predictor.predict([[1.0] * 5]) == 0.5


def test_model_file_logistic_output(tmp_path):
    path = tmp_path / "model.json"
    path.write_text(json.dumps({"weights": [2.0, 0, 0, 0, 0], "bias": -1.0}), encoding="utf-8")
    predictor = ModelFilePredictor(path)

    assert predictor.loaded
    assert predictor.predict([[0.0] * 5, [0.5, 0, 0, 0, 0]]) == pytest.approx(0.5)
    assert predictor.predict([[1.0, 0, 0, 0, 0]]) == pytest.approx(1 / (1 + math.exp(-1.0)))


def test_model_file_dimension_mismatch(tmp_path):
    path = tmp_path / "model.json"
    path.write_text(json.dumps({"weights": [1.0, 1.0]}), encoding="utf-8")
    with pytest.raises(ValueError):
        ModelFilePredictor(path).predict([[0.1] * 5])
