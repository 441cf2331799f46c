from __future__ import annotations

import math

import pandas as pd
import pytest

from dashboard_api.services.comparison import best_performing, summarize_frame


def _frame(rows):
    return pd.DataFrame(
        rows,
        columns=["actual_value", "forecast_value", "absolute_error", "percentage_error", "accuracy_score"],
    )


def test_summarize_frame_statistics():
    frame = _frame(
        [
            (100.0, 90.0, 10.0, 10.0, 90.0),
            (100.0, 120.0, 20.0, 20.0, 80.0),
            (50.0, 50.0, 0.0, 0.0, 100.0),
        ]
    )
    out = summarize_frame(frame)
    assert out["count"] == 3
    assert out["mae"] == pytest.approx(10.0)
    assert out["rmse"] == pytest.approx(math.sqrt((100 + 400 + 0) / 3))
    assert out["mape"] == pytest.approx(10.0)
    assert out["meanAccuracy"] == pytest.approx(90.0)
    assert out["medianAccuracy"] == pytest.approx(90.0)
    assert out["stdAccuracy"] == pytest.approx(math.sqrt(200 / 3))
    assert out["withinTenPercent"] == 2
    assert out["withinTwentyPercent"] == 3

    buckets = {b["label"]: b["count"] for b in out["distribution"]}
    assert buckets["90-100%"] == 1
    assert buckets["80-90%"] == 1
    assert buckets["70-80%"] == 1
    assert sum(b["percentage"] for b in out["distribution"]) == pytest.approx(100.0)


def test_mape_skips_zero_actuals():
    frame = _frame(
        [
            (0.0, 5.0, 5.0, None, None),
            (10.0, 9.0, 1.0, 10.0, 90.0),
        ]
    )
    out = summarize_frame(frame)
    assert out["mape"] == pytest.approx(10.0)
    assert out["mae"] == pytest.approx(3.0)


def test_summarize_frame_without_accuracy():
    out = summarize_frame(_frame([(0.0, 1.0, 1.0, None, None)]))
    assert out["mape"] is None
    assert out["meanAccuracy"] is None
    assert all(b["percentage"] == 0.0 for b in out["distribution"])


def test_best_performing_tie_breaks():
    forecasts = [
        {"forecastDatasetId": "b", "forecastDatasetName": "B", "mape": 5.0, "mae": 2.0},
        {"forecastDatasetId": "a", "forecastDatasetName": "A", "mape": 5.0, "mae": 2.0},
        {"forecastDatasetId": "c", "forecastDatasetName": "C", "mape": 5.0, "mae": 1.0},
        {"forecastDatasetId": "d", "forecastDatasetName": "D", "mape": None, "mae": 0.1},
    ]
    assert best_performing(forecasts)["forecastDatasetId"] == "c"
    assert best_performing(forecasts[:2])["forecastDatasetId"] == "a"
    assert best_performing([forecasts[3]]) is None
