"""
Tests for the moving-average smoothing filter in `window.py`.

Covers:
- Window bound and FIFO eviction
- Smoothed value equals the rounded mean of the retained history
- Half-away-from-zero rounding
- Isolation across metrics and across patients
- Rejection of unknown metric names
"""

from __future__ import annotations

import pytest

from errors import InvalidMetric
from models import RawReading
from window import Metric, MetricHistories, SlidingWindow, round_half_away, smooth_vitals


def _reading(hr, spo2, temp, patient_id="p1") -> RawReading:
    return RawReading.from_payload(
        {"patientId": patient_id, "vitals": {"heartRate": hr, "spo2": spo2, "temperature": temp}}
    )


class TestSlidingWindow:
    def test_empty_window_averages_to_zero(self) -> None:
        assert SlidingWindow(max_size=5).avg() == 0

    def test_oldest_value_is_evicted_first(self) -> None:
        w = SlidingWindow(max_size=3)
        for v in (1, 2, 3, 4):
            w.add(v)
        assert w.values() == [2, 3, 4]
        assert w.size() == 3


class TestRoundHalfAway:
    @pytest.mark.parametrize(
        "value, places, expected",
        [
            (2.25, 1, 2.3),
            (-2.25, 1, -2.3),
            (36.85, 1, 36.9),
            (72.5, 0, 73.0),
            (92.4, 0, 92.0),
            (1 / 3, 1, 0.3),
            (1e30, 1, 1e30),
            (123456789012345678901234567890.25, 0, 1.2345678901234568e29),
        ],
    )
    def test_ties_round_away_from_zero(self, value: float, places: int, expected: float) -> None:
        assert round_half_away(value, places) == expected


class TestMetricHistories:
    @pytest.mark.parametrize("extra", [0, 1, 3, 10])
    def test_history_never_exceeds_capacity(self, extra: int) -> None:
        histories = MetricHistories(max_size=5)
        values = list(range(5 + extra))
        for v in values:
            histories.smooth("heartRate", v)

        assert histories.history("heartRate") == values[-5:]

    def test_history_grows_until_full(self) -> None:
        histories = MetricHistories(max_size=5)
        histories.smooth("spo2", 97)
        histories.smooth("spo2", 98)
        assert histories.history("spo2") == [97, 98]

    def test_smoothed_value_is_mean_of_current_window(self) -> None:
        histories = MetricHistories(max_size=5)
        results = [histories.smooth("heartRate", v) for v in (70, 80, 90, 100, 110, 200)]

        assert results[:5] == [70.0, 75.0, 80.0, 85.0, 90.0]
        # 70 evicted: (80 + 90 + 100 + 110 + 200) / 5
        assert results[5] == 116.0

    def test_smoothed_value_is_rounded_to_one_decimal(self) -> None:
        histories = MetricHistories(max_size=5)
        for v in (36.8, 36.9, 37.0):
            out = histories.smooth("temperature", v)
        assert out == 36.9

        histories.smooth("temperature", 37.0)
        # mean of 36.8, 36.9, 37.0, 37.0, 37.1 is 36.96
        assert histories.smooth("temperature", 37.1) == 37.0

    def test_same_value_yields_different_results_depending_on_history(self) -> None:
        histories = MetricHistories(max_size=5)
        first = histories.smooth("heartRate", 100)
        histories.smooth("heartRate", 60)
        again = histories.smooth("heartRate", 100)
        assert first == 100.0
        assert again == 86.7

    def test_heart_rate_samples_leave_other_metrics_untouched(self) -> None:
        histories = MetricHistories(max_size=5)
        for v in (70, 75, 80):
            histories.smooth(Metric.HEART_RATE, v)

        assert histories.history("spo2") == []
        assert histories.history("temperature") == []

    def test_patients_do_not_share_history(self) -> None:
        histories = MetricHistories(max_size=5)
        histories.smooth("heartRate", 140, patient_id="a")
        out = histories.smooth("heartRate", 70, patient_id="b")

        assert out == 70.0
        assert histories.history("heartRate", patient_id="a") == [140]
        assert histories.patients() == ["a", "b"]

    def test_reset_single_patient(self) -> None:
        histories = MetricHistories(max_size=5)
        histories.smooth("heartRate", 80, patient_id="a")
        histories.smooth("heartRate", 90, patient_id="b")

        histories.reset("a")

        assert histories.history("heartRate", patient_id="a") == []
        assert histories.history("heartRate", patient_id="b") == [90]

    def test_reset_all(self) -> None:
        histories = MetricHistories(max_size=5)
        histories.smooth("heartRate", 80, patient_id="a")
        histories.reset()
        assert histories.patients() == []

    @pytest.mark.parametrize("name", ["bloodPressure", "HEARTRATE", "", None])
    def test_unknown_metric_is_rejected(self, name) -> None:
        histories = MetricHistories(max_size=5)
        with pytest.raises(InvalidMetric):
            histories.smooth(name, 80)
        assert histories.patients() == []

    def test_zero_capacity_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            MetricHistories(max_size=0)


class TestSmoothVitals:
    def test_heart_rate_and_spo2_are_whole_numbers(self) -> None:
        histories = MetricHistories(max_size=5)
        smooth_vitals(histories, _reading(72, 97, 36.8))
        smoothed = smooth_vitals(histories, _reading(73, 98, 37.0))

        assert smoothed.heart_rate == 73
        assert isinstance(smoothed.heart_rate, int)
        assert smoothed.spo2 == 98
        assert smoothed.temperature == 36.9

    def test_uses_the_reading_patient_id(self) -> None:
        histories = MetricHistories(max_size=5)
        smooth_vitals(histories, _reading(72, 97, 36.8, patient_id="bed-7"))
        assert histories.history("heartRate", patient_id="bed-7") == [72]
        assert histories.history("heartRate") == []
