import math

import pytest

from finance_engine.stats import (
    linear_regression,
    mean,
    median,
    percent_change,
    percentage,
    predict_next,
    prediction_interval,
    regression_confidence,
    std_dev,
    z_score,
)


def test_empty_sequences_resolve_to_zero():
    assert mean([]) == 0.0
    assert std_dev([]) == 0.0
    assert median([]) == 0.0


def test_std_dev_is_population_std():
    assert std_dev([900, 1000, 1100]) == pytest.approx(math.sqrt(20000 / 3))
    assert std_dev([42]) == 0.0


def test_non_finite_values_are_ignored():
    assert mean([1.0, float('nan'), 3.0]) == pytest.approx(2.0)


def test_z_score_matches_deviation():
    assert z_score(1350, 1000, 100) == pytest.approx(3.5)
    assert z_score(650, 1000, 100) == pytest.approx(3.5)


def test_z_score_zero_spread():
    assert z_score(5, 5, 0) == 0.0
    assert z_score(6, 5, 0, cap=10.0) == 10.0


def test_z_score_cap_only_applies_to_zero_spread():
    assert z_score(6000, 1000, 100, cap=10.0) == pytest.approx(50.0)


@pytest.mark.parametrize('low, high', [(1100, 1200), (1200, 5000), (1000.5, 1001)])
def test_z_score_never_decreases_above_mean(low, high):
    assert z_score(high, 1000, 100) >= z_score(low, 1000, 100)


def test_linear_regression_recovers_line():
    slope, intercept = linear_regression([1, 2, 3, 4])
    assert slope == pytest.approx(1.0)
    assert intercept == pytest.approx(1.0)


def test_predict_next_degenerate_cases():
    assert predict_next([]) == 0.0
    assert predict_next([42.0]) == 42.0
    assert predict_next([10, 20, 30]) == pytest.approx(40.0)


def test_prediction_interval_collapses_with_few_points():
    assert prediction_interval([100, 120]) == pytest.approx((140.0, 140.0))


def test_prediction_interval_brackets_prediction():
    lower, upper = prediction_interval([100, 130, 110, 150, 140])
    predicted = predict_next([100, 130, 110, 150, 140])
    assert lower < predicted < upper


def test_regression_confidence():
    assert regression_confidence([1, 2], default=0.75) == 0.75
    assert regression_confidence([10, 20, 30]) == pytest.approx(1.0)
    noisy = regression_confidence([100, 300, 50, 400, 20])
    assert 0.0 <= noisy < 1.0


def test_percentages_guard_zero_denominator():
    assert percentage(5, 0) == 0.0
    assert percentage(25, 200) == pytest.approx(12.5)
    assert percent_change(110, 0) == 0.0
    assert percent_change(110, 100) == pytest.approx(10.0)
