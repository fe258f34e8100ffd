import datetime as dt

import pytest

from finance_engine.anomalies import AnomalyDetector, historical_category_stats, sort_anomalies
from finance_engine.models import (
    Anomaly,
    AnomalyKind,
    CategoryStat,
    ExpenseRecord,
    HistoricalStats,
    Severity,
)


def _expense(amount, category, when):
    return ExpenseRecord(amount=amount, category=category, occurred_at=when)


def _stats(mean=1000.0, std=100.0, frequency=1.0, category='Rent'):
    return HistoricalStats(
        categories={category: CategoryStat(mean=mean, std_dev=std, sample_count=12)},
        frequency={category: frequency},
        period_count=12,
    )


def test_historical_stats_per_category():
    history = [
        [_expense(900, 'Rent', dt.datetime(2024, 1, 1)), _expense(5, 'Coffee', dt.datetime(2024, 1, 2))],
        [_expense(1100, 'Rent', dt.datetime(2024, 2, 1))],
        [],
    ]
    stats = historical_category_stats(history)
    assert stats.period_count == 3
    assert stats.categories['Rent'].mean == pytest.approx(1000.0)
    assert stats.categories['Rent'].std_dev == pytest.approx(100.0)
    assert stats.categories['Rent'].sample_count == 2
    assert stats.frequency['Rent'] == pytest.approx(2 / 3)
    assert stats.frequency['Coffee'] == pytest.approx(1 / 3)


def test_empty_history():
    stats = historical_category_stats([[], []])
    assert stats.categories == {}
    assert stats.period_count == 2


def test_high_severity_amount_outlier():
    detector = AnomalyDetector()
    anomalies = detector.amount_outliers([_expense(1350, 'Rent', dt.datetime(2024, 3, 1))], _stats())
    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.kind is AnomalyKind.AMOUNT_OUTLIER
    assert anomaly.z_score == pytest.approx(3.5)
    assert anomaly.severity is Severity.HIGH
    assert anomaly.confidence == 1.0
    assert anomaly.occurred_at == dt.datetime(2024, 3, 1)


def test_medium_severity_between_thresholds():
    anomalies = AnomalyDetector().amount_outliers(
        [_expense(1250, 'Rent', dt.datetime(2024, 3, 1))], _stats(),
    )
    assert anomalies[0].severity is Severity.MEDIUM
    assert anomalies[0].confidence == pytest.approx(2.5 / 3)


def test_within_threshold_is_not_flagged():
    assert AnomalyDetector().amount_outliers([_expense(1150, 'Rent', dt.datetime(2024, 3, 1))], _stats()) == []


def test_constant_history_flags_any_deviation():
    anomalies = AnomalyDetector().amount_outliers(
        [_expense(1001, 'Rent', dt.datetime(2024, 3, 1))], _stats(std=0.0),
    )
    assert anomalies[0].z_score == 10.0
    assert anomalies[0].severity is Severity.HIGH


def test_category_without_history_is_skipped():
    detector = AnomalyDetector()
    expenses = [_expense(99999, 'Yacht', dt.datetime(2024, 3, 1))]
    assert detector.detect(expenses, _stats()) == []


@pytest.mark.parametrize('smaller, larger', [(1210, 1290), (1290, 1400), (1400, 9000)])
def test_raising_amount_never_downgrades(smaller, larger):
    detector = AnomalyDetector()
    rank = {Severity.MEDIUM: 1, Severity.HIGH: 2}
    low = detector.amount_outliers([_expense(smaller, 'Rent', dt.datetime(2024, 3, 1))], _stats())[0]
    high = detector.amount_outliers([_expense(larger, 'Rent', dt.datetime(2024, 3, 1))], _stats())[0]
    assert high.z_score >= low.z_score
    assert rank[high.severity] >= rank[low.severity]


def test_frequency_outlier_once_per_category():
    expenses = [_expense(5, 'Coffee', dt.datetime(2024, 3, day)) for day in (1, 2, 3)]
    anomalies = AnomalyDetector().frequency_outliers(expenses, _stats(mean=5, std=0, category='Coffee'))
    assert len(anomalies) == 1
    assert anomalies[0].kind is AnomalyKind.FREQUENCY_OUTLIER
    assert anomalies[0].severity is Severity.MEDIUM
    assert anomalies[0].confidence == pytest.approx(0.7)
    assert anomalies[0].occurred_at == dt.datetime(2024, 3, 3)


def test_frequency_at_multiplier_is_not_flagged():
    expenses = [_expense(5, 'Coffee', dt.datetime(2024, 3, day)) for day in (1, 2)]
    assert AnomalyDetector().frequency_outliers(expenses, _stats(category='Coffee')) == []


def test_custom_thresholds():
    detector = AnomalyDetector(zscore_threshold=1.0, high_severity_zscore=1.2)
    anomalies = detector.amount_outliers([_expense(1150, 'Rent', dt.datetime(2024, 3, 1))], _stats())
    assert anomalies[0].severity is Severity.HIGH


def test_sort_anomalies_high_first_then_date():
    def make(severity, when):
        return Anomaly(
            kind=AnomalyKind.AMOUNT_OUTLIER, severity=severity, category='X',
            occurred_at=when, confidence=0.5,
        )

    early, late = dt.datetime(2024, 1, 1), dt.datetime(2024, 1, 9)
    ordered = sort_anomalies([
        make(Severity.MEDIUM, early),
        make(Severity.HIGH, None),
        make(Severity.HIGH, late),
        make(Severity.HIGH, early),
    ])
    assert [(a.severity, a.occurred_at) for a in ordered] == [
        (Severity.HIGH, early),
        (Severity.HIGH, late),
        (Severity.HIGH, None),
        (Severity.MEDIUM, early),
    ]


def test_large_outlier_reports_true_z_score():
    detector = AnomalyDetector(zscore_cap=10.0)
    anomalies = detector.amount_outliers([_expense(6000, 'Rent', dt.datetime(2024, 3, 1))], _stats())
    assert anomalies[0].z_score == pytest.approx(50.0)
    assert anomalies[0].severity is Severity.HIGH
