"""Anomaly detection against historical per-category behaviour.

Two rules:

1. Amount outlier: ``|amount - mean| / std_dev`` of the expense's category
   exceeds ``zscore_threshold`` (2). Severity is High above
   ``high_severity_zscore`` (3), Medium otherwise; confidence is
   ``min(z / 3, 1)``.
2. Frequency outlier: the category's transaction count this period exceeds
   ``frequency_multiplier`` (2) times its historical average count per
   period. One anomaly per category, Medium severity, confidence 0.7.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .frames import as_frame
from .logging_setup import get_logger
from .models import Anomaly, AnomalyKind, CategoryStat, HistoricalStats, Severity
from .presets import get_analytics_config
from .stats import mean, std_dev, z_score

logger = get_logger(__name__)

_SEVERITY_RANK = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}


def historical_category_stats(history: Sequence[Any]) -> HistoricalStats:
    """Aggregate trailing periods into per-category statistics.

    Args:
        history: One entry per period (records or prepared frame), e.g. the
            trailing 12 months. Empty periods still count towards the
            frequency denominator.

    Returns:
        HistoricalStats with mean / population std dev / sample count per
        category and the average number of transactions per period.
    """
    frames = [as_frame(period) for period in history]
    non_empty = [frame for frame in frames if not frame.empty]
    if not non_empty:
        return HistoricalStats(categories={}, frequency={}, period_count=len(frames))

    combined = pd.concat(non_empty, ignore_index=True)
    categories: Dict[str, CategoryStat] = {}
    frequency: Dict[str, float] = {}
    for category, amounts in combined.groupby('Category')['Amount']:
        values = amounts.tolist()
        categories[category] = CategoryStat(
            mean=mean(values),
            std_dev=std_dev(values),
            sample_count=len(values),
        )
        frequency[category] = len(values) / len(frames)
    return HistoricalStats(categories=categories, frequency=frequency, period_count=len(frames))


def _timestamp(value: Any) -> Optional[dt.datetime]:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).to_pydatetime()


class AnomalyDetector:
    """Flags unusual expense amounts and unusual transaction frequency."""

    def __init__(
        self,
        zscore_threshold: Optional[float] = None,
        high_severity_zscore: Optional[float] = None,
        frequency_multiplier: Optional[float] = None,
        frequency_confidence: Optional[float] = None,
        zscore_cap: Optional[float] = None,
    ):
        """
        Initialize the detector; unset thresholds come from the analytics presets.

        Args:
            zscore_threshold: Z-score above which an amount is an outlier (default 2.0)
            high_severity_zscore: Z-score above which severity is High (default 3.0)
            frequency_multiplier: Multiple of the historical frequency that flags a category (default 2.0)
            frequency_confidence: Confidence attached to frequency outliers (default 0.7)
            zscore_cap: Z-score reported when the category never varied (default 10.0)
        """
        presets = get_analytics_config()['anomalies']
        self.zscore_threshold = zscore_threshold if zscore_threshold is not None else presets['zscore_threshold']
        self.high_severity_zscore = (
            high_severity_zscore if high_severity_zscore is not None else presets['high_severity_zscore']
        )
        self.frequency_multiplier = (
            frequency_multiplier if frequency_multiplier is not None else presets['frequency_multiplier']
        )
        self.frequency_confidence = (
            frequency_confidence if frequency_confidence is not None else presets['frequency_confidence']
        )
        self.zscore_cap = zscore_cap if zscore_cap is not None else presets['zscore_cap']

    def severity_for(self, z: float) -> Severity:
        return Severity.HIGH if z > self.high_severity_zscore else Severity.MEDIUM

    def confidence_for(self, z: float) -> float:
        return min(z / self.high_severity_zscore, 1.0)

    def amount_outliers(self, expenses: Any, stats: HistoricalStats) -> List[Anomaly]:
        """One anomaly per expense whose amount deviates from its category history."""
        frame = as_frame(expenses)
        anomalies: List[Anomaly] = []
        rows = zip(frame['Transaction Date'], frame['Amount'], frame['Category'])
        for occurred_at, raw_amount, category in rows:
            category_stats = stats.categories.get(category)
            if category_stats is None or category_stats.sample_count == 0:
                continue
            amount = float(raw_amount)
            z = z_score(amount, category_stats.mean, category_stats.std_dev, cap=self.zscore_cap)
            if z <= self.zscore_threshold:
                continue
            anomalies.append(Anomaly(
                kind=AnomalyKind.AMOUNT_OUTLIER,
                severity=self.severity_for(z),
                category=category,
                occurred_at=_timestamp(occurred_at),
                confidence=self.confidence_for(z),
                amount=amount,
                z_score=z,
                description=(
                    f"Unusual {category} expense: {amount:.2f} "
                    f"(avg: {category_stats.mean:.2f})"
                ),
            ))
        return anomalies

    def frequency_outliers(self, expenses: Any, stats: HistoricalStats) -> List[Anomaly]:
        """One anomaly per category transacting far more often than usual.

        Categories without history have no baseline frequency and are skipped.
        """
        frame = as_frame(expenses)
        if frame.empty:
            return []

        anomalies: List[Anomaly] = []
        grouped = frame.groupby('Category')['Transaction Date'].agg(['size', 'max'])
        for category, row in grouped.iterrows():
            baseline = stats.frequency.get(category, 0.0)
            if baseline <= 0:
                continue
            current_count = int(row['size'])
            if current_count <= baseline * self.frequency_multiplier:
                continue
            anomalies.append(Anomaly(
                kind=AnomalyKind.FREQUENCY_OUTLIER,
                severity=Severity.MEDIUM,
                category=category,
                occurred_at=_timestamp(row['max']),
                confidence=self.frequency_confidence,
                description=(
                    f"Unusual frequency for {category}: {current_count} times this period "
                    f"(usually {baseline:.1f})"
                ),
            ))
        return anomalies

    def detect(self, expenses: Any, stats: HistoricalStats) -> List[Anomaly]:
        """Run both rules. The result is unordered, see :func:`sort_anomalies`."""
        anomalies = self.amount_outliers(expenses, stats) + self.frequency_outliers(expenses, stats)
        logger.debug("Detected %d anomalies", len(anomalies))
        return anomalies


def sort_anomalies(anomalies: Sequence[Anomaly]) -> List[Anomaly]:
    """Order by severity (High first) then occurrence date, undated last."""
    return sorted(
        anomalies,
        key=lambda a: (
            _SEVERITY_RANK[a.severity],
            a.occurred_at is None,
            a.occurred_at or dt.datetime.min,
        ),
    )
