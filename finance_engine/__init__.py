"""Personal finance analytics engine.

Pure computations over expense, income, budget and shared-expense records:
spending patterns, anomaly detection, forecasting, seasonal trends, health
scoring, period reports, budget methodologies and shared expense settlement.
"""

from .anomalies import AnomalyDetector, historical_category_stats, sort_anomalies
from .budgets import (
    analyze_budget,
    create_envelope,
    create_fifty_thirty_twenty,
    create_traditional,
    create_zero_based,
    update_spending,
)
from .exceptions import (
    FinanceEngineError,
    InvalidPeriodKeyError,
    SplitMismatchError,
    UnknownBudgetTypeError,
    UnknownParticipantError,
)
from .forecast import generate_predictions
from .frames import expenses_frame, filter_period, income_frame
from .goals import goal_progress, goals_summary
from .health import compute_metrics, health_score
from .logging_setup import configure_logging, get_logger
from .models import (
    AnalyticsSnapshot,
    ExpenseRecord,
    Goal,
    IncomeRecord,
    PeriodType,
    SharedExpense,
    SplitType,
)
from .patterns import analyze_spending_patterns
from .reports import compare_periods, generate_report, period_report
from .seasonal import seasonal_multipliers
from .settlement import (
    compute_balances,
    create_shared_expense,
    mark_split_paid,
    settle,
    settle_group,
    validate_splits,
)
from .snapshot import compute_snapshot

__version__ = '0.1.0'

__all__ = [
    'AnalyticsSnapshot',
    'AnomalyDetector',
    'ExpenseRecord',
    'FinanceEngineError',
    'Goal',
    'IncomeRecord',
    'InvalidPeriodKeyError',
    'PeriodType',
    'SharedExpense',
    'SplitMismatchError',
    'SplitType',
    'UnknownBudgetTypeError',
    'UnknownParticipantError',
    'analyze_budget',
    'analyze_spending_patterns',
    'compare_periods',
    'compute_balances',
    'compute_metrics',
    'compute_snapshot',
    'configure_logging',
    'create_envelope',
    'create_fifty_thirty_twenty',
    'create_shared_expense',
    'create_traditional',
    'create_zero_based',
    'expenses_frame',
    'filter_period',
    'generate_predictions',
    'generate_report',
    'get_logger',
    'goal_progress',
    'goals_summary',
    'health_score',
    'historical_category_stats',
    'income_frame',
    'mark_split_paid',
    'period_report',
    'seasonal_multipliers',
    'settle',
    'settle_group',
    'sort_anomalies',
    'update_spending',
    'validate_splits',
]
