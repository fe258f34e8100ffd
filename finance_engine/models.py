"""Records consumed and structures produced by the finance engine.

Inputs (expenses, income, budgets, shared expenses, goals) are supplied by the
calling application; outputs (snapshots, updated budgets, transfers) are handed
back for storage. Everything here is a plain frozen dataclass so engine
functions can be written as pure transformations.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union


class PeriodType(str, Enum):
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'
    YEARLY = 'yearly'


class AnomalyKind(str, Enum):
    AMOUNT_OUTLIER = 'unusual-amount'
    FREQUENCY_OUTLIER = 'unusual-frequency'


class Severity(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class RiskLevel(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'


class BudgetType(str, Enum):
    TRADITIONAL = 'traditional'
    FIFTY_THIRTY_TWENTY = '50-30-20'
    ZERO_BASED = 'zero-based'
    ENVELOPE = 'envelope'


class SplitType(str, Enum):
    EQUAL = 'equal'
    PERCENTAGE = 'percentage'
    AMOUNT = 'amount'
    SHARES = 'shares'


class SharedExpenseStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    SETTLED = 'settled'


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExpenseRecord:
    amount: float
    category: str
    occurred_at: dt.datetime
    period_tag: str = ''
    description: str = ''


@dataclass(frozen=True)
class IncomeRecord:
    amount: float
    category: str
    occurred_at: dt.datetime


# ---------------------------------------------------------------------------
# Analytics outputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CategoryStat:
    mean: float
    std_dev: float
    sample_count: int


@dataclass(frozen=True)
class HistoricalStats:
    """Per-category amount statistics and average frequency per period."""

    categories: Dict[str, CategoryStat]
    frequency: Dict[str, float]
    period_count: int


@dataclass(frozen=True)
class Anomaly:
    kind: AnomalyKind
    severity: Severity
    category: str
    occurred_at: Optional[dt.datetime]
    confidence: float
    amount: Optional[float] = None
    z_score: Optional[float] = None
    description: str = ''


@dataclass(frozen=True)
class CategoryShare:
    category: str
    amount: float
    percentage: float
    transaction_count: int


@dataclass(frozen=True)
class DailyAverages:
    weekdays: float
    weekends: float


@dataclass(frozen=True)
class SpendingPatterns:
    total_expenses: float
    total_income: float
    net_cash_flow: float
    category_breakdown: Dict[str, CategoryShare]
    daily_averages: DailyAverages
    peak_spending_days: List[str]
    spending_velocity: float


@dataclass(frozen=True)
class ExpenseForecast:
    predicted: float
    confidence: float
    lower: float
    upper: float
    breakdown: Dict[str, float]


@dataclass(frozen=True)
class BudgetRisk:
    level: RiskLevel
    probability: float
    categories: List[str]
    increase_percent: float


@dataclass(frozen=True)
class SavingsPotential:
    amount: float
    target_rate: float
    current_rate: float
    recommendations: List[str]


@dataclass(frozen=True)
class Predictions:
    next_period_expenses: ExpenseForecast
    budget_risk: BudgetRisk
    savings_potential: SavingsPotential


@dataclass(frozen=True)
class MonthlyMultiplier:
    month: int
    multiplier: float


@dataclass(frozen=True)
class SeasonalTrends:
    monthly_multipliers: List[MonthlyMultiplier]

    def multiplier_for(self, month: int) -> float:
        return self.monthly_multipliers[month - 1].multiplier


@dataclass(frozen=True)
class Metrics:
    budget_adherence: float
    savings_rate: float
    expense_growth_rate: float
    debt_to_income_ratio: float
    financial_health_score: int


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Everything computed for one user, period and period type.

    ``key`` is the upsert key: a store keeps at most one snapshot per key and
    recomputation replaces it.
    """

    user_id: str
    period: str
    period_type: PeriodType
    spending_patterns: SpendingPatterns
    anomalies: List[Anomaly]
    predictions: Predictions
    seasonal_trends: SeasonalTrends
    metrics: Metrics
    computed_at: dt.datetime

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.user_id, self.period, self.period_type.value)

    def to_dict(self) -> Dict[str, Any]:
        return to_plain(self)


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Bucket:
    allocated: float
    categories: Tuple[str, ...]
    spent: float = 0.0


@dataclass(frozen=True)
class Allocation:
    category: str
    amount: float
    priority: int = 5
    is_fixed: bool = False
    description: str = ''
    spent: float = 0.0


@dataclass(frozen=True)
class Envelope:
    name: str
    budget_amount: float
    categories: Tuple[str, ...]
    current_amount: Optional[float] = None
    overspent: float = 0.0
    color: str = '#007bff'
    is_virtual: bool = True

    def __post_init__(self) -> None:
        # A fresh envelope starts full.
        if self.current_amount is None:
            object.__setattr__(self, 'current_amount', self.budget_amount)


@dataclass(frozen=True)
class TraditionalBudget:
    budget_type: ClassVar[BudgetType] = BudgetType.TRADITIONAL

    name: str
    category: str
    amount: float
    spent: float = 0.0
    alert_threshold: float = 0.8


@dataclass(frozen=True)
class FiftyThirtyTwentyBudget:
    budget_type: ClassVar[BudgetType] = BudgetType.FIFTY_THIRTY_TWENTY

    name: str
    amount: float
    needs: Bucket
    wants: Bucket
    savings: Bucket
    unclassified: float = 0.0
    unclassified_categories: Tuple[str, ...] = ()
    alert_threshold: float = 0.8

    def buckets(self) -> Dict[str, Bucket]:
        return {'needs': self.needs, 'wants': self.wants, 'savings': self.savings}


@dataclass(frozen=True)
class ZeroBasedBudget:
    budget_type: ClassVar[BudgetType] = BudgetType.ZERO_BASED

    name: str
    total_income: float
    allocations: Tuple[Allocation, ...]
    unallocated: float
    alert_threshold: float = 0.8

    @property
    def amount(self) -> float:
        return self.total_income


@dataclass(frozen=True)
class EnvelopeBudget:
    budget_type: ClassVar[BudgetType] = BudgetType.ENVELOPE

    name: str
    envelopes: Tuple[Envelope, ...]
    alert_threshold: float = 0.8

    @property
    def amount(self) -> float:
        return sum(env.budget_amount for env in self.envelopes)


Budget = Union[TraditionalBudget, FiftyThirtyTwentyBudget, ZeroBasedBudget, EnvelopeBudget]


@dataclass(frozen=True)
class BudgetAnalysis:
    budget_type: BudgetType
    performance: Dict[str, Any]
    recommendations: List[str]
    alerts: List[Dict[str, Any]]


# ---------------------------------------------------------------------------
# Shared expenses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Split:
    participant_id: str
    amount: float
    is_paid: bool = False
    percentage: Optional[float] = None
    shares: Optional[float] = None
    paid_at: Optional[dt.datetime] = None


@dataclass(frozen=True)
class Payment:
    participant_id: str
    amount: float


@dataclass(frozen=True)
class SharedExpense:
    name: str
    amount: float
    paid_by: Payment
    splits: Tuple[Split, ...]
    category: str = 'Other'
    occurred_at: Optional[dt.datetime] = None
    split_type: SplitType = SplitType.EQUAL
    status: SharedExpenseStatus = SharedExpenseStatus.PENDING


@dataclass(frozen=True)
class SettlementTransfer:
    from_participant: str
    to_participant: str
    amount: float


@dataclass(frozen=True)
class ParticipantBalance:
    participant_id: str
    total_paid: float
    total_owed: float
    net_balance: float


@dataclass(frozen=True)
class GroupSettlement:
    balances: List[ParticipantBalance]
    transfers: List[SettlementTransfer]
    total_expenses: float
    total_transactions: int


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Goal:
    title: str
    target_amount: float
    target_date: dt.date
    current_amount: float = 0.0
    goal_type: str = 'savings'
    priority: str = 'medium'
    status: str = 'active'


@dataclass(frozen=True)
class GoalProgress:
    title: str
    progress_percentage: float
    remaining_amount: float
    days_remaining: int
    status: str
    required_monthly_contribution: float
    months_to_goal: float


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def to_plain(value: Any) -> Any:
    """Convert engine structures to JSON-ready builtins.

    Enums become their values, datetimes ISO strings and non-finite floats
    ``None``.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value
