from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import BudgetPeriod, TransactionType


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1")))


class TransactionIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=200)
    occurred_at: Optional[datetime] = None

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @property
    def amount_cents(self) -> int:
        return to_cents(self.amount)


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransactionType
    amount_cents: int
    category: str
    description: Optional[str]
    occurred_at: datetime
    created_at: datetime


class BudgetIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    category: str = Field(..., min_length=1, max_length=100)
    limit: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    period: BudgetPeriod = BudgetPeriod.monthly

    @property
    def limit_cents(self) -> int:
        return to_cents(self.limit)


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category: str
    limit_cents: int
    period: BudgetPeriod
    created_at: datetime
    updated_at: datetime


class CategoryTotal(BaseModel):
    category: str
    total_cents: int


class ExpenseDistribution(BaseModel):
    labels: list[str]
    values: list[int]


class TrendPoint(BaseModel):
    year: int
    month: int
    label: str
    income_cents: int
    expense_cents: int


class RecommendationPriority(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


class Recommendation(BaseModel):
    category: str
    priority: RecommendationPriority
    message: str
    suggestion: str
    spent_cents: int
    limit_cents: int
    percentage: int
    overspent_cents: int = 0


class Insights(BaseModel):
    recommendations: list[Recommendation]
    total_saved: int
    total_saved_cents: int
    improvement_score: int = Field(..., ge=0, le=100)


class AlertSeverity(str, Enum):
    over_budget = "over_budget"
    almost_reached = "almost_reached"
    approaching = "approaching"


class BudgetAlert(BaseModel):
    category: str
    spent_cents: int
    limit_cents: int
    percentage: int
    severity: AlertSeverity
    message: str


class BudgetStatus(str, Enum):
    under_budget = "under_budget"
    over_budget = "over_budget"


class BudgetSummaryRow(BaseModel):
    category: str
    limit_cents: int
    spent_cents: int
    remaining_cents: int
    percentage: int
    status: BudgetStatus


class BudgetComparison(BaseModel):
    categories: list[str] = Field(default_factory=list)
    budget: list[int] = Field(default_factory=list)
    actual: list[int] = Field(default_factory=list)


class TopCategory(BaseModel):
    name: str
    amount_cents: int
    percentage: int


class MonthlyReport(BaseModel):
    month: str
    year: int
    total_income_cents: int
    total_expenses_cents: int
    net_savings_cents: int
    savings_rate: float
    top_categories: list[TopCategory]
