from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from config import (
    ALMOST_REACHED_PCT,
    APPROACHING_PCT,
    TOP_CATEGORY_LIMIT,
    TREND_MONTHS,
    UNDER_BUDGET_PCT,
    get_settings,
)
from csv_utils import export_transactions
from errors import BudgetConflict, InvalidInput, NotFound
from models import Budget, Transaction, TransactionType, category_key
from periods import (
    Period,
    current_month,
    local_now,
    month_window,
    trailing_months,
)
from schemas import (
    AlertSeverity,
    BudgetAlert,
    BudgetComparison,
    BudgetIn,
    BudgetStatus,
    BudgetSummaryRow,
    CategoryTotal,
    ExpenseDistribution,
    Insights,
    MonthlyReport,
    Recommendation,
    RecommendationPriority,
    TopCategory,
    TransactionIn,
    TrendPoint,
)
from stores import BudgetStore, LedgerFilter, LedgerStore

logger = logging.getLogger(__name__)


def round_half_up(value: Decimal, places: str = "1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def percent_of(part: int, whole: int) -> Decimal:
    if whole <= 0:
        return Decimal(0)
    return Decimal(part) * 100 / Decimal(whole)


def format_amount(cents: int) -> str:
    return f"{cents / 100:,.2f}"


class TransactionService:
    def __init__(self, session: Session, owner_id: str) -> None:
        self.session = session
        self.owner_id = owner_id
        self.store = LedgerStore(session, owner_id)

    @staticmethod
    def _local_timestamp(value: Optional[datetime]) -> datetime:
        if value is None:
            return local_now()
        if value.tzinfo is not None:
            tz = ZoneInfo(get_settings().timezone)
            return value.astimezone(tz).replace(tzinfo=None)
        return value

    def create(self, data: TransactionIn) -> Transaction:
        txn = Transaction(
            type=data.type,
            amount_cents=data.amount_cents,
            category=data.category,
            description=data.description,
            occurred_at=self._local_timestamp(data.occurred_at),
        )
        self.store.insert(txn)
        self.session.commit()
        self.session.refresh(txn)
        logger.info(
            f"transaction_created: owner={self.owner_id} id={txn.id} "
            f"type={txn.type.value} amount_cents={txn.amount_cents}"
        )
        return txn

    def list(
        self,
        period: Period,
        filters: Optional[LedgerFilter] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Transaction]:
        scoped = replace(filters or LedgerFilter(), start=period.start, end=period.end)
        return self.store.find(scoped, limit=limit, offset=offset)

    def delete(self, transaction_id: int) -> None:
        if not self.store.delete(transaction_id):
            raise NotFound("Transaction", transaction_id, self.owner_id)
        self.session.commit()
        logger.info(f"transaction_deleted: owner={self.owner_id} id={transaction_id}")

    def export_csv(
        self, period: Period, filters: Optional[LedgerFilter] = None
    ) -> str:
        return export_transactions(self.list(period, filters))


class AggregationService:
    def __init__(self, session: Session, owner_id: str) -> None:
        self.session = session
        self.owner_id = owner_id
        self.store = LedgerStore(session, owner_id)

    def sum_by_category(
        self,
        kind: TransactionType,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[CategoryTotal]:
        rows = self.store.aggregate_sum(
            LedgerFilter(type=kind, start=start, end=end), group_by_category=True
        )
        return [CategoryTotal(category=name, total_cents=total) for name, total in rows]

    def sum_total(
        self,
        kind: TransactionType,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        category: Optional[str] = None,
    ) -> int:
        rows = self.store.aggregate_sum(
            LedgerFilter(type=kind, category=category, start=start, end=end),
            group_by_category=False,
        )
        return rows[0][1] if rows else 0

    def spent_by_category(
        self, start: Optional[datetime], end: Optional[datetime]
    ) -> dict[str, int]:
        """Expense totals keyed by lower-cased category, in a single query."""
        spent: dict[str, int] = {}
        for row in self.sum_by_category(TransactionType.expense, start, end):
            key = category_key(row.category)
            spent[key] = spent.get(key, 0) + row.total_cents
        return spent

    def expense_distribution(
        self, now: Optional[datetime] = None
    ) -> ExpenseDistribution:
        window = current_month(now or local_now())
        rows = self.sum_by_category(TransactionType.expense, window.start, window.end)
        return ExpenseDistribution(
            labels=[row.category for row in rows],
            values=[row.total_cents for row in rows],
        )

    def monthly_trend(
        self, now: Optional[datetime] = None, *, months: int = TREND_MONTHS
    ) -> list[TrendPoint]:
        windows = trailing_months(now or local_now(), months)
        totals = self.store.monthly_sums(windows[0].start, windows[-1].end)

        out: list[TrendPoint] = []
        for window in windows:
            first = window.start.date()
            out.append(
                TrendPoint(
                    year=first.year,
                    month=first.month,
                    label=first.strftime("%b"),
                    income_cents=totals.get(
                        (TransactionType.income, first.year, first.month), 0
                    ),
                    expense_cents=totals.get(
                        (TransactionType.expense, first.year, first.month), 0
                    ),
                )
            )
        return out


class BudgetService:
    def __init__(self, session: Session, owner_id: str) -> None:
        self.session = session
        self.owner_id = owner_id
        self.store = BudgetStore(session, owner_id)
        self.aggregation = AggregationService(session, owner_id)

    def list(self) -> list[Budget]:
        return self.store.find_by_owner()

    def set(self, data: BudgetIn) -> tuple[Budget, bool]:
        """Create the budget, or update the limit of the existing one.

        Returns the budget and whether it was newly created. Matching against
        existing budgets ignores letter case.
        """
        existing = self.store.find_one(data.category, case_insensitive=True)
        if existing:
            existing.limit_cents = data.limit_cents
            existing.period = data.period
            self.store.upsert(existing)
            self.session.commit()
            self.session.refresh(existing)
            logger.info(
                f"budget_updated: owner={self.owner_id} category={existing.category} "
                f"limit_cents={existing.limit_cents}"
            )
            return existing, False

        budget = Budget(
            category=data.category,
            limit_cents=data.limit_cents,
            period=data.period,
        )
        try:
            self.store.upsert(budget)
        except BudgetConflict:
            logger.warning(
                f"budget_conflict: owner={self.owner_id} category={data.category}"
            )
            raise
        self.session.commit()
        self.session.refresh(budget)
        logger.info(
            f"budget_created: owner={self.owner_id} category={budget.category} "
            f"limit_cents={budget.limit_cents}"
        )
        return budget, True

    def delete(self, budget_id: int) -> None:
        if not self.store.delete(budget_id):
            raise NotFound("Budget", budget_id, self.owner_id)
        self.session.commit()
        logger.info(f"budget_deleted: owner={self.owner_id} id={budget_id}")

    def spending_for_month(
        self, now: Optional[datetime] = None
    ) -> list[tuple[Budget, int]]:
        """Each budget paired with its current-month spend."""
        window = current_month(now or local_now())
        budgets = self.store.find_by_owner()
        if not budgets:
            return []
        spent = self.aggregation.spent_by_category(window.start, window.end)
        return [(budget, spent.get(budget.category_key, 0)) for budget in budgets]

    def alerts(self, now: Optional[datetime] = None) -> list[BudgetAlert]:
        out: list[BudgetAlert] = []
        for budget, spent in self.spending_for_month(now):
            limit = budget.limit_cents
            if spent > limit:
                severity = AlertSeverity.over_budget
                message = "over budget"
            elif spent * 100 > ALMOST_REACHED_PCT * limit:
                severity = AlertSeverity.almost_reached
                message = "almost reached"
            elif spent * 100 > APPROACHING_PCT * limit:
                severity = AlertSeverity.approaching
                message = "approaching"
            else:
                continue
            out.append(
                BudgetAlert(
                    category=budget.category,
                    spent_cents=spent,
                    limit_cents=limit,
                    percentage=int(round_half_up(percent_of(spent, limit))),
                    severity=severity,
                    message=message,
                )
            )
        return out

    def summary(self, now: Optional[datetime] = None) -> list[BudgetSummaryRow]:
        out: list[BudgetSummaryRow] = []
        for budget, spent in self.spending_for_month(now):
            remaining = budget.limit_cents - spent
            out.append(
                BudgetSummaryRow(
                    category=budget.category,
                    limit_cents=budget.limit_cents,
                    spent_cents=spent,
                    remaining_cents=max(0, remaining),
                    percentage=int(
                        round_half_up(percent_of(spent, budget.limit_cents))
                    ),
                    status=BudgetStatus.under_budget
                    if remaining > 0
                    else BudgetStatus.over_budget,
                )
            )
        return out

    def comparison(self, now: Optional[datetime] = None) -> BudgetComparison:
        data = BudgetComparison()
        for budget, spent in self.spending_for_month(now):
            data.categories.append(budget.category)
            data.budget.append(budget.limit_cents)
            data.actual.append(spent)
        return data


class InsightsService:
    def __init__(self, session: Session, owner_id: str) -> None:
        self.session = session
        self.owner_id = owner_id
        self.budgets = BudgetService(session, owner_id)

    @staticmethod
    def classify(spent: int, limit: int) -> Optional[RecommendationPriority]:
        if spent > limit:
            return RecommendationPriority.high
        if limit <= 0:
            return None
        if spent * 100 > APPROACHING_PCT * limit:
            return RecommendationPriority.medium
        if spent * 100 < UNDER_BUDGET_PCT * limit:
            return RecommendationPriority.low
        return None

    def generate(self, now: Optional[datetime] = None) -> Insights:
        spending = self.budgets.spending_for_month(now)
        recommendations: list[Recommendation] = []
        overspent_total = 0

        for budget, spent in spending:
            limit = budget.limit_cents
            priority = self.classify(spent, limit)
            if priority is None:
                continue
            percentage = int(round_half_up(percent_of(spent, limit)))
            overspent = 0
            if priority == RecommendationPriority.high:
                overspent = spent - limit
                overspent_total += overspent
                message = f"You overspent by {format_amount(overspent)}"
                suggestion = "Reduce unnecessary expenses in this category"
            elif priority == RecommendationPriority.medium:
                message = f"You've used {percentage}% of your budget"
                suggestion = "Be careful with spending this month"
            else:
                message = "Good job staying well under budget"
                suggestion = "Consider allocating funds to other categories"
            recommendations.append(
                Recommendation(
                    category=budget.category,
                    priority=priority,
                    message=message,
                    suggestion=suggestion,
                    spent_cents=spent,
                    limit_cents=limit,
                    percentage=percentage,
                    overspent_cents=overspent,
                )
            )

        low_count = sum(
            1 for rec in recommendations if rec.priority == RecommendationPriority.low
        )
        improvement_score = (
            int(round_half_up(percent_of(low_count, len(spending)))) if spending else 0
        )
        return Insights(
            recommendations=recommendations,
            total_saved=int(round_half_up(Decimal(overspent_total) / 100)),
            total_saved_cents=overspent_total,
            improvement_score=improvement_score,
        )


class ReportService:
    def __init__(self, session: Session, owner_id: str) -> None:
        self.session = session
        self.owner_id = owner_id
        self.aggregation = AggregationService(session, owner_id)

    def monthly_report(self, reference: Optional[date] = None) -> MonthlyReport:
        reference = reference or local_now().date()
        window = month_window(reference.year, reference.month)
        income = self.aggregation.sum_total(
            TransactionType.income, window.start, window.end
        )
        expenses = self.aggregation.sum_total(
            TransactionType.expense, window.start, window.end
        )
        net = income - expenses
        savings_rate = (
            round_half_up(percent_of(net, income), "0.01") if income > 0 else Decimal(0)
        )
        top = self.aggregation.sum_by_category(
            TransactionType.expense, window.start, window.end
        )[:TOP_CATEGORY_LIMIT]
        return MonthlyReport(
            month=reference.strftime("%B"),
            year=reference.year,
            total_income_cents=income,
            total_expenses_cents=expenses,
            net_savings_cents=net,
            savings_rate=float(savings_rate),
            top_categories=[
                TopCategory(
                    name=row.category,
                    amount_cents=row.total_cents,
                    percentage=int(
                        round_half_up(percent_of(row.total_cents, expenses))
                    ),
                )
                for row in top
            ],
        )

    def monthly_report_for(self, year: int, month: int) -> MonthlyReport:
        if not 1 <= month <= 12:
            raise InvalidInput(
                "Month must be between 1 and 12", field="month", value=month
            )
        if not 1970 <= year <= 3000:
            raise InvalidInput("Year out of range", field="year", value=year)
        return self.monthly_report(date(year, month, 1))
