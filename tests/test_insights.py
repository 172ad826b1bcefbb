from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from database import Base
from models import TransactionType
from schemas import BudgetIn, RecommendationPriority, TransactionIn
from services import BudgetService, InsightsService, TransactionService

NOW = datetime(2026, 10, 17, 12, 0)


def _budget(session: Session, category: str, limit: str) -> None:
    BudgetService(session, "alice").set(
        BudgetIn(category=category, limit=Decimal(limit))
    )


def _spend(
    session: Session, category: str, amount: str, occurred_at: datetime = NOW
) -> None:
    TransactionService(session, "alice").create(
        TransactionIn(
            type=TransactionType.expense,
            amount=Decimal(amount),
            category=category,
            occurred_at=occurred_at,
        )
    )


def test_no_budgets_yields_empty_insights() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _spend(session, "Food", "40")
        insights = InsightsService(session, "alice").generate(NOW)
        assert insights.recommendations == []
        assert insights.total_saved == 0
        assert insights.improvement_score == 0


def test_overspent_budget_is_high_priority() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _budget(session, "Food", "1000")
        _spend(session, "Food", "600")
        _spend(session, "Food", "450")

        insights = InsightsService(session, "alice").generate(NOW)

        assert len(insights.recommendations) == 1
        rec = insights.recommendations[0]
        assert rec.priority == RecommendationPriority.high
        assert rec.overspent_cents == 5_000
        assert rec.message == "You overspent by 50.00"
        assert insights.total_saved == 50
        assert insights.total_saved_cents == 5_000
        assert insights.improvement_score == 0


def test_well_under_budget_is_low_priority() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _budget(session, "Travel", "2000")
        _spend(session, "Travel", "200")

        insights = InsightsService(session, "alice").generate(NOW)

        assert [r.priority for r in insights.recommendations] == [
            RecommendationPriority.low
        ]
        assert insights.recommendations[0].percentage == 10
        assert insights.improvement_score == 100


@pytest.mark.parametrize(
    ("spent", "expected"),
    [
        ("0", RecommendationPriority.low),
        ("49.99", RecommendationPriority.low),
        ("50", None),
        ("80", None),
        ("80.01", RecommendationPriority.medium),
        ("100", RecommendationPriority.medium),
        ("100.01", RecommendationPriority.high),
    ],
)
def test_classification_boundaries(spent: str, expected) -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _budget(session, "Fun", "100")
        if Decimal(spent) > 0:
            _spend(session, "Fun", spent)

        insights = InsightsService(session, "alice").generate(NOW)
        priorities = [r.priority for r in insights.recommendations]
        assert priorities == ([expected] if expected else [])


def test_classify_without_positive_limit_does_not_divide() -> None:
    assert InsightsService.classify(0, 0) is None
    assert InsightsService.classify(100, 0) == RecommendationPriority.high


def test_improvement_score_and_total_saved_rounding() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        _budget(session, "Food", "100")
        _budget(session, "Rent", "100")
        _budget(session, "Travel", "100")
        _spend(session, "Food", "100.50")
        _spend(session, "Rent", "10")
        _spend(session, "Travel", "65")
        # Last month's spend does not count toward this month.
        _spend(session, "Travel", "500", datetime(2026, 9, 30, 20, 0))

        insights = InsightsService(session, "alice").generate(NOW)

        by_category = {r.category: r.priority for r in insights.recommendations}
        assert by_category == {
            "Food": RecommendationPriority.high,
            "Rent": RecommendationPriority.low,
        }
        assert insights.total_saved_cents == 50
        assert insights.total_saved == 1
        assert insights.improvement_score == 33
