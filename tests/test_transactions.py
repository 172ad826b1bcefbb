from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from database import Base
from errors import NotFound, StoreUnavailable
from models import TransactionType
from periods import Period, month_window
from schemas import TransactionIn
from services import TransactionService
from stores import LedgerFilter

ALL_TIME = Period("all", None, None)


def test_transaction_input_is_trimmed_and_converted_to_cents() -> None:
    data = TransactionIn(
        type=TransactionType.expense,
        amount=Decimal("12.34"),
        category="  Food  ",
        description="   ",
    )
    assert data.category == "Food"
    assert data.description is None
    assert data.amount_cents == 1234


@pytest.mark.parametrize("amount", ["0", "-5", "1.005"])
def test_transaction_input_rejects_invalid_amounts(amount: str) -> None:
    with pytest.raises(ValidationError):
        TransactionIn(type=TransactionType.income, amount=amount, category="Salary")


def test_transaction_input_rejects_blank_category() -> None:
    with pytest.raises(ValidationError):
        TransactionIn(type=TransactionType.expense, amount="5", category="   ")


def test_create_defaults_occurred_at_and_converts_aware_timestamps() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = TransactionService(session, "alice")
        txn = service.create(
            TransactionIn(type=TransactionType.expense, amount="3", category="Coffee")
        )
        assert txn.owner_id == "alice"
        assert txn.occurred_at is not None
        assert txn.occurred_at.tzinfo is None

        aware = service.create(
            TransactionIn(
                type=TransactionType.expense,
                amount="3",
                category="Coffee",
                occurred_at=datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc),
            )
        )
        assert aware.occurred_at.tzinfo is None


def test_list_is_newest_first_and_filtered() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = TransactionService(session, "alice")
        for day, kind, category in [
            (3, TransactionType.expense, "Food"),
            (9, TransactionType.income, "Salary"),
            (5, TransactionType.expense, "food"),
        ]:
            service.create(
                TransactionIn(
                    type=kind,
                    amount="10",
                    category=category,
                    occurred_at=datetime(2026, 10, day, 12, 0),
                )
            )
        TransactionService(session, "bob").create(
            TransactionIn(
                type=TransactionType.expense,
                amount="10",
                category="Food",
                occurred_at=datetime(2026, 10, 4, 12, 0),
            )
        )

        items = service.list(ALL_TIME)
        assert [t.occurred_at.day for t in items] == [9, 5, 3]

        expenses = service.list(ALL_TIME, LedgerFilter(type=TransactionType.expense))
        assert [t.category for t in expenses] == ["food", "Food"]

        food = service.list(ALL_TIME, LedgerFilter(category="FOOD"))
        assert len(food) == 2

        assert service.list(month_window(2026, 9)) == []
        assert len(service.list(ALL_TIME, limit=1, offset=1)) == 1


def test_delete_only_own_transactions() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        txn = TransactionService(session, "alice").create(
            TransactionIn(type=TransactionType.expense, amount="8", category="Food")
        )

        with pytest.raises(NotFound) as excinfo:
            TransactionService(session, "bob").delete(txn.id)
        assert excinfo.value.status_code == 404

        TransactionService(session, "alice").delete(txn.id)
        assert TransactionService(session, "alice").list(ALL_TIME) == []


def test_export_csv_sanitizes_formulas() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = TransactionService(session, "alice")
        service.create(
            TransactionIn(
                type=TransactionType.expense,
                amount="19.90",
                category="Books",
                description="=HYPERLINK()",
                occurred_at=datetime(2026, 10, 2, 18, 30),
            )
        )

        lines = service.export_csv(ALL_TIME).splitlines()
        assert lines[0] == "OccurredAt,Type,Amount,Category,Description"
        assert lines[1] == "2026-10-02T18:30:00,expense,19.90,Books,\t=HYPERLINK()"


@pytest.mark.parametrize("amount", ["1e30", "100000000000000000"])
def test_transaction_input_rejects_oversized_amounts(amount: str) -> None:
    with pytest.raises(ValidationError):
        TransactionIn(type=TransactionType.expense, amount=amount, category="Rent")


def test_category_filter_folds_non_ascii_case() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = TransactionService(session, "alice")
        for category in ["Éducation", "éducation", "Food"]:
            service.create(
                TransactionIn(
                    type=TransactionType.expense, amount="5", category=category
                )
            )

        matches = service.list(ALL_TIME, LedgerFilter(category="ÉDUCATION"))
        assert sorted(t.category for t in matches) == ["Éducation", "éducation"]
        assert {t.category_key for t in matches} == {"éducation"}


def test_store_failure_is_reported_as_unavailable() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    def locked(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    with Session(engine) as session:
        session.scalars = locked
        with pytest.raises(StoreUnavailable) as excinfo:
            TransactionService(session, "alice").list(ALL_TIME)
        assert excinfo.value.operation == "transaction find"
        assert excinfo.value.status_code == 500
