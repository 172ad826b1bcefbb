from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class BudgetPeriod(str, Enum):
    weekly = "weekly"
    monthly = "monthly"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    category_key: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_transactions_owner_occurred", "owner_id", "occurred_at"),
        Index(
            "ix_transactions_owner_type_occurred", "owner_id", "type", "occurred_at"
        ),
        Index("ix_transactions_owner_category", "owner_id", "category_key"),
        CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),
    )

    @validates("category")
    def _sync_category_key(self, _key: str, value: str) -> str:
        self.category_key = category_key(value)
        return value


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    category_key: Mapped[str] = mapped_column(String(100), nullable=False)
    limit_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    period: Mapped[BudgetPeriod] = mapped_column(
        SAEnum(BudgetPeriod), default=BudgetPeriod.monthly, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("owner_id", "category_key", name="uq_budget_owner_category"),
        CheckConstraint("limit_cents > 0", name="ck_budgets_limit_positive"),
    )

    @validates("category")
    def _sync_category_key(self, _key: str, value: str) -> str:
        self.category_key = category_key(value)
        return value


def category_key(name: str) -> str:
    return name.strip().lower()
