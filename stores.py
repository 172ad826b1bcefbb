from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import delete, extract, func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from errors import BudgetConflict, StoreUnavailable
from models import Budget, Transaction, TransactionType, category_key


@contextmanager
def _store_call(operation: str) -> Iterator[None]:
    try:
        yield
    except OperationalError as exc:
        raise StoreUnavailable(operation) from exc


@dataclass
class LedgerFilter:
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class LedgerStore:
    """Transactions of a single owner."""

    def __init__(self, session: Session, owner_id: str) -> None:
        self.session = session
        self.owner_id = owner_id

    def _conditions(self, filters: LedgerFilter) -> list:
        conditions = [Transaction.owner_id == self.owner_id]
        if filters.type:
            conditions.append(Transaction.type == filters.type)
        if filters.category:
            key = category_key(filters.category)
            conditions.append(Transaction.category_key == key)
        if filters.start is not None:
            conditions.append(Transaction.occurred_at >= filters.start)
        if filters.end is not None:
            conditions.append(Transaction.occurred_at <= filters.end)
        return conditions

    def insert(self, txn: Transaction) -> Transaction:
        txn.owner_id = self.owner_id
        with _store_call("transaction insert"):
            self.session.add(txn)
            self.session.flush()
        return txn

    def find(
        self,
        filters: LedgerFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Transaction]:
        stmt = (
            select(Transaction)
            .where(*self._conditions(filters))
            .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with _store_call("transaction find"):
            return list(self.session.scalars(stmt).all())

    def delete(self, transaction_id: int) -> bool:
        stmt = delete(Transaction).where(
            Transaction.owner_id == self.owner_id, Transaction.id == transaction_id
        )
        with _store_call("transaction delete"):
            result = self.session.execute(stmt)
        return result.rowcount > 0

    def aggregate_sum(
        self, filters: LedgerFilter, *, group_by_category: bool
    ) -> list[tuple[Optional[str], int]]:
        """Sum of ``amount_cents`` over matching transactions.

        Grouping is case-insensitive; each group is labelled with its
        lowest-sorting stored spelling. Groups come back largest first.
        An empty match yields an empty list, never a zero row.
        """
        conditions = self._conditions(filters)
        total = func.sum(Transaction.amount_cents).label("total")
        with _store_call("transaction aggregate"):
            if not group_by_category:
                row = self.session.execute(
                    select(func.count(Transaction.id), total).where(*conditions)
                ).one()
                if not row[0]:
                    return []
                return [(None, int(row.total or 0))]

            label = func.min(Transaction.category).label("category")
            stmt = (
                select(label, total)
                .where(*conditions)
                .group_by(Transaction.category_key)
                .order_by(total.desc(), label.asc())
            )
            return [
                (row.category, int(row.total or 0))
                for row in self.session.execute(stmt)
            ]

    def monthly_sums(
        self, start: datetime, end: datetime
    ) -> dict[tuple[TransactionType, int, int], int]:
        """Totals per (type, year, month) for transactions within [start, end]."""
        year = extract("year", Transaction.occurred_at).label("year")
        month = extract("month", Transaction.occurred_at).label("month")
        stmt = (
            select(
                Transaction.type,
                year,
                month,
                func.coalesce(func.sum(Transaction.amount_cents), 0).label("total"),
            )
            .where(
                Transaction.owner_id == self.owner_id,
                Transaction.occurred_at.between(start, end),
            )
            .group_by(Transaction.type, year, month)
        )
        totals: dict[tuple[TransactionType, int, int], int] = {}
        with _store_call("transaction aggregate"):
            for row in self.session.execute(stmt):
                totals[(row.type, int(row.year), int(row.month))] = int(row.total or 0)
        return totals


class BudgetStore:
    """Budgets of a single owner, unique per case-insensitive category."""

    def __init__(self, session: Session, owner_id: str) -> None:
        self.session = session
        self.owner_id = owner_id

    def find_by_owner(self) -> list[Budget]:
        stmt = (
            select(Budget)
            .where(Budget.owner_id == self.owner_id)
            .order_by(Budget.category.asc(), Budget.id.asc())
        )
        with _store_call("budget find"):
            return list(self.session.scalars(stmt).all())

    def find_one(
        self, category: str, *, case_insensitive: bool = True
    ) -> Optional[Budget]:
        stmt = select(Budget).where(Budget.owner_id == self.owner_id)
        if case_insensitive:
            stmt = stmt.where(Budget.category_key == category_key(category))
        else:
            stmt = stmt.where(Budget.category == category.strip())
        with _store_call("budget find"):
            return self.session.scalar(stmt)

    def upsert(self, budget: Budget) -> Budget:
        budget.owner_id = self.owner_id
        try:
            with _store_call("budget upsert"):
                self.session.add(budget)
                self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise BudgetConflict(self.owner_id, budget.category) from exc
        return budget

    def delete(self, budget_id: int) -> bool:
        stmt = delete(Budget).where(
            Budget.owner_id == self.owner_id, Budget.id == budget_id
        )
        with _store_call("budget delete"):
            result = self.session.execute(stmt)
        return result.rowcount > 0
