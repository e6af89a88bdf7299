from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aggregation import build_stats, compute_dashboard_stats
from amounts import to_cents
from config import get_settings
from errors import NotFound, Unauthenticated, Unexpected
from models import EntryKind, Expense, Sale, User, utcnow
from periods import DashboardWindow, Period, dashboard_window
from schemas import DashboardStats, ExpenseIn, ExpenseUpdate, SaleIn, SaleUpdate, UserIn
from transactions import TransactionView, merge_transactions

logger = logging.getLogger(__name__)

Entry = Union[Sale, Expense]


def require_user_id(user_id: Optional[str]) -> str:
    if not user_id or not str(user_id).strip():
        raise Unauthenticated()
    return str(user_id)


def commit_or_raise(session: Session, what: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise Unexpected(f"Failed to save {what}") from exc


class UserService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> User:
        user = self.session.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    def get_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return self.session.scalar(stmt)

    def upsert(self, data: UserIn) -> User:
        user = self.session.get(User, data.id)
        if user is None:
            user = User(id=data.id)
            self.session.add(user)
            logger.info(f"user_created: id={data.id}")
        for field, value in data.model_dump(exclude={"id"}, exclude_unset=True).items():
            setattr(user, field, value)
        user.updated_at = utcnow()
        commit_or_raise(self.session, "user")
        self.session.refresh(user)
        return user


class EntryService:
    """Per-user store for one entry kind.

    Every lookup is filtered by ``user_id``; rows owned by someone else are
    reported as missing.
    """

    model: type[Entry]
    kind: EntryKind

    def __init__(self, session: Session, user_id: Optional[str]) -> None:
        self.session = session
        self.user_id = require_user_id(user_id)

    @property
    def label(self) -> str:
        return self.kind.value.capitalize()

    def _apply(self, entry: Entry, values: dict[str, object]) -> None:
        for field, value in values.items():
            if field == "amount":
                entry.amount_cents = to_cents(str(value))
            else:
                setattr(entry, field, value)

    def list(self, period: Optional[Period] = None) -> list[Entry]:
        model = self.model
        stmt = (
            select(model)
            .where(model.user_id == self.user_id)
            .order_by(model.date.desc(), model.created_at.desc(), model.id.desc())
        )
        if period is not None:
            stmt = stmt.where(model.date.between(period.start, period.end))
        return list(self.session.scalars(stmt).all())

    def get(self, entry_id: int) -> Entry:
        model = self.model
        entry = self.session.scalar(
            select(model).where(model.id == entry_id, model.user_id == self.user_id)
        )
        if not entry:
            raise NotFound(f"{self.label} not found")
        return entry

    def _create(self, data: BaseModel) -> Entry:
        entry = self.model(user_id=self.user_id)
        self._apply(entry, data.model_dump())
        self.session.add(entry)
        commit_or_raise(self.session, self.kind.value)
        self.session.refresh(entry)
        logger.info(f"{self.kind.value}_created: user={self.user_id} id={entry.id}")
        return entry

    def _update(self, entry_id: int, data: BaseModel) -> Entry:
        entry = self.get(entry_id)
        self._apply(entry, data.model_dump(exclude_unset=True))
        entry.updated_at = utcnow()
        commit_or_raise(self.session, self.kind.value)
        self.session.refresh(entry)
        logger.info(f"{self.kind.value}_updated: user={self.user_id} id={entry.id}")
        return entry

    def delete(self, entry_id: int) -> None:
        entry = self.get(entry_id)
        self.session.delete(entry)
        commit_or_raise(self.session, self.kind.value)
        logger.info(f"{self.kind.value}_deleted: user={self.user_id} id={entry_id}")


class SaleService(EntryService):
    model = Sale
    kind = EntryKind.sale

    def create(self, data: SaleIn) -> Sale:
        return self._create(data)

    def update(self, sale_id: int, data: SaleUpdate) -> Sale:
        return self._update(sale_id, data)


class ExpenseService(EntryService):
    model = Expense
    kind = EntryKind.expense

    def create(self, data: ExpenseIn) -> Expense:
        return self._create(data)

    def update(self, expense_id: int, data: ExpenseUpdate) -> Expense:
        return self._update(expense_id, data)


class TransactionService:
    def __init__(self, session: Session, user_id: Optional[str]) -> None:
        self.session = session
        self.user_id = require_user_id(user_id)

    def list(
        self,
        period: Optional[Period] = None,
        entry_type: Optional[EntryKind] = None,
    ) -> list[TransactionView]:
        sales: list[Sale] = []
        expenses: list[Expense] = []
        if entry_type in (None, EntryKind.sale):
            sales = SaleService(self.session, self.user_id).list(period)
        if entry_type in (None, EntryKind.expense):
            expenses = ExpenseService(self.session, self.user_id).list(period)
        return merge_transactions(sales, expenses, period)


class MetricsService:
    """Dashboard statistics for one user.

    ``scan`` loads every entry and aggregates in Python; ``query`` pushes the
    sums and group-bys into SQL. Both share the final ranking and formatting
    step and return identical results for the same rows.
    """

    backends = ("query", "scan")

    def __init__(
        self,
        session: Session,
        user_id: Optional[str],
        *,
        backend: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> None:
        settings = get_settings()
        self.session = session
        self.user_id = require_user_id(user_id)
        self.backend = backend or settings.stats_backend
        if self.backend not in self.backends:
            raise ValueError(f"Unsupported stats backend: {self.backend}")
        self.timezone = timezone or settings.timezone

    def dashboard_stats(self, now: datetime) -> DashboardStats:
        window = dashboard_window(now, self.timezone)
        if self.backend == "scan":
            return self._scan(window)
        return self._query(window)

    def _scan(self, window: DashboardWindow) -> DashboardStats:
        sales = SaleService(self.session, self.user_id).list()
        expenses = ExpenseService(self.session, self.user_id).list()
        return compute_dashboard_stats(sales, expenses, window)

    def _total(self, model: type[Entry], *conditions) -> int:
        stmt = select(func.coalesce(func.sum(model.amount_cents), 0)).where(
            model.user_id == self.user_id, *conditions
        )
        return int(self.session.execute(stmt).scalar_one() or 0)

    def _query(self, window: DashboardWindow) -> DashboardStats:
        expense_rows = self.session.execute(
            select(Expense.type, func.sum(Expense.amount_cents).label("total"))
            .where(
                Expense.user_id == self.user_id,
                Expense.date >= window.week_start,
            )
            .group_by(Expense.type)
        ).all()
        trend_rows = self.session.execute(
            select(Sale.date, func.sum(Sale.amount_cents).label("total"))
            .where(Sale.user_id == self.user_id, Sale.date >= window.week_start)
            .group_by(Sale.date)
        ).all()

        sales_by_day: dict[date, int] = {
            row.date: int(row.total or 0) for row in trend_rows
        }
        return build_stats(
            today_sales=self._total(Sale, Sale.date == window.today),
            today_expenses=self._total(Expense, Expense.date == window.today),
            week_sales=self._total(Sale, Sale.date >= window.week_start),
            week_expenses=self._total(Expense, Expense.date >= window.week_start),
            expense_totals={row.type.value: int(row.total or 0) for row in expense_rows},
            sales_by_day=sales_by_day,
        )
