from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from amounts import format_cents
from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EntryKind(str, Enum):
    sale = "sale"
    expense = "expense"


class SaleCategory(str, Enum):
    retail = "retail"
    online = "online"
    service = "service"
    other = "other"


class ExpenseType(str, Enum):
    inventory = "inventory"
    rent = "rent"
    utilities = "utilities"
    marketing = "marketing"
    supplies = "supplies"
    other = "other"


SALE_CATEGORY_ENUM = SAEnum(
    SaleCategory,
    name="salecategory",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
)

EXPENSE_TYPE_ENUM = SAEnum(
    ExpenseType,
    name="expensetype",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))
    profile_image_url: Mapped[Optional[str]] = mapped_column(String(500))


class Sale(Base, TimestampMixin):
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    category: Mapped[SaleCategory] = mapped_column(SALE_CATEGORY_ENUM, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_sale_amount_nonnegative"),
        Index("ix_sales_user_date", "user_id", "date"),
    )

    @property
    def amount(self) -> str:
        return format_cents(self.amount_cents)


class Expense(Base, TimestampMixin):
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    type: Mapped[ExpenseType] = mapped_column(EXPENSE_TYPE_ENUM, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint("amount_cents >= 0", name="ck_expense_amount_nonnegative"),
        Index("ix_expenses_user_date", "user_id", "date"),
    )

    @property
    def amount(self) -> str:
        return format_cents(self.amount_cents)
