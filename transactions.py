from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from errors import InvalidInput
from models import EntryKind, Expense, Sale
from periods import Period


@dataclass(frozen=True)
class TransactionView:
    id: int
    type: EntryKind
    amount: str
    category: str
    date: date
    description: Optional[str]
    created_at: datetime


def from_sale(sale: Sale) -> TransactionView:
    return TransactionView(
        id=sale.id,
        type=EntryKind.sale,
        amount=sale.amount,
        category=sale.category.value,
        date=sale.date,
        description=sale.notes,
        created_at=sale.created_at,
    )


def from_expense(expense: Expense) -> TransactionView:
    return TransactionView(
        id=expense.id,
        type=EntryKind.expense,
        amount=expense.amount,
        category=expense.type.value,
        date=expense.date,
        description=expense.description,
        created_at=expense.created_at,
    )


def _sort_key(txn: TransactionView) -> tuple:
    # Newest first; on equal date/created_at/id, expenses sort before sales.
    return (
        txn.date,
        txn.created_at,
        txn.id,
        txn.type == EntryKind.expense,
    )


def merge_transactions(
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    period: Optional[Period] = None,
) -> list[TransactionView]:
    merged = [from_sale(s) for s in sales] + [from_expense(e) for e in expenses]
    if period is not None:
        merged = [txn for txn in merged if period.contains(txn.date)]
    merged.sort(key=_sort_key, reverse=True)
    return merged


def parse_entry_kind(value: Optional[str]) -> Optional[EntryKind]:
    if not value:
        return None
    try:
        return EntryKind(value)
    except ValueError as exc:
        raise InvalidInput(
            "Invalid transaction type",
            errors=[{"field": "type", "message": "Must be 'sale' or 'expense'"}],
        ) from exc
