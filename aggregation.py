"""In-memory dashboard rollups.

Every function here is pure: rows and the reference window go in, a
``DashboardStats`` comes out. Amounts are summed as integer cents.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Protocol

from amounts import format_cents
from periods import DashboardWindow
from schemas import CategoryAmount, DashboardStats, TrendPoint

TOP_CATEGORIES = 5


class SaleRow(Protocol):
    date: date
    amount_cents: int


class ExpenseRow(Protocol):
    date: date
    amount_cents: int
    type: object


def _key(value: object) -> str:
    return str(getattr(value, "value", value))


def rank_categories(totals: dict[str, int]) -> list[CategoryAmount]:
    # Ties on amount fall back to the category name so both backends agree.
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [
        CategoryAmount(category=name, amount=format_cents(cents))
        for name, cents in ranked[:TOP_CATEGORIES]
    ]


def build_trend(totals: dict[date, int]) -> list[TrendPoint]:
    return [
        TrendPoint(date=day, amount=format_cents(cents))
        for day, cents in sorted(totals.items())
    ]


def build_stats(
    *,
    today_sales: int,
    today_expenses: int,
    week_sales: int,
    week_expenses: int,
    expense_totals: dict[str, int],
    sales_by_day: dict[date, int],
) -> DashboardStats:
    return DashboardStats(
        today_sales=format_cents(today_sales),
        today_expenses=format_cents(today_expenses),
        this_week_sales=format_cents(week_sales),
        this_week_expenses=format_cents(week_expenses),
        expenses_by_category=rank_categories(expense_totals),
        sales_trend=build_trend(sales_by_day),
    )


def compute_dashboard_stats(
    sales: Iterable[SaleRow],
    expenses: Iterable[ExpenseRow],
    window: DashboardWindow,
) -> DashboardStats:
    today_sales = 0
    week_sales = 0
    sales_by_day: dict[date, int] = defaultdict(int)
    for sale in sales:
        if sale.date == window.today:
            today_sales += sale.amount_cents
        if sale.date >= window.week_start:
            week_sales += sale.amount_cents
            sales_by_day[sale.date] += sale.amount_cents

    today_expenses = 0
    week_expenses = 0
    expense_totals: dict[str, int] = defaultdict(int)
    for expense in expenses:
        if expense.date == window.today:
            today_expenses += expense.amount_cents
        if expense.date >= window.week_start:
            week_expenses += expense.amount_cents
            expense_totals[_key(expense.type)] += expense.amount_cents

    return build_stats(
        today_sales=today_sales,
        today_expenses=today_expenses,
        week_sales=week_sales,
        week_expenses=week_expenses,
        expense_totals=dict(expense_totals),
        sales_by_day=dict(sales_by_day),
    )
