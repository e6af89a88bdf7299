from datetime import date

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

from database import Base
from errors import InvalidInput, NotFound, Unauthenticated
from models import ExpenseType, Sale, SaleCategory
from periods import Period
from schemas import ExpenseIn, ExpenseUpdate, SaleIn, SaleUpdate, parse_payload
from services import ExpenseService, SaleService


def make_session() -> Session:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return SessionLocal()


def test_created_sale_is_listed_with_generated_fields() -> None:
    session = make_session()
    sales = SaleService(session, "user-a")

    created = sales.create(
        parse_payload(
            SaleIn,
            {"amount": "100", "category": "retail", "date": "2024-01-10", "notes": "Walk-in"},
        )
    )

    listed = sales.list()
    assert [s.id for s in listed] == [created.id]
    row = listed[0]
    assert row.user_id == "user-a"
    assert row.amount == "100.00"
    assert row.amount_cents == 10_000
    assert row.category == SaleCategory.retail
    assert row.date == date(2024, 1, 10)
    assert row.notes == "Walk-in"
    assert row.created_at is not None and row.updated_at is not None


def test_ids_are_assigned_by_the_store() -> None:
    session = make_session()
    sales = SaleService(session, "user-a")
    data = SaleIn(amount="1.00", category=SaleCategory.online, date=date(2024, 1, 1))

    ids = {sales.create(data).id for _ in range(5)}

    assert len(ids) == 5


def test_list_filters_by_inclusive_period() -> None:
    session = make_session()
    expenses = ExpenseService(session, "user-a")
    for day in (1, 5, 10, 11):
        expenses.create(
            ExpenseIn(amount="5", type=ExpenseType.rent, date=date(2024, 1, day))
        )

    listed = expenses.list(Period("custom", date(2024, 1, 5), date(2024, 1, 10)))

    assert [e.date for e in listed] == [date(2024, 1, 10), date(2024, 1, 5)]


def test_rows_are_invisible_to_other_users() -> None:
    session = make_session()
    sale = SaleService(session, "owner").create(
        SaleIn(amount="9.99", category=SaleCategory.service, date=date(2024, 2, 1))
    )
    intruder = SaleService(session, "intruder")

    assert intruder.list() == []
    with pytest.raises(NotFound):
        intruder.get(sale.id)
    with pytest.raises(NotFound):
        intruder.update(sale.id, SaleUpdate(amount="0"))
    with pytest.raises(NotFound):
        intruder.delete(sale.id)

    stored = session.scalar(select(Sale).where(Sale.id == sale.id))
    assert stored is not None
    assert stored.amount == "9.99"


def test_delete_missing_row_raises_not_found() -> None:
    session = make_session()
    with pytest.raises(NotFound):
        ExpenseService(session, "user-a").delete(404)


def test_partial_update_keeps_omitted_fields_and_refreshes_updated_at() -> None:
    session = make_session()
    expenses = ExpenseService(session, "user-a")
    expense = expenses.create(
        ExpenseIn(
            amount="30",
            type=ExpenseType.rent,
            date=date(2024, 1, 10),
            description="January",
        )
    )
    before = expense.updated_at

    updated = expenses.update(
        expense.id, parse_payload(ExpenseUpdate, {"amount": "35.5"})
    )

    assert updated.amount == "35.50"
    assert updated.type == ExpenseType.rent
    assert updated.date == date(2024, 1, 10)
    assert updated.description == "January"
    assert updated.updated_at >= before


def test_update_with_null_description_clears_it() -> None:
    session = make_session()
    expenses = ExpenseService(session, "user-a")
    expense = expenses.create(
        ExpenseIn(
            amount="1", type=ExpenseType.other, date=date(2024, 1, 1), description="x"
        )
    )

    updated = expenses.update(
        expense.id, parse_payload(ExpenseUpdate, {"description": None})
    )

    assert updated.description is None


def test_validation_enumerates_every_bad_field() -> None:
    with pytest.raises(InvalidInput) as excinfo:
        parse_payload(
            SaleIn, {"amount": "", "category": "", "date": "10/01/2024"}, label="sale"
        )

    assert str(excinfo.value) == "Invalid sale data"
    assert sorted(excinfo.value.fields) == ["amount", "category", "date"]


def test_validation_rejects_unknown_expense_type_and_bad_calendar_date() -> None:
    with pytest.raises(InvalidInput) as excinfo:
        parse_payload(
            ExpenseIn, {"amount": "10", "type": "travel", "date": "2024-02-30"}
        )

    assert sorted(excinfo.value.fields) == ["date", "type"]


def test_partial_update_rejects_explicit_nulls_for_required_fields() -> None:
    with pytest.raises(InvalidInput) as excinfo:
        parse_payload(SaleUpdate, {"amount": None, "category": None, "date": None})

    assert sorted(excinfo.value.fields) == ["amount", "category", "date"]


def test_invalid_update_does_not_touch_the_row() -> None:
    session = make_session()
    sales = SaleService(session, "user-a")
    sale = sales.create(
        SaleIn(amount="10", category=SaleCategory.retail, date=date(2024, 1, 1))
    )

    with pytest.raises(InvalidInput):
        sales.update(sale.id, parse_payload(SaleUpdate, {"amount": "-5"}))

    assert sales.get(sale.id).amount == "10.00"


def test_services_require_a_user() -> None:
    session = make_session()
    with pytest.raises(Unauthenticated):
        SaleService(session, "")
    with pytest.raises(Unauthenticated):
        ExpenseService(session, None)
