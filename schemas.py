import datetime as dt
import re
from datetime import date, datetime
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from amounts import normalize_amount
from errors import InvalidInput
from models import EntryKind, ExpenseType, SaleCategory

ModelT = TypeVar("ModelT", bound=BaseModel)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value: Any) -> date:
    if isinstance(value, datetime):
        raise ValueError("Date must not include a time component")
    if isinstance(value, date):
        return value
    if isinstance(value, str) and _ISO_DATE_RE.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError("Date is not a valid calendar date") from exc
    raise ValueError("Date must be an ISO date (YYYY-MM-DD)")


def _amount(value: Any) -> str:
    if value is None:
        raise ValueError("Amount is required")
    return normalize_amount(value)


def _not_null(value: Any) -> Any:
    if value is None:
        raise ValueError("Field cannot be null")
    return value


def _required_date(value: Any) -> date:
    return parse_iso_date(_not_null(value))


def _optional_text(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body",)]
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        out.append({"field": ".".join(loc) or "body", "message": message})
    return out


def parse_payload(model_cls: type[ModelT], raw: Any, *, label: str = "entry") -> ModelT:
    if not isinstance(raw, dict):
        raise InvalidInput(
            f"Invalid {label} data",
            errors=[{"field": "body", "message": "Expected a JSON object"}],
        )
    try:
        return model_cls.model_validate(raw)
    except ValidationError as exc:
        raise InvalidInput(
            f"Invalid {label} data", errors=validation_errors(exc.errors())
        ) from exc


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class SaleIn(BaseModel):
    amount: str
    category: SaleCategory
    date: dt.date
    notes: Optional[str] = Field(default=None, max_length=500)

    check_amount = field_validator("amount", mode="before")(_amount)
    check_date = field_validator("date", mode="before")(parse_iso_date)
    check_notes = field_validator("notes", mode="before")(_optional_text)


class SaleUpdate(BaseModel):
    amount: Optional[str] = None
    category: Optional[SaleCategory] = None
    date: Optional[dt.date] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    check_amount = field_validator("amount", mode="before")(_amount)
    check_category = field_validator("category", mode="before")(_not_null)
    check_date = field_validator("date", mode="before")(_required_date)
    check_notes = field_validator("notes", mode="before")(_optional_text)


class ExpenseIn(BaseModel):
    amount: str
    type: ExpenseType
    date: dt.date
    description: Optional[str] = Field(default=None, max_length=500)

    check_amount = field_validator("amount", mode="before")(_amount)
    check_date = field_validator("date", mode="before")(parse_iso_date)
    check_description = field_validator("description", mode="before")(
        _optional_text
    )


class ExpenseUpdate(BaseModel):
    amount: Optional[str] = None
    type: Optional[ExpenseType] = None
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=500)

    check_amount = field_validator("amount", mode="before")(_amount)
    check_type = field_validator("type", mode="before")(_not_null)
    check_date = field_validator("date", mode="before")(_required_date)
    check_description = field_validator("description", mode="before")(
        _optional_text
    )


class SaleOut(WireModel):
    id: int
    user_id: str
    amount: str
    category: SaleCategory
    date: dt.date
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime


class ExpenseOut(WireModel):
    id: int
    user_id: str
    amount: str
    type: ExpenseType
    date: dt.date
    description: Optional[str]
    created_at: datetime
    updated_at: datetime


class TransactionOut(WireModel):
    id: int
    type: EntryKind
    amount: str
    category: str
    date: dt.date
    description: Optional[str]
    created_at: datetime


class CategoryAmount(WireModel):
    category: str
    amount: str


class TrendPoint(WireModel):
    date: dt.date
    amount: str


class DashboardStats(WireModel):
    today_sales: str = "0.00"
    today_expenses: str = "0.00"
    this_week_sales: str = "0.00"
    this_week_expenses: str = "0.00"
    expenses_by_category: list[CategoryAmount] = Field(default_factory=list)
    sales_trend: list[TrendPoint] = Field(default_factory=list)


class LoginIn(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=200)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class UserIn(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    email: Optional[str] = Field(default=None, max_length=255)
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    profile_image_url: Optional[str] = Field(default=None, max_length=500)


class UserOut(WireModel):
    id: str
    email: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    profile_image_url: Optional[str]
    created_at: datetime
    updated_at: datetime
