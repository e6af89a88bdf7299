from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from errors import InvalidInput
from schemas import parse_iso_date

WEEK_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


@dataclass(frozen=True)
class DashboardWindow:
    """Reference dates for the dashboard rollups.

    ``week_start`` is inclusive, so the weekly window spans eight calendar
    days ending on ``today``.
    """

    today: date
    week_start: date


def dashboard_window(now: datetime, tz: Optional[str] = None) -> DashboardWindow:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local_now = now.astimezone(ZoneInfo(tz or "UTC"))
    return DashboardWindow(
        today=local_now.date(),
        week_start=(local_now - WEEK_WINDOW).date(),
    )


def resolve_range(start: Optional[str], end: Optional[str]) -> Optional[Period]:
    if not start and not end:
        return None
    if not start or not end:
        raise InvalidInput(
            "Date range requires both startDate and endDate",
            errors=[
                {"field": "startDate" if not start else "endDate", "message": "Required"}
            ],
        )
    errors = []
    bounds: dict[str, date] = {}
    for field, raw in (("startDate", start), ("endDate", end)):
        try:
            bounds[field] = parse_iso_date(raw)
        except ValueError as exc:
            errors.append({"field": field, "message": str(exc)})
    if errors:
        raise InvalidInput("Invalid date range", errors=errors)
    if bounds["startDate"] > bounds["endDate"]:
        raise InvalidInput(
            "Invalid date range",
            errors=[{"field": "startDate", "message": "Start date must not be after end date"}],
        )
    return Period("custom", bounds["startDate"], bounds["endDate"])
