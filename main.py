import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth import SESSION_COOKIE, current_user_id, issue_session_token
from config import get_settings
from database import SessionLocal
from errors import InvalidInput, NotFound, Unauthenticated, Unexpected
from periods import resolve_range
from schemas import (
    DashboardStats,
    ExpenseIn,
    ExpenseOut,
    ExpenseUpdate,
    LoginIn,
    SaleIn,
    SaleOut,
    SaleUpdate,
    TransactionOut,
    UserIn,
    UserOut,
    parse_payload,
    validation_errors,
)
from services import (
    ExpenseService,
    MetricsService,
    SaleService,
    TransactionService,
    UserService,
)
from transactions import parse_entry_kind

settings = get_settings()
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(title="Retail Tracker")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.on_event("startup")
def startup_event():
    logger.info(
        f"startup: timezone={settings.timezone} stats_backend={settings.stats_backend}"
    )


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput):
    return JSONResponse(status_code=400, content=exc.as_detail())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid input", "errors": validation_errors(exc.errors())},
    )


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"message": str(exc)})


@app.exception_handler(Unauthenticated)
async def unauthenticated_handler(request: Request, exc: Unauthenticated):
    return JSONResponse(status_code=401, content={"message": str(exc)})


@app.exception_handler(Unexpected)
@app.exception_handler(SQLAlchemyError)
async def unexpected_handler(request: Request, exc: Exception):
    logger.error(
        f"unexpected_error: {request.method} {request.url.path}", exc_info=exc
    )
    return JSONResponse(status_code=500, content={"message": "Unexpected error"})


def _dump(model) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json")


def _parse_as_of(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInput(
            "Invalid asOf",
            errors=[{"field": "asOf", "message": "Must be an ISO datetime"}],
        ) from exc


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.post("/api/login")
def login(
    response: Response,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    data = parse_payload(LoginIn, payload, label="login")
    users = UserService(db)
    existing = users.get_by_email(data.email)
    fields: dict[str, Any] = {
        "id": existing.id if existing else uuid4().hex,
        "email": existing.email if existing else data.email,
    }
    if data.first_name is not None:
        fields["first_name"] = data.first_name
    if data.last_name is not None:
        fields["last_name"] = data.last_name
    user = users.upsert(UserIn(**fields))

    token = issue_session_token(user.id)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        max_age=settings.session_max_age_hours * 3600,
    )
    logger.info(f"login: user={user.id}")
    return {"user": _dump(UserOut.model_validate(user)), "token": token}


@app.post("/api/logout")
def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE)
    return {"message": "Logged out"}


@app.get("/api/auth/user", response_model=UserOut)
def auth_user(
    user_id: str = Depends(current_user_id), db: Session = Depends(get_db)
):
    return UserOut.model_validate(UserService(db).get(user_id))


@app.get("/api/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(
    as_of: Optional[str] = Query(default=None, alias="asOf"),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    now = _parse_as_of(as_of)
    return MetricsService(db, user_id).dashboard_stats(now)


@app.post("/api/sales", response_model=SaleOut)
def create_sale(
    payload: dict[str, Any] = Body(...),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    data = parse_payload(SaleIn, payload, label="sale")
    return SaleOut.model_validate(SaleService(db, user_id).create(data))


@app.get("/api/sales", response_model=list[SaleOut])
def list_sales(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    period = resolve_range(start_date, end_date)
    sales = SaleService(db, user_id).list(period)
    return [SaleOut.model_validate(sale) for sale in sales]


@app.get("/api/sales/{sale_id}", response_model=SaleOut)
def get_sale(
    sale_id: int,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return SaleOut.model_validate(SaleService(db, user_id).get(sale_id))


@app.put("/api/sales/{sale_id}", response_model=SaleOut)
def update_sale(
    sale_id: int,
    payload: dict[str, Any] = Body(...),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    data = parse_payload(SaleUpdate, payload, label="sale")
    return SaleOut.model_validate(SaleService(db, user_id).update(sale_id, data))


@app.delete("/api/sales/{sale_id}")
def delete_sale(
    sale_id: int,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    SaleService(db, user_id).delete(sale_id)
    return {"message": "Sale deleted successfully"}


@app.post("/api/expenses", response_model=ExpenseOut)
def create_expense(
    payload: dict[str, Any] = Body(...),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    data = parse_payload(ExpenseIn, payload, label="expense")
    return ExpenseOut.model_validate(ExpenseService(db, user_id).create(data))


@app.get("/api/expenses", response_model=list[ExpenseOut])
def list_expenses(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    period = resolve_range(start_date, end_date)
    expenses = ExpenseService(db, user_id).list(period)
    return [ExpenseOut.model_validate(expense) for expense in expenses]


@app.get("/api/expenses/{expense_id}", response_model=ExpenseOut)
def get_expense(
    expense_id: int,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    return ExpenseOut.model_validate(ExpenseService(db, user_id).get(expense_id))


@app.put("/api/expenses/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: int,
    payload: dict[str, Any] = Body(...),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    data = parse_payload(ExpenseUpdate, payload, label="expense")
    return ExpenseOut.model_validate(
        ExpenseService(db, user_id).update(expense_id, data)
    )


@app.delete("/api/expenses/{expense_id}")
def delete_expense(
    expense_id: int,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    ExpenseService(db, user_id).delete(expense_id)
    return {"message": "Expense deleted successfully"}


@app.get("/api/transactions", response_model=list[TransactionOut])
def list_transactions(
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    type_: Optional[str] = Query(default=None, alias="type"),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    period = resolve_range(start_date, end_date)
    entry_type = parse_entry_kind(type_)
    items = TransactionService(db, user_id).list(period, entry_type)
    return [TransactionOut.model_validate(txn) for txn in items]
