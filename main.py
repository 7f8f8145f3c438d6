import logging
import time
import tomllib
from datetime import date
from typing import Literal, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware import cors
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth import token_from_header, verify_access_token
from config import get_settings
from database import SessionLocal, database_is_reachable
from errors import AuthenticationError, FinanceError
from metrics import observe_request, render_latest
from models import BudgetPeriod, TransactionType
from scheduler import SchedulerManager
from schemas import (
    AccountIn,
    AccountOut,
    AccountUpdate,
    BudgetAlertOut,
    BudgetIn,
    BudgetOut,
    BudgetUpdate,
    CategoryIn,
    CategoryOut,
    CategorySpendingOut,
    CategoryUpdate,
    DashboardOut,
    HealthOut,
    MonthlySummaryOut,
    TransactionIn,
    TransactionOut,
    TransactionPageOut,
    TransactionQuery,
    TransactionStatisticsOut,
    TransactionUpdate,
    TrendPointOut,
    YearToDateOut,
)
from services import (
    AccountService,
    AnalyticsService,
    BudgetService,
    CategoryService,
    TransactionService,
    UserService,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


def _load_app_version() -> str:
    try:
        with open("pyproject.toml", "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return "unknown"
    return str(data.get("project", {}).get("version", "unknown"))


APP_VERSION = _load_app_version()

app = FastAPI(title="Finance Tracker", version=APP_VERSION)
app.add_middleware(
    cors.CORSMiddleware,
    allow_origins=[settings.client_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

scheduler_manager = SchedulerManager()


@app.on_event("startup")
def startup_event():
    if settings.reconcile_enabled:
        scheduler_manager.start()


@app.on_event("shutdown")
def shutdown_event():
    scheduler_manager.stop()


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        elapsed = time.perf_counter() - started
        # Matched route template, e.g. /api/budgets/{budget_id}.
        route = request.scope.get("route")
        route_path = getattr(route, "path", request.url.path)
        observe_request(request.method, route_path, status, elapsed)
        logger.info(
            f"request: method={request.method} path={request.url.path} "
            f"status={status} duration_ms={elapsed * 1000:.1f}"
        )


def _error(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content={"error": kind, "message": message}
    )


@app.exception_handler(FinanceError)
async def finance_error_handler(_request: Request, exc: FinanceError):
    if exc.status_code >= 500:
        logger.error(f"finance_error: {exc.message}")
    return _error(exc.status_code, exc.kind, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid data provided"
    return _error(400, "Validation Error", message)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(_request: Request, _exc: IntegrityError):
    return _error(409, "Conflict", "A record with this value already exists")


@app.exception_handler(Exception)
async def unhandled_error_handler(_request: Request, exc: Exception):
    logger.exception("unhandled_error")
    message = str(exc) if settings.is_development else "Something went wrong"
    return _error(500, "Internal Server Error", message)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_user_id(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> int:
    user_id = verify_access_token(token_from_header(authorization))
    if not UserService(db).exists(user_id):
        raise AuthenticationError("User no longer exists")
    return user_id


@app.get("/metrics", include_in_schema=False)
def metrics():
    return Response(content=render_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health", response_model=HealthOut)
def health(db: Session = Depends(get_db)):
    if database_is_reachable(db):
        return HealthOut(status="ok", database="connected")
    return JSONResponse(
        status_code=503, content={"status": "degraded", "database": "disconnected"}
    )


# Accounts


@app.get("/api/accounts", response_model=list[AccountOut])
def list_accounts(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return [AccountOut.from_model(a) for a in AccountService(db, user_id).list_all()]


@app.post("/api/accounts", response_model=AccountOut, status_code=201)
def create_account(
    data: AccountIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return AccountOut.from_model(AccountService(db, user_id).create(data))


@app.patch("/api/accounts/{account_id}", response_model=AccountOut)
def update_account(
    account_id: int,
    data: AccountUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return AccountOut.from_model(AccountService(db, user_id).update(account_id, data))


@app.delete("/api/accounts/{account_id}", status_code=204)
def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    AccountService(db, user_id).delete(account_id)
    return Response(status_code=204)


@app.post("/api/accounts/{account_id}/recalculate", response_model=AccountOut)
def recalculate_account(
    account_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    accounts = AccountService(db, user_id)
    accounts.recalculate_balance(account_id)
    db.commit()
    return AccountOut.from_model(accounts.get(account_id))


# Categories


@app.get("/api/categories", response_model=list[CategoryOut])
def list_categories(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return [
        CategoryOut.from_model(c, with_children=True)
        for c in CategoryService(db, user_id).list_all()
    ]


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def create_category(
    data: CategoryIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return CategoryOut.from_model(CategoryService(db, user_id).create(data))


@app.patch("/api/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return CategoryOut.from_model(CategoryService(db, user_id).update(category_id, data))


@app.delete("/api/categories/{category_id}", status_code=204)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    CategoryService(db, user_id).delete(category_id)
    return Response(status_code=204)


# Transactions


@app.get("/api/transactions", response_model=TransactionPageOut)
def list_transactions(
    account_id: Optional[int] = Query(None, alias="accountId"),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    type: Optional[TransactionType] = Query(None),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None, max_length=200),
    tags: Optional[list[str]] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: Literal["date", "amount", "description", "created_at"] = Query(
        "date", alias="sortBy"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    query = TransactionQuery(
        account_id=account_id,
        category_id=category_id,
        type=type,
        start_date=start_date,
        end_date=end_date,
        search=search,
        tags=tags or [],
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return TransactionPageOut.from_page(TransactionService(db, user_id).list(query))


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    data: TransactionIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return TransactionOut.from_model(TransactionService(db, user_id).create(data))


@app.get("/api/transactions/statistics", response_model=TransactionStatisticsOut)
def transaction_statistics(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    stats = TransactionService(db, user_id).statistics(start_date, end_date)
    return TransactionStatisticsOut.from_statistics(stats)


@app.get("/api/transactions/{transaction_id}", response_model=TransactionOut)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return TransactionOut.from_model(TransactionService(db, user_id).get(transaction_id))


@app.patch("/api/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: int,
    data: TransactionUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    txn = TransactionService(db, user_id).update(transaction_id, data)
    return TransactionOut.from_model(txn)


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    TransactionService(db, user_id).delete(transaction_id)
    return Response(status_code=204)


# Budgets


@app.get("/api/budgets", response_model=list[BudgetOut])
def list_budgets(
    period: Optional[BudgetPeriod] = Query(None),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return [BudgetOut.from_progress(p) for p in BudgetService(db, user_id).list(period)]


@app.post("/api/budgets", response_model=BudgetOut, status_code=201)
def create_budget(
    data: BudgetIn,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return BudgetOut.from_model(BudgetService(db, user_id).create(data))


@app.get("/api/budgets/alerts", response_model=list[BudgetAlertOut])
def budget_alerts(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return [BudgetAlertOut.from_alert(a) for a in BudgetService(db, user_id).alerts()]


@app.get("/api/budgets/{budget_id}", response_model=BudgetOut)
def get_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return BudgetOut.from_progress(BudgetService(db, user_id).get(budget_id))


@app.patch("/api/budgets/{budget_id}", response_model=BudgetOut)
def update_budget(
    budget_id: int,
    data: BudgetUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    return BudgetOut.from_model(BudgetService(db, user_id).update(budget_id, data))


@app.delete("/api/budgets/{budget_id}", status_code=204)
def delete_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    BudgetService(db, user_id).delete(budget_id)
    return Response(status_code=204)


# Analytics


@app.get("/api/analytics/dashboard", response_model=DashboardOut)
def analytics_dashboard(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    overview = AnalyticsService(db, user_id).dashboard_overview()
    return DashboardOut.from_overview(overview)


@app.get(
    "/api/analytics/spending-by-category", response_model=list[CategorySpendingOut]
)
def analytics_spending_by_category(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    rows = AnalyticsService(db, user_id).spending_by_category(start_date, end_date)
    return [CategorySpendingOut.from_row(r) for r in rows]


@app.get("/api/analytics/trends", response_model=list[TrendPointOut])
def analytics_trends(
    period: Literal["week", "month", "year"] = Query(...),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    points = AnalyticsService(db, user_id).spending_trends(period)
    return [TrendPointOut.from_point(p) for p in points]


@app.get("/api/analytics/monthly-summary", response_model=MonthlySummaryOut)
def analytics_monthly_summary(
    month: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    summary = AnalyticsService(db, user_id).monthly_summary(month or date.today())
    return MonthlySummaryOut.from_summary(summary)


@app.get("/api/analytics/year-to-date", response_model=YearToDateOut)
def analytics_year_to_date(
    db: Session = Depends(get_db), user_id: int = Depends(current_user_id)
):
    return YearToDateOut.from_summary(AnalyticsService(db, user_id).year_to_date_summary())


@app.get("/api/analytics/recent-transactions", response_model=list[TransactionOut])
def analytics_recent_transactions(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    user_id: int = Depends(current_user_id),
):
    txns = AnalyticsService(db, user_id).recent_transactions(limit)
    return [TransactionOut.from_model(t) for t in txns]


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
