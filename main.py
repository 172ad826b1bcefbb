import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionLocal
from errors import BudgetConflict, InvalidInput, NotFound, StoreUnavailable
from identity import resolve_owner
from models import TransactionType
from periods import Period, resolve_period
from schemas import BudgetIn, BudgetOut, TransactionIn, TransactionOut
from services import (
    AggregationService,
    BudgetService,
    InsightsService,
    ReportService,
    TransactionService,
)
from stores import LedgerFilter

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Tracker")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def current_owner(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    owner_id = resolve_owner(token.strip()) if scheme.lower() == "bearer" else None
    if not owner_id:
        raise HTTPException(
            status_code=401, detail="Authentication required. Please login."
        )
    return owner_id


@app.exception_handler(InvalidInput)
@app.exception_handler(NotFound)
@app.exception_handler(BudgetConflict)
@app.exception_handler(StoreUnavailable)
async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = getattr(exc, "status_code", 500)
    if status_code >= 500:
        logger.error(f"store_failure: path={request.url.path} error={exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())[1:])
        messages.append(f"{field}: {error.get('msg')}" if field else error.get("msg"))
    return JSONResponse(status_code=400, content={"detail": "; ".join(messages)})


def period_from_request(request: Request) -> Period:
    period_slug = request.query_params.get("period")
    start = request.query_params.get("start")
    end = request.query_params.get("end")
    return resolve_period(period_slug, start, end)


def filters_from_request(request: Request) -> LedgerFilter:
    type_param = request.query_params.get("type")
    category = request.query_params.get("category") or None
    txn_type = None
    if type_param:
        try:
            txn_type = TransactionType(type_param)
        except ValueError as exc:
            raise InvalidInput(
                "Invalid transaction type", field="type", value=type_param
            ) from exc
    return LedgerFilter(type=txn_type, category=category)


@app.post("/api/transactions", status_code=201)
def create_transaction(
    data: TransactionIn,
    db: Session = Depends(get_db),
    owner_id: str = Depends(current_owner),
):
    txn = TransactionService(db, owner_id).create(data)
    return {
        "message": "Transaction added successfully",
        "transaction": TransactionOut.model_validate(txn),
    }


@app.get("/api/transactions")
def list_transactions(
    request: Request,
    db: Session = Depends(get_db),
    owner_id: str = Depends(current_owner),
):
    period = period_from_request(request)
    filters = filters_from_request(request)
    try:
        page = max(int(request.query_params.get("page", "1")), 1)
        limit = min(max(int(request.query_params.get("limit", "50")), 1), 100)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid paging") from exc
    offset = (page - 1) * limit
    items = TransactionService(db, owner_id).list(
        period, filters, limit=limit + 1, offset=offset
    )
    has_more = len(items) > limit
    return {
        "items": [TransactionOut.model_validate(txn) for txn in items[:limit]],
        "page": page,
        "limit": limit,
        "has_more": has_more,
    }


@app.get("/api/transactions/export.csv")
def export_transactions_csv(
    request: Request,
    db: Session = Depends(get_db),
    owner_id: str = Depends(current_owner),
):
    period = period_from_request(request)
    filters = filters_from_request(request)
    content = TransactionService(db, owner_id).export_csv(period, filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"},
    )


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    owner_id: str = Depends(current_owner),
):
    TransactionService(db, owner_id).delete(transaction_id)
    return {"message": "Transaction deleted successfully"}


@app.post("/api/budget")
def set_budget(
    data: BudgetIn,
    response: Response,
    db: Session = Depends(get_db),
    owner_id: str = Depends(current_owner),
):
    budget, created = BudgetService(db, owner_id).set(data)
    if created:
        response.status_code = 201
    return {
        "message": "Budget created successfully"
        if created
        else "Budget updated successfully",
        "budget": BudgetOut.model_validate(budget),
    }


@app.get("/api/budget")
def list_budgets(
    db: Session = Depends(get_db), owner_id: str = Depends(current_owner)
):
    return [BudgetOut.model_validate(b) for b in BudgetService(db, owner_id).list()]


@app.get("/api/budget/alerts")
def budget_alerts(
    db: Session = Depends(get_db), owner_id: str = Depends(current_owner)
):
    return BudgetService(db, owner_id).alerts()


@app.get("/api/budget/summary")
def budget_summary(
    db: Session = Depends(get_db), owner_id: str = Depends(current_owner)
):
    return BudgetService(db, owner_id).summary()


@app.delete("/api/budget/{budget_id}")
def delete_budget(
    budget_id: int,
    db: Session = Depends(get_db),
    owner_id: str = Depends(current_owner),
):
    BudgetService(db, owner_id).delete(budget_id)
    return {"message": "Budget deleted successfully"}


@app.get("/api/analytics/expense-data")
def analytics_expense_data(
    db: Session = Depends(get_db), owner_id: str = Depends(current_owner)
):
    return AggregationService(db, owner_id).expense_distribution()


@app.get("/api/analytics/monthly-data")
def analytics_monthly_data(
    db: Session = Depends(get_db), owner_id: str = Depends(current_owner)
):
    return AggregationService(db, owner_id).monthly_trend()


@app.get("/api/analytics/budget-comparison")
def analytics_budget_comparison(
    db: Session = Depends(get_db), owner_id: str = Depends(current_owner)
):
    return BudgetService(db, owner_id).comparison()


@app.get("/api/analytics/insights")
def analytics_insights(
    db: Session = Depends(get_db), owner_id: str = Depends(current_owner)
):
    return InsightsService(db, owner_id).generate()


@app.get("/api/analytics/monthly-report")
def analytics_monthly_report(
    year: Optional[int] = None,
    month: Optional[int] = None,
    db: Session = Depends(get_db),
    owner_id: str = Depends(current_owner),
):
    service = ReportService(db, owner_id)
    if year is None and month is None:
        return service.monthly_report()
    if year is None or month is None:
        raise InvalidInput("Both year and month are required", field="month")
    return service.monthly_report_for(year, month)
