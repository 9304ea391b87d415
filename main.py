"""Main FastAPI application for the Expense Tracker."""
import os
import time
import logging
import datetime as dt
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request, status
from fastapi.staticfiles import StaticFiles
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import SQLModel, create_engine, Session

from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import OperationalError

from models import Expense
from repository import ExpenseRepository
from schemas import SUGGESTED_CATEGORIES, validate_expense_form
from services import ExpenseNotFoundError, ExpenseService
from utils import compute_summary, filter_expenses, normalize_iso_date

APP_NAME = "expense-tracker"
APP_VERSION = "0.1.0"
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./expense.db")
if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
else:
    connect_args = {}

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    echo=os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes"),
)

DB_STARTUP_RETRIES = int(os.getenv("DB_STARTUP_RETRIES", "10"))
DB_STARTUP_DELAY = float(os.getenv("DB_STARTUP_DELAY", "2"))


def init_db(retries: int = DB_STARTUP_RETRIES, delay: float = DB_STARTUP_DELAY) -> None:
    """Create tables, waiting for the database to accept connections."""
    last_exc: Exception | None = None

    for attempt in range(1, retries + 1):
        try:
            SQLModel.metadata.create_all(engine)
            logger.info("Database ready, tables created.")
            return
        except OperationalError as exc:
            last_exc = exc
            logger.warning(
                "DB not ready yet (attempt %s/%s); waiting %ss...",
                attempt, retries, delay,
            )
            time.sleep(delay)

    # If we get here, DB never became ready
    logger.error("Giving up connecting to the database.")
    if last_exc:
        raise last_exc
    raise RuntimeError("Database not reachable on startup.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Expense Tracker", version=APP_VERSION, lifespan=lifespan)

# Prometheus metrics at /metrics
instrumentator = Instrumentator().instrument(app)
instrumentator.expose(app)

app.mount("/static", StaticFiles(directory=os.path.join(BASE_DIR, "static")), name="static")
templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))


# One session per request, closed automatically afterwards.
def get_session():
    """Provide a database session per request."""
    with Session(engine) as session:
        yield session


async def submitted_form(request: Request) -> dict[str, str]:
    """Read the posted form here so the route itself can run in the threadpool."""
    form = await request.form()
    return {key: str(value) for key, value in form.items()}


def get_expense_service(session: Session = Depends(get_session)) -> ExpenseService:
    return ExpenseService(ExpenseRepository(session))


def empty_form() -> dict[str, str]:
    return {
        "description": "",
        "amount": "",
        "date": dt.date.today().isoformat(),
        "category": "",
        "notes": "",
    }


def form_from_expense(expense: Expense) -> dict[str, str]:
    """String values used to prefill the edit form."""
    return {
        "description": expense.description,
        "amount": f"{expense.amount:.2f}",
        "date": expense.date.isoformat() if expense.date else "",
        "category": expense.category,
        "notes": expense.notes or "",
    }


def render_list(
    request: Request,
    expenses: list[Expense],
    form: dict,
    errors: dict[str, str],
    filters: dict,
    status_code: int = status.HTTP_200_OK,
):
    return templates.TemplateResponse(
        request,
        "expenses/list.html",
        {
            "expenses": expenses,
            "summary": compute_summary(expenses),
            "form": form,
            "errors": errors,
            "filters": filters,
            "categories": SUGGESTED_CATEGORIES,
        },
        status_code=status_code,
    )


def render_edit(
    request: Request,
    expense_id: int,
    form: dict,
    errors: dict[str, str],
    status_code: int = status.HTTP_200_OK,
):
    return templates.TemplateResponse(
        request,
        "expenses/edit.html",
        {
            "expense_id": expense_id,
            "form": form,
            "errors": errors,
            "categories": SUGGESTED_CATEGORIES,
        },
        status_code=status_code,
    )


NO_FILTERS = {"category": "", "start": "", "end": "", "q": ""}


def redirect_to_list() -> RedirectResponse:
    # 303 so the browser follows up with a GET; a reload never resubmits the form.
    return RedirectResponse(url="/expenses", status_code=status.HTTP_303_SEE_OTHER)


@app.exception_handler(ExpenseNotFoundError)
async def expense_not_found_handler(request: Request, exc: ExpenseNotFoundError):
    return templates.TemplateResponse(
        request,
        "expenses/not_found.html",
        {"expense_id": exc.expense_id, "message": str(exc)},
        status_code=status.HTTP_404_NOT_FOUND,
    )


@app.get("/")
def root():
    return redirect_to_list()


@app.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        "app": APP_NAME,
        "version": APP_VERSION,
    }


# EXPENSE PAGES

@app.get("/expenses")
def list_expenses(
    request: Request,
    category: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    q: Optional[str] = None,
    service: ExpenseService = Depends(get_expense_service),
):
    """List expenses (optionally filtered) together with the add form."""
    category = (category or "").strip() or None
    errors: dict[str, str] = {}

    # The filter form submits empty strings for untouched date inputs.
    try:
        start_date = normalize_iso_date(start.strip()) if start and start.strip() else None
        end_date = normalize_iso_date(end.strip()) if end and end.strip() else None
    except ValueError as exc:
        errors["filter"] = str(exc)
        start_date = end_date = None

    if start_date or end_date:
        expenses = service.find_by_date_range(
            start_date or dt.date.min, end_date or dt.date.max
        )
        if category:
            expenses = filter_expenses(expenses, category=category)
    elif category:
        expenses = service.find_by_category(category)
    else:
        expenses = service.list_expenses()

    if q:
        expenses = filter_expenses(expenses, query=q)

    filters = {
        "category": category or "",
        "start": start_date.isoformat() if start_date else "",
        "end": end_date.isoformat() if end_date else "",
        "q": q or "",
    }
    return render_list(
        request,
        expenses,
        empty_form(),
        errors,
        filters,
        status_code=status.HTTP_400_BAD_REQUEST if errors else status.HTTP_200_OK,
    )


@app.post("/expenses")
def create_expense(
    request: Request,
    submitted: dict = Depends(submitted_form),
    service: ExpenseService = Depends(get_expense_service),
):
    """Create an expense from the add form."""
    form, errors = validate_expense_form(submitted)

    if errors:
        logger.info("Rejected new expense: %s", errors)
        values = {**empty_form(), **submitted}
        return render_list(
            request,
            service.list_expenses(),
            values,
            errors,
            NO_FILTERS,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    service.save(Expense(**form.model_dump()))
    return redirect_to_list()


@app.get("/expenses/edit/{expense_id}")
def edit_expense(
    request: Request,
    expense_id: int,
    service: ExpenseService = Depends(get_expense_service),
):
    """Show the edit form for one expense (404 page if it does not exist)."""
    expense = service.get_by_id(expense_id)
    return render_edit(request, expense_id, form_from_expense(expense), {})


@app.post("/expenses/update/{expense_id}")
def update_expense(
    request: Request,
    expense_id: int,
    submitted: dict = Depends(submitted_form),
    service: ExpenseService = Depends(get_expense_service),
):
    """Replace an expense with the submitted values. The id always comes from the URL."""
    service.get_by_id(expense_id)

    form, errors = validate_expense_form(submitted)

    if errors:
        logger.info("Rejected update of expense id=%s: %s", expense_id, errors)
        values = {**empty_form(), **submitted}
        return render_edit(
            request,
            expense_id,
            values,
            errors,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    data = form.model_dump()
    data["id"] = expense_id
    service.save(Expense(**data))
    return redirect_to_list()


@app.get("/expenses/delete/{expense_id}")
def delete_expense(
    expense_id: int,
    service: ExpenseService = Depends(get_expense_service),
):
    """Delete an expense and go back to the list, whether or not it existed."""
    service.delete_by_id(expense_id)
    return redirect_to_list()
