"""Utility functions for dates, list totals and in-memory filtering."""
import datetime as dt
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Optional

from models import Expense

def _round_money(dec: Decimal) -> float:
    """Round a Decimal to 2 decimal places with HALF_UP (normal money rounding)."""
    return float(dec.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

def compute_summary(expenses: Iterable[Expense]) -> dict[str, Any]:
    """
    Total and count for the list page.

    Records without an amount still count but add nothing to the total.
    """
    total_dec = Decimal("0")
    count = 0

    for e in expenses:
        count += 1
        if e.amount is None:
            continue
        total_dec += Decimal(str(e.amount))

    return {
        "total": _round_money(total_dec),
        "count": count,
    }


def normalize_iso_date(value: Any) -> dt.date:
    """Normalize a value to a date or raise a ValueError."""
    if isinstance(value, dt.date):
        return value

    if isinstance(value, str):
        try:
            return dt.datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError:
            raise ValueError("Invalid date format. Expected YYYY-MM-DD.")

    raise ValueError("Invalid date format. Expected YYYY-MM-DD.")


def filter_expenses(
    expenses: Iterable[Expense],
    query: Optional[str] = None,
    category: Optional[str] = None,
) -> list[Expense]:
    """Filter expenses by text query and exact category."""
    q = (query or "").strip().lower()
    results: list[Expense] = []

    for e in expenses:

        if category and e.category != category:
            continue

        if q:
            description = (e.description or "").lower()
            notes = (e.notes or "").lower()
            if q not in description and q not in notes:
                continue

        results.append(e)

    return results
