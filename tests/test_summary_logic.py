from decimal import Decimal
import datetime as dt

from models import Expense
from utils import compute_summary


def make_expense(amount):
    return Expense(
        id=None,
        description="X",
        amount=Decimal(str(amount)),
        date=dt.date(2024, 1, 1),
        category="Other",
        notes=None,
    )


def test_summary_empty():
    result = compute_summary([])
    assert result["total"] == 0.0
    assert result["count"] == 0


def test_summary_sums_amounts_and_counts_records():
    expenses = [make_expense(3.50), make_expense(12), make_expense("0.25")]
    result = compute_summary(expenses)
    assert result["total"] == 15.75
    assert result["count"] == 3


def test_summary_rounds_like_money():
    result = compute_summary([make_expense("0.005"), make_expense("0.01")])
    # 0.015 -> 0.02 with HALF_UP
    assert result["total"] == 0.02


def test_summary_large_values():
    result = compute_summary([make_expense("9999999.99"), make_expense("0.01")])
    assert result["total"] == 10_000_000.00
