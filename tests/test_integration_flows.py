import re
from decimal import Decimal

from sqlmodel import Session, select

from models import Expense
from conftest import test_engine


def stored_expenses() -> list[Expense]:
    with Session(test_engine) as session:
        return list(session.exec(select(Expense).order_by(Expense.id)).all())


# TEST 1: create -> update -> delete through the HTML pages


def test_coffee_lifecycle(client):
    """
    Integration test: drive the real pages end to end and check the stored
    row after every step.
    """
    res = client.post(
        "/expenses",
        data={
            "description": "Coffee",
            "amount": "3.50",
            "date": "2024-01-05",
            "category": "Food",
        },
    )
    # redirect followed back to the list page
    assert res.status_code == 200
    assert str(res.url).endswith("/expenses")

    rows = stored_expenses()
    assert len(rows) == 1
    coffee = rows[0]
    assert coffee.id is not None
    assert coffee.description == "Coffee"
    assert coffee.amount == Decimal("3.50")
    assert coffee.date.isoformat() == "2024-01-05"
    assert coffee.category == "Food"
    assert coffee.notes is None

    res = client.post(
        f"/expenses/update/{coffee.id}",
        data={
            "description": "Coffee",
            "amount": "4.00",
            "date": "2024-01-05",
            "category": "Food",
        },
    )
    assert res.status_code == 200
    assert re.search(r'<td class="amount">4\.00</td>', res.text)

    rows = stored_expenses()
    assert len(rows) == 1
    assert rows[0].id == coffee.id
    assert rows[0].amount == Decimal("4.00")
    assert rows[0].description == "Coffee"

    res = client.get(f"/expenses/delete/{coffee.id}")
    assert res.status_code == 200
    assert "No expenses recorded yet." in res.text
    assert stored_expenses() == []


# TEST 2: rejected submissions never reach the database


def test_rejected_submission_leaves_store_unchanged(client):
    client.post(
        "/expenses",
        data={"description": "Rent", "amount": "800", "date": "2024-01-01", "category": "Bills"},
    )
    before = [(e.id, e.amount) for e in stored_expenses()]

    res = client.post(
        "/expenses",
        data={"description": "Rent", "amount": "0", "date": "2024-01-01", "category": "Bills"},
    )
    assert res.status_code == 422

    assert [(e.id, e.amount) for e in stored_expenses()] == before


# TEST 3: /metrics exposed and Prometheus-ish


def test_metrics_endpoint_exposed(client):
    """
    Integration test: the Prometheus /metrics endpoint is available
    and returns something that looks like metrics text.
    """
    client.get("/expenses")
    resp = client.get("/metrics")
    assert resp.status_code == 200

    text = resp.text
    # Prometheus text format usually starts with '# HELP' / '# TYPE'
    assert "# HELP" in text or "# TYPE" in text
