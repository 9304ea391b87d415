"""Persistence gateway for expenses: explicit queries against the expense table."""
import datetime as dt
import logging
from typing import Optional

from sqlmodel import Session, select

from models import Expense

logger = logging.getLogger(__name__)


def save_and_refresh(session: Session, instance):
    """Persist and refresh an instance in the current session."""
    session.add(instance)
    session.commit()
    session.refresh(instance)
    return instance


class ExpenseRepository:
    """CRUD plus two filtered lookups, all ordered by id (insertion order)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_all(self) -> list[Expense]:
        return list(self.session.exec(select(Expense).order_by(Expense.id)).all())

    def find_by_id(self, expense_id: int) -> Optional[Expense]:
        return self.session.get(Expense, expense_id)

    def save(self, expense: Expense) -> Expense:
        """Insert when the expense has no id yet, otherwise update the row with that id."""
        if expense.id is None:
            return save_and_refresh(self.session, expense)

        merged = self.session.merge(expense)
        self.session.commit()
        self.session.refresh(merged)
        return merged

    def delete_by_id(self, expense_id: int) -> bool:
        """Delete the row if it exists. Returns True when something was removed."""
        expense = self.session.get(Expense, expense_id)
        if expense is None:
            return False
        self.session.delete(expense)
        self.session.commit()
        return True

    def find_by_date_between(self, start: dt.date, end: dt.date) -> list[Expense]:
        """Both bounds are inclusive."""
        stmt = (
            select(Expense)
            .where(Expense.date >= start, Expense.date <= end)
            .order_by(Expense.id)
        )
        return list(self.session.exec(stmt).all())

    def find_by_category(self, category: str) -> list[Expense]:
        stmt = select(Expense).where(Expense.category == category).order_by(Expense.id)
        return list(self.session.exec(stmt).all())
