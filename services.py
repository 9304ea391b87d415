"""Business rules that sit between the web handlers and the repository."""
import datetime as dt
import logging
from typing import Callable

from models import Expense
from repository import ExpenseRepository

logger = logging.getLogger(__name__)


class ExpenseNotFoundError(LookupError):
    """Raised when an expense id does not exist."""

    def __init__(self, expense_id: int) -> None:
        super().__init__(f"Expense not found with id: {expense_id}")
        self.expense_id = expense_id


class ExpenseService:
    def __init__(
        self,
        repository: ExpenseRepository,
        clock: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.repository = repository
        self.clock = clock

    def list_expenses(self) -> list[Expense]:
        return self.repository.find_all()

    def save(self, expense: Expense) -> Expense:
        """
        Persist an expense (insert without id, update with id).

        The only default applied here: a missing date becomes today's date.
        """
        if expense.date is None:
            expense.date = self.clock()

        is_new = expense.id is None
        saved = self.repository.save(expense)
        logger.info("%s expense id=%s", "Created" if is_new else "Updated", saved.id)
        return saved

    def get_by_id(self, expense_id: int) -> Expense:
        expense = self.repository.find_by_id(expense_id)
        if expense is None:
            logger.warning("Expense id=%s not found", expense_id)
            raise ExpenseNotFoundError(expense_id)
        return expense

    def delete_by_id(self, expense_id: int) -> None:
        """Delete an expense. Unknown ids are ignored."""
        if self.repository.delete_by_id(expense_id):
            logger.info("Deleted expense id=%s", expense_id)
        else:
            logger.debug("Delete skipped, expense id=%s does not exist", expense_id)

    def find_by_date_range(self, start: dt.date, end: dt.date) -> list[Expense]:
        return self.repository.find_by_date_between(start, end)

    def find_by_category(self, category: str) -> list[Expense]:
        return self.repository.find_by_category(category)
