from typing import Optional
from decimal import Decimal
import datetime as dt

from sqlmodel import SQLModel, Field

# This class describes what data will be stored in the database.
# One class = one table, each variable inside becomes a column.
class Expense(SQLModel, table=True):
    """Table that stores every expense entry.
    - 'category' is free text (the UI only suggests a fixed set)
    - 'date' may be left empty in Python; the service fills it in before saving
    """
    id: Optional[int] = Field(default=None, primary_key=True) # unique ID, set by the database
    description: str = Field(max_length=255) # what the money was spent on
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2) # must be a positive number
    date: Optional[dt.date] = Field(default=None, nullable=False, index=True) # when it happened
    category: str = Field(max_length=50, index=True) # e.g. 'Food' or 'Bills'
    notes: Optional[str] = None # an optional text note from the user
