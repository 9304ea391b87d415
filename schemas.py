"""Pydantic schemas for form payloads and validation."""
from typing import Any, Mapping, Optional
from decimal import Decimal
import datetime as dt

from pydantic import BaseModel, Field, ValidationError, field_validator

from utils import normalize_iso_date

DESCRIPTION_MAX_LEN = 255
CATEGORY_MAX_LEN = 50
NOTES_MAX_LEN = 1000

# Offered in the category <datalist>; any other non-blank text is accepted too.
SUGGESTED_CATEGORIES = [
    "Food",
    "Transportation",
    "Entertainment",
    "Shopping",
    "Bills",
    "Other",
]

REQUIRED_MESSAGES = {
    "description": "Description is required",
    "amount": "Amount is required",
    "date": "Date is required",
    "category": "Category is required",
}

FORM_FIELDS = ("description", "amount", "date", "category", "notes")


class ExpenseForm(BaseModel):
    """A submitted add/edit form that passed validation."""
    description: str = Field(max_length=DESCRIPTION_MAX_LEN)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    date: dt.date
    category: str = Field(max_length=CATEGORY_MAX_LEN)
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LEN)

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v):
        return normalize_iso_date(v)


def clean_form_data(data: Mapping[str, Any]) -> dict[str, Any]:
    """Keep known fields, strip strings and drop blank values."""
    cleaned: dict[str, Any] = {}
    for field in FORM_FIELDS:
        value = data.get(field)
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "":
            continue
        cleaned[field] = value
    return cleaned


def _message_for(field: str, error: dict) -> str:
    err_type = error["type"]
    if err_type == "missing":
        return REQUIRED_MESSAGES.get(field, "This field is required")
    if field == "amount":
        if err_type == "greater_than":
            return "Amount must be positive"
        if err_type == "decimal_max_places":
            return "Amount can have at most 2 decimal places"
        if err_type in ("decimal_max_digits", "decimal_whole_digits"):
            return "Amount is too large"
        return "Amount must be a number"
    if err_type == "string_too_long":
        limit = error.get("ctx", {}).get("max_length")
        return f"{field.capitalize()} must be at most {limit} characters"
    if err_type == "value_error":
        return str(error["ctx"]["error"])
    return error["msg"]


def validate_expense_form(
    data: Mapping[str, Any],
) -> tuple[Optional[ExpenseForm], dict[str, str]]:
    """
    Validate raw form values.

    Returns (form, {}) on success or (None, {field: message}) on failure.
    Only the first problem per field is reported.
    """
    try:
        return ExpenseForm(**clean_form_data(data)), {}
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "form"
            errors.setdefault(field, _message_for(field, error))
        return None, errors
