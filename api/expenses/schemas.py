"""
Pydantic schemas for expense endpoints.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, Field, field_serializer, field_validator

# Integral floats below this magnitude are written without a fraction ("89").
_PLAIN_INTEGER_LIMIT = 1e21


class ExpenseIn(BaseModel):
    """
    Request body for create and update. A client-supplied `id` is ignored.
    """

    title: str = ""
    amount: float = 0.0
    note: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_must_be_a_finite_number(cls, value: Any) -> Any:
        # Only JSON numbers; no strings, booleans, NaN or infinities.
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("amount must be a number")
        try:
            finite = math.isfinite(value)
        except OverflowError:
            finite = False
        if not finite:
            raise ValueError("amount must be a finite number")
        return value


class Expense(BaseModel):
    id: int
    title: str
    amount: float
    note: str
    tags: list[str]

    @field_serializer("amount", when_used="json")
    def _serialize_amount(self, amount: float) -> Any:
        if math.isfinite(amount) and amount.is_integer() and abs(amount) < _PLAIN_INTEGER_LIMIT:
            return int(amount)
        return amount
