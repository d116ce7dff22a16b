"""
Expense business logic.

There are no business rules beyond the payload shape: empty titles, zero or
negative amounts and empty tag lists are all accepted.
"""

from __future__ import annotations

import logging

from . import schemas
from .repository import ExpenseRepository

logger = logging.getLogger(__name__)


class ExpenseService:
    def __init__(self, repository: ExpenseRepository) -> None:
        self._repository = repository

    async def list_expenses(self) -> list[schemas.Expense]:
        return await self._repository.list_all()

    async def get_expense(self, expense_id: int) -> schemas.Expense:
        return await self._repository.get_by_id(expense_id)

    async def create_expense(self, payload: schemas.ExpenseIn) -> schemas.Expense:
        expense = await self._repository.insert(payload)
        logger.info("expense_created id=%s", expense.id)
        return expense

    async def update_expense(self, expense_id: int, payload: schemas.ExpenseIn) -> schemas.Expense:
        expense = await self._repository.update(expense_id, payload)
        logger.info("expense_updated id=%s", expense.id)
        return expense
