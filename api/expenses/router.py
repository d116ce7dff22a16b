"""
Expense API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from . import schemas
from .dependencies import get_expense_service
from .service import ExpenseService

router = APIRouter()


@router.get("/expenses", response_model=list[schemas.Expense])
async def list_expenses(
    expense_service: ExpenseService = Depends(get_expense_service),
) -> list[schemas.Expense]:
    return await expense_service.list_expenses()


@router.get("/expenses/{expense_id}", response_model=schemas.Expense)
async def get_expense(
    expense_id: int,
    expense_service: ExpenseService = Depends(get_expense_service),
) -> schemas.Expense:
    return await expense_service.get_expense(expense_id)


@router.post(
    "/expenses",
    response_model=schemas.Expense,
    status_code=status.HTTP_201_CREATED,
)
async def create_expense(
    payload: schemas.ExpenseIn,
    expense_service: ExpenseService = Depends(get_expense_service),
) -> schemas.Expense:
    return await expense_service.create_expense(payload)


@router.put("/expenses/{expense_id}", response_model=schemas.Expense)
async def update_expense(
    expense_id: int,
    payload: schemas.ExpenseIn,
    expense_service: ExpenseService = Depends(get_expense_service),
) -> schemas.Expense:
    """
    Replace all fields of an expense. The path id is kept; an id in the body is ignored.
    """
    return await expense_service.update_expense(expense_id, payload)
