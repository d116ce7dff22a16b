"""
Dependencies for expense routes.
"""

from __future__ import annotations

from fastapi import Request

from .service import ExpenseService


def get_expense_service(request: Request) -> ExpenseService:
    return request.app.state.expense_service
