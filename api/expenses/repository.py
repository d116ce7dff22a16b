"""
Expense persistence (raw SQL).
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Iterator

import asyncpg

from core import db
from core.errors import NotFoundError, StorageError

from . import schemas

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS expenses (
    id SERIAL PRIMARY KEY,
    title TEXT,
    amount FLOAT,
    note TEXT,
    tags TEXT[]
)
"""

_DRIVER_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    db.DatabaseNotReadyError,
)


class ExpenseNotFoundError(NotFoundError):
    def __init__(self, expense_id: int) -> None:
        super().__init__(f"expense {expense_id} not found")
        self.expense_id = expense_id


@contextlib.contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except _DRIVER_ERRORS as exc:
        raise StorageError(f"can't {action}: {exc}") from exc


def _row_to_expense(row: dict[str, Any]) -> schemas.Expense:
    return schemas.Expense(
        id=int(row["id"]),
        title=row["title"] or "",
        amount=float(row["amount"] or 0.0),
        note=row["note"] or "",
        tags=list(row["tags"] or []),
    )


class ExpenseRepository:
    def __init__(self, database: db.Database) -> None:
        self._db = database

    async def initialize(self) -> None:
        """
        Create the expenses table if it is missing. Safe on every startup.
        """
        with _storage_errors("create table"):
            await self._db.execute(CREATE_TABLE_SQL)

    async def list_all(self) -> list[schemas.Expense]:
        with _storage_errors("query all expenses"):
            rows = await self._db.fetch_all(
                """
                SELECT id, title, amount, note, tags
                FROM expenses
                """
            )
        return [_row_to_expense(r) for r in rows]

    async def get_by_id(self, expense_id: int) -> schemas.Expense:
        with _storage_errors("query expense by id"):
            row = await self._db.fetch_one(
                """
                SELECT id, title, amount, note, tags
                FROM expenses
                WHERE id = $1
                """,
                expense_id,
            )
        if row is None:
            raise ExpenseNotFoundError(expense_id)
        return _row_to_expense(row)

    async def insert(self, payload: schemas.ExpenseIn) -> schemas.Expense:
        with _storage_errors("create expense"):
            row = await self._db.fetch_one(
                """
                INSERT INTO expenses (title, amount, note, tags)
                VALUES ($1, $2, $3, $4)
                RETURNING id, title, amount, note, tags
                """,
                payload.title,
                payload.amount,
                payload.note,
                list(payload.tags),
            )
        if row is None:
            raise StorageError("can't create expense: no row returned")
        return _row_to_expense(row)

    async def update(self, expense_id: int, payload: schemas.ExpenseIn) -> schemas.Expense:
        """
        Overwrite every mutable field. Matching zero rows is not an error.
        """
        with _storage_errors("update expense"):
            status = await self._db.execute(
                """
                UPDATE expenses
                SET title = $2,
                    amount = $3,
                    note = $4,
                    tags = $5
                WHERE id = $1
                """,
                expense_id,
                payload.title,
                payload.amount,
                payload.note,
                list(payload.tags),
            )
        if db.affected_rows(status) == 0:
            logger.warning("expense_update_no_match id=%s", expense_id)
        return schemas.Expense(
            id=expense_id,
            title=payload.title,
            amount=payload.amount,
            note=payload.note,
            tags=list(payload.tags),
        )
