from __future__ import annotations

from collections import deque
from typing import Any

import pytest
from fastapi.testclient import TestClient

from expenses import schemas
from expenses.dependencies import get_expense_service
from expenses.repository import ExpenseNotFoundError
from expenses.service import ExpenseService
from main import create_app


class RecordingDatabase:
    """
    Stand-in for `core.db.Database` that records statements and replays
    queued results, in the spirit of a SQL mock.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, tuple[Any, ...]]] = []
        self.results: deque[Any] = deque()
        self.error: Exception | None = None
        self.connected = False
        self.closed = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True

    async def _call(self, kind: str, sql: str, args: tuple[Any, ...], default: Any) -> Any:
        self.calls.append((kind, " ".join(sql.split()), args))
        if self.error is not None:
            raise self.error
        return self.results.popleft() if self.results else default

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        return await self._call("fetch_one", sql, args, None)

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        return await self._call("fetch_all", sql, args, [])

    async def execute(self, sql: str, *args: Any) -> str:
        return await self._call("execute", sql, args, "OK")


class InMemoryExpenseRepository:
    def __init__(self) -> None:
        self.rows: dict[int, schemas.Expense] = {}
        self.calls: list[str] = []
        self.error: Exception | None = None
        self._next_id = 1

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.error is not None:
            raise self.error

    async def initialize(self) -> None:
        self._record("initialize")

    async def list_all(self) -> list[schemas.Expense]:
        self._record("list_all")
        return list(self.rows.values())

    async def get_by_id(self, expense_id: int) -> schemas.Expense:
        self._record("get_by_id")
        if expense_id not in self.rows:
            raise ExpenseNotFoundError(expense_id)
        return self.rows[expense_id]

    async def insert(self, payload: schemas.ExpenseIn) -> schemas.Expense:
        self._record("insert")
        expense = schemas.Expense(id=self._next_id, **payload.model_dump())
        self.rows[expense.id] = expense
        self._next_id += 1
        return expense

    async def update(self, expense_id: int, payload: schemas.ExpenseIn) -> schemas.Expense:
        self._record("update")
        expense = schemas.Expense(id=expense_id, **payload.model_dump())
        if expense_id in self.rows:
            self.rows[expense_id] = expense
        return expense


@pytest.fixture()
def database() -> RecordingDatabase:
    return RecordingDatabase()


@pytest.fixture()
def repository() -> InMemoryExpenseRepository:
    return InMemoryExpenseRepository()


@pytest.fixture()
def app(database, repository):
    application = create_app(database=database)
    application.dependency_overrides[get_expense_service] = lambda: ExpenseService(repository)
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client
