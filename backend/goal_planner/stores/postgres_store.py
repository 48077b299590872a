"""Postgres-backed goal store on psycopg async connections."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

import psycopg

from ..errors import GoalConflictError, GoalNotFoundError, StoreTransportError
from ..models import Goal
from .base import GoalStore

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

ConnectionFactory = Callable[[], AbstractAsyncContextManager[AsyncConnection]]

GOAL_COLUMNS = "id, name, category, target_amount, saved_amount, deadline, created_at, version"
UPDATABLE_COLUMNS = ("name", "category", "target_amount", "saved_amount", "deadline")

CREATE_GOALS_TABLE = """
CREATE TABLE IF NOT EXISTS goals (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    category TEXT NOT NULL,
    target_amount NUMERIC(12, 2) NOT NULL CHECK (target_amount >= 0),
    saved_amount NUMERIC(12, 2) NOT NULL DEFAULT 0,
    deadline DATE NOT NULL,
    created_at DATE NOT NULL DEFAULT CURRENT_DATE,
    version INTEGER NOT NULL DEFAULT 1
)
"""


def _goal_uuid(goal_id: str) -> UUID:
    # Ids that are not UUIDs cannot exist in this table.
    try:
        return UUID(str(goal_id))
    except ValueError as exc:
        raise GoalNotFoundError(goal_id) from exc


class PostgresGoalStore(GoalStore):
    """Goals table store with a native atomic increment and a version column."""

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory

    @asynccontextmanager
    async def _cursor(self) -> AsyncIterator[Any]:
        try:
            async with self._connection_factory() as connection:
                async with connection.cursor() as cursor:
                    yield cursor
        except psycopg.OperationalError as exc:
            raise StoreTransportError(f"Goal database unavailable: {exc}") from exc

    async def ensure_schema(self) -> None:
        async with self._cursor() as cursor:
            await cursor.execute(CREATE_GOALS_TABLE)

    async def list_goals(self) -> list[Goal]:
        async with self._cursor() as cursor:
            await cursor.execute(
                f"""
                SELECT {GOAL_COLUMNS}
                FROM goals
                ORDER BY deadline ASC, created_at ASC
                """
            )
            rows = await cursor.fetchall()
        return [Goal.from_record(row) for row in rows]

    async def get_goal(self, goal_id: str) -> Goal:
        row = await self._fetch_row(_goal_uuid(goal_id))
        if row is None:
            raise GoalNotFoundError(goal_id)
        return Goal.from_record(row)

    async def create_goal(self, record: dict[str, Any]) -> Goal:
        async with self._cursor() as cursor:
            await cursor.execute(
                f"""
                INSERT INTO goals (name, category, target_amount, saved_amount, deadline, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING {GOAL_COLUMNS}
                """,
                (
                    record["name"],
                    record["category"],
                    record["target_amount"],
                    record.get("saved_amount", Decimal("0.00")),
                    record["deadline"],
                    record["created_at"],
                ),
            )
            row = await cursor.fetchone()
        return Goal.from_record(row)

    async def update_goal(
        self,
        goal_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Goal:
        goal_uuid = _goal_uuid(goal_id)
        columns = [column for column in UPDATABLE_COLUMNS if column in fields]
        if not columns:
            return await self.get_goal(goal_id)

        assignments = ", ".join(f"{column} = %s" for column in columns)
        params: list[Any] = [fields[column] for column in columns]
        sql = f"""
        UPDATE goals
        SET {assignments},
            version = version + 1
        WHERE id = %s
        """
        params.append(goal_uuid)

        if expected_version is not None:
            sql += " AND version = %s"
            params.append(expected_version)

        sql += f" RETURNING {GOAL_COLUMNS}"

        async with self._cursor() as cursor:
            await cursor.execute(sql, tuple(params))
            row = await cursor.fetchone()

        if row is None:
            if expected_version is not None and await self._fetch_row(goal_uuid) is not None:
                raise GoalConflictError(goal_id, expected_version)
            raise GoalNotFoundError(goal_id)
        return Goal.from_record(row)

    async def delete_goal(self, goal_id: str) -> None:
        async with self._cursor() as cursor:
            await cursor.execute(
                """
                DELETE FROM goals
                WHERE id = %s
                RETURNING id
                """,
                (_goal_uuid(goal_id),),
            )
            row = await cursor.fetchone()

        if row is None:
            raise GoalNotFoundError(goal_id)

    async def increment_saved(self, goal_id: str, amount: Decimal) -> Goal:
        async with self._cursor() as cursor:
            await cursor.execute(
                f"""
                UPDATE goals
                SET saved_amount = saved_amount + %s,
                    version = version + 1
                WHERE id = %s
                RETURNING {GOAL_COLUMNS}
                """,
                (amount, _goal_uuid(goal_id)),
            )
            row = await cursor.fetchone()

        if row is None:
            raise GoalNotFoundError(goal_id)
        return Goal.from_record(row)

    async def _fetch_row(self, goal_uuid: UUID) -> dict[str, Any] | None:
        async with self._cursor() as cursor:
            await cursor.execute(
                f"""
                SELECT {GOAL_COLUMNS}
                FROM goals
                WHERE id = %s
                """,
                (goal_uuid,),
            )
            return await cursor.fetchone()
