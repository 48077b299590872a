"""In-process goal store for local runs and tests."""

from __future__ import annotations

import asyncio
import itertools
from decimal import Decimal
from typing import Any

from ..errors import GoalConflictError, GoalNotFoundError
from ..models import Goal
from .base import GoalStore


class InMemoryGoalStore(GoalStore):
    """
    Dict-backed store with per-record versions.

    Every call yields to the event loop once, between reading and answering,
    so concurrent callers interleave the way they would against a remote store.
    """

    def __init__(self, goals: list[Goal] | None = None) -> None:
        self._goals: dict[str, Goal] = {}
        self._ids = itertools.count(1)
        self.calls: list[str] = []

        for goal in goals or []:
            self._goals[goal.id] = goal if goal.version is not None else goal.model_copy(update={"version": 1})

    def _require(self, goal_id: str) -> Goal:
        goal = self._goals.get(str(goal_id))
        if goal is None:
            raise GoalNotFoundError(goal_id)
        return goal

    def _next_id(self) -> str:
        goal_id = str(next(self._ids))
        while goal_id in self._goals:
            goal_id = str(next(self._ids))
        return goal_id

    async def list_goals(self) -> list[Goal]:
        self.calls.append("list")
        goals = list(self._goals.values())
        await asyncio.sleep(0)
        return goals

    async def get_goal(self, goal_id: str) -> Goal:
        self.calls.append("get")
        goal = self._require(goal_id)
        await asyncio.sleep(0)
        return goal

    async def create_goal(self, record: dict[str, Any]) -> Goal:
        self.calls.append("create")
        await asyncio.sleep(0)
        goal = Goal.model_validate({**record, "id": self._next_id(), "version": 1})
        self._goals[goal.id] = goal
        return goal

    async def update_goal(
        self,
        goal_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Goal:
        self.calls.append("update")
        await asyncio.sleep(0)
        current = self._require(goal_id)
        if expected_version is not None and current.version != expected_version:
            raise GoalConflictError(goal_id, expected_version)

        updated = Goal.model_validate(
            {
                **current.model_dump(),
                **fields,
                "id": current.id,
                "version": (current.version or 0) + 1,
            }
        )
        self._goals[updated.id] = updated
        return updated

    async def delete_goal(self, goal_id: str) -> None:
        self.calls.append("delete")
        await asyncio.sleep(0)
        self._require(goal_id)
        del self._goals[str(goal_id)]


class AtomicInMemoryGoalStore(InMemoryGoalStore):
    """In-process store that also offers a native increment."""

    async def increment_saved(self, goal_id: str, amount: Decimal) -> Goal:
        self.calls.append("increment")
        await asyncio.sleep(0)
        current = self._require(goal_id)
        updated = current.model_copy(
            update={
                "saved_amount": current.saved_amount + amount,
                "version": (current.version or 0) + 1,
            }
        )
        self._goals[updated.id] = updated
        return updated
