"""Session cache of goals kept consistent with the external store."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any

from ..errors import GoalNotFoundError
from ..models import Goal, GoalDraft, GoalPatch, validate_draft, validate_patch
from ..stores.base import GoalStore
from .deposits import DepositReconciler
from .goal_summary import GoalOverview, GoalSummary, build_overview, summarize_goals

logger = logging.getLogger(__name__)


class GoalCollection:
    """
    The in-memory goal list behind the rendered view.

    The cache only ever changes after the store has confirmed a write, and
    never when a call fails. Writes to the same goal id are serialized, so
    their results land in the order the store accepted them. A refresh
    never rolls back a write confirmed while its listing was in flight.
    """

    def __init__(
        self,
        store: GoalStore,
        reconciler: DepositReconciler | None = None,
        *,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.store = store
        self.reconciler = reconciler or DepositReconciler(store)
        self._today = today
        self._goals: list[Goal] = []
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}
        self._writes = itertools.count(1)
        self._last_write = 0
        # id -> (write number, confirmed goal or None if removed), kept only
        # while at least one refresh is in flight.
        self._confirmed: dict[str, tuple[int, Goal | None]] = {}
        self._refreshes_in_flight = 0

    def list(self) -> list[Goal]:
        """Cached goals; does not hit the store."""
        return list(self._goals)

    def get(self, goal_id: str) -> Goal:
        goal_id = str(goal_id)
        for goal in self._goals:
            if goal.id == goal_id:
                return goal
        raise GoalNotFoundError(goal_id)

    def summary(self) -> GoalSummary:
        return summarize_goals(self._goals)

    def overview(self, now: datetime | date) -> GoalOverview:
        return build_overview(self._goals, now)

    async def refresh(self) -> list[Goal]:
        started = self._last_write
        self._refreshes_in_flight += 1
        try:
            goals = await self.store.list_goals()
            self._goals = self._merge(goals, started)
        finally:
            self._refreshes_in_flight -= 1
            if not self._refreshes_in_flight:
                self._confirmed.clear()

        logger.info("Loaded %d goals from store", len(self._goals))
        return self.list()

    async def add(self, draft: Mapping[str, Any] | GoalDraft) -> Goal:
        valid = validate_draft(draft)
        goal = await self.store.create_goal(valid.to_record(self._today()))
        self._goals.append(goal)
        self._record_write(goal.id, goal)
        logger.info("Added goal %s (%s)", goal.id, goal.name)
        return goal

    async def update(self, goal_id: str, patch: Mapping[str, Any] | GoalPatch) -> Goal:
        goal_id = str(goal_id)
        self.get(goal_id)
        fields = validate_patch(patch).fields()

        async with self._locked(goal_id):
            goal = await self.store.update_goal(goal_id, fields)
            self._replace(goal)

        logger.info("Updated goal %s: %s", goal_id, ", ".join(sorted(fields)))
        return goal

    async def remove(self, goal_id: str) -> None:
        """Idempotent: a goal the store no longer knows counts as removed."""
        goal_id = str(goal_id)

        async with self._locked(goal_id):
            try:
                await self.store.delete_goal(goal_id)
            except GoalNotFoundError:
                logger.debug("Goal %s already absent from store", goal_id)
            self._goals = [goal for goal in self._goals if goal.id != goal_id]
            self._record_write(goal_id, None)

        logger.info("Removed goal %s", goal_id)

    async def deposit(self, goal_id: str, amount: Any) -> Goal:
        goal_id = str(goal_id)

        async with self._locked(goal_id):
            goal = await self.reconciler.deposit(goal_id, amount)
            self._replace(goal)

        return goal

    @asynccontextmanager
    async def _locked(self, goal_id: str) -> AsyncIterator[None]:
        """Per-id lock, dropped again once nobody holds or awaits it."""
        lock = self._locks.get(goal_id)
        if lock is None:
            lock = self._locks[goal_id] = asyncio.Lock()
        self._lock_users[goal_id] = self._lock_users.get(goal_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[goal_id] -= 1
            if not self._lock_users[goal_id]:
                del self._lock_users[goal_id]
                del self._locks[goal_id]

    def _record_write(self, goal_id: str, goal: Goal | None) -> None:
        self._last_write = next(self._writes)
        if self._refreshes_in_flight:
            self._confirmed[goal_id] = (self._last_write, goal)

    def _merge(self, listed: list[Goal], started: int) -> list[Goal]:
        newer = {
            goal_id: goal
            for goal_id, (write, goal) in self._confirmed.items()
            if write > started
        }
        listed_ids = {goal.id for goal in listed}
        merged = [newer.get(goal.id, goal) for goal in listed]
        merged.extend(goal for goal_id, goal in newer.items() if goal_id not in listed_ids)
        # None marks a goal removed after the listing started.
        return [goal for goal in merged if goal is not None]

    def _replace(self, updated: Goal) -> None:
        self._goals = [updated if goal.id == updated.id else goal for goal in self._goals]
        self._record_write(updated.id, updated)
