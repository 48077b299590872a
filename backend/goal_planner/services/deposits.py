"""Deposit reconciliation against stores without a guaranteed atomic increment."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any

from ..errors import GoalConflictError
from ..models import Goal, validate_deposit_amount
from ..stores.base import GoalStore

logger = logging.getLogger(__name__)


class DepositReconciler:
    """
    Applies `saved_amount += amount` to one goal.

    Stores with a native increment get a single call. Everything else goes
    through read, add, conditional write on the version that was read; a
    conflicting write restarts from a fresh read.
    """

    def __init__(
        self,
        store: GoalStore,
        *,
        max_attempts: int = 5,
        retry_delay_seconds: float = 0.05,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.store = store
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self._warned_unversioned = False

    async def deposit(self, goal_id: str, amount: Any) -> Goal:
        value = validate_deposit_amount(amount)

        if self.store.supports_atomic_increment:
            goal = await self.store.increment_saved(goal_id, value)
            logger.info("Deposited %s into goal %s (atomic), saved=%s", value, goal_id, goal.saved_amount)
            return goal

        return await self._deposit_with_version_check(goal_id, value)

    async def _deposit_with_version_check(self, goal_id: str, amount: Decimal) -> Goal:
        last_conflict: GoalConflictError | None = None

        for attempt in range(1, self.max_attempts + 1):
            current = await self.store.get_goal(goal_id)
            if current.version is None:
                self._warn_unversioned(goal_id)
            new_saved = current.saved_amount + amount
            try:
                goal = await self.store.update_goal(
                    goal_id,
                    {"saved_amount": new_saved},
                    expected_version=current.version,
                )
            except GoalConflictError as exc:
                last_conflict = exc
                logger.warning(
                    "Deposit into goal %s conflicted on version %s (attempt %d/%d)",
                    goal_id,
                    current.version,
                    attempt,
                    self.max_attempts,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay_seconds * attempt)
                continue

            logger.info("Deposited %s into goal %s, saved=%s", amount, goal_id, goal.saved_amount)
            return goal

        raise last_conflict or GoalConflictError(goal_id)

    def _warn_unversioned(self, goal_id: str) -> None:
        # Writes to unversioned records go out without a version check.
        if self._warned_unversioned:
            return
        self._warned_unversioned = True
        logger.warning(
            "Goal %s has no version; deposits to unversioned records rely on the in-process lock only",
            goal_id,
        )
