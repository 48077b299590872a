"""Port for the external goal record store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

from ..models import Goal


class GoalStore(ABC):
    """
    Whole-record store reachable by id.

    `fields` and `record` mappings use snake_case keys with Python values
    (Decimal, date); adapters own the translation to their transport.
    """

    @abstractmethod
    async def list_goals(self) -> list[Goal]:
        pass

    @abstractmethod
    async def get_goal(self, goal_id: str) -> Goal:
        """Raises GoalNotFoundError if absent."""
        pass

    @abstractmethod
    async def create_goal(self, record: dict[str, Any]) -> Goal:
        """Stores a new record and returns it with its assigned id."""
        pass

    @abstractmethod
    async def update_goal(
        self,
        goal_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Goal:
        """
        Partially update one record.

        With `expected_version` set the write only succeeds while the stored
        version still matches; otherwise GoalConflictError is raised.
        """
        pass

    @abstractmethod
    async def delete_goal(self, goal_id: str) -> None:
        """Raises GoalNotFoundError if absent."""
        pass

    @property
    def supports_atomic_increment(self) -> bool:
        """True when the adapter overrides `increment_saved`."""
        return type(self).increment_saved is not GoalStore.increment_saved

    async def increment_saved(self, goal_id: str, amount: Decimal) -> Goal:
        """Native `saved_amount = saved_amount + amount`; adapters without one leave this alone."""
        raise NotImplementedError(f"{type(self).__name__} has no atomic increment")

    async def close(self) -> None:
        return None
