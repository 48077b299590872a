"""Error taxonomy shared by the goal services, stores and HTTP layer."""

from __future__ import annotations

from typing import Any


class GoalPlannerError(Exception):
    """Base exception for goal planner failures."""


class GoalValidationError(GoalPlannerError, ValueError):
    """Raised when a draft, patch or deposit is malformed. Never reaches the store."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class GoalNotFoundError(GoalPlannerError, LookupError):
    """Raised when an operation references a goal id the store does not know."""

    def __init__(self, goal_id: Any):
        super().__init__(f"Goal not found: {goal_id}")
        self.goal_id = goal_id


class GoalConflictError(GoalPlannerError):
    """Raised when a conditional write loses against an intervening write."""

    def __init__(self, goal_id: Any, expected_version: int | None = None):
        super().__init__(f"Goal {goal_id} was modified concurrently")
        self.goal_id = goal_id
        self.expected_version = expected_version


class StoreTransportError(GoalPlannerError):
    """Raised when the record store is unreachable or answers unexpectedly."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
