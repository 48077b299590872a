"""Collection-level reductions over goals."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from ..models import ZERO, Goal, quantize_amount
from .goal_status import GOAL_STATUSES, GoalProgress, GoalStatus, evaluate_goal, is_complete


@dataclass(frozen=True)
class GoalSummary:
    total_goals: int = 0
    total_saved: Decimal = ZERO
    completed_count: int = 0


@dataclass(frozen=True)
class GoalOverview:
    """Summary plus per-goal rows, as shown on the overview panel."""

    summary: GoalSummary
    status_counts: dict[GoalStatus, int]
    items: list[GoalProgress] = field(default_factory=list)


def summarize_goals(goals: Iterable[Goal]) -> GoalSummary:
    """Order-independent totals; an empty collection gives all zeros."""
    total_goals = 0
    total_saved = ZERO
    completed_count = 0

    for goal in goals:
        total_goals += 1
        total_saved += goal.saved_amount
        if is_complete(goal):
            completed_count += 1

    return GoalSummary(
        total_goals=total_goals,
        total_saved=quantize_amount(total_saved),
        completed_count=completed_count,
    )


def build_overview(goals: Iterable[Goal], now: datetime | date) -> GoalOverview:
    goals = list(goals)
    items = [evaluate_goal(goal, now) for goal in goals]

    status_counts: dict[GoalStatus, int] = {status: 0 for status in GOAL_STATUSES}
    for item in items:
        status_counts[item.status] += 1

    return GoalOverview(
        summary=summarize_goals(goals),
        status_counts=status_counts,
        items=items,
    )
