"""Derived goal status and progress figures.

Everything here is a pure function of the goal and an injected reference time,
so callers decide what "now" means and tests never need to patch the clock.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, ROUND_FLOOR
from typing import Literal

from ..models import ZERO, Goal, quantize_amount

GoalStatus = Literal["complete", "overdue", "warning", "on_track"]
GOAL_STATUSES: tuple[GoalStatus, ...] = ("complete", "overdue", "warning", "on_track")

WARNING_WINDOW_DAYS = 30
SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class GoalProgress:
    """Display-ready progress figures for one goal at a given moment."""

    goal: Goal
    status: GoalStatus
    days_left: int
    remaining_amount: Decimal
    progress_pct: int
    deadline_label: str


def is_complete(goal: Goal) -> bool:
    """Single completion predicate shared by the evaluator and the aggregator."""
    return goal.saved_amount >= goal.target_amount


def days_left(deadline: date, now: datetime | date) -> int:
    """
    Whole days until the deadline, rounded up.

    The deadline counts from the start of its day. With a datetime `now` the
    partial day is rounded up, so a deadline later today yields 0 and one
    that started yesterday yields -1.
    """
    if isinstance(now, datetime):
        deadline_start = datetime.combine(deadline, time.min, tzinfo=now.tzinfo)
        return math.ceil((deadline_start - now).total_seconds() / SECONDS_PER_DAY)
    return (deadline - now).days


def status_for(goal: Goal, remaining_days: int) -> GoalStatus:
    """
    Rules, first match wins:
    - saved_amount >= target_amount -> complete (even past the deadline)
    - days_left < 0 -> overdue
    - 0 < days_left <= 30 -> warning
    - otherwise (days_left > 30, or exactly 0 for a deadline of today) -> on_track
    """
    if is_complete(goal):
        return "complete"
    if remaining_days < 0:
        return "overdue"
    if 0 < remaining_days <= WARNING_WINDOW_DAYS:
        return "warning"
    return "on_track"


def goal_status(goal: Goal, now: datetime | date) -> GoalStatus:
    return status_for(goal, days_left(goal.deadline, now))


def remaining_amount(goal: Goal) -> Decimal:
    return quantize_amount(max(goal.target_amount - goal.saved_amount, ZERO))


def progress_pct(goal: Goal) -> int:
    if goal.target_amount <= ZERO:
        return 100
    pct = int(((goal.saved_amount / goal.target_amount) * Decimal("100")).to_integral_value(rounding=ROUND_FLOOR))
    return max(0, min(pct, 100))


def deadline_label(remaining_days: int) -> str:
    if remaining_days >= 0:
        return f"{remaining_days} days left"
    return f"{-remaining_days} days overdue"


def evaluate_goal(goal: Goal, now: datetime | date) -> GoalProgress:
    remaining_days = days_left(goal.deadline, now)
    return GoalProgress(
        goal=goal,
        status=status_for(goal, remaining_days),
        days_left=remaining_days,
        remaining_amount=remaining_amount(goal),
        progress_pct=progress_pct(goal),
        deadline_label=deadline_label(remaining_days),
    )
