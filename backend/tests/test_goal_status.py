from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from goal_planner.models import Goal
from goal_planner.services import goal_status

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
TODAY = NOW.date()


def _goal(target="1000.00", saved="0.00", deadline=None) -> Goal:
    return Goal(
        id="1",
        name="Japan Trip",
        category="Travel",
        target_amount=Decimal(target),
        saved_amount=Decimal(saved),
        deadline=deadline or TODAY + timedelta(days=90),
        created_at=date(2026, 1, 1),
    )


def test_warning_scenario_ten_days_out() -> None:
    goal = _goal(target="1000.00", saved="400.00", deadline=TODAY + timedelta(days=10))

    progress = goal_status.evaluate_goal(goal, NOW)

    assert progress.status == "warning"
    assert progress.days_left == 10
    assert progress.remaining_amount == Decimal("600.00")
    assert progress.progress_pct == 40
    assert progress.deadline_label == "10 days left"


def test_complete_wins_over_past_deadline() -> None:
    goal = _goal(target="500.00", saved="500.00", deadline=TODAY - timedelta(days=1))

    progress = goal_status.evaluate_goal(goal, NOW)

    assert progress.status == "complete"
    assert progress.remaining_amount == Decimal("0.00")
    assert progress.days_left == -1
    assert progress.deadline_label == "1 days overdue"


@pytest.mark.parametrize(
    ("offset_days", "expected"),
    [
        (-30, "overdue"),
        (-1, "overdue"),
        (0, "on_track"),
        (1, "warning"),
        (30, "warning"),
        (31, "on_track"),
        (365, "on_track"),
    ],
)
def test_status_bands_for_unfinished_goal(offset_days, expected) -> None:
    goal = _goal(saved="10.00", deadline=TODAY + timedelta(days=offset_days))

    assert goal_status.goal_status(goal, NOW) == expected


@pytest.mark.parametrize("offset_days", [-400, -1, 0, 5, 400])
def test_reaching_target_is_complete_for_any_deadline(offset_days) -> None:
    goal = _goal(target="250.00", saved="300.00", deadline=TODAY + timedelta(days=offset_days))

    assert goal_status.goal_status(goal, NOW) == "complete"


def test_days_left_rounds_partial_days_up() -> None:
    deadline = date(2026, 3, 5)

    assert goal_status.days_left(deadline, datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)) == 4
    assert goal_status.days_left(deadline, datetime(2026, 3, 1, 23, 59, tzinfo=timezone.utc)) == 4
    assert goal_status.days_left(deadline, datetime(2026, 3, 5, 12, 0, tzinfo=timezone.utc)) == 0
    assert goal_status.days_left(deadline, datetime(2026, 3, 6, 12, 0, tzinfo=timezone.utc)) == -1


def test_days_left_accepts_plain_dates() -> None:
    assert goal_status.days_left(date(2026, 3, 11), date(2026, 3, 1)) == 10
    assert goal_status.days_left(date(2026, 2, 27), date(2026, 3, 1)) == -2


def test_days_left_accepts_naive_datetimes() -> None:
    assert goal_status.days_left(date(2026, 3, 3), datetime(2026, 3, 1, 18, 0)) == 2


def test_evaluation_is_deterministic_for_injected_time() -> None:
    goal = _goal(saved="100.00", deadline=date(2026, 3, 20))

    first = goal_status.evaluate_goal(goal, NOW)
    second = goal_status.evaluate_goal(goal, NOW)

    assert first == second


def test_progress_pct_is_floored_and_clamped() -> None:
    assert goal_status.progress_pct(_goal(target="300.00", saved="100.00")) == 33
    assert goal_status.progress_pct(_goal(target="100.00", saved="250.00")) == 100
    assert goal_status.progress_pct(_goal(target="0.00", saved="0.00")) == 100


def test_zero_target_goal_is_complete() -> None:
    goal = _goal(target="0.00", saved="0.00", deadline=TODAY - timedelta(days=3))

    assert goal_status.is_complete(goal) is True
    assert goal_status.remaining_amount(goal) == Decimal("0.00")
