from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from goal_planner.errors import GoalValidationError, StoreTransportError
from goal_planner.models import (
    Goal,
    GoalPatch,
    to_wire,
    validate_deposit_amount,
    validate_draft,
    validate_patch,
)


def _draft(**overrides):
    data = {
        "name": "Emergency Fund",
        "category": "Safety",
        "targetAmount": 1000,
        "deadline": "2026-12-31",
    }
    data.update(overrides)
    return data


def test_validate_draft_accepts_wire_shape() -> None:
    draft = validate_draft(_draft())

    assert draft.name == "Emergency Fund"
    assert draft.target_amount == Decimal("1000.00")
    assert draft.deadline == date(2026, 12, 31)


def test_validate_draft_accepts_snake_case_and_strips_names() -> None:
    draft = validate_draft(
        {
            "name": "  Laptop  ",
            "category": "Tech",
            "target_amount": "899.999",
            "deadline": date(2026, 9, 1),
        }
    )

    assert draft.name == "Laptop"
    assert draft.target_amount == Decimal("900.00")


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"name": ""}, "name"),
        ({"name": "   "}, "name"),
        ({"category": ""}, "category"),
        ({"targetAmount": -1}, "targetAmount"),
        ({"targetAmount": "lots"}, "targetAmount"),
        ({"deadline": "next tuesday"}, "deadline"),
    ],
)
def test_validate_draft_rejects_malformed_fields(overrides, field) -> None:
    with pytest.raises(GoalValidationError) as exc_info:
        validate_draft(_draft(**overrides))

    assert field in {error["field"] for error in exc_info.value.errors}


@pytest.mark.parametrize("missing", ["name", "category", "targetAmount", "deadline"])
def test_validate_draft_rejects_missing_fields(missing) -> None:
    data = _draft()
    del data[missing]

    with pytest.raises(GoalValidationError):
        validate_draft(data)


def test_zero_target_is_allowed() -> None:
    assert validate_draft(_draft(targetAmount=0)).target_amount == Decimal("0.00")


def test_draft_record_starts_empty_and_stamps_creation_date() -> None:
    record = validate_draft(_draft()).to_record(date(2026, 3, 1))

    assert record["saved_amount"] == Decimal("0.00")
    assert record["created_at"] == date(2026, 3, 1)
    assert to_wire(record) == {
        "name": "Emergency Fund",
        "category": "Safety",
        "targetAmount": "1000.00",
        "savedAmount": "0.00",
        "deadline": "2026-12-31",
        "createdAt": "2026-03-01",
    }


def test_goal_from_store_record_normalizes_types() -> None:
    goal = Goal.from_record(
        {
            "id": 7,
            "name": "Car",
            "category": "Transport",
            "targetAmount": 5000,
            "savedAmount": "1250.5",
            "deadline": "2027-01-15",
            "createdAt": "2026-01-02",
        }
    )

    assert goal.id == "7"
    assert goal.target_amount == Decimal("5000.00")
    assert goal.saved_amount == Decimal("1250.50")
    assert goal.created_at == date(2026, 1, 2)
    assert goal.version is None


def test_goal_from_database_row() -> None:
    goal_id = uuid4()
    goal = Goal.from_record(
        {
            "id": goal_id,
            "name": "Car",
            "category": "Transport",
            "target_amount": Decimal("5000.00"),
            "saved_amount": None,
            "deadline": date(2027, 1, 15),
            "created_at": datetime(2026, 1, 2, 8, 15),
            "version": 3,
        }
    )

    assert goal.id == str(goal_id)
    assert goal.saved_amount == Decimal("0.00")
    assert goal.created_at == date(2026, 1, 2)
    assert goal.version == 3


def test_goal_from_malformed_record_is_a_transport_error() -> None:
    with pytest.raises(StoreTransportError):
        Goal.from_record({"id": "1", "name": "Broken"})


def test_goal_to_record_round_trips_wire_keys() -> None:
    goal = Goal(
        id="3",
        name="Bike",
        category="Fun",
        target_amount=Decimal("300"),
        saved_amount=Decimal("12.5"),
        deadline=date(2026, 6, 1),
    )

    assert goal.to_record() == {
        "id": "3",
        "name": "Bike",
        "category": "Fun",
        "targetAmount": "300.00",
        "savedAmount": "12.50",
        "deadline": "2026-06-01",
    }


def test_validate_patch_keeps_only_provided_fields() -> None:
    patch = validate_patch({"targetAmount": "1500", "deadline": "2027-01-01"})

    assert patch.fields() == {
        "target_amount": Decimal("1500.00"),
        "deadline": date(2027, 1, 1),
    }


def test_validate_patch_rejects_empty_and_invalid() -> None:
    with pytest.raises(GoalValidationError):
        validate_patch({})

    with pytest.raises(GoalValidationError):
        validate_patch(GoalPatch())

    with pytest.raises(GoalValidationError):
        validate_patch({"name": ""})


@pytest.mark.parametrize("amount", [0, -5, "abc", None, True, "NaN", "Infinity", "0.001"])
def test_deposit_amount_must_be_positive_number(amount) -> None:
    with pytest.raises(GoalValidationError):
        validate_deposit_amount(amount)


def test_deposit_amount_is_quantized() -> None:
    assert validate_deposit_amount(25) == Decimal("25.00")
    assert validate_deposit_amount("10.005") == Decimal("10.01")
    assert validate_deposit_amount(0.1) == Decimal("0.10")
