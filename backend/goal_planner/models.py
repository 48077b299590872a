"""Goal entity, user-authored drafts/patches and wire-format helpers."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .errors import GoalValidationError, StoreTransportError

MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize_amount(value: Decimal) -> Decimal:
    """Normalize money values to cent precision."""
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def money(value: Decimal) -> str:
    return str(quantize_amount(value))


def _to_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    return value


def _field_errors(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]) or "__root__",
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


def to_wire(fields: Mapping[str, Any]) -> dict[str, Any]:
    """
    Convert snake_case Python values to the store's JSON shape.

    {"target_amount": Decimal("10")} -> {"targetAmount": "10.00"}
    """
    wire: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, Decimal):
            value = money(value)
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()
        wire[to_camel(key)] = value
    return wire


class _GoalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


class Goal(_GoalModel):
    """One persisted savings goal. Status is derived, never stored here."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str = ""
    target_amount: Decimal
    saved_amount: Decimal = ZERO
    deadline: date
    created_at: date | None = None
    version: int | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        # json-server hands out ints or strings, Postgres hands out UUIDs.
        if value is None:
            return value
        return str(value)

    @field_validator("target_amount", "saved_amount", mode="before")
    @classmethod
    def default_amount(cls, value: Any) -> Any:
        if value is None or value == "":
            return ZERO
        if isinstance(value, float):
            return str(value)
        return value

    @field_validator("target_amount", "saved_amount")
    @classmethod
    def quantize(cls, value: Decimal) -> Decimal:
        return quantize_amount(value)

    @field_validator("deadline", "created_at", mode="before")
    @classmethod
    def strip_time(cls, value: Any) -> Any:
        return _to_date(value)

    @classmethod
    def from_record(cls, payload: Mapping[str, Any]) -> Goal:
        """Parse a store payload (camelCase or snake_case keys)."""
        try:
            return cls.model_validate(dict(payload))
        except ValidationError as exc:
            raise StoreTransportError(f"Malformed goal record from store: {exc}") from exc

    def to_record(self) -> dict[str, Any]:
        return to_wire(self.model_dump(exclude_none=True))


class GoalDraft(_GoalModel):
    """User-authored input for creating a goal."""

    name: str = Field(min_length=1, max_length=120)
    category: str = Field(min_length=1, max_length=120)
    target_amount: Decimal = Field(ge=Decimal("0"))
    deadline: date

    @field_validator("target_amount")
    @classmethod
    def quantize(cls, value: Decimal) -> Decimal:
        return quantize_amount(value)

    def to_record(self, today: date) -> dict[str, Any]:
        """Create payload: new goals start with nothing saved and today's creation date."""
        return {
            "name": self.name,
            "category": self.category,
            "target_amount": self.target_amount,
            "saved_amount": ZERO,
            "deadline": self.deadline,
            "created_at": today,
        }


class GoalPatch(_GoalModel):
    """Edit payload; only the provided fields are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    category: str | None = Field(default=None, min_length=1, max_length=120)
    target_amount: Decimal | None = Field(default=None, ge=Decimal("0"))
    saved_amount: Decimal | None = Field(default=None, ge=Decimal("0"))
    deadline: date | None = None

    @field_validator("target_amount", "saved_amount")
    @classmethod
    def quantize(cls, value: Decimal | None) -> Decimal | None:
        if value is None:
            return None
        return quantize_amount(value)

    def fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


def validate_draft(data: Mapping[str, Any] | GoalDraft) -> GoalDraft:
    """Build a draft or reject it as a whole; no partial goals get through."""
    if isinstance(data, GoalDraft):
        return data
    try:
        return GoalDraft.model_validate(dict(data))
    except ValidationError as exc:
        raise GoalValidationError("Invalid goal draft", _field_errors(exc)) from exc


def validate_patch(data: Mapping[str, Any] | GoalPatch) -> GoalPatch:
    if isinstance(data, GoalPatch):
        patch = data
    else:
        try:
            patch = GoalPatch.model_validate(dict(data))
        except ValidationError as exc:
            raise GoalValidationError("Invalid goal patch", _field_errors(exc)) from exc

    if not patch.fields():
        raise GoalValidationError("At least one field must be provided")
    return patch


def validate_deposit_amount(amount: Any) -> Decimal:
    """Deposits must be finite and strictly positive."""
    if isinstance(amount, bool):
        raise GoalValidationError("amount must be a number", [{"field": "amount", "message": "not a number"}])
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise GoalValidationError(
            "amount must be a number",
            [{"field": "amount", "message": "not a number"}],
        ) from exc

    if not value.is_finite() or quantize_amount(value) <= ZERO:
        raise GoalValidationError(
            "amount must be greater than 0",
            [{"field": "amount", "message": "must be greater than 0"}],
        )
    return quantize_amount(value)
