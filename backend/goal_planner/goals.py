"""Goals router: CRUD, deposits and overview over the session goal collection."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, field_serializer

from .errors import GoalConflictError, GoalNotFoundError, GoalPlannerError, GoalValidationError, StoreTransportError
from .models import GoalDraft, GoalPatch, money
from .services.goal_collection import GoalCollection
from .services.goal_status import GoalProgress, GoalStatus, evaluate_goal

router = APIRouter(prefix="/goals", tags=["goals"])


def _now() -> datetime:
    """Wrapper for deterministic tests."""
    return datetime.now(timezone.utc)


def get_goal_collection(request: Request) -> GoalCollection:
    collection = getattr(request.app.state, "goal_collection", None)
    if collection is None:
        raise HTTPException(status_code=500, detail="Goal collection is not initialized")
    return collection


def _http_error(exc: GoalPlannerError) -> HTTPException:
    if isinstance(exc, GoalValidationError):
        detail: Any = str(exc)
        if exc.errors:
            detail = {"message": str(exc), "errors": exc.errors}
        return HTTPException(status_code=422, detail=detail)
    if isinstance(exc, GoalNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, GoalConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, StoreTransportError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


class DepositRequest(BaseModel):
    amount: Decimal = Field(gt=Decimal("0"), max_digits=12, decimal_places=2)


class GoalResponse(BaseModel):
    id: str
    name: str
    category: str
    target_amount: Decimal
    saved_amount: Decimal
    deadline: date
    created_at: date | None
    status: GoalStatus
    days_left: int
    deadline_label: str
    remaining_amount: Decimal
    progress_pct: int

    @field_serializer("target_amount", "saved_amount", "remaining_amount")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)

    @classmethod
    def from_progress(cls, progress: GoalProgress) -> GoalResponse:
        goal = progress.goal
        return cls(
            id=goal.id,
            name=goal.name,
            category=goal.category,
            target_amount=goal.target_amount,
            saved_amount=goal.saved_amount,
            deadline=goal.deadline,
            created_at=goal.created_at,
            status=progress.status,
            days_left=progress.days_left,
            deadline_label=progress.deadline_label,
            remaining_amount=progress.remaining_amount,
            progress_pct=progress.progress_pct,
        )


class GoalOverviewResponse(BaseModel):
    total_goals: int
    total_saved: Decimal
    completed_count: int
    status_counts: dict[str, int]
    goals: list[GoalResponse]

    @field_serializer("total_saved")
    def serialize_decimal(self, value: Decimal) -> str:
        return money(value)


@router.get("", response_model=list[GoalResponse])
async def list_goals_endpoint(
    collection: GoalCollection = Depends(get_goal_collection),
) -> list[GoalResponse]:
    """List cached goals with derived status and progress."""
    now = _now()
    return [GoalResponse.from_progress(evaluate_goal(goal, now)) for goal in collection.list()]


@router.get("/overview", response_model=GoalOverviewResponse)
async def goals_overview_endpoint(
    collection: GoalCollection = Depends(get_goal_collection),
) -> GoalOverviewResponse:
    """Totals, completed count and per-status counts for all cached goals."""
    overview = collection.overview(_now())
    return GoalOverviewResponse(
        total_goals=overview.summary.total_goals,
        total_saved=overview.summary.total_saved,
        completed_count=overview.summary.completed_count,
        status_counts=dict(overview.status_counts),
        goals=[GoalResponse.from_progress(item) for item in overview.items],
    )


@router.post("/refresh", response_model=list[GoalResponse])
async def refresh_goals_endpoint(
    collection: GoalCollection = Depends(get_goal_collection),
) -> list[GoalResponse]:
    """Reload the cache from the store."""
    try:
        goals = await collection.refresh()
    except GoalPlannerError as exc:
        raise _http_error(exc) from exc

    now = _now()
    return [GoalResponse.from_progress(evaluate_goal(goal, now)) for goal in goals]


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal_endpoint(
    payload: GoalDraft,
    collection: GoalCollection = Depends(get_goal_collection),
) -> GoalResponse:
    """Create one goal; it starts with nothing saved."""
    try:
        goal = await collection.add(payload)
    except GoalPlannerError as exc:
        raise _http_error(exc) from exc
    return GoalResponse.from_progress(evaluate_goal(goal, _now()))


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_goal_endpoint(
    goal_id: str,
    collection: GoalCollection = Depends(get_goal_collection),
) -> GoalResponse:
    try:
        goal = collection.get(goal_id)
    except GoalNotFoundError as exc:
        raise _http_error(exc) from exc
    return GoalResponse.from_progress(evaluate_goal(goal, _now()))


@router.patch("/{goal_id}", response_model=GoalResponse)
async def update_goal_endpoint(
    goal_id: str,
    payload: GoalPatch,
    collection: GoalCollection = Depends(get_goal_collection),
) -> GoalResponse:
    """Partially update name, category, target, deadline or saved amount."""
    try:
        goal = await collection.update(goal_id, payload)
    except GoalPlannerError as exc:
        raise _http_error(exc) from exc
    return GoalResponse.from_progress(evaluate_goal(goal, _now()))


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_goal_endpoint(
    goal_id: str,
    collection: GoalCollection = Depends(get_goal_collection),
):
    """Delete one goal. Deleting an unknown id succeeds."""
    try:
        await collection.remove(goal_id)
    except GoalPlannerError as exc:
        raise _http_error(exc) from exc


@router.post("/{goal_id}/deposits", response_model=GoalResponse)
async def deposit_endpoint(
    goal_id: str,
    payload: DepositRequest,
    collection: GoalCollection = Depends(get_goal_collection),
) -> GoalResponse:
    """Add money toward one goal."""
    try:
        goal = await collection.deposit(goal_id, payload.amount)
    except GoalPlannerError as exc:
        raise _http_error(exc) from exc
    return GoalResponse.from_progress(evaluate_goal(goal, _now()))
