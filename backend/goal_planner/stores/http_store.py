"""REST goal store client (json-server style `/goals` collection) with retry handling."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ..errors import GoalConflictError, GoalNotFoundError, StoreTransportError
from ..models import Goal, to_wire
from .base import GoalStore

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
CONFLICT_STATUS_CODES = {409, 412}


class HttpGoalStore(GoalStore):
    """
    Thin client for a REST record collection.

    Records carry a `version` field. Conditional updates send the expected
    version as `If-Match` and write `version + 1`; a server that enforces it
    answers 409/412 on mismatch. Unconditional edits read the current version
    first and write through the same check.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 10,
        max_retries: int = 2,
        backoff_seconds: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._transport = transport

    async def list_goals(self) -> list[Goal]:
        payload = await self._request("GET", "/goals")
        if not isinstance(payload, list):
            raise StoreTransportError("Goal store returned a non-list collection")
        return [Goal.from_record(item) for item in payload]

    async def get_goal(self, goal_id: str) -> Goal:
        payload = await self._request("GET", f"/goals/{goal_id}", goal_id=goal_id)
        return Goal.from_record(payload)

    async def create_goal(self, record: dict[str, Any]) -> Goal:
        body = {**to_wire(record), "version": 1}
        payload = await self._request("POST", "/goals", json=body)
        return Goal.from_record(payload)

    async def update_goal(
        self,
        goal_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> Goal:
        if expected_version is not None:
            return await self._patch(goal_id, fields, expected_version)

        # Unconditional edits still bump the version, so a writer holding the
        # previous version gets a conflict instead of overwriting the edit.
        for attempt in range(self.max_retries + 1):
            current = await self.get_goal(goal_id)
            try:
                return await self._patch(goal_id, fields, current.version)
            except GoalConflictError:
                if attempt >= self.max_retries:
                    raise
                logger.warning("Edit of goal %s raced version %s; re-reading", goal_id, current.version)

        raise GoalConflictError(goal_id)

    async def delete_goal(self, goal_id: str) -> None:
        await self._request("DELETE", f"/goals/{goal_id}", goal_id=goal_id)

    async def _patch(self, goal_id: str, fields: dict[str, Any], expected_version: int | None) -> Goal:
        body = to_wire(fields)
        body["version"] = (expected_version or 0) + 1
        headers: dict[str, str] = {}
        if expected_version is not None:
            headers["If-Match"] = f'"{expected_version}"'

        payload = await self._request(
            "PATCH",
            f"/goals/{goal_id}",
            json=body,
            headers=headers,
            goal_id=goal_id,
            expected_version=expected_version,
        )
        return Goal.from_record(payload)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
        goal_id: str | None = None,
        expected_version: int | None = None,
    ) -> Any:
        # A POST that may have reached the server is not replayed.
        idempotent = method != "POST"

        for attempt in range(self.max_retries + 1):
            retries_left = attempt < self.max_retries
            try:
                async with httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=self.timeout_seconds,
                    transport=self._transport,
                ) as client:
                    response = await client.request(method, path, json=json, headers=headers)
            except httpx.ConnectError as exc:
                if retries_left:
                    await self._backoff(method, path, attempt, exc)
                    continue
                raise StoreTransportError(f"Goal store unreachable: {exc}") from exc
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if retries_left and idempotent:
                    await self._backoff(method, path, attempt, exc)
                    continue
                raise StoreTransportError(f"Goal store request failed: {exc}") from exc

            if response.status_code in RETRYABLE_STATUS_CODES and retries_left and idempotent:
                await self._backoff(method, path, attempt, f"HTTP {response.status_code}")
                continue

            if response.status_code == 404 and goal_id is not None:
                raise GoalNotFoundError(goal_id)

            if response.status_code in CONFLICT_STATUS_CODES:
                raise GoalConflictError(goal_id, expected_version)

            if response.status_code >= 400:
                raise StoreTransportError(response.text or f"HTTP {response.status_code}", response.status_code)

            if method == "DELETE" or not response.content:
                return None

            try:
                return response.json()
            except ValueError as exc:
                raise StoreTransportError("Invalid JSON from goal store", response.status_code) from exc

        raise StoreTransportError("Goal store request failed after retries")

    async def _backoff(self, method: str, path: str, attempt: int, reason: Any) -> None:
        delay = self.backoff_seconds * (2**attempt)
        logger.warning("Goal store %s %s failed (%s); retrying in %.1fs", method, path, reason, delay)
        await asyncio.sleep(delay)
