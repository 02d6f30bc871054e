from __future__ import annotations

import copy
from typing import Any

import httpx

from wanderplan.core.logging import get_logger

EDITABLE_FIELDS = frozenset({"custom_desc", "opening_hours", "cost"})


class ActivityEditSession:
    """Optimistic edits of a plan detail payload.

    Each change is applied to the local copy first, then sent to the server.
    A failed request restores the copy taken before the change and records
    the error message in ``error``.
    """

    def __init__(self, client: httpx.AsyncClient, plan: dict[str, Any]) -> None:
        self._client = client
        self._plan = copy.deepcopy(plan)
        self.error: str | None = None
        self._logger = get_logger(__name__)

    @property
    def plan(self) -> dict[str, Any]:
        return self._plan

    @property
    def plan_id(self) -> str:
        return str(self._plan["id"])

    def find_activity(self, activity_id: str) -> dict[str, Any] | None:
        for activities in self._plan.get("activities", {}).values():
            for activity in activities:
                if activity.get("id") == activity_id:
                    return activity
        return None

    async def edit(self, activity_id: str, **changes: Any) -> bool:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown or not changes:
            raise ValueError(f"editable fields are {sorted(EDITABLE_FIELDS)}")
        return await self._apply(
            activity_id,
            changes,
            method="PUT",
            path=f"/api/plans/{self.plan_id}/activities/{activity_id}",
            body=changes,
        )

    async def accept(self, activity_id: str) -> bool:
        return await self._apply(
            activity_id,
            {"accepted": True},
            method="POST",
            path=f"/api/plans/{self.plan_id}/activities/{activity_id}/accept",
        )

    async def reject(self, activity_id: str) -> bool:
        return await self._apply(
            activity_id,
            {"accepted": False},
            method="POST",
            path=f"/api/plans/{self.plan_id}/activities/{activity_id}/reject",
        )

    async def _apply(
        self,
        activity_id: str,
        changes: dict[str, Any],
        *,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
    ) -> bool:
        self.error = None
        activity = self.find_activity(activity_id)
        if activity is None:
            self.error = "Activity not found"
            return False

        snapshot = copy.deepcopy(self._plan)
        activity.update(changes)
        try:
            response = await self._client.request(method, path, json=body)
        except httpx.HTTPError as exc:
            self._rollback(snapshot, activity_id, "Network error, changes reverted")
            self._logger.warning(
                "edit_session.request_failed",
                extra={"activity_id": activity_id, "error": str(exc)},
            )
            return False

        if response.is_error:
            self._rollback(snapshot, activity_id, self._failure_message(response))
            return False

        payload = response.json()
        for key, value in payload.items():
            if key in activity and key != "id":
                activity[key] = value
        return True

    def _rollback(self, snapshot: dict[str, Any], activity_id: str, message: str) -> None:
        self._plan = snapshot
        self.error = message
        self._logger.info(
            "edit_session.rolled_back",
            extra={"activity_id": activity_id, "error": message},
        )

    @staticmethod
    def _failure_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("msg"):
            return str(payload["msg"])
        return f"Request failed with status {response.status_code}"
