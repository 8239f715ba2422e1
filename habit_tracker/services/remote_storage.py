import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from fastapi.encoders import jsonable_encoder

from ..errors import StorageError
from ..schemas.habit import Habit
from ..schemas.schedule import Schedule
from ..schemas.task import TaskCompletion
from ..schemas.user import UserRecord

logger = logging.getLogger(__name__)


class RemoteStorage:
    """Client for the hosted memory service's REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            timeout=timeout,
            transport=transport,
            event_hooks={"request": [self._log_request]},
        )

    @staticmethod
    async def _log_request(request: httpx.Request) -> None:
        logger.info("[storage] %s %s", request.method, request.url.path)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)

    async def _send(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        try:
            return await self._client.request(
                method,
                path,
                json=jsonable_encoder(json) if json is not None else None,
                params=params,
            )
        except httpx.HTTPError as exc:
            logger.error("[storage] %s %s failed: %s", method, path, exc)
            raise StorageError(f"{method} {path} failed: {exc}") from exc

    def _raise_for_error(self, method: str, path: str, response: httpx.Response) -> None:
        if response.is_error:
            message = self._error_message(response)
            logger.error("[storage] %s %s returned %s: %s", method, path, response.status_code, message)
            raise StorageError(f"{method} {path} returned {response.status_code}: {message}")

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[Dict[str, str]] = None,
        allow_missing: bool = False,
    ) -> Any:
        """Send a request and return the decoded body.

        With ``allow_missing`` a 404 yields None instead of StorageError.
        """
        response = await self._send(method, path, json=json, params=params)
        if allow_missing and response.status_code == 404:
            return None
        self._raise_for_error(method, path, response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StorageError(f"{method} {path} returned a non-JSON body") from exc

    async def _delete(self, path: str) -> bool:
        response = await self._send("DELETE", path)
        if response.status_code == 404:
            return False
        self._raise_for_error("DELETE", path, response)
        return True

    async def open(self) -> None:
        return None

    async def close(self) -> None:
        await self._client.aclose()

    # Users

    async def create_user(self, email: str, username: str, password_hash: str) -> UserRecord:
        data = await self._request("POST", "/users", json={
            "email": email,
            "username": username,
            "password_hash": password_hash,
            "is_setup_complete": False,
        })
        return UserRecord.model_validate(data)

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        data = await self._request("GET", f"/users/{quote(user_id, safe='')}", allow_missing=True)
        return UserRecord.model_validate(data) if data else None

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        data = await self._request(
            "GET", f"/users/email/{quote(email, safe='')}/with-password", allow_missing=True
        )
        return UserRecord.model_validate(data) if data else None

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        data = await self._request(
            "PATCH", f"/users/{quote(user_id, safe='')}", json=changes, allow_missing=True
        )
        return UserRecord.model_validate(data) if data else None

    # Habits

    async def create_habit(self, user_id: str, habit_name: str, user_history: Optional[str]) -> Habit:
        data = await self._request("POST", "/habits", json={
            "user_id": user_id,
            "habit_name": habit_name,
            "user_history": user_history,
        })
        return Habit.model_validate(data)

    async def list_habits(self, user_id: str) -> List[Habit]:
        data = await self._request("GET", f"/habits/user/{quote(user_id, safe='')}")
        return [Habit.model_validate(item) for item in data or []]

    async def get_habit(self, habit_id: str) -> Optional[Habit]:
        data = await self._request("GET", f"/habits/{quote(habit_id, safe='')}", allow_missing=True)
        return Habit.model_validate(data) if data else None

    async def update_habit(self, habit_id: str, changes: Dict[str, Any]) -> Optional[Habit]:
        data = await self._request(
            "PATCH", f"/habits/{quote(habit_id, safe='')}", json=changes, allow_missing=True
        )
        return Habit.model_validate(data) if data else None

    async def delete_habit(self, habit_id: str) -> bool:
        return await self._delete(f"/habits/{quote(habit_id, safe='')}")

    # Schedules

    async def create_schedule(
        self, user_id: str, habit_id: str, start_date: date, end_date: date
    ) -> Schedule:
        data = await self._request("POST", "/schedules", json={
            "user_id": user_id,
            "habit_id": habit_id,
            "start_date": start_date,
            "end_date": end_date,
            "schedule_data": [],
            "generated_by_ai": False,
        })
        return Schedule.model_validate(data)

    async def list_schedules(self, user_id: str) -> List[Schedule]:
        data = await self._request("GET", f"/schedules/user/{quote(user_id, safe='')}")
        return [Schedule.model_validate(item) for item in data or []]

    async def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        data = await self._request(
            "GET", f"/schedules/{quote(schedule_id, safe='')}", allow_missing=True
        )
        return Schedule.model_validate(data) if data else None

    async def update_schedule(self, schedule_id: str, changes: Dict[str, Any]) -> Optional[Schedule]:
        payload = dict(changes, last_updated=datetime.utcnow())
        data = await self._request(
            "PATCH", f"/schedules/{quote(schedule_id, safe='')}", json=payload, allow_missing=True
        )
        return Schedule.model_validate(data) if data else None

    async def delete_schedule(self, schedule_id: str) -> bool:
        return await self._delete(f"/schedules/{quote(schedule_id, safe='')}")

    # Task completions

    async def upsert_task_completion(
        self,
        user_id: str,
        task_id: str,
        task_date: date,
        is_completed: bool,
        completed_at: Optional[datetime],
        notes: Optional[str],
    ) -> TaskCompletion:
        data = await self._request("PATCH", "/tasks", json={
            "user_id": user_id,
            "task_id": task_id,
            "task_date": task_date,
            "is_completed": is_completed,
            "completed_at": completed_at,
            "notes": notes,
        })
        return TaskCompletion.model_validate(data)

    async def list_task_completions(
        self, user_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[TaskCompletion]:
        params = {}
        if start_date:
            params["start_date"] = start_date.isoformat()
        if end_date:
            params["end_date"] = end_date.isoformat()
        data = await self._request("GET", f"/tasks/user/{quote(user_id, safe='')}", params=params)
        return [TaskCompletion.model_validate(item) for item in data or []]

    async def get_task_completion(self, completion_id: str) -> Optional[TaskCompletion]:
        data = await self._request(
            "GET", f"/tasks/{quote(completion_id, safe='')}", allow_missing=True
        )
        return TaskCompletion.model_validate(data) if data else None
