"""Moovey JSON API client."""

import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import requests

from moovey.config import ClientSettings, load_settings
from moovey.errors import MooveyNetworkError, MooveyRejectedError

logger = logging.getLogger(__name__)

_MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def _task_id_param(task_id: Union[str, int]) -> Union[str, int]:
    """Numeric ids go over the wire as integers, anything else as-is."""
    if isinstance(task_id, int):
        return task_id
    text = str(task_id).strip()
    return int(text) if text.isdigit() else text


class MooveyClient:
    """Client for the Moovey web app's JSON endpoints."""

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            settings: Client settings. If None, read from the environment.
            session: HTTP session to use (a new `requests.Session` by default)
        """
        self.settings = settings or load_settings()
        self.base_url = self.settings.base_url.rstrip("/")
        self.session = session or requests.Session()
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Requested-With": "XMLHttpRequest",
        }
        if not self.settings.csrf_token:
            logger.warning("MOOVEY_CSRF_TOKEN is not set; mutating requests will be rejected by the server.")

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        expect_object: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Every endpoint except the task list answers with a JSON object;
        `expect_object` treats any other body as a rejection.

        Raises:
            MooveyNetworkError: Connection failure, timeout or undecodable body
            MooveyRejectedError: Non-2xx status, `success: false` in the body, or a
                body of the wrong shape
        """
        url = f"{self.base_url}{path}"
        headers = dict(self.headers)
        if method.upper() in _MUTATING_METHODS:
            headers["X-CSRF-TOKEN"] = self.settings.csrf_token

        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
                timeout=self.settings.request_timeout_sec,
            )
        except requests.RequestException as e:
            raise MooveyNetworkError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            raise MooveyRejectedError(
                f"{method} {path} returned HTTP {response.status_code}: {self._error_message(response)}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MooveyNetworkError(f"{method} {path} returned an unreadable body", response.status_code) from e

        if expect_object and not isinstance(data, dict):
            raise MooveyRejectedError(
                f"{method} {path} returned {type(data).__name__}, expected an object",
                status_code=response.status_code,
            )
        if isinstance(data, dict) and data.get("success") is False:
            raise MooveyRejectedError(
                data.get("message") or f"{method} {path} was rejected",
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason or "error"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return response.reason or "error"

    # Tasks

    def fetch_tasks(self, status: Optional[str] = None, page: Optional[int] = None) -> Any:
        """GET /api/tasks. Returns the raw payload (list or wrapped list)."""
        params = {}
        if status:
            params["status"] = status
        if page is not None:
            params["page"] = page
        return self._request("GET", "/api/tasks", params=params or None, expect_object=False)

    def complete_task(self, task_id: Union[str, int]) -> Dict[str, Any]:
        return self._request("PATCH", f"/api/tasks/{quote(str(task_id), safe='')}/complete")

    # Priority tasks

    def fetch_priority_tasks(self) -> List[Dict[str, Any]]:
        data = self._request("GET", "/api/priority-tasks")
        tasks = data.get("priority_tasks") or []
        if not isinstance(tasks, list):
            raise MooveyRejectedError("GET /api/priority-tasks returned priority_tasks that is not a list")
        return tasks

    def add_priority_task(self, task_id: Union[str, int]) -> Dict[str, Any]:
        return self._request("POST", "/api/priority-tasks", json={"task_id": _task_id_param(task_id)})

    def remove_priority_task(self, task_id: Union[str, int]) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/priority-tasks/{quote(str(task_id), safe='')}")

    # Move details

    def fetch_move_details(self) -> Dict[str, Any]:
        """GET /api/move-details. Returns the `data` object."""
        data = self._request("GET", "/api/move-details")
        details = data.get("data") or {}
        if not isinstance(details, dict):
            raise MooveyRejectedError("GET /api/move-details returned data that is not an object")
        return details

    def update_move_details(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """PATCH /api/move-details with camelCase fields (personal details, activeSection)."""
        return self._request("PATCH", "/api/move-details", json=fields)

    def toggle_recommended_task(self, section_id: int, task_id: str, completed: bool) -> Dict[str, Any]:
        data = self._request(
            "PATCH",
            "/api/move-details/recommended-task",
            json={"section_id": section_id, "task_id": task_id, "completed": completed},
        )
        state = data.get("state") or {}
        return state if isinstance(state, dict) else {}

    def create_custom_task(self, section_id: int, title: str, description: str = "") -> Dict[str, Any]:
        """POST a new custom task and return the server's task record."""
        data = self._request(
            "POST",
            "/api/move-details/custom-tasks",
            json={"section_id": section_id, "title": title, "description": description},
        )
        task = data.get("task")
        if not isinstance(task, dict) or not task:
            raise MooveyRejectedError("Server did not return the created task")
        if data.get("legacy"):
            logger.warning(f"Custom task {task.get('id')} was stored in legacy JSON storage")
        return task

    def toggle_custom_task(self, task_id: str, section_id: int, completed: bool) -> Dict[str, Any]:
        return self._request(
            "PATCH",
            f"/api/move-details/custom-tasks/{quote(str(task_id), safe='')}/toggle",
            json={"section_id": section_id, "completed": completed},
        )

    def delete_custom_task(self, task_id: str, section_id: int) -> Dict[str, Any]:
        return self._request(
            "DELETE",
            f"/api/move-details/custom-tasks/{quote(str(task_id), safe='')}",
            json={"section_id": section_id},
        )
