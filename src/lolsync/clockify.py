from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from .errors import CreationFailed, UpstreamRequestFailed
from .logging_utils import log_json
from .models import TimeEntry, TimeEntryRequest
from .utils import to_iso_z


DEFAULT_BASE_URL = "https://api.clockify.me/api/v1"


@dataclass
class ClockifyConfig:
    base_url: str = DEFAULT_BASE_URL
    project_name: str = "League of Legends"
    timeout_seconds: float = 30
    page_size: int = 200

    @classmethod
    def from_section(cls, section: Dict[str, Any]) -> "ClockifyConfig":
        return cls(
            base_url=section.get("base_url", DEFAULT_BASE_URL),
            project_name=section.get("project_name", "League of Legends"),
            timeout_seconds=section.get("timeout_seconds", 30),
            page_size=section.get("page_size", 200),
        )


def _body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class ClockifyClient:
    """Time entries for the token owner in their active workspace."""

    def __init__(
        self,
        token: str,
        cfg: ClockifyConfig,
        logger: Optional[logging.Logger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cfg = cfg
        self._client = httpx.AsyncClient(
            base_url=cfg.base_url,
            timeout=cfg.timeout_seconds,
            headers={"X-Api-Key": token, "Content-Type": "application/json"},
            transport=transport,
        )
        self._logger = logger or logging.getLogger(__name__)
        self.user_id: Optional[str] = None
        self.workspace_id: Optional[str] = None
        self.project_id: Optional[str] = None

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self._client.request(method, path, **kwargs)
        if not resp.is_success:
            raise UpstreamRequestFailed(resp.status_code, resp.reason_phrase, _body(resp))
        try:
            return resp.json()
        except ValueError:
            raise UpstreamRequestFailed(resp.status_code, "invalid JSON", resp.text) from None

    def _require_initialized(self) -> None:
        if self.workspace_id is None or self.user_id is None:
            raise RuntimeError("ClockifyClient.initialize() must be awaited first")

    async def initialize(self) -> None:
        if self.workspace_id is not None:
            return
        user = await self._request("GET", "/user")
        self.user_id = user["id"]
        self.workspace_id = user.get("activeWorkspace") or user["defaultWorkspace"]
        self.project_id = await self._find_or_create_project(self.cfg.project_name)
        log_json(
            self._logger,
            "clockify_initialized",
            workspace_id=self.workspace_id,
            project_id=self.project_id,
        )

    async def _find_or_create_project(self, name: str) -> str:
        path = f"/workspaces/{self.workspace_id}/projects"
        projects = await self._request("GET", path, params={"name": name, "strict-name-search": "true"})
        for project in projects:
            if project.get("name") == name:
                return project["id"]
        created = await self._request("POST", path, json={"name": name, "billable": False})
        log_json(self._logger, "clockify_project_created", name=name, project_id=created["id"])
        return created["id"]

    async def list_time_entries(self, start: datetime, end: datetime) -> List[TimeEntry]:
        self._require_initialized()
        path = f"/workspaces/{self.workspace_id}/user/{self.user_id}/time-entries"
        entries: List[TimeEntry] = []
        page = 1
        while True:
            batch = await self._request(
                "GET",
                path,
                params={
                    "start": to_iso_z(start),
                    "end": to_iso_z(end),
                    "page": page,
                    "page-size": self.cfg.page_size,
                },
            )
            entries.extend(TimeEntry.from_api(item) for item in batch)
            if len(batch) < self.cfg.page_size:
                return entries
            page += 1

    async def create_time_entry(self, request: TimeEntryRequest) -> TimeEntry:
        self._require_initialized()
        resp = await self._client.post(
            f"/workspaces/{self.workspace_id}/time-entries",
            json=request.to_payload(),
        )
        if not resp.is_success:
            raise CreationFailed(resp.status_code, resp.reason_phrase, _body(resp))
        try:
            created = resp.json()
        except ValueError:
            raise CreationFailed(resp.status_code, "invalid JSON", resp.text) from None
        return TimeEntry.from_api(created)
