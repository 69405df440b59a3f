"""
MeisterTask client: task creation and PDF attachments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import httpx

from .configuration import TrackerSettings
from .models import TaskDraft

logger = logging.getLogger(__name__)


class TrackerError(Exception):
    """Error calling the tracker API."""


class TrackerClient:
    def __init__(
        self,
        settings: TrackerSettings,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.settings.api_url.rstrip("/"),
            headers={"Authorization": f"Bearer {self.settings.token}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    def create_task(self, draft: TaskDraft) -> int:
        """
        Create a task in the configured section.

        Returns:
            Id of the created task

        Raises:
            TrackerError: If the request fails or the response carries no id
        """
        section_id = self.settings.section_id
        payload = {
            "section_id": section_id,
            "name": draft.name,
            "notes": draft.notes,
            "label_ids": draft.label_ids,
        }
        try:
            with self._client() as client:
                response = client.post(f"/sections/{section_id}/tasks", json=payload)
        except httpx.HTTPError as e:
            raise TrackerError(f"Task request failed: {e}") from e

        if response.status_code not in (200, 201):
            raise TrackerError(f"Task creation failed ({response.status_code}): {response.text}")

        try:
            result: Any = response.json()
            return int(result["id"])
        except (ValueError, KeyError, TypeError) as e:
            raise TrackerError(f"Task response without id: {response.text}") from e

    def attach_file(self, task_id: int, name: str, path: Path) -> None:
        """
        Upload a file as attachment of an existing task.

        Raises:
            TrackerError: If the upload fails
        """
        try:
            with path.open("rb") as fh, self._client() as client:
                response = client.post(
                    f"/tasks/{task_id}/attachments",
                    data={"name": name},
                    files={"local": (name, fh, "application/pdf")},
                )
        except (httpx.HTTPError, OSError) as e:
            raise TrackerError(f"Attachment upload for task {task_id} failed: {e}") from e

        if response.status_code not in (200, 201):
            raise TrackerError(f"Attachment upload for task {task_id} failed ({response.status_code}): {response.text}")
        logger.info(f"Attached {name} to task {task_id}")
