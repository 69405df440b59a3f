"""
Submission orchestration for the call form webhook.

This module coordinates everything that happens after a submission has been
accepted:
- Archiving the raw payload
- Rendering the PDF summary
- Creating the tracker task and attaching the PDF
- Sending the confirmation email
- Re-rendering archived submissions for export

Task creation and the confirmation email run on a thread pool so the webhook
can be acknowledged immediately. Their failures only reach the log.
"""

from __future__ import annotations

import logging
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from uuid import uuid4

from .configuration import Settings
from .document import render_document
from .labels import build_task_draft
from .mailer import ConfirmationMailer, MailError
from .models import Submission
from .storage import SubmissionStore
from .tracker import TrackerClient, TrackerError
from .utils import ensure_directory, escape_value

logger = logging.getLogger(__name__)


class SubmissionNotFound(Exception):
    """No archived submission exists for the request id."""


def attachment_name(request_id: str) -> str:
    return f"call-{request_id}.pdf"


@dataclass
class DispatchRecord:
    """
    Handles to the background work started for one submission.

    Attributes:
        request_id: Identifier of the submission
        task: Resolves to the created task id, or None if creation failed
        confirmation: Resolves to True if a confirmation was sent
    """

    request_id: str
    task: "Future[Optional[int]]"
    confirmation: "Future[bool]"


def _log_background_failure(request_id: str, name: str):
    def callback(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error(f"[{request_id}] {name} failed unexpectedly", exc_info=exc)

    return callback


class SubmissionProcessor:
    """
    Central coordinator for accepted submissions.

    Attributes:
        settings: Validated start-up configuration
        store: Archive of raw submissions
        tracker: Tracker API client
        mailer: Confirmation mailer
        temp_root: Directory for temporary PDF files
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[SubmissionStore] = None,
        tracker: Optional[TrackerClient] = None,
        mailer: Optional[ConfirmationMailer] = None,
        temp_root: Optional[Path] = None,
        max_workers: int = 2,
    ) -> None:
        self.settings = settings
        self.store = store or SubmissionStore(settings.storage.bucket)
        self.tracker = tracker or TrackerClient(settings.tracker, timeout=settings.http.timeout)
        self.mailer = mailer or ConfirmationMailer(settings.mail, timeout=settings.http.timeout)
        self.temp_root = ensure_directory(temp_root or Path(tempfile.gettempdir()) / "call-form")
        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    def document_path(self, request_id: str) -> Path:
        return self.temp_root / f"{request_id}.pdf"

    def render(self, body: Mapping[str, Any], path: Path) -> Path:
        render_document(body, path, timezone=self.settings.render.timezone)
        return path

    def archive(self, request_id: str, body: Mapping[str, Any]) -> bool:
        """Persist the raw body; failures are logged and reported as False."""
        return self.store.save_submission(request_id, body)

    def dispatch(self, request_id: str, submission: Submission) -> DispatchRecord:
        """
        Start task creation and the confirmation email in the background.

        Returns:
            DispatchRecord with one future per background flow
        """
        task = self._executor.submit(self.create_task, request_id, submission)
        task.add_done_callback(_log_background_failure(request_id, "Task creation"))
        confirmation = self._executor.submit(self.send_confirmation, request_id, submission)
        confirmation.add_done_callback(_log_background_failure(request_id, "Confirmation email"))
        return DispatchRecord(request_id=request_id, task=task, confirmation=confirmation)

    def create_task(self, request_id: str, submission: Submission) -> Optional[int]:
        """
        Render the PDF, create the tracker task and attach the PDF to it.

        Returns:
            The task id, or None if the task could not be created

        Note:
            A failed attachment upload leaves the task in place. The
            temporary PDF is removed whatever the outcome.
        """
        draft = build_task_draft(submission, self.settings.tracker.labels)
        pdf_path = self.document_path(request_id)
        try:
            self.render(submission.model_dump(exclude_none=True), pdf_path)
            try:
                task_id = self.tracker.create_task(draft)
            except TrackerError as e:
                logger.error(f"[{request_id}] Could not add task to tracker: {e}")
                return None
            logger.info(f"[{request_id}] Created task {task_id}")

            try:
                self.tracker.attach_file(task_id, attachment_name(request_id), pdf_path)
            except TrackerError as e:
                logger.error(f"[{request_id}] Could not upload PDF for task {task_id}: {e}")
            return task_id
        finally:
            pdf_path.unlink(missing_ok=True)

    def send_confirmation(self, request_id: str, submission: Submission) -> bool:
        try:
            return self.mailer.send_confirmation(escape_value(submission.value_of("email")))
        except MailError as e:
            logger.error(f"[{request_id}] Could not send confirmation: {e}")
            return False

    def render_archived(self, request_id: str) -> Path:
        """
        Re-render an archived submission into a temporary PDF.

        Returns:
            Path of the rendered PDF; the caller removes it when done

        Raises:
            SubmissionNotFound: If nothing was archived under ``request_id``
            StorageError: If the archive cannot be read
        """
        if not self.store.submission_exists(request_id):
            raise SubmissionNotFound(request_id)
        body: Dict[str, Any] = self.store.load_submission(request_id)
        path = self.temp_root / f"export-{request_id}-{uuid4().hex[:8]}.pdf"
        try:
            return self.render(body, path)
        except Exception:
            path.unlink(missing_ok=True)
            raise

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
