"""
Pytest configuration and fixtures for Call Form Backend tests.
"""

import io
import os
from typing import Any, Dict, List

import httpx
import pytest
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

# Set test environment variables before importing the app
os.environ["STORAGE_BUCKET"] = "test-bucket"
os.environ["MT_API_URL"] = "https://tracker.test/api"
os.environ["MT_TOKEN"] = "test-tracker-token"
os.environ["MT_SECTION_ID"] = "42"
os.environ["MT_LABEL_INTERESSENTIN"] = "101"
os.environ["MT_LABEL_FUNNEL_WEBSITE"] = "102"
os.environ["MT_LABEL_PAKET_1"] = "111"
os.environ["MT_LABEL_PAKET_2"] = "112"
os.environ["MT_LABEL_PAKET_3"] = "113"
os.environ["MT_LABEL_PAKET_4"] = "114"
os.environ["MT_LABEL_PAKET_DEFAULT"] = "110"
os.environ["MAIL_API_URL"] = "https://mail.test/v3/mail/send"
os.environ["MAIL_API_TOKEN"] = ""

from call_form_backend.configuration import get_settings
from call_form_backend.main import app, get_processor
from call_form_backend.processor import DispatchRecord, SubmissionProcessor
from call_form_backend.storage import SubmissionStore
from call_form_backend.tracker import TrackerClient


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client."""

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.fail_writes = False

    def put_object(self, Bucket: str, Key: str, Body: bytes, **kwargs: Any) -> Dict[str, Any]:
        if self.fail_writes:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject")
        self.objects[f"{Bucket}/{Key}"] = Body
        return {}

    def head_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if f"{Bucket}/{Key}" not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        if f"{Bucket}/{Key}" not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "Not Found"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[f"{Bucket}/{Key}"])}


class TrackerRecorder:
    """httpx handler that answers like the tracker API and records every request."""

    def __init__(self, task_status: int = 201, attachment_status: int = 201, task_id: int = 777) -> None:
        self.task_status = task_status
        self.attachment_status = attachment_status
        self.task_id = task_id
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if request.url.path.endswith("/attachments"):
            return httpx.Response(self.attachment_status, json={"id": 1})
        if request.url.path.endswith("/tasks"):
            return httpx.Response(self.task_status, json={"id": self.task_id})
        return httpx.Response(404)

    @property
    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


class RecordingProcessor(SubmissionProcessor):
    """Keeps the dispatch records so tests can wait for background work."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.dispatched: List[DispatchRecord] = []

    def dispatch(self, request_id, submission):
        record = super().dispatch(request_id, submission)
        self.dispatched.append(record)
        return record


def field(title: str, value: str, field_type: str = "text") -> Dict[str, str]:
    return {
        "id": title.lower().replace(" ", "_"),
        "type": field_type,
        "title": title,
        "value": value,
        "raw_value": value,
        "required": "1",
    }


def flatten_form(data: Dict[str, Any], prefix: str = "") -> Dict[str, str]:
    """Encode a nested mapping with the bracket notation used by the form plugin."""
    flat: Dict[str, str] = {}
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_form(value, name))
        else:
            flat[name] = value
    return flat


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def sample_body() -> Dict[str, Any]:
    """A complete submission as decoded from the webhook body."""
    return {
        "form": {"id": "b3f1c2a", "name": "Call Gewerbeflächen"},
        "fields": {
            "name": field("Name", "Jane  Doe"),
            "email": field("E-Mail", "jane.doe@posteo.de", "email"),
            "website": field("Website", "https://jane.example.org", "url"),
            "telefon": field("Telefon", "+43 660 1234567", "tel"),
            "interessentin": field("Schon Interessent*in", "Ja", "radio"),
            "paket": field("Paket", "Paket 3 - Werkstatt", "select"),
            "gewerbe_nutzung": field("Nutzung", "Eine kleine Keramikwerkstatt\nmit Verkauf.", "textarea"),
            "gedanken_community": field("Gemeinschaft", "Gemeinsam wirtschaften.", "textarea"),
            "einbringen": field("Einbringen", "Workshops für Kinder.", "textarea"),
            "sonstiges": field("Sonstiges", "", "textarea"),
        },
        "meta": {"date": {"title": "Datum", "value": "19. Oktober 2026"}},
    }


@pytest.fixture
def form_data(sample_body) -> Dict[str, str]:
    return flatten_form(sample_body)


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def store(s3_client) -> SubmissionStore:
    return SubmissionStore("test-bucket", client=s3_client)


@pytest.fixture
def tracker_recorder() -> TrackerRecorder:
    return TrackerRecorder()


@pytest.fixture
def tracker(settings, tracker_recorder) -> TrackerClient:
    return TrackerClient(settings.tracker, transport=httpx.MockTransport(tracker_recorder))


@pytest.fixture
def processor(settings, store, tracker, tmp_path):
    manager = RecordingProcessor(
        settings,
        store=store,
        tracker=tracker,
        temp_root=tmp_path,
    )
    yield manager
    manager.shutdown(wait=True)


@pytest.fixture
def client(processor):
    """Create a test client for the FastAPI app, wired to the test processor."""
    app.dependency_overrides[get_processor] = lambda: processor
    yield TestClient(app)
    app.dependency_overrides.clear()
