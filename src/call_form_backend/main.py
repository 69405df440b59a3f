from __future__ import annotations

import logging
from typing import Dict

from fastapi import Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, PlainTextResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask
from starlette.responses import Response

from .configuration import get_settings
from .models import Submission
from .processor import SubmissionNotFound, SubmissionProcessor, attachment_name
from .storage import StorageError
from .utils import is_request_id, new_request_id, parse_form_pairs

settings = get_settings()
logging.basicConfig(level=settings.logging.level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Call Form API", version="0.1.0")

processor = SubmissionProcessor(settings)

ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
NO_CACHE = {"Cache-Control": "no-cache"}


def get_processor() -> SubmissionProcessor:
    return processor


def _text(content: str, status_code: int, **headers: str) -> PlainTextResponse:
    return PlainTextResponse(content, status_code=status_code, headers={**NO_CACHE, **headers})


def _method_not_allowed(allow: str) -> PlainTextResponse:
    return _text("Method Not Allowed", 405, Allow=allow)


def _media_type(request: Request) -> str:
    return request.headers.get("content-type", "").split(";", 1)[0].strip().lower()


@app.get("/healthz")
def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}


@app.api_route("/submit", methods=ANY_METHOD)
async def submit_form(request: Request, manager: SubmissionProcessor = Depends(get_processor)) -> Response:
    if request.method != "POST":
        return _method_not_allowed("POST")

    if _media_type(request) != FORM_CONTENT_TYPE:
        return _text("Invalid form submission!", 400)

    form = await request.form()
    body = parse_form_pairs(form.multi_items())
    await form.close()

    request_id = new_request_id()
    try:
        await run_in_threadpool(manager.archive, request_id, body)
    except Exception:  # noqa: BLE001
        logger.exception(f"[{request_id}] Could not archive submission")
        return _text("Could not process request.", 500)

    try:
        submission = Submission.model_validate(body)
    except ValidationError as exc:
        logger.warning(f"Invalid parameters provided in request {request_id}: {exc.errors()}")
        return _text("Invalid parameters provided!", 400)

    manager.dispatch(request_id, submission)
    logger.info(f"[{request_id}] Submission accepted")
    return _text("Submitted.", 200)


@app.api_route("/export", methods=ANY_METHOD)
async def export_submission(request: Request, manager: SubmissionProcessor = Depends(get_processor)) -> Response:
    if request.method != "GET":
        return _method_not_allowed("GET")

    request_id = request.query_params.get("requestId", "")
    if not is_request_id(request_id):
        return _text("Invalid request id!", 400)

    try:
        pdf_path = await run_in_threadpool(manager.render_archived, request_id)
    except SubmissionNotFound:
        return _text("Submission not found.", 404)
    except StorageError as exc:
        logger.error(f"[{request_id}] Export failed: {exc}")
        return _text("Could not process request.", 500)
    except Exception:  # noqa: BLE001
        logger.exception(f"[{request_id}] Could not render export")
        return _text("Could not process request.", 500)

    return FileResponse(
        pdf_path,
        media_type="application/pdf",
        filename=attachment_name(request_id),
        headers=NO_CACHE,
        background=BackgroundTask(pdf_path.unlink, missing_ok=True),
    )
