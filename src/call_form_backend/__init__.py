"""
Call Form Backend - webhook for call applications submitted on the website

This package provides a FastAPI service that receives form submissions from
the website's form plugin and turns each one into:

- An archived JSON copy of the raw submission in object storage
- A PDF summary of the application
- A MeisterTask task with notes, labels and the PDF attached
- An optional confirmation email to the applicant

Archived submissions can be re-rendered as PDF later via the export endpoint.

Key Components:
    - main: FastAPI application and HTTP endpoint definitions
    - processor: Archiving, task creation and email orchestration
    - models: Pydantic models for the submission schema
    - configuration: Config loading and validation
    - document: PDF rendering
    - labels: Task notes and label mapping
    - storage, tracker, mailer: Clients for the external services
    - utils: Text sanitizing and form decoding

Usage:
    Run the API server with:
        uvicorn call_form_backend.main:app --host 0.0.0.0 --port 8000

    Or use the development script:
        uv run uvicorn call_form_backend.main:app --reload
"""
