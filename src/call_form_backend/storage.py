"""
Archive of raw form submissions in an S3 bucket.

This module provides functionality for:
- Saving each raw submission as ``<requestId>.json``
- Checking whether a submission was archived
- Loading an archived submission for re-rendering

The archive is a best-effort audit trail: write failures are logged and
reported as ``False``. Reads only happen on the export path, where a failure
raises ``StorageError``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class StorageError(Exception):
    """Archive read or write failed."""


def submission_key(request_id: str) -> str:
    return f"{request_id}.json"


class SubmissionStore:
    """
    Reads and writes archived submissions.

    Attributes:
        bucket: Name of the bucket holding the archive
    """

    def __init__(self, bucket: str, client: Any = None) -> None:
        self.bucket = bucket
        self._client = client

    def _get_s3_client(self):
        """
        Get or create the S3 client.

        Returns:
            boto3 S3 client or None if bucket is not configured
        """
        if self._client is None:
            if not self.bucket:
                logger.warning("Storage bucket not configured")
                return None
            try:
                self._client = boto3.client("s3")
            except (BotoCoreError, ValueError) as e:
                logger.warning(f"Failed to create S3 client: {e}")
                self._client = None
        return self._client

    def _require_client(self):
        client = self._get_s3_client()
        if client is None:
            raise StorageError("Storage is not configured")
        return client

    def save_submission(self, request_id: str, body: Mapping[str, Any]) -> bool:
        """
        Archive a raw submission.

        Args:
            request_id: Identifier of the submission
            body: Decoded request body, before validation

        Returns:
            True if the object was written, False otherwise
        """
        key = submission_key(request_id)
        client = self._get_s3_client()
        if client is None:
            logger.warning(f"[{request_id}] S3 client not available, skipping archive")
            return False

        try:
            payload = json.dumps(body, indent=2, ensure_ascii=False).encode("utf-8")
            client.put_object(Bucket=self.bucket, Key=key, Body=payload, ContentType="application/json")
        except (ClientError, BotoCoreError, TypeError, ValueError) as e:
            logger.error(f"[{request_id}] Archiving to s3://{self.bucket}/{key} failed: {e}")
            return False

        logger.info(f"[{request_id}] Archived submission to s3://{self.bucket}/{key}")
        return True

    def submission_exists(self, request_id: str) -> bool:
        """
        Check whether a submission has been archived.

        Raises:
            StorageError: If the bucket cannot be queried
        """
        client = self._require_client()
        try:
            client.head_object(Bucket=self.bucket, Key=submission_key(request_id))
        except ClientError as e:
            if str(e.response.get("Error", {}).get("Code")) in NOT_FOUND_CODES:
                return False
            raise StorageError(f"Could not look up submission {request_id}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Could not look up submission {request_id}: {e}") from e
        return True

    def load_submission(self, request_id: str) -> Dict[str, Any]:
        """
        Download and parse an archived submission.

        Raises:
            StorageError: If the object cannot be read or is not a JSON object
        """
        client = self._require_client()
        key = submission_key(request_id)
        try:
            response = client.get_object(Bucket=self.bucket, Key=key)
            data = json.loads(response["Body"].read())
        except (ClientError, BotoCoreError, ValueError) as e:
            raise StorageError(f"Could not load s3://{self.bucket}/{key}: {e}") from e

        if not isinstance(data, dict):
            raise StorageError(f"Archived submission {request_id} is not a JSON object")
        return data
