# WORKFLOW: File manager adapters used to publish workspace images.
# Used by: Media association step of the import pipeline
# Classes:
# 1. FileManager - Protocol: upload(local path, destination folder, file name, mime type) -> URL
# 2. LocalFileManager - Copies into a local media root served under a base URL
# 3. S3FileManager - Uploads to an S3 bucket through boto3
# 4. create_file_manager() - Pick the backend from settings
#
# Upload flow: Extracted image -> Unique object name -> Storage backend -> Public URL
# Backend failures are raised as FileUploadError so callers can report and move on.

import logging
import shutil
import uuid
from pathlib import Path
from typing import Any, Optional, Protocol

from core.config import Settings
from core.errors import FileUploadError, WorkspaceImportError

logger = logging.getLogger(__name__)


class FileManager(Protocol):
    def upload(self, file_path: str, destination_path: str, filename: str, mime_type: str) -> str:
        ...


def _object_name(destination_path: str, filename: str) -> str:
    # Prefix keeps uploads of identically named images from overwriting each other
    return f"{destination_path.strip('/')}/{uuid.uuid4().hex[:12]}-{filename}"


class LocalFileManager:
    """Store uploads below a local directory."""

    def __init__(self, root: str, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def upload(self, file_path: str, destination_path: str, filename: str, mime_type: str) -> str:
        key = _object_name(destination_path, filename)
        target = self.root / key
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(file_path, target)
        except OSError as e:
            raise FileUploadError(f"Failed to store {file_path} at {target}: {e}") from e

        logger.info(f"Stored {filename} ({mime_type}) at {target}")
        return f"{self.base_url}/{key}"


class S3FileManager:
    """Upload images to an S3 bucket."""

    def __init__(self, bucket: str, client: Any, region: Optional[str] = None):
        self.bucket = bucket
        self.client = client
        self.region = region

    @classmethod
    def from_settings(cls, source: Settings) -> "S3FileManager":
        try:
            import boto3
        except ImportError as error:
            raise WorkspaceImportError(
                "The S3 file manager requires boto3, but it is not installed."
            ) from error
        session_kwargs: dict[str, str] = {}
        if source.s3_profile:
            session_kwargs["profile_name"] = source.s3_profile
        if source.s3_region:
            session_kwargs["region_name"] = source.s3_region
        session = boto3.session.Session(**session_kwargs)
        return cls(source.s3_bucket, session.client("s3"), region=source.s3_region)

    def upload(self, file_path: str, destination_path: str, filename: str, mime_type: str) -> str:
        key = _object_name(destination_path, filename)
        try:
            self.client.upload_file(file_path, self.bucket, key, ExtraArgs={"ContentType": mime_type})
        except Exception as error:
            raise FileUploadError(
                f"Failed to upload {file_path} to s3://{self.bucket}/{key}: {error}"
            ) from error

        if self.region:
            return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"


def create_file_manager(source: Settings) -> FileManager:
    """Build the file manager configured in settings."""
    if source.file_manager_backend == "s3":
        if not source.s3_bucket:
            raise WorkspaceImportError("file_manager_backend is 's3' but s3_bucket is not set")
        return S3FileManager.from_settings(source)
    if source.file_manager_backend == "local":
        return LocalFileManager(source.media_local_root, source.media_base_url)
    raise WorkspaceImportError(f"Unknown file manager backend: {source.file_manager_backend}")
