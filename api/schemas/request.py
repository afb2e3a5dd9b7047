# WORKFLOW: Pydantic request schemas for API input validation.
# Used by: FastAPI endpoints for request validation and documentation
# Schemas include:
# 1. ImportArchiveRequest - For the /imports endpoint

from pydantic import BaseModel, Field, HttpUrl
from typing import Optional


class ImportArchiveRequest(BaseModel):
    """Request schema for scheduling an archive import."""
    archive_url: HttpUrl = Field(..., description="Public URL of the ZIP archive")
    batch_id: Optional[str] = Field(
        None,
        min_length=1,
        max_length=64,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Identity used to correlate notifications; generated when omitted",
    )
