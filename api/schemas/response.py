# WORKFLOW: Pydantic response schemas for the import API.
# Used by: FastAPI endpoints for response serialization and documentation
# Schemas include:
# 1. ImportAcceptedResponse - Returned when an import is scheduled

from pydantic import BaseModel, Field
from typing import Literal


class ImportAcceptedResponse(BaseModel):
    status: Literal["accepted"] = "accepted"
    batch_id: str = Field(..., description="Identity of the scheduled import")
    archive_url: str = Field(..., description="Archive that will be imported")
