# WORKFLOW: Import endpoint that schedules a workspace archive import.
# Used by: Back-office upload flow once the archive is available at a public URL
# Endpoints:
# 1. POST /imports - Accept an archive URL and run the import in the background
#
# Request flow: HTTP POST -> Validation -> Background task (ImportPipeline.run) -> 202 Accepted
# The outcome is reported by the pipeline's notifier, not by this response.

from fastapi import APIRouter, BackgroundTasks, Depends, status
import logging

from api.schemas.request import ImportArchiveRequest
from api.schemas.response import ImportAcceptedResponse
from etl.pipeline import ImportPipeline, ImportRequest, create_import_pipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["imports"])


def get_import_pipeline() -> ImportPipeline:
    return create_import_pipeline()


@router.post(
    "/imports",
    response_model=ImportAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def schedule_import(
    request: ImportArchiveRequest,
    background_tasks: BackgroundTasks,
    pipeline: ImportPipeline = Depends(get_import_pipeline),
):
    """
    Schedule an import of the archive at ``archive_url``.
    """
    import_request = (
        ImportRequest(archive_url=str(request.archive_url), batch_id=request.batch_id)
        if request.batch_id
        else ImportRequest(archive_url=str(request.archive_url))
    )
    logger.info(f"Scheduling import {import_request.batch_id} for {import_request.archive_url}")
    background_tasks.add_task(pipeline.run, import_request)

    return ImportAcceptedResponse(
        batch_id=import_request.batch_id,
        archive_url=import_request.archive_url,
    )
