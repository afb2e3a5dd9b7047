# WORKFLOW: Import pipeline orchestrator for workspace archives.
# Used by: API import endpoint (background task), scripts/run_import.py
# Steps:
# 1. Fetch the archive and extract it to a working directory
# 2. Discover listing CSV files and images
# 3. Open one transaction: reconcile listings, then attach media
# 4. Commit, or roll back everything when a row failed or anything unexpected happened
# 5. Remove the working directory
# 6. Emit the deduplicated notifications exactly once
#
# Pipeline flow: ImportRequest -> Archive -> Files -> Transaction(reconcile -> media) -> Commit/Rollback
#                -> Cleanup -> Notifier -> ImportReport

"""
Import pipeline orchestrator for workspace archives.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

import httpx
from sqlalchemy.orm import Session

from core.config import ImportConfig
from etl.attach_media import attach_media, load_processed_workspaces
from etl.ingest_zip import extracted_archive, find_image_files, find_listing_files
from etl.reconcile import reconcile_listings
from services.file_manager import FileManager
from services.notifier import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportRequest:
    """A request to import the archive at ``archive_url``."""

    archive_url: str
    batch_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class ImportReport:
    """What happened during one import run."""

    batch_id: str
    committed: bool = False
    notifications: List[str] = field(default_factory=list)
    listings_saved: int = 0
    listings_retired: int = 0
    media_attached: int = 0
    error: Optional[str] = None


def unique_notifications(messages: Iterable[str]) -> List[str]:
    """Drop repeated messages, keeping the first occurrence order."""
    return list(dict.fromkeys(messages))


def failure_message(error: BaseException) -> str:
    return f"Something went wrong: {type(error).__name__} / {error}"


class ImportPipeline:
    """Run workspace imports against one database and set of collaborators."""

    def __init__(
        self,
        config: ImportConfig,
        session_factory: Callable[[], Session],
        file_manager: FileManager,
        notifier: Notifier,
        http_client: Optional[httpx.Client] = None,
    ):
        self.config = config
        self.session_factory = session_factory
        self.file_manager = file_manager
        self.notifier = notifier
        self.http_client = http_client

    def run(self, request: ImportRequest) -> ImportReport:
        """
        Run one import end to end.

        Never raises for import problems: they are reported through the
        notifier and the returned ImportReport.
        """
        logger.info(f"Starting import {request.batch_id} from {request.archive_url}")
        report = ImportReport(batch_id=request.batch_id)
        notifications: List[str] = []

        try:
            with extracted_archive(
                request.archive_url,
                self.config.storage_dir,
                timeout=self.config.download_timeout,
                client=self.http_client,
            ) as work_dir:
                listing_files = find_listing_files(work_dir)
                image_files = find_image_files(work_dir)
                logger.info(
                    f"Import {request.batch_id}: found {len(listing_files)} listing files "
                    f"and {len(image_files)} images"
                )
                self._synchronize(listing_files, image_files, report, notifications)
        except Exception as e:
            logger.error(f"Import {request.batch_id} failed before reaching the database: {type(e).__name__}: {e}")
            notifications.append(failure_message(e))
            report.error = str(e)

        report.notifications = unique_notifications(notifications)
        self.notifier.emit(request.batch_id, report.notifications)

        logger.info(
            f"Finished import {request.batch_id}: committed={report.committed}, "
            f"saved={report.listings_saved}, retired={report.listings_retired}, "
            f"media={report.media_attached}, notifications={len(report.notifications)}"
        )
        return report

    def _synchronize(
        self,
        listing_files: Sequence[str],
        image_files: Sequence[str],
        report: ImportReport,
        notifications: List[str],
    ) -> None:
        """Reconcile listings and attach media inside a single transaction."""
        session = self.session_factory()
        error: Optional[BaseException] = None
        try:
            reconciliation = reconcile_listings(session, listing_files, self.config.type_label_order)
            notifications.extend(reconciliation.notifications)
            error = reconciliation.abort_error()

            if error is None:
                workspaces = load_processed_workspaces(session, reconciliation.processed)
                media = attach_media(
                    session,
                    image_files,
                    workspaces,
                    self.file_manager,
                    self.config.media_upload_destination_path,
                )
                notifications.extend(media.notifications)
                session.commit()

                report.committed = True
                report.listings_saved = reconciliation.saved
                report.listings_retired = reconciliation.retired
                report.media_attached = media.attached
        except Exception as e:
            logger.exception(f"Import transaction failed: {type(e).__name__}: {e}")
            error = e
        finally:
            if not report.committed:
                session.rollback()
            session.close()

        if error is not None:
            logger.error(f"Rolled back import: {type(error).__name__}: {error}")
            notifications.append(failure_message(error))
            report.error = str(error)


def create_import_pipeline(source=None) -> ImportPipeline:
    """Build a pipeline wired to the configured database, file manager and notifier."""
    from core.config import settings
    from db.session import get_session_factory
    from services.file_manager import create_file_manager
    from services.notifier import create_notifier

    source = source or settings
    return ImportPipeline(
        config=ImportConfig.from_settings(source),
        session_factory=get_session_factory(),
        file_manager=create_file_manager(source),
        notifier=create_notifier(source),
    )
