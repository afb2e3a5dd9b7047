# WORKFLOW: Match extracted images to imported workspaces and attach them.
# Used by: Import pipeline orchestrator, after reconciliation
# Functions:
# 1. slugify() - Comparison-safe slug for file names and office numbers
# 2. detect_mime_type() - Image MIME type from the file content (filetype)
# 3. load_processed_workspaces() - Workspaces touched by this import run
# 4. attach_media() - Upload each matching image to workspaces without media
#
# Media flow: Image path -> Name slug -> Workspaces whose office number slug it contains
#             -> Skip workspaces that already have media -> Upload -> WorkspaceMedia row
# A workspace receives at most one image. Media failures never abort the import.

"""
Match extracted images to imported workspaces and attach them.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import filetype
from sqlalchemy import or_, and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import FileUploadError
from db.models import Workspace, WorkspaceMedia
from services.file_manager import FileManager

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"


@dataclass
class MediaResult:
    """Outcome of the media step for one import run."""

    notifications: List[str] = field(default_factory=list)
    attached: int = 0
    failed: int = 0


def slugify(value: str) -> str:
    """
    Lower-case ASCII slug.

    Underscores and whitespace become '-', any other punctuation is dropped,
    so "1.01" and "101" share the slug "101".
    """
    ascii_value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[_\s]+", "-", ascii_value.lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return re.sub(r"-+", "-", slug).strip("-")


def detect_mime_type(file_path: str) -> str:
    kind = filetype.guess(file_path)
    if kind is None:
        return DEFAULT_MIME_TYPE
    return kind.mime


def split_image_name(file_path: str) -> Tuple[str, str]:
    """Return the file name without extension and the extension with its leading dot."""
    path = Path(file_path)
    extension = path.suffix
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return path.stem, extension


def load_processed_workspaces(session: Session, processed: Dict[str, List[str]]) -> List[Workspace]:
    """Fetch the workspaces recorded as processed during the run, ordered by id."""
    if not processed:
        return []

    conditions = [
        and_(Workspace.centre_reference == reference, Workspace.office_number.in_(office_numbers))
        for reference, office_numbers in processed.items()
        if office_numbers
    ]
    if not conditions:
        return []

    return list(
        session.execute(select(Workspace).where(or_(*conditions)).order_by(Workspace.id)).scalars()
    )


def has_media(session: Session, workspace: Workspace) -> bool:
    return session.execute(
        select(WorkspaceMedia.id).where(WorkspaceMedia.workspace_id == workspace.id)
    ).first() is not None


def attach_media(
    session: Session,
    image_files: Sequence[str],
    workspaces: Sequence[Workspace],
    file_manager: FileManager,
    destination_path: str,
) -> MediaResult:
    """
    Upload images whose name contains a workspace's office number.

    One image may match several workspaces. A workspace that already has
    media is skipped, so the first matching image wins.

    Args:
        session: Session with an open transaction
        image_files: Image paths in discovery order
        workspaces: Workspaces touched by this import
        file_manager: Upload collaborator
        destination_path: Remote folder for uploaded images

    Returns:
        MediaResult with notifications and counts
    """
    result = MediaResult()
    office_slugs = [(workspace, slugify(workspace.office_number or "")) for workspace in workspaces]

    for image_path in image_files:
        filename, extension = split_image_name(image_path)
        name_slug = slugify(filename)
        mime_type = detect_mime_type(image_path)

        for workspace, office_slug in office_slugs:
            if not office_slug or office_slug not in name_slug:
                continue

            if has_media(session, workspace):
                logger.debug(f"Workspace {workspace.id} already has media, skipping {filename}")
                continue

            try:
                url = file_manager.upload(image_path, destination_path, f"{filename}{extension}", mime_type)
            except FileUploadError as e:
                logger.warning(f"Upload of {image_path} for workspace {workspace.id} failed: {e}")
                result.notifications.append(
                    f"Media {filename} for office {workspace.id} could not be uploaded."
                )
                result.failed += 1
                continue

            media = WorkspaceMedia(
                workspace_id=workspace.id,
                name=filename,
                mime_type=mime_type,
                url=url,
            )
            try:
                with session.begin_nested():
                    session.add(media)
                result.attached += 1
                logger.info(f"Attached {filename}{extension} to workspace {workspace.id}")
            except SQLAlchemyError as e:
                logger.warning(f"Media {filename} for workspace {workspace.id} was not saved: {e}")
                result.notifications.append(f"Media {filename} for office {workspace.id} was not saved.")
                result.failed += 1

    return result
