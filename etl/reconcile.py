# WORKFLOW: Reconcile imported listing rows against the stored workspaces.
# Used by: Import pipeline orchestrator
# Functions:
# 1. upsert_listings() - Create or update one workspace per (centre, office number) row
# 2. retire_missing_listings() - Deactivate workspaces of imported centres absent from the import
# 3. reconcile_listings() - Upsert, then retire only when every row was saved
#
# Reconcile flow: Listing files -> Rows -> Centre check -> Normalize -> Upsert (savepoint per row)
#                 -> Processed office numbers per centre -> Retirement pass
# Row failures are collected in the result; the orchestrator decides to roll back.

"""
Reconcile imported listing rows against the stored workspaces.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import ImportAbortedError
from db.models import Centre, Workspace
from etl.transform_rows import ListingRow, normalize_row, read_listing_rows

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """Outcome of the reconciliation step for one import run."""

    notifications: List[str] = field(default_factory=list)
    # centre reference -> office numbers seen in this run, in file order
    processed: Dict[str, List[str]] = field(default_factory=dict)
    saved: int = 0
    failed: int = 0
    retired: int = 0

    def record(self, reference: str, office_number: str) -> None:
        office_numbers = self.processed.setdefault(reference, [])
        if office_number not in office_numbers:
            office_numbers.append(office_number)

    def abort_error(self) -> Optional[ImportAbortedError]:
        if self.failed > 0:
            return ImportAbortedError("Some offices could not be processed.")
        return None


def find_workspace(session: Session, reference: str, office_number: str) -> Optional[Workspace]:
    return session.execute(
        select(Workspace).where(
            Workspace.centre_reference == reference,
            Workspace.office_number == office_number,
        )
    ).scalar_one_or_none()


def apply_listing(workspace: Workspace, row: ListingRow) -> None:
    """Overwrite every imported attribute and publish the workspace."""
    workspace.type = row.type
    workspace.availability = date.fromisoformat(row.availability) if row.availability else None
    workspace.description = row.description
    workspace.desk_from = row.desk_from
    workspace.desk_to = row.desk_to
    workspace.price = row.price
    workspace.currency = row.currency
    workspace.size = row.size
    workspace.active = True
    workspace.visible_on_web = True


def upsert_listings(
    session: Session,
    listing_files: Sequence[str],
    type_labels: Sequence[str],
) -> ReconciliationResult:
    """
    Create or update a workspace for every row whose centre exists.

    Args:
        session: Session with an open transaction
        listing_files: Listing CSV paths, processed in order
        type_labels: Ordered workspace type labels

    Returns:
        ReconciliationResult with notifications, counts and processed office numbers
    """
    result = ReconciliationResult()

    for file_path in listing_files:
        logger.info(f"Processing listing file {file_path}")

        for raw in read_listing_rows(file_path):
            reference = raw.reference.strip()

            if session.get(Centre, reference) is None:
                logger.warning(f"Row {raw.row_number} of {file_path}: unknown centre {reference!r}")
                result.notifications.append(f"There is no centre with ID #{reference}.")
                continue

            row = normalize_row(raw, type_labels)
            if not row.office_number:
                logger.warning(f"Row {raw.row_number} of {file_path}: no office number for centre {reference}")
                result.notifications.append(f"Row {raw.row_number} for center {reference} has no office number.")
                continue

            workspace = find_workspace(session, reference, row.office_number)
            if workspace is None:
                workspace = Workspace(centre_reference=reference, office_number=row.office_number)
            apply_listing(workspace, row)

            try:
                with session.begin_nested():
                    session.add(workspace)
                result.saved += 1
            except SQLAlchemyError as e:
                logger.warning(
                    f"Row {raw.row_number} of {file_path}: office {row.office_number!r} "
                    f"for centre {reference} was not saved: {e}"
                )
                result.notifications.append(
                    f"Office {row.office_number} for center {reference} was not saved."
                )
                result.failed += 1

            result.record(reference, row.office_number)

    logger.info(
        f"Upserted {result.saved} workspaces across {len(result.processed)} centres "
        f"({result.failed} failed)"
    )
    return result


def retire_missing_listings(session: Session, processed: Dict[str, List[str]]) -> int:
    """
    Deactivate workspaces of imported centres that were not in the import.

    Workspaces flagged ``retain_on_missing_from_import`` are left untouched,
    as are workspaces of centres that did not appear in the import.

    Returns:
        Number of workspaces that changed from active or visible to retired
    """
    retired = 0
    for reference, office_numbers in processed.items():
        seen = set(office_numbers)
        workspaces = session.execute(
            select(Workspace)
            .where(Workspace.centre_reference == reference)
            .order_by(Workspace.id)
        ).scalars().all()

        for workspace in workspaces:
            if workspace.office_number in seen:
                continue
            if workspace.retain_on_missing_from_import:
                continue
            if workspace.active or workspace.visible_on_web:
                retired += 1
            workspace.active = False
            workspace.visible_on_web = False

    session.flush()
    logger.info(f"Retired {retired} workspaces missing from the import")
    return retired


def reconcile_listings(
    session: Session,
    listing_files: Sequence[str],
    type_labels: Sequence[str],
) -> ReconciliationResult:
    """Upsert every listing row, then retire missing workspaces if nothing failed."""
    result = upsert_listings(session, listing_files, type_labels)
    if result.failed > 0:
        logger.error(f"{result.failed} workspaces failed to save, skipping retirement")
        return result

    result.retired = retire_missing_listings(session, result.processed)
    return result
