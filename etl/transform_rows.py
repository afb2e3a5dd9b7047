# WORKFLOW: Read workspace listing CSV files and normalize their rows.
# Used by: Reconciliation engine
# Functions:
# 1. decode_text() - Decode file bytes (UTF-8, then Windows-1252, then Latin-1)
# 2. read_listing_rows() - Parse a ';' separated listing file into RawListingRow objects
# 3. normalize_currency() / normalize_availability() / normalize_type() / normalize_number()
# 4. normalize_row() - Apply every column transform to one row
#
# Transform flow: CSV bytes -> Decoded text -> Fixed 10-column rows -> Normalized ListingRow
# A malformed field degrades to an empty or null value, it never rejects the row.

"""
Read workspace listing CSV files and normalize their rows.
"""

import io
import logging
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

# File column order: Des;Availability;Type;Off Num;From;To;Price;Currency;Size (sq ft);Ref
COLUMNS = (
    "description",
    "availability",
    "type",
    "office_number",
    "desk_from",
    "desk_to",
    "price",
    "currency",
    "size",
    "reference",
)

ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")
AVAILABILITY_FORMAT = "%d/%m/%Y"


@dataclass(frozen=True)
class RawListingRow:
    """One data row as read from a listing file, fields untouched."""

    row_number: int
    description: str = ""
    availability: str = ""
    type: str = ""
    office_number: str = ""
    desk_from: str = ""
    desk_to: str = ""
    price: str = ""
    currency: str = ""
    size: str = ""
    reference: str = ""

    def is_blank(self) -> bool:
        return not any(getattr(self, column).strip() for column in COLUMNS)


@dataclass(frozen=True)
class ListingRow:
    """A listing row after normalization."""

    row_number: int
    description: str
    availability: Optional[str]
    type: Optional[int]
    office_number: str
    desk_from: str
    desk_to: str
    price: str
    currency: str
    size: str
    reference: str


def decode_text(raw: bytes) -> str:
    """Decode listing file bytes, trying UTF-8 before the Windows code pages."""
    for encoding in ENCODINGS:
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    # latin-1 maps every byte, so this is unreachable
    raise ValueError("Unable to decode listing file")


def read_listing_rows(file_path: str) -> Iterator[RawListingRow]:
    """
    Parse a listing file.

    The first line is a header and is skipped. Short rows are padded with
    empty fields and extra fields are dropped.

    Args:
        file_path: Path to a ';' separated listing file

    Yields:
        RawListingRow objects in file order, numbered from 1
    """
    text = decode_text(Path(file_path).read_bytes())

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=";",
            header=None,
            skiprows=1,
            names=list(COLUMNS),
            index_col=False,
            dtype=object,
            keep_default_na=False,
            engine="python",
        )
    except pd.errors.EmptyDataError:
        logger.warning(f"Listing file {file_path} has no data rows")
        return

    df = df.fillna("")
    logger.info(f"Read {len(df)} rows from {file_path}")

    for position, record in enumerate(df.to_dict(orient="records"), start=1):
        row = RawListingRow(row_number=position, **{column: str(record[column]) for column in COLUMNS})
        if row.is_blank():
            continue
        yield row


def _clean_text(value: str) -> str:
    return unicodedata.normalize("NFC", value).strip()


def normalize_currency(value: str) -> str:
    """Map a currency column to its ISO code: '£' -> GBP, '€' -> EUR, else ''."""
    currency = _clean_text(value)
    if "£" in currency:
        return "GBP"
    if "€" in currency:
        return "EUR"
    return ""


def normalize_availability(value: str) -> Optional[str]:
    """Convert a dd/mm/yyyy date to ISO format; empty or invalid dates become None."""
    availability = value.strip()
    if not availability:
        return None
    try:
        return datetime.strptime(availability, AVAILABILITY_FORMAT).date().isoformat()
    except ValueError:
        return None


def normalize_type(value: str, type_labels: Sequence[str]) -> Optional[int]:
    """Return the position of the label in ``type_labels``, or None when unknown."""
    try:
        return list(type_labels).index(value.strip())
    except ValueError:
        return None


def normalize_number(value: str) -> str:
    """Strip whitespace and thousands separators."""
    return value.strip().replace(",", "")


def normalize_row(row: RawListingRow, type_labels: Sequence[str]) -> ListingRow:
    return ListingRow(
        row_number=row.row_number,
        description=_clean_text(row.description),
        availability=normalize_availability(row.availability),
        type=normalize_type(row.type, type_labels),
        office_number=row.office_number.strip(),
        desk_from=row.desk_from.strip(),
        desk_to=row.desk_to.strip(),
        price=normalize_number(row.price),
        currency=normalize_currency(row.currency),
        size=normalize_number(row.size),
        reference=row.reference.strip(),
    )
