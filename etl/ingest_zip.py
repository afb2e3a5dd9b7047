# WORKFLOW: ZIP archive acquisition and file discovery for workspace imports.
# Used by: Import pipeline orchestrator
# Functions:
# 1. download_archive() - Stream the remote archive into a local file
# 2. extract_zip_file() - Extract the archive into a working directory
# 3. fetch_archive() - Download + extract, always deleting the temporary archive
# 4. find_files() - Recursively list files by extension (CSV listings, images)
# 5. remove_directory() / extracted_archive() - Working directory cleanup
#
# Ingestion flow: Archive URL -> Temporary .zip -> Working directory -> CSV + image paths
# The working directory is removed when the import run ends, whatever its outcome.

"""
ZIP archive acquisition and file discovery for workspace imports.
"""

import logging
import os
import shutil
import time
import uuid
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import httpx

from core.errors import ArchiveDownloadError, ArchiveExtractionError

logger = logging.getLogger(__name__)

LISTING_EXTENSIONS = ("csv",)
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "bmp")


def download_archive(
    url: str,
    destination: Path,
    timeout: float = 60.0,
    client: Optional[httpx.Client] = None,
) -> Path:
    """
    Download the archive at ``url`` into ``destination``.

    Args:
        url: Public URL of the archive
        destination: Local file to write
        timeout: Request timeout in seconds
        client: Optional preconfigured HTTP client

    Returns:
        Path of the downloaded file
    """
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        with http.stream("GET", url) as response:
            response.raise_for_status()
            with open(destination, "wb") as handle:
                for chunk in response.iter_bytes():
                    handle.write(chunk)
    except httpx.HTTPError as e:
        logger.error(f"Failed to download archive {url}: {e}")
        raise ArchiveDownloadError(f"Could not download archive {url}: {e}") from e
    finally:
        if owns_client:
            http.close()

    logger.info(f"Downloaded archive {url} to {destination} ({destination.stat().st_size} bytes)")
    return destination


def extract_zip_file(zip_path: Path, extract_dir: Path) -> Path:
    """
    Extract a ZIP archive into ``extract_dir``.

    Args:
        zip_path: Path to ZIP file
        extract_dir: Directory to extract files to

    Returns:
        The extraction directory
    """
    try:
        with zipfile.ZipFile(zip_path, "r") as zip_ref:
            zip_ref.extractall(extract_dir)
    except Exception as e:
        logger.error(f"Failed to extract ZIP file {zip_path}: {e}")
        remove_directory(extract_dir)
        raise ArchiveExtractionError(f"Could not extract archive {zip_path.name}: {e}") from e

    logger.info(f"Extracted {zip_path} into {extract_dir}")
    return extract_dir


def fetch_archive(
    url: str,
    storage_dir: str,
    timeout: float = 60.0,
    client: Optional[httpx.Client] = None,
) -> Path:
    """
    Download and extract the archive at ``url``.

    The temporary archive is deleted whether or not extraction succeeded.
    The returned working directory belongs to the caller.
    """
    storage = Path(storage_dir)
    storage.mkdir(parents=True, exist_ok=True)

    stamp = f"{int(time.time())}_{uuid.uuid4().hex[:8]}"
    archive_path = storage / f"{stamp}_csvfile.zip"
    work_dir = storage / "unzip" / stamp

    try:
        download_archive(url, archive_path, timeout=timeout, client=client)
        extract_zip_file(archive_path, work_dir)
    finally:
        archive_path.unlink(missing_ok=True)

    return work_dir.resolve()


def find_files(directory: Path, extensions: Iterable[str]) -> List[str]:
    """
    Recursively list files under ``directory`` whose extension is in ``extensions``.

    Directories and files are visited in sorted order so results are stable.
    """
    wanted = {ext.lower().lstrip(".") for ext in extensions}
    found = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            if Path(name).suffix.lower().lstrip(".") in wanted:
                found.append(str(Path(root, name).resolve()))
    return found


def find_listing_files(directory: Path) -> List[str]:
    return find_files(directory, LISTING_EXTENSIONS)


def find_image_files(directory: Path) -> List[str]:
    return find_files(directory, IMAGE_EXTENSIONS)


def remove_directory(path: Path) -> None:
    """Delete a working directory and everything in it."""
    if not Path(path).exists():
        return
    try:
        shutil.rmtree(path)
        logger.info(f"Removed working directory {path}")
    except OSError as e:
        logger.error(f"Failed to remove working directory {path}: {e}")


@contextmanager
def extracted_archive(
    url: str,
    storage_dir: str,
    timeout: float = 60.0,
    client: Optional[httpx.Client] = None,
) -> Iterator[Path]:
    """Yield the extracted working directory and remove it on exit."""
    work_dir = fetch_archive(url, storage_dir, timeout=timeout, client=client)
    try:
        yield work_dir
    finally:
        remove_directory(work_dir)
