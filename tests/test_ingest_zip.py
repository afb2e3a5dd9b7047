"""Tests for archive download, extraction and file discovery."""

from pathlib import Path

import pytest

from core.errors import ArchiveDownloadError, ArchiveExtractionError
from etl.ingest_zip import (
    extracted_archive,
    fetch_archive,
    find_files,
    find_image_files,
    find_listing_files,
)
from import_helpers import JPEG_BYTES, archive_client, build_archive, listing_csv, with_compression_method


def leftover_archives(storage_dir: Path) -> list:
    return list(storage_dir.glob("*.zip"))


def test_fetch_archive_extracts_and_removes_temporary_zip(storage_dir: Path):
    payload = build_archive({
        "offices.csv": listing_csv("Office;;;A1;;;;;;P1"),
        "images/office-a1.jpg": JPEG_BYTES,
    })

    work_dir = fetch_archive("https://files.example.com/import.zip", str(storage_dir), client=archive_client(payload))

    assert (work_dir / "offices.csv").is_file()
    assert (work_dir / "images" / "office-a1.jpg").read_bytes() == JPEG_BYTES
    assert work_dir.parent == (storage_dir / "unzip").resolve()
    assert leftover_archives(storage_dir) == []


def test_fetch_archive_uses_a_new_directory_each_time(storage_dir: Path):
    payload = build_archive({"offices.csv": listing_csv()})

    first = fetch_archive("https://files.example.com/a.zip", str(storage_dir), client=archive_client(payload))
    second = fetch_archive("https://files.example.com/a.zip", str(storage_dir), client=archive_client(payload))

    assert first != second


def test_corrupt_archive_raises_and_cleans_up(storage_dir: Path):
    """A corrupt archive is fatal and leaves neither the zip nor a working directory behind."""
    with pytest.raises(ArchiveExtractionError):
        fetch_archive("https://files.example.com/bad.zip", str(storage_dir), client=archive_client(b"not a zip"))

    assert leftover_archives(storage_dir) == []
    unzip_dir = storage_dir / "unzip"
    assert not unzip_dir.exists() or list(unzip_dir.iterdir()) == []


def test_unsupported_compression_raises_and_cleans_up(storage_dir: Path):
    payload = with_compression_method(build_archive({"offices.csv": listing_csv("Office;;;A1;;;;;;P1")}), 99)

    with pytest.raises(ArchiveExtractionError):
        fetch_archive("https://files.example.com/odd.zip", str(storage_dir), client=archive_client(payload))

    assert leftover_archives(storage_dir) == []
    unzip_dir = storage_dir / "unzip"
    assert not unzip_dir.exists() or list(unzip_dir.iterdir()) == []


def test_download_error_raises(storage_dir: Path):
    with pytest.raises(ArchiveDownloadError):
        fetch_archive("https://files.example.com/missing.zip", str(storage_dir), client=archive_client(b"", 404))

    assert leftover_archives(storage_dir) == []


def test_extracted_archive_removes_working_directory(storage_dir: Path):
    payload = build_archive({"offices.csv": listing_csv()})

    with extracted_archive("https://files.example.com/a.zip", str(storage_dir), client=archive_client(payload)) as work_dir:
        assert work_dir.is_dir()

    assert not work_dir.exists()


def test_extracted_archive_removes_working_directory_on_error(storage_dir: Path):
    payload = build_archive({"offices.csv": listing_csv()})

    with pytest.raises(RuntimeError):
        with extracted_archive("https://files.example.com/a.zip", str(storage_dir), client=archive_client(payload)) as work_dir:
            raise RuntimeError("interrupted")

    assert not work_dir.exists()


def test_find_files_is_recursive_sorted_and_case_insensitive(tmp_path: Path):
    tmp_path = tmp_path.resolve()
    for name in ["b.csv", "a.CSV", "nested/c.csv", "nested/photo.JPG", "notes.txt", "z/logo.png", "scan.bmp"]:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x")

    listings = find_listing_files(tmp_path)
    images = find_image_files(tmp_path)

    assert [Path(p).relative_to(tmp_path).as_posix() for p in listings] == ["a.CSV", "b.csv", "nested/c.csv"]
    assert [Path(p).relative_to(tmp_path).as_posix() for p in images] == ["scan.bmp", "nested/photo.JPG", "z/logo.png"]
    assert all(Path(p).is_absolute() for p in listings + images)


def test_find_files_accepts_dotted_extensions(tmp_path: Path):
    tmp_path = tmp_path.resolve()
    (tmp_path / "data.csv").write_bytes(b"x")

    assert find_files(tmp_path, [".csv"]) == [str((tmp_path / "data.csv").resolve())]
