"""Shared fixtures for the workspace importer tests.

Every test gets its own in-memory SQLite database, built through
``create_db_engine`` so SAVEPOINTs behave as they do in production.
Archives are assembled in memory and served by ``httpx.MockTransport``.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from core.config import ImportConfig
from db.models import Centre, Workspace
from db.session import create_db_engine, init_db
from etl.pipeline import ImportPipeline
from import_helpers import TYPE_LABELS, FakeFileManager, FakeNotifier, archive_client


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def seed(session_factory):
    """Insert centres and workspaces before a run."""

    def _seed(*objects) -> None:
        db = session_factory()
        db.add_all(objects)
        db.commit()
        db.close()

    return _seed


@pytest.fixture
def centre_p1(seed):
    seed(Centre(reference="P1", name="Paddington"))


@pytest.fixture
def storage_dir(tmp_path: Path) -> Path:
    return tmp_path / "storage"


@pytest.fixture
def import_config(storage_dir: Path) -> ImportConfig:
    return ImportConfig(
        type_label_order=TYPE_LABELS,
        media_upload_destination_path="workspaces/media-zip",
        storage_dir=str(storage_dir),
        download_timeout=5.0,
    )


@pytest.fixture
def file_manager() -> FakeFileManager:
    return FakeFileManager()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def make_pipeline(import_config, session_factory, file_manager, notifier):
    """Build a pipeline whose archive download returns ``payload``."""

    def _make(payload: bytes, status_code: int = 200) -> ImportPipeline:
        return ImportPipeline(
            config=import_config,
            session_factory=session_factory,
            file_manager=file_manager,
            notifier=notifier,
            http_client=archive_client(payload, status_code),
        )

    return _make


@pytest.fixture
def rejected_office():
    """Office number whose inserts fail at the database layer."""
    office_number = "X9"

    def reject(mapper, connection, target):
        if target.office_number == office_number:
            raise SQLAlchemyError(f"office {office_number} rejected")

    event.listen(Workspace, "before_insert", reject)
    yield office_number
    event.remove(Workspace, "before_insert", reject)
