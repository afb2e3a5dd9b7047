# WORKFLOW: Database models for centres, workspaces and workspace media.
# Used by: Import pipeline (reconciliation, media association), API readiness
# Models represent:
# 1. centres - Business centres, identified by their external reference
# 2. workspaces - Leasable units (offices, desks) belonging to a centre
# 3. workspace_media - The single image attached to a workspace
#
# Data flow: Archive CSV rows -> Normalized rows -> Workspace upserts -> Media uploads

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Centre(Base):
    __tablename__ = "centres"

    reference = Column(String(50), primary_key=True)
    name = Column(String(255), nullable=True)

    # Relationships
    workspaces = relationship("Workspace", back_populates="centre")


class Workspace(Base):
    __tablename__ = "workspaces"

    id = Column(Integer, primary_key=True, autoincrement=True)
    centre_reference = Column(String(50), ForeignKey("centres.reference"), nullable=False)
    office_number = Column(String(50), nullable=False)
    type = Column(Integer, nullable=True)  # Index into the configured type labels
    availability = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    desk_from = Column(String(50), nullable=True)
    desk_to = Column(String(50), nullable=True)
    price = Column(String(50), nullable=True)
    currency = Column(String(3), nullable=True)
    size = Column(String(50), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    visible_on_web = Column(Boolean, nullable=False, default=True)
    retain_on_missing_from_import = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    centre = relationship("Centre", back_populates="workspaces")
    media = relationship("WorkspaceMedia", back_populates="workspace", uselist=False)

    __table_args__ = (
        UniqueConstraint("centre_reference", "office_number", name="uq_workspace_centre_office"),
        CheckConstraint("office_number <> ''", name="ck_workspace_office_number"),
        Index("idx_workspace_centre", "centre_reference"),
    )


class WorkspaceMedia(Base):
    __tablename__ = "workspace_media"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workspace_id = Column(Integer, ForeignKey("workspaces.id"), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    url = Column(Text, nullable=False)

    # Relationships
    workspace = relationship("Workspace", back_populates="media")
