"""Project, Feature and Screen tables."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, ForeignKey, Index
from sqlalchemy import Uuid as SaUuid
from sqlmodel import Field, SQLModel

from src.blueprint.models.base import utc_now
from src.blueprint.models.enums import ProjectStatus

UNTITLED_PROJECT_NAME = "Untitled Project"


class Project(SQLModel, table=True):
    """A product idea and the design artifacts generated from it.

    `description` is written once at creation and never updated; every
    generation call reads it. `status` is only changed through
    ProjectStateMachine.
    """

    __tablename__ = "projects"
    __table_args__ = (Index("ix_projects_owner_created", "owner_id", "created_at"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    owner_id: UUID = Field(index=True)
    owner_email: str | None = Field(default=None, max_length=255)
    name: str = Field(default=UNTITLED_PROJECT_NAME, max_length=200)
    description: str = Field(max_length=5000)
    type: str | None = Field(default=None, max_length=50)
    status: str = Field(default=ProjectStatus.DRAFT.value, max_length=20, index=True)
    analysis: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def status_enum(self) -> ProjectStatus:
        """Get status as ProjectStatus enum."""
        return ProjectStatus(self.status)


class Feature(SQLModel, table=True):
    """A feature proposed by the analysis pass."""

    __tablename__ = "features"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(
        sa_column=Column(
            SaUuid(), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    name: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    category: str | None = Field(default=None, max_length=100)
    priority: str | None = Field(default=None, max_length=20)
    estimated_hours: float | None = Field(default=None)
    complexity: int | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)


class Screen(SQLModel, table=True):
    """A screen of the designed app.

    `order` is dense and 1-based within a project. `wireframe` stays `{}`
    until a wireframe pass fills it.
    """

    __tablename__ = "screens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID = Field(
        sa_column=Column(
            SaUuid(), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
        )
    )
    name: str = Field(max_length=200)
    type: str | None = Field(default=None, max_length=50)
    order: int = Field(ge=1)
    wireframe: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False, default=dict)
    )
    connections: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False, default=list)
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
