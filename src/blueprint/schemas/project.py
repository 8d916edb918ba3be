"""Project schemas for API request/response."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.blueprint.models.enums import ProjectStatus


class ProjectCreate(BaseModel):
    """Schema for submitting a product idea."""

    description: str = Field(min_length=10, max_length=5000)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Description must be at least 10 characters")
        return v


class FeatureRead(BaseModel):
    id: UUID
    name: str
    description: str | None
    category: str | None
    priority: str | None
    estimated_hours: float | None
    complexity: int | None

    model_config = {"from_attributes": True}


class ScreenRead(BaseModel):
    id: UUID
    name: str
    type: str | None
    order: int
    wireframe: dict[str, Any]
    connections: list[dict[str, Any]]

    model_config = {"from_attributes": True}


class ProjectRead(BaseModel):
    """Schema for reading a project without its children."""

    id: UUID
    owner_id: UUID
    name: str
    description: str
    type: str | None
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProjectDetail(ProjectRead):
    """Project with analysis payload, features, and screens ordered by position."""

    analysis: dict[str, Any] | None
    features: list[FeatureRead] = Field(default_factory=list)
    screens: list[ScreenRead] = Field(default_factory=list)


class PipelineStarted(BaseModel):
    """Returned by triggers; the run continues in the background."""

    project_id: UUID
    status: ProjectStatus
    message: str
    screen_count: int | None = None


class ScreenReorder(BaseModel):
    """New screen order: every screen id of the project, first to last."""

    screen_ids: list[UUID] = Field(min_length=1)

    @field_validator("screen_ids")
    @classmethod
    def validate_unique(cls, v: list[UUID]) -> list[UUID]:
        if len(set(v)) != len(v):
            raise ValueError("Screen ids must be unique")
        return v


class ProjectStatusUpdate(BaseModel):
    """Status change requested outside the generation pipeline."""

    status: ProjectStatus
