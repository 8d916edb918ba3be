"""Shared enums for models."""

from enum import Enum


class ProjectStatus(str, Enum):
    """Project lifecycle status."""

    DRAFT = "draft"
    ANALYZING = "analyzing"
    WIREFRAMING = "wireframing"
    READY = "ready"
    IN_DEVELOPMENT = "in_development"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    @property
    def is_pipeline_busy(self) -> bool:
        """True while an analysis or wireframe run owns the project."""
        return self in (ProjectStatus.ANALYZING, ProjectStatus.WIREFRAMING)


class FeaturePriority(str, Enum):
    """Feature priority suggested by the analysis pass."""

    MVP = "MVP"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class SubscriptionTier(str, Enum):
    """Billing tier of a tenant; selects its quota limits."""

    FREE = "free"
    STARTER = "starter"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class GenerationKind(str, Enum):
    """Kind of request sent to the generation gateway."""

    ANALYSIS = "analysis"
    WIREFRAME = "wireframe"
