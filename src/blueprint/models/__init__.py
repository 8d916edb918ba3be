"""Model exports.

Import from here: `from src.blueprint.models import Project, Screen`
"""

from src.blueprint.models.enums import (
    FeaturePriority,
    GenerationKind,
    ProjectStatus,
    SubscriptionTier,
)
from src.blueprint.models.project import UNTITLED_PROJECT_NAME, Feature, Project, Screen

__all__ = [
    # Enums
    "FeaturePriority",
    "GenerationKind",
    "ProjectStatus",
    "SubscriptionTier",
    # Tables
    "Feature",
    "Project",
    "Screen",
    "UNTITLED_PROJECT_NAME",
]
