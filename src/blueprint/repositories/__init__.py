"""Repository layer - data access abstraction."""

from src.blueprint.repositories.base import BaseRepository
from src.blueprint.repositories.project import (
    FeatureRepository,
    ProjectRepository,
    ScreenRepository,
)

__all__ = [
    "BaseRepository",
    "FeatureRepository",
    "ProjectRepository",
    "ScreenRepository",
]
