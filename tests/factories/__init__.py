"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import ProjectFactory, ScreenFactory, ...
"""

from tests.factories.base import BaseFactory, generate_uuid, utc_now
from tests.factories.project import FeatureFactory, ProjectFactory, ScreenFactory

__all__ = [
    # Base
    "BaseFactory",
    "generate_uuid",
    "utc_now",
    # Project
    "FeatureFactory",
    "ProjectFactory",
    "ScreenFactory",
]
