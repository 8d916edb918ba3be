"""FastAPI dependency injection definitions.

Re-exports all dependencies for convenience.
"""

from src.blueprint.api.dependencies.auth import CurrentUser, get_current_principal
from src.blueprint.api.dependencies.services import (
    PipelineServiceDep,
    build_pipeline_service,
    get_pipeline_service,
)

__all__ = [
    # Auth
    "CurrentUser",
    "get_current_principal",
    # Services
    "PipelineServiceDep",
    "build_pipeline_service",
    "get_pipeline_service",
]
