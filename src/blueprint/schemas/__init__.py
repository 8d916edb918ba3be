from src.blueprint.schemas.project import (
    FeatureRead,
    PipelineStarted,
    ProjectCreate,
    ProjectDetail,
    ProjectRead,
    ProjectStatusUpdate,
    ScreenRead,
    ScreenReorder,
)

__all__ = [
    "FeatureRead",
    "PipelineStarted",
    "ProjectCreate",
    "ProjectDetail",
    "ProjectRead",
    "ProjectStatusUpdate",
    "ScreenRead",
    "ScreenReorder",
]
