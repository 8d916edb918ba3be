"""Structured artifacts returned by the generation gateway."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from src.blueprint.models.enums import FeaturePriority
from src.blueprint.services.errors import MalformedResult


class _Artifact(BaseModel):
    """Generated JSON uses camelCase keys; unknown keys are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class FeatureDescriptor(_Artifact):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    category: str | None = None
    priority: FeaturePriority | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    complexity: int | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v: Any) -> Any:
        """Unknown priorities are dropped rather than failing the analysis."""
        if not isinstance(v, str):
            return None
        v = v.strip().upper()
        return v if v in FeaturePriority.__members__ else None


class ScreenDescriptor(_Artifact):
    name: str = Field(min_length=1, max_length=200)
    type: str | None = None
    order: int | None = None
    description: str | None = None


class AnalysisArtifact(_Artifact):
    """Output of an analysis call: suggested identity plus features and screens."""

    app_name: str | None = None
    app_type: str | None = None
    features: list[FeatureDescriptor] = Field(default_factory=list)
    screens: list[ScreenDescriptor] = Field(default_factory=list)

    @field_validator("features", "screens", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class WireframeLayout(_Artifact):
    """Output of a wireframe call. Only the outline is checked; the rest is opaque."""

    layout: str = "column"
    components: list[dict[str, Any]] = Field(min_length=1)


def parse_analysis(data: Any) -> AnalysisArtifact:
    """Validate an analysis payload.

    Raises:
        MalformedResult: If the payload does not have the expected structure
    """
    try:
        return AnalysisArtifact.model_validate(data)
    except ValidationError as e:
        raise MalformedResult(f"Analysis payload is malformed: {e.error_count()} errors") from e


def parse_wireframe(data: Any) -> dict[str, Any]:
    """Validate a wireframe payload and return it unchanged.

    Raises:
        MalformedResult: If the payload is not a layout with components
    """
    try:
        WireframeLayout.model_validate(data)
    except ValidationError as e:
        raise MalformedResult(f"Wireframe payload is malformed: {e.error_count()} errors") from e
    return dict(data)


def normalize_screen_order(screens: list[ScreenDescriptor]) -> list[tuple[int, ScreenDescriptor]]:
    """Assign dense 1-based positions to screen descriptors.

    Screens are ranked by their declared order, falling back to list position
    when it is missing, with list position breaking ties. Declared orders that
    already form 1..K survive unchanged; anything else (gaps, duplicates,
    zero or negative values) is renumbered by that ranking.
    """
    ranked = sorted(
        enumerate(screens),
        key=lambda item: (
            item[1].order if item[1].order is not None else item[0] + 1,
            item[0],
        ),
    )
    return [(position, screen) for position, (_, screen) in enumerate(ranked, start=1)]
