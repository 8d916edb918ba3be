"""Project lifecycle state machine.

The pipeline owns six transitions between DRAFT, ANALYZING, WIREFRAMING and
READY. The remaining statuses are reached only through the external CRUD
layer, which has its own, separate set of transitions.

Every persisted transition is a compare-and-swap on the status column. Two
triggers racing on one project cannot both win: the loser sees
InvalidTransition with the status the winner left behind.
"""

from typing import Any
from uuid import UUID

from src.blueprint.core.logging import get_logger
from src.blueprint.models.enums import ProjectStatus
from src.blueprint.models.project import Feature
from src.blueprint.services.errors import InvalidTransition, ProjectNotFound
from src.blueprint.services.store import ArtifactStore

logger = get_logger(__name__)

PIPELINE_TRANSITIONS: frozenset[tuple[ProjectStatus, ProjectStatus]] = frozenset(
    {
        (ProjectStatus.DRAFT, ProjectStatus.ANALYZING),
        (ProjectStatus.ANALYZING, ProjectStatus.WIREFRAMING),
        (ProjectStatus.ANALYZING, ProjectStatus.DRAFT),
        (ProjectStatus.WIREFRAMING, ProjectStatus.READY),
        (ProjectStatus.WIREFRAMING, ProjectStatus.DRAFT),
        (ProjectStatus.READY, ProjectStatus.WIREFRAMING),
    }
)

EXTERNAL_TRANSITIONS: frozenset[tuple[ProjectStatus, ProjectStatus]] = frozenset(
    {
        (ProjectStatus.READY, ProjectStatus.IN_DEVELOPMENT),
        (ProjectStatus.IN_DEVELOPMENT, ProjectStatus.COMPLETED),
        (ProjectStatus.ARCHIVED, ProjectStatus.DRAFT),
    }
    | {
        (status, ProjectStatus.ARCHIVED)
        for status in ProjectStatus
        if not status.is_pipeline_busy and status is not ProjectStatus.ARCHIVED
    }
)


class ProjectStateMachine:
    """Validates and persists project status changes."""

    def __init__(self, store: ArtifactStore):
        self._store = store

    @staticmethod
    def is_legal(current: ProjectStatus, requested: ProjectStatus) -> bool:
        return (current, requested) in PIPELINE_TRANSITIONS

    @staticmethod
    def check(current: ProjectStatus, requested: ProjectStatus) -> None:
        """Raise InvalidTransition unless current -> requested is a pipeline transition."""
        if (current, requested) not in PIPELINE_TRANSITIONS:
            raise InvalidTransition(current, requested)

    async def transition(
        self, project_id: UUID, current: ProjectStatus, requested: ProjectStatus
    ) -> None:
        """Persist current -> requested.

        Raises:
            InvalidTransition: If the pair is illegal or the status moved on
            ProjectNotFound: If the project disappeared
        """
        self.check(current, requested)
        if not await self._store.update_project_status(project_id, current, requested):
            await self._raise_lost_race(project_id, requested)
        logger.info(
            "Project status changed",
            project_id=str(project_id),
            from_status=current.value,
            to_status=requested.value,
        )

    async def complete_analysis(
        self,
        project_id: UUID,
        *,
        name: str,
        app_type: str | None,
        analysis: dict[str, Any],
        features: list[Feature],
    ) -> None:
        """ANALYZING -> WIREFRAMING together with the analysis result and features."""
        current, requested = ProjectStatus.ANALYZING, ProjectStatus.WIREFRAMING
        self.check(current, requested)
        applied = await self._store.apply_analysis(
            project_id,
            current,
            requested,
            name=name,
            app_type=app_type,
            analysis=analysis,
            features=features,
        )
        if not applied:
            await self._raise_lost_race(project_id, requested)

    async def begin_reanalysis(self, project_id: UUID, current: ProjectStatus) -> None:
        """current -> ANALYZING, clearing the previous analysis, features and screens."""
        requested = ProjectStatus.ANALYZING
        self.check(current, requested)
        if not await self._store.reset_for_reanalysis(project_id, current, requested):
            await self._raise_lost_race(project_id, requested)

    async def revert_to_draft(self, project_id: UUID) -> ProjectStatus | None:
        """Return a busy project to DRAFT after a failed run.

        Returns:
            The status the project is left in, or None if it no longer exists
        """
        project = await self._store.find_project(project_id)
        if project is None:
            return None
        current = project.status_enum
        if not self.is_legal(current, ProjectStatus.DRAFT):
            logger.warning(
                "Project not reverted, status is not pipeline-busy",
                project_id=str(project_id),
                status=current.value,
            )
            return current
        await self.transition(project_id, current, ProjectStatus.DRAFT)
        return ProjectStatus.DRAFT

    async def transition_external(self, project_id: UUID, requested: ProjectStatus) -> None:
        """Apply a status change requested by the CRUD layer (archive, develop, ...)."""
        project = await self._store.find_project(project_id)
        if project is None:
            raise ProjectNotFound(project_id)
        current = project.status_enum
        if (current, requested) not in EXTERNAL_TRANSITIONS:
            raise InvalidTransition(current, requested)
        if not await self._store.update_project_status(project_id, current, requested):
            await self._raise_lost_race(project_id, requested)

    async def _raise_lost_race(self, project_id: UUID, requested: ProjectStatus) -> None:
        project = await self._store.find_project(project_id)
        if project is None:
            raise ProjectNotFound(project_id)
        logger.warning(
            "Status compare-and-swap lost",
            project_id=str(project_id),
            status=project.status,
            requested=requested.value,
        )
        raise InvalidTransition(project.status_enum, requested)
