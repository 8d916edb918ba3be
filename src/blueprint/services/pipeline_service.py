"""Project service: pipeline triggers and the reads and edits around them."""

from uuid import UUID

from src.blueprint.core.cache import (
    CacheInvalidator,
    get_cached,
    project_cache_key,
    project_list_cache_key,
    set_cached,
)
from src.blueprint.core.config import get_settings
from src.blueprint.core.logging import get_logger
from src.blueprint.core.security import Principal
from src.blueprint.core.tasks import BackgroundTaskRunner
from src.blueprint.models.enums import ProjectStatus
from src.blueprint.models.project import Project, Screen
from src.blueprint.schemas.pagination import PaginatedResponse
from src.blueprint.schemas.project import (
    FeatureRead,
    PipelineStarted,
    ProjectDetail,
    ProjectRead,
    ScreenRead,
)
from src.blueprint.services.analysis import AnalysisOrchestrator, AnalysisRun
from src.blueprint.services.errors import PreconditionFailed, ProjectNotFound, ScreenNotFound
from src.blueprint.services.progress import ProjectEvents
from src.blueprint.services.quota import QuotaGate, get_tier_limits
from src.blueprint.services.state_machine import ProjectStateMachine
from src.blueprint.services.store import ArtifactStore
from src.blueprint.services.wireframe import ScreenTarget, WireframeOrchestrator, WireframeRun

logger = get_logger(__name__)


class PipelineService:
    """Entry points used by the HTTP layer.

    Triggers validate, check quota, commit the first transition and hand the
    run to the background runner; they return before any generation call.
    Errors raised here (AdmissionDenied, InvalidTransition, ProjectNotFound,
    PreconditionFailed) leave the project untouched.
    """

    def __init__(
        self,
        store: ArtifactStore,
        quota: QuotaGate,
        events: ProjectEvents,
        state_machine: ProjectStateMachine,
        invalidator: CacheInvalidator,
        analysis: AnalysisOrchestrator,
        wireframe: WireframeOrchestrator,
        runner: BackgroundTaskRunner,
    ):
        self.store = store
        self.quota = quota
        self.events = events
        self.state_machine = state_machine
        self.invalidator = invalidator
        self.analysis = analysis
        self.wireframe = wireframe
        self.runner = runner

    async def _get_owned_project(self, project_id: UUID, owner_id: UUID) -> Project:
        project = await self.store.find_project(project_id)
        if project is None or project.owner_id != owner_id:
            raise ProjectNotFound(project_id)
        return project

    # Triggers

    async def create_project(self, principal: Principal, description: str) -> PipelineStarted:
        """Create a DRAFT project from an idea and start analyzing it.

        Quota is checked before anything is written, so a denied request
        creates no project.
        """
        await self.quota.check(principal.user_id, get_tier_limits(principal.tier))
        project = await self.store.create_project(
            principal.user_id, description, owner_email=principal.email
        )
        logger.info("Project created", project_id=str(project.id))
        await self.invalidator.invalidate_project(project.id, principal.user_id)
        return await self._begin_analysis(project, principal, reset=False)

    async def start_analysis(self, project_id: UUID, principal: Principal) -> PipelineStarted:
        """Start analysis of a DRAFT project.

        Features and screens left behind by an earlier failed run are cleared
        in the same transaction as the DRAFT -> ANALYZING swap, so a retry
        replaces them instead of adding to them.
        """
        project = await self._get_owned_project(project_id, principal.user_id)
        self.state_machine.check(project.status_enum, ProjectStatus.ANALYZING)
        await self.quota.check(principal.user_id, get_tier_limits(principal.tier))
        return await self._begin_analysis(project, principal, reset=True)

    async def reanalyze(self, project_id: UUID, principal: Principal) -> PipelineStarted:
        """Discard the previous analysis, features and screens and analyze again."""
        project = await self._get_owned_project(project_id, principal.user_id)
        self.state_machine.check(project.status_enum, ProjectStatus.ANALYZING)
        await self.quota.check(principal.user_id, get_tier_limits(principal.tier))
        return await self._begin_analysis(project, principal, reset=True)

    async def _begin_analysis(
        self, project: Project, principal: Principal, *, reset: bool
    ) -> PipelineStarted:
        if reset:
            await self.state_machine.begin_reanalysis(project.id, project.status_enum)
        else:
            await self.state_machine.transition(
                project.id, project.status_enum, ProjectStatus.ANALYZING
            )
        await self.invalidator.invalidate_project(project.id, principal.user_id)

        run = AnalysisRun(
            project_id=project.id,
            owner_id=principal.user_id,
            owner_email=project.owner_email or principal.email,
            description=project.description,
            tier_limits=get_tier_limits(principal.tier),
        )
        self.runner.spawn(self.analysis.run_analysis(run), name=f"analysis-{project.id}")
        return PipelineStarted(
            project_id=project.id,
            status=ProjectStatus.ANALYZING,
            message="Analysis started",
        )

    async def start_wireframe_generation(
        self, project_id: UUID, principal: Principal
    ) -> PipelineStarted:
        """Generate a wireframe for every screen of a READY project.

        Raises:
            ProjectNotFound: If the project does not exist or is not the caller's
            PreconditionFailed: If the project has no screens
            InvalidTransition: If the project is not READY
            AdmissionDenied: If the caller is out of quota
        """
        loaded = await self.store.find_project_with_relations(project_id)
        if loaded is None or loaded.project.owner_id != principal.user_id:
            raise ProjectNotFound(project_id)
        project = loaded.project
        if not loaded.screens:
            raise PreconditionFailed("Project has no screens to generate wireframes for")

        self.state_machine.check(project.status_enum, ProjectStatus.WIREFRAMING)
        limits = get_tier_limits(principal.tier)
        await self.quota.check(principal.user_id, limits)
        await self.state_machine.transition(
            project.id, project.status_enum, ProjectStatus.WIREFRAMING
        )
        await self.events.status_changed(principal.user_id, project.id, ProjectStatus.WIREFRAMING)
        await self.invalidator.invalidate_project(project.id, principal.user_id)

        run = WireframeRun(
            project_id=project.id,
            owner_id=principal.user_id,
            description=project.description,
            tier_limits=limits,
            screens=[
                ScreenTarget(screen_id=s.id, name=s.name, type=s.type)
                for s in sorted(loaded.screens, key=lambda s: s.order)
            ],
            feature_names=[f.name for f in loaded.features],
        )
        self.runner.spawn(
            self.wireframe.run_wireframe_generation(run), name=f"wireframe-{project.id}"
        )
        return PipelineStarted(
            project_id=project.id,
            status=ProjectStatus.WIREFRAMING,
            message="Wireframe generation started",
            screen_count=len(run.screens),
        )

    # Reads

    async def get_project(self, project_id: UUID, owner_id: UUID) -> ProjectDetail:
        """Project with features and screens, read through the cache."""
        settings = get_settings()
        key = project_cache_key(project_id)

        cached = await get_cached(key)
        if cached is not None:
            detail = ProjectDetail.model_validate_json(cached)
            if detail.owner_id != owner_id:
                raise ProjectNotFound(project_id)
            return detail

        loaded = await self.store.find_project_with_relations(project_id)
        if loaded is None or loaded.project.owner_id != owner_id:
            raise ProjectNotFound(project_id)

        detail = ProjectDetail(
            **ProjectRead.model_validate(loaded.project).model_dump(),
            analysis=loaded.project.analysis,
            features=[FeatureRead.model_validate(f) for f in loaded.features],
            screens=[ScreenRead.model_validate(s) for s in loaded.screens],
        )
        await set_cached(key, detail.model_dump_json(), settings.project_cache_ttl_seconds)
        return detail

    async def list_projects(
        self, owner_id: UUID, cursor: str | None = None, limit: int | None = None
    ) -> PaginatedResponse[ProjectRead]:
        """Owner's projects, newest first. Only the default first page is cached."""
        settings = get_settings()
        page_size = limit or settings.project_list_page_size
        cacheable = cursor is None and page_size == settings.project_list_page_size
        key = project_list_cache_key(owner_id)

        if cacheable:
            cached = await get_cached(key)
            if cached is not None:
                return PaginatedResponse[ProjectRead].model_validate_json(cached)

        projects, next_cursor, has_more = await self.store.list_projects(
            owner_id, cursor, page_size
        )
        page = PaginatedResponse[ProjectRead](
            items=[ProjectRead.model_validate(p) for p in projects],
            next_cursor=next_cursor,
            has_more=has_more,
        )
        if cacheable:
            await set_cached(key, page.model_dump_json(), settings.project_list_cache_ttl_seconds)
        return page

    # Edits

    async def reorder_screens(
        self, project_id: UUID, owner_id: UUID, screen_ids: list[UUID]
    ) -> list[Screen]:
        """Put the project's screens in the given order, numbering them 1..K.

        Raises:
            PreconditionFailed: If screen_ids is not exactly the project's screens
        """
        await self._get_owned_project(project_id, owner_id)
        try:
            screens = await self.store.reorder_screens(project_id, screen_ids)
        except ValueError as e:
            raise PreconditionFailed(str(e)) from e
        await self.invalidator.invalidate_project(project_id, owner_id)
        return screens

    async def delete_screen(self, project_id: UUID, owner_id: UUID, screen_id: UUID) -> None:
        """Delete a screen and close the gap in the order of the rest."""
        await self._get_owned_project(project_id, owner_id)
        if not await self.store.delete_screen(project_id, screen_id):
            raise ScreenNotFound(screen_id)
        await self.invalidator.invalidate_project(project_id, owner_id)

    async def change_status(
        self, project_id: UUID, owner_id: UUID, requested: ProjectStatus
    ) -> ProjectRead:
        """Apply a status change outside the pipeline (develop, complete, archive)."""
        await self._get_owned_project(project_id, owner_id)
        await self.state_machine.transition_external(project_id, requested)
        await self.invalidator.invalidate_project(project_id, owner_id)
        await self.events.status_changed(owner_id, project_id, requested)
        project = await self._get_owned_project(project_id, owner_id)
        return ProjectRead.model_validate(project)
