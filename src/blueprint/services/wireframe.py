"""Wireframe pipeline: one generated layout per screen."""

from dataclasses import dataclass, field
from uuid import UUID

from src.blueprint.core.cache import CacheInvalidator
from src.blueprint.core.logging import bind_pipeline_context, get_logger
from src.blueprint.models.enums import GenerationKind, ProjectStatus
from src.blueprint.schemas.generation import parse_wireframe
from src.blueprint.services.errors import PipelineError
from src.blueprint.services.generation import GenerationGateway
from src.blueprint.services.progress import ProjectEvents
from src.blueprint.services.quota import QuotaGate, TierLimits
from src.blueprint.services.state_machine import ProjectStateMachine
from src.blueprint.services.store import ArtifactStore

logger = get_logger(__name__)

WIREFRAME_FAILED_MESSAGE = "Wireframe generation failed. Please try again."


@dataclass(frozen=True)
class ScreenTarget:
    screen_id: UUID
    name: str
    type: str | None


@dataclass(frozen=True)
class WireframeRun:
    """Snapshot taken by the trigger. Screens are in ascending order."""

    project_id: UUID
    owner_id: UUID
    description: str
    tier_limits: TierLimits
    screens: list[ScreenTarget]
    feature_names: list[str] = field(default_factory=list)


class WireframeOrchestrator:
    """Generates wireframes screen by screen for a project in WIREFRAMING.

    Each layout is committed as soon as it is generated, so a failure part
    way through keeps the screens already done and leaves the rest as they
    were. The project then sits in DRAFT, from which WIREFRAMING is not
    reachable: the kept layouts cannot be completed by another wireframe
    run, only discarded by a re-analysis.
    """

    def __init__(
        self,
        store: ArtifactStore,
        gateway: GenerationGateway,
        quota: QuotaGate,
        events: ProjectEvents,
        state_machine: ProjectStateMachine,
        invalidator: CacheInvalidator,
    ):
        self.store = store
        self.gateway = gateway
        self.quota = quota
        self.events = events
        self.state_machine = state_machine
        self.invalidator = invalidator

    async def run_wireframe_generation(self, run: WireframeRun) -> None:
        """Run to completion. Never raises; failures are reported as events."""
        bind_pipeline_context("wireframe", run.project_id, run.owner_id)
        logger.info("Wireframe run started", total_screens=len(run.screens))
        try:
            await self._execute(run)
        except Exception:
            logger.exception("Wireframe run failed")
            await self._handle_failure(run)

    async def _execute(self, run: WireframeRun) -> None:
        total = len(run.screens)
        for index, screen in enumerate(run.screens, start=1):
            await self.events.wireframe_progress(
                run.owner_id, run.project_id, screen.name, index, total
            )
            await self.quota.check(run.owner_id, run.tier_limits)
            result = await self.gateway.generate(
                GenerationKind.WIREFRAME,
                {
                    "screen_name": screen.name,
                    "screen_type": screen.type,
                    "description": run.description,
                    "feature_names": run.feature_names,
                },
            )
            layout = parse_wireframe(result.data)
            await self.quota.record_usage(run.owner_id, result.tokens)

            if not await self.store.update_screen_wireframe(screen.screen_id, layout):
                logger.warning(
                    "Screen deleted during wireframe run", screen_id=str(screen.screen_id)
                )
            await self.invalidator.invalidate_project(run.project_id, run.owner_id)

        await self.state_machine.transition(
            run.project_id, ProjectStatus.WIREFRAMING, ProjectStatus.READY
        )
        await self.events.status_changed(run.owner_id, run.project_id, ProjectStatus.READY)
        await self.events.wireframe_completed(run.owner_id, run.project_id)
        await self.invalidator.invalidate_project(run.project_id, run.owner_id)
        logger.info("Wireframe run completed", total_screens=total)

    async def _handle_failure(self, run: WireframeRun) -> None:
        try:
            status = await self.state_machine.revert_to_draft(run.project_id)
        except PipelineError:
            logger.exception("Could not revert project after failed wireframe run")
            status = None

        if status is ProjectStatus.DRAFT:
            await self.events.status_changed(run.owner_id, run.project_id, ProjectStatus.DRAFT)
        await self.events.error(
            run.owner_id, WIREFRAME_FAILED_MESSAGE, f"project:{run.project_id}"
        )
        await self.invalidator.invalidate_project(run.project_id, run.owner_id)
