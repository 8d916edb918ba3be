"""Analysis pipeline: idea description to features and screens."""

from dataclasses import dataclass
from uuid import UUID

from src.blueprint.core.cache import CacheInvalidator
from src.blueprint.core.logging import bind_pipeline_context, get_logger
from src.blueprint.models.enums import GenerationKind, ProjectStatus
from src.blueprint.models.project import UNTITLED_PROJECT_NAME, Feature, Screen
from src.blueprint.schemas.generation import (
    AnalysisArtifact,
    FeatureDescriptor,
    normalize_screen_order,
    parse_analysis,
)
from src.blueprint.services.errors import PipelineError
from src.blueprint.services.generation import GenerationGateway
from src.blueprint.services.notifier import Notifier
from src.blueprint.services.progress import ProjectEvents
from src.blueprint.services.quota import QuotaGate, TierLimits
from src.blueprint.services.state_machine import ProjectStateMachine
from src.blueprint.services.store import ArtifactStore

logger = get_logger(__name__)

ANALYSIS_FAILED_NAME = "Analysis failed"
ANALYSIS_FAILED_MESSAGE = "AI analysis failed. Please try again."


@dataclass(frozen=True)
class AnalysisRun:
    """Everything an analysis run needs, captured when it was triggered."""

    project_id: UUID
    owner_id: UUID
    owner_email: str | None
    description: str
    tier_limits: TierLimits


def _to_feature(project_id: UUID, descriptor: FeatureDescriptor) -> Feature:
    complexity = descriptor.complexity
    if complexity is not None:
        complexity = min(max(complexity, 1), 5)
    return Feature(
        project_id=project_id,
        name=descriptor.name,
        description=descriptor.description[:2000] if descriptor.description else None,
        category=descriptor.category[:100] if descriptor.category else None,
        priority=descriptor.priority.value if descriptor.priority else None,
        estimated_hours=descriptor.estimated_hours,
        complexity=complexity,
    )


class AnalysisOrchestrator:
    """Runs one analysis pass for a project already moved to ANALYZING.

    Writes are committed step by step: the analysis result with its features
    (and the move to WIREFRAMING) first, then the screens, then READY. A
    failure at any point returns the project to DRAFT from whichever busy
    status it reached; rows already committed stay until the next analysis.
    """

    def __init__(
        self,
        store: ArtifactStore,
        gateway: GenerationGateway,
        quota: QuotaGate,
        events: ProjectEvents,
        state_machine: ProjectStateMachine,
        invalidator: CacheInvalidator,
        notifier: Notifier,
    ):
        self.store = store
        self.gateway = gateway
        self.quota = quota
        self.events = events
        self.state_machine = state_machine
        self.invalidator = invalidator
        self.notifier = notifier

    async def run_analysis(self, run: AnalysisRun) -> None:
        """Run the pass to completion. Never raises; failures are reported as events."""
        bind_pipeline_context("analysis", run.project_id, run.owner_id)
        logger.info("Analysis run started")
        try:
            await self._execute(run)
        except Exception:
            logger.exception("Analysis run failed")
            await self._handle_failure(run)

    async def _execute(self, run: AnalysisRun) -> None:
        await self.events.analysis_progress(
            run.owner_id, run.project_id, "analyzing", 10, "AI analyzing your idea..."
        )

        await self.quota.check(run.owner_id, run.tier_limits)
        result = await self.gateway.generate(GenerationKind.ANALYSIS, run.description)
        artifact = parse_analysis(result.data)
        await self.quota.record_usage(run.owner_id, result.tokens)

        await self.events.analysis_progress(
            run.owner_id, run.project_id, "structuring", 50, "Structuring features and screens..."
        )

        name = (artifact.app_name or "").strip()[:200] or UNTITLED_PROJECT_NAME
        features = [_to_feature(run.project_id, f) for f in artifact.features]
        await self.state_machine.complete_analysis(
            run.project_id,
            name=name,
            app_type=artifact.app_type[:50] if artifact.app_type else None,
            analysis=result.data,
            features=features,
        )
        await self.events.status_changed(run.owner_id, run.project_id, ProjectStatus.WIREFRAMING)

        await self.events.analysis_progress(
            run.owner_id, run.project_id, "screens", 80, "Creating screen structure..."
        )
        screens = self._build_screens(run.project_id, artifact)
        await self.store.bulk_insert_screens(screens)

        await self.state_machine.transition(
            run.project_id, ProjectStatus.WIREFRAMING, ProjectStatus.READY
        )
        await self.events.status_changed(run.owner_id, run.project_id, ProjectStatus.READY)
        await self.events.analysis_completed(
            run.owner_id, run.project_id, len(features), len(screens)
        )

        self.notifier.send_project_ready_notification(
            run.owner_id, name, run.project_id, to=run.owner_email
        )
        await self.invalidator.invalidate_project(run.project_id, run.owner_id)
        logger.info(
            "Analysis run completed",
            features_count=len(features),
            screens_count=len(screens),
        )

    @staticmethod
    def _build_screens(project_id: UUID, artifact: AnalysisArtifact) -> list[Screen]:
        return [
            Screen(
                project_id=project_id,
                name=descriptor.name,
                type=descriptor.type[:50] if descriptor.type else None,
                order=position,
                wireframe={},
            )
            for position, descriptor in normalize_screen_order(artifact.screens)
        ]

    async def _handle_failure(self, run: AnalysisRun) -> None:
        try:
            status = await self.state_machine.revert_to_draft(run.project_id)
        except PipelineError:
            logger.exception("Could not revert project after failed analysis")
            status = None

        if status is ProjectStatus.DRAFT:
            await self.events.status_changed(
                run.owner_id, run.project_id, ProjectStatus.DRAFT, project_name=ANALYSIS_FAILED_NAME
            )
        await self.events.error(run.owner_id, ANALYSIS_FAILED_MESSAGE, f"project:{run.project_id}")
        await self.invalidator.invalidate_project(run.project_id, run.owner_id)
