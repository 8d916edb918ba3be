"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.blueprint.core.cache import CacheInvalidator
from src.blueprint.core.db import get_session_factory
from src.blueprint.core.tasks import task_runner
from src.blueprint.services.analysis import AnalysisOrchestrator
from src.blueprint.services.generation import HttpGenerationGateway
from src.blueprint.services.notifier import EmailNotifier
from src.blueprint.services.pipeline_service import PipelineService
from src.blueprint.services.progress import ProjectEvents, WebSocketProgressChannel
from src.blueprint.services.quota import QuotaGate, RedisQuotaLedger
from src.blueprint.services.state_machine import ProjectStateMachine
from src.blueprint.services.store import SqlArtifactStore
from src.blueprint.services.wireframe import WireframeOrchestrator


def build_pipeline_service() -> PipelineService:
    """Wire the pipeline against the real database, Redis, provider and sockets."""
    store = SqlArtifactStore(get_session_factory())
    gateway = HttpGenerationGateway()
    quota = QuotaGate(RedisQuotaLedger())
    events = ProjectEvents(WebSocketProgressChannel())
    state_machine = ProjectStateMachine(store)
    invalidator = CacheInvalidator()

    return PipelineService(
        store=store,
        quota=quota,
        events=events,
        state_machine=state_machine,
        invalidator=invalidator,
        analysis=AnalysisOrchestrator(
            store, gateway, quota, events, state_machine, invalidator, EmailNotifier()
        ),
        wireframe=WireframeOrchestrator(store, gateway, quota, events, state_machine, invalidator),
        runner=task_runner,
    )


def get_pipeline_service() -> PipelineService:
    """Get pipeline service."""
    return build_pipeline_service()


PipelineServiceDep = Annotated[PipelineService, Depends(get_pipeline_service)]
