"""Artifact store: durable reads and writes the pipeline needs.

Every method runs in its own short session and commits before returning, so
a pipeline run persists incrementally. Database errors surface as
PersistenceFailure.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.blueprint.core.logging import get_logger
from src.blueprint.models.base import utc_now
from src.blueprint.models.enums import ProjectStatus
from src.blueprint.models.project import Feature, Project, Screen
from src.blueprint.repositories import FeatureRepository, ProjectRepository, ScreenRepository
from src.blueprint.services.errors import PersistenceFailure

logger = get_logger(__name__)


@dataclass
class ProjectWithRelations:
    project: Project
    features: list[Feature] = field(default_factory=list)
    screens: list[Screen] = field(default_factory=list)


class ArtifactStore(Protocol):
    async def create_project(
        self, owner_id: UUID, description: str, owner_email: str | None = None
    ) -> Project: ...

    async def find_project(self, project_id: UUID) -> Project | None: ...

    async def find_project_with_relations(self, project_id: UUID) -> ProjectWithRelations | None: ...

    async def list_projects(
        self, owner_id: UUID, cursor: str | None, limit: int
    ) -> tuple[list[Project], str | None, bool]: ...

    async def update_project_status(
        self, project_id: UUID, expected: ProjectStatus, new: ProjectStatus
    ) -> bool: ...

    async def apply_analysis(
        self,
        project_id: UUID,
        expected: ProjectStatus,
        new: ProjectStatus,
        *,
        name: str,
        app_type: str | None,
        analysis: dict[str, Any],
        features: list[Feature],
    ) -> bool: ...

    async def reset_for_reanalysis(
        self, project_id: UUID, expected: ProjectStatus, new: ProjectStatus
    ) -> bool: ...

    async def bulk_insert_features(self, features: list[Feature]) -> None: ...

    async def bulk_insert_screens(self, screens: list[Screen]) -> None: ...

    async def update_screen_wireframe(self, screen_id: UUID, wireframe: dict[str, Any]) -> bool: ...

    async def reorder_screens(self, project_id: UUID, screen_ids: list[UUID]) -> list[Screen]: ...

    async def delete_screen(self, project_id: UUID, screen_id: UUID) -> bool: ...


class SqlArtifactStore:
    """ArtifactStore backed by SQLModel tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.warning("Artifact store operation failed", error=str(e))
            raise PersistenceFailure(str(e)) from e

    async def create_project(
        self, owner_id: UUID, description: str, owner_email: str | None = None
    ) -> Project:
        async with self._session() as session:
            project = Project(owner_id=owner_id, owner_email=owner_email, description=description)
            ProjectRepository(session).add(project)
            await session.commit()
            await session.refresh(project)
            return project

    async def find_project(self, project_id: UUID) -> Project | None:
        async with self._session() as session:
            return await ProjectRepository(session).get_by_id(project_id)

    async def find_project_with_relations(self, project_id: UUID) -> ProjectWithRelations | None:
        async with self._session() as session:
            project = await ProjectRepository(session).get_by_id(project_id)
            if project is None:
                return None
            return ProjectWithRelations(
                project=project,
                features=await FeatureRepository(session).list_for_project(project_id),
                screens=await ScreenRepository(session).list_for_project(project_id),
            )

    async def list_projects(
        self, owner_id: UUID, cursor: str | None, limit: int
    ) -> tuple[list[Project], str | None, bool]:
        async with self._session() as session:
            return await ProjectRepository(session).list_for_owner(owner_id, cursor, limit)

    async def update_project_status(
        self, project_id: UUID, expected: ProjectStatus, new: ProjectStatus
    ) -> bool:
        async with self._session() as session:
            swapped = await ProjectRepository(session).compare_and_set_status(
                project_id, expected, new
            )
            await session.commit()
            return swapped

    async def apply_analysis(
        self,
        project_id: UUID,
        expected: ProjectStatus,
        new: ProjectStatus,
        *,
        name: str,
        app_type: str | None,
        analysis: dict[str, Any],
        features: list[Feature],
    ) -> bool:
        """Store the analysis result, move status, and insert features atomically."""
        async with self._session() as session:
            swapped = await ProjectRepository(session).compare_and_set_status(
                project_id, expected, new, name=name, type=app_type, analysis=analysis
            )
            if not swapped:
                await session.rollback()
                return False
            FeatureRepository(session).add_all(features)
            await session.commit()
            return True

    async def reset_for_reanalysis(
        self, project_id: UUID, expected: ProjectStatus, new: ProjectStatus
    ) -> bool:
        """Move status and drop the previous analysis with its features and screens."""
        async with self._session() as session:
            swapped = await ProjectRepository(session).compare_and_set_status(
                project_id, expected, new, analysis=None
            )
            if not swapped:
                await session.rollback()
                return False
            await FeatureRepository(session).delete_for_project(project_id)
            await ScreenRepository(session).delete_for_project(project_id)
            await session.commit()
            return True

    async def bulk_insert_features(self, features: list[Feature]) -> None:
        async with self._session() as session:
            FeatureRepository(session).add_all(features)
            await session.commit()

    async def bulk_insert_screens(self, screens: list[Screen]) -> None:
        async with self._session() as session:
            ScreenRepository(session).add_all(screens)
            await session.commit()

    async def update_screen_wireframe(self, screen_id: UUID, wireframe: dict[str, Any]) -> bool:
        async with self._session() as session:
            screen = await ScreenRepository(session).get_by_id(screen_id)
            if screen is None:
                return False
            screen.wireframe = wireframe
            screen.updated_at = utc_now()
            await session.commit()
            return True

    async def reorder_screens(self, project_id: UUID, screen_ids: list[UUID]) -> list[Screen]:
        async with self._session() as session:
            screens = await ScreenRepository(session).reorder(project_id, screen_ids)
            await session.commit()
            return screens

    async def delete_screen(self, project_id: UUID, screen_id: UUID) -> bool:
        async with self._session() as session:
            repo = ScreenRepository(session)
            screen = await repo.get_by_id(screen_id)
            if screen is None or screen.project_id != project_id:
                return False
            await repo.delete_and_repack(screen)
            await session.commit()
            return True
