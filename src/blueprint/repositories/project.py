"""Repositories for Project, Feature and Screen."""

from typing import Any
from uuid import UUID

from sqlalchemy import delete, update
from sqlmodel import select

from src.blueprint.models.base import utc_now
from src.blueprint.models.enums import ProjectStatus
from src.blueprint.models.project import Feature, Project, Screen
from src.blueprint.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for Project entity."""

    model = Project

    async def list_for_owner(
        self,
        owner_id: UUID,
        cursor: str | None = None,
        limit: int = 10,
    ) -> tuple[list[Project], str | None, bool]:
        """List an owner's projects, newest first.

        Returns:
            Tuple of (items, next_cursor, has_more)
        """
        query = select(Project).where(Project.owner_id == owner_id)
        return await self.paginate(query, cursor, limit, Project.created_at)

    async def compare_and_set_status(
        self,
        project_id: UUID,
        expected: ProjectStatus,
        new: ProjectStatus,
        **values: Any,
    ) -> bool:
        """Set status to `new` only if the row still has status `expected`.

        Extra column values are written in the same statement.

        Returns:
            True if the row was updated, False if the status had moved on
            (or the project does not exist)
        """
        result = await self.session.execute(
            update(Project)
            .where(Project.id == project_id)  # type: ignore[arg-type]
            .where(Project.status == expected.value)  # type: ignore[arg-type]
            .values(status=new.value, updated_at=utc_now(), **values)
        )
        return bool(result.rowcount == 1)  # type: ignore[attr-defined]


class FeatureRepository(BaseRepository[Feature]):
    """Repository for Feature entity."""

    model = Feature

    async def list_for_project(self, project_id: UUID) -> list[Feature]:
        result = await self.session.execute(
            select(Feature)
            .where(Feature.project_id == project_id)
            .order_by(Feature.created_at, Feature.name)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())

    async def delete_for_project(self, project_id: UUID) -> None:
        await self.session.execute(
            delete(Feature).where(Feature.project_id == project_id)  # type: ignore[arg-type]
        )


class ScreenRepository(BaseRepository[Screen]):
    """Repository for Screen entity.

    Keeps `order` dense: deleting a screen shifts later screens down and
    reordering always assigns 1..K.
    """

    model = Screen

    async def list_for_project(self, project_id: UUID) -> list[Screen]:
        """Screens of a project in ascending order."""
        result = await self.session.execute(
            select(Screen)
            .where(Screen.project_id == project_id)
            .order_by(Screen.order)  # type: ignore[arg-type]
        )
        return list(result.scalars().all())

    async def delete_for_project(self, project_id: UUID) -> None:
        await self.session.execute(
            delete(Screen).where(Screen.project_id == project_id)  # type: ignore[arg-type]
        )

    async def delete_and_repack(self, screen: Screen) -> None:
        """Delete one screen and close the gap it leaves in `order`."""
        await self.session.delete(screen)
        await self.session.execute(
            update(Screen)
            .where(Screen.project_id == screen.project_id)  # type: ignore[arg-type]
            .where(Screen.order > screen.order)  # type: ignore[arg-type]
            .values(order=Screen.order - 1, updated_at=utc_now())
        )

    async def reorder(self, project_id: UUID, screen_ids: list[UUID]) -> list[Screen]:
        """Assign positions 1..K following screen_ids.

        Raises:
            ValueError: If screen_ids is not exactly the project's screen ids
        """
        screens = await self.list_for_project(project_id)
        by_id = {screen.id: screen for screen in screens}
        if set(screen_ids) != set(by_id) or len(screen_ids) != len(by_id):
            raise ValueError("Screen ids must list every screen of the project exactly once")

        now = utc_now()
        for position, screen_id in enumerate(screen_ids, start=1):
            screen = by_id[screen_id]
            screen.order = position
            screen.updated_at = now
        return sorted(screens, key=lambda s: s.order)
