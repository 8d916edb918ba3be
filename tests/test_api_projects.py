"""HTTP tests for the project endpoints, wired to in-memory collaborators."""

from collections.abc import AsyncGenerator
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.blueprint.api.dependencies import get_pipeline_service
from src.blueprint.core.security import create_access_token
from src.blueprint.main import create_app
from src.blueprint.models.enums import ProjectStatus, SubscriptionTier
from src.blueprint.services.generation import GenerationResult
from tests.factories import ProjectFactory, ScreenFactory
from tests.fakes import PipelineHarness

ANALYSIS_PAYLOAD = {
    "appName": "Farm Market",
    "features": [{"name": "Auth"}, {"name": "Catalog"}],
    "screens": [{"name": "Home", "order": 1}],
}


def _auth(user_id: UUID, tier: SubscriptionTier = SubscriptionTier.FREE) -> dict[str, str]:
    token = create_access_token(user_id, email="owner@example.com", tier=tier)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def app(harness: PipelineHarness) -> FastAPI:
    app = create_app()
    app.dependency_overrides[get_pipeline_service] = lambda: harness.service
    return app


@pytest.fixture
async def client(app: FastAPI, mock_redis_unavailable: None) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


class TestAuth:
    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/projects")

        assert response.status_code == 401
        assert response.json()["request_id"]

    async def test_invalid_token(self, client: AsyncClient) -> None:
        response = await client.get(
            "/api/v1/projects", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401


class TestCreateProject:
    async def test_accepted_and_analyzed(
        self, client: AsyncClient, harness: PipelineHarness
    ) -> None:
        user_id = uuid4()
        harness.gateway.responses = [GenerationResult(data=ANALYSIS_PAYLOAD, tokens=300)]

        response = await client.post(
            "/api/v1/projects",
            json={"description": "A marketplace for local farmers"},
            headers=_auth(user_id),
        )

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "analyzing"

        assert await harness.runner.wait_for_drain(timeout=5.0)
        project = harness.store.projects[UUID(body["project_id"])]
        assert project.status == ProjectStatus.READY.value
        assert project.owner_id == user_id

    async def test_short_description_rejected(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/projects", json={"description": "too short"}, headers=_auth(uuid4())
        )

        assert response.status_code == 422

    async def test_quota_exhausted(self, client: AsyncClient, harness: PipelineHarness) -> None:
        user_id = uuid4()
        harness.ledger.daily_requests[user_id] = 10

        response = await client.post(
            "/api/v1/projects",
            json={"description": "A marketplace for local farmers"},
            headers=_auth(user_id),
        )

        assert response.status_code == 429
        body = response.json()
        assert body["detail"].startswith("Daily AI request limit reached")
        assert body["request_id"]
        assert harness.store.projects == {}


class TestReadProjects:
    async def test_get_own_project(self, client: AsyncClient, harness: PipelineHarness) -> None:
        project = ProjectFactory.ready()
        harness.store.seed(project, screens=[ScreenFactory.build(project_id=project.id, order=1)])

        response = await client.get(f"/api/v1/projects/{project.id}", headers=_auth(project.owner_id))

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert len(body["screens"]) == 1
        assert body["screens"][0]["wireframe"] == {}

    async def test_other_users_project_is_not_found(
        self, client: AsyncClient, harness: PipelineHarness
    ) -> None:
        project = harness.store.seed(ProjectFactory.ready())

        response = await client.get(f"/api/v1/projects/{project.id}", headers=_auth(uuid4()))

        assert response.status_code == 404
        assert response.json()["request_id"]

    async def test_list(self, client: AsyncClient, harness: PipelineHarness) -> None:
        owner_id = uuid4()
        for _ in range(3):
            harness.store.seed(ProjectFactory.build(owner_id=owner_id))
        harness.store.seed(ProjectFactory.build())

        response = await client.get("/api/v1/projects", headers=_auth(owner_id))

        assert response.status_code == 200
        body = response.json()
        assert len(body["items"]) == 3
        assert body["has_more"] is False


class TestTriggers:
    async def test_wireframes_without_screens_conflict(
        self, client: AsyncClient, harness: PipelineHarness
    ) -> None:
        project = harness.store.seed(ProjectFactory.ready())

        response = await client.post(
            f"/api/v1/projects/{project.id}/wireframes", headers=_auth(project.owner_id)
        )

        assert response.status_code == 409

    async def test_wireframes_on_draft_conflict(
        self, client: AsyncClient, harness: PipelineHarness
    ) -> None:
        project = ProjectFactory.build()
        harness.store.seed(project, screens=[ScreenFactory.build(project_id=project.id, order=1)])

        response = await client.post(
            f"/api/v1/projects/{project.id}/wireframes", headers=_auth(project.owner_id)
        )

        assert response.status_code == 409
        assert "draft" in response.json()["detail"]

    async def test_wireframes_accepted(self, client: AsyncClient, harness: PipelineHarness) -> None:
        project = ProjectFactory.ready()
        harness.store.seed(project, screens=[ScreenFactory.build(project_id=project.id, order=1)])
        harness.gateway.responses = [
            GenerationResult(data={"layout": "column", "components": [{"type": "Text"}]}, tokens=5)
        ]

        response = await client.post(
            f"/api/v1/projects/{project.id}/wireframes", headers=_auth(project.owner_id)
        )

        assert response.status_code == 202
        assert response.json()["screen_count"] == 1
        assert await harness.runner.wait_for_drain(timeout=5.0)
        assert harness.store.projects[project.id].status == ProjectStatus.READY.value

    async def test_reanalyze_ready_project_conflict(
        self, client: AsyncClient, harness: PipelineHarness
    ) -> None:
        project = harness.store.seed(ProjectFactory.ready())

        response = await client.post(
            f"/api/v1/projects/{project.id}/reanalyze", headers=_auth(project.owner_id)
        )

        assert response.status_code == 409


class TestEdits:
    async def test_change_status(self, client: AsyncClient, harness: PipelineHarness) -> None:
        project = harness.store.seed(ProjectFactory.ready())

        response = await client.put(
            f"/api/v1/projects/{project.id}/status",
            json={"status": "archived"},
            headers=_auth(project.owner_id),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "archived"

    async def test_reorder_and_delete_screens(
        self, client: AsyncClient, harness: PipelineHarness
    ) -> None:
        project = ProjectFactory.ready()
        screens = [ScreenFactory.build(project_id=project.id, order=i) for i in (1, 2, 3)]
        harness.store.seed(project, screens=screens)
        headers = _auth(project.owner_id)

        response = await client.put(
            f"/api/v1/projects/{project.id}/screens/order",
            json={"screen_ids": [str(s.id) for s in reversed(screens)]},
            headers=headers,
        )
        assert response.status_code == 200
        assert [s["order"] for s in response.json()] == [1, 2, 3]
        assert response.json()[0]["id"] == str(screens[2].id)

        response = await client.delete(
            f"/api/v1/projects/{project.id}/screens/{screens[2].id}", headers=headers
        )
        assert response.status_code == 204
        assert [s.order for s in harness.store.screens_of(project.id)] == [1, 2]

    async def test_delete_unknown_screen(
        self, client: AsyncClient, harness: PipelineHarness
    ) -> None:
        project = harness.store.seed(ProjectFactory.ready())

        response = await client.delete(
            f"/api/v1/projects/{project.id}/screens/{uuid4()}", headers=_auth(project.owner_id)
        )

        assert response.status_code == 404
