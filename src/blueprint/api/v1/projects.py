"""Project endpoints: submit an idea, follow the pipeline, edit screens.

Triggers answer 202 once the first status change is committed. Progress
arrives over the /ws/events socket.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.blueprint.api.dependencies import CurrentUser, PipelineServiceDep
from src.blueprint.schemas.pagination import PaginatedResponse
from src.blueprint.schemas.project import (
    PipelineStarted,
    ProjectCreate,
    ProjectDetail,
    ProjectRead,
    ProjectStatusUpdate,
    ScreenRead,
    ScreenReorder,
)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post(
    "",
    response_model=PipelineStarted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit an idea",
    description="Create a project from a product idea and start analyzing it.",
    responses={
        202: {"description": "Project created, analysis running"},
        429: {"description": "Quota exhausted"},
    },
)
async def create_project(
    request: ProjectCreate,
    principal: CurrentUser,
    service: PipelineServiceDep,
) -> PipelineStarted:
    return await service.create_project(principal, request.description)


@router.get(
    "",
    response_model=PaginatedResponse[ProjectRead],
    summary="List projects",
    description="List the caller's projects, newest first, with cursor-based pagination.",
    responses={
        200: {"description": "Paginated list of projects"},
    },
)
async def list_projects(
    principal: CurrentUser,
    service: PipelineServiceDep,
    cursor: Annotated[str | None, Query(description="Cursor for pagination")] = None,
    limit: Annotated[int | None, Query(ge=1, le=100, description="Max items to return")] = None,
) -> PaginatedResponse[ProjectRead]:
    """List projects with cursor-based pagination."""
    return await service.list_projects(principal.user_id, cursor=cursor, limit=limit)


@router.get(
    "/{project_id}",
    response_model=ProjectDetail,
    summary="Get project",
    description="Get a project with its analysis, features and screens.",
    responses={
        200: {"description": "Project details"},
        404: {"description": "Project not found"},
    },
)
async def get_project(
    project_id: UUID,
    principal: CurrentUser,
    service: PipelineServiceDep,
) -> ProjectDetail:
    return await service.get_project(project_id, principal.user_id)


@router.post(
    "/{project_id}/reanalyze",
    response_model=PipelineStarted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Analyze again",
    description="Discard features and screens of a DRAFT project and analyze its idea again.",
    responses={
        202: {"description": "Analysis running"},
        404: {"description": "Project not found"},
        409: {"description": "Project is not in DRAFT"},
        429: {"description": "Quota exhausted"},
    },
)
async def reanalyze_project(
    project_id: UUID,
    principal: CurrentUser,
    service: PipelineServiceDep,
) -> PipelineStarted:
    return await service.reanalyze(project_id, principal)


@router.post(
    "/{project_id}/wireframes",
    response_model=PipelineStarted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Generate wireframes",
    description=(
        "Generate a wireframe for every screen of a READY project. A failed run "
        "returns the project to DRAFT with the finished layouts kept; it cannot be "
        "resumed from there, and re-analysis replaces the screens."
    ),
    responses={
        202: {"description": "Wireframe generation running"},
        404: {"description": "Project not found"},
        409: {"description": "Project is not READY or has no screens"},
        429: {"description": "Quota exhausted"},
    },
)
async def generate_wireframes(
    project_id: UUID,
    principal: CurrentUser,
    service: PipelineServiceDep,
) -> PipelineStarted:
    return await service.start_wireframe_generation(project_id, principal)


@router.put(
    "/{project_id}/status",
    response_model=ProjectRead,
    summary="Change status",
    description="Move a project into development, complete it, archive or unarchive it.",
    responses={
        200: {"description": "Status changed"},
        404: {"description": "Project not found"},
        409: {"description": "Status change not allowed"},
    },
)
async def change_project_status(
    project_id: UUID,
    request: ProjectStatusUpdate,
    principal: CurrentUser,
    service: PipelineServiceDep,
) -> ProjectRead:
    return await service.change_status(project_id, principal.user_id, request.status)


@router.put(
    "/{project_id}/screens/order",
    response_model=list[ScreenRead],
    summary="Reorder screens",
    description="Set the order of all screens. The body must list every screen exactly once.",
    responses={
        200: {"description": "Screens in their new order"},
        404: {"description": "Project not found"},
        409: {"description": "Screen ids do not match the project's screens"},
    },
)
async def reorder_screens(
    project_id: UUID,
    request: ScreenReorder,
    principal: CurrentUser,
    service: PipelineServiceDep,
) -> list[ScreenRead]:
    screens = await service.reorder_screens(project_id, principal.user_id, request.screen_ids)
    return [ScreenRead.model_validate(s) for s in screens]


@router.delete(
    "/{project_id}/screens/{screen_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete screen",
    responses={
        204: {"description": "Screen deleted"},
        404: {"description": "Project or screen not found"},
    },
)
async def delete_screen(
    project_id: UUID,
    screen_id: UUID,
    principal: CurrentUser,
    service: PipelineServiceDep,
) -> None:
    """Delete a screen; later screens move up one position."""
    await service.delete_screen(project_id, principal.user_id, screen_id)
