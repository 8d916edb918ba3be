from fastapi import APIRouter

from src.blueprint.api.v1 import events, projects

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(projects.router)

# WebSocket path is unversioned: /ws/events
ws_router = APIRouter()
ws_router.include_router(events.router)
