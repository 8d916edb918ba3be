"""Real-time progress events pushed to a project's owner.

Delivery is at-most-once to the sockets the owner has open right now. There
is no buffering or replay: a client that connects late, or whose socket
fails mid-send, misses the event. A send failure never reaches the pipeline.
"""

from collections import defaultdict
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

from fastapi import WebSocket

from src.blueprint.core.logging import get_logger
from src.blueprint.models.enums import ProjectStatus

logger = get_logger(__name__)

EVENT_ANALYSIS_PROGRESS = "project:analysis-progress"
EVENT_ANALYSIS_COMPLETED = "project:analysis-completed"
EVENT_WIREFRAME_PROGRESS = "project:wireframe-progress"
EVENT_WIREFRAME_COMPLETED = "project:wireframe-completed"
EVENT_STATUS_CHANGED = "project:status-changed"
EVENT_ERROR = "error"


class ConnectionRegistry:
    """Open WebSocket connections per user, local to this process."""

    def __init__(self) -> None:
        self._connections: dict[UUID, set[WebSocket]] = defaultdict(set)

    def connect(self, user_id: UUID, websocket: WebSocket) -> None:
        self._connections[user_id].add(websocket)
        logger.debug(
            "Live connection registered",
            user_id=str(user_id),
            connections=len(self._connections[user_id]),
        )

    def disconnect(self, user_id: UUID, websocket: WebSocket) -> None:
        sockets = self._connections.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._connections[user_id]

    def connections_for(self, user_id: UUID) -> list[WebSocket]:
        return list(self._connections.get(user_id, ()))

    def connection_count(self, user_id: UUID) -> int:
        return len(self._connections.get(user_id, ()))

    def reset(self) -> None:
        """Drop all connections. For testing only."""
        self._connections = defaultdict(set)


# Global registry instance
connection_registry = ConnectionRegistry()


class ProgressChannel(Protocol):
    async def emit_to_user(self, user_id: UUID, event: str, payload: dict[str, Any]) -> None: ...


class WebSocketProgressChannel:
    """ProgressChannel over the connection registry."""

    def __init__(self, registry: ConnectionRegistry | None = None):
        self._registry = registry or connection_registry

    async def emit_to_user(self, user_id: UUID, event: str, payload: dict[str, Any]) -> None:
        for websocket in self._registry.connections_for(user_id):
            try:
                await websocket.send_json({"event": event, "data": payload})
            except Exception as e:
                logger.warning(
                    "Dropping live connection after failed send",
                    user_id=str(user_id),
                    event=event,
                    error=str(e),
                )
                self._registry.disconnect(user_id, websocket)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


class ProjectEvents:
    """Builds the pipeline's event payloads and emits them to the owner."""

    def __init__(self, channel: ProgressChannel):
        self._channel = channel

    async def _emit(self, user_id: UUID, event: str, payload: dict[str, Any]) -> None:
        payload["timestamp"] = _timestamp()
        try:
            await self._channel.emit_to_user(user_id, event, payload)
        except Exception as e:
            logger.warning("Progress event not delivered", event=event, error=str(e))

    async def analysis_progress(
        self, user_id: UUID, project_id: UUID, step: str, progress: int, message: str
    ) -> None:
        await self._emit(
            user_id,
            EVENT_ANALYSIS_PROGRESS,
            {"projectId": str(project_id), "step": step, "progress": progress, "message": message},
        )

    async def analysis_completed(
        self, user_id: UUID, project_id: UUID, features_count: int, screens_count: int
    ) -> None:
        await self._emit(
            user_id,
            EVENT_ANALYSIS_COMPLETED,
            {
                "projectId": str(project_id),
                "featuresCount": features_count,
                "screensCount": screens_count,
            },
        )

    async def wireframe_progress(
        self,
        user_id: UUID,
        project_id: UUID,
        screen_name: str,
        current_screen: int,
        total_screens: int,
    ) -> None:
        await self._emit(
            user_id,
            EVENT_WIREFRAME_PROGRESS,
            {
                "projectId": str(project_id),
                "screenName": screen_name,
                "currentScreen": current_screen,
                "totalScreens": total_screens,
            },
        )

    async def wireframe_completed(self, user_id: UUID, project_id: UUID) -> None:
        await self._emit(user_id, EVENT_WIREFRAME_COMPLETED, {"projectId": str(project_id)})

    async def status_changed(
        self,
        user_id: UUID,
        project_id: UUID,
        status: ProjectStatus,
        project_name: str | None = None,
    ) -> None:
        payload: dict[str, Any] = {"projectId": str(project_id), "status": status.value}
        if project_name is not None:
            payload["projectName"] = project_name
        await self._emit(user_id, EVENT_STATUS_CHANGED, payload)

    async def error(self, user_id: UUID, message: str, context: str) -> None:
        await self._emit(user_id, EVENT_ERROR, {"message": message, "context": context})
