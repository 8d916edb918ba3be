"""Live pipeline events over WebSocket."""

from typing import Annotated

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from src.blueprint.core.logging import get_logger
from src.blueprint.core.security import principal_from_token
from src.blueprint.services.progress import connection_registry

logger = get_logger(__name__)

router = APIRouter(tags=["events"])


@router.websocket("/ws/events")
async def events_socket(
    websocket: WebSocket,
    token: Annotated[str | None, Query()] = None,
) -> None:
    """Stream the caller's pipeline events until the client disconnects.

    Browsers cannot set headers on WebSocket requests, so the access token
    comes as a query parameter. Nothing is replayed on connect.
    """
    principal = principal_from_token(token) if token else None
    if principal is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection_registry.connect(principal.user_id, websocket)
    logger.info("Live connection opened", user_id=str(principal.user_id))
    try:
        while True:
            # Inbound messages carry no meaning; reading detects disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        connection_registry.disconnect(principal.user_id, websocket)
        logger.info("Live connection closed", user_id=str(principal.user_id))
