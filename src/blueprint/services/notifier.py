"""Owner notifications sent when a pipeline run finishes."""

import asyncio
from typing import Protocol
from uuid import UUID

from src.blueprint.core.logging import get_logger
from src.blueprint.core.notifications import send_project_ready_email
from src.blueprint.core.tasks import BackgroundTaskRunner, task_runner

logger = get_logger(__name__)


class Notifier(Protocol):
    def send_project_ready_notification(
        self, user_id: UUID, project_name: str, project_id: UUID, to: str | None = None
    ) -> None: ...


class EmailNotifier:
    """Sends the project-ready email on a background task.

    Returns immediately; the blocking Resend call runs in a worker thread and
    its outcome is only logged.
    """

    def __init__(self, runner: BackgroundTaskRunner | None = None):
        self._runner = runner or task_runner

    def send_project_ready_notification(
        self, user_id: UUID, project_name: str, project_id: UUID, to: str | None = None
    ) -> None:
        if not to:
            logger.info("No email on file, skipping ready notification", user_id=str(user_id))
            return
        self._runner.spawn(
            asyncio.to_thread(send_project_ready_email, to, project_name, str(project_id)),
            name=f"notify-ready-{project_id}",
        )
