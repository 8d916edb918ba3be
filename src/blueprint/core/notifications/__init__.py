"""Notification utilities - email."""

from src.blueprint.core.notifications.email import send_project_ready_email

__all__ = [
    "send_project_ready_email",
]
