"""Email client using Resend API."""

import html
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

import resend

from src.blueprint.core.config import get_settings
from src.blueprint.core.logging import get_logger

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_BUTTON_STYLE = (
    "background-color: #2563eb; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block; font-weight: 500;"
)
_MUTED_STYLE = "color: #666; font-size: 14px;"


def send_project_ready_email(to: str, project_name: str, project_id: str) -> bool:
    """Tell the owner that analysis finished and the project can be opened.

    Args:
        to: Recipient email address
        project_name: Name suggested by the analysis pass
        project_id: Project identifier used in the link

    Returns:
        True if email was sent (or logged in dev mode), False on error
    """
    settings = get_settings()
    project_url = f"{settings.app_url}/projects/{project_id}"

    if not settings.resend_api_key:
        logger.warning(
            "RESEND_API_KEY not set - email not sent",
            to=to,
            email_type="project_ready",
            project_id=project_id,
        )
        return True

    resend.api_key = settings.resend_api_key

    def _send() -> None:
        resend.Emails.send(
            {
                "from": settings.email_from,
                "to": [to],
                "subject": f'Your project "{project_name}" is ready!',
                "html": _get_project_ready_email_html(project_name, project_url),
            }
        )

    try:
        future = _email_executor.submit(_send)
        future.result(timeout=settings.email_send_timeout_seconds)
        logger.info("Project ready email sent", to=to, project_id=project_id)
        return True
    except FuturesTimeoutError:
        logger.error("Email send timed out", to=to, timeout=settings.email_send_timeout_seconds)
        return False
    except Exception as e:
        logger.error("Failed to send project ready email", to=to, error=str(e))
        return False


def _get_project_ready_email_html(project_name: str, project_url: str) -> str:
    """Generate HTML content for the project ready email."""
    safe_project_name = html.escape(project_name)
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">Your project is ready</h1>
    <p>We finished analyzing <strong>{safe_project_name}</strong>.</p>
    <p>Features and screens are waiting for you. Generate wireframes whenever you like.</p>
    <p style="margin: 32px 0;">
        <a href="{project_url}" style="{_BUTTON_STYLE}">Open Project</a>
    </p>
    <p style="{_MUTED_STYLE}">You are receiving this because you created this project.</p>
</body>
</html>"""
