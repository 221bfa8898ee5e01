"""
Job status notifications.

Messages are plain text rendered from Jinja2 templates and delivered by email
through Resend and, when configured, as a JSON webhook. In mock mode the
rendered message is only logged.
"""

import asyncio
import enum
from pathlib import Path
from typing import Any

import httpx
import resend
from jinja2 import Environment, FileSystemLoader

from jobmonitor.config import NotificationConfig, get_config
from jobmonitor.core.datetime_utils import format_display, format_duration, utc_now
from jobmonitor.core.logging import get_logger
from jobmonitor.models.execution import ImportedJobExecution
from jobmonitor.models.user import User

logger = get_logger(__name__)

template_dir = Path(__file__).parent.parent / "emails" / "templates"
jinja_env = Environment(
    loader=FileSystemLoader(template_dir),
    autoescape=False,
    keep_trailing_newline=True,
)
jinja_env.filters["display"] = format_display
jinja_env.filters["duration"] = format_duration


class NotificationKind(str, enum.Enum):
    FAILURE = "failure"
    SUCCESS = "success"
    START = "start"


# (template, subject line) per kind
MESSAGES: dict[NotificationKind, tuple[str, str]] = {
    NotificationKind.FAILURE: ("job_failed.txt", "Job Failed: {job_name}"),
    NotificationKind.SUCCESS: ("job_succeeded.txt", "Job Completed Successfully: {job_name}"),
    NotificationKind.START: ("job_started.txt", "Job Started: {job_name}"),
}


class NotificationError(Exception):
    """Notification could not be sent on request."""


class NotificationService:
    """Sends job notifications to users who favorited a job."""

    def __init__(self, config: NotificationConfig | None = None) -> None:
        self.config = config or get_config().notifications

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def render(self, kind: NotificationKind, execution: ImportedJobExecution) -> tuple[str, str]:
        """Return (subject, body) for an execution notification."""
        template_name, subject_line = MESSAGES[kind]
        subject = f"{self.config.subject_prefix} {subject_line.format(job_name=execution.job_name)}"
        body = jinja_env.get_template(template_name).render(execution=execution)
        return subject, body

    async def notify(
        self,
        kind: NotificationKind,
        user: User,
        execution: ImportedJobExecution,
    ) -> bool:
        """
        Send one notification about an execution.

        Returns True when at least one channel accepted the message. Never
        raises; failures are logged.
        """
        if not self.enabled:
            logger.debug("notifications_disabled")
            return False

        subject, body = self.render(kind, execution)
        payload = {
            "event": kind.value,
            "job_name": execution.job_name,
            "execution_id": execution.execution_id,
            "status": execution.status,
            "user": user.username,
        }

        sent = await self._dispatch(user.email, subject, body, payload)
        logger.bind(
            kind=kind.value,
            job_name=execution.job_name,
            execution_id=execution.execution_id,
            user_id=user.id,
            sent=sent,
        ).info("job_notification_processed")
        return sent

    async def send_test(self, email: str) -> bool:
        """Send a fixed test message to an address."""
        if not self.enabled:
            raise NotificationError("Notifications are disabled")

        subject = f"{self.config.subject_prefix} Test Notification"
        body = jinja_env.get_template("test_notification.txt").render(timestamp=utc_now())
        sent = await self._dispatch(email, subject, body, {"event": "test"})

        logger.bind(email=email, sent=sent).info("test_notification_processed")
        return sent

    async def _dispatch(
        self,
        email: str | None,
        subject: str,
        body: str,
        payload: dict[str, Any],
    ) -> bool:
        if self.config.mock_mode:
            logger.bind(to=email, subject=subject).info(
                "mock_notification\n=== MOCK EMAIL ===\n{body}\n==================", body=body
            )
            return True

        channels = []
        if email and self.config.resend_api_key:
            channels.append(self._send_email(email, subject, body))
        if self.config.webhook_url:
            channels.append(self._send_webhook(subject, body, payload))

        if not channels:
            logger.bind(to=email, subject=subject).warning("notification_channel_not_configured")
            return False

        results = await asyncio.gather(*channels)
        return any(results)

    async def _send_email(self, email: str, subject: str, body: str) -> bool:
        resend.api_key = self.config.resend_api_key
        params: resend.Emails.SendParams = {
            "from": self.config.from_email,
            "to": [email],
            "subject": subject,
            "text": body,
        }

        try:
            await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            logger.bind(to=email, subject=subject, error=str(e)).error("notification_email_failed")
            return False

        logger.bind(to=email, subject=subject).debug("notification_email_sent")
        return True

    async def _send_webhook(self, subject: str, body: str, payload: dict[str, Any]) -> bool:
        message = {**payload, "subject": subject, "text": body, "sent_at": utc_now().isoformat()}

        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                resp = await client.post(self.config.webhook_url, json=message)

                if resp.status_code >= 300:
                    logger.bind(status=resp.status_code, body=resp.text[:500]).error(
                        "notification_webhook_failed"
                    )
                    return False

                logger.bind(subject=subject).debug("notification_webhook_sent")
                return True

            except httpx.TimeoutException:
                logger.error("notification_webhook_timeout")
                return False
            except Exception as e:
                logger.bind(error=str(e)).error("notification_webhook_error")
                return False
