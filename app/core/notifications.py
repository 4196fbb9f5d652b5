# app/core/notifications.py
"""
Notification sink for artist approval decisions.

Pieces:
  - NotificationSink: anything with notify_decision(email, username, approved).
  - EmailNotificationSink: renders the decision email and sends it via SMTP.
  - LogNotificationSink: dev fallback when SMTP is not configured.
  - NotificationDispatcher: bounded queue + single worker thread in front
    of a sink. notify_decision() never blocks; a full queue drops the
    message with a warning. There are no retries, so every decision gets
    at most one delivery attempt.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request

from app.core.config import Settings
from app.core.email_client import send_email

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify_decision(self, email: str, username: str, approved: bool) -> None: ...


def render_decision(username: str, approved: bool) -> tuple[str, str]:
    """Return (subject, text_body) for an approval decision."""
    if approved:
        subject = "Artist Request Approved"
        text = (
            f"Dear {username},\n\n"
            "Your artist request has been approved! You can now log in and "
            "start uploading your artwork.\n\n"
            "Best regards,\nPinSync Team"
        )
    else:
        subject = "Artist Request Rejected"
        text = (
            f"Dear {username},\n\n"
            "Your artist request has been rejected. If you have any questions, "
            "please contact support.\n\n"
            "Best regards,\nPinSync Team"
        )
    return subject, text


class EmailNotificationSink:
    def __init__(self, settings: Settings):
        self.settings = settings

    def notify_decision(self, email: str, username: str, approved: bool) -> None:
        if not email:
            logger.warning(f"No email on file for {username}; skipping decision email")
            return
        subject, text = render_decision(username, approved)
        send_email(email, subject, text, settings=self.settings)
        logger.info(
            f"Email sent to {email} for {'approval' if approved else 'rejection'}"
        )


class LogNotificationSink:
    def notify_decision(self, email: str, username: str, approved: bool) -> None:
        subject, _ = render_decision(username, approved)
        logger.info(f"[notify] {subject} -> {username} <{email or 'no email'}>")


@dataclass(frozen=True)
class Decision:
    email: str
    username: str
    approved: bool


_STOP = object()


class NotificationDispatcher:
    """
    Fire-and-forget front for a NotificationSink.

    Usage:

        dispatcher = NotificationDispatcher(EmailNotificationSink(settings))
        dispatcher.start()
        dispatcher.notify_decision("bob@example.com", "bob", True)
        ...
        dispatcher.stop()
    """

    def __init__(self, sink: NotificationSink, maxsize: int = 100):
        self.sink = sink
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._worker: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._worker = threading.Thread(
            target=self._run, name="notification-worker", daemon=True
        )
        self._worker.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Drain what is already queued, then stop the worker."""
        if not self.running:
            return
        self._queue.put(_STOP)
        self._worker.join(timeout)  # type: ignore[union-attr]
        self._worker = None

    def notify_decision(self, email: str, username: str, approved: bool) -> None:
        try:
            self._queue.put_nowait(Decision(email, username, approved))
        except queue.Full:
            logger.warning(
                f"Notification queue full; dropping decision email for {username}"
            )

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._deliver(item)
            finally:
                self._queue.task_done()

    def _deliver(self, decision: Decision) -> None:
        try:
            self.sink.notify_decision(
                decision.email, decision.username, decision.approved
            )
        except Exception:
            logger.exception(
                f"Error sending decision email to {decision.email or decision.username}"
            )

    def join(self) -> None:
        """Block until every queued decision has been handled (tests, shutdown)."""
        self._queue.join()


def build_notification_sink(settings: Settings) -> NotificationSink:
    if settings.smtp_configured:
        return EmailNotificationSink(settings)
    logger.warning("SMTP not configured; approval emails will only be logged")
    return LogNotificationSink()


def get_notifier(request: Request) -> NotificationSink:
    """
    FastAPI dependency: the dispatcher created in the app lifespan.
    Tests override this with a recording fake.
    """
    return request.app.state.notifier
