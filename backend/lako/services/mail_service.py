# Overview: Outbound email, decoupled from request handling through a queue.

"""
Mail Service

Request handlers never talk to SMTP. They build an OutgoingEmail and hand it
to EmailDispatcher.enqueue(), which returns immediately. A background worker
thread delivers queued mail through Flask-Mail with bounded retries and
exponential backoff. Delivery failures are logged and dropped; they never
reach the request that triggered the email.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field

from flask_mail import Message

from ..config import MailSettings
from ..errors import ConfigurationError
from ..extensions import mail

logger = logging.getLogger(__name__)


@dataclass
class OutgoingEmail:
    recipient: str
    subject: str
    body: str
    attempts: int = 0
    created_at: float = field(default_factory=time.time)


class SmtpTransport:
    """
    Deliver through Flask-Mail, which create_app configures from the SMTP_*
    settings (STARTTLS by default, implicit TLS with use_ssl).
    """

    def __init__(self, settings: MailSettings, app=None):
        self.settings = settings
        self.app = app

    def send(self, message: OutgoingEmail) -> None:
        s = self.settings
        if not s.server:
            raise ConfigurationError("SMTP_SERVER is not configured")
        if self.app is None:
            raise ConfigurationError("SMTP transport is not bound to an application")

        # The worker thread has no app context of its own
        with self.app.app_context():
            msg = Message(
                subject=message.subject,
                recipients=[message.recipient],
                body=message.body,
                sender=(s.from_name, s.from_address),
            )
            mail.send(msg)


class MemoryTransport:
    """Keeps delivered mail in an outbox list (local development and tests)."""

    def __init__(self):
        self.outbox: list[OutgoingEmail] = []
        self._lock = threading.Lock()

    def send(self, message: OutgoingEmail) -> None:
        with self._lock:
            self.outbox.append(message)


def build_transport(settings: MailSettings, app=None):
    if settings.transport == "memory":
        return MemoryTransport()
    return SmtpTransport(settings, app)


class EmailDispatcher:
    """
    Queue handoff between request handlers and the mail transport.

    The worker thread is started lazily on first enqueue when
    worker_enabled is set; otherwise mail waits until process_pending()
    is called (tests, `flask mail flush`).
    """

    def __init__(self, settings: MailSettings, transport=None, maxsize: int = 1000, app=None):
        self.settings = settings
        self.transport = transport or build_transport(settings, app)
        self._queue: queue.Queue[OutgoingEmail] = queue.Queue(maxsize=maxsize)
        self._shutdown = threading.Event()
        self._worker: threading.Thread | None = None
        self._worker_lock = threading.Lock()

    def enqueue(self, message: OutgoingEmail) -> bool:
        """Hand a message to the worker. Never raises; returns False if dropped."""
        try:
            self._queue.put_nowait(message)
        except queue.Full:
            logger.warning("Mail queue full, dropping email to %s", message.recipient)
            return False
        if self.settings.worker_enabled:
            self._ensure_worker()
        return True

    def pending(self) -> int:
        return self._queue.qsize()

    def process_pending(self) -> int:
        """Deliver everything currently queued in the calling thread. Returns sent count."""
        sent = 0
        while True:
            try:
                message = self._queue.get_nowait()
            except queue.Empty:
                return sent
            try:
                if self._deliver_with_retry(message, sleep=False):
                    sent += 1
            finally:
                self._queue.task_done()

    def shutdown(self, timeout: float = 5.0) -> None:
        self._shutdown.set()
        if self._worker is not None:
            self._worker.join(timeout)

    def _ensure_worker(self) -> None:
        with self._worker_lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._shutdown.clear()
            self._worker = threading.Thread(target=self._run, daemon=True, name="lako_mail_worker")
            self._worker.start()
            logger.info("Mail worker started")

    def _run(self) -> None:
        while not self._shutdown.is_set():
            try:
                message = self._queue.get(timeout=1.0)
            except queue.Empty:
                continue
            try:
                self._deliver_with_retry(message, sleep=True)
            finally:
                self._queue.task_done()

    def _deliver_with_retry(self, message: OutgoingEmail, *, sleep: bool) -> bool:
        max_attempts = max(self.settings.max_retries, 0) + 1
        while message.attempts < max_attempts:
            message.attempts += 1
            try:
                self.transport.send(message)
                logger.debug("Email sent to %s", message.recipient)
                return True
            except ConfigurationError as e:
                logger.error("Email to %s not sent: %s", message.recipient, e)
                return False
            except Exception:
                logger.exception(
                    "Email delivery to %s failed (attempt %d/%d)",
                    message.recipient, message.attempts, max_attempts,
                )
                if sleep and message.attempts < max_attempts:
                    time.sleep(min(self.settings.retry_backoff * (2 ** (message.attempts - 1)), 30))
        logger.warning("Giving up on email to %s after %d attempts", message.recipient, message.attempts)
        return False


def confirmation_email(address: str, username: str, token: str, settings: MailSettings) -> OutgoingEmail:
    body = (
        f"Hello {username}! Welcome to {settings.from_name}. Please click the link below "
        f"to verify your email address. Thank you!\n\n"
        f"{settings.confirm_url_base}{token}"
    )
    return OutgoingEmail(
        recipient=address,
        subject="Please confirm your email address",
        body=body,
    )
