import logging
import queue
import smtplib
import threading
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional

from src.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailNotification:
    to: str
    subject: str
    html: str


class LogEmailSender:
    """Development sender: writes the message to the log instead of sending it"""

    def send(self, notification: EmailNotification):
        logger.info("Email to %s: %s\n%s", notification.to, notification.subject, notification.html)


class SmtpEmailSender:
    def __init__(
        self,
        host: str,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: float = 10
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or settings.EMAIL_FROM
        self.timeout = timeout

    def send(self, notification: EmailNotification):
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = notification.to
        message["Subject"] = notification.subject
        message.set_content("Your booking is confirmed. View this message in an HTML-capable client.")
        message.add_alternative(notification.html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password or "")
            smtp.send_message(message)


def build_email_sender():
    if settings.SMTP_HOST:
        return SmtpEmailSender(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
        )
    return LogEmailSender()


def booking_confirmation_email(to: str, event, quantity: int, retrieval_link: str) -> EmailNotification:
    event_date = event.date.strftime("%a %b %d %Y") if event.date else ""
    html = (
        "<h2>Booking Confirmed!</h2>"
        f"<p>You booked <strong>{quantity}</strong> ticket(s) to <strong>{event.title}</strong> "
        f"at <strong>{event.venue}</strong>.</p>"
        f"<p>Date: {event_date} | Time: {event.time or 'TBA'}</p>"
        "<p><strong>Click below to view your QR code:</strong></p>"
        f'<p><a href="{retrieval_link}" target="_blank">View QR Code</a></p>'
    )
    return EmailNotification(to=to, subject="Your Event Booking Confirmation", html=html)


class NotificationDispatcher:
    """Bounded queue of outgoing emails drained by one background worker.

    dispatch() never blocks: when the queue is full the message is dropped
    and logged. Send failures are logged and swallowed.
    """

    _STOP = object()

    def __init__(self, sender=None, maxsize: Optional[int] = None):
        self.sender = sender or build_email_sender()
        self._queue = queue.Queue(maxsize=maxsize or settings.NOTIFICATION_QUEUE_SIZE)
        self._thread = None
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name="notification-dispatcher", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5):
        """Stop after the messages already queued have been sent"""
        if not self.running:
            return
        self._queue.put(self._STOP)
        self._thread.join(timeout=timeout)
        self._thread = None

    def dispatch(self, notification: EmailNotification) -> bool:
        try:
            self._queue.put_nowait(notification)
        except queue.Full:
            self.dropped += 1
            logger.warning("Notification queue full, dropping email to %s", notification.to)
            return False
        return True

    def join(self):
        """Block until every queued message has been handled"""
        self._queue.join()

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                self._send(item)
            finally:
                self._queue.task_done()

    def _send(self, notification: EmailNotification):
        try:
            self.sender.send(notification)
            logger.info("Sent '%s' to %s", notification.subject, notification.to)
        except Exception:
            logger.exception("Failed to send email to %s", notification.to)


class MemoryEmailSender:
    """Keeps sent messages in memory; used by tests and local demos"""

    def __init__(self):
        self.sent: List[EmailNotification] = []

    def send(self, notification: EmailNotification):
        self.sent.append(notification)
