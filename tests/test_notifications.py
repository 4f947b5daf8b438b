from types import SimpleNamespace
from datetime import date

from src.bookings.notifications import (
    EmailNotification, MemoryEmailSender, NotificationDispatcher, LogEmailSender,
    SmtpEmailSender, booking_confirmation_email, build_email_sender
)
from src.config import settings


def make_notification(to="alice@example.com"):
    return EmailNotification(to=to, subject="Hello", html="<p>Hi</p>")


def test_dispatched_messages_are_sent_in_background():
    sender = MemoryEmailSender()
    dispatcher = NotificationDispatcher(sender=sender, maxsize=10)
    dispatcher.start()

    assert dispatcher.dispatch(make_notification("a@example.com"))
    assert dispatcher.dispatch(make_notification("b@example.com"))
    dispatcher.join()
    dispatcher.stop()

    assert [n.to for n in sender.sent] == ["a@example.com", "b@example.com"]
    assert not dispatcher.running


def test_full_queue_drops_instead_of_blocking():
    dispatcher = NotificationDispatcher(sender=MemoryEmailSender(), maxsize=1)

    assert dispatcher.dispatch(make_notification())
    assert not dispatcher.dispatch(make_notification())
    assert dispatcher.dropped == 1


def test_send_failures_are_suppressed():
    class FlakySender:
        def __init__(self):
            self.sent = []

        def send(self, notification):
            if notification.to == "bad@example.com":
                raise ConnectionError("smtp down")
            self.sent.append(notification)

    sender = FlakySender()
    dispatcher = NotificationDispatcher(sender=sender, maxsize=10)
    dispatcher.start()

    dispatcher.dispatch(make_notification("bad@example.com"))
    dispatcher.dispatch(make_notification("good@example.com"))
    dispatcher.join()
    dispatcher.stop()

    assert [n.to for n in sender.sent] == ["good@example.com"]


def test_confirmation_email_contains_booking_details():
    event = SimpleNamespace(title="Summer Jazz Night", venue="Riverside Hall", date=date(2026, 7, 4), time="19:30")

    email = booking_confirmation_email("alice@example.com", event, 2, "http://localhost/qr/abc?token=t")

    assert email.to == "alice@example.com"
    assert "<strong>2</strong>" in email.html
    assert "Summer Jazz Night" in email.html
    assert "Riverside Hall" in email.html
    assert 'href="http://localhost/qr/abc?token=t"' in email.html


def test_sender_selection_follows_smtp_setting(monkeypatch):
    monkeypatch.setattr(settings, "SMTP_HOST", None)
    assert isinstance(build_email_sender(), LogEmailSender)

    monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
    sender = build_email_sender()
    assert isinstance(sender, SmtpEmailSender)
    assert sender.host == "smtp.example.com"
