import pytest

from ticket_access.config import Settings
from ticket_access.models import Ticket
from ticket_access.services import notifications
from ticket_access.services.notifications import (
    QR_CID,
    Attachment,
    LogOnlyNotifier,
    SmtpNotifier,
    build_notifier,
    deliver_ticket,
    render_qr_png,
    render_ticket_email,
)

from .helpers import RecordingNotifier


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, message):
        self.messages.append(message)


@pytest.fixture()
def smtp_settings():
    return Settings(
        secret_key="s",
        qr_secret_key="q",
        smtp_host="smtp.test",
        smtp_port=2525,
        smtp_user="tickets@test",
        smtp_password="pw",
    )


@pytest.fixture()
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_render_qr_png():
    assert render_qr_png("abc.def").startswith(b"\x89PNG")


def test_render_ticket_email(issue_ticket):
    ticket = issue_ticket(buyer_name="Ana <b>Buyer</b>")

    subject, body = render_ticket_email(ticket)

    assert subject == "Your ticket for Event One"
    assert "Ana &lt;b&gt;Buyer&lt;/b&gt;" in body
    assert f"cid:{QR_CID}" in body
    assert ticket.id in body
    assert "Main Hall" in body


def test_smtp_notifier_sends_inline_qr(smtp_settings, fake_smtp):
    png = render_qr_png("abc.def")

    SmtpNotifier(smtp_settings).send(
        "a@x.com",
        "Your ticket",
        "<img src='cid:qrcode'>",
        [Attachment("ticket-qr.png", png, cid=QR_CID)],
    )

    smtp = fake_smtp.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.test", 2525)
    assert smtp.calls == ["starttls", ("login", "tickets@test", "pw")]
    message = smtp.messages[0]
    assert message["To"] == "a@x.com"
    assert message["Subject"] == "Your ticket"
    images = [part for part in message.walk() if part.get_content_type() == "image/png"]
    assert len(images) == 1
    assert images[0]["Content-ID"] == f"<{QR_CID}>"
    assert images[0].get_payload(decode=True) == png


def test_build_notifier(smtp_settings):
    assert isinstance(build_notifier(smtp_settings), SmtpNotifier)
    assert isinstance(
        build_notifier(Settings(secret_key="s", qr_secret_key="q")), LogOnlyNotifier
    )


def test_deliver_ticket_marks_email_sent(SessionLocal, db_session, issue_ticket):
    ticket = issue_ticket()
    notifier = RecordingNotifier()

    assert deliver_ticket(SessionLocal, notifier, ticket.id) is True

    db_session.expire_all()
    assert db_session.get(Ticket, ticket.id).email_sent_at is not None
    assert notifier.sent[0]["attachments"][0].cid == QR_CID


def test_deliver_ticket_swallows_failures(SessionLocal, db_session, issue_ticket):
    ticket = issue_ticket()

    assert deliver_ticket(SessionLocal, RecordingNotifier(fail=True), ticket.id) is False
    assert deliver_ticket(SessionLocal, RecordingNotifier(), "missing") is False

    db_session.expire_all()
    assert db_session.get(Ticket, ticket.id).email_sent_at is None
