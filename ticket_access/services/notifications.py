import io
import logging
import smtplib
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr

import qrcode
from jinja2 import Environment, PackageLoader, select_autoescape
from sqlalchemy.orm import Session

from ..config import Settings
from ..models import Ticket
from ..models.base import utcnow

logger = logging.getLogger(__name__)

QR_CID = "qrcode"

_templates = Environment(
    loader=PackageLoader("ticket_access", "templates"),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "image/png"
    cid: str | None = None


class Notifier(ABC):
    @abstractmethod
    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        attachments: list[Attachment] | None = None,
    ) -> None:
        raise NotImplementedError


class SmtpNotifier(Notifier):
    def __init__(self, config: Settings) -> None:
        self._config = config

    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        attachments: list[Attachment] | None = None,
    ) -> None:
        config = self._config
        sender = config.smtp_user or f"no-reply@{config.smtp_host}"
        message = EmailMessage()
        message["From"] = formataddr((config.smtp_sender_name, sender))
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content("Open this message in an HTML capable client to see your ticket.")
        message.add_alternative(body, subtype="html")
        html_part = message.get_payload()[-1]
        for attachment in attachments or []:
            maintype, subtype = attachment.content_type.split("/", 1)
            if attachment.cid:
                html_part.add_related(
                    attachment.content,
                    maintype=maintype,
                    subtype=subtype,
                    cid=f"<{attachment.cid}>",
                    filename=attachment.filename,
                )
            else:
                message.add_attachment(
                    attachment.content,
                    maintype=maintype,
                    subtype=subtype,
                    filename=attachment.filename,
                )

        with smtplib.SMTP(
            config.smtp_host, config.smtp_port, timeout=config.smtp_timeout_seconds
        ) as smtp:
            smtp.starttls()
            if config.smtp_user and config.smtp_password:
                smtp.login(config.smtp_user, config.smtp_password)
            smtp.send_message(message)
        logger.info("Email sent to %s", recipient)


class LogOnlyNotifier(Notifier):
    """Used when SMTP credentials are not configured."""

    def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        attachments: list[Attachment] | None = None,
    ) -> None:
        logger.warning("SMTP not configured; dropping email %r to %s", subject, recipient)


def build_notifier(config: Settings) -> Notifier:
    if config.smtp_password:
        return SmtpNotifier(config)
    return LogOnlyNotifier()


def render_qr_png(token: str) -> bytes:
    qr = qrcode.QRCode(box_size=8, border=2)
    qr.add_data(token)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue()


def render_ticket_email(ticket: Ticket) -> tuple[str, str]:
    event = ticket.event
    subject = f"Your ticket for {event.name}"
    body = _templates.get_template("emails/ticket.html").render(
        ticket=ticket, event=event, qr_cid=QR_CID, year=utcnow().year
    )
    return subject, body


def deliver_ticket(
    session_factory: Callable[[], Session], notifier: Notifier, ticket_id: str
) -> bool:
    """Email the QR code for a ticket.

    Failures are logged and swallowed: issuance and check-in never depend on
    delivery.
    """
    try:
        with session_factory() as db:
            ticket = db.get(Ticket, ticket_id)
            if ticket is None:
                logger.warning("Ticket %s vanished before email delivery", ticket_id)
                return False
            subject, body = render_ticket_email(ticket)
            qr_png = render_qr_png(ticket.qr_token)
            notifier.send(
                ticket.buyer_email,
                subject,
                body,
                [Attachment("ticket-qr.png", qr_png, "image/png", cid=QR_CID)],
            )
            ticket.email_sent_at = utcnow()
            db.commit()
    except Exception:
        logger.exception("Email delivery failed for ticket %s", ticket_id)
        return False
    return True
