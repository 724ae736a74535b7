from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id, utcnow


class CheckinMethodEnum(str, Enum):
    QR = "qr"
    DOCUMENT = "document"
    MANUAL_ID = "manual-id"


class CheckinResultEnum(str, Enum):
    ALLOWED = "allowed"
    ALREADY_USED = "already_used"
    VOID = "void"
    INVALID_SIGNATURE = "invalid_signature"
    INVALID_TOKEN = "invalid_token"
    INVALID_DEVICE = "invalid_device"
    NOT_FOUND = "not_found"
    WRONG_EVENT = "wrong_event"
    EXPIRED = "expired"


def _enum_values(enum) -> list[str]:
    return [member.value for member in enum]


class Checkin(Base):
    __tablename__ = "checkins"
    __table_args__ = (
        Index("ix_checkins_ticket_id", "ticket_id"),
        Index("ix_checkins_event_id", "event_id"),
        Index("ix_checkins_scanned_at", "scanned_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    ticket_id: Mapped[str | None] = mapped_column(ForeignKey("tickets.id"))
    event_id: Mapped[str | None] = mapped_column(ForeignKey("events.id"))
    device_id: Mapped[str | None] = mapped_column(ForeignKey("devices.id"))
    operator_user: Mapped[str | None] = mapped_column(String(64))
    method: Mapped[CheckinMethodEnum] = mapped_column(
        SAEnum(
            CheckinMethodEnum,
            native_enum=False,
            create_constraint=False,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    result: Mapped[CheckinResultEnum] = mapped_column(
        SAEnum(
            CheckinResultEnum,
            native_enum=False,
            create_constraint=False,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    message: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    scanned_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), unique=True)
