from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, new_id, utcnow


class TicketStatusEnum(str, Enum):
    VALID = "valid"
    USED = "used"
    VOID = "void"


INVITATION_TYPE = "invitation"


class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        Index("ix_tickets_event_id", "event_id"),
        Index("ix_tickets_organization_id", "organization_id"),
        Index("ix_tickets_status", "status"),
        Index("ix_tickets_buyer_doc_event", "buyer_doc", "event_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id"), nullable=False)
    organization_id: Mapped[str] = mapped_column(
        ForeignKey("organizations.id"), nullable=False
    )
    ticket_type_id: Mapped[str | None] = mapped_column(ForeignKey("ticket_types.id"))
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    buyer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    buyer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    buyer_phone: Mapped[str | None] = mapped_column(String(50))
    buyer_doc: Mapped[str | None] = mapped_column(String(50))
    qr_token: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    status: Mapped[TicketStatusEnum] = mapped_column(
        SAEnum(
            TicketStatusEnum,
            native_enum=False,
            create_constraint=False,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=TicketStatusEnum.VALID,
    )
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    used_at: Mapped[datetime | None] = mapped_column(DateTime)
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    request_id: Mapped[str | None] = mapped_column(String(64), unique=True)
    event: Mapped["Event"] = relationship("Event")
    ticket_type: Mapped["TicketType | None"] = relationship("TicketType")
