from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class TicketVoid(Base):
    """Who voided a ticket and why. At most one row per ticket."""

    __tablename__ = "ticket_voids"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ticket_id: Mapped[str] = mapped_column(
        ForeignKey("tickets.id"), nullable=False, unique=True
    )
    note: Mapped[str] = mapped_column(Text, nullable=False)
    voided_by: Mapped[str] = mapped_column(String(150), nullable=False)
    voided_role: Mapped[str] = mapped_column(String(20), nullable=False)
    voided_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
