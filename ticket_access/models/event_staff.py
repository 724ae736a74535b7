import sqlalchemy as sa
from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id


class EventStaff(Base):
    __tablename__ = "event_staff"
    __table_args__ = (
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_staff_event_user"),
        sa.CheckConstraint("quota_used >= 0", name="ck_event_staff_quota_used_positive"),
        sa.CheckConstraint(
            "quota_used <= quota_limit", name="ck_event_staff_quota_within_limit"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quota_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quota_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
