from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id, utcnow


class RoleEnum(str, Enum):
    ADMIN = "admin"
    RRPP = "rrpp"
    DOOR = "door"


class UserProfile(Base):
    __tablename__ = "users_profile"
    __table_args__ = (Index("ix_users_profile_organization_id", "organization_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    organization_id: Mapped[str | None] = mapped_column(
        ForeignKey("organizations.id")
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RoleEnum.RRPP.value
    )
    display_name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
