from .audit_log import AuditLog
from .base import Base
from .checkin import Checkin, CheckinMethodEnum, CheckinResultEnum
from .device import Device
from .event import Event
from .event_staff import EventStaff
from .organization import Organization
from .ticket import INVITATION_TYPE, Ticket, TicketStatusEnum
from .ticket_type import TicketType
from .ticket_void import TicketVoid
from .user_profile import RoleEnum, UserProfile

__all__ = [
    "AuditLog",
    "Base",
    "Checkin",
    "CheckinMethodEnum",
    "CheckinResultEnum",
    "Device",
    "Event",
    "EventStaff",
    "INVITATION_TYPE",
    "Organization",
    "RoleEnum",
    "Ticket",
    "TicketStatusEnum",
    "TicketType",
    "TicketVoid",
    "UserProfile",
]
