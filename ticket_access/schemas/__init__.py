from .ticket import (
    CheckinResult,
    PreviousCheckin,
    QuotaRead,
    ScanRequest,
    TicketCreate,
    TicketRead,
    ValidationRequest,
    VoidRequest,
    VoidResult,
)

__all__ = [
    "CheckinResult",
    "PreviousCheckin",
    "QuotaRead",
    "ScanRequest",
    "TicketCreate",
    "TicketRead",
    "ValidationRequest",
    "VoidRequest",
    "VoidResult",
]
