from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..models import CheckinMethodEnum, CheckinResultEnum, TicketStatusEnum

METHOD_ALIASES = {"doc": "document", "id": "manual-id"}


class TicketCreate(BaseModel):
    event_slug: str = Field(min_length=1)
    type: str = Field(min_length=1, max_length=50)
    price: Decimal | None = Field(default=None, ge=0)
    buyer_name: str = Field(min_length=1)
    buyer_email: EmailStr
    buyer_phone: str | None = None
    buyer_doc: str | None = None
    request_id: str | None = Field(default=None, max_length=64)


class TicketRead(BaseModel):
    id: str
    event_id: str
    organization_id: str
    type: str
    price: Decimal
    buyer_name: str
    buyer_email: str
    buyer_phone: str | None
    buyer_doc: str | None
    qr_token: str
    status: TicketStatusEnum
    created_by: str
    created_at: datetime
    used_at: datetime | None
    email_sent_at: datetime | None
    request_id: str | None

    model_config = {"from_attributes": True}


class ValidationRequest(BaseModel):
    method: CheckinMethodEnum
    qr_token: str | None = None
    buyer_doc: str | None = None
    event_id: str | None = None
    ticket_id: str | None = None
    notes: str | None = None
    device_id: str | None = None
    request_id: str | None = Field(default=None, max_length=64)

    @field_validator("method", mode="before")
    @classmethod
    def _legacy_method_names(cls, value):
        if isinstance(value, str):
            return METHOD_ALIASES.get(value, value)
        return value


class ScanRequest(BaseModel):
    qr_token: str
    event_slug: str
    alias: str
    pin: str
    request_id: str | None = Field(default=None, max_length=64)


class PreviousCheckin(BaseModel):
    scanned_at: datetime
    device_id: str | None = None


class CheckinResult(BaseModel):
    allowed: bool
    result: CheckinResultEnum
    message: str
    ticket: TicketRead | None = None
    previous_checkin: PreviousCheckin | None = None


class VoidRequest(BaseModel):
    notes: str | None = None


class VoidResult(BaseModel):
    ticket: TicketRead
    changed: bool
    message: str


class QuotaRead(BaseModel):
    event_id: str
    quota_limit: int
    quota_used: int
    remaining: int
