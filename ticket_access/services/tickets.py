"""Ticket records and the redeem/void state machine.

    valid --redeem--> used
    valid --void----> void
    used  --void----> void

Both transitions are conditional updates whose affected-row count decides the
outcome, so concurrent requests against one ticket are linearized by the
database. Check-in rows are appended after the transition commits and are
best-effort: a failed insert is logged and never undoes a committed transition.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from ..errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from ..models import (
    Checkin,
    CheckinMethodEnum,
    CheckinResultEnum,
    INVITATION_TYPE,
    Event,
    RoleEnum,
    Ticket,
    TicketStatusEnum,
    TicketType,
    TicketVoid,
)
from ..models.base import utcnow
from ..schemas import CheckinResult, PreviousCheckin, TicketCreate, TicketRead
from .audit import record_audit
from .quota import QuotaLedger, requires_quota
from .signing import QRPayload, TokenSigner, issuance_timestamp
from .tenancy import Tenant, ensure_same_organization

logger = logging.getLogger(__name__)

STORE_FAILURES = (OperationalError, PoolTimeoutError)
VOID_ROLES = {RoleEnum.ADMIN.value, RoleEnum.RRPP.value}

MESSAGES = {
    CheckinResultEnum.ALLOWED: "Access granted",
    CheckinResultEnum.ALREADY_USED: "Ticket already used",
    CheckinResultEnum.VOID: "Ticket void",
    CheckinResultEnum.NOT_FOUND: "Ticket not found",
    CheckinResultEnum.WRONG_EVENT: "Ticket is for another event",
    CheckinResultEnum.INVALID_DEVICE: "Device not authorized",
}


@dataclass(frozen=True)
class RedeemContext:
    method: CheckinMethodEnum
    operator: str | None = None
    device_id: str | None = None
    notes: str | None = None
    request_id: str | None = None
    event_id: str | None = None


@dataclass
class VoidOutcome:
    ticket: Ticket
    changed: bool
    message: str


def build_result(
    result: CheckinResultEnum,
    message: str | None = None,
    ticket: Ticket | None = None,
    previous: Checkin | None = None,
) -> CheckinResult:
    return CheckinResult(
        allowed=result == CheckinResultEnum.ALLOWED,
        result=result,
        message=message or MESSAGES.get(result, result.value),
        ticket=TicketRead.model_validate(ticket) if ticket is not None else None,
        previous_checkin=(
            PreviousCheckin(scanned_at=previous.scanned_at, device_id=previous.device_id)
            if previous is not None
            else None
        ),
    )


class TicketStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    # Lookups

    def get(self, ticket_id: str) -> Ticket | None:
        return self.db.get(Ticket, ticket_id)

    def get_for_tenant(self, ticket_id: str, tenant: Tenant) -> Ticket:
        ticket = self.get(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        ensure_same_organization(ticket.event.organization_id, tenant.organization_id, "Ticket")
        return ticket

    def get_by_token(self, token: str) -> Ticket | None:
        return self.db.execute(
            select(Ticket).where(Ticket.qr_token == token)
        ).scalar_one_or_none()

    def get_by_request_id(self, request_id: str) -> Ticket | None:
        return self.db.execute(
            select(Ticket).where(Ticket.request_id == request_id)
        ).scalar_one_or_none()

    def find_valid_by_document(self, buyer_doc: str, event_id: str) -> Ticket | None:
        matches = (
            self.db.execute(
                select(Ticket)
                .where(
                    Ticket.buyer_doc == buyer_doc,
                    Ticket.event_id == event_id,
                    Ticket.status == TicketStatusEnum.VALID,
                )
                .limit(2)
            )
            .scalars()
            .all()
        )
        if len(matches) != 1:
            return None
        return matches[0]

    def last_allowed_checkin(self, ticket_id: str) -> Checkin | None:
        return self.db.execute(
            select(Checkin)
            .where(
                Checkin.ticket_id == ticket_id,
                Checkin.result == CheckinResultEnum.ALLOWED,
            )
            .order_by(desc(Checkin.scanned_at))
            .limit(1)
        ).scalar_one_or_none()

    def checkin_by_request_id(self, request_id: str | None) -> Checkin | None:
        if not request_id:
            return None
        return self.db.execute(
            select(Checkin).where(Checkin.request_id == request_id)
        ).scalar_one_or_none()

    # Issuance

    def issue(
        self,
        tenant: Tenant,
        payload: TicketCreate,
        signer: TokenSigner,
        ip_address: str | None = None,
    ) -> tuple[Ticket, bool]:
        """Create a ticket. Returns ``(ticket, created)``.

        A repeated ``request_id`` returns the ticket issued the first time
        without touching the quota.
        """
        event = self.db.execute(
            select(Event).where(Event.slug == payload.event_slug)
        ).scalar_one_or_none()
        if event is None:
            raise NotFoundError("Event not found")
        ensure_same_organization(event.organization_id, tenant.organization_id, "Event")

        if payload.request_id:
            existing = self.get_by_request_id(payload.request_id)
            if existing is not None:
                ensure_same_organization(
                    existing.organization_id, tenant.organization_id, "Ticket"
                )
                return existing, False

        ticket_type = self.db.execute(
            select(TicketType).where(
                TicketType.event_id == event.id, TicketType.name == payload.type
            )
        ).scalar_one_or_none()
        price = self._resolve_price(payload, ticket_type)

        user_id = tenant.principal.user_id
        now = utcnow()
        try:
            if requires_quota(tenant.role, payload.type):
                QuotaLedger(self.db).reserve(event.id, user_id)

            token = signer.mint(
                QRPayload(
                    event_id=event.id,
                    type=payload.type,
                    email=str(payload.buyer_email),
                    timestamp=issuance_timestamp(now),
                    issuer=user_id,
                )
            )
            ticket = Ticket(
                event_id=event.id,
                organization_id=event.organization_id,
                ticket_type_id=ticket_type.id if ticket_type else None,
                type=payload.type,
                price=price,
                buyer_name=payload.buyer_name,
                buyer_email=str(payload.buyer_email),
                buyer_phone=payload.buyer_phone,
                buyer_doc=payload.buyer_doc,
                qr_token=token,
                status=TicketStatusEnum.VALID,
                created_by=user_id,
                created_at=now,
                request_id=payload.request_id,
            )
            self.db.add(ticket)
            self.db.flush()
            record_audit(
                self.db,
                user_id,
                "create_ticket",
                f"ticket:{ticket.id}",
                {
                    "type": payload.type,
                    "event_slug": payload.event_slug,
                    "buyer_email": str(payload.buyer_email),
                },
                ip_address,
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if payload.request_id:
                existing = self.get_by_request_id(payload.request_id)
                if existing is not None:
                    return existing, False
            logger.warning("Duplicate ticket on issuance for event %s", event.id)
            raise ConflictError("Duplicate ticket, please retry", code="duplicate_ticket") from None
        except STORE_FAILURES as exc:
            self.db.rollback()
            logger.warning("Store failure while issuing ticket: %s", exc)
            raise TransientError() from None
        except Exception:
            self.db.rollback()
            raise

        logger.info("Issued %s ticket %s for event %s", payload.type, ticket.id, event.id)
        return ticket, True

    def _resolve_price(self, payload: TicketCreate, ticket_type: TicketType | None) -> Decimal:
        if payload.type == INVITATION_TYPE:
            return Decimal("0")
        price = payload.price
        if price is None and ticket_type is not None:
            price = ticket_type.price
        if price is None:
            raise ValidationError("Price is required for this ticket type")
        if price < 0:
            raise ValidationError("Price cannot be negative")
        return price

    # Check-in

    def record_checkin(
        self,
        ticket: Ticket | None,
        context: RedeemContext,
        result: CheckinResultEnum,
        message: str,
    ) -> Checkin | None:
        """Append a check-in row in its own transaction."""
        ticket_id = ticket.id if ticket is not None else None
        event_id = ticket.event_id if ticket is not None else context.event_id
        entry = Checkin(
            ticket_id=ticket_id,
            event_id=event_id,
            device_id=context.device_id,
            operator_user=context.operator,
            method=context.method,
            result=result,
            message=message,
            notes=context.notes,
            request_id=context.request_id,
            scanned_at=utcnow(),
        )
        try:
            self.db.add(entry)
            if result == CheckinResultEnum.ALLOWED:
                record_audit(
                    self.db,
                    context.operator,
                    "validate_ticket",
                    f"ticket:{ticket_id}",
                    {"method": context.method.value, "event_id": event_id},
                )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Failed to record check-in (ticket=%s, result=%s)", ticket_id, result.value
            )
            return None
        return entry

    def reject(
        self,
        ticket: Ticket | None,
        context: RedeemContext,
        result: CheckinResultEnum,
        message: str | None = None,
        previous: Checkin | None = None,
    ) -> CheckinResult:
        message = message or MESSAGES.get(result, result.value)
        self.record_checkin(ticket, context, result, message)
        return build_result(result, message, ticket, previous)

    def redeem(
        self, ticket: Ticket, context: RedeemContext, now: datetime | None = None
    ) -> CheckinResult:
        now = now or utcnow()

        ticket_type = ticket.ticket_type
        if ticket_type is not None and ticket_type.valid_until is not None:
            if now > ticket_type.valid_until:
                return self.reject(
                    ticket,
                    context,
                    CheckinResultEnum.EXPIRED,
                    f"Ticket no longer valid, only valid until {ticket_type.valid_until:%Y-%m-%d %H:%M}",
                )

        if ticket.status == TicketStatusEnum.VOID:
            return self.reject(ticket, context, CheckinResultEnum.VOID)
        if ticket.status == TicketStatusEnum.USED:
            return self._already_used(ticket, context)

        try:
            result = self.db.execute(
                update(Ticket)
                .where(Ticket.id == ticket.id, Ticket.status == TicketStatusEnum.VALID)
                .values(status=TicketStatusEnum.USED, used_at=now)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except STORE_FAILURES as exc:
            self.db.rollback()
            logger.warning("Store failure while redeeming ticket %s: %s", ticket.id, exc)
            raise TransientError() from None

        if result.rowcount != 1:
            return self._lost_race(ticket, context)

        logger.info("Ticket %s checked in via %s", ticket.id, context.method.value)
        message = MESSAGES[CheckinResultEnum.ALLOWED]
        self.record_checkin(ticket, context, CheckinResultEnum.ALLOWED, message)
        self.db.refresh(ticket)
        return build_result(CheckinResultEnum.ALLOWED, message, ticket)

    def _lost_race(self, ticket: Ticket, context: RedeemContext) -> CheckinResult:
        """Another request changed the ticket between our read and our update.

        If that request carried the same ``request_id`` it was a retry of this
        one, so the caller gets the winner's outcome instead of ``already_used``.
        """
        self.db.refresh(ticket)
        if ticket.status == TicketStatusEnum.VOID:
            outcome = self.reject(ticket, context, CheckinResultEnum.VOID)
        else:
            outcome = self._already_used(ticket, context)

        earlier = self.checkin_by_request_id(context.request_id)
        if (
            earlier is not None
            and earlier.ticket_id == ticket.id
            and earlier.result == CheckinResultEnum.ALLOWED
        ):
            logger.info("Request %s already redeemed ticket %s", context.request_id, ticket.id)
            return build_result(CheckinResultEnum.ALLOWED, earlier.message, ticket)
        return outcome

    def _already_used(self, ticket: Ticket, context: RedeemContext) -> CheckinResult:
        previous = self.last_allowed_checkin(ticket.id)
        if previous is not None:
            message = f"Already used at {previous.scanned_at:%Y-%m-%d %H:%M:%S}"
        elif ticket.used_at is not None:
            message = f"Already used at {ticket.used_at:%Y-%m-%d %H:%M:%S}"
        else:
            message = MESSAGES[CheckinResultEnum.ALREADY_USED]
        return self.reject(
            ticket, context, CheckinResultEnum.ALREADY_USED, message, previous=previous
        )

    # Void

    def void(self, ticket: Ticket, tenant: Tenant, note: str | None = None) -> VoidOutcome:
        if tenant.role not in VOID_ROLES:
            raise AuthorizationError(
                "Only admin or rrpp staff can void tickets", details={"role": tenant.role}
            )
        ensure_same_organization(ticket.event.organization_id, tenant.organization_id, "Ticket")

        principal = tenant.principal
        note = note or f"Voided by {tenant.role} ({principal.email or principal.user_id})"
        try:
            result = self.db.execute(
                update(Ticket)
                .where(Ticket.id == ticket.id, Ticket.status != TicketStatusEnum.VOID)
                .values(status=TicketStatusEnum.VOID)
                .execution_options(synchronize_session=False)
            )
            changed = result.rowcount == 1
            if changed:
                self.db.add(
                    TicketVoid(
                        ticket_id=ticket.id,
                        note=note,
                        voided_at=utcnow(),
                        voided_by=principal.email or principal.user_id,
                        voided_role=tenant.role,
                    )
                )
                record_audit(
                    self.db, principal.user_id, "void_ticket", f"ticket:{ticket.id}", {"note": note}
                )
            self.db.commit()
        except STORE_FAILURES as exc:
            self.db.rollback()
            logger.warning("Store failure while voiding ticket %s: %s", ticket.id, exc)
            raise TransientError() from None

        self.db.refresh(ticket)
        if changed:
            logger.info("Ticket %s voided by %s", ticket.id, principal.user_id)
            return VoidOutcome(ticket, True, "Ticket voided successfully")
        return VoidOutcome(ticket, False, "Ticket was already void")
