import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..errors import QuotaExceededError
from ..models import INVITATION_TYPE, EventStaff
from .tenancy import is_admin

logger = logging.getLogger(__name__)


def requires_quota(role: str | None, ticket_type: str) -> bool:
    return ticket_type == INVITATION_TYPE and not is_admin(role)


class QuotaLedger:
    """Per-staff invitation quota, enforced by a single conditional update.

    ``reserve`` does not commit: the reservation belongs to the caller's
    transaction, so a rollback releases it.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def reserve(self, event_id: str, staff_id: str) -> None:
        logger.info("Reserving invitation quota for user %s on event %s", staff_id, event_id)
        result = self.db.execute(
            update(EventStaff)
            .where(
                EventStaff.event_id == event_id,
                EventStaff.user_id == staff_id,
                EventStaff.quota_used < EventStaff.quota_limit,
            )
            .values(quota_used=EventStaff.quota_used + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info("Quota exhausted for user %s on event %s", staff_id, event_id)
            raise QuotaExceededError(details={"event_id": event_id})

    def remaining(self, event_id: str, staff_id: str) -> dict[str, int] | None:
        row = self.db.execute(
            select(EventStaff.quota_limit, EventStaff.quota_used).where(
                EventStaff.event_id == event_id, EventStaff.user_id == staff_id
            )
        ).one_or_none()
        if row is None:
            return None
        limit, used = row
        return {"quota_limit": limit, "quota_used": used, "remaining": limit - used}
