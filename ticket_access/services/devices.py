import hmac
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Device
from ..models.base import utcnow

logger = logging.getLogger(__name__)


def resolve_device(
    db: Session, device_id: str | None, organization_id: str
) -> Device | None:
    """Return the registered device or ``None``; unknown devices never fail a check-in."""
    if not device_id:
        return None
    device = db.get(Device, device_id)
    if device is None or not device.enabled or device.organization_id != organization_id:
        logger.info("Device %s not registered. Continuing without device.", device_id)
        return None
    return device


def authenticate_device(db: Session, alias: str | None, pin: str | None) -> Device | None:
    if not alias or not pin:
        return None
    device = db.execute(select(Device).where(Device.alias == alias)).scalar_one_or_none()
    if device is None or not device.enabled:
        return None
    if not hmac.compare_digest(device.pin.encode("utf-8"), pin.encode("utf-8")):
        logger.info("PIN mismatch for device %s", alias)
        return None
    device.last_active_at = utcnow()
    return device
