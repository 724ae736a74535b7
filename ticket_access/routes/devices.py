from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..dependencies import get_signer
from ..schemas import CheckinResult, ScanRequest
from ..services.checkin import CheckinCoordinator
from ..services.signing import TokenSigner

router = APIRouter()


@router.post("/devices/scan", response_model=CheckinResult)
def devices_scan(
    payload: ScanRequest,
    db: Session = Depends(get_db),
    signer: TokenSigner = Depends(get_signer),
) -> CheckinResult:
    return CheckinCoordinator(db, signer).scan(payload)
