"""Signed QR tokens.

A token is ``base64(payload) + "." + hex(HMAC-SHA256(secret, payload))`` where
``payload`` is the compact JSON form of :class:`QRPayload` with its fields in
declaration order.
"""

import base64
import binascii
import hashlib
import hmac
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from ..errors import InvalidSignatureError, InvalidTokenError

SEPARATOR = "."


class QRPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: str
    type: str
    email: str
    timestamp: int
    issuer: str

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")


def issuance_timestamp(moment: datetime | None = None) -> int:
    """Milliseconds since the epoch, UTC."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


class TokenSigner:
    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("QR signing secret must not be empty")
        self._key = secret.encode("utf-8")

    def _sign(self, payload_bytes: bytes) -> str:
        return hmac.new(self._key, payload_bytes, hashlib.sha256).hexdigest()

    def mint(self, payload: QRPayload) -> str:
        payload_bytes = payload.to_bytes()
        encoded = base64.b64encode(payload_bytes).decode("ascii")
        return f"{encoded}{SEPARATOR}{self._sign(payload_bytes)}"

    def verify(self, token: str) -> QRPayload:
        if not isinstance(token, str) or token.count(SEPARATOR) != 1:
            raise InvalidTokenError()
        encoded, signature = token.split(SEPARATOR)
        if not encoded or not signature:
            raise InvalidTokenError()

        try:
            payload_bytes = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidTokenError() from None
        # Padding bits are ignored by the decoder, so only the canonical
        # encoding of the payload is accepted.
        if base64.b64encode(payload_bytes).decode("ascii") != encoded:
            raise InvalidTokenError()

        if not signature.isascii():
            raise InvalidSignatureError()
        expected = self._sign(payload_bytes)
        if not hmac.compare_digest(signature.encode("ascii"), expected.encode("ascii")):
            raise InvalidSignatureError()

        try:
            return QRPayload.model_validate_json(payload_bytes)
        except PydanticValidationError:
            raise InvalidTokenError() from None
