import base64
import string

import pytest

from ticket_access.errors import InvalidSignatureError, InvalidTokenError, TokenError
from ticket_access.services.signing import QRPayload, TokenSigner

B64_ALPHABET = string.ascii_letters + string.digits + "+/"


@pytest.fixture()
def payload():
    return QRPayload(
        event_id="E1", type="ga", email="a@x.com", timestamp=1767225600000, issuer="admin-a"
    )


def _replace(text, index, alphabet):
    current = text[index]
    replacement = next(char for char in alphabet if char != current)
    return text[:index] + replacement + text[index + 1 :]


def test_mint_is_deterministic_and_verifies(payload):
    signer = TokenSigner("secret")
    token = signer.mint(payload)

    assert token == TokenSigner("secret").mint(payload)
    assert signer.verify(token) == payload


def test_payload_fields_are_serialized_in_fixed_order(payload):
    encoded, _ = TokenSigner("secret").mint(payload).split(".")
    decoded = base64.b64decode(encoded).decode("utf-8")

    assert decoded == (
        '{"event_id":"E1","type":"ga","email":"a@x.com",'
        '"timestamp":1767225600000,"issuer":"admin-a"}'
    )


def test_other_secret_rejects_signature(payload):
    token = TokenSigner("secret").mint(payload)

    with pytest.raises(InvalidSignatureError):
        TokenSigner("other-secret").verify(token)


def test_any_change_to_signature_is_rejected(payload):
    signer = TokenSigner("secret")
    encoded, signature = signer.mint(payload).split(".")

    for index in range(len(signature)):
        tampered = f"{encoded}.{_replace(signature, index, '0123456789abcdef')}"
        with pytest.raises(InvalidSignatureError):
            signer.verify(tampered)


def test_any_change_to_payload_segment_is_rejected(payload):
    signer = TokenSigner("secret")
    encoded, signature = signer.mint(payload).split(".")

    for index in range(len(encoded)):
        tampered = f"{_replace(encoded, index, B64_ALPHABET)}.{signature}"
        with pytest.raises(TokenError) as excinfo:
            signer.verify(tampered)
        assert excinfo.value.code in {"invalid_signature", "invalid_token"}


@pytest.mark.parametrize(
    "token",
    [
        "",
        "no-separator-here",
        ".abcdef",
        "eyJhIjoxfQ==.",
        "a.b.c",
        "not base64!.abcdef",
    ],
)
def test_malformed_tokens_are_invalid_token(token):
    with pytest.raises(InvalidTokenError):
        TokenSigner("secret").verify(token)


def test_uppercase_or_non_ascii_signature_is_rejected(payload):
    signer = TokenSigner("secret")
    encoded, signature = signer.mint(payload).split(".")

    with pytest.raises(InvalidSignatureError):
        signer.verify(f"{encoded}.{signature.upper()}")
    with pytest.raises(InvalidSignatureError):
        signer.verify(f"{encoded}.{signature[:-1]}é")


def test_signed_garbage_payload_is_invalid_token():
    signer = TokenSigner("secret")
    body = b"not json at all"
    token = f"{base64.b64encode(body).decode()}.{signer._sign(body)}"

    with pytest.raises(InvalidTokenError):
        signer.verify(token)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenSigner("")
