from decimal import Decimal

from sqlalchemy import func, select

from ticket_access.dependencies import get_notifier
from ticket_access.main import app
from ticket_access.models import AuditLog, EventStaff, Ticket

from .helpers import RecordingNotifier, auth_headers, make_principal

PAID = {
    "event_slug": "e1",
    "type": "ga",
    "price": "25.00",
    "buyer_name": "Ana Buyer",
    "buyer_email": "a@x.com",
    "buyer_phone": "+351 900 000 000",
    "buyer_doc": "DOC-1",
}
INVITATION = {
    "event_slug": "e1",
    "type": "invitation",
    "buyer_name": "Guest",
    "buyer_email": "guest@x.com",
}


def _ticket_count(db_session):
    return db_session.execute(select(func.count(Ticket.id))).scalar_one()


def _quota_used(db_session, world, user_id="rrpp-a"):
    db_session.expire_all()
    return db_session.execute(
        select(EventStaff.quota_used).where(
            EventStaff.event_id == world.event_a.id, EventStaff.user_id == user_id
        )
    ).scalar_one()


def test_issue_paid_ticket(client, db_session, world, signer, notifier):
    response = client.post("/tickets", json=PAID, headers=auth_headers(world.admin_a))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "valid"
    assert body["created_by"] == "admin-a"
    assert body["organization_id"] == world.org_a.id
    assert Decimal(body["price"]) == Decimal("25.00")

    payload = signer.verify(body["qr_token"])
    assert payload.event_id == world.event_a.id
    assert payload.type == "ga"
    assert payload.email == "a@x.com"
    assert payload.issuer == "admin-a"

    assert len(notifier.sent) == 1
    sent = notifier.sent[0]
    assert sent["recipient"] == "a@x.com"
    assert sent["subject"] == "Your ticket for Event One"
    assert "Ana Buyer" in sent["body"]
    assert sent["attachments"][0].content.startswith(b"\x89PNG")
    ticket = db_session.get(Ticket, body["id"])
    assert ticket.email_sent_at is not None


def test_invitations_respect_quota(client, db_session, world, notifier):
    headers = auth_headers(world.rrpp_a)

    first = client.post("/tickets", json=INVITATION, headers=headers)
    second = client.post("/tickets", json=INVITATION, headers=headers)
    third = client.post("/tickets", json=INVITATION, headers=headers)

    assert first.status_code == 201
    assert Decimal(first.json()["price"]) == 0
    assert second.status_code == 201
    assert third.status_code == 409
    assert third.json()["code"] == "quota_exhausted"
    assert _ticket_count(db_session) == 2
    assert _quota_used(db_session, world) == 2


def test_quota_endpoint(client, world):
    headers = auth_headers(world.rrpp_a)
    client.post("/tickets", json=INVITATION, headers=headers)

    response = client.get(f"/events/{world.event_a.id}/quota", headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "event_id": world.event_a.id,
        "quota_limit": 2,
        "quota_used": 1,
        "remaining": 1,
    }


def test_admin_invitations_bypass_quota(client, db_session, world):
    headers = auth_headers(world.admin_a)

    statuses = [
        client.post("/tickets", json=INVITATION, headers=headers).status_code
        for _ in range(3)
    ]

    assert statuses == [201, 201, 201]
    assert _quota_used(db_session, world) == 0


def test_request_id_is_idempotent(client, db_session, world, notifier):
    headers = auth_headers(world.rrpp_a)
    body = {**INVITATION, "request_id": "req-1"}

    first = client.post("/tickets", json=body, headers=headers)
    retry = client.post("/tickets", json=body, headers=headers)

    assert first.status_code == 201
    assert retry.status_code == 200
    assert retry.json()["id"] == first.json()["id"]
    assert _ticket_count(db_session) == 1
    assert _quota_used(db_session, world) == 1
    assert len(notifier.sent) == 1


def test_event_of_other_organization_is_forbidden(client, db_session, world):
    response = client.post("/tickets", json=PAID, headers=auth_headers(world.admin_b))

    assert response.status_code == 403
    assert _ticket_count(db_session) == 0


def test_unknown_event(client, world):
    response = client.post(
        "/tickets", json={**PAID, "event_slug": "nope"}, headers=auth_headers(world.admin_a)
    )

    assert response.status_code == 404


def test_principal_without_organization(client, world):
    response = client.post(
        "/tickets", json=PAID, headers=auth_headers(make_principal("stranger"))
    )

    assert response.status_code == 403
    assert response.json()["code"] == "no_organization"


def test_invalid_input(client, world):
    headers = auth_headers(world.admin_a)

    negative = client.post("/tickets", json={**PAID, "price": "-1"}, headers=headers)
    no_price = client.post("/tickets", json={**PAID, "price": None}, headers=headers)
    bad_email = client.post("/tickets", json={**PAID, "buyer_email": "nope"}, headers=headers)

    assert negative.status_code == 400
    assert negative.json()["code"] == "validation_error"
    assert no_price.status_code == 400
    assert no_price.json()["message"] == "Price is required for this ticket type"
    assert bad_email.status_code == 400


def test_issuance_requires_authentication(client, world):
    assert client.post("/tickets", json=PAID).status_code == 401


def test_notification_failure_does_not_undo_issuance(client, db_session, world):
    app.dependency_overrides[get_notifier] = lambda: RecordingNotifier(fail=True)

    response = client.post("/tickets", json=PAID, headers=auth_headers(world.admin_a))

    assert response.status_code == 201
    ticket = db_session.get(Ticket, response.json()["id"])
    assert ticket is not None
    assert ticket.email_sent_at is None


def test_resend_ticket_email(client, db_session, world, notifier, issue_ticket):
    ticket = issue_ticket()

    response = client.post(f"/tickets/{ticket.id}/resend", headers=auth_headers(world.rrpp_a))
    foreign = client.post(f"/tickets/{ticket.id}/resend", headers=auth_headers(world.admin_b))

    assert response.status_code == 202
    assert foreign.status_code == 403
    assert [sent["recipient"] for sent in notifier.sent] == ["a@x.com"]
    actions = db_session.execute(select(AuditLog.action)).scalars().all()
    assert "resend_ticket_email" in actions


def test_read_ticket(client, world, issue_ticket):
    ticket = issue_ticket()

    response = client.get(f"/tickets/{ticket.id}", headers=auth_headers(world.door_a))
    missing = client.get("/tickets/nope", headers=auth_headers(world.door_a))

    assert response.status_code == 200
    assert response.json()["qr_token"] == ticket.qr_token
    assert missing.status_code == 404
