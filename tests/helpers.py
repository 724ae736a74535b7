from ticket_access.auth import Principal, issue_session_token
from ticket_access.config import settings
from ticket_access.services.notifications import Notifier


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent = []

    def send(self, recipient, subject, body, attachments=None) -> None:
        if self.fail:
            raise ConnectionError("SMTP unreachable")
        self.sent.append(
            {
                "recipient": recipient,
                "subject": subject,
                "body": body,
                "attachments": attachments or [],
            }
        )


def make_principal(user_id, organization_id=None, role=None, email=None):
    return Principal(
        user_id=user_id,
        email=email or f"{user_id}@example.com",
        app_metadata={"role": role} if role else {},
        user_metadata={"organization_id": organization_id} if organization_id else {},
    )


def auth_headers(principal):
    token = issue_session_token(principal, settings.secret_key)
    return {"Authorization": f"Bearer {token}"}
