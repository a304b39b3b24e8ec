import datetime

import pytest

from partner_app.core.config import settings
from partner_app.core.security import create_access_token
from partner_app.models.otp import OtpCode
from partner_app.models.user import utcnow
from partner_app.services import verification

SEND = "/api/otp/send"


@pytest.fixture
def pending(client, monkeypatch):
    monkeypatch.setattr(verification, "generate_code", lambda length=6: "483920")
    body = client.post(
        f"{settings.API_V1_STR}/auth/register",
        json={"name": "Alice", "email": "alice@example.com", "password": "hunter22"},
    ).json()
    return {"Authorization": f"Bearer {body['verification_token']}"}, body


def test_send_pending_code(client, mail, pending):
    headers, _ = pending
    resp = client.post(SEND, headers=headers, json={"email": "alice@example.com", "otp": "483920"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Email sent successfully", "messageId": "fake-ref"}
    assert mail.codes_for("alice@example.com") == ["483920", "483920"]


def test_send_requires_verification_token(client, pending):
    _, body = pending
    payload = {"email": "alice@example.com", "otp": "483920"}

    assert client.post(SEND, json=payload).status_code == 401

    access = {"Authorization": f"Bearer {create_access_token(body['user_id'])}"}
    resp = client.post(SEND, headers=access, json=payload)
    assert resp.status_code == 401
    assert resp.json()["code"] == "not_authenticated"


def test_send_cannot_relay(client, mail, pending):
    headers, _ = pending

    resp = client.post(SEND, headers=headers, json={"email": "victim@example.com", "otp": "483920"})
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"

    resp = client.post(SEND, headers=headers, json={"email": "alice@example.com", "otp": "999999"})
    assert resp.status_code == 403
    assert len(mail.sent) == 1


def test_send_after_verification_is_refused(client, pending):
    headers, body = pending
    client.post(
        f"{settings.API_V1_STR}/auth/verify",
        json={"verification_token": body["verification_token"], "code": "483920"},
    )

    resp = client.post(SEND, headers=headers, json={"email": "alice@example.com", "otp": "483920"})
    assert resp.status_code == 403


def test_send_reports_delivery_failure(client, mail, pending):
    headers, _ = pending
    mail.fail = True

    resp = client.post(SEND, headers=headers, json={"email": "alice@example.com", "otp": "483920"})
    assert resp.status_code == 200
    assert resp.json()["success"] is False


def test_send_is_rate_limited(client, pending):
    headers, _ = pending
    payload = {"email": "alice@example.com", "otp": "483920"}
    for _ in range(settings.OTP_SEND_MAX_REQUESTS):
        assert client.post(SEND, headers=headers, json=payload).status_code == 200

    resp = client.post(SEND, headers=headers, json=payload)
    assert resp.status_code == 429
    assert resp.json()["code"] == "rate_limited"


def test_send_validates_body(client, pending):
    headers, _ = pending
    resp = client.post(SEND, headers=headers, json={"email": "not-an-email", "otp": "483920"})
    assert resp.status_code == 422


def test_send_without_code_redelivers_stored_code(client, mail, pending):
    headers, _ = pending
    resp = client.post(SEND, headers=headers, json={"email": "alice@example.com"})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert mail.codes_for("alice@example.com") == ["483920", "483920"]


def test_send_refuses_expired_code(client, session, pending):
    headers, body = pending
    record = session.get(OtpCode, body["user_id"])
    record.expires_at = utcnow() - datetime.timedelta(seconds=1)
    session.add(record)
    session.commit()

    resp = client.post(SEND, headers=headers, json={"email": "alice@example.com"})
    assert resp.status_code == 403
