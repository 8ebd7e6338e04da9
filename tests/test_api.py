"""HTTP-level tests for the auth, users and groups routers."""

import json
import re

import pytest

from crm.models import AuditLog

from conftest import STRONG_PASSWORD


def _login(client, email, password=STRONG_PASSWORD):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()


def _bearer(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest.fixture
def owner(make_user):
    return make_user(email="owner@example.com", is_owner=True, full_name="Owner")


@pytest.fixture
def owner_headers(client, owner):
    return _bearer(_login(client, owner.email))


def test_health_and_request_id(client):
    resp = client.get("/api/health", headers={"X-Request-Id": "abc123"})
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-Id"] == "abc123"


def test_request_id_is_generated_when_missing_or_malformed(client):
    plain = client.get("/api/health")
    spoofed = client.get("/api/health", headers={"X-Request-Id": "bad id; drop"})

    assert re.fullmatch(r"[0-9a-f]{32}", plain.headers["X-Request-Id"])
    assert re.fullmatch(r"[0-9a-f]{32}", spoofed.headers["X-Request-Id"])


def test_audit_rows_carry_request_id(client, session_factory, user):
    resp = client.post(
        "/api/auth/login",
        json={"email": user.email, "password": STRONG_PASSWORD},
        headers={"X-Request-Id": "login-7"},
    )
    assert resp.status_code == 200

    session = session_factory()
    entry = session.query(AuditLog).filter(AuditLog.action == "user.login").one()
    session.close()
    assert json.loads(entry.details_json)["request_id"] == "login-7"


def test_login_and_me(client, user):
    tokens = _login(client, "INFO@example.com")

    resp = client.get("/api/auth/me", headers=_bearer(tokens))

    assert resp.status_code == 200
    assert resp.json()["email"] == "Info@Example.com"
    assert resp.json()["username"] == "info"


def test_login_failure_is_uniform(client, user):
    unknown = client.post("/api/auth/login", json={"email": "nobody@x.io", "password": "x"})
    wrong = client.post("/api/auth/login", json={"email": user.email, "password": "x"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json() == {"detail": "Invalid login", "error": "InvalidLogin"}


def test_me_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code == 401
    resp = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


def test_refresh_token_is_not_an_access_token(client, user):
    tokens = _login(client, user.email)
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"})
    assert resp.status_code == 401


def test_refresh(client, user):
    tokens = _login(client, user.email)

    resp = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    rotated = resp.json()["tokens"]
    assert rotated["access_token"]

    reused = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert reused.status_code == 200
    assert reused.json() == {"tokens": None}


def test_refresh_invalid_token_is_empty(client):
    resp = client.post("/api/auth/refresh", json={"refresh_token": "invalid"})
    assert resp.status_code == 200
    assert resp.json() == {"tokens": None}


def test_invitation_flow(client, owner_headers, group, notifier):
    resp = client.post(
        "/api/users/invite",
        json={"email": "New@Member.io", "password": STRONG_PASSWORD, "group_id": group.id},
        headers=owner_headers,
    )
    assert resp.status_code == 200, resp.text
    assert "token" not in resp.json()

    token = re.search(r"token=([\w-]+)", notifier.sent[-1]["body"]).group(1)
    resp = client.post("/api/auth/confirm-invitation", json={
        "token": token,
        "password": "Confirmed1",
        "password_confirmation": "Confirmed1",
        "full_name": "New Member",
    })
    assert resp.status_code == 200, resp.text
    assert resp.json()["full_name"] == "New Member"
    assert resp.json()["group_ids"] == [group.id]

    _login(client, "new@member.io", "Confirmed1")


def test_invite_requires_owner(client, user, group):
    headers = _bearer(_login(client, user.email))
    resp = client.post(
        "/api/users/invite",
        json={"email": "x@y.io", "password": STRONG_PASSWORD, "group_id": group.id},
        headers=headers,
    )
    assert resp.status_code == 403


def test_invite_invalid_group(client, owner_headers):
    resp = client.post(
        "/api/users/invite",
        json={"email": "x@y.io", "password": STRONG_PASSWORD, "group_id": 404},
        headers=owner_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid group"


def test_confirm_invitation_bad_token(client):
    resp = client.post("/api/auth/confirm-invitation", json={
        "token": "nope", "password": STRONG_PASSWORD, "password_confirmation": STRONG_PASSWORD,
    })
    assert resp.status_code == 400
    assert resp.json()["error"] == "TokenInvalidOrExpired"


def test_create_user_duplicated_email(client, owner_headers, user):
    resp = client.post(
        "/api/users/",
        json={"email": "info@EXAMPLE.com", "password": STRONG_PASSWORD},
        headers=owner_headers,
    )
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Duplicated email"


def test_cannot_deactivate_sole_owner(client, owner, owner_headers):
    resp = client.post(f"/api/users/{owner.id}/active", json={"is_active": False}, headers=owner_headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Can not deactivate owner"


def test_deactivate_member(client, owner_headers, user):
    resp = client.post(f"/api/users/{user.id}/active", json={}, headers=owner_headers)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    resp = client.post("/api/auth/login", json={"email": user.email, "password": STRONG_PASSWORD})
    assert resp.status_code == 401


def test_set_active_unknown_user(client, owner_headers):
    resp = client.post("/api/users/999/active", json={}, headers=owner_headers)
    assert resp.status_code == 404
    assert resp.json()["detail"] == "User not found"


def test_forgot_and_reset_password(client, user, notifier):
    resp = client.post("/api/auth/forgot-password", json={"email": user.email})
    assert resp.status_code == 200
    assert resp.json() == {"message": "Password reset instructions have been sent to your email"}

    token = re.search(r"token=([\w-]+)", notifier.sent[-1]["body"]).group(1)
    resp = client.post("/api/auth/reset-password", json={"token": token, "new_password": "Changed123"})
    assert resp.status_code == 200

    again = client.post("/api/auth/reset-password", json={"token": token, "new_password": "Changed123"})
    assert again.status_code == 400

    _login(client, user.email, "Changed123")


def test_change_password_and_edit_profile(client, user):
    headers = _bearer(_login(client, user.email))

    resp = client.post(
        "/api/auth/change-password",
        json={"current_password": "wrong", "new_password": "Changed123"},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Incorrect current password"

    resp = client.patch("/api/auth/me", json={"position": "Analyst"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["position"] == "Analyst"
    assert resp.json()["full_name"] == "Info Desk"


def test_change_password_over_72_bytes(client, user):
    headers = _bearer(_login(client, user.email))

    resp = client.post(
        "/api/auth/change-password",
        json={"current_password": STRONG_PASSWORD, "new_password": "Aa1" + "x" * 100},
        headers=headers,
    )

    assert resp.status_code == 400
    assert resp.json() == {
        "detail": "Password can not be longer than 72 bytes",
        "error": "PasswordTooLong",
    }


def test_email_signatures_and_notifications(client, user):
    headers = _bearer(_login(client, user.email))

    resp = client.put(
        "/api/auth/me/email-signatures",
        json={"signatures": [{"brand_id": "b1", "signature": "Cheers"}]},
        headers=headers,
    )
    assert resp.json()["email_signatures"] == [{"brand_id": "b1", "signature": "Cheers"}]

    resp = client.put("/api/auth/me/notifications", json={"get_notification_by_email": True}, headers=headers)
    assert resp.json()["get_notification_by_email"] is True


def test_groups(client, owner_headers):
    resp = client.post("/api/groups/", json={"name": "Sales"}, headers=owner_headers)
    assert resp.status_code == 200

    dup = client.post("/api/groups/", json={"name": "Sales"}, headers=owner_headers)
    assert dup.status_code == 409

    groups = client.get("/api/groups/", headers=owner_headers).json()
    assert [g["name"] for g in groups] == ["Sales"]
    assert set(groups[0]) == {"id", "name", "description", "created_at"}
