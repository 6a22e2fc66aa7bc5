"""
Forgot/reset password lifecycle: emailed token, hashing, expiry and single use.
"""

import re
from datetime import datetime, timedelta, timezone

from sqlmodel import Session, select

from conftest import OWNER_EMAIL, PASSWORD
from portfolio.core.security import hash_reset_token
from portfolio.models.schema import User
from portfolio.shared.db import engine

TOKEN_PATTERN = re.compile(r"http://dashboard\.test/password/reset/([0-9a-f]{40})")
NEW_PASSWORD = "reset-pass-123"


def request_reset(client, email=OWNER_EMAIL):
    return client.post("/api/v1/user/password/forgot", json={"email": email})


def sent_token(mailer) -> str:
    match = TOKEN_PATTERN.search(mailer.outbox[-1]["message"])
    assert match, mailer.outbox[-1]["message"]
    return match.group(1)


def stored_user() -> User:
    with Session(engine) as session:
        return session.exec(select(User).where(User.email == OWNER_EMAIL)).one()


def reset(client, token, password=NEW_PASSWORD, confirm=NEW_PASSWORD):
    return client.put(
        f"/api/v1/user/password/reset/{token}",
        json={"password": password, "confirmPassword": confirm},
    )


class TestForgotPassword:
    def test_sends_reset_link(self, registered, mailer):
        response = request_reset(registered)

        assert response.status_code == 201
        assert response.json() == {
            "success": True,
            "message": f"Email sent to {OWNER_EMAIL} successfully",
        }
        assert len(mailer.outbox) == 1
        mail = mailer.outbox[0]
        assert mail["email"] == OWNER_EMAIL
        assert mail["subject"] == "Personal Portfolio Dashboard Password Recovery"

    def test_only_hash_is_stored(self, registered, mailer):
        request_reset(registered)
        token = sent_token(mailer)

        user = stored_user()
        assert user.reset_password_token == hash_reset_token(token)
        assert user.reset_password_token != token
        assert user.reset_password_expire is not None

    def test_unknown_email(self, client, mailer):
        response = request_reset(client, email="ghost@example.com")
        assert response.status_code == 404
        assert response.json()["message"] == "User Not Found!"
        assert mailer.outbox == []

    def test_mail_failure_clears_token(self, registered, mailer):
        mailer.fail = True

        response = request_reset(registered)

        assert response.status_code == 500
        user = stored_user()
        assert user.reset_password_token is None
        assert user.reset_password_expire is None

    def test_unexpected_mail_error_clears_token(self, registered, mailer):
        mailer.fail = True
        mailer.fail_with = RuntimeError

        response = request_reset(registered)

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": f"Could not send email to {OWNER_EMAIL}",
        }
        user = stored_user()
        assert user.reset_password_token is None
        assert user.reset_password_expire is None


class TestResetPassword:
    def test_reset_logs_user_in(self, registered, mailer):
        request_reset(registered)
        token = sent_token(mailer)
        registered.cookies.clear()

        response = reset(registered, token)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Reset Password Successfully!"
        assert body["user"]["email"] == OWNER_EMAIL
        assert registered.cookies.get("token") == body["token"]

        login = registered.post(
            "/api/v1/user/login", json={"email": OWNER_EMAIL, "password": NEW_PASSWORD}
        )
        assert login.status_code == 200
        old_login = registered.post(
            "/api/v1/user/login", json={"email": OWNER_EMAIL, "password": PASSWORD}
        )
        assert old_login.status_code == 401

    def test_token_is_single_use(self, registered, mailer):
        request_reset(registered)
        token = sent_token(mailer)

        assert reset(registered, token).status_code == 200
        second = reset(registered, token, password="yet-another-1", confirm="yet-another-1")

        assert second.status_code == 400
        assert (
            second.json()["message"]
            == "Reset password token is invalid or has been expired."
        )
        user = stored_user()
        assert user.reset_password_token is None
        assert user.reset_password_expire is None

    def test_expired_token_rejected(self, registered, mailer):
        request_reset(registered)
        token = sent_token(mailer)

        with Session(engine) as session:
            user = session.exec(select(User).where(User.email == OWNER_EMAIL)).one()
            user.reset_password_expire = datetime.now(timezone.utc) - timedelta(minutes=1)
            session.add(user)
            session.commit()

        response = reset(registered, token)
        assert response.status_code == 400

    def test_unknown_token_rejected(self, registered):
        response = reset(registered, "ab" * 20)
        assert response.status_code == 400

    def test_newer_request_invalidates_older_token(self, registered, mailer):
        request_reset(registered)
        first = sent_token(mailer)
        request_reset(registered)
        second = sent_token(mailer)

        assert reset(registered, first).status_code == 400
        assert reset(registered, second).status_code == 200

    def test_confirmation_mismatch(self, registered, mailer):
        request_reset(registered)
        token = sent_token(mailer)

        response = reset(registered, token, confirm="something-else")

        assert response.status_code == 400
        assert response.json()["message"] == "Password & Confirm Password do not match"
        # A failed attempt does not burn the token
        assert reset(registered, token).status_code == 200
