# Overview: Pytest coverage for registration, login, profile and email verification.

import pytest

from lako.enums import Role
from lako.models import Email, User
from lako.services import auth_service

from conftest import PASSWORD, auth_headers, make_user


def _register(client, username="carol", email="carol@example.com", password1=PASSWORD, password2=PASSWORD):
    return client.post("/api/v1/register", json={
        "username": username,
        "email": email,
        "password1": password1,
        "password2": password2,
    })


# =============================================================================
# REGISTRATION
# =============================================================================


class TestRegister:

    def test_creates_customer_with_unverified_primary_email(self, client, db_session):
        resp = _register(client)
        assert resp.status_code == 201
        user_id = resp.get_json()["id"]

        user = db_session.get(User, user_id)
        assert user.role is Role.CUSTOMER
        assert user.hashed_password != PASSWORD
        assert len(user.emails) == 1
        email = user.emails[0]
        assert email.is_primary and not email.verified
        assert email.verification_token

    def test_password_mismatch(self, client, db_session):
        resp = _register(client, password2="something-else")
        assert resp.status_code == 400
        assert "message" in resp.get_json()
        assert db_session.query(User).count() == 0

    @pytest.mark.parametrize("field, value", [
        ("username", "abc"),
        ("email", "not-an-email"),
        ("password1", "short"),
    ])
    def test_validation(self, client, db_session, field, value):
        body = {"username": "carol", "email": "carol@example.com", "password1": PASSWORD, "password2": PASSWORD}
        body[field] = value
        if field == "password1":
            body["password2"] = value
        resp = client.post("/api/v1/register", json=body)
        assert resp.status_code == 400

    def test_duplicate_username_is_a_conflict(self, client, db_session):
        assert _register(client).status_code == 201
        resp = _register(client, username="CAROL", email="other@example.com")
        assert resp.status_code == 409

    def test_queues_confirmation_mail(self, client, db_session, outbox):
        _register(client)
        sent = outbox.flush()
        assert len(sent) == 1
        assert sent[0].recipient == "carol@example.com"
        assert sent[0].subject == "Please confirm your email address"
        token = db_session.query(Email).filter_by(address="carol@example.com").one().verification_token
        assert sent[0].body.endswith(f"https://lako.test/confirm/{token}")

    def test_mail_failure_does_not_fail_registration(self, client, db_session, app, monkeypatch):
        mailer = app.extensions["lako.mailer"]

        def broken(message):
            raise RuntimeError("queue exploded")

        monkeypatch.setattr(mailer, "enqueue", broken)
        resp = _register(client)
        assert resp.status_code == 201


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_success_returns_access_token(self, client, alice):
        resp = client.post("/api/v1/login", json={"username": "alice", "password": PASSWORD})
        assert resp.status_code == 200
        token = resp.get_json()["access_token"]

        me = client.get("/api/v1/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.get_json()["id"] == alice.id

    def test_username_is_case_insensitive(self, client, alice):
        resp = client.post("/api/v1/login", json={"username": "ALICE", "password": PASSWORD})
        assert resp.status_code == 200

    def test_stamps_last_sign_in(self, client, alice, db_session):
        assert alice.last_sign_in_at is None
        client.post("/api/v1/login", json={"username": "alice", "password": PASSWORD})
        db_session.refresh(alice)
        assert alice.last_sign_in_at is not None

    def test_wrong_password_and_unknown_user_look_the_same(self, client, alice):
        wrong_password = client.post("/api/v1/login", json={"username": "alice", "password": "nope-nope-nope"})
        unknown_user = client.post("/api/v1/login", json={"username": "mallory", "password": PASSWORD})

        assert wrong_password.status_code == unknown_user.status_code == 400
        assert wrong_password.get_json() == unknown_user.get_json() == {"message": "invalid username or password"}

    def test_unknown_user_still_pays_for_a_hash_check(self, alice, settings, monkeypatch):
        calls = []
        monkeypatch.setattr(auth_service, "burn_password_check", lambda pw, rounds: calls.append(rounds))
        with pytest.raises(auth_service.AuthenticationError):
            auth_service.authenticate("mallory", PASSWORD, settings)
        assert calls == [settings.bcrypt_rounds]

    def test_missing_body(self, client, db_session):
        resp = client.post("/api/v1/login")
        assert resp.status_code == 400


# =============================================================================
# CURRENT USER
# =============================================================================


class TestMe:

    def test_excludes_password_hash_and_tokens(self, client, alice, alice_headers):
        body = client.get("/api/v1/me", headers=alice_headers).get_json()
        assert body["username"] == "alice"
        assert "hashed_password" not in body
        assert body["emails"][0]["address"] == "alice@example.com"
        assert "verification_token" not in body["emails"][0]

    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Token abc"},
        {"Authorization": "Bearer not.a.jwt"},
    ])
    def test_bad_token_is_400(self, client, db_session, headers):
        resp = client.get("/api/v1/me", headers=headers)
        assert resp.status_code == 400
        assert "message" in resp.get_json()

    def test_token_for_deleted_user(self, client, db_session, alice):
        headers = auth_headers(alice.id)
        db_session.query(Email).delete()
        db_session.query(User).delete()
        db_session.commit()
        assert client.get("/api/v1/me", headers=headers).status_code == 400


# =============================================================================
# EMAIL VERIFICATION
# =============================================================================


class TestConfirmEmail:

    def test_end_to_end(self, client, db_session):
        user_id = _register(client).get_json()["id"]
        token = db_session.query(Email).filter_by(user_id=user_id).one().verification_token

        first = client.put(f"/api/v1/confirm/{token}")
        assert first.status_code == 200
        assert first.get_json() == {"ok": True}

        second = client.put(f"/api/v1/confirm/{token}")
        assert second.get_json() == {"ok": True}

        bogus = client.put("/api/v1/confirm/not-a-real-token")
        assert bogus.status_code == 200
        assert bogus.get_json() == {"ok": False}

        assert db_session.query(Email).filter_by(user_id=user_id).one().verified is True

    def test_verified_never_goes_back(self, alice, settings, db_session):
        email = alice.emails[0]
        assert auth_service.confirm_email(email.verification_token)

        auth_service.regenerate_and_resend_token(
            requester_id=alice.id, target_user_id=alice.id, settings=settings,
        )
        db_session.refresh(email)
        assert email.verified is True


class TestResend:

    def test_other_user_is_rejected(self, client, alice, bob, bob_headers):
        before = alice.emails[0].verification_token
        resp = client.put(f"/api/v1/users/{alice.id}/resend", headers=bob_headers)
        assert resp.status_code == 400
        assert alice.emails[0].verification_token == before

    def test_own_account_gets_fresh_token_and_mail(self, client, alice, alice_headers, outbox, db_session):
        old = alice.emails[0].verification_token
        outbox.flush()
        client.application.extensions["lako.mailer"].transport.outbox.clear()

        resp = client.put(f"/api/v1/users/{alice.id}/resend", headers=alice_headers)
        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True}

        db_session.refresh(alice.emails[0])
        new = alice.emails[0].verification_token
        assert new != old

        sent = outbox.flush()
        assert len(sent) == 1
        assert sent[0].body.endswith(new)

        # The replaced token no longer confirms anything
        assert client.put(f"/api/v1/confirm/{old}").get_json() == {"ok": False}
        assert client.put(f"/api/v1/confirm/{new}").get_json() == {"ok": True}


class TestAddEmail:

    def test_adds_unverified_secondary_address(self, client, alice, alice_headers):
        resp = client.post("/api/v1/me/emails", json={"email": "alice@work.test"}, headers=alice_headers)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["address"] == "alice@work.test"
        assert body["is_primary"] is False
        assert body["verified"] is False

    def test_duplicate_address(self, client, alice, alice_headers):
        resp = client.post("/api/v1/me/emails", json={"email": "alice@example.com"}, headers=alice_headers)
        assert resp.status_code == 409


class TestCliCreatedRoles:

    def test_register_user_accepts_staff_role(self, db_session, settings):
        user = auth_service.register_user(
            username="staffer", email="staff@example.com", password=PASSWORD,
            settings=settings, role=Role.STAFF,
        )
        assert db_session.get(User, user.id).role is Role.STAFF

    def test_make_user_helper_defaults_to_customer(self, db_session):
        assert make_user("dave1", "dave@example.com").role is Role.CUSTOMER
