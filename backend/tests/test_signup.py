"""Tests for invite-gated signup and the auth callback."""

from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from kindred.core.config import SESSION_COOKIE_NAME
from kindred.models import AuthIdentity, InviteLink, Member, User, UserRole
from kindred.services import identity as identity_provider


def _signup(client, token, email="new@example.com", role="BRAND", **extra):
    body = {"email": email, "password": "correct-horse", "role": role, "inviteToken": token}
    body.update(extra)
    return client.post("/api/auth/signup", json=body)


def _identity(db, email):
    db.expire_all()
    return db.query(AuthIdentity).filter(AuthIdentity.email == email).first()


class TestSignup:
    """POST /api/auth/signup"""

    def test_signup_with_valid_invite(self, client, db, make_invite, no_email):
        invite = make_invite()

        response = _signup(client, invite.token, firstName="Ada", lastName="Brewer")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Please check your email to verify your account"
        assert body["data"]["user"]["email"] == "new@example.com"
        assert body["data"]["user"]["role"] == "BRAND"

        db.expire_all()
        user = db.query(User).filter(User.email == "new@example.com").one()
        assert user.invite_link_token == invite.token
        assert user.member.first_name == "Ada"
        assert db.query(InviteLink).filter(InviteLink.id == invite.id).one().used_count == 1
        assert no_email.call_args.args[0] == "new@example.com"

    def test_target_role_overrides_requested_role(self, client, make_invite):
        invite = make_invite(target_role=UserRole.SUPPLIER)

        response = _signup(client, invite.token, role="BRAND")

        assert response.json()["data"]["user"]["role"] == "SUPPLIER"

    def test_used_count_tracks_signups(self, client, db, make_invite):
        invite = make_invite(max_uses=5)

        for n in range(3):
            assert _signup(client, invite.token, email=f"user-{n}@example.com").status_code == 201

        db.expire_all()
        assert db.query(InviteLink).filter(InviteLink.id == invite.id).one().used_count == 3

    def test_single_use_invite_is_exhausted(self, client, db, make_invite):
        invite = make_invite(max_uses=1)
        assert _signup(client, invite.token, email="first@example.com").status_code == 201

        response = _signup(client, invite.token, email="second@example.com")

        assert response.status_code == 403
        assert response.json()["error"] == "This invite link has reached its maximum usage limit"
        assert _identity(db, "second@example.com") is None

    def test_deactivated_invite(self, client, make_invite):
        response = _signup(client, make_invite(is_active=False).token)
        assert response.status_code == 403
        assert response.json()["error"] == "This invite link has been deactivated"

    def test_expired_invite(self, client, make_invite, past):
        response = _signup(client, make_invite(expires_at=past).token)
        assert response.status_code == 403
        assert response.json()["error"] == "This invite link has expired"

    def test_unknown_invite(self, client):
        response = _signup(client, "not-a-token")
        assert response.status_code == 404
        assert response.json()["error"] == "Invalid invite token"

    def test_invite_is_required(self, client):
        response = client.post("/api/auth/signup", json={
            "email": "a@example.com", "password": "correct-horse", "role": "MEMBER",
        })
        assert response.status_code == 403
        assert response.json()["error"] == "An invite is required to sign up"

    def test_required_fields(self, client, make_invite):
        response = client.post("/api/auth/signup", json={"email": "a@example.com", "inviteToken": make_invite().token})
        assert response.status_code == 400
        assert response.json()["error"] == "Email, password, and role are required"

    def test_admin_role_cannot_be_requested(self, client, make_invite):
        response = _signup(client, make_invite().token, role="ADMIN")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid role"

    def test_short_password(self, client, make_invite):
        response = _signup(client, make_invite().token, password="short")
        assert response.status_code == 400

    def test_duplicate_email(self, client, make_invite):
        invite = make_invite()
        assert _signup(client, invite.token).status_code == 201

        response = _signup(client, invite.token, email="NEW@example.com")

        assert response.status_code == 400
        assert response.json()["error"] == "User already registered"

    def test_invalid_email_is_bad_request(self, client, db, make_invite):
        response = _signup(client, make_invite().token, email="not-an-email")

        assert response.status_code == 400
        assert response.json()["success"] is False
        db.expire_all()
        assert db.query(User).count() == 0

    def test_failed_user_insert_removes_identity(self, client, db, make_invite):
        invite = make_invite()

        with patch("kindred.services.signup.recompute_invite_usage", side_effect=SQLAlchemyError("boom")):
            response = _signup(client, invite.token)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to create user account"}
        assert _identity(db, "new@example.com") is None
        assert db.query(User).filter(User.email == "new@example.com").first() is None
        assert db.query(InviteLink).filter(InviteLink.id == invite.id).one().used_count == 0

    def test_email_can_be_reused_after_failed_signup(self, client, make_invite):
        invite = make_invite()
        with patch("kindred.services.signup.recompute_invite_usage", side_effect=SQLAlchemyError("boom")):
            _signup(client, invite.token)

        assert _signup(client, invite.token).status_code == 201

    def test_member_profile_failure_does_not_fail_signup(self, client, db, make_invite):
        invite = make_invite()

        with patch("kindred.services.signup.Member", side_effect=SQLAlchemyError("boom")):
            response = _signup(client, invite.token, firstName="Ada", lastName="Brewer")

        assert response.status_code == 201
        db.expire_all()
        assert db.query(Member).count() == 0

    def test_email_failure_does_not_fail_signup(self, client, make_invite, no_email):
        no_email.return_value = False
        assert _signup(client, make_invite().token).status_code == 201

    def test_signup_is_rate_limited(self, client, make_invite):
        invite = make_invite()
        headers = {"X-Real-IP": "192.0.2.50"}
        for n in range(10):
            client.post("/api/auth/signup", json={"email": f"r{n}@example.com"}, headers=headers)

        response = _signup(client, invite.token)
        blocked = client.post("/api/auth/signup", json={}, headers=headers)

        assert response.status_code == 201
        assert blocked.status_code == 429


class TestAuthCallback:
    """GET /api/auth/callback"""

    def test_confirms_existing_user(self, client, db, make_invite):
        invite = make_invite()
        _signup(client, invite.token)
        code = _identity(db, "new@example.com").confirmation_code

        response = client.get("/api/auth/callback", params={"code": code}, follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard?welcome=true"
        assert SESSION_COOKIE_NAME in response.cookies
        db.expire_all()
        assert db.query(User).filter(User.email == "new@example.com").one().email_verified_at is not None
        assert db.query(InviteLink).filter(InviteLink.id == invite.id).one().used_count == 1

    def test_code_is_single_use(self, client, db, make_invite):
        _signup(client, make_invite().token)
        code = _identity(db, "new@example.com").confirmation_code
        client.get("/api/auth/callback", params={"code": code}, follow_redirects=False)

        response = client.get("/api/auth/callback", params={"code": code}, follow_redirects=False)

        assert response.headers["location"] == "/login?error=auth_callback_error"

    def test_missing_code(self, client):
        response = client.get("/api/auth/callback", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/login?error=auth_callback_error"

    def test_creates_user_for_new_identity(self, client, db, make_invite):
        invite = make_invite(target_role=UserRole.SUPPLIER)
        identity = identity_provider.create_identity(
            "oauth@example.com", "correct-horse",
            metadata={"first_name": "Olu", "last_name": "Maker", "invite_token": invite.token},
        )

        response = client.get(
            "/api/auth/callback",
            params={"code": identity.confirmation_code, "next": "/onboarding"},
            follow_redirects=False,
        )

        assert response.headers["location"] == "/onboarding"
        db.expire_all()
        user = db.query(User).filter(User.id == identity.id).one()
        assert user.role == UserRole.SUPPLIER
        assert user.member.first_name == "Olu"
        assert db.query(InviteLink).filter(InviteLink.id == invite.id).one().used_count == 1

    def test_invite_query_param_and_requested_role(self, client, db, make_invite):
        invite = make_invite()
        identity = identity_provider.create_identity("oauth@example.com", "correct-horse")

        client.get(
            "/api/auth/callback",
            params={"code": identity.confirmation_code, "invite": invite.token, "role": "brand"},
            follow_redirects=False,
        )

        db.expire_all()
        assert db.query(User).filter(User.id == identity.id).one().role == UserRole.BRAND

    def test_new_identity_without_invite_is_rejected(self, client, db):
        identity = identity_provider.create_identity("oauth@example.com", "correct-horse")

        response = client.get("/api/auth/callback", params={"code": identity.confirmation_code}, follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"].startswith("/signup?error=")
        assert SESSION_COOKIE_NAME not in response.cookies
        db.expire_all()
        assert db.query(User).count() == 0

    def test_new_identity_with_exhausted_invite_is_rejected(self, client, db, make_invite):
        invite = make_invite(max_uses=1, used_count=1)
        identity = identity_provider.create_identity(
            "oauth@example.com", "correct-horse", metadata={"invite_token": invite.token},
        )

        response = client.get("/api/auth/callback", params={"code": identity.confirmation_code}, follow_redirects=False)

        assert "maximum%20usage%20limit" in response.headers["location"]

    def test_offsite_next_is_ignored(self, client, make_invite, db):
        _signup(client, make_invite().token)
        code = _identity(db, "new@example.com").confirmation_code

        response = client.get(
            "/api/auth/callback", params={"code": code, "next": "//evil.example"}, follow_redirects=False,
        )

        assert response.headers["location"] == "/dashboard?welcome=true"
