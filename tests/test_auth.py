"""Tests for registration, login, sessions and role checks."""

from __future__ import annotations

import asyncio
import hashlib
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from espresso_gallery.auth.dependencies import AuthContext
from espresso_gallery.auth.password import (
    hash_password,
    needs_rehash,
    verify_password,
    verify_password_async,
)
from espresso_gallery.auth.sessions import (
    SessionTokenError,
    read_session_token,
    sign_session_token,
)
from espresso_gallery.config import settings
from espresso_gallery.db.models import CreatorProfile, FollowerProfile, User, UserSession
from espresso_gallery.types import Role


def _legacy_hash(password: str, salt: str = "a1b2c3d4e5f6a7b8") -> str:
    digest = hashlib.scrypt(password.encode(), salt=salt.encode(), n=16384, r=8, p=1, dklen=64)
    return f"{digest.hex()}.{salt}"


class TestPasswords:
    def test_bcrypt_round_trip(self) -> None:
        stored = hash_password("s3cret-pass")
        assert stored.startswith("$2b$")
        assert verify_password("s3cret-pass", stored)
        assert not verify_password("wrong", stored)
        assert not needs_rehash(stored)

    def test_legacy_scrypt(self) -> None:
        stored = _legacy_hash("old-password")
        assert verify_password("old-password", stored)
        assert not verify_password("other", stored)
        assert needs_rehash(stored)

    @pytest.mark.parametrize("stored", ["", "nodot", "zz.salt", ".salt"])
    def test_malformed_hashes(self, stored: str) -> None:
        assert not verify_password("anything", stored)

    async def test_verify_keeps_event_loop_running(self) -> None:
        stored = hash_password("s3cret-pass")
        ticks = 0
        done = asyncio.Event()

        async def ticker() -> None:
            nonlocal ticks
            while not done.is_set():
                ticks += 1
                await asyncio.sleep(0.001)

        task = asyncio.create_task(ticker())
        await asyncio.sleep(0)
        assert await verify_password_async("s3cret-pass", stored)
        done.set()
        await task

        # bcrypt takes well over 10ms; a blocked loop would tick once
        assert ticks > 3


class TestSessionToken:
    def test_round_trip(self) -> None:
        assert read_session_token(sign_session_token("abc")) == "abc"

    def test_tampered(self) -> None:
        signed = sign_session_token("abc")
        with pytest.raises(SessionTokenError):
            read_session_token(signed[:-2] + ("AA" if signed[-2:] != "AA" else "BB"))

    def test_garbage(self) -> None:
        with pytest.raises(SessionTokenError):
            read_session_token("not-a-jwt")


class TestAuthContext:
    def test_owner_override(self) -> None:
        creator = AuthContext(7, Role.CREATOR, "c@example.com", None, "tok")
        assert creator.can_act_for(7)
        assert not creator.can_act_for(8)
        assert creator.can_act_for(8, Role.CREATOR)

    def test_admin(self) -> None:
        admin = AuthContext(1, Role.ADMIN, "a@example.com", "admin", "tok")
        assert admin.is_admin
        assert admin.can_act_for(99)
        assert admin.has_role(Role.ADMIN, Role.CREATOR)


class TestRegister:
    def test_follower(self, client: TestClient, sync_engine) -> None:
        response = client.post(
            "/api/auth/register",
            json={
                "email": "fan@example.com",
                "password": "pw-123456",
                "role": "follower",
                "username": "fan",
            },
        )
        assert response.status_code == 200, response.text
        body = response.json()
        assert body["message"] == "Registered and logged in successfully"
        assert body["redirectTo"] == "/gallery"
        assert body["user"]["role"] == "follower"
        assert settings.session_cookie_name in response.cookies

        with Session(sync_engine) as session:
            user = session.scalars(select(User).where(User.email == "fan@example.com")).one()
            assert session.scalars(
                select(FollowerProfile).where(FollowerProfile.user_id == user.id)
            ).one_or_none()

        session_info = client.get("/api/auth/session").json()
        assert session_info["authenticated"] is True
        assert session_info["user"]["username"] == "fan"

    def test_creator_profile_pending(self, client: TestClient, sync_engine) -> None:
        response = client.post(
            "/api/auth/register",
            json={
                "email": "maker@example.com",
                "password": "pw-123456",
                "role": "creator",
                "displayName": "Maker",
            },
        )
        assert response.status_code == 200
        assert response.json()["redirectTo"] == "/creator/dashboard"

        with Session(sync_engine) as session:
            profile = session.scalars(select(CreatorProfile)).one()
            assert profile.approval_status == "pending"
            assert profile.alias_name == "Maker"

    @pytest.mark.parametrize("role", ["admin", "superuser", None])
    def test_rejects_role(self, client: TestClient, role: str | None) -> None:
        response = client.post(
            "/api/auth/register",
            json={"email": "x@example.com", "password": "pw-123456", "role": role},
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_ROLE"

    def test_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/auth/register", json={"role": "follower"})
        assert response.status_code == 400
        assert response.json()["message"] == "Email and password are required"

    def test_duplicate_email(self, client: TestClient, make_user) -> None:
        make_user("taken@example.com")
        response = client.post(
            "/api/auth/register",
            json={"email": "Taken@example.com", "password": "pw-123456", "role": "follower"},
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Email already registered", "code": "EMAIL_TAKEN"}

    def test_duplicate_username(self, client: TestClient, make_user) -> None:
        make_user("first@example.com", username="dup")
        response = client.post(
            "/api/auth/register",
            json={
                "email": "second@example.com",
                "password": "pw-123456",
                "role": "follower",
                "username": "dup",
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "USERNAME_TAKEN"

    def test_login_verifies_off_the_event_loop(self, client: TestClient, make_user) -> None:
        make_user("fan@example.com")
        with patch(
            "espresso_gallery.auth.routes.verify_password_async",
            wraps=verify_password_async,
        ) as verify:
            response = client.post(
                "/api/auth/login",
                json={"email": "fan@example.com", "password": "correct-horse-battery"},
            )
        assert response.status_code == 200
        verify.assert_awaited_once()

    def test_rate_limited(self, client: TestClient) -> None:
        codes = []
        for i in range(6):
            response = client.post(
                "/api/auth/register",
                json={"email": f"u{i}@example.com", "password": "pw-123456", "role": "nope"},
            )
            codes.append(response.status_code)
        assert codes[:5] == [400] * 5
        assert codes[5] == 429


class TestLogin:
    def test_success_redirects_by_role(self, client: TestClient, make_user) -> None:
        make_user("boss@example.com", "admin")
        response = client.post(
            "/api/auth/login",
            json={"email": "boss@example.com", "password": "correct-horse-battery"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Logged in successfully"
        assert body["redirectTo"] == "/admin"
        assert body["user"]["role"] == "admin"

    def test_wrong_password(self, client: TestClient, make_user) -> None:
        make_user("fan@example.com")
        response = client.post(
            "/api/auth/login", json={"email": "fan@example.com", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json() == {
            "message": "Invalid email or password",
            "code": "INVALID_CREDENTIALS",
        }

    def test_unknown_email(self, client: TestClient) -> None:
        response = client.post(
            "/api/auth/login", json={"email": "ghost@example.com", "password": "whatever"}
        )
        assert response.status_code == 401

    def test_missing_fields(self, client: TestClient) -> None:
        assert client.post("/api/auth/login", json={"email": "a@example.com"}).status_code == 400

    def test_inactive_account(self, client: TestClient, make_user) -> None:
        make_user("off@example.com", is_active=False)
        response = client.post(
            "/api/auth/login",
            json={"email": "off@example.com", "password": "correct-horse-battery"},
        )
        assert response.status_code == 401
        assert response.json()["code"] == "ACCOUNT_DISABLED"

    def test_legacy_hash_upgraded(self, client: TestClient, make_user, sync_engine) -> None:
        user_id = make_user("old@example.com", password_hash=_legacy_hash("old-password"))
        response = client.post(
            "/api/auth/login", json={"email": "old@example.com", "password": "old-password"}
        )
        assert response.status_code == 200

        with Session(sync_engine) as session:
            stored = session.get(User, user_id).password_hash
        assert stored.startswith("$2b$")
        assert verify_password("old-password", stored)

    def test_rate_limited(self, client: TestClient) -> None:
        statuses = [
            client.post(
                "/api/auth/login", json={"email": "x@example.com", "password": "bad"}
            ).status_code
            for _ in range(11)
        ]
        assert statuses[:10] == [401] * 10
        assert statuses[10] == 429


class TestSessions:
    def test_logout(self, make_user, login, sync_engine) -> None:
        make_user("fan@example.com")
        client = login("fan@example.com")

        response = client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}

        with Session(sync_engine) as session:
            assert session.scalars(select(UserSession)).all() == []
        assert client.get("/api/auth/session").json() == {"authenticated": False, "user": None}

    def test_anonymous_session(self, client: TestClient) -> None:
        assert client.get("/api/auth/session").json() == {"authenticated": False, "user": None}

    def test_expired_session(self, make_user, login, expire_sessions, sync_engine) -> None:
        make_user("fan@example.com")
        client = login("fan@example.com")
        expire_sessions()

        response = client.get("/api/subscriptions/my")
        assert response.status_code == 401
        assert response.json()["code"] == "SESSION_EXPIRED"

        with Session(sync_engine) as session:
            assert session.scalars(select(UserSession)).all() == []

    def test_sliding_expiry(self, make_user, login, sync_engine) -> None:
        make_user("fan@example.com")
        client = login("fan@example.com")
        with Session(sync_engine) as session:
            before = session.scalars(select(UserSession)).one().expires_at

        assert client.get("/api/subscriptions/my").status_code == 200

        with Session(sync_engine) as session:
            after = session.scalars(select(UserSession)).one().expires_at
        assert after >= before

    def test_forged_cookie(self, client: TestClient, sync_engine) -> None:
        client.cookies.set(settings.session_cookie_name, sign_session_token("no-such-session"))
        response = client.get("/api/subscriptions/my")
        assert response.status_code == 401
        assert response.json()["code"] == "SESSION_EXPIRED"

    def test_bad_signature(self, client: TestClient) -> None:
        client.cookies.set(settings.session_cookie_name, "garbage")
        response = client.get("/api/subscriptions/my")
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized", "code": "AUTH_REQUIRED"}

    @pytest.mark.parametrize(
        ("method", "path", "body"),
        [
            ("GET", "/api/followers", None),
            ("PATCH", "/api/creators/1/approval", {"approved": True}),
            ("POST", "/api/content", None),
        ],
    )
    def test_forbidden_request_does_not_extend_session(
        self, make_user, login, sync_engine, method: str, path: str, body
    ) -> None:
        make_user("fan@example.com")
        client = login("fan@example.com")
        with Session(sync_engine) as session:
            before = session.scalars(select(UserSession)).one().expires_at

        response = client.request(method, path, json=body)
        assert response.status_code == 403

        with Session(sync_engine) as session:
            after = session.scalars(select(UserSession)).one().expires_at
        assert after == before

    def test_followers_listing_for_admin_slides_session(
        self, make_user, login, sync_engine
    ) -> None:
        make_user("boss@example.com", "admin")
        make_user("fan@example.com")
        client = login("boss@example.com")
        with Session(sync_engine) as session:
            before = session.scalars(select(UserSession)).one().expires_at

        response = client.get("/api/followers")
        assert response.status_code == 200
        assert [f["user"]["email"] for f in response.json()] == ["fan@example.com"]

        with Session(sync_engine) as session:
            after = session.scalars(select(UserSession)).one().expires_at
        assert after > before
