"""Shared fixtures: temp database and upload dirs, users, logged-in clients, images."""

from __future__ import annotations

import io
import os
import tempfile
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Settings are read at import time, so point them at scratch locations first
_TMP = Path(tempfile.mkdtemp(prefix="espresso-test-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'test.db'}"
os.environ["SESSION_SECRET"] = "test-secret-key-that-is-at-least-32-characters-long"
os.environ["UPLOADS_DIR"] = str(_TMP / "uploads")
os.environ["PUBLIC_UPLOADS_DIR"] = str(_TMP / "public")
os.environ["DEV_MODE"] = "true"
os.environ["OTEL_ENABLED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from espresso_gallery.auth.password import hash_password  # noqa: E402
from espresso_gallery.config import settings  # noqa: E402
from espresso_gallery.db.models import (  # noqa: E402
    Base,
    CreatorProfile,
    FollowerProfile,
    User,
)
from espresso_gallery.main import app  # noqa: E402
from espresso_gallery.media import (  # noqa: E402
    ArtifactStore,
    build_artifact_store,
    get_artifact_store,
)
from espresso_gallery.rate_limiter import login_limiter, register_limiter  # noqa: E402

PASSWORD = "correct-horse-battery"


@pytest.fixture
def sync_engine() -> Iterator:
    """Fresh schema per test on the same file the app uses."""
    engine = create_engine(settings.database_url.replace("+aiosqlite", ""))
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(autouse=True)
def _reset_limiters() -> Iterator[None]:
    login_limiter.reset_all()
    register_limiter.reset_all()
    yield
    login_limiter.reset_all()
    register_limiter.reset_all()


@pytest.fixture
def artifacts(tmp_path: Path) -> Iterator[ArtifactStore]:
    """Artifact store over per-test directories, wired into the app."""
    store = build_artifact_store(tmp_path / "uploads", tmp_path / "public", "/uploads")
    app.dependency_overrides[get_artifact_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_artifact_store, None)


@pytest.fixture
def client(sync_engine, artifacts: ArtifactStore) -> TestClient:
    # No context manager: the lifespan (migrations, seeding) stays out of unit tests
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def make_user(sync_engine) -> Callable[..., int]:
    """Insert a user (plus profile) directly. Returns the user id."""

    def _make(
        email: str,
        role: str = "follower",
        *,
        password: str = PASSWORD,
        password_hash: str | None = None,
        username: str | None = None,
        approval_status: str = "approved",
        monthly_price: float | None = 9.99,
        per_post_price: float | None = 2.5,
        is_active: bool = True,
    ) -> int:
        with Session(sync_engine) as session:
            user = User(
                email=email,
                password_hash=password_hash or hash_password(password),
                role=role,
                username=username,
                display_name=email.split("@")[0],
                is_active=is_active,
            )
            session.add(user)
            session.flush()
            if role == "creator":
                session.add(
                    CreatorProfile(
                        user_id=user.id,
                        alias_name=user.display_name,
                        approval_status=approval_status,
                        monthly_subscription_price=monthly_price,
                        per_post_price=per_post_price,
                    )
                )
            elif role == "follower":
                session.add(FollowerProfile(user_id=user.id, preferences={}))
            session.commit()
            return user.id

    return _make


@pytest.fixture
def login(sync_engine, artifacts: ArtifactStore) -> Callable[..., TestClient]:
    """Return a new client logged in as ``email``."""

    def _login(email: str, password: str = PASSWORD) -> TestClient:
        c = TestClient(app, raise_server_exceptions=False)
        response = c.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return c

    return _login


@pytest.fixture
def expire_sessions(sync_engine) -> Callable[[], None]:
    def _expire() -> None:
        from sqlalchemy import update

        from espresso_gallery.db.models import UserSession

        with Session(sync_engine) as session:
            session.execute(
                update(UserSession).values(expires_at=datetime.now(UTC) - timedelta(minutes=1))
            )
            session.commit()

    return _expire


def _make_image(
    width: int = 500,
    height: int = 500,
    fmt: str = "PNG",
    mode: str = "RGB",
    color: tuple[int, ...] = (200, 120, 40),
) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Encode a solid-colour image: make_image(width, height, fmt, mode, color)."""
    return _make_image
