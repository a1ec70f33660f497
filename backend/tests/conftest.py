import io
import os
import tempfile
import uuid
from pathlib import Path

import pytest

# Point the app at throwaway locations before anything imports settings.
_TMP = Path(tempfile.mkdtemp(prefix="storefront-tests-"))
os.environ["ENV"] = "dev"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["MEDIA_ROOT"] = str(_TMP / "media")
os.environ["STATIC_ROOT"] = str(_TMP / "staticfiles")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from PIL import Image  # noqa: E402
from sqlmodel import Session  # noqa: E402

from storefront.database import create_db_and_tables, engine  # noqa: E402
from storefront import services  # noqa: E402

PASSWORD = "secret123"

create_db_and_tables()


@pytest.fixture(autouse=True)
def reset_login_throttle():
    """Login attempts are counted per client host, which every TestClient shares."""
    from storefront.accounts import login_throttle
    login_throttle.reset()
    yield
    login_throttle.reset()


@pytest.fixture
def db_session():
    with Session(engine) as session:
        yield session


def _make_user(staff=False):
    with Session(engine) as session:
        name = f"{'staff' if staff else 'user'}-{uuid.uuid4().hex[:8]}"
        return services.AuthService(session).register(name, PASSWORD, is_staff=staff)


@pytest.fixture
def user():
    return _make_user()


@pytest.fixture
def other_user():
    return _make_user()


@pytest.fixture
def staff_user():
    return _make_user(staff=True)


def bearer(client, user):
    r = client.post('/auth/login', json={'username': user.username, 'password': PASSWORD})
    assert r.status_code == 200, r.text
    return {'Authorization': f"Bearer {r.json()['access_token']}"}


def make_png(size=(32, 16)) -> bytes:
    img = Image.new("RGB", size, "white")
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    return bio.getvalue()


def unique_name(prefix="Product"):
    return f"{prefix} {uuid.uuid4().hex[:8]}"
