from __future__ import annotations

import base64
import os
import tempfile

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="signoff-data-"))
os.environ.setdefault("ARTIFACT_DIR", tempfile.mkdtemp(prefix="signoff-artifacts-"))

import pytest  # noqa: E402

from signoff.core.catalog import REQUIRED_QUESTIONS  # noqa: E402
from signoff.core.session import Actor, ActorSession  # noqa: E402
from signoff.core.workflow import Role  # noqa: E402
from signoff.db.base import Base  # noqa: E402
from signoff.db.repositories import Repository  # noqa: E402
from signoff.db.seed import DEMO_PROFILES, seed_demo_profiles  # noqa: E402
from signoff.db.session import SessionLocal, engine  # noqa: E402

# 1x1 transparent PNG.
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

PROFILE_IDS: dict[Role, str] = {Role(item["role"]): item["id"] for item in DEMO_PROFILES}


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        seed_demo_profiles(session)
    yield


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def signature_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.fixture
def profile_ids() -> dict[Role, str]:
    return dict(PROFILE_IDS)


@pytest.fixture
def repo():
    with SessionLocal() as db:
        yield Repository(db)


@pytest.fixture
def actor_for():
    def _actor(role: Role) -> Actor:
        return Actor(id=PROFILE_IDS[role], role=role, display_name=f"Demo {role.value}")

    return _actor


@pytest.fixture
def session_for(actor_for):
    def _session(role: Role) -> ActorSession:
        return ActorSession(actor=actor_for(role))

    return _session


@pytest.fixture
def full_scores():
    def _scores(value: int = 7) -> dict[str, int]:
        return {question: value for question in REQUIRED_QUESTIONS}

    return _scores


@pytest.fixture
def draft_payload(full_scores):
    def _payload(**overrides) -> dict:
        payload = {
            "employee_name": "Ada Obi",
            "department": "LAB",
            "hod_name": "Dr. Eze",
            "scores": full_scores(),
            "comments": "Reliable and careful.",
        }
        payload.update(overrides)
        return payload

    return _payload
