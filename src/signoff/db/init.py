from __future__ import annotations

from pathlib import Path

from signoff.config import get_settings
from signoff.db import models  # noqa: F401
from signoff.db.base import Base
from signoff.db.seed import seed_demo_profiles
from signoff.db.session import SessionLocal, engine


def ensure_data_directories() -> None:
    settings = get_settings()
    paths: list[Path] = [settings.data_dir, settings.artifact_dir]
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database(*, seed: bool | None = None) -> dict[str, int]:
    settings = get_settings()
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)

    inserted = 0
    if settings.seed_demo_profiles if seed is None else seed:
        with SessionLocal() as session:
            inserted = seed_demo_profiles(session)
    return {"seeded_profiles": inserted}
