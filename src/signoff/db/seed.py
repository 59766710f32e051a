from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from signoff.core.catalog import ROLE_NAMES
from signoff.core.workflow import Role
from signoff.db.models import Profile

# Fixed ids so demo actors can be addressed from the CLI and HTTP header.
DEMO_PROFILES: list[dict[str, str]] = [
    {"id": "00000000-0000-4000-8000-000000000001", "full_name": "Demo Appraiser", "role": Role.APPRAISER.value},
    {"id": "00000000-0000-4000-8000-000000000002", "full_name": "Demo HR Officer", "role": Role.HR.value},
    {"id": "00000000-0000-4000-8000-000000000003", "full_name": "Demo Docs Officer", "role": Role.DOCS.value},
    {"id": "00000000-0000-4000-8000-000000000004", "full_name": "Demo Managing Director", "role": Role.MD.value},
    {"id": "00000000-0000-4000-8000-000000000005", "full_name": "Demo Chairman", "role": Role.CHAIRMAN.value},
]


def seed_demo_profiles(session: Session) -> int:
    existing = set(session.scalars(select(Profile.id)).all())
    inserted = 0
    for item in DEMO_PROFILES:
        if item["id"] in existing:
            continue
        session.add(Profile(id=item["id"], full_name=item["full_name"], role=item["role"]))
        inserted += 1

    session.commit()
    return inserted


def describe_demo_profiles() -> list[dict[str, str]]:
    return [{**item, "role_name": ROLE_NAMES[Role(item["role"])]} for item in DEMO_PROFILES]
