"""Explicit actor session threaded through every workflow call.

A session is created empty, filled on sign-in and cleared on sign-out. Nothing in
the core reads identity from module state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from signoff.core.catalog import role_name
from signoff.core.events import SESSION_TOPIC, EventBus, get_event_bus
from signoff.core.workflow import Role
from signoff.errors import AuthorizationError
from signoff.types import ActorIdentity

logger = logging.getLogger(__name__)


class ProfileLookup(Protocol):
    def fetch_profile(self, profile_id: str) -> Any | None: ...


@dataclass(frozen=True, slots=True)
class Actor:
    id: str
    role: Role
    display_name: str = ""

    @property
    def role_name(self) -> str:
        return role_name(self.role)


@dataclass(slots=True)
class ActorSession:
    actor: Actor | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.actor is not None

    def current_actor(self) -> ActorIdentity | None:
        if self.actor is None:
            return None
        return ActorIdentity(id=self.actor.id, role=self.actor.role.value)

    def require_actor(self) -> Actor:
        if self.actor is None:
            raise AuthorizationError("User not authenticated")
        return self.actor


def actor_from_profile(profile: Any) -> Actor:
    try:
        role = Role(profile.role)
    except ValueError as exc:
        raise AuthorizationError(
            f"profile {profile.id} has unknown role '{profile.role}'",
            details={"profile_id": profile.id},
        ) from exc
    return Actor(id=profile.id, role=role, display_name=profile.full_name)


class IdentityProvider:
    """Resolves profiles into actors and announces session changes."""

    def __init__(self, profiles: ProfileLookup, *, event_bus: EventBus | None = None):
        self.profiles = profiles
        self.event_bus = event_bus or get_event_bus()

    def resolve(self, profile_id: str | None) -> ActorSession:
        if not profile_id:
            return ActorSession()
        profile = self.profiles.fetch_profile(profile_id)
        if profile is None:
            raise AuthorizationError(f"no profile found for actor {profile_id}")
        return ActorSession(actor=actor_from_profile(profile))

    async def sign_in(self, session: ActorSession, profile_id: str) -> ActorSession:
        profile = await asyncio.to_thread(self.profiles.fetch_profile, profile_id)
        if profile is None:
            logger.warning("Sign-in succeeded but profile fetch failed profile_id=%s; signing out", profile_id)
            await self.sign_out(session)
            raise AuthorizationError(f"no profile found for actor {profile_id}")

        session.actor = actor_from_profile(profile)
        logger.info("Signed in actor_id=%s role=%s", session.actor.id, session.actor.role.value)
        await self.event_bus.publish(
            SESSION_TOPIC,
            {"event": "SIGNED_IN", "actor_id": session.actor.id, "role": session.actor.role.value},
        )
        return session

    async def sign_out(self, session: ActorSession) -> ActorSession:
        previous = session.actor
        session.actor = None
        session.metadata.clear()
        await self.event_bus.publish(
            SESSION_TOPIC,
            {"event": "SIGNED_OUT", "actor_id": previous.id if previous else None},
        )
        return session
