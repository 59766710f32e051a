from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from signoff.config import get_settings
from signoff.core.artifacts import LocalArtifactStore
from signoff.core.service import AppraisalWorkflow
from signoff.core.session import ActorSession, IdentityProvider
from signoff.db.repositories import Repository
from signoff.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_repository(db: Session = Depends(get_db)) -> Repository:
    return Repository(db)


def get_workflow(repo: Repository = Depends(get_repository)) -> AppraisalWorkflow:
    return AppraisalWorkflow(repo, LocalArtifactStore())


def get_actor_session(request: Request, repo: Repository = Depends(get_repository)) -> ActorSession:
    actor_id = request.headers.get(get_settings().actor_header)
    return IdentityProvider(repo).resolve(actor_id)
