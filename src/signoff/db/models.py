from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from signoff.db.base import Base, TimestampMixin, utcnow


def new_id() -> str:
    return str(uuid.uuid4())


class Profile(TimestampMixin, Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, index=True)


class Appraisal(TimestampMixin, Base):
    __tablename__ = "appraisals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    department: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    hod_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hod_signature_url: Mapped[str] = mapped_column(String(800), nullable=False)
    scores_json: Mapped[dict[str, int]] = mapped_column(JSON, default=dict, nullable=False)
    comments: Mapped[str] = mapped_column(Text, default="", nullable=False)
    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    overall_rating: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    question_set_version: Mapped[str] = mapped_column(String(20), nullable=False)
    # Profile ids are owned by the identity provider and are not foreign keys here.
    created_by: Mapped[str] = mapped_column(String(36), nullable=False, index=True)


class Signature(Base):
    __tablename__ = "signatures"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    appraisal_id: Mapped[str] = mapped_column(ForeignKey("appraisals.id"), nullable=False, index=True)
    signer_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    signer_role: Mapped[str] = mapped_column(String(32), nullable=False)
    step: Mapped[str] = mapped_column(String(40), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    signature_url: Mapped[str] = mapped_column(String(800), nullable=False)
    signed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
