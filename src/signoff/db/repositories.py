from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from signoff.core.catalog import REQUIRED_QUESTIONS, SCORE_MAX, SCORE_MIN, Department, role_name
from signoff.core.scoring import compute_scores
from signoff.core.session import Actor
from signoff.core.workflow import (
    SUBMITTED_STATUS,
    AppraisalStatus,
    Role,
    TransitionPolicy,
    advance,
    is_terminal,
)
from signoff.db.models import Appraisal, Profile, Signature
from signoff.errors import (
    AuthorizationError,
    ConstraintError,
    NotFoundError,
    TransientError,
)
from signoff.types import NewAppraisal, NewSignature

logger = logging.getLogger(__name__)


def normalize_search(value: str | None) -> str:
    return " ".join((value or "").strip().lower().split())


class Repository:
    """SQL-backed appraisal store.

    Writes are checked against the acting role here as well as in the workflow
    service; this is the authoritative access-control layer.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def _write(self) -> Iterator[None]:
        try:
            yield
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConstraintError(f"record rejected by the store: {exc.orig}") from exc
        except OperationalError as exc:
            self.session.rollback()
            logger.error("Store write failed: %s", exc)
            raise TransientError(f"store unavailable: {exc.orig}") from exc
        except Exception:
            self.session.rollback()
            raise

    @contextmanager
    def _read(self) -> Iterator[None]:
        try:
            yield
        except OperationalError as exc:
            logger.error("Store read failed: %s", exc)
            raise TransientError(f"store unavailable: {exc.orig}") from exc

    # Profiles

    def create_profile(self, full_name: str, role: Role | str, profile_id: str | None = None) -> Profile:
        profile = Profile(full_name=full_name, role=Role(role).value)
        if profile_id:
            profile.id = profile_id
        with self._write():
            self.session.add(profile)
        return profile

    def list_profiles(self) -> list[Profile]:
        with self._read():
            return list(self.session.scalars(select(Profile).order_by(Profile.role, Profile.full_name)).all())

    def fetch_profile(self, profile_id: str) -> Profile | None:
        with self._read():
            return self.session.get(Profile, profile_id)

    def fetch_profiles(self, profile_ids: Iterable[str]) -> list[Profile]:
        ids = sorted({item for item in profile_ids if item})
        if not ids:
            return []
        with self._read():
            return list(self.session.scalars(select(Profile).where(Profile.id.in_(ids))).all())

    # Appraisals

    def fetch_appraisals(
        self,
        *,
        department: str | None = None,
        search: str | None = None,
        created_by: str | None = None,
        limit: int | None = None,
    ) -> list[Appraisal]:
        statement = select(Appraisal).order_by(Appraisal.created_at.desc(), Appraisal.id.desc())
        if department:
            statement = statement.where(Appraisal.department == Department(department).value)
        needle = normalize_search(search)
        if needle:
            statement = statement.where(func.lower(Appraisal.employee_name).contains(needle))
        if created_by:
            statement = statement.where(Appraisal.created_by == created_by)
        if limit:
            statement = statement.limit(limit)
        with self._read():
            return list(self.session.scalars(statement).all())

    def fetch_appraisal(self, appraisal_id: str) -> Appraisal | None:
        with self._read():
            return self.session.get(Appraisal, appraisal_id)

    def insert_appraisal(self, actor: Actor, record: NewAppraisal) -> Appraisal:
        if actor.role is not Role.APPRAISER or record.created_by != actor.id:
            raise AuthorizationError(
                "Store security policy prevented this submission. Appraisals can only be created by "
                f"the '{Role.APPRAISER.value}' role for themselves; acting role is '{actor.role.value}'.",
                details={"required_role": Role.APPRAISER.value, "actor_role": actor.role.value},
            )
        self._check_appraisal_record(record)

        appraisal = Appraisal(
            employee_name=record.employee_name,
            department=record.department,
            hod_name=record.hod_name,
            hod_signature_url=record.hod_signature_url,
            scores_json=dict(record.scores),
            comments=record.comments,
            overall_score=record.overall_score,
            overall_rating=record.overall_rating,
            status=record.status,
            question_set_version=record.question_set_version,
            created_by=record.created_by,
        )
        with self._write():
            self.session.add(appraisal)
        logger.info("Inserted appraisal id=%s department=%s", appraisal.id, appraisal.department)
        return appraisal

    def update_appraisal_status(
        self,
        actor: Actor,
        appraisal_id: str,
        new_status: AppraisalStatus,
        *,
        expected_status: AppraisalStatus,
    ) -> Appraisal:
        appraisal = self.fetch_appraisal(appraisal_id)
        if appraisal is None:
            raise NotFoundError(f"appraisal {appraisal_id} not found")

        current = AppraisalStatus(appraisal.status)
        policy = TransitionPolicy(status=current)
        if current != AppraisalStatus(expected_status) or not policy.allows(actor.role):
            raise AuthorizationError(
                "Store security policy prevented this update: "
                f"{policy.denial_reason(actor.role)}; the update expected status "
                f"{AppraisalStatus(expected_status).value} and targets {AppraisalStatus(new_status).value}.",
                details={
                    "appraisal_id": appraisal_id,
                    "current_status": current.value,
                    "expected_status": AppraisalStatus(expected_status).value,
                    "actor_role": actor.role.value,
                },
            )
        if AppraisalStatus(new_status) != advance(current):
            raise ConstraintError(
                f"status may only advance from {current.value} to {advance(current).value}",
                details={"appraisal_id": appraisal_id, "requested": AppraisalStatus(new_status).value},
            )

        return self._swap_status(appraisal, current, AppraisalStatus(new_status))

    def reconcile_appraisal_status(
        self,
        actor: Actor,
        appraisal_id: str,
        new_status: AppraisalStatus,
        *,
        expected_status: AppraisalStatus,
    ) -> Appraisal:
        """Operator repair path: finish the advance owed by a signature already recorded for the current step."""
        if actor.role is not Role.HR:
            raise AuthorizationError(
                f"only {role_name(Role.HR)} may reconcile appraisals; acting role is '{actor.role.value}'",
                details={"required_role": Role.HR.value, "actor_role": actor.role.value},
            )
        appraisal = self.fetch_appraisal(appraisal_id)
        if appraisal is None:
            raise NotFoundError(f"appraisal {appraisal_id} not found")

        current = AppraisalStatus(appraisal.status)
        target = AppraisalStatus(new_status)
        if current != AppraisalStatus(expected_status):
            raise AuthorizationError(
                f"appraisal {appraisal_id} is {current.value}, not {AppraisalStatus(expected_status).value}",
                details={"appraisal_id": appraisal_id, "current_status": current.value},
            )
        if is_terminal(current) or target != advance(current):
            raise ConstraintError(
                f"reconcile may only move {current.value} one step forward; {target.value} was requested",
                details={"appraisal_id": appraisal_id, "requested": target.value},
            )
        signed = select(func.count(Signature.id)).where(
            Signature.appraisal_id == appraisal_id, Signature.step == current.value
        )
        with self._read():
            signed_count = self.session.scalar(signed) or 0
        if not signed_count:
            raise ConstraintError(
                f"no signature is recorded for {current.value}; nothing to reconcile",
                details={"appraisal_id": appraisal_id, "current_status": current.value},
            )
        return self._swap_status(appraisal, current, target)

    def _swap_status(self, appraisal: Appraisal, current: AppraisalStatus, target: AppraisalStatus) -> Appraisal:
        statement = (
            update(Appraisal)
            .where(Appraisal.id == appraisal.id, Appraisal.status == current.value)
            .values(status=target.value, updated_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        with self._write():
            result = self.session.execute(statement)
            if result.rowcount != 1:
                raise AuthorizationError(
                    f"appraisal {appraisal.id} changed status concurrently; it is no longer {current.value}",
                    details={"appraisal_id": appraisal.id, "expected_status": current.value},
                )
        self.session.refresh(appraisal)
        logger.info("Appraisal id=%s moved %s -> %s", appraisal.id, current.value, target.value)
        return appraisal

    # Signatures

    def insert_signature(self, actor: Actor, record: NewSignature) -> Signature:
        appraisal = self.fetch_appraisal(record.appraisal_id)
        if appraisal is None:
            raise NotFoundError(f"appraisal {record.appraisal_id} not found")

        current = AppraisalStatus(appraisal.status)
        policy = TransitionPolicy(status=current)
        if record.signer_id != actor.id or record.signer_role != actor.role.value:
            raise AuthorizationError("signatures can only be recorded for the acting user")
        if record.step != current.value or not policy.allows(actor.role):
            raise AuthorizationError(
                f"Store security policy prevented this signature: {policy.denial_reason(actor.role)}",
                details={
                    "appraisal_id": record.appraisal_id,
                    "current_status": current.value,
                    "step": record.step,
                    "actor_role": actor.role.value,
                },
            )

        signature = Signature(
            appraisal_id=record.appraisal_id,
            signer_id=record.signer_id,
            signer_role=record.signer_role,
            step=record.step,
            position=current.position,
            comment=record.comment,
            signature_url=record.signature_url,
        )
        with self._write():
            self.session.add(signature)
        return signature

    def fetch_signatures(self, appraisal_id: str) -> list[Signature]:
        statement = (
            select(Signature)
            .where(Signature.appraisal_id == appraisal_id)
            .order_by(Signature.signed_at.asc(), Signature.position.asc())
        )
        with self._read():
            return list(self.session.scalars(statement).all())

    def find_orphaned_signatures(self) -> list[tuple[Appraisal, int]]:
        """Appraisals holding a signature for their current step, with how many such signatures exist."""
        statement = (
            select(Appraisal, func.count(Signature.id))
            .join(Signature, Signature.appraisal_id == Appraisal.id)
            .where(Signature.step == Appraisal.status, Appraisal.status != AppraisalStatus.COMPLETED.value)
            .group_by(Appraisal.id)
            .order_by(Appraisal.created_at.asc())
        )
        with self._read():
            return [(appraisal, count) for appraisal, count in self.session.execute(statement).all()]

    @staticmethod
    def _check_appraisal_record(record: NewAppraisal) -> None:
        problems: list[str] = []
        for name in ("employee_name", "department", "hod_name", "hod_signature_url", "created_by"):
            if not getattr(record, name):
                problems.append(f"{name} is required")
        if record.department and record.department not in {item.value for item in Department}:
            problems.append(f"department '{record.department}' is not recognized")
        if record.status != SUBMITTED_STATUS.value:
            problems.append(f"new appraisals must be stored as {SUBMITTED_STATUS.value}")

        missing = [question for question in REQUIRED_QUESTIONS if question not in record.scores]
        unknown = [question for question in record.scores if question not in REQUIRED_QUESTIONS]
        out_of_range = [
            question
            for question, value in record.scores.items()
            if not isinstance(value, int) or isinstance(value, bool) or not SCORE_MIN <= value <= SCORE_MAX
        ]
        if missing:
            problems.append(f"missing scores: {', '.join(missing)}")
        if unknown:
            problems.append(f"unknown questions: {', '.join(unknown)}")
        if out_of_range:
            problems.append(f"scores out of range: {', '.join(out_of_range)}")

        if not out_of_range:
            summary = compute_scores(record.scores)
            if record.overall_score != summary.overall_score or record.overall_rating != summary.overall_rating:
                problems.append("overall_score/overall_rating do not match the score mapping")

        if problems:
            raise ConstraintError("; ".join(problems), details={"problems": problems})

