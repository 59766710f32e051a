from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from signoff.core.artifacts import SignatureArtifact, artifact_filename, coerce_signature
from signoff.core.catalog import (
    QUESTION_SET_VERSION,
    REQUIRED_QUESTIONS,
    SCORE_MAX,
    SCORE_MIN,
    Department,
    can_export_summary,
    role_name,
)
from signoff.core.events import APPRAISALS_TOPIC, EventBus, get_event_bus
from signoff.core.ports import AppraisalStore, ArtifactStore
from signoff.core.reports import summarize_department
from signoff.core.scoring import ScoreSummary
from signoff.core.scoring import compute_scores as _compute_scores
from signoff.core.session import ActorSession
from signoff.core.workflow import (
    SUBMITTED_STATUS,
    AppraisalStatus,
    Role,
    TransitionPolicy,
    advance,
    can_act,
    is_terminal,
    required_role,
    step_is_signed,
)
from signoff.errors import AuthorizationError, NotFoundError, PartialApprovalError, SignoffError, ValidationError
from signoff.types import AppraisalDraft, DepartmentSummary, NewAppraisal, NewSignature

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_SIGNER = "Unknown signer"

SignatureInput = str | bytes | SignatureArtifact | None


def compute_scores(scores: Mapping[str, int]) -> ScoreSummary:
    return _compute_scores(scores)


def validate_draft(draft: AppraisalDraft) -> None:
    problems: list[str] = []
    if not draft.employee_name or not draft.department or not draft.hod_name:
        problems.append("Please fill in employee name, department, and HOD name.")
    if draft.department and draft.department not in {item.value for item in Department}:
        problems.append(f"Department '{draft.department}' is not recognized.")

    missing = [question for question in REQUIRED_QUESTIONS if question not in draft.scores]
    unknown = sorted(question for question in draft.scores if question not in REQUIRED_QUESTIONS)
    out_of_range = sorted(
        question for question, value in draft.scores.items() if not SCORE_MIN <= value <= SCORE_MAX
    )
    if missing:
        problems.append(f"Missing scores for: {', '.join(missing)}.")
    if unknown:
        problems.append(f"Unknown questions: {', '.join(unknown)}.")
    if out_of_range:
        problems.append(f"Scores must be between {SCORE_MIN} and {SCORE_MAX}: {', '.join(out_of_range)}.")

    if problems:
        raise ValidationError(" ".join(problems), details={"problems": problems})


def serialize_appraisal(row: Any) -> dict[str, Any]:
    status = AppraisalStatus(row.status)
    next_role = required_role(status)
    return {
        "id": row.id,
        "employee_name": row.employee_name,
        "department": row.department,
        "hod_name": row.hod_name,
        "hod_signature_url": row.hod_signature_url,
        "scores": dict(row.scores_json or {}),
        "comments": row.comments,
        "overall_score": row.overall_score,
        "overall_rating": row.overall_rating,
        "status": status.value,
        "status_label": status.label,
        "awaiting_role": next_role.value if next_role else None,
        "question_set_version": row.question_set_version,
        "created_by": row.created_by,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


def serialize_signature(row: Any, profile: Any | None) -> dict[str, Any]:
    return {
        "id": row.id,
        "appraisal_id": row.appraisal_id,
        "signer_id": row.signer_id,
        "signer_name": profile.full_name if profile is not None else UNKNOWN_SIGNER,
        "signer_role": row.signer_role,
        "signer_role_name": role_name(row.signer_role),
        "step": row.step,
        "comment": row.comment,
        "signature_url": row.signature_url,
        "signed_at": row.signed_at.isoformat() if row.signed_at else None,
    }


class AppraisalWorkflow:
    """Single entry point for appraisal decisions and mutations.

    Store and artifact calls block, so they run in worker threads. Calls that touch
    one appraisal are serialized through a per-appraisal lock inside this instance;
    across instances the store's conditional status update decides races.
    """

    def __init__(
        self,
        store: AppraisalStore,
        artifacts: ArtifactStore,
        *,
        event_bus: EventBus | None = None,
    ):
        self.store = store
        self.artifacts = artifacts
        self.event_bus = event_bus or get_event_bus()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @staticmethod
    def compute_scores(scores: Mapping[str, int]) -> ScoreSummary:
        return compute_scores(scores)

    @staticmethod
    def can_act(status: AppraisalStatus | str, session: ActorSession) -> bool:
        actor = session.actor
        return actor is not None and can_act(AppraisalStatus(status), actor.role)

    async def submit(
        self,
        session: ActorSession,
        draft: AppraisalDraft,
        signature: SignatureInput,
    ) -> dict[str, Any]:
        actor = session.require_actor()
        validate_draft(draft)
        try:
            artifact = coerce_signature(signature)
        except ValidationError as exc:
            raise ValidationError("HOD signature is required.", details={"reason": exc.message}) from exc

        if not can_act(AppraisalStatus.DRAFT, actor.role):
            logger.warning("Submission rejected actor_id=%s role=%s", actor.id, actor.role.value)
            raise AuthorizationError(
                f"only the '{Role.APPRAISER.value}' role may create appraisals; "
                f"acting role is '{actor.role.value}'",
                details={"required_role": Role.APPRAISER.value, "actor_role": actor.role.value},
            )

        summary = compute_scores(draft.scores)
        signature_url = await self._call(
            self.artifacts.upload_artifact,
            artifact.content,
            artifact_filename(actor.id, artifact),
        )
        record = NewAppraisal(
            employee_name=draft.employee_name,
            department=draft.department,
            hod_name=draft.hod_name,
            hod_signature_url=signature_url,
            scores=dict(draft.scores),
            comments=draft.comments,
            overall_score=summary.overall_score,
            overall_rating=summary.overall_rating,
            status=SUBMITTED_STATUS.value,
            question_set_version=QUESTION_SET_VERSION,
            created_by=actor.id,
        )
        row = await self._call(self.store.insert_appraisal, actor, record)
        logger.info(
            "Appraisal submitted id=%s by=%s score=%.2f rating=%s",
            row.id,
            actor.id,
            summary.overall_score,
            summary.overall_rating,
        )
        data = serialize_appraisal(row)
        await self._publish("appraisal.submitted", data)
        return data

    async def approve(
        self,
        session: ActorSession,
        appraisal_id: str,
        signature: SignatureInput,
        comment: str | None = None,
    ) -> dict[str, Any]:
        actor = session.require_actor()
        try:
            artifact = coerce_signature(signature)
        except ValidationError as exc:
            raise ValidationError("Your signature is required to approve.", details={"reason": exc.message}) from exc
        comment = (comment or "").strip() or None

        async with self._exclusive(appraisal_id):
            row = await self._call(self.store.fetch_appraisal, appraisal_id)
            if row is None:
                raise NotFoundError(f"appraisal {appraisal_id} not found")

            current = AppraisalStatus(row.status)
            policy = TransitionPolicy(status=current)
            if is_terminal(current) or not policy.allows(actor.role):
                logger.warning(
                    "Approval rejected appraisal_id=%s status=%s role=%s",
                    appraisal_id,
                    current.value,
                    actor.role.value,
                )
                raise AuthorizationError(
                    f"You cannot approve this appraisal: {policy.denial_reason(actor.role)}.",
                    details={
                        "appraisal_id": appraisal_id,
                        "status": current.value,
                        "required_role": (required_role(current).value if required_role(current) else None),
                        "actor_role": actor.role.value,
                    },
                )

            next_status = policy.next_status()
            signature_url = await self._call(
                self.artifacts.upload_artifact,
                artifact.content,
                artifact_filename(actor.id, artifact, approval=True),
            )
            signature_row = await self._call(
                self.store.insert_signature,
                actor,
                NewSignature(
                    appraisal_id=appraisal_id,
                    signer_id=actor.id,
                    signer_role=actor.role.value,
                    step=current.value,
                    comment=comment,
                    signature_url=signature_url,
                ),
            )

            try:
                updated = await self._call(
                    self.store.update_appraisal_status,
                    actor,
                    appraisal_id,
                    next_status,
                    expected_status=current,
                )
            except SignoffError as exc:
                logger.error(
                    "Partial approval appraisal_id=%s signature_id=%s: %s",
                    appraisal_id,
                    signature_row.id,
                    exc.message,
                )
                raise PartialApprovalError(appraisal_id, signature_row.id, exc) from exc

        logger.info(
            "Appraisal approved id=%s %s -> %s by=%s",
            appraisal_id,
            current.value,
            next_status.value,
            actor.id,
        )
        data = serialize_appraisal(updated)
        await self._publish("appraisal.approved", {**data, "signature_id": signature_row.id})
        return data

    async def reconcile(self, session: ActorSession, appraisal_id: str) -> dict[str, Any]:
        """Finish an approval whose signature was recorded but whose status never advanced.

        Only a signature for the current step counts; the status moves exactly one position.
        """
        actor = session.require_actor()
        if actor.role is not Role.HR:
            raise AuthorizationError(
                f"only {role_name(Role.HR)} may reconcile appraisals; acting role is '{actor.role.value}'"
            )

        async with self._exclusive(appraisal_id):
            row = await self._call(self.store.fetch_appraisal, appraisal_id)
            if row is None:
                raise NotFoundError(f"appraisal {appraisal_id} not found")
            signatures = await self._call(self.store.fetch_signatures, appraisal_id)

            current = AppraisalStatus(row.status)
            orphaned = [item for item in signatures if item.step == current.value]
            if not step_is_signed(current, (item.step for item in signatures)):
                return {"changed": False, "appraisal": serialize_appraisal(row), "orphaned_signatures": 0}

            target = advance(current)
            updated = await self._call(
                self.store.reconcile_appraisal_status,
                actor,
                appraisal_id,
                target,
                expected_status=current,
            )

        logger.warning(
            "Reconciled appraisal id=%s %s -> %s (%s signature(s) for that step)",
            appraisal_id,
            current.value,
            target.value,
            len(orphaned),
        )
        data = serialize_appraisal(updated)
        await self._publish("appraisal.reconciled", data)
        return {"changed": True, "appraisal": data, "orphaned_signatures": len(orphaned)}

    async def get_details(self, appraisal_id: str) -> dict[str, Any]:
        row = await self._call(self.store.fetch_appraisal, appraisal_id)
        if row is None:
            raise NotFoundError(f"appraisal {appraisal_id} not found")

        signatures = await self._call(self.store.fetch_signatures, appraisal_id)
        profiles: dict[str, Any] = {}
        if signatures:
            try:
                found = await self._call(self.store.fetch_profiles, [item.signer_id for item in signatures])
            except SignoffError as exc:
                logger.warning("Signer profiles unavailable for appraisal %s: %s", appraisal_id, exc.message)
                found = []
            profiles = {profile.id: profile for profile in found if getattr(profile, "id", None)}

        data = serialize_appraisal(row)
        data["signatures"] = [serialize_signature(item, profiles.get(item.signer_id)) for item in signatures]
        return data

    async def list_appraisals(
        self,
        *,
        department: str | None = None,
        search: str | None = None,
    ) -> list[dict[str, Any]]:
        if department:
            department = _department(department)
        rows = await self._call(self.store.fetch_appraisals, department=department, search=search)
        return [serialize_appraisal(row) for row in rows]

    async def department_summary(self, session: ActorSession, department: str) -> DepartmentSummary:
        actor = session.require_actor()
        if not can_export_summary(actor.role):
            raise AuthorizationError(
                f"{actor.role_name} may not export department summaries",
                details={"actor_role": actor.role.value},
            )
        dept = _department(department)
        rows = await self._call(self.store.fetch_appraisals, department=dept)
        return summarize_department(rows, dept)

    @asynccontextmanager
    async def _exclusive(self, appraisal_id: str) -> AsyncIterator[None]:
        """Serialize calls on one appraisal; the lock is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(appraisal_id, asyncio.Lock())
        self._lock_users[appraisal_id] = self._lock_users.get(appraisal_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[appraisal_id] - 1
            if remaining:
                self._lock_users[appraisal_id] = remaining
            else:
                del self._lock_users[appraisal_id]
                del self._locks[appraisal_id]

    async def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(fn, *args, **kwargs)

    async def _publish(self, event: str, payload: dict[str, Any]) -> None:
        await self.event_bus.publish(APPRAISALS_TOPIC, {"event": event, "appraisal": payload})


def _department(value: str) -> str:
    try:
        return Department(value).value
    except ValueError as exc:
        raise ValidationError(f"Department '{value}' is not recognized.") from exc
