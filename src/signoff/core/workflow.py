from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass


class Role(str, enum.Enum):
    APPRAISER = "appraiser"
    HR = "hr"
    DOCS = "docs"
    MD = "md"
    CHAIRMAN = "chairman"


class AppraisalStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_HR_APPROVAL = "PENDING_HR_APPROVAL"
    PENDING_DOCS_APPROVAL = "PENDING_DOCS_APPROVAL"
    PENDING_MD_APPROVAL = "PENDING_MD_APPROVAL"
    PENDING_CHAIRMAN_APPROVAL = "PENDING_CHAIRMAN_APPROVAL"
    COMPLETED = "COMPLETED"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def position(self) -> int:
        return STATUS_ORDER.index(self)


STATUS_ORDER: tuple[AppraisalStatus, ...] = (
    AppraisalStatus.DRAFT,
    AppraisalStatus.PENDING_HR_APPROVAL,
    AppraisalStatus.PENDING_DOCS_APPROVAL,
    AppraisalStatus.PENDING_MD_APPROVAL,
    AppraisalStatus.PENDING_CHAIRMAN_APPROVAL,
    AppraisalStatus.COMPLETED,
)

STATUS_LABELS: dict[AppraisalStatus, str] = {
    AppraisalStatus.DRAFT: "Draft",
    AppraisalStatus.PENDING_HR_APPROVAL: "Pending HR Approval",
    AppraisalStatus.PENDING_DOCS_APPROVAL: "Pending Docs Approval",
    AppraisalStatus.PENDING_MD_APPROVAL: "Pending MD Approval",
    AppraisalStatus.PENDING_CHAIRMAN_APPROVAL: "Pending Chairman Approval",
    AppraisalStatus.COMPLETED: "Completed",
}

# One actor role per non-terminal state; COMPLETED has none.
REQUIRED_ROLE: dict[AppraisalStatus, Role | None] = {
    AppraisalStatus.DRAFT: Role.APPRAISER,
    AppraisalStatus.PENDING_HR_APPROVAL: Role.HR,
    AppraisalStatus.PENDING_DOCS_APPROVAL: Role.DOCS,
    AppraisalStatus.PENDING_MD_APPROVAL: Role.MD,
    AppraisalStatus.PENDING_CHAIRMAN_APPROVAL: Role.CHAIRMAN,
    AppraisalStatus.COMPLETED: None,
}

# Status a freshly created appraisal is persisted with; DRAFT is never stored.
SUBMITTED_STATUS = AppraisalStatus.PENDING_HR_APPROVAL

APPROVAL_CHAIN: tuple[Role, ...] = (Role.HR, Role.DOCS, Role.MD, Role.CHAIRMAN)


def required_role(status: AppraisalStatus) -> Role | None:
    return REQUIRED_ROLE[AppraisalStatus(status)]


def can_act(status: AppraisalStatus, role: Role | None) -> bool:
    """Gate for UI/action availability. Authoritative enforcement lives in the repository."""
    if role is None:
        return False
    expected = required_role(status)
    return expected is not None and expected == Role(role)


def advance(status: AppraisalStatus) -> AppraisalStatus:
    current = AppraisalStatus(status)
    if current is AppraisalStatus.COMPLETED:
        return current
    return STATUS_ORDER[current.position + 1]


def is_terminal(status: AppraisalStatus) -> bool:
    return AppraisalStatus(status) is AppraisalStatus.COMPLETED


def step_is_signed(status: AppraisalStatus, signed_steps: Iterable[str]) -> bool:
    """True when a signature was recorded for ``status`` itself, i.e. the advance out of it is owed."""
    current = AppraisalStatus(status)
    return not is_terminal(current) and current.value in set(signed_steps)


@dataclass(slots=True)
class TransitionPolicy:
    """Decides whether ``role`` may move an appraisal out of ``status``."""

    status: AppraisalStatus

    def allows(self, role: Role | None) -> bool:
        return can_act(self.status, role)

    def next_status(self) -> AppraisalStatus:
        return advance(self.status)

    def denial_reason(self, role: Role | None) -> str:
        expected = required_role(self.status)
        status = AppraisalStatus(self.status)
        if expected is None:
            return f"appraisal is {status.label}; no further approvals are defined"
        actor = Role(role).value if role is not None else "none"
        return (
            f"status {status.value} requires role '{expected.value}', "
            f"but the acting role is '{actor}'"
        )
