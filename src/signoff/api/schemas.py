from __future__ import annotations

from pydantic import BaseModel, Field

from signoff.core.workflow import Role


class ProfileCreateRequest(BaseModel):
    full_name: str
    role: Role


class ProfileResponse(BaseModel):
    id: str
    full_name: str
    role: str
    role_name: str


class SessionResponse(BaseModel):
    authenticated: bool
    actor_id: str | None = None
    role: str | None = None
    role_name: str | None = None


class AppraisalSubmitRequest(BaseModel):
    employee_name: str
    department: str
    hod_name: str
    scores: dict[str, int] = Field(default_factory=dict)
    comments: str = ""
    signature: str = ""


class ApprovalRequest(BaseModel):
    signature: str = ""
    comment: str | None = None


class ScorePreviewRequest(BaseModel):
    scores: dict[str, int] = Field(default_factory=dict)


class ScorePreviewResponse(BaseModel):
    average: float
    percentage: float
    rating: str


class AppraisalResponse(BaseModel):
    id: str
    employee_name: str
    department: str
    hod_name: str
    hod_signature_url: str
    scores: dict[str, int]
    comments: str
    overall_score: float
    overall_rating: str
    status: str
    status_label: str
    awaiting_role: str | None = None
    question_set_version: str
    created_by: str
    created_at: str | None = None


class SignatureResponse(BaseModel):
    id: str
    appraisal_id: str
    signer_id: str
    signer_name: str
    signer_role: str
    signer_role_name: str
    step: str
    comment: str | None = None
    signature_url: str
    signed_at: str | None = None


class AppraisalDetailResponse(AppraisalResponse):
    signatures: list[SignatureResponse] = Field(default_factory=list)


class PermissionResponse(BaseModel):
    appraisal_id: str
    status: str
    awaiting_role: str | None = None
    can_act: bool


class ReconcileResponse(BaseModel):
    changed: bool
    orphaned_signatures: int
    appraisal: AppraisalResponse
