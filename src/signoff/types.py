from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class AppraisalDraft(BaseModel):
    employee_name: str = ""
    department: str = ""
    hod_name: str = ""
    scores: dict[str, int] = Field(default_factory=dict)
    comments: str = ""

    @field_validator("employee_name", "department", "hod_name", "comments")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()


class NewAppraisal(BaseModel):
    employee_name: str
    department: str
    hod_name: str
    hod_signature_url: str
    scores: dict[str, int]
    comments: str = ""
    overall_score: float
    overall_rating: str
    status: str
    question_set_version: str
    created_by: str


class NewSignature(BaseModel):
    appraisal_id: str
    signer_id: str
    signer_role: str
    step: str
    comment: str | None = None
    signature_url: str


class ActorIdentity(BaseModel):
    id: str
    role: str


class DepartmentSummaryRow(BaseModel):
    appraisal_id: str
    employee_name: str
    overall_score: str
    overall_rating: str
    comments: str
    status: str


class DepartmentSummary(BaseModel):
    department: str
    generated_at: str
    count: int = 0
    completed: int = 0
    mean_overall_score: float = 0.0
    rating_distribution: dict[str, int] = Field(default_factory=dict)
    rows: list[DepartmentSummaryRow] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
