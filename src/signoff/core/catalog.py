from __future__ import annotations

import enum
from dataclasses import dataclass

from signoff.core.workflow import Role

QUESTION_SET_VERSION = "2024.1"

ROLE_NAMES: dict[Role, str] = {
    Role.APPRAISER: "Appraiser/HOD",
    Role.HR: "HR",
    Role.DOCS: "Docs",
    Role.MD: "Managing Director",
    Role.CHAIRMAN: "Chairman",
}

# Roles allowed to export department summaries.
SUMMARY_EXPORT_ROLES: frozenset[Role] = frozenset({Role.HR, Role.CHAIRMAN})


class Department(str, enum.Enum):
    GOPD = "GOPD"
    OPD = "OPD"
    MAINTENANCE = "MAINTENANCE"
    DRIVERS = "DRIVERS"
    NURSES = "NURSES"
    NURSES_ATTENDANTS = "NURSES ATTENDANTS"
    INTERNAL_SECURITY = "INTERNAL SECURITY"
    ADMIN = "ADMIN"
    FRONT_DESK = "FRONT DESK"
    LAB = "LAB"
    RADIOLOGY = "RADIOLOGY"
    BILLING = "BILLING"
    INTERNAL_AUDIT = "INTERNAL AUDIT"
    ACCOUNTS = "ACCOUNTS"
    PAEDIATRICS = "PAEDIATRICS"
    PHARMACY = "PHARMACY"
    ICT = "ICT"


@dataclass(frozen=True, slots=True)
class AppraisalSection:
    title: str
    questions: tuple[str, ...]


APPRAISAL_SECTIONS: tuple[AppraisalSection, ...] = (
    AppraisalSection(
        title="Job Knowledge & Skills",
        questions=(
            "q1_knowledge_of_duties",
            "q2_technical_skills",
            "q3_understanding_of_policies",
        ),
    ),
    AppraisalSection(
        title="Quality of Work",
        questions=(
            "q4_accuracy_and_thoroughness",
            "q5_efficiency_and_timeliness",
            "q6_work_presentation",
        ),
    ),
    AppraisalSection(
        title="Communication & Interpersonal Skills",
        questions=(
            "q7_teamwork_and_collaboration",
            "q8_patient_staff_interaction",
            "q9_clarity_of_communication",
        ),
    ),
    AppraisalSection(
        title="Attendance & Punctuality",
        questions=(
            "q10_punctuality",
            "q11_adherence_to_schedule",
        ),
    ),
    AppraisalSection(
        title="Initiative & Problem Solving",
        questions=(
            "q12_proactiveness",
            "q13_problem_solving_ability",
            "q14_adaptability_to_change",
        ),
    ),
)

QUESTION_LABELS: dict[str, str] = {
    "q1_knowledge_of_duties": "Demonstrates thorough knowledge of job duties and responsibilities.",
    "q2_technical_skills": "Possesses the necessary technical skills to perform the job effectively.",
    "q3_understanding_of_policies": "Understands and follows hospital policies and procedures.",
    "q4_accuracy_and_thoroughness": "Produces accurate, thorough, and high-quality work.",
    "q5_efficiency_and_timeliness": "Completes tasks efficiently and within deadlines.",
    "q6_work_presentation": "Maintains a neat and organized work environment.",
    "q7_teamwork_and_collaboration": "Works cooperatively with others and contributes to a positive team environment.",
    "q8_patient_staff_interaction": "Interacts with patients and colleagues professionally and courteously.",
    "q9_clarity_of_communication": "Communicates clearly and effectively, both verbally and in writing.",
    "q10_punctuality": "Is consistently on time and ready to work at the start of their shift.",
    "q11_adherence_to_schedule": "Adheres to break and lunch schedules appropriately.",
    "q12_proactiveness": "Shows initiative and seeks out new responsibilities.",
    "q13_problem_solving_ability": "Identifies and resolves problems in a timely and effective manner.",
    "q14_adaptability_to_change": "Adapts well to changes in the work environment.",
}

REQUIRED_QUESTIONS: tuple[str, ...] = tuple(
    question for section in APPRAISAL_SECTIONS for question in section.questions
)

SCORE_MIN = 0
SCORE_MAX = 10


def role_name(role: Role | str | None) -> str:
    if role is None:
        return "Unknown"
    try:
        return ROLE_NAMES[Role(role)]
    except ValueError:
        return "Unknown"


def can_export_summary(role: Role | None) -> bool:
    return role is not None and Role(role) in SUMMARY_EXPORT_ROLES


def question_catalog() -> dict:
    return {
        "version": QUESTION_SET_VERSION,
        "score_range": [SCORE_MIN, SCORE_MAX],
        "sections": [
            {
                "title": section.title,
                "questions": [
                    {"id": question, "label": QUESTION_LABELS[question]} for question in section.questions
                ],
            }
            for section in APPRAISAL_SECTIONS
        ],
    }
