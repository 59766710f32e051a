"""Initial schema: profiles, appraisals and signatures

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_profiles_role", "profiles", ["role"])

    op.create_table(
        "appraisals",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("employee_name", sa.String(255), nullable=False),
        sa.Column("department", sa.String(64), nullable=False),
        sa.Column("hod_name", sa.String(255), nullable=False),
        sa.Column("hod_signature_url", sa.String(800), nullable=False),
        sa.Column("scores_json", sa.JSON(), nullable=False),
        sa.Column("comments", sa.Text(), nullable=False),
        sa.Column("overall_score", sa.Float(), nullable=False),
        sa.Column("overall_rating", sa.String(20), nullable=False),
        sa.Column("status", sa.String(40), nullable=False),
        sa.Column("question_set_version", sa.String(20), nullable=False),
        sa.Column("created_by", sa.String(36), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_appraisals_department", "appraisals", ["department"])
    op.create_index("ix_appraisals_status", "appraisals", ["status"])
    op.create_index("ix_appraisals_created_by", "appraisals", ["created_by"])

    op.create_table(
        "signatures",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("appraisal_id", sa.String(36), sa.ForeignKey("appraisals.id"), nullable=False),
        sa.Column("signer_id", sa.String(36), nullable=False),
        sa.Column("signer_role", sa.String(32), nullable=False),
        sa.Column("step", sa.String(40), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("signature_url", sa.String(800), nullable=False),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_signatures_appraisal_id", "signatures", ["appraisal_id"])
    op.create_index("ix_signatures_signer_id", "signatures", ["signer_id"])


def downgrade() -> None:
    op.drop_table("signatures")
    op.drop_table("appraisals")
    op.drop_table("profiles")
