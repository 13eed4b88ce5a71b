"""Initial schema - companies, api_keys, invitations, assessments.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _provider_columns(prefix: str, secret_column: str) -> list[sa.Column]:
    return [
        sa.Column(f"{prefix}_api_key", sa.Text(), nullable=True),
        sa.Column(secret_column, sa.Text(), nullable=True),
        sa.Column(
            f"{prefix}_trigger_stage", sa.String(255), nullable=False, server_default="assessment"
        ),
        sa.Column(f"{prefix}_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("default_assessment_type", sa.Text(), nullable=True),
        *_provider_columns("ashby", "ashby_secret_key"),
        *_provider_columns("greenhouse", "greenhouse_secret_key"),
        *_provider_columns("lever", "lever_signing_token"),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "api_keys",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column(
            "company_id",
            sa.UUID(),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("key_hash", sa.String(255), unique=True, nullable=False),
        sa.Column("key_prefix", sa.String(16), nullable=False),
        sa.Column("last_used_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_api_keys_company_id", "api_keys", ["company_id"])

    op.create_table(
        "invitations",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column(
            "company_id",
            sa.UUID(),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token", sa.String(64), unique=True, nullable=False),
        sa.Column("candidate_email", sa.Text(), nullable=False),
        sa.Column("candidate_name", sa.Text(), nullable=True),
        sa.Column("assessment_type", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("used_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("assessment_id", sa.UUID(), nullable=True),
        sa.Column("ats_provider", sa.String(32), nullable=True),
        sa.Column("ats_job_id", sa.Text(), nullable=True),
        sa.Column("ats_application_id", sa.Text(), nullable=True),
        sa.Column("ats_candidate_id", sa.Text(), nullable=True),
        sa.Column("ats_trigger_stage", sa.String(255), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_invitations_company_id", "invitations", ["company_id"])
    op.create_unique_constraint(
        "uq_invitations_ats_dedup",
        "invitations",
        ["company_id", "ats_provider", "ats_application_id", "ats_trigger_stage"],
    )

    op.create_table(
        "assessments",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column(
            "company_id",
            sa.UUID(),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("invitation_id", sa.UUID(), sa.ForeignKey("invitations.id"), nullable=True),
        sa.Column("candidate_name", sa.Text(), nullable=False),
        sa.Column("candidate_email", sa.Text(), nullable=True),
        sa.Column("assessment_type", sa.Text(), nullable=True),
        sa.Column("task", sa.Text(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("message_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overall_score", sa.Integer(), nullable=False),
        sa.Column("prompt_quality_score", sa.Integer(), nullable=False),
        sa.Column("prompt_quality_feedback", sa.Text(), nullable=True),
        sa.Column("context_score", sa.Integer(), nullable=False),
        sa.Column("context_feedback", sa.Text(), nullable=True),
        sa.Column("iteration_score", sa.Integer(), nullable=False),
        sa.Column("iteration_feedback", sa.Text(), nullable=True),
        sa.Column("efficiency_score", sa.Integer(), nullable=False),
        sa.Column("efficiency_feedback", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("transcript", sa.JSON(), nullable=False),
        sa.Column("ats_provider", sa.String(32), nullable=True),
        sa.Column("ats_job_id", sa.Text(), nullable=True),
        sa.Column("ats_application_id", sa.Text(), nullable=True),
        sa.Column("ats_candidate_id", sa.Text(), nullable=True),
        sa.Column("ats_webhook_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ats_webhook_sent_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("ats_sync_claimed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_assessments_company_id", "assessments", ["company_id"])
    op.create_index("ix_assessments_created_at", "assessments", ["created_at"])


def downgrade() -> None:
    op.drop_table("assessments")
    op.drop_table("invitations")
    op.drop_table("api_keys")
    op.drop_table("companies")
