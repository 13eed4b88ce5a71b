"""Invitation model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from atsbridge.database import Base
from atsbridge.utils.timeutils import utcnow


class Invitation(Base):
    """Single-use, expiring assessment invitation - never deleted (audit trail).

    Status is derived from ``used_at`` / ``expires_at``, never stored.
    """

    __tablename__ = "invitations"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    company_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    candidate_email: Mapped[str] = mapped_column(Text, nullable=False)
    candidate_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    assessment_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    assessment_id: Mapped[str | None] = mapped_column(Uuid(as_uuid=False), nullable=True)

    ats_provider: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ats_job_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    ats_application_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    ats_candidate_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Trigger stage that produced a webhook invitation; part of the dedup key
    ats_trigger_stage: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "ats_provider",
            "ats_application_id",
            "ats_trigger_stage",
            name="uq_invitations_ats_dedup",
        ),
    )
