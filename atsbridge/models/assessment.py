"""Assessment model."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from atsbridge.database import Base
from atsbridge.utils.timeutils import utcnow


class Assessment(Base):
    """Completed assessment session with scores and ATS push-back state."""

    __tablename__ = "assessments"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    company_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    invitation_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("invitations.id"), nullable=True
    )
    candidate_name: Mapped[str] = mapped_column(Text, nullable=False)
    candidate_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    assessment_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    task: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    message_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    overall_score: Mapped[int] = mapped_column(Integer, nullable=False)
    prompt_quality_score: Mapped[int] = mapped_column(Integer, nullable=False)
    prompt_quality_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    context_score: Mapped[int] = mapped_column(Integer, nullable=False)
    context_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    iteration_score: Mapped[int] = mapped_column(Integer, nullable=False)
    iteration_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    efficiency_score: Mapped[int] = mapped_column(Integer, nullable=False)
    efficiency_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    transcript: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    ats_provider: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ats_job_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    ats_application_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    ats_candidate_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Push-back idempotency marker; only set after a confirmed provider write
    ats_webhook_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ats_webhook_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # In-flight sync claim; cleared on success or failure
    ats_sync_claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
