"""Company (tenant) model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from atsbridge.database import Base
from atsbridge.utils.timeutils import utcnow


class Company(Base):
    """Company table - tenant that owns invitations, assessments and API keys.

    Provider credentials are opaque strings. They are only ever displayed
    through ``atsbridge.utils.tokens.mask_secret``.
    """

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    default_assessment_type: Mapped[str | None] = mapped_column(Text, nullable=True)

    ashby_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    ashby_secret_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    ashby_trigger_stage: Mapped[str] = mapped_column(
        String(255), nullable=False, default="assessment"
    )
    ashby_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    greenhouse_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    greenhouse_secret_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    greenhouse_trigger_stage: Mapped[str] = mapped_column(
        String(255), nullable=False, default="assessment"
    )
    greenhouse_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    lever_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    lever_signing_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    lever_trigger_stage: Mapped[str] = mapped_column(
        String(255), nullable=False, default="assessment"
    )
    lever_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
