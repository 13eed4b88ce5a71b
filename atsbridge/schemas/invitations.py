"""Invitation request/response schemas."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field


class CreateInvitationRequest(BaseModel):
    """POST /v1/invitations request."""

    model_config = ConfigDict(populate_by_name=True)

    candidate_email: EmailStr = Field(alias="candidateEmail")
    candidate_name: str | None = Field(None, alias="candidateName")
    assessment_type: str | None = Field(None, alias="assessmentType")
    expires_in_hours: int | None = Field(None, alias="expiresInHours", ge=1, le=720)
    ats_job_id: str | None = Field(None, alias="atsJobId")
    ats_application_id: str | None = Field(None, alias="atsApplicationId")
    send_email: bool = Field(False, alias="sendEmail")
    # Dashboard mode only (no Authorization header)
    company_id: str | None = Field(
        None, validation_alias=AliasChoices("company_id", "companyId")
    )


class InvitationOut(BaseModel):
    """Invitation as returned by the outward API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    token: str
    assessment_url: str = Field(alias="assessmentUrl")
    candidate_email: str = Field(alias="candidateEmail")
    candidate_name: str | None = Field(None, alias="candidateName")
    assessment_type: str | None = Field(None, alias="assessmentType")
    status: str
    expires_at: datetime = Field(alias="expiresAt")
    used_at: datetime | None = Field(None, alias="usedAt")
    created_at: datetime | None = Field(None, alias="createdAt")
    assessment_id: str | None = Field(None, alias="assessmentId")
    ats_provider: str | None = Field(None, alias="atsProvider")
    ats_job_id: str | None = Field(None, alias="atsJobId")
    ats_application_id: str | None = Field(None, alias="atsApplicationId")
    ats_candidate_id: str | None = Field(None, alias="atsCandidateId")


class InvitationSummary(BaseModel):
    """GET /invitations/validate response body (public)."""

    id: str
    candidate_email: str
    candidate_name: str | None = None
    company_id: str
    assessment_type: str | None = None
    expires_at: datetime
    ats_job_id: str | None = None
    ats_application_id: str | None = None
