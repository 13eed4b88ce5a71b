"""Assessment submission schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ScoredDimension(BaseModel):
    """One scored dimension of the analysis."""

    score: int = Field(ge=0, le=100)
    feedback: str | None = None


class AssessmentAnalysis(BaseModel):
    """Scoring output attached to a submission."""

    model_config = ConfigDict(populate_by_name=True)

    score: int = Field(ge=0, le=100)
    prompt_quality: ScoredDimension = Field(alias="promptQuality")
    context_provided: ScoredDimension = Field(alias="contextProvided")
    iteration: ScoredDimension
    efficiency: ScoredDimension
    summary: str | None = None


class SubmitAssessmentRequest(BaseModel):
    """POST /assessments request - sent by the assessment UI on completion."""

    model_config = ConfigDict(populate_by_name=True)

    invitation_token: str = Field(alias="invitationToken", min_length=1)
    candidate_name: str | None = Field(None, alias="candidateName")
    candidate_email: str | None = Field(None, alias="candidateEmail")
    task: str | None = None
    duration: int = Field(0, ge=0, description="Session length in seconds")
    messages: list[dict[str, Any]] = Field(default_factory=list)
    analysis: AssessmentAnalysis
