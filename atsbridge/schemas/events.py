"""Canonical webhook event types."""

from pydantic import BaseModel, ConfigDict


class StageChangeEvent(BaseModel):
    """Provider-agnostic stage change produced by the normalizer. Never persisted."""

    model_config = ConfigDict(frozen=True)

    provider: str
    candidate_email: str
    candidate_name: str = ""
    candidate_id: str = ""
    job_id: str = ""
    application_id: str = ""
    job_title: str | None = None
    # Lower-cased for matching; original casing is not kept
    current_stage_name: str


class NormalizationFailure(BaseModel):
    """Webhook payload could not be mapped to a StageChangeEvent.

    Returned, not raised: the webhook still answers 200 so the provider
    does not retry.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    reason: str
