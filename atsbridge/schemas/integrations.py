"""Integration config and sync schemas."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ProviderConfigRequest(BaseModel):
    """POST /integrations/{provider}/config request.

    Only fields present in the body are written; an explicit empty string or
    null clears a credential.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_key: str | None = Field(None, validation_alias=AliasChoices("apiKey", "api_key"))
    secret_key: str | None = Field(
        None,
        validation_alias=AliasChoices("secretKey", "signingToken", "secret_key"),
    )
    trigger_stage: str | None = Field(
        None, validation_alias=AliasChoices("triggerStage", "trigger_stage")
    )
    enabled: bool | None = None


class SyncRequest(BaseModel):
    """POST /integrations/{provider}/sync request."""

    assessment_id: str = Field(validation_alias=AliasChoices("assessmentId", "assessment_id"))
    company_id: str | None = Field(
        None, validation_alias=AliasChoices("companyId", "company_id")
    )


class BulkSyncRequest(BaseModel):
    """PUT /integrations/{provider}/sync request."""

    company_id: str | None = Field(
        None, validation_alias=AliasChoices("companyId", "company_id")
    )
