"""ATS integration endpoints - webhooks, config, result sync and jobs.

Every route takes the provider as a path segment and dispatches through the
provider registry; there is no per-provider router.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from atsbridge.api.deps import ClientFactoryDep, EmailSenderDep, SettingsDep
from atsbridge.auth.middleware import AuthHeaderDep, CompanyIdDep, resolve_company_id
from atsbridge.database import get_db
from atsbridge.engine.matcher import effective_trigger
from atsbridge.engine.result_sync import bulk_sync, sync_assessment
from atsbridge.engine.webhooks import handle_webhook
from atsbridge.errors import IntegrationNotConfigured, NotFound, UpstreamProviderError
from atsbridge.providers import ProviderIntegration, get_integration
from atsbridge.schemas.integrations import BulkSyncRequest, ProviderConfigRequest, SyncRequest
from atsbridge.storage.repositories import get_company, update_company
from atsbridge.utils.timeutils import isoformat
from atsbridge.utils.tokens import mask_secret

logger = logging.getLogger(__name__)

router = APIRouter()


def webhook_url(app_url: str, integration: ProviderIntegration, company_id: str) -> str:
    return f"{app_url}/integrations/{integration.name}/webhook?company_id={company_id}"


async def _company(db: AsyncSession, company_id: str):
    company = await get_company(db, company_id)
    if company is None:
        raise NotFound("Company not found")
    return company


# Webhooks


@router.post("/{provider}/webhook")
async def receive_webhook(
    provider: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: SettingsDep,
    client_factory: ClientFactoryDep,
    email_sender: EmailSenderDep,
    company_id: str | None = None,
):
    """Receive a stage-change webhook. Signed with the company's webhook secret."""
    result = await handle_webhook(
        db,
        provider,
        company_id,
        await request.body(),
        request.headers,
        client_factory=client_factory,
        email_sender=email_sender,
        app_url=settings.app_url,
        expires_in_hours=settings.invitation_expiry_hours,
    )
    return result.to_response()


@router.get("/{provider}/webhook")
async def webhook_health(provider: str):
    """Used by ATS setup screens to check the URL is reachable."""
    integration = get_integration(provider)
    return {"status": "ok", "service": f"{integration.display_name} Integration"}


# Config


@router.get("/{provider}/config")
async def get_config(
    provider: str,
    company_id: CompanyIdDep,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: SettingsDep,
):
    """Current integration config. Credentials are masked."""
    integration = get_integration(provider)
    company = await _company(db, company_id)
    config = integration.settings_for(company)
    return {
        "provider": integration.name,
        "configured": bool(config.api_key),
        "enabled": config.enabled,
        "apiKey": mask_secret(config.api_key),
        "secretKey": mask_secret(config.secret),
        "triggerStage": config.trigger_stage,
        "webhookUrl": webhook_url(settings.app_url, integration, company_id),
    }


@router.post("/{provider}/config")
async def save_config(
    provider: str,
    body: ProviderConfigRequest,
    company_id: CompanyIdDep,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: SettingsDep,
    client_factory: ClientFactoryDep,
):
    """
    Validate and store integration credentials.
    A new API key is checked against the provider before it is saved.
    """
    integration = get_integration(provider)
    await _company(db, company_id)
    columns = integration.columns
    provided = body.model_fields_set
    values = {}

    if "api_key" in provided:
        api_key = (body.api_key or "").strip() or None
        if api_key:
            client = client_factory(integration, api_key)
            if not await client.test_connection():
                raise UpstreamProviderError(
                    integration.name, None, "API key validation failed", status_code=400
                )
        values[columns.api_key] = api_key
        if "enabled" not in provided:
            values[columns.enabled] = api_key is not None
    if "secret_key" in provided:
        values[columns.secret] = (body.secret_key or "").strip() or None
    if "trigger_stage" in provided:
        values[columns.trigger_stage] = effective_trigger(body.trigger_stage)
    if "enabled" in provided and body.enabled is not None:
        values[columns.enabled] = body.enabled

    await update_company(db, company_id, values)
    logger.info(
        "%s config updated for company %s (%s)",
        integration.display_name,
        company_id,
        ", ".join(sorted(values)) or "no changes",
    )
    url = webhook_url(settings.app_url, integration, company_id)
    return {
        "success": True,
        "webhookUrl": url,
        "instructions": integration.instructions(url, secret_provided=bool(body.secret_key)),
    }


@router.delete("/{provider}/config")
async def delete_config(
    provider: str,
    company_id: CompanyIdDep,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Remove the integration: credentials cleared, webhooks disabled."""
    integration = get_integration(provider)
    await _company(db, company_id)
    columns = integration.columns
    await update_company(
        db,
        company_id,
        {columns.api_key: None, columns.secret: None, columns.enabled: False},
    )
    logger.info("%s integration removed for company %s", integration.display_name, company_id)
    return {"success": True}


# Result sync


@router.post("/{provider}/sync")
async def sync_one(
    provider: str,
    body: SyncRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_header: AuthHeaderDep,
    settings: SettingsDep,
    client_factory: ClientFactoryDep,
):
    """Push one assessment's results to the ATS. Idempotent."""
    integration = get_integration(provider)
    company_id = await resolve_company_id(
        db, auth_header, body.company_id, settings.api_key_hash_salt
    )
    result = await sync_assessment(
        db,
        body.assessment_id,
        client_factory,
        company_id=company_id,
        app_url=settings.app_url,
        lease=settings.sync_claim_lease,
        provider=integration.name,
    )
    if result.already_synced:
        message = "Already synced"
    elif result.in_progress:
        message = "Sync already in progress"
    else:
        message = f"Assessment results synced to {integration.display_name}"
    return {
        "success": True,
        "message": message,
        "synced": result.synced,
        "alreadySynced": result.already_synced,
        "inProgress": result.in_progress,
        "syncedAt": isoformat(result.synced_at),
    }


@router.put("/{provider}/sync")
async def sync_bulk(
    provider: str,
    body: BulkSyncRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_header: AuthHeaderDep,
    settings: SettingsDep,
    client_factory: ClientFactoryDep,
):
    """Push one batch of unsynced assessments for the company."""
    integration = get_integration(provider)
    company_id = await resolve_company_id(
        db, auth_header, body.company_id, settings.api_key_hash_salt
    )
    result = await bulk_sync(
        db,
        company_id,
        client_factory,
        provider=integration.name,
        batch_size=settings.sync_batch_size,
        app_url=settings.app_url,
        lease=settings.sync_claim_lease,
    )
    return {
        "success": True,
        "message": f"Synced {result.synced} of {result.total} assessments",
        "synced": result.synced,
        "total": result.total,
        "errors": result.errors,
    }


# Jobs


@router.get("/{provider}/jobs")
async def list_jobs(
    provider: str,
    company_id: CompanyIdDep,
    db: Annotated[AsyncSession, Depends(get_db)],
    client_factory: ClientFactoryDep,
):
    """All jobs from the ATS, every page drained."""
    integration = get_integration(provider)
    company = await _company(db, company_id)
    api_key = integration.settings_for(company).api_key
    if not api_key:
        raise IntegrationNotConfigured(f"{integration.display_name} API key not configured")
    client = client_factory(integration, api_key)
    jobs = [job async for job in client.iter_jobs()]
    return {"jobs": jobs, "count": len(jobs)}
