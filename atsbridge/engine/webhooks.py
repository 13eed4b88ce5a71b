"""Shared webhook pipeline for every ATS provider.

    resolve company -> verify signature -> parse -> enabled? -> event type
        -> normalize -> match trigger -> issue invitation -> email

Only company resolution (400/404) and signature verification (401) raise.
Everything after answers 200 with an outcome, so the ATS does not retry
deliveries we deliberately dropped.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from atsbridge.engine import matcher
from atsbridge.engine.invitations import AtsLinkage, issue_invitation, notify
from atsbridge.engine.result_sync import ClientFactory
from atsbridge.errors import (
    AuthError,
    NotFound,
    PersistenceError,
    UpstreamProviderError,
    ValidationError,
)
from atsbridge.notifications.email import EmailSender
from atsbridge.providers import get_integration
from atsbridge.schemas.events import NormalizationFailure
from atsbridge.storage.repositories import get_company

logger = logging.getLogger(__name__)

INVITATION_CREATED = "invitation_created"
IGNORED_EVENT = "ignored_event"
INTEGRATION_DISABLED = "integration_disabled"
NORMALIZATION_FAILED = "normalization_failed"
STAGE_MISMATCH = "stage_mismatch"
DUPLICATE = "duplicate"
UPSTREAM_ERROR = "upstream_error"
INVITATION_FAILED = "invitation_failed"


@dataclass
class WebhookOutcome:
    outcome: str
    invitation_id: str | None = None
    detail: str | None = None

    def to_response(self) -> dict:
        body = {"success": True, "outcome": self.outcome}
        if self.invitation_id:
            body["invitationId"] = self.invitation_id
        if self.detail:
            body["message"] = self.detail
        return body


async def handle_webhook(
    db: AsyncSession,
    provider: str,
    company_id: str | None,
    raw_body: bytes,
    headers: Mapping[str, str],
    *,
    client_factory: ClientFactory,
    email_sender: EmailSender,
    app_url: str,
    expires_in_hours: int = 72,
) -> WebhookOutcome:
    integration = get_integration(provider)
    if not company_id:
        raise ValidationError("company_id required")
    company = await get_company(db, company_id)
    if company is None:
        raise NotFound("Company not found")
    config = integration.settings_for(company)

    if not integration.verify_signature(raw_body, headers, config.secret):
        logger.warning("Invalid %s webhook signature for company %s", integration.name, company_id)
        raise AuthError("Invalid signature")

    try:
        payload = json.loads(raw_body or b"null")
    except ValueError:
        logger.warning("%s webhook body is not valid JSON", integration.display_name)
        return WebhookOutcome(NORMALIZATION_FAILED, detail="invalid JSON")

    if not config.enabled:
        logger.info("%s integration disabled for company %s", integration.display_name, company_id)
        return WebhookOutcome(INTEGRATION_DISABLED, detail="Integration disabled")

    event = integration.event_type(payload)
    if event not in integration.stage_change_events:
        if event in integration.informational_events:
            logger.info("%s event %s received for company %s", integration.display_name, event, company_id)
        return WebhookOutcome(IGNORED_EVENT, detail=f"Event {event} ignored")

    client = client_factory(integration, config.api_key) if config.api_key else None
    try:
        normalized = await integration.normalize_event(payload, client)
    except UpstreamProviderError as exc:
        logger.error("%s lookup failed while handling webhook: %s", integration.display_name, exc.message)
        return WebhookOutcome(UPSTREAM_ERROR, detail=exc.message)
    if isinstance(normalized, NormalizationFailure):
        logger.warning("Could not normalize %s webhook: %s", integration.display_name, normalized.reason)
        return WebhookOutcome(NORMALIZATION_FAILED, detail=normalized.reason)

    trigger = matcher.effective_trigger(config.trigger_stage)
    if not matcher.matches(normalized, trigger):
        logger.info(
            "Stage %r does not match trigger %r, skipping", normalized.current_stage_name, trigger
        )
        return WebhookOutcome(STAGE_MISMATCH, detail=f"Not the trigger stage ({trigger})")

    try:
        invitation = await issue_invitation(
            db,
            str(company.id),
            normalized.candidate_email,
            candidate_name=normalized.candidate_name,
            linkage=AtsLinkage(
                provider=integration.name,
                job_id=normalized.job_id,
                application_id=normalized.application_id,
                candidate_id=normalized.candidate_id,
                trigger_stage=trigger,
            ),
            assessment_type=company.default_assessment_type,
            expires_in_hours=expires_in_hours,
        )
    except PersistenceError as exc:
        logger.exception(
            "Could not store %s invitation for application %s",
            integration.display_name,
            normalized.application_id,
        )
        return WebhookOutcome(INVITATION_FAILED, detail=exc.message)
    if invitation is None:
        return WebhookOutcome(DUPLICATE, detail="Invitation already sent")
    await db.commit()

    logger.info(
        "Created %s invitation %s for %s", integration.display_name, invitation.id, invitation.candidate_email
    )
    await notify(email_sender, invitation, app_url, company_name=company.name, job_title=normalized.job_title)
    return WebhookOutcome(INVITATION_CREATED, invitation_id=str(invitation.id))
