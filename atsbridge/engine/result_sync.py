"""Push completed assessment results back to the ATS as a note.

Per assessment the push-back state is::

    UNSYNCED --(note written)--> SYNCED
    UNSYNCED --(write fails)---> UNSYNCED   error surfaced, retryable
    SYNCED   --(sync again)----> SYNCED     no-op, already_synced

``ats_webhook_sent`` is only set after the provider confirmed the write. A
short-lived claim (``ats_sync_claimed_at``) is committed before the network
call so two concurrent syncs of one assessment write at most one note.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from atsbridge.errors import (
    IntegrationError,
    IntegrationNotConfigured,
    MissingLinkage,
    NotFound,
)
from atsbridge.models import Assessment
from atsbridge.providers import INTEGRATIONS, ATSClient, ProviderIntegration, get_integration
from atsbridge.storage.repositories import (
    claim_assessment_sync,
    get_assessment,
    get_company,
    get_sync_state,
    list_unsynced_assessments,
    mark_assessment_synced,
    release_assessment_sync,
)
from atsbridge.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

ClientFactory = Callable[[ProviderIntegration, str], ATSClient]

DEFAULT_LEASE = timedelta(seconds=120)


def score_marker(score: int) -> str:
    if score >= 80:
        return "🟢"
    if score >= 60:
        return "🟡"
    return "🔴"


def format_result_note(assessment: Assessment, app_url: str | None = None) -> str:
    """Markdown note written to the ATS."""

    def line(label: str, score: int) -> str:
        return f"- **{label}:** {score_marker(score)} {score}/100"

    minutes = int((assessment.duration_seconds or 0) / 60 + 0.5)
    lines = [
        "## 🎯 Telescopic AI Literacy Assessment Results",
        "",
        f"**Candidate:** {assessment.candidate_name}",
        f"**Overall Score:** {score_marker(assessment.overall_score)} {assessment.overall_score}/100",
        "",
        "### Breakdown:",
        line("Prompt Quality", assessment.prompt_quality_score),
        line("Context Usage", assessment.context_score),
        line("Iteration Skills", assessment.iteration_score),
        line("Efficiency", assessment.efficiency_score),
        "",
        "### Summary:",
        assessment.summary or "No summary available.",
        "",
        "---",
        f"⏱️ Duration: {minutes} minutes",
    ]
    if app_url:
        lines.append(f"🔗 [View Full Results]({app_url.rstrip('/')}/results/{assessment.id})")
    return "\n".join(lines)


@dataclass
class SyncResult:
    synced: bool
    already_synced: bool = False
    in_progress: bool = False
    synced_at: datetime | None = None


@dataclass
class BulkSyncResult:
    synced: int = 0
    total: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)


async def sync_assessment(
    db: AsyncSession,
    assessment_id: str,
    client_factory: ClientFactory,
    company_id: str | None = None,
    app_url: str | None = None,
    lease: timedelta = DEFAULT_LEASE,
    provider: str | None = None,
) -> SyncResult:
    """Write the result note for one assessment, at most once.

    Commits the session: once after taking the claim and once after
    recording the outcome.
    """
    assessment = await get_assessment(db, assessment_id, company_id)
    if assessment is None:
        raise NotFound("Assessment not found")
    if assessment.ats_webhook_sent:
        return SyncResult(
            synced=True, already_synced=True, synced_at=as_utc(assessment.ats_webhook_sent_at)
        )
    if not assessment.ats_provider:
        raise MissingLinkage("Assessment is not linked to an ATS")
    if provider is not None and assessment.ats_provider != provider:
        raise MissingLinkage(f"Assessment is not linked to {get_integration(provider).display_name}")

    integration = get_integration(assessment.ats_provider)
    target_id = integration.result_target_id(assessment)
    if not target_id:
        raise MissingLinkage(
            f"No {integration.display_name} {integration.note_target} ID linked to this assessment"
        )
    company = await get_company(db, str(assessment.company_id))
    api_key = integration.settings_for(company).api_key if company else None
    if not api_key:
        raise IntegrationNotConfigured(
            f"Company {integration.display_name} API key not configured"
        )
    note = format_result_note(assessment, app_url)

    claimed = await claim_assessment_sync(db, assessment_id, utcnow(), lease)
    await db.commit()
    if not claimed:
        state = await get_sync_state(db, assessment_id)
        if state and state[0]:
            return SyncResult(synced=True, already_synced=True, synced_at=as_utc(state[1]))
        logger.info("Sync of assessment %s already in progress", assessment_id)
        return SyncResult(synced=False, in_progress=True)

    client = client_factory(integration, api_key)
    try:
        await integration.write_result_note(client, target_id, note)
    except Exception:
        logger.exception(
            "Failed to push assessment %s to %s", assessment_id, integration.display_name
        )
        await release_assessment_sync(db, assessment_id)
        await db.commit()
        raise

    synced_at = utcnow()
    await mark_assessment_synced(db, assessment_id, synced_at)
    await db.commit()
    logger.info(
        "Assessment %s synced to %s %s %s",
        assessment_id,
        integration.display_name,
        integration.note_target,
        target_id,
    )
    return SyncResult(synced=True, synced_at=synced_at)


async def bulk_sync(
    db: AsyncSession,
    company_id: str,
    client_factory: ClientFactory,
    provider: str | None = None,
    batch_size: int = 50,
    app_url: str | None = None,
    lease: timedelta = DEFAULT_LEASE,
) -> BulkSyncResult:
    """Sync one batch of unsynced assessments. One failure never stops the batch."""
    if provider is not None:
        integration = get_integration(provider)
        company = await get_company(db, company_id)
        if company is None:
            raise NotFound("Company not found")
        if not integration.settings_for(company).api_key:
            raise IntegrationNotConfigured(f"{integration.display_name} API key not configured")

    target_columns = {name: i.note_target_column for name, i in INTEGRATIONS.items()}
    assessments = await list_unsynced_assessments(
        db, company_id, target_columns, provider=provider, limit=batch_size, lease=lease
    )
    ids = [str(a.id) for a in assessments]
    result = BulkSyncResult(total=len(ids))
    for assessment_id in ids:
        try:
            outcome = await sync_assessment(
                db,
                assessment_id,
                client_factory,
                company_id=company_id,
                app_url=app_url,
                lease=lease,
                provider=provider,
            )
        except IntegrationError as exc:
            result.errors.append({"assessmentId": assessment_id, "error": exc.message})
            continue
        if outcome.synced and not outcome.already_synced:
            result.synced += 1
    return result
