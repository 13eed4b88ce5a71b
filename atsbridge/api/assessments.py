"""Assessment endpoints - candidate submission and outward listing."""

import logging
from datetime import datetime
from typing import Annotated
from uuid import uuid4

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from atsbridge.api.deps import ClientFactoryDep, SettingsDep
from atsbridge.auth.middleware import CompanyIdDep
from atsbridge.database import get_db
from atsbridge.engine.invitations import redeem_invitation
from atsbridge.engine.result_sync import sync_assessment
from atsbridge.errors import IntegrationError
from atsbridge.models import Assessment
from atsbridge.providers import get_integration
from atsbridge.schemas.assessments import SubmitAssessmentRequest
from atsbridge.storage.repositories import get_company, list_assessments
from atsbridge.utils.timeutils import as_utc, isoformat

logger = logging.getLogger(__name__)

router = APIRouter()
public_router = APIRouter()

MAX_LIST_LIMIT = 100


def assessment_out(assessment: Assessment) -> dict:
    return {
        "id": str(assessment.id),
        "company_id": str(assessment.company_id),
        "invitation_id": str(assessment.invitation_id) if assessment.invitation_id else None,
        "candidate_name": assessment.candidate_name,
        "candidate_email": assessment.candidate_email,
        "assessment_type": assessment.assessment_type,
        "task": assessment.task,
        "duration_seconds": assessment.duration_seconds,
        "message_count": assessment.message_count,
        "overall_score": assessment.overall_score,
        "prompt_quality_score": assessment.prompt_quality_score,
        "prompt_quality_feedback": assessment.prompt_quality_feedback,
        "context_score": assessment.context_score,
        "context_feedback": assessment.context_feedback,
        "iteration_score": assessment.iteration_score,
        "iteration_feedback": assessment.iteration_feedback,
        "efficiency_score": assessment.efficiency_score,
        "efficiency_feedback": assessment.efficiency_feedback,
        "summary": assessment.summary,
        "ats_provider": assessment.ats_provider,
        "ats_job_id": assessment.ats_job_id,
        "ats_application_id": assessment.ats_application_id,
        "ats_candidate_id": assessment.ats_candidate_id,
        "ats_webhook_sent": assessment.ats_webhook_sent,
        "ats_webhook_sent_at": isoformat(assessment.ats_webhook_sent_at),
        "created_at": isoformat(assessment.created_at),
    }


@router.get("/assessments")
async def get_assessments(
    company_id: CompanyIdDep,
    db: Annotated[AsyncSession, Depends(get_db)],
    since: datetime | None = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
):
    """List completed assessments (tenant-scoped), newest first."""
    limit = min(limit, MAX_LIST_LIMIT)
    assessments = await list_assessments(
        db, company_id, since=as_utc(since), limit=limit, offset=offset
    )
    return {
        "assessments": [assessment_out(a) for a in assessments],
        "pagination": {"limit": limit, "offset": offset, "count": len(assessments)},
    }


@public_router.post("/assessments")
async def submit_assessment(
    body: SubmitAssessmentRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: SettingsDep,
    client_factory: ClientFactoryDep,
):
    """
    Store a completed assessment against its invitation.
    The invitation is redeemed atomically; results are pushed to the ATS
    straight away when the company's integration is enabled.
    """
    invitation = await redeem_invitation(db, body.invitation_token)
    analysis = body.analysis
    assessment = Assessment(
        id=str(uuid4()),
        company_id=invitation.company_id,
        invitation_id=invitation.id,
        candidate_name=body.candidate_name or invitation.candidate_name or invitation.candidate_email,
        candidate_email=body.candidate_email or invitation.candidate_email,
        assessment_type=invitation.assessment_type,
        task=body.task,
        duration_seconds=body.duration,
        message_count=len(body.messages),
        overall_score=analysis.score,
        prompt_quality_score=analysis.prompt_quality.score,
        prompt_quality_feedback=analysis.prompt_quality.feedback,
        context_score=analysis.context_provided.score,
        context_feedback=analysis.context_provided.feedback,
        iteration_score=analysis.iteration.score,
        iteration_feedback=analysis.iteration.feedback,
        efficiency_score=analysis.efficiency.score,
        efficiency_feedback=analysis.efficiency.feedback,
        summary=analysis.summary,
        transcript=body.messages,
        ats_provider=invitation.ats_provider,
        ats_job_id=invitation.ats_job_id,
        ats_application_id=invitation.ats_application_id,
        ats_candidate_id=invitation.ats_candidate_id,
    )
    db.add(assessment)
    await db.flush()
    invitation.assessment_id = assessment.id
    assessment_id = str(assessment.id)
    provider = assessment.ats_provider
    await db.commit()

    synced = False
    if provider:
        integration = get_integration(provider)
        company = await get_company(db, str(invitation.company_id))
        if company is not None and integration.settings_for(company).enabled:
            try:
                result = await sync_assessment(
                    db,
                    assessment_id,
                    client_factory,
                    app_url=settings.app_url,
                    lease=settings.sync_claim_lease,
                )
                synced = result.synced
            except IntegrationError as exc:
                # Stays unsynced; picked up by a later bulk sync
                logger.warning("Immediate sync of assessment %s failed: %s", assessment_id, exc.message)

    return {"success": True, "id": assessment_id, "synced": synced}
