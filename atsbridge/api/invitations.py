"""Invitation endpoints - outward API and public token validation."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from atsbridge.api.deps import EmailSenderDep, SettingsDep
from atsbridge.auth.middleware import AuthHeaderDep, CompanyIdDep, resolve_company_id
from atsbridge.database import get_db
from atsbridge.engine.invitations import (
    AtsLinkage,
    assessment_url,
    invitation_status,
    issue_invitation,
    notify,
    validate_token,
)
from atsbridge.errors import NotFound
from atsbridge.models import Invitation
from atsbridge.schemas.invitations import CreateInvitationRequest, InvitationOut, InvitationSummary
from atsbridge.storage.repositories import get_company, list_invitations
from atsbridge.utils.timeutils import as_utc, utcnow

router = APIRouter()
public_router = APIRouter()

MAX_LIST_LIMIT = 100


def invitation_out(invitation: Invitation, app_url: str) -> dict:
    return InvitationOut(
        id=str(invitation.id),
        token=invitation.token,
        assessment_url=assessment_url(app_url, invitation.token),
        candidate_email=invitation.candidate_email,
        candidate_name=invitation.candidate_name,
        assessment_type=invitation.assessment_type,
        status=invitation_status(invitation),
        expires_at=as_utc(invitation.expires_at),
        used_at=as_utc(invitation.used_at),
        created_at=as_utc(invitation.created_at),
        assessment_id=str(invitation.assessment_id) if invitation.assessment_id else None,
        ats_provider=invitation.ats_provider,
        ats_job_id=invitation.ats_job_id,
        ats_application_id=invitation.ats_application_id,
        ats_candidate_id=invitation.ats_candidate_id,
    ).model_dump(by_alias=True, mode="json")


@router.post("/invitations")
async def create_invitation(
    body: CreateInvitationRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_header: AuthHeaderDep,
    settings: SettingsDep,
    email_sender: EmailSenderDep,
):
    """
    Create an assessment invitation.
    Authenticated by API key, or dashboard mode (no header, company_id in body).
    """
    company_id = await resolve_company_id(
        db, auth_header, body.company_id, settings.api_key_hash_salt
    )
    company = await get_company(db, company_id)
    if company is None:
        raise NotFound("Company not found")

    invitation = await issue_invitation(
        db,
        company_id,
        str(body.candidate_email),
        candidate_name=body.candidate_name,
        linkage=AtsLinkage(job_id=body.ats_job_id, application_id=body.ats_application_id),
        assessment_type=body.assessment_type or company.default_assessment_type,
        expires_in_hours=body.expires_in_hours or settings.invitation_expiry_hours,
    )
    await db.commit()

    email_sent = False
    if body.send_email:
        email_sent = await notify(email_sender, invitation, settings.app_url, company_name=company.name)
    return {
        "success": True,
        "invitation": invitation_out(invitation, settings.app_url),
        "emailSent": email_sent,
    }


@router.get("/invitations")
async def get_invitations(
    company_id: CompanyIdDep,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: SettingsDep,
    status: Literal["pending", "used", "expired"] | None = None,
    limit: int = Query(50, ge=1),
):
    """List invitations (tenant-scoped), newest first."""
    invitations = await list_invitations(
        db, company_id, status=status, limit=min(limit, MAX_LIST_LIMIT), now=utcnow()
    )
    return {"invitations": [invitation_out(inv, settings.app_url) for inv in invitations]}


@public_router.get("/invitations/validate")
async def validate_invitation(
    db: Annotated[AsyncSession, Depends(get_db)],
    token: str | None = None,
):
    """Check an invitation link before the candidate starts. Public."""
    invitation = await validate_token(db, token)
    summary = InvitationSummary(
        id=str(invitation.id),
        candidate_email=invitation.candidate_email,
        candidate_name=invitation.candidate_name,
        company_id=str(invitation.company_id),
        assessment_type=invitation.assessment_type,
        expires_at=as_utc(invitation.expires_at),
        ats_job_id=invitation.ats_job_id,
        ats_application_id=invitation.ats_application_id,
    )
    return {"invitation": summary.model_dump(mode="json")}
