"""Invitation issuing, validation and redemption.

An invitation is single-use and expiring. Status is derived, never stored:

    pending  -- used_at is NULL and expires_at >= now
    used     -- used_at is set
    expired  -- used_at is NULL and expires_at < now

Redemption is one conditional UPDATE so two concurrent submissions with the
same token cannot both succeed.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from atsbridge.errors import InvitationGone, NotFound, PersistenceError, ValidationError
from atsbridge.models import Invitation
from atsbridge.notifications.email import EmailSender
from atsbridge.storage.repositories import (
    find_ats_invitation,
    get_invitation_by_token,
    mark_invitation_used,
)
from atsbridge.utils.timeutils import as_utc, utcnow
from atsbridge.utils.tokens import generate_invitation_token

logger = logging.getLogger(__name__)

PENDING = "pending"
USED = "used"
EXPIRED = "expired"

MIN_EXPIRY_HOURS = 1
MAX_EXPIRY_HOURS = 720


@dataclass(frozen=True)
class AtsLinkage:
    """Where an invitation came from in the ATS."""

    provider: str | None = None
    job_id: str | None = None
    application_id: str | None = None
    candidate_id: str | None = None
    # Set on webhook invitations only; completes the dedup key
    trigger_stage: str | None = None

    @property
    def dedup_key_complete(self) -> bool:
        return bool(self.provider and self.application_id and self.trigger_stage)


def invitation_status(invitation: Invitation, now: datetime | None = None) -> str:
    now = now or utcnow()
    if invitation.used_at is not None:
        return USED
    if as_utc(invitation.expires_at) < now:
        return EXPIRED
    return PENDING


def assessment_url(app_url: str, token: str) -> str:
    return f"{app_url.rstrip('/')}/assess/{token}"


async def issue_invitation(
    db: AsyncSession,
    company_id: str,
    candidate_email: str,
    candidate_name: str | None = None,
    linkage: AtsLinkage | None = None,
    assessment_type: str | None = None,
    expires_in_hours: int = 72,
) -> Invitation | None:
    """Create a pending invitation with a fresh token.

    For webhook invitations (linkage with provider, application id and
    trigger stage) returns None when one already exists for that key.
    """
    if not MIN_EXPIRY_HOURS <= expires_in_hours <= MAX_EXPIRY_HOURS:
        raise ValidationError(
            f"expiresInHours must be between {MIN_EXPIRY_HOURS} and {MAX_EXPIRY_HOURS}"
        )
    linkage = linkage or AtsLinkage()
    dedup = linkage.dedup_key_complete

    if dedup:
        existing = await find_ats_invitation(
            db, company_id, linkage.provider, linkage.application_id, linkage.trigger_stage
        )
        if existing is not None:
            logger.info(
                "Invitation already issued for %s application %s at stage %s",
                linkage.provider,
                linkage.application_id,
                linkage.trigger_stage,
            )
            return None

    now = utcnow()
    invitation = Invitation(
        id=str(uuid4()),
        company_id=company_id,
        token=generate_invitation_token(),
        candidate_email=candidate_email,
        candidate_name=candidate_name or None,
        assessment_type=assessment_type,
        expires_at=now + timedelta(hours=expires_in_hours),
        ats_provider=linkage.provider,
        ats_job_id=linkage.job_id or None,
        ats_application_id=linkage.application_id or None,
        ats_candidate_id=linkage.candidate_id or None,
        ats_trigger_stage=linkage.trigger_stage if dedup else None,
        created_at=now,
    )
    try:
        # Savepoint: losing a race on the dedup constraint must not poison the session
        async with db.begin_nested():
            db.add(invitation)
            await db.flush()
    except IntegrityError as exc:
        if dedup:
            logger.info(
                "Concurrent duplicate invitation for %s application %s suppressed",
                linkage.provider,
                linkage.application_id,
            )
            return None
        raise PersistenceError("Failed to create invitation") from exc
    return invitation


async def validate_token(db: AsyncSession, token: str | None, now: datetime | None = None) -> Invitation:
    """Return the invitation if it is pending; raise otherwise."""
    if not token:
        raise ValidationError("Token required")
    invitation = await get_invitation_by_token(db, token)
    if invitation is None:
        raise NotFound("Invalid invitation link")
    status = invitation_status(invitation, now)
    if status == USED:
        raise InvitationGone(InvitationGone.ALREADY_USED)
    if status == EXPIRED:
        raise InvitationGone(InvitationGone.EXPIRED)
    return invitation


async def redeem_invitation(db: AsyncSession, token: str, now: datetime | None = None) -> Invitation:
    """Atomically mark an invitation used. At most one caller ever succeeds."""
    now = now or utcnow()
    if await mark_invitation_used(db, token, now):
        invitation = await get_invitation_by_token(db, token)
        invitation.used_at = now
        return invitation
    # Nothing redeemed; report why
    await validate_token(db, token, now)
    raise InvitationGone(InvitationGone.ALREADY_USED)


async def notify(
    email_sender: EmailSender,
    invitation: Invitation,
    app_url: str,
    company_name: str | None = None,
    job_title: str | None = None,
) -> bool:
    """Send the invitation email. Failures are logged, never raised."""
    try:
        await email_sender.send_invite(
            invitation.candidate_email,
            invitation.candidate_name,
            assessment_url(app_url, invitation.token),
            as_utc(invitation.expires_at),
            company_name=company_name,
            job_title=job_title,
        )
    except Exception:
        logger.exception("Failed to send invitation email to %s", invitation.candidate_email)
        return False
    return True
