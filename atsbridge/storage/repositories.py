"""Repository functions for companies, API keys, invitations and assessments.

Every outward-facing read takes the company id and filters on it.
Conditional updates (``... WHERE used_at IS NULL``, ``... WHERE
ats_webhook_sent = false``) are the atomic state transitions; callers check
the returned row count.
"""

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from atsbridge.models import ApiKey, Assessment, Company, Invitation
from atsbridge.utils.timeutils import utcnow


def _is_uuid(value: Any) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


async def get_company(db: AsyncSession, company_id: str) -> Company | None:
    """Find company by id. Malformed ids find nothing."""
    if not _is_uuid(company_id):
        return None
    result = await db.execute(select(Company).where(Company.id == company_id))
    return result.scalar_one_or_none()


async def update_company(db: AsyncSession, company_id: str, values: dict[str, Any]) -> None:
    if not values:
        return
    await db.execute(update(Company).where(Company.id == company_id).values(**values))


# API keys


async def get_api_key_by_hash(db: AsyncSession, key_hash: str) -> ApiKey | None:
    result = await db.execute(select(ApiKey).where(ApiKey.key_hash == key_hash))
    return result.scalar_one_or_none()


async def touch_api_key(db: AsyncSession, api_key_id: str) -> None:
    await db.execute(
        update(ApiKey).where(ApiKey.id == api_key_id).values(last_used_at=utcnow())
    )


async def create_api_key(
    db: AsyncSession, company_id: str, key_hash: str, key_prefix: str, name: str | None = None
) -> ApiKey:
    api_key = ApiKey(
        id=str(uuid4()),
        company_id=company_id,
        name=name,
        key_hash=key_hash,
        key_prefix=key_prefix,
    )
    db.add(api_key)
    await db.flush()
    return api_key


# Invitations


async def get_invitation_by_token(db: AsyncSession, token: str) -> Invitation | None:
    result = await db.execute(select(Invitation).where(Invitation.token == token))
    return result.scalar_one_or_none()


async def find_ats_invitation(
    db: AsyncSession,
    company_id: str,
    ats_provider: str,
    ats_application_id: str,
    trigger_stage: str,
) -> Invitation | None:
    """Existing webhook invitation for the dedup key, if any."""
    result = await db.execute(
        select(Invitation).where(
            Invitation.company_id == company_id,
            Invitation.ats_provider == ats_provider,
            Invitation.ats_application_id == ats_application_id,
            Invitation.ats_trigger_stage == trigger_stage,
        )
    )
    return result.scalars().first()


async def list_invitations(
    db: AsyncSession,
    company_id: str,
    status: str | None = None,
    limit: int = 50,
    now: datetime | None = None,
) -> list[Invitation]:
    """List invitations (tenant-scoped), newest first, filtered by derived status."""
    now = now or utcnow()
    query = select(Invitation).where(Invitation.company_id == company_id)
    if status == "pending":
        query = query.where(Invitation.used_at.is_(None), Invitation.expires_at >= now)
    elif status == "used":
        query = query.where(Invitation.used_at.is_not(None))
    elif status == "expired":
        query = query.where(Invitation.used_at.is_(None), Invitation.expires_at < now)
    query = query.order_by(Invitation.created_at.desc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def mark_invitation_used(db: AsyncSession, token: str, now: datetime) -> bool:
    """Atomically redeem a pending, unexpired invitation. False if no row qualified."""
    result = await db.execute(
        update(Invitation)
        .where(
            Invitation.token == token,
            Invitation.used_at.is_(None),
            Invitation.expires_at > now,
        )
        .values(used_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# Assessments


async def get_assessment(
    db: AsyncSession, assessment_id: str, company_id: str | None = None
) -> Assessment | None:
    """Get assessment by id, tenant-scoped when a company id is given."""
    if not _is_uuid(assessment_id):
        return None
    query = select(Assessment).where(Assessment.id == assessment_id)
    if company_id is not None:
        query = query.where(Assessment.company_id == company_id)
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def list_assessments(
    db: AsyncSession,
    company_id: str,
    since: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Assessment]:
    query = select(Assessment).where(Assessment.company_id == company_id)
    if since is not None:
        query = query.where(Assessment.created_at >= since)
    query = query.order_by(Assessment.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_unsynced_assessments(
    db: AsyncSession,
    company_id: str,
    target_columns: Mapping[str, str],
    provider: str | None = None,
    limit: int = 50,
    lease: timedelta = timedelta(minutes=2),
) -> list[Assessment]:
    """Unsynced assessments with ATS linkage and no live sync claim, oldest first.

    ``target_columns`` maps each provider to the column its result note is
    written against; rows missing that id are never returned.
    """
    now = utcnow()
    linked = [
        and_(
            Assessment.ats_provider == name,
            getattr(Assessment, column).is_not(None),
            getattr(Assessment, column) != "",
        )
        for name, column in target_columns.items()
    ]
    query = select(Assessment).where(
        Assessment.company_id == company_id,
        Assessment.ats_webhook_sent.is_(False),
        or_(*linked),
        or_(
            Assessment.ats_sync_claimed_at.is_(None),
            Assessment.ats_sync_claimed_at < now - lease,
        ),
    )
    if provider is not None:
        query = query.where(Assessment.ats_provider == provider)
    query = query.order_by(Assessment.created_at.asc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def claim_assessment_sync(
    db: AsyncSession, assessment_id: str, now: datetime, lease: timedelta
) -> bool:
    """Take the in-flight sync claim. False if synced or claimed by someone else."""
    result = await db.execute(
        update(Assessment)
        .where(
            Assessment.id == assessment_id,
            Assessment.ats_webhook_sent.is_(False),
            or_(
                Assessment.ats_sync_claimed_at.is_(None),
                Assessment.ats_sync_claimed_at < now - lease,
            ),
        )
        .values(ats_sync_claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def release_assessment_sync(db: AsyncSession, assessment_id: str) -> None:
    await db.execute(
        update(Assessment)
        .where(Assessment.id == assessment_id, Assessment.ats_webhook_sent.is_(False))
        .values(ats_sync_claimed_at=None)
        .execution_options(synchronize_session=False)
    )


async def mark_assessment_synced(db: AsyncSession, assessment_id: str, now: datetime) -> bool:
    """UNSYNCED -> SYNCED. Only called after a confirmed provider write."""
    result = await db.execute(
        update(Assessment)
        .where(Assessment.id == assessment_id, Assessment.ats_webhook_sent.is_(False))
        .values(ats_webhook_sent=True, ats_webhook_sent_at=now, ats_sync_claimed_at=None)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def get_sync_state(db: AsyncSession, assessment_id: str) -> tuple[bool, datetime | None] | None:
    """Fresh read of the idempotency marker, bypassing the identity map."""
    result = await db.execute(
        select(Assessment.ats_webhook_sent, Assessment.ats_webhook_sent_at).where(
            Assessment.id == assessment_id
        )
    )
    row = result.one_or_none()
    return (bool(row[0]), row[1]) if row else None
