"""API key authentication middleware."""

import hashlib
import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from atsbridge.api.deps import SettingsDep
from atsbridge.config import settings as default_settings
from atsbridge.database import get_db
from atsbridge.errors import AuthError, NotFound
from atsbridge.storage.repositories import get_api_key_by_hash, get_company, touch_api_key
from atsbridge.utils.tokens import generate_api_key_value

logger = logging.getLogger(__name__)

API_KEY_HEADER = APIKeyHeader(name="Authorization", auto_error=False)
INVALID_API_KEY = "Invalid or missing API key"


def hash_api_key(api_key: str, salt: str | None = None) -> str:
    """Hash API key with salt for storage/lookup."""
    salt = default_settings.api_key_hash_salt if salt is None else salt
    return hashlib.sha256(f"{salt}:{api_key}".encode()).hexdigest()


def generate_api_key() -> tuple[str, str, str]:
    """New API key as (plaintext, display prefix, hash). Plaintext is shown once."""
    plaintext = generate_api_key_value()
    return plaintext, plaintext[:8], hash_api_key(plaintext)


def _bearer_token(auth_header: str | None) -> str | None:
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


async def authenticate(
    db: AsyncSession, auth_header: str | None, salt: str | None = None
) -> str | None:
    """Resolve a Bearer API key to its company id, or None."""
    api_key = _bearer_token(auth_header)
    if not api_key:
        return None
    record = await get_api_key_by_hash(db, hash_api_key(api_key, salt))
    if record is None:
        return None
    try:
        async with db.begin_nested():
            await touch_api_key(db, record.id)
    except Exception:
        logger.exception("Failed to update last_used_at for API key %s", record.key_prefix)
    return str(record.company_id)


async def get_company_id_from_bearer(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: SettingsDep,
    auth_header: str | None = Depends(API_KEY_HEADER),
) -> str:
    """Extract company id from Bearer token (API key)."""
    company_id = await authenticate(db, auth_header, settings.api_key_hash_salt)
    if company_id is None:
        raise AuthError(INVALID_API_KEY)
    return company_id


async def resolve_company_id(
    db: AsyncSession,
    auth_header: str | None,
    body_company_id: str | None,
    salt: str | None = None,
) -> str:
    """Bearer key when present, else dashboard mode with a company id in the body.

    Dashboard mode trusts the caller's company id once it names a real company.
    """
    if auth_header:
        company_id = await authenticate(db, auth_header, salt)
        if company_id is None:
            raise AuthError(INVALID_API_KEY)
        return company_id
    if not body_company_id:
        raise AuthError(INVALID_API_KEY)
    company = await get_company(db, body_company_id)
    if company is None:
        raise NotFound("Company not found")
    return str(company.id)


# Type alias for dependency injection
CompanyIdDep = Annotated[str, Depends(get_company_id_from_bearer)]
AuthHeaderDep = Annotated[str | None, Depends(API_KEY_HEADER)]
