"""Token generation and credential masking."""

import secrets

# 32 bytes = 256 bits of entropy, rendered as 64 hex characters
INVITATION_TOKEN_BYTES = 32
API_KEY_PREFIX = "tsk_"


def generate_invitation_token() -> str:
    return secrets.token_hex(INVITATION_TOKEN_BYTES)


def generate_api_key_value() -> str:
    return API_KEY_PREFIX + secrets.token_urlsafe(32)


def mask_secret(value: str | None) -> str | None:
    """Mask a credential for display: ``abcd...wxyz`` (``****`` when short)."""
    if not value:
        return None
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"
