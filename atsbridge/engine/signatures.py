"""Webhook signature verification.

Each provider signs differently, so the scheme is configuration
(``SignatureScheme``) rather than a shared constant. Verification always runs
on the raw request body: re-serializing parsed JSON is not byte-identical.
"""

import hashlib
import hmac
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureScheme:
    """How one provider signs its webhooks."""

    provider: str
    # Checked in order; the first header present wins
    header_names: tuple[str, ...] = ()
    # Accepted textual prefixes in front of the hex digest
    prefixes: tuple[str, ...] = ()
    # A bare hex digest without one of the prefixes is rejected
    prefix_required: bool = False
    digestmod: Callable = field(default=hashlib.sha256)
    # Signature and token carried inside the JSON body instead of a header
    inline: bool = False

    def header_value(self, headers: Mapping[str, str]) -> str | None:
        for name in self.header_names:
            value = headers.get(name)
            if value:
                return value
        return None


ASHBY_SCHEME = SignatureScheme(
    provider="ashby",
    header_names=("x-ashby-signature", "signature"),
    prefixes=("sha256=",),
)

GREENHOUSE_SCHEME = SignatureScheme(
    provider="greenhouse",
    header_names=("signature",),
    prefixes=("sha256=", "sha256 "),
    prefix_required=True,
)

LEVER_SCHEME = SignatureScheme(provider="lever", inline=True)


def compute_signature(scheme: SignatureScheme, message: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), message, scheme.digestmod).hexdigest()


def _strip_prefix(scheme: SignatureScheme, value: str) -> str | None:
    value = value.strip()
    for prefix in scheme.prefixes:
        if value.lower().startswith(prefix):
            return value[len(prefix):].strip()
    return None if scheme.prefix_required else value


def _inline_candidates(raw_body: bytes) -> tuple[str | None, list[bytes]]:
    """Extract (signature, signed messages) from a body-signed payload."""
    try:
        body = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return None, []
    if not isinstance(body, dict):
        return None, []
    signature = body.get("signature")
    token = body.get("token")
    if not isinstance(signature, str) or not isinstance(token, str):
        return None, []
    messages = []
    triggered_at = body.get("triggeredAt")
    if triggered_at is not None:
        messages.append(f"{token}{triggered_at}".encode("utf-8"))
    messages.append(token.encode("utf-8"))
    return signature, messages


def verify(
    scheme: SignatureScheme,
    raw_body: bytes,
    header_value: str | None,
    secret: str | None,
) -> bool:
    """Return True if the webhook is authentic for ``secret``.

    With no secret configured verification is skipped and the webhook is
    accepted: an unconfigured integration trusts unsigned deliveries.
    With a secret configured a missing signature is a failure.
    """
    if not secret:
        logger.info("No %s webhook secret configured, skipping signature check", scheme.provider)
        return True

    if scheme.inline:
        presented, messages = _inline_candidates(raw_body)
    else:
        presented = _strip_prefix(scheme, header_value) if header_value else None
        messages = [raw_body]

    if not presented or not messages:
        logger.warning("Missing %s webhook signature", scheme.provider)
        return False

    presented = presented.lower()
    if not presented.isascii():
        return False
    matched = False
    for message in messages:
        expected = compute_signature(scheme, message, secret)
        # No early exit: every candidate is compared
        matched |= hmac.compare_digest(expected, presented)
    return matched
