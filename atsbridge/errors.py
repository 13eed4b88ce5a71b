"""Error taxonomy shared by the engine and the HTTP layer.

Every raised error carries the HTTP status it maps to, so the API boundary
renders ``{"error": message}`` from one exception handler instead of each
route catching and translating on its own. ``NormalizationFailure`` is not
here: it is a returned value (see ``atsbridge.schemas.events``).
"""

from fastapi import status


class IntegrationError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthError(IntegrationError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(IntegrationError):
    status_code = status.HTTP_404_NOT_FOUND


class InvitationGone(IntegrationError):
    """Invitation exists but can no longer be used (410)."""

    status_code = status.HTTP_410_GONE

    EXPIRED = "expired"
    ALREADY_USED = "already_used"

    def __init__(self, reason: str):
        message = (
            "This invitation has already been used"
            if reason == self.ALREADY_USED
            else "This invitation has expired"
        )
        super().__init__(message)
        self.reason = reason


class ValidationError(IntegrationError):
    status_code = status.HTTP_400_BAD_REQUEST


class MissingLinkage(ValidationError):
    """Assessment has no ATS provider/candidate linkage; sync is not retryable."""


class IntegrationNotConfigured(ValidationError):
    pass


class UpstreamProviderError(IntegrationError):
    """An ATS API call failed (non-2xx, transport error or timeout)."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        provider: str,
        upstream_status: int | None,
        body: str,
        status_code: int | None = None,
    ):
        if upstream_status is None:
            message = f"{provider.title()} API error: {body}"
        else:
            message = f"{provider.title()} API error ({upstream_status}): {body}"
        super().__init__(message, status_code=status_code)
        self.provider = provider
        self.upstream_status = upstream_status
        self.body = body


class PersistenceError(IntegrationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
