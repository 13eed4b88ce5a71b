"""Database models."""

from atsbridge.models.api_key import ApiKey
from atsbridge.models.assessment import Assessment
from atsbridge.models.company import Company
from atsbridge.models.invitation import Invitation

__all__ = ["ApiKey", "Assessment", "Company", "Invitation"]
