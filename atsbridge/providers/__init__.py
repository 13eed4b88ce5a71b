"""ATS provider registry."""

from collections.abc import Callable

import httpx

from atsbridge.errors import NotFound
from atsbridge.providers.ashby import AshbyIntegration
from atsbridge.providers.base import ATSClient, ProviderIntegration
from atsbridge.providers.greenhouse import GreenhouseIntegration
from atsbridge.providers.lever import LeverIntegration

INTEGRATIONS: dict[str, ProviderIntegration] = {
    integration.name: integration
    for integration in (AshbyIntegration(), GreenhouseIntegration(), LeverIntegration())
}


def get_integration(provider: str) -> ProviderIntegration:
    integration = INTEGRATIONS.get(provider.lower())
    if integration is None:
        raise NotFound(f"Unknown ATS provider: {provider}")
    return integration


def client_factory(
    timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None
) -> Callable[[ProviderIntegration, str], ATSClient]:
    """Build API clients with a shared timeout (and transport, for tests)."""

    def build(integration: ProviderIntegration, api_key: str) -> ATSClient:
        return integration.client(api_key, timeout=timeout, transport=transport)

    return build


__all__ = ["ATSClient", "INTEGRATIONS", "ProviderIntegration", "client_factory", "get_integration"]
