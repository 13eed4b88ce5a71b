"""Ashby API client and integration.

Docs: https://developers.ashbyhq.com/reference
"""

from typing import Any

from atsbridge.engine.signatures import ASHBY_SCHEME
from atsbridge.errors import UpstreamProviderError
from atsbridge.providers.base import ATSClient, CompanyColumns, Page, ProviderIntegration


class AshbyClient(ATSClient):
    """Ashby uses POST for every endpoint, RPC style: ``POST /{method}``."""

    provider = "ashby"
    base_url = "https://api.ashbyhq.com"

    async def _call(self, method: str, body: dict[str, Any] | None = None) -> Any:
        payload = {k: v for k, v in (body or {}).items() if v is not None}
        data = await self._send("POST", f"/{method}", json=payload)
        if not isinstance(data, dict) or not data.get("success"):
            errors = data.get("errors") if isinstance(data, dict) else None
            detail = ", ".join(str(e) for e in errors) if errors else "Unknown error"
            raise UpstreamProviderError(self.provider, None, detail)
        return data

    # API key

    async def get_api_key_info(self) -> dict[str, Any]:
        return (await self._call("apiKey.info"))["results"]

    async def _probe(self) -> None:
        await self.get_api_key_info()

    # Candidates

    async def get_candidate(self, candidate_id: str) -> dict[str, Any]:
        return (await self._call("candidate.info", {"candidateId": candidate_id}))["results"]

    async def search_candidates(self, email: str) -> list[dict[str, Any]]:
        return (await self._call("candidate.search", {"email": email}))["results"]

    async def write_note(self, target_id: str, text: str) -> None:
        await self._call(
            "candidate.createNote",
            {"candidateId": target_id, "note": text, "sendNotification": False},
        )

    # Applications

    async def get_application(self, application_id: str) -> dict[str, Any]:
        return (await self._call("application.info", {"applicationId": application_id}))["results"]

    # Jobs

    async def list_jobs(
        self, cursor: str | None = None, status: str | None = None, per_page: int = 100
    ) -> Page:
        data = await self._call(
            "job.list", {"cursor": cursor, "per_page": per_page, "status": status}
        )
        next_cursor = data.get("nextCursor") if data.get("moreDataAvailable", True) else None
        return Page(items=data.get("results") or [], next_cursor=next_cursor)


class AshbyIntegration(ProviderIntegration):
    name = "ashby"
    display_name = "Ashby"
    client_class = AshbyClient
    signature_scheme = ASHBY_SCHEME
    columns = CompanyColumns(
        api_key="ashby_api_key",
        secret="ashby_secret_key",
        trigger_stage="ashby_trigger_stage",
        enabled="ashby_enabled",
    )
    event_type_keys = ("action", "eventType", "type", "event")
    stage_change_events = frozenset(
        {"candidateStageChange", "applicationStageChanged", "application.stage.changed"}
    )
    informational_events = frozenset({"candidateHired", "candidateArchived"})
    secret_label = "secret"
    setup_steps = (
        "Go to Ashby > Admin > Integrations > Webhooks",
        'Click "Add Webhook"',
        "Set URL to: {webhook_url}",
        'Select events: "Application Stage Changed"',
    )
