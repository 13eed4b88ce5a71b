"""Greenhouse Harvest API client and integration.

Docs: https://developers.greenhouse.io/harvest.html
"""

from typing import Any

import httpx

from atsbridge.engine.signatures import GREENHOUSE_SCHEME
from atsbridge.providers.base import ATSClient, CompanyColumns, Page, ProviderIntegration

NOTE_VISIBILITIES = ("admin_only", "private", "public")


class GreenhouseClient(ATSClient):
    provider = "greenhouse"
    base_url = "https://harvest.greenhouse.io/v1"

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        on_behalf_of: str | None = None,
    ):
        super().__init__(api_key, timeout=timeout, transport=transport)
        # Harvest attributes writes to this user id
        self.on_behalf_of = on_behalf_of

    def _write_headers(self) -> dict[str, str]:
        return {"On-Behalf-Of": str(self.on_behalf_of)} if self.on_behalf_of else {}

    async def get_candidate(self, candidate_id: str) -> dict[str, Any]:
        return await self._send("GET", f"/candidates/{candidate_id}")

    async def get_candidate_by_email(self, email: str) -> dict[str, Any] | None:
        candidates = await self._send("GET", "/candidates", params={"email": email})
        return candidates[0] if candidates else None

    async def get_application(self, application_id: str) -> dict[str, Any]:
        return await self._send("GET", f"/applications/{application_id}")

    async def list_jobs(self, cursor: str | None = None, status: str = "open") -> Page:
        # No native pagination here: a single bulk list
        jobs = await self._send("GET", "/jobs", params={"status": status})
        return Page(items=jobs or [], next_cursor=None)

    async def _probe(self) -> None:
        await self.list_jobs()

    async def add_note(self, candidate_id: str, note: str, visibility: str = "public") -> None:
        if visibility not in NOTE_VISIBILITIES:
            raise ValueError(f"visibility must be one of {NOTE_VISIBILITIES}")
        await self._send(
            "POST",
            f"/candidates/{candidate_id}/activity_feed/notes",
            json={"body": note, "visibility": visibility},
            headers=self._write_headers(),
        )

    async def write_note(self, target_id: str, text: str) -> None:
        await self.add_note(target_id, text)


class GreenhouseIntegration(ProviderIntegration):
    name = "greenhouse"
    display_name = "Greenhouse"
    client_class = GreenhouseClient
    signature_scheme = GREENHOUSE_SCHEME
    columns = CompanyColumns(
        api_key="greenhouse_api_key",
        secret="greenhouse_secret_key",
        trigger_stage="greenhouse_trigger_stage",
        enabled="greenhouse_enabled",
    )
    event_type_keys = ("action",)
    stage_change_events = frozenset({"application_updated", "candidate_stage_change"})
    informational_events = frozenset({"candidate_hired"})
    secret_label = "secret key"
    setup_steps = (
        "Go to Greenhouse > Configure > Dev Center > Webhooks",
        'Click "Create Webhook"',
        "Set endpoint URL to: {webhook_url}",
        'Select events: "Candidate stage change"',
    )
