"""Lever API client and integration.

Docs: https://hire.lever.co/developer/documentation
"""

import logging
from typing import Any

from atsbridge.engine import normalizer
from atsbridge.engine.signatures import LEVER_SCHEME
from atsbridge.providers.base import ATSClient, CompanyColumns, Page, ProviderIntegration
from atsbridge.schemas.events import NormalizationFailure, StageChangeEvent

logger = logging.getLogger(__name__)


class LeverClient(ATSClient):
    provider = "lever"
    base_url = "https://api.lever.co/v1"

    async def _get(self, endpoint: str, params: Any = None) -> Any:
        return await self._send("GET", endpoint, params=params)

    @staticmethod
    def _unwrap(body: Any) -> Any:
        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    # Opportunities (candidates in a pipeline)

    async def get_opportunity(self, opportunity_id: str) -> dict[str, Any]:
        body = await self._get(
            f"/opportunities/{opportunity_id}",
            params=[("expand", "stage"), ("expand", "contact")],
        )
        return self._unwrap(body)

    async def get_candidate(self, candidate_id: str) -> dict[str, Any]:
        return await self.get_opportunity(candidate_id)

    async def write_note(self, target_id: str, text: str) -> None:
        await self._send(
            "POST",
            f"/opportunities/{target_id}/notes",
            json={"value": text, "notifyFollowers": False},
        )

    # Stages

    async def list_stages(self) -> list[dict[str, Any]]:
        return self._unwrap(await self._get("/stages"))

    async def get_stage(self, stage_id: str) -> dict[str, Any]:
        return self._unwrap(await self._get(f"/stages/{stage_id}"))

    async def _probe(self) -> None:
        await self.list_stages()

    # Postings (jobs)

    async def list_jobs(
        self, cursor: str | None = None, state: str | None = None, limit: int = 100
    ) -> Page:
        params = {"limit": limit}
        if cursor:
            params["offset"] = cursor
        if state:
            params["state"] = state
        body = await self._get("/postings", params=params)
        if not isinstance(body, dict):
            return Page(items=body or [])
        next_cursor = body.get("next") if body.get("hasNext") else None
        return Page(items=body.get("data") or [], next_cursor=next_cursor)


class LeverIntegration(ProviderIntegration):
    name = "lever"
    display_name = "Lever"
    client_class = LeverClient
    signature_scheme = LEVER_SCHEME
    columns = CompanyColumns(
        api_key="lever_api_key",
        secret="lever_signing_token",
        trigger_stage="lever_trigger_stage",
        enabled="lever_enabled",
    )
    event_type_keys = ("event",)
    stage_change_events = frozenset({"candidateStageChange"})
    informational_events = frozenset({"candidateHired", "candidateArchiveChange"})
    secret_label = "signature token"
    setup_steps = (
        "Go to Lever > Settings > Integrations and API > Webhooks",
        'Enable "Candidate Stage Change"',
        "Set the webhook URL to: {webhook_url}",
    )
    note_target = "opportunity"
    # Lever notes hang off the opportunity, stored as the application id
    note_target_column = "ats_application_id"

    async def normalize_event(
        self, payload: Any, client: ATSClient | None
    ) -> StageChangeEvent | NormalizationFailure:
        """Lever webhooks carry ids only; resolve stage and opportunity first.

        Provider errors propagate as UpstreamProviderError.
        """
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return NormalizationFailure(provider=self.name, reason="missing data")
        opportunity_id = data.get("opportunityId")
        to_stage_id = data.get("toStageId")
        if not opportunity_id or not to_stage_id:
            return NormalizationFailure(provider=self.name, reason="missing opportunityId or toStageId")
        if client is None:
            return NormalizationFailure(
                provider=self.name, reason="no Lever API key configured to resolve the stage"
            )

        stage = await client.get_stage(str(to_stage_id))
        opportunity = await client.get_opportunity(str(opportunity_id))
        logger.debug(
            "Lever opportunity %s moved to stage %s (%s)",
            opportunity_id,
            to_stage_id,
            stage.get("text") if isinstance(stage, dict) else None,
        )
        return normalizer.normalize(
            self.name, {"data": data, "stage": stage, "opportunity": opportunity}
        )
