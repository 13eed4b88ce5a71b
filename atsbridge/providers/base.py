"""Shared plumbing for ATS API clients and provider integrations."""

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from atsbridge.engine import normalizer
from atsbridge.engine.signatures import SignatureScheme, verify
from atsbridge.errors import UpstreamProviderError
from atsbridge.schemas.events import NormalizationFailure, StageChangeEvent

logger = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of a provider list call. ``next_cursor`` is None on the last page."""

    items: list[dict[str, Any]]
    next_cursor: str | None = None


class ATSClient(ABC):
    """Typed HTTP client for one provider's API.

    All providers authenticate with HTTP Basic: API key as username, empty
    password. Every call has a bounded timeout; failures of any kind surface
    as ``UpstreamProviderError`` and are never retried here.
    """

    provider: str = ""
    base_url: str = ""

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=httpx.BasicAuth(self.api_key, ""),
            timeout=self.timeout,
            transport=self.transport,
            headers={"Content-Type": "application/json"},
        )

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        params: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(
                    method, endpoint, json=json, params=params, headers=headers
                )
        except httpx.TimeoutException as exc:
            raise UpstreamProviderError(self.provider, None, "request timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamProviderError(self.provider, None, str(exc) or type(exc).__name__) from exc

        if response.is_error:
            raise UpstreamProviderError(self.provider, response.status_code, response.text)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamProviderError(
                self.provider, response.status_code, "invalid JSON in response"
            ) from exc

    @abstractmethod
    async def list_jobs(self, cursor: str | None = None, **filters: Any) -> Page:
        ...

    @abstractmethod
    async def get_candidate(self, candidate_id: str) -> dict[str, Any]:
        """Fetch the candidate (Lever: opportunity) record."""

    @abstractmethod
    async def write_note(self, target_id: str, text: str) -> None:
        ...

    @abstractmethod
    async def _probe(self) -> None:
        """Cheapest authenticated call available."""

    async def test_connection(self) -> bool:
        """True if the API key authenticates. Never raises."""
        try:
            await self._probe()
            return True
        except UpstreamProviderError as exc:
            logger.info("%s connection test failed: %s", self.provider, exc.message)
            return False

    async def iter_jobs(self, **filters: Any) -> AsyncIterator[dict[str, Any]]:
        """Iterate every job across pages."""
        cursor = None
        while True:
            page = await self.list_jobs(cursor=cursor, **filters)
            for item in page.items:
                yield item
            if not page.next_cursor or page.next_cursor == cursor:
                return
            cursor = page.next_cursor


@dataclass(frozen=True)
class CompanyColumns:
    """Names of a provider's credential columns on ``Company``."""

    api_key: str
    secret: str
    trigger_stage: str
    enabled: str


@dataclass(frozen=True)
class ProviderSettings:
    api_key: str | None
    secret: str | None
    trigger_stage: str
    enabled: bool


class ProviderIntegration(ABC):
    """Everything the shared webhook pipeline and result sync need from a provider."""

    name: str = ""
    display_name: str = ""
    client_class: type[ATSClient]
    signature_scheme: SignatureScheme
    columns: CompanyColumns
    # Top-level keys that may carry the event name, in priority order
    event_type_keys: tuple[str, ...] = ()
    stage_change_events: frozenset[str] = frozenset()
    # Events acknowledged with a log line only
    informational_events: frozenset[str] = frozenset()
    secret_label: str = "secret key"
    setup_steps: tuple[str, ...] = ()
    note_target: str = "candidate"
    # Assessment column holding the id the result note is written against
    note_target_column: str = "ats_candidate_id"

    def client(
        self,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ATSClient:
        return self.client_class(api_key, timeout=timeout, transport=transport)

    def settings_for(self, company: Any) -> ProviderSettings:
        return ProviderSettings(
            api_key=getattr(company, self.columns.api_key),
            secret=getattr(company, self.columns.secret),
            trigger_stage=getattr(company, self.columns.trigger_stage) or "assessment",
            enabled=bool(getattr(company, self.columns.enabled)),
        )

    def verify_signature(
        self, raw_body: bytes, headers: Mapping[str, str], secret: str | None
    ) -> bool:
        scheme = self.signature_scheme
        return verify(scheme, raw_body, scheme.header_value(headers), secret)

    def event_type(self, payload: Any) -> str | None:
        return normalizer.event_type(payload, self.event_type_keys)

    async def normalize_event(
        self, payload: Any, client: ATSClient | None
    ) -> StageChangeEvent | NormalizationFailure:
        return normalizer.normalize(self.name, payload)

    def result_target_id(self, assessment: Any) -> str | None:
        """Id the result note is written against, from the assessment's linkage."""
        return getattr(assessment, self.note_target_column) or None

    async def write_result_note(self, client: ATSClient, target_id: str, text: str) -> None:
        await client.write_note(target_id, text)

    def instructions(self, webhook_url: str, secret_provided: bool) -> dict[str, str]:
        steps = [step.format(webhook_url=webhook_url) for step in self.setup_steps]
        steps.append(
            f"Set the {self.secret_label} to the one you provided"
            if secret_provided
            else f"Copy the webhook {self.secret_label} and update your config here"
        )
        return {f"step{i}": step for i, step in enumerate(steps, start=1)}
