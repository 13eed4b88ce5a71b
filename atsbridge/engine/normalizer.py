"""Webhook payload normalization.

Providers nest the same facts under different keys, and different API
versions populate different aliases. Each provider therefore has an
``ExtractionPlan``: for every canonical field an ordered tuple of accessors,
tried in order until one yields a non-empty scalar. The order is part of the
contract with real vendor payloads; add new aliases to the tuples rather than
branching in ``normalize``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from atsbridge.schemas.events import NormalizationFailure, StageChangeEvent

Accessor = Callable[[Any], Any]


def _walk(obj: Any, keys: tuple[str | int, ...]) -> Any:
    current = obj
    for key in keys:
        if isinstance(key, int):
            if isinstance(current, list) and -len(current) <= key < len(current):
                current = current[key]
            else:
                return None
        elif isinstance(current, dict) and key in current:
            current = current[key]
        else:
            return None
    return current


def path(*keys: str | int) -> Accessor:
    """Accessor for a nested value, e.g. ``path("data", "application", "id")``."""
    return lambda payload: _walk(payload, keys)


def joined(*accessors: Accessor, sep: str = " ") -> Accessor:
    """Accessor joining the non-empty results of several accessors."""

    def accessor(payload: Any) -> str | None:
        parts = [_scalar(a(payload)) for a in accessors]
        text = sep.join(p for p in parts if p)
        return text or None

    return accessor


def flagged_item(list_accessor: Accessor, flag: str, *value_keys: str) -> Accessor:
    """Accessor for the first list element whose ``flag`` is truthy."""

    def accessor(payload: Any) -> Any:
        items = list_accessor(payload)
        if not isinstance(items, list):
            return None
        for item in items:
            if isinstance(item, dict) and item.get(flag):
                return _walk(item, value_keys)
        return None

    return accessor


def _scalar(value: Any) -> str | None:
    """Render ids/strings as trimmed text; containers and booleans do not count."""
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value).strip()
    return text or None


def first_of(payload: Any, accessors: tuple[Accessor, ...]) -> str | None:
    for accessor in accessors:
        value = _scalar(accessor(payload))
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class ExtractionPlan:
    """Ordered accessors for each canonical field of one provider."""

    provider: str
    # (description, accessor) pairs that must resolve to an object
    required: tuple[tuple[str, Accessor], ...]
    stage_name: tuple[Accessor, ...]
    candidate_email: tuple[Accessor, ...]
    candidate_name: tuple[Accessor, ...] = ()
    candidate_id: tuple[Accessor, ...] = ()
    job_id: tuple[Accessor, ...] = ()
    application_id: tuple[Accessor, ...] = ()
    job_title: tuple[Accessor, ...] = ()


def _ashby_candidate(*keys: str | int) -> tuple[Accessor, ...]:
    # Candidate is nested inside the application; older payloads put it under data
    return (
        path("data", "application", "candidate", *keys),
        path("data", "candidate", *keys),
    )


ASHBY_PLAN = ExtractionPlan(
    provider="ashby",
    required=(("application", path("data", "application")),),
    stage_name=(
        path("data", "application", "currentInterviewStage", "title"),
        path("data", "application", "currentInterviewStage", "name"),
        path("data", "application", "interviewStage", "title"),
        path("data", "application", "interviewStage", "name"),
        path("data", "application", "stage", "title"),
        path("data", "application", "stage", "name"),
        path("data", "application", "stageName"),
    ),
    candidate_email=(
        *_ashby_candidate("primaryEmailAddress", "value"),
        flagged_item(path("data", "application", "candidate", "emailAddresses"), "isPrimary", "value"),
        *_ashby_candidate("emailAddresses", 0, "value"),
        *_ashby_candidate("email"),
    ),
    candidate_name=(*_ashby_candidate("name"), *_ashby_candidate("fullName")),
    candidate_id=(*_ashby_candidate("id"), path("data", "application", "candidateId")),
    job_id=(path("data", "application", "job", "id"), path("data", "application", "jobId")),
    application_id=(path("data", "application", "id"),),
    job_title=(path("data", "application", "job", "title"),),
)


def _greenhouse_candidate(*keys: str | int) -> tuple[Accessor, ...]:
    return (
        path("payload", "candidate", *keys),
        path("payload", "application", "candidate", *keys),
    )


GREENHOUSE_PLAN = ExtractionPlan(
    provider="greenhouse",
    required=(("application", path("payload", "application")),),
    stage_name=(
        path("payload", "application", "current_stage", "name"),
        path("payload", "application", "stage", "name"),
        path("payload", "application", "stage_name"),
    ),
    candidate_email=(
        *_greenhouse_candidate("primary_email_address"),
        *_greenhouse_candidate("email_addresses", 0, "value"),
        *_greenhouse_candidate("emails", 0, "value"),
        *_greenhouse_candidate("email"),
    ),
    candidate_name=(
        *(joined(a, b) for a, b in zip(
            _greenhouse_candidate("first_name"), _greenhouse_candidate("last_name")
        )),
        *_greenhouse_candidate("name"),
    ),
    candidate_id=(
        *_greenhouse_candidate("id"),
        path("payload", "application", "candidate_id"),
    ),
    job_id=(
        path("payload", "application", "job_id"),
        path("payload", "application", "jobs", 0, "id"),
    ),
    application_id=(path("payload", "application", "id"),),
    job_title=(path("payload", "application", "jobs", 0, "name"),),
)

# Lever webhooks only carry ids; the Lever integration fetches the stage and
# opportunity and passes {"data": ..., "stage": ..., "opportunity": ...}.
LEVER_PLAN = ExtractionPlan(
    provider="lever",
    required=(("data", path("data")), ("opportunity", path("opportunity"))),
    stage_name=(
        path("stage", "text"),
        path("stage", "name"),
        path("opportunity", "stage", "text"),
    ),
    candidate_email=(
        path("opportunity", "emails", 0),
        path("opportunity", "contact", "emails", 0),
        path("opportunity", "email"),
    ),
    candidate_name=(path("opportunity", "name"), path("opportunity", "contact", "name")),
    candidate_id=(
        path("data", "candidateId"),
        path("data", "contactId"),
        path("opportunity", "contact", "id"),
        path("opportunity", "contact"),
    ),
    job_id=(
        path("data", "postingId"),
        path("opportunity", "applications", 0, "posting"),
    ),
    application_id=(path("data", "opportunityId"), path("opportunity", "id")),
    job_title=(path("opportunity", "headline"),),
)

PLANS: dict[str, ExtractionPlan] = {
    plan.provider: plan for plan in (ASHBY_PLAN, GREENHOUSE_PLAN, LEVER_PLAN)
}


def event_type(payload: Any, keys: tuple[str, ...]) -> str | None:
    """First non-empty top-level event name among ``keys``."""
    return first_of(payload, tuple(path(key) for key in keys))


def normalize(provider: str, payload: Any) -> StageChangeEvent | NormalizationFailure:
    """Map a provider's webhook body onto a StageChangeEvent."""
    plan = PLANS.get(provider)
    if plan is None:
        return NormalizationFailure(provider=provider, reason=f"unknown provider {provider!r}")
    if not isinstance(payload, dict):
        return NormalizationFailure(provider=provider, reason="payload is not a JSON object")

    for label, accessor in plan.required:
        if not isinstance(accessor(payload), dict):
            return NormalizationFailure(provider=provider, reason=f"missing {label} data")

    stage_name = first_of(payload, plan.stage_name)
    if stage_name is None:
        return NormalizationFailure(provider=provider, reason="no stage name found")

    email = first_of(payload, plan.candidate_email)
    if email is None:
        return NormalizationFailure(provider=provider, reason="no candidate email found")

    return StageChangeEvent(
        provider=provider,
        candidate_email=email,
        candidate_name=first_of(payload, plan.candidate_name) or "",
        candidate_id=first_of(payload, plan.candidate_id) or "",
        job_id=first_of(payload, plan.job_id) or "",
        application_id=first_of(payload, plan.application_id) or "",
        job_title=first_of(payload, plan.job_title),
        current_stage_name=stage_name.lower(),
    )
