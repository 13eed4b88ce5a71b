"""Trigger-stage matching."""

from atsbridge.schemas.events import StageChangeEvent

DEFAULT_TRIGGER_STAGE = "assessment"


def effective_trigger(trigger_stage: str | None) -> str:
    trigger = (trigger_stage or "").strip().lower()
    return trigger or DEFAULT_TRIGGER_STAGE


def matches(event: StageChangeEvent, trigger_stage: str | None) -> bool:
    """Case-insensitive substring match of the trigger against the stage name.

    Stage names vary per company ("AI Assessment Round", "Technical
    Assessment - Part 1"), so containment is used instead of equality. This
    also matches e.g. "Post-Assessment Debrief".
    """
    return effective_trigger(trigger_stage) in event.current_stage_name.lower()
