"""Tests for trigger-stage matching."""

import pytest

from atsbridge.engine.matcher import DEFAULT_TRIGGER_STAGE, effective_trigger, matches
from atsbridge.schemas.events import StageChangeEvent


def event(stage: str) -> StageChangeEvent:
    return StageChangeEvent(
        provider="greenhouse", candidate_email="a@example.com", current_stage_name=stage.lower()
    )


@pytest.mark.parametrize(
    "stage", ["Assessment", "AI Assessment Round", "Post-Assessment Debrief", "ASSESSMENT"]
)
def test_default_trigger_matches(stage):
    assert matches(event(stage), "assessment")


@pytest.mark.parametrize("stage", ["Screening", "Onsite", "Offer"])
def test_default_trigger_rejects(stage):
    assert not matches(event(stage), "assessment")


def test_trigger_is_case_insensitive():
    assert matches(event("Technical Screen"), "  Technical ")


@pytest.mark.parametrize("trigger", [None, "", "   "])
def test_blank_trigger_uses_default(trigger):
    assert effective_trigger(trigger) == DEFAULT_TRIGGER_STAGE
    assert matches(event("Assessment"), trigger)
