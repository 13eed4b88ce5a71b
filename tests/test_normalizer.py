"""Tests for webhook payload normalization."""

import pytest

from atsbridge.engine.normalizer import normalize
from atsbridge.schemas.events import NormalizationFailure, StageChangeEvent


def ashby_payload(stage_key="currentInterviewStage", stage_field="title", stage="AI Assessment"):
    return {
        "action": "candidateStageChange",
        "data": {
            "application": {
                "id": "app-123",
                stage_key: {stage_field: stage},
                "candidate": {
                    "id": "cand-1",
                    "name": "Jane Doe",
                    "primaryEmailAddress": {"value": "jane@example.com"},
                },
                "job": {"id": "job-9", "title": "Data Analyst"},
            }
        },
    }


def greenhouse_payload(**application_overrides):
    application = {
        "id": 9912,
        "current_stage": {"name": "Assessment"},
        "jobs": [{"id": 77, "name": "Backend Engineer"}],
        "candidate": {
            "id": 4471,
            "first_name": "Sam",
            "last_name": "Lee",
            "email_addresses": [{"value": "sam@example.com", "type": "personal"}],
        },
    }
    application.update(application_overrides)
    return {"action": "candidate_stage_change", "payload": {"application": application}}


@pytest.mark.parametrize(
    "stage_key,stage_field",
    [
        ("currentInterviewStage", "title"),
        ("currentInterviewStage", "name"),
        ("interviewStage", "title"),
        ("interviewStage", "name"),
        ("stage", "title"),
        ("stage", "name"),
    ],
)
def test_ashby_stage_aliases(stage_key, stage_field):
    event = normalize("ashby", ashby_payload(stage_key, stage_field))
    assert isinstance(event, StageChangeEvent)
    assert event.current_stage_name == "ai assessment"


def test_ashby_full_event():
    event = normalize("ashby", ashby_payload())
    assert event.provider == "ashby"
    assert event.candidate_email == "jane@example.com"
    assert event.candidate_name == "Jane Doe"
    assert event.candidate_id == "cand-1"
    assert event.application_id == "app-123"
    assert event.job_id == "job-9"
    assert event.job_title == "Data Analyst"


def test_ashby_flat_stage_name_and_email_list():
    payload = {
        "data": {
            "application": {
                "id": "app-1",
                "stageName": "Assessment",
                "candidate": {
                    "emailAddresses": [
                        {"value": "old@example.com", "isPrimary": False},
                        {"value": "primary@example.com", "isPrimary": True},
                    ]
                },
            }
        }
    }
    event = normalize("ashby", payload)
    assert event.current_stage_name == "assessment"
    assert event.candidate_email == "primary@example.com"


def test_ashby_candidate_outside_application():
    payload = ashby_payload()
    candidate = payload["data"]["application"].pop("candidate")
    payload["data"]["candidate"] = candidate
    event = normalize("ashby", payload)
    assert event.candidate_email == "jane@example.com"
    assert event.candidate_id == "cand-1"


def test_first_alias_wins():
    payload = ashby_payload()
    payload["data"]["application"]["stage"] = {"title": "Screening"}
    assert normalize("ashby", payload).current_stage_name == "ai assessment"


def test_greenhouse_event_with_numeric_ids():
    event = normalize("greenhouse", greenhouse_payload())
    assert event.candidate_email == "sam@example.com"
    assert event.candidate_name == "Sam Lee"
    assert event.candidate_id == "4471"
    assert event.application_id == "9912"
    assert event.job_id == "77"
    assert event.job_title == "Backend Engineer"


def test_greenhouse_stage_name_fallbacks():
    payload = greenhouse_payload(current_stage=None, stage={"name": "Technical Assessment"})
    assert normalize("greenhouse", payload).current_stage_name == "technical assessment"

    payload = greenhouse_payload(current_stage=None, stage_name="Take-home")
    assert normalize("greenhouse", payload).current_stage_name == "take-home"


def test_greenhouse_candidate_at_payload_level():
    payload = greenhouse_payload()
    payload["payload"]["candidate"] = {"email_addresses": [{"value": "top@example.com"}]}
    assert normalize("greenhouse", payload).candidate_email == "top@example.com"


def test_missing_stage_is_failure():
    payload = greenhouse_payload(current_stage=None)
    result = normalize("greenhouse", payload)
    assert isinstance(result, NormalizationFailure)
    assert result.reason == "no stage name found"


def test_blank_stage_is_failure():
    result = normalize("ashby", ashby_payload(stage="   "))
    assert isinstance(result, NormalizationFailure)


def test_missing_email_is_failure():
    payload = greenhouse_payload()
    payload["payload"]["application"]["candidate"] = {"first_name": "No", "last_name": "Email"}
    result = normalize("greenhouse", payload)
    assert isinstance(result, NormalizationFailure)
    assert result.reason == "no candidate email found"


def test_missing_application_is_failure():
    result = normalize("ashby", {"action": "candidateStageChange", "data": {}})
    assert isinstance(result, NormalizationFailure)
    assert result.reason == "missing application data"


def test_non_object_payload_is_failure():
    assert isinstance(normalize("greenhouse", ["not", "a", "dict"]), NormalizationFailure)
    assert isinstance(normalize("workday", {}), NormalizationFailure)


def test_lever_enriched_payload():
    payload = {
        "data": {"opportunityId": "opp-1", "toStageId": "stage-2", "contactId": "contact-5"},
        "stage": {"id": "stage-2", "text": "Skills Assessment"},
        "opportunity": {
            "id": "opp-1",
            "name": "Ana Gomez",
            "emails": ["ana@example.com"],
            "headline": "Product Designer",
            "applications": [{"posting": "post-3"}],
        },
    }
    event = normalize("lever", payload)
    assert event.current_stage_name == "skills assessment"
    assert event.candidate_email == "ana@example.com"
    assert event.candidate_id == "contact-5"
    assert event.application_id == "opp-1"
    assert event.job_id == "post-3"
    assert event.job_title == "Product Designer"
