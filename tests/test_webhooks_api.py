"""End-to-end webhook tests through the FastAPI app."""

import json
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import select

from atsbridge.engine.signatures import ASHBY_SCHEME, GREENHOUSE_SCHEME, LEVER_SCHEME, compute_signature
from atsbridge.errors import PersistenceError, UpstreamProviderError
from atsbridge.models import Invitation
from atsbridge.utils.timeutils import as_utc, utcnow
from conftest import APP_URL

GH_SECRET = "gh_webhook_secret"


def greenhouse_body(stage="Assessment", application_id=9912) -> bytes:
    return json.dumps(
        {
            "action": "candidate_stage_change",
            "payload": {
                "application": {
                    "id": application_id,
                    "current_stage": {"name": stage},
                    "jobs": [{"id": 77, "name": "Backend Engineer"}],
                    "candidate": {
                        "id": 4471,
                        "first_name": "Sam",
                        "last_name": "Lee",
                        "email_addresses": [{"value": "sam@example.com"}],
                    },
                }
            },
        }
    ).encode()


def gh_headers(body: bytes, secret: str = GH_SECRET) -> dict[str, str]:
    sig = compute_signature(GREENHOUSE_SCHEME, body, secret)
    return {"Signature": f"sha256 {sig}", "Content-Type": "application/json"}


async def _invitations(session_maker) -> list[Invitation]:
    async with session_maker() as session:
        return list((await session.execute(select(Invitation))).scalars().all())


@pytest.fixture
async def gh_company(make_company):
    return await make_company(
        name="Acme Corp",
        greenhouse_api_key="gh_key",
        greenhouse_secret_key=GH_SECRET,
        greenhouse_enabled=True,
    )


async def test_greenhouse_stage_change_creates_invitation(
    client, session_maker, gh_company, email_sender
):
    body = greenhouse_body()
    before = utcnow()

    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={gh_company}",
        content=body,
        headers=gh_headers(body),
    )

    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["outcome"] == "invitation_created"

    invitations = await _invitations(session_maker)
    assert len(invitations) == 1
    inv = invitations[0]
    assert inv.ats_provider == "greenhouse"
    assert inv.ats_application_id == "9912"
    assert inv.ats_candidate_id == "4471"
    assert inv.ats_job_id == "77"
    assert inv.candidate_email == "sam@example.com"
    assert inv.candidate_name == "Sam Lee"
    expires = as_utc(inv.expires_at)
    assert before + timedelta(hours=71, minutes=59) < expires < utcnow() + timedelta(hours=72, minutes=1)

    assert len(email_sender.sent) == 1
    sent = email_sender.sent[0]
    assert sent["to"] == "sam@example.com"
    assert sent["assessment_url"] == f"{APP_URL}/assess/{inv.token}"
    assert sent["company_name"] == "Acme Corp"
    assert sent["job_title"] == "Backend Engineer"


async def test_invalid_signature_rejected(client, session_maker, gh_company, email_sender):
    body = greenhouse_body()
    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={gh_company}",
        content=body,
        headers=gh_headers(body, secret="wrong"),
    )
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid signature"}
    assert await _invitations(session_maker) == []
    assert email_sender.sent == []


async def test_missing_signature_rejected_when_secret_configured(client, gh_company):
    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={gh_company}", content=greenhouse_body()
    )
    assert r.status_code == 401


async def test_replayed_webhook_creates_one_invitation(
    client, session_maker, gh_company, email_sender
):
    body = greenhouse_body()
    url = f"/integrations/greenhouse/webhook?company_id={gh_company}"
    first = await client.post(url, content=body, headers=gh_headers(body))
    second = await client.post(url, content=body, headers=gh_headers(body))

    assert first.json()["outcome"] == "invitation_created"
    assert second.status_code == 200
    assert second.json()["outcome"] == "duplicate"
    assert len(await _invitations(session_maker)) == 1
    assert len(email_sender.sent) == 1


async def test_invitation_store_failure_is_acknowledged(
    client, session_maker, gh_company, email_sender, monkeypatch
):
    async def failing_issue(*args, **kwargs):
        raise PersistenceError("Failed to create invitation")

    monkeypatch.setattr("atsbridge.engine.webhooks.issue_invitation", failing_issue)
    body = greenhouse_body()
    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={gh_company}",
        content=body,
        headers=gh_headers(body),
    )

    assert r.status_code == 200
    assert r.json()["outcome"] == "invitation_failed"
    assert r.json()["message"] == "Failed to create invitation"
    assert await _invitations(session_maker) == []
    assert email_sender.sent == []


async def test_stage_mismatch_is_acknowledged(client, session_maker, gh_company):
    body = greenhouse_body(stage="Phone Screen")
    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={gh_company}",
        content=body,
        headers=gh_headers(body),
    )
    assert r.status_code == 200
    assert r.json()["outcome"] == "stage_mismatch"
    assert await _invitations(session_maker) == []


async def test_custom_trigger_stage(client, session_maker, make_company):
    company_id = await make_company(greenhouse_enabled=True, greenhouse_trigger_stage="Take-Home")
    body = greenhouse_body(stage="Take-home Exercise")
    r = await client.post(f"/integrations/greenhouse/webhook?company_id={company_id}", content=body)
    assert r.json()["outcome"] == "invitation_created"
    assert (await _invitations(session_maker))[0].ats_trigger_stage == "take-home"


async def test_other_events_are_ignored(client, gh_company):
    body = json.dumps({"action": "candidate_hired", "payload": {}}).encode()
    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={gh_company}",
        content=body,
        headers=gh_headers(body),
    )
    assert r.status_code == 200
    assert r.json()["outcome"] == "ignored_event"


async def test_unparseable_payload_is_acknowledged(client, gh_company):
    body = json.dumps({"action": "candidate_stage_change", "payload": {"application": {"id": 1}}}).encode()
    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={gh_company}",
        content=body,
        headers=gh_headers(body),
    )
    assert r.status_code == 200
    assert r.json()["outcome"] == "normalization_failed"


async def test_disabled_integration(client, session_maker, make_company):
    company_id = await make_company(greenhouse_enabled=False)
    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={company_id}", content=greenhouse_body()
    )
    assert r.status_code == 200
    assert r.json()["outcome"] == "integration_disabled"
    assert await _invitations(session_maker) == []


async def test_company_resolution_errors(client):
    r = await client.post("/integrations/greenhouse/webhook", content=greenhouse_body())
    assert r.status_code == 400
    assert r.json() == {"error": "company_id required"}

    r = await client.post(
        "/integrations/greenhouse/webhook?company_id=00000000-0000-0000-0000-000000000000",
        content=greenhouse_body(),
    )
    assert r.status_code == 404

    r = await client.post("/integrations/greenhouse/webhook?company_id=not-a-uuid", content=b"{}")
    assert r.status_code == 404


async def test_unknown_provider(client, gh_company):
    r = await client.post(f"/integrations/workday/webhook?company_id={gh_company}", content=b"{}")
    assert r.status_code == 404
    r = await client.get("/integrations/workday/webhook")
    assert r.status_code == 404


@pytest.mark.parametrize(
    "provider,service", [("ashby", "Ashby"), ("greenhouse", "Greenhouse"), ("lever", "Lever")]
)
async def test_webhook_health_probe(client, provider, service):
    r = await client.get(f"/integrations/{provider}/webhook")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "service": f"{service} Integration"}


async def test_ashby_webhook(client, session_maker, make_company, email_sender):
    company_id = await make_company(ashby_secret_key="ashby_secret", ashby_enabled=True)
    body = json.dumps(
        {
            "action": "applicationStageChanged",
            "data": {
                "application": {
                    "id": "app-123",
                    "currentInterviewStage": {"title": "AI Assessment Round"},
                    "candidate": {
                        "id": "cand-1",
                        "name": "Jane Doe",
                        "primaryEmailAddress": {"value": "jane@example.com"},
                    },
                    "job": {"id": "job-9", "title": "Data Analyst"},
                }
            },
        }
    ).encode()
    sig = compute_signature(ASHBY_SCHEME, body, "ashby_secret")

    r = await client.post(
        f"/integrations/ashby/webhook?company_id={company_id}",
        content=body,
        headers={"X-Ashby-Signature": f"sha256={sig}"},
    )

    assert r.json()["outcome"] == "invitation_created"
    inv = (await _invitations(session_maker))[0]
    assert (inv.ats_provider, inv.ats_candidate_id, inv.ats_application_id) == ("ashby", "cand-1", "app-123")
    assert email_sender.sent[0]["job_title"] == "Data Analyst"


def lever_body(secret: str) -> bytes:
    token, triggered_at = "lever-token", 1700000000000
    return json.dumps(
        {
            "event": "candidateStageChange",
            "triggeredAt": triggered_at,
            "token": token,
            "signature": compute_signature(LEVER_SCHEME, f"{token}{triggered_at}".encode(), secret),
            "data": {"opportunityId": "opp-1", "toStageId": "stage-2", "contactId": "contact-5"},
        }
    ).encode()


async def test_lever_webhook_resolves_stage_via_api(
    app, client, session_maker, make_company, email_sender
):
    company_id = await make_company(
        lever_api_key="lever_key", lever_signing_token="lever_secret", lever_enabled=True
    )

    class LeverLookups:
        async def get_stage(self, stage_id):
            return {"id": stage_id, "text": "Skills Assessment"}

        async def get_opportunity(self, opportunity_id):
            return {"id": opportunity_id, "name": "Ana Gomez", "emails": ["ana@example.com"]}

    built = []

    def factory(integration, api_key):
        built.append(api_key)
        return LeverLookups()

    app.state.client_factory = factory

    r = await client.post(
        f"/integrations/lever/webhook?company_id={company_id}", content=lever_body("lever_secret")
    )

    assert r.json()["outcome"] == "invitation_created"
    assert built == ["lever_key"]
    inv = (await _invitations(session_maker))[0]
    assert (inv.ats_provider, inv.ats_application_id, inv.ats_candidate_id) == ("lever", "opp-1", "contact-5")
    assert email_sender.sent[0]["to"] == "ana@example.com"


async def test_lever_upstream_failure_is_acknowledged(app, client, session_maker, make_company):
    company_id = await make_company(
        lever_api_key="lever_key", lever_signing_token="lever_secret", lever_enabled=True
    )

    class Failing:
        async def get_stage(self, stage_id):
            raise UpstreamProviderError("lever", 503, "unavailable")

    app.state.client_factory = lambda integration, api_key: Failing()

    r = await client.post(
        f"/integrations/lever/webhook?company_id={company_id}", content=lever_body("lever_secret")
    )
    assert r.status_code == 200
    assert r.json()["outcome"] == "upstream_error"
    assert await _invitations(session_maker) == []


async def test_lever_bad_signature(client, make_company):
    company_id = await make_company(lever_signing_token="lever_secret", lever_enabled=True)
    r = await client.post(
        f"/integrations/lever/webhook?company_id={company_id}", content=lever_body("other")
    )
    assert r.status_code == 401


async def test_email_failure_does_not_fail_webhook(app, client, session_maker, gh_company):
    async def broken(*args, **kwargs):
        raise httpx.ConnectError("resend down")

    app.state.email_sender.send_invite = broken
    body = greenhouse_body()
    r = await client.post(
        f"/integrations/greenhouse/webhook?company_id={gh_company}",
        content=body,
        headers=gh_headers(body),
    )
    assert r.json()["outcome"] == "invitation_created"
    assert len(await _invitations(session_maker)) == 1
