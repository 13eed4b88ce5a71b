"""Shared fixtures: a SQLite database per test, the app, and fake collaborators."""

from datetime import timedelta
from uuid import uuid4

import httpx
import pytest

from atsbridge.auth.middleware import hash_api_key
from atsbridge.config import Settings
from atsbridge.database import Base, build_engine, build_session_maker
from atsbridge.errors import UpstreamProviderError
from atsbridge.main import create_app
from atsbridge.models import ApiKey, Assessment, Company, Invitation
from atsbridge.providers.base import Page
from atsbridge.utils.timeutils import utcnow
from atsbridge.utils.tokens import generate_invitation_token

APP_URL = "https://app.test"


class FakeEmailSender:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_invite(
        self, to, candidate_name, assessment_url, expires_at, company_name=None, job_title=None
    ):
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append(
            {
                "to": to,
                "candidate_name": candidate_name,
                "assessment_url": assessment_url,
                "expires_at": expires_at,
                "company_name": company_name,
                "job_title": job_title,
            }
        )


class FakeClient:
    """Stands in for an ATSClient; records writes on the owning factory."""

    def __init__(self, factory, integration, api_key):
        self.factory = factory
        self.integration = integration
        self.api_key = api_key

    async def write_note(self, target_id, text):
        self.factory.calls.append((self.integration.name, target_id, text))
        if self.factory.on_write is not None:
            await self.factory.on_write(target_id)
        if target_id in self.factory.fail_targets:
            raise UpstreamProviderError(self.integration.name, 500, "boom")

    async def test_connection(self):
        return self.factory.connection_ok

    async def iter_jobs(self, **filters):
        for job in self.factory.jobs:
            yield job

    async def list_jobs(self, cursor=None, **filters):
        return Page(items=list(self.factory.jobs))


class FakeClientFactory:
    def __init__(self):
        self.calls = []
        self.fail_targets = set()
        self.on_write = None
        self.connection_ok = True
        self.jobs = []
        self.built = []

    def __call__(self, integration, api_key):
        self.built.append((integration.name, api_key))
        return FakeClient(self, integration, api_key)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        app_url=APP_URL,
        resend_api_key=None,
    )


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def clients():
    return FakeClientFactory()


@pytest.fixture
def app(settings, session_maker, email_sender, clients):
    return create_app(
        settings=settings,
        session_maker=session_maker,
        email_sender=email_sender,
        client_factory=clients,
    )


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def make_company(session_maker):
    async def _make(**overrides) -> str:
        values = {"id": str(uuid4()), "name": "Acme Corp", "default_assessment_type": "general"}
        values.update(overrides)
        async with session_maker() as session:
            session.add(Company(**values))
            await session.commit()
        return values["id"]

    return _make


@pytest.fixture
def make_api_key(session_maker):
    async def _make(company_id: str, plaintext: str | None = None) -> str:
        plaintext = plaintext or f"tsk_test_{uuid4().hex}"
        async with session_maker() as session:
            session.add(
                ApiKey(
                    id=str(uuid4()),
                    company_id=company_id,
                    name="test",
                    key_hash=hash_api_key(plaintext),
                    key_prefix=plaintext[:8],
                )
            )
            await session.commit()
        return plaintext

    return _make


@pytest.fixture
def make_invitation(session_maker):
    async def _make(company_id: str, **overrides) -> Invitation:
        values = {
            "id": str(uuid4()),
            "company_id": company_id,
            "token": generate_invitation_token(),
            "candidate_email": "jane@example.com",
            "candidate_name": "Jane Doe",
            "expires_at": utcnow() + timedelta(hours=72),
        }
        values.update(overrides)
        invitation = Invitation(**values)
        async with session_maker() as session:
            session.add(invitation)
            await session.commit()
        return invitation

    return _make


@pytest.fixture
def make_assessment(session_maker):
    async def _make(company_id: str, **overrides) -> str:
        values = {
            "id": str(uuid4()),
            "company_id": company_id,
            "candidate_name": "Jane Doe",
            "candidate_email": "jane@example.com",
            "duration_seconds": 900,
            "message_count": 6,
            "overall_score": 82,
            "prompt_quality_score": 85,
            "context_score": 70,
            "iteration_score": 55,
            "efficiency_score": 90,
            "summary": "Strong prompt structure.",
            "transcript": [],
            "ats_provider": "greenhouse",
            "ats_candidate_id": "4471",
            "ats_application_id": "9912",
        }
        values.update(overrides)
        async with session_maker() as session:
            session.add(Assessment(**values))
            await session.commit()
        return values["id"]

    return _make


def auth(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}
