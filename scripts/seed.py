#!/usr/bin/env python3
"""
Seed script: creates a demo company with an API key.
Run after migrations: python scripts/seed.py
"""

import asyncio
from uuid import uuid4

from atsbridge.auth.middleware import hash_api_key
from atsbridge.config import settings
from atsbridge.database import build_engine, build_session_maker
from atsbridge.models import ApiKey, Company
from atsbridge.storage.repositories import create_api_key, get_api_key_by_hash

API_KEY = "tsk_demo_atsbridge_12345"  # Demo API key - print this for user
COMPANY_NAME = "Demo Company"


async def seed():
    engine = build_engine(settings.database_url)
    session_maker = build_session_maker(engine)

    async with session_maker() as session:
        existing: ApiKey | None = await get_api_key_by_hash(session, hash_api_key(API_KEY))
        if existing:
            company_id = str(existing.company_id)
            print("Company already exists, using existing.")
        else:
            company_id = str(uuid4())
            session.add(
                Company(
                    id=company_id,
                    name=COMPANY_NAME,
                    default_assessment_type="general",
                )
            )
            await session.flush()
            await create_api_key(
                session, company_id, hash_api_key(API_KEY), API_KEY[:8], name="Demo key"
            )
            await session.commit()

    await engine.dispose()

    print("Seed complete!")
    print(f"Company ID: {company_id}")
    print(f"API Key: {API_KEY}")
    print(f"Use: Authorization: Bearer {API_KEY}")
    print("Example: curl -X POST http://localhost:8000/v1/invitations \\")
    print('  -H "Authorization: Bearer ' + API_KEY + '" \\')
    print('  -H "Content-Type: application/json" \\')
    print('  -d \'{"candidateEmail":"jane@example.com","candidateName":"Jane Doe"}\'')
    print("Webhook URL (Greenhouse):")
    print(f"  {settings.app_url}/integrations/greenhouse/webhook?company_id={company_id}")


if __name__ == "__main__":
    asyncio.run(seed())
