"""Integration tests for the system identity guard."""

import pytest

from vouchledger.application.services import IntegrityEngine
from vouchledger.domain.services.system_identity_guard import GuardStatus
from vouchledger.infrastructure.persistence.database import DatabaseManager, init_database


@pytest.mark.asyncio
async def test_ensure_creates_once(engine):
    first = await engine.guard.ensure()
    second = await engine.guard.ensure()

    assert first.status == GuardStatus.READY
    assert second.status == GuardStatus.READY
    assert first.name == "Invitations-bot"
    assert first.identity.id == second.identity.id
    assert first.identity.is_system is True

    identities = await engine.identities.repository.list_all()
    assert [i.name for i in identities] == ["Invitations-bot"]


@pytest.mark.asyncio
async def test_ensure_never_overwrites_squatter(engine, make_identity):
    squatter = await make_identity("Invitations-bot")

    outcome = await engine.guard.ensure()

    assert outcome.status == GuardStatus.CONFLICT
    assert outcome.identity is None
    stored = await engine.identities.get_identity(squatter.id)
    assert stored.is_system is False
    assert stored.role == "member"
    assert await engine.guard.get_system_identity() is None


@pytest.mark.asyncio
async def test_ensure_canonicalises_reserved_name(engine):
    outcome = await engine.guard.ensure("system_robot")

    assert outcome.is_ready
    assert outcome.name == "System robot"


@pytest.mark.asyncio
async def test_is_reserved(engine):
    assert engine.guard.is_reserved("invitations-bot") is True
    assert engine.guard.is_reserved("Invitations_bot") is True
    assert engine.guard.is_reserved("Alice") is False


@pytest.mark.asyncio
async def test_init_database_claims_system_identity(tmp_path, settings):
    settings.database_url = f"sqlite+aiosqlite:///{tmp_path / 'data' / 'vl.db'}"
    db = DatabaseManager(settings)
    try:
        await init_database(db)
        await init_database(db)

        async with db.session() as session:
            engine = IntegrityEngine.from_session(session, settings)
            system = await engine.guard.get_system_identity()
            assert system is not None
            assert system.name == "Invitations-bot"
    finally:
        await db.disconnect()
