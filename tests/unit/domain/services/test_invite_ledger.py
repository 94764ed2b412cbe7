"""Unit tests for InviteLedger with mocked repositories."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.testing import capture_logs

from vouchledger.core.config import Settings
from vouchledger.domain.entities import (
    AttestationType,
    EntityType,
    Identity,
    InviteToken,
    InviteValidationStatus,
)
from vouchledger.domain.exceptions import ValidationError
from vouchledger.domain.services.invite_ledger import InviteLedger

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def ledger():
    """InviteLedger with mocked repositories and a fixed clock."""
    settings = Settings(_env_file=None, environment="testing", invite_expire_days=14)
    ledger = InviteLedger(AsyncMock(spec=AsyncSession), settings, clock=lambda: NOW)
    ledger.invite_repo = AsyncMock()
    ledger.identity_repo = AsyncMock()
    ledger.identity_repo.get_by_id.return_value = Identity(id=1, name="Alice")

    async def store(invite):
        invite.id = 10
        return invite

    ledger.invite_repo.create.side_effect = store
    return ledger


def _invite(**kwargs) -> InviteToken:
    values = {
        "code": "c0ffee",
        "inviter_id": 1,
        "entity_type": EntityType.HUMAN,
        "relationship_type": AttestationType.IRL_BUDS,
        "created_at": NOW - timedelta(days=1),
        "expires_at": NOW + timedelta(days=1),
    }
    values.update(kwargs)
    return InviteToken(**values)


@pytest.mark.asyncio
async def test_create_uses_configured_expiry(ledger):
    invite = await ledger.create_invite(1, "human")

    assert invite.expires_at == NOW + timedelta(days=14)
    ledger.invite_repo.create.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_rejects_type_from_other_kind(ledger):
    with pytest.raises(ValidationError):
        await ledger.create_invite(1, "human", relationship_type="operator")
    with pytest.raises(ValidationError):
        await ledger.create_invite(1, "human", relationship_type="best-friends")

    ledger.invite_repo.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_never_logs_code(ledger):
    with capture_logs() as logs:
        invite = await ledger.create_invite(1, "bot")

    assert logs
    assert all(invite.code not in str(entry) for entry in logs)


@pytest.mark.asyncio
async def test_validate_statuses(ledger):
    ledger.invite_repo.get_by_code.return_value = _invite()
    assert (await ledger.validate("c0ffee")).status == InviteValidationStatus.VALID

    ledger.invite_repo.get_by_code.return_value = _invite(used_at=NOW, used_by_id=2)
    assert (await ledger.validate("c0ffee")).status == InviteValidationStatus.ALREADY_USED

    ledger.invite_repo.get_by_code.return_value = _invite(expires_at=NOW - timedelta(seconds=1))
    assert (await ledger.validate("c0ffee")).status == InviteValidationStatus.EXPIRED

    ledger.invite_repo.get_by_code.return_value = None
    assert (await ledger.validate("c0ffee")).status == InviteValidationStatus.INVALID


@pytest.mark.asyncio
async def test_validate_empty_code_skips_lookup(ledger):
    result = await ledger.validate("")

    assert result.status == InviteValidationStatus.INVALID
    ledger.invite_repo.get_by_code.assert_not_awaited()


@pytest.mark.asyncio
async def test_consume_passes_clock_time(ledger):
    ledger.invite_repo.consume.return_value = True

    assert await ledger.consume("c0ffee", 2) is True
    ledger.invite_repo.consume.assert_awaited_once_with("c0ffee", 2, NOW)
