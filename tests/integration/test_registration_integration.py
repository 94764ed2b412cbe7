"""Integration tests for invite-gated registration."""

import pytest

from vouchledger.domain.entities import AttestationKind, EntityType
from vouchledger.domain.exceptions import (
    AlreadyUsedError,
    AuthorizationError,
    ConflictError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)


async def _invite(engine, inviter, entity_type="human", **kwargs):
    invite = await engine.ledger.create_invite(inviter.id, entity_type, **kwargs)
    await engine.commit()
    return invite


@pytest.mark.asyncio
async def test_register_with_invite(engine, make_identity, system_identity):
    alice = await make_identity("Alice")
    invite = await _invite(engine, alice, invitee_name="Bobby", notes="Met at the fair")

    result = await engine.registration.register("bob", invite_code=invite.code)

    bob = result.identity
    assert bob.name == "Bob"
    assert bob.role == "member"
    assert result.invite.used_by_id == bob.id
    assert result.invite.used_at is not None

    record = result.origin_attestation
    assert record.kind == AttestationKind.ORIGIN
    assert record.subject_id == bob.id
    assert record.attester_id == system_identity.id
    assert record.page_path == "User:Bob/Attestations/invite-record"
    assert record.is_protected is True

    content = await engine.content.get_content(record.page_path)
    assert content.startswith("{{InviteRecord")
    assert "|invited_by=User:Alice" in content
    assert "|entity_type=human" in content
    assert f"|invite_code_id={invite.id}" in content
    assert "|known_as=Bobby" in content
    assert "Met at the fair" in content
    assert invite.code not in content

    chain = await engine.resolver.resolve_chain(bob.id)
    assert list(chain) == [bob.id, alice.id]


@pytest.mark.asyncio
async def test_bot_invite_registers_bot(engine, make_identity, system_identity):
    alice = await make_identity("Alice")
    invite = await _invite(engine, alice, entity_type="bot")

    result = await engine.registration.register("Helper", invite_code=invite.code)

    assert result.identity.role == "bot"
    assert result.invite.entity_type == EntityType.BOT
    assert await engine.registry.entity_type_of(result.identity) == EntityType.BOT


@pytest.mark.asyncio
async def test_register_requires_code(engine):
    with pytest.raises(ValidationError):
        await engine.registration.register("Bob")
    with pytest.raises(ValidationError):
        await engine.registration.register("Bob", invite_code="")

    assert await engine.identities.get_identity_by_name("Bob") is None


@pytest.mark.asyncio
async def test_register_rejects_bad_codes(engine, make_identity, clock):
    alice = await make_identity("Alice")
    used = await _invite(engine, alice)
    expiring = await _invite(engine, alice, expire_days=1)
    await engine.registration.register("Bob", invite_code=used.code)

    with pytest.raises(NotFoundError):
        await engine.registration.register("Carol", invite_code="0" * 32)
    with pytest.raises(AlreadyUsedError):
        await engine.registration.register("Carol", invite_code=used.code)

    clock.advance(days=2)
    with pytest.raises(ExpiredError):
        await engine.registration.register("Carol", invite_code=expiring.code)

    assert await engine.identities.get_identity_by_name("Carol") is None


@pytest.mark.asyncio
async def test_register_rejects_reserved_and_taken_names(engine, make_identity):
    alice = await make_identity("Alice")
    invite = await _invite(engine, alice)

    with pytest.raises(ValidationError):
        await engine.registration.register("invitations_bot", invite_code=invite.code)
    with pytest.raises(ValidationError):
        await engine.registration.register("a/b", invite_code=invite.code)
    with pytest.raises(ConflictError):
        await engine.registration.register("alice", invite_code=invite.code)

    # None of the failures consumed the code
    assert (await engine.ledger.validate(invite.code)).is_valid


@pytest.mark.asyncio
async def test_elevated_creator_needs_no_code(engine, make_identity):
    admin = await make_identity("Admin", role="sysop")
    member = await make_identity("Member")

    result = await engine.registration.register("Carol", creator_id=admin.id)

    assert result.identity.name == "Carol"
    assert result.invite is None
    assert result.origin_attestation is None
    with pytest.raises(ValidationError):
        await engine.registration.register("Dave", creator_id=member.id)


@pytest.mark.asyncio
async def test_open_registration_when_invites_optional(engine, settings):
    settings.invites_required = False

    result = await engine.registration.register("Carol")

    assert result.identity.id is not None
    assert result.invite is None


@pytest.mark.asyncio
async def test_register_without_system_identity(engine, make_identity):
    """The account is kept even though no invite-record can be written."""
    alice = await make_identity("Alice")
    invite = await _invite(engine, alice)

    result = await engine.registration.register("Bob", invite_code=invite.code)

    assert result.origin_attestation is None
    assert result.invite.used_by_id == result.identity.id
    assert await engine.identities.get_identity_by_name("Bob") is not None


@pytest.mark.asyncio
async def test_invitee_cannot_self_assign_elevated_role(engine, make_identity):
    """An invite admits a member; it never grants an elevated role."""
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")
    carol = await make_identity("Carol")
    await engine.registry.create_attestation(bob.id, carol.id, "irl-buds", "original")
    await engine.commit()
    invite = await _invite(engine, alice)

    with pytest.raises(AuthorizationError):
        await engine.registration.register("Mallory", invite_code=invite.code, role="sysop")
    with pytest.raises(AuthorizationError):
        await engine.registration.register(
            "Mallory", invite_code=invite.code, creator_id=alice.id, role="bureaucrat"
        )

    assert await engine.identities.get_identity_by_name("Mallory") is None
    assert (await engine.ledger.validate(invite.code)).is_valid

    mallory = (await engine.registration.register("Mallory", invite_code=invite.code)).identity
    assert mallory.role == "member"
    with pytest.raises(AuthorizationError):
        await engine.registry.edit_attestation(
            mallory.id, carol.id, bob.id, freeform_text="tampered"
        )
    assert (await engine.registry.get_attestation(carol.id, bob.id)).freeform_text == "original"


@pytest.mark.asyncio
async def test_elevated_creator_may_assign_role(engine, make_identity):
    admin = await make_identity("Admin", role="sysop")

    result = await engine.registration.register("Dana", creator_id=admin.id, role="bureaucrat")

    assert result.identity.role == "bureaucrat"
    assert await engine.identities.is_elevated_role(result.identity.id) is True


@pytest.mark.asyncio
async def test_create_administrator(engine):
    admin = await engine.registration.create_administrator("root_admin")

    assert admin.name == "Root admin"
    assert admin.role == "sysop"
    with pytest.raises(ValidationError):
        await engine.registration.create_administrator("Eve", role="member")
    with pytest.raises(ValidationError):
        await engine.registration.create_administrator("Invitations-bot")
    with pytest.raises(ConflictError):
        await engine.registration.create_administrator("Root admin", role="bureaucrat")
