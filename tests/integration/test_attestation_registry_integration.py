"""Integration tests for the attestation registry."""

import pytest

from vouchledger.domain.entities import (
    TAMPER_PROTECTION,
    AttestationKind,
    AttestationType,
)
from vouchledger.domain.exceptions import (
    AttestationExistsError,
    AuthorizationError,
    InvalidAttestationTypeError,
    InvalidSubjectError,
    NotFoundError,
    SelfAttestationError,
)
from vouchledger.domain.services.mutation_policy import MutationAction


async def _invite_and_consume(engine, inviter, invitee, entity_type="human", **kwargs):
    invite = await engine.ledger.create_invite(inviter.id, entity_type, **kwargs)
    assert await engine.ledger.consume(invite.code, invitee.id)
    await engine.commit()
    return invite


@pytest.mark.asyncio
async def test_create_attestation(engine, make_identity):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")

    record = await engine.registry.create_attestation(
        bob.id, alice.id, AttestationType.COLLABORATED, "  We built a stage together.  "
    )
    await engine.commit()

    assert record.id is not None
    assert record.subject_id == alice.id
    assert record.attester_id == bob.id
    assert record.kind == AttestationKind.PEER
    assert record.freeform_text == "We built a stage together."
    assert record.page_path == "User:Alice/Attestations/by-Bob"
    assert record.is_protected is True
    assert record.protection_rules == TAMPER_PROTECTION

    content = await engine.content.get_content(record.page_path)
    assert "|attester=User:Bob" in content
    assert "|subject=User:Alice" in content
    assert "|attestation_type=collaborated" in content
    assert "We built a stage together." in content
    assert await engine.content.get_protection(record.page_path) == TAMPER_PROTECTION


@pytest.mark.asyncio
async def test_create_attestation_by_subject_name(engine, make_identity):
    await make_identity("Alice Smith")
    bob = await make_identity("Bob")

    record = await engine.registry.create_attestation(bob.id, "alice_Smith", "irl-buds", "")

    assert record.page_path == "User:Alice Smith/Attestations/by-Bob"


@pytest.mark.asyncio
async def test_self_attestation_always_rejected(engine, make_identity):
    alice = await make_identity("Alice")

    with pytest.raises(SelfAttestationError):
        await engine.registry.create_attestation(alice.id, alice.id, "irl-buds", "me")
    with pytest.raises(SelfAttestationError):
        await engine.registry.create_attestation(alice.id, "alice", "irl-buds", "me")
    # Self-attestation is checked before the type
    with pytest.raises(SelfAttestationError):
        await engine.registry.create_attestation(alice.id, alice.id, "not-a-type", "me")


@pytest.mark.asyncio
async def test_unknown_subject_rejected(engine, make_identity):
    bob = await make_identity("Bob")

    with pytest.raises(InvalidSubjectError):
        await engine.registry.create_attestation(bob.id, 4242, "irl-buds", "")
    with pytest.raises(InvalidSubjectError):
        await engine.registry.create_attestation(bob.id, "Nobody", "not-a-type", "")


@pytest.mark.asyncio
async def test_duplicate_pair_rejected_and_text_unchanged(engine, make_identity):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")
    await engine.registry.create_attestation(bob.id, alice.id, "irl-buds", "original")
    await engine.commit()

    with pytest.raises(AttestationExistsError):
        await engine.registry.create_attestation(bob.id, alice.id, "collaborated", "replaced")
    # Existence is checked before the type
    with pytest.raises(AttestationExistsError):
        await engine.registry.create_attestation(bob.id, alice.id, "not-a-type", "replaced")

    stored = await engine.registry.get_attestation(alice.id, bob.id)
    assert stored.freeform_text == "original"
    assert stored.attestation_type == AttestationType.IRL_BUDS


@pytest.mark.asyncio
async def test_pair_is_direction_sensitive(engine, make_identity):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")

    await engine.registry.create_attestation(bob.id, alice.id, "irl-buds", "")
    reverse = await engine.registry.create_attestation(alice.id, bob.id, "irl-buds", "")

    assert reverse.subject_id == bob.id
    assert len(await engine.registry.list_attestations_by(alice.id)) == 1


@pytest.mark.asyncio
async def test_type_must_match_subject_entity_kind(engine, make_identity):
    alice = await make_identity("Alice")
    helper = await make_identity("Helper Bot")
    bob = await make_identity("Bob")
    await _invite_and_consume(engine, alice, helper, entity_type="bot")

    with pytest.raises(InvalidAttestationTypeError):
        await engine.registry.create_attestation(bob.id, helper.id, "irl-buds", "")
    with pytest.raises(InvalidAttestationTypeError):
        await engine.registry.create_attestation(bob.id, alice.id, "operator", "")

    record = await engine.registry.create_attestation(bob.id, helper.id, "operator", "I run it")
    assert record.attestation_type == AttestationType.OPERATOR


@pytest.mark.asyncio
async def test_invalid_type_default_policy(engine, make_identity, settings):
    settings.invalid_attestation_type_policy = "default"
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")

    record = await engine.registry.create_attestation(bob.id, alice.id, "bogus", "")

    assert record.attestation_type == AttestationType.IRL_BUDS


@pytest.mark.asyncio
async def test_edit_by_attester(engine, make_identity, clock):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")
    await engine.registry.create_attestation(bob.id, alice.id, "irl-buds", "first")
    await engine.commit()
    clock.advance(hours=1)

    updated = await engine.registry.edit_attestation(
        bob.id, alice.id, bob.id, attestation_type="seen-perform", freeform_text="second"
    )
    await engine.commit()

    assert updated.freeform_text == "second"
    assert updated.attestation_type == AttestationType.SEEN_PERFORM
    assert updated.updated_at == clock.now
    assert updated.subject_id == alice.id
    assert updated.attester_id == bob.id
    content = await engine.content.get_content(updated.page_path)
    assert "second" in content
    assert "|attestation_type=seen-perform" in content


@pytest.mark.asyncio
async def test_edit_by_other_member_denied(engine, make_identity):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")
    mallory = await make_identity("Mallory")
    await engine.registry.create_attestation(bob.id, alice.id, "irl-buds", "first")
    await engine.commit()

    with pytest.raises(AuthorizationError):
        await engine.registry.edit_attestation(mallory.id, alice.id, bob.id, freeform_text="x")
    # The subject cannot rewrite what others say about them either
    with pytest.raises(AuthorizationError):
        await engine.registry.edit_attestation(alice.id, alice.id, bob.id, freeform_text="x")

    stored = await engine.registry.get_attestation(alice.id, bob.id)
    assert stored.freeform_text == "first"


@pytest.mark.asyncio
async def test_edit_by_elevated_actor(engine, make_identity):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")
    admin = await make_identity("Admin", role="sysop")
    await engine.registry.create_attestation(bob.id, alice.id, "irl-buds", "first")

    updated = await engine.registry.edit_attestation(
        admin.id, alice.id, bob.id, freeform_text="moderated"
    )

    assert updated.freeform_text == "moderated"


@pytest.mark.asyncio
async def test_edit_missing_record(engine, make_identity):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")

    with pytest.raises(NotFoundError):
        await engine.registry.edit_attestation(bob.id, alice.id, bob.id, freeform_text="x")


@pytest.mark.asyncio
async def test_page_edit_filter(engine, make_identity):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")
    mallory = await make_identity("Mallory")
    admin = await make_identity("Admin", role="bureaucrat")
    record = await engine.registry.create_attestation(bob.id, alice.id, "irl-buds", "")

    assert await engine.registry.authorize_page_edit(bob.id, record.page_path) is True
    assert await engine.registry.authorize_page_edit(mallory.id, record.page_path) is False
    assert await engine.registry.authorize_page_edit(alice.id, record.page_path) is False
    assert await engine.registry.authorize_page_edit(admin.id, record.page_path) is True

    # Relocating a protected record needs elevation even for its attester
    assert (
        await engine.registry.authorize_page_action(bob.id, record.page_path, MutationAction.MOVE)
        is False
    )
    assert (
        await engine.registry.authorize_page_action(
            admin.id, record.page_path, MutationAction.MOVE
        )
        is True
    )

    # Ordinary pages are not restricted
    assert await engine.registry.authorize_page_edit(mallory.id, "User:Alice") is True
    # Attestation-shaped pages without a record follow the path's attester
    orphan = "User:Alice/Attestations/by-Mallory"
    assert await engine.registry.authorize_page_edit(mallory.id, orphan) is True
    assert await engine.registry.authorize_page_edit(bob.id, orphan) is False
    assert await engine.registry.authorize_page_edit(admin.id, orphan) is True
    assert (
        await engine.registry.authorize_page_edit(admin.id, "User:Alice/Attestations/by-Nobody")
        is False
    )


@pytest.mark.asyncio
async def test_origin_record_only_editable_by_elevated(
    engine, make_identity, system_identity
):
    alice = await make_identity("Alice")
    admin = await make_identity("Admin", role="sysop")

    invite = await _create_committed_invite(engine, alice)
    result = await engine.registration.register("Bob", invite_code=invite.code)
    record = result.origin_attestation
    bob = result.identity

    assert record.attester_id == system_identity.id
    assert await engine.registry.authorize_page_edit(bob.id, record.page_path) is False
    assert await engine.registry.authorize_page_edit(alice.id, record.page_path) is False
    assert await engine.registry.authorize_page_edit(admin.id, record.page_path) is True
    with pytest.raises(AuthorizationError):
        await engine.registry.edit_attestation(
            bob.id, bob.id, system_identity.id, freeform_text="rewritten"
        )


async def _create_committed_invite(engine, inviter):
    invite = await engine.ledger.create_invite(inviter.id, "human", notes="Met at the fair")
    await engine.commit()
    return invite


@pytest.mark.asyncio
async def test_protect_reapplies_rules(engine, make_identity):
    alice = await make_identity("Alice")
    bob = await make_identity("Bob")
    record = await engine.registry.create_attestation(bob.id, alice.id, "irl-buds", "")
    await engine.registry.attestation_repo.update(
        record.id, updated_at=record.created_at, protection_rules={}
    )
    await engine.content.protect(record.page_path, {})
    assert (await engine.registry.get_attestation(alice.id, bob.id)).is_protected is False

    protected = await engine.registry.protect(
        await engine.registry.get_attestation(alice.id, bob.id)
    )

    assert protected.is_protected is True
    assert protected.protection_rules == TAMPER_PROTECTION
    assert await engine.content.get_protection(record.page_path) == TAMPER_PROTECTION


@pytest.mark.asyncio
async def test_genesis_record_requires_system_identity(engine, make_identity):
    alice = await make_identity("Alice")

    assert await engine.registry.create_genesis_attestation(alice.id) is None


@pytest.mark.asyncio
async def test_genesis_record(engine, make_identity, system_identity):
    alice = await make_identity("Alice")

    record = await engine.registry.create_genesis_attestation(alice.id)

    assert record.kind == AttestationKind.GENESIS
    assert record.attester_id == system_identity.id
    assert record.page_path == "User:Alice/EntityAttestation"
    assert record.is_protected is True
    content = await engine.content.get_content(record.page_path)
    assert "{{EntityAttestation" in content
    assert "|genesis=yes" in content
    assert await engine.registry.create_genesis_attestation(alice.id) is None
