"""Unit tests for the AttestationRecord entity and attestation types."""

import pytest

from vouchledger.domain.entities import (
    TAMPER_PROTECTION,
    AttestationRecord,
    AttestationType,
    EntityType,
    allowed_attestation_types,
    default_attestation_type,
    parse_attestation_type,
    parse_entity_type,
)


def _record(**kwargs) -> AttestationRecord:
    values = {
        "subject_id": 1,
        "attester_id": 2,
        "attestation_type": AttestationType.IRL_BUDS,
        "freeform_text": "",
        "page_path": "User:Alice/Attestations/by-Bob",
    }
    values.update(kwargs)
    return AttestationRecord(**values)


def test_subject_and_attester_must_differ():
    with pytest.raises(ValueError):
        _record(subject_id=3, attester_id=3)


def test_protect():
    record = _record()
    assert record.is_protected is False
    assert record.requires_elevation("edit") is False

    record.protect()

    assert record.is_protected is True
    assert record.protection_rules == TAMPER_PROTECTION
    assert record.requires_elevation("edit") is True
    assert record.requires_elevation("move") is True
    assert record.requires_elevation("delete") is False
    # The rules are a copy, not the shared constant
    assert record.protection_rules is not TAMPER_PROTECTION


def test_allowed_types_are_disjoint():
    human = set(allowed_attestation_types(EntityType.HUMAN))
    bot = set(allowed_attestation_types(EntityType.BOT))

    assert len(human) == 6
    assert len(bot) == 4
    assert human.isdisjoint(bot)
    assert default_attestation_type(EntityType.HUMAN) in human
    assert default_attestation_type(EntityType.BOT) in bot


def test_parse_helpers():
    assert parse_entity_type("bot") == EntityType.BOT
    assert parse_entity_type("robot") is None
    assert parse_attestation_type("seen-perform") == AttestationType.SEEN_PERFORM
    assert parse_attestation_type("seen_perform") is None
