"""Unit tests for the attestation mutation policy."""

from vouchledger.domain.entities import AttestationRecord, AttestationType
from vouchledger.domain.services.mutation_policy import (
    Actor,
    MutationAction,
    PolicyDecision,
    evaluate_mutation,
)

SUBJECT = 1
ATTESTER = 2
OTHER = 3


def _record(protected: bool = True) -> AttestationRecord:
    record = AttestationRecord(
        subject_id=SUBJECT,
        attester_id=ATTESTER,
        attestation_type=AttestationType.IRL_BUDS,
        freeform_text="",
        page_path="User:Alice/Attestations/by-Bob",
    )
    return record.protect() if protected else record


def test_attester_may_edit():
    decision = evaluate_mutation(SUBJECT, Actor(ATTESTER), _record())
    assert decision == PolicyDecision.ALLOW


def test_subject_and_others_denied():
    assert evaluate_mutation(SUBJECT, Actor(SUBJECT), _record()) == PolicyDecision.DENY
    assert evaluate_mutation(SUBJECT, Actor(OTHER), _record()) == PolicyDecision.DENY


def test_elevated_actor_allowed():
    actor = Actor(OTHER, is_elevated=True)

    assert evaluate_mutation(SUBJECT, actor, _record()) == PolicyDecision.ALLOW
    assert (
        evaluate_mutation(SUBJECT, actor, _record(), MutationAction.MOVE)
        == PolicyDecision.ALLOW
    )


def test_move_of_protected_record_needs_elevation():
    assert (
        evaluate_mutation(SUBJECT, Actor(ATTESTER), _record(), MutationAction.MOVE)
        == PolicyDecision.DENY
    )
    assert (
        evaluate_mutation(
            SUBJECT, Actor(ATTESTER), _record(protected=False), MutationAction.MOVE
        )
        == PolicyDecision.ALLOW
    )


def test_missing_or_mismatched_record_denied():
    elevated = Actor(OTHER, is_elevated=True)

    assert evaluate_mutation(SUBJECT, elevated, None) == PolicyDecision.DENY
    assert evaluate_mutation(OTHER, Actor(ATTESTER), _record()) == PolicyDecision.DENY


def test_page_without_record_follows_path_attester():
    """An attestation page with no stored record is writable by its named attester."""
    assert (
        evaluate_mutation(SUBJECT, Actor(ATTESTER), None, page_attester_id=ATTESTER)
        == PolicyDecision.ALLOW
    )
    assert (
        evaluate_mutation(SUBJECT, Actor(OTHER), None, page_attester_id=ATTESTER)
        == PolicyDecision.DENY
    )
    assert (
        evaluate_mutation(
            None, Actor(OTHER, is_elevated=True), None, page_attester_id=ATTESTER
        )
        == PolicyDecision.ALLOW
    )
    # No record and no known attester: nobody may write it
    assert (
        evaluate_mutation(SUBJECT, Actor(OTHER, is_elevated=True), None)
        == PolicyDecision.DENY
    )
