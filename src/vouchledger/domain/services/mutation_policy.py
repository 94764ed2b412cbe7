"""Single policy deciding who may alter or relocate an attestation record.

Every edit path (the registry's edit operation and the page edit filter)
asks this function, so authorship and elevation rules live in one place.
"""

from dataclasses import dataclass
from enum import Enum

from vouchledger.domain.entities import AttestationRecord


class MutationAction(str, Enum):
    """Page actions that a protection rule can restrict."""

    EDIT = "edit"
    MOVE = "move"


class PolicyDecision(str, Enum):
    """Outcome of a policy check."""

    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class Actor:
    """The identity attempting a mutation."""

    id: int
    is_elevated: bool = False


def evaluate_mutation(
    subject_id: int | None,
    actor: Actor,
    record: AttestationRecord | None,
    action: MutationAction = MutationAction.EDIT,
    page_attester_id: int | None = None,
) -> PolicyDecision:
    """Decide whether an actor may perform an action on a subject's record.

    Args:
        subject_id: Subject the caller believes the record is about.
        actor: Identity attempting the action.
        record: The stored record, or None if there is none.
        action: The page action being attempted.
        page_attester_id: Attester named by an attestation page path, used
            when the page has no stored record yet. Only that attester or an
            elevated actor may write such a page.

    Returns:
        ALLOW or DENY.
    """
    if record is None:
        if page_attester_id is None:
            return PolicyDecision.DENY
        if actor.is_elevated or actor.id == page_attester_id:
            return PolicyDecision.ALLOW
        return PolicyDecision.DENY
    if record.subject_id != subject_id:
        return PolicyDecision.DENY
    if actor.is_elevated:
        return PolicyDecision.ALLOW
    # Protected records may only be relocated by an elevated actor; the attester keeps edit rights
    if action == MutationAction.MOVE and record.requires_elevation(action.value):
        return PolicyDecision.DENY
    if actor.id == record.attester_id:
        return PolicyDecision.ALLOW
    return PolicyDecision.DENY
