"""Attestation record entity.

An attestation is a tamper-protected record in which one identity vouches
for another. Records are keyed by the ordered pair (subject_id, attester_id).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from vouchledger.domain.entities.types import AttestationType

# Page protection applied to every attestation at creation
TAMPER_PROTECTION: dict[str, str] = {"edit": "elevated", "move": "elevated"}


class AttestationKind(str, Enum):
    """Origin of an attestation record."""

    # A member vouching for another member
    PEER = "peer"
    # Written by the system identity when an invite is consumed
    ORIGIN = "origin"
    # Written by the system identity for identities that predate invites
    GENESIS = "genesis"


@dataclass
class AttestationRecord:
    """Attestation record entity.

    Attributes:
        subject_id: Identity being vouched for.
        attester_id: Identity doing the vouching (the system identity for
            origin and genesis records).
        attestation_type: How the attester knows the subject.
        freeform_text: Free text supplied by the attester.
        page_path: Content store path the record is published at.
        kind: Peer, origin or genesis.
        id: Primary key, assigned by storage.
        invite_id: Consumed invite, for origin records.
        is_protected: Whether the record is tamper-protected.
        protection_rules: Action -> required capability.
        created_at: When the record was created.
        updated_at: When the record was last edited (None = never).
    """

    subject_id: int
    attester_id: int
    attestation_type: AttestationType
    freeform_text: str
    page_path: str
    kind: AttestationKind = AttestationKind.PEER
    id: int | None = None
    invite_id: int | None = None
    is_protected: bool = False
    protection_rules: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate attestation data after initialization."""
        if self.subject_id == self.attester_id:
            raise ValueError("An attestation's subject and attester must differ")

    def protect(self) -> "AttestationRecord":
        """Mark the record so only an elevated actor may alter or relocate it."""
        self.is_protected = True
        self.protection_rules = dict(TAMPER_PROTECTION)
        return self

    def requires_elevation(self, action: str) -> bool:
        """Check whether the given page action is restricted to elevated actors."""
        return self.is_protected and self.protection_rules.get(action) == "elevated"
