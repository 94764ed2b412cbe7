"""Domain entities for VouchLedger.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from vouchledger.domain.entities.attestation import (
    TAMPER_PROTECTION,
    AttestationKind,
    AttestationRecord,
)
from vouchledger.domain.entities.identity import Identity
from vouchledger.domain.entities.invite import (
    InviteState,
    InviteToken,
    InviteValidationStatus,
)
from vouchledger.domain.entities.types import (
    BOT_ATTESTATION_TYPES,
    HUMAN_ATTESTATION_TYPES,
    AttestationType,
    EntityType,
    allowed_attestation_types,
    default_attestation_type,
    parse_attestation_type,
    parse_entity_type,
)

__all__ = [
    "AttestationKind",
    "AttestationRecord",
    "AttestationType",
    "BOT_ATTESTATION_TYPES",
    "EntityType",
    "HUMAN_ATTESTATION_TYPES",
    "Identity",
    "InviteState",
    "InviteToken",
    "InviteValidationStatus",
    "TAMPER_PROTECTION",
    "allowed_attestation_types",
    "default_attestation_type",
    "parse_attestation_type",
    "parse_entity_type",
]
