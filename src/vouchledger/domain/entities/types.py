"""Closed enumerations shared by invites and attestations."""

from enum import Enum


class EntityType(str, Enum):
    """Kind of entity an invite admits or an attestation describes."""

    HUMAN = "human"
    BOT = "bot"


class AttestationType(str, Enum):
    """How one identity knows another.

    Used both as an invite's relationship type and as an attestation's type.
    Human variants are ordered from strongest to weakest.
    """

    # Human variants
    RECORDED_OR_PERFORMED = "recorded-or-performed"
    COLLABORATED = "collaborated"
    SEEN_PERFORM = "seen-perform"
    IRL_BUDS = "irl-buds"
    MET_IN_PERSON = "met-in-person"
    ONLINE_ONLY = "online-only"

    # Bot variants
    OPERATOR = "operator"
    AUTHORIZED = "authorized"
    REVIEWED = "reviewed"
    VOUCHED = "vouched"


HUMAN_ATTESTATION_TYPES: tuple[AttestationType, ...] = (
    AttestationType.RECORDED_OR_PERFORMED,
    AttestationType.COLLABORATED,
    AttestationType.SEEN_PERFORM,
    AttestationType.IRL_BUDS,
    AttestationType.MET_IN_PERSON,
    AttestationType.ONLINE_ONLY,
)

BOT_ATTESTATION_TYPES: tuple[AttestationType, ...] = (
    AttestationType.OPERATOR,
    AttestationType.AUTHORIZED,
    AttestationType.REVIEWED,
    AttestationType.VOUCHED,
)

_DEFAULT_TYPES = {
    EntityType.HUMAN: AttestationType.IRL_BUDS,
    EntityType.BOT: AttestationType.VOUCHED,
}


def allowed_attestation_types(entity_type: EntityType) -> tuple[AttestationType, ...]:
    """Return the attestation types that may describe an entity of this kind."""
    if entity_type == EntityType.BOT:
        return BOT_ATTESTATION_TYPES
    return HUMAN_ATTESTATION_TYPES


def default_attestation_type(entity_type: EntityType) -> AttestationType:
    """Return the type used when none is given for an entity of this kind."""
    return _DEFAULT_TYPES[entity_type]


def parse_entity_type(value: "str | EntityType") -> EntityType | None:
    """Parse an entity type, returning None for unknown values."""
    try:
        return EntityType(value)
    except ValueError:
        return None


def parse_attestation_type(value: "str | AttestationType") -> AttestationType | None:
    """Parse an attestation type, returning None for unknown values."""
    try:
        return AttestationType(value)
    except ValueError:
        return None
