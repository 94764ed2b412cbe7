"""Invite token entity.

An invite token is a single-use credential that authorizes the creation of
exactly one new identity. It is created by a member, consumed at most once
during registration, or revoked while still unused.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from vouchledger.domain.entities.types import AttestationType, EntityType


class InviteValidationStatus(str, Enum):
    """Result of validating an invite code for signup."""

    VALID = "valid"
    INVALID = "invalid"
    ALREADY_USED = "already-used"
    EXPIRED = "expired"


class InviteState(str, Enum):
    """Lifecycle state of a stored invite, as shown in audit listings."""

    PENDING = "pending"
    USED = "used"
    EXPIRED = "expired"


@dataclass
class InviteToken:
    """Invite token entity.

    Attributes:
        code: Opaque random credential (hex encoded).
        inviter_id: Identity that created the invite.
        entity_type: Whether the invite admits a human or a bot.
        relationship_type: How the inviter knows the invitee.
        id: Primary key, assigned by storage.
        invitee_name: Intended recipient name. A hint only, never enforced.
        notes: Freeform notes about the invitee.
        created_at: When the invite was created.
        expires_at: When the invite expires (None = never).
        used_at: When the invite was consumed (None = unused).
        used_by_id: Identity created with this invite (None = unused).
    """

    code: str
    inviter_id: int
    entity_type: EntityType
    relationship_type: AttestationType
    id: int | None = None
    invitee_name: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime | None = None
    used_at: datetime | None = None
    used_by_id: int | None = None

    def __post_init__(self) -> None:
        """Validate invite data after initialization."""
        if not self.code:
            raise ValueError("Invite code is required")
        if (self.used_at is None) != (self.used_by_id is None):
            raise ValueError("used_at and used_by_id must both be set or both be empty")

    @classmethod
    def generate(
        cls,
        inviter_id: int,
        entity_type: EntityType,
        relationship_type: AttestationType,
        expire_days: int,
        now: datetime,
        code_bytes: int = 16,
        invitee_name: str | None = None,
        notes: str | None = None,
    ) -> "InviteToken":
        """Generate a new unused invite with a random code.

        Args:
            inviter_id: Identity creating the invite.
            entity_type: Kind of entity being invited.
            relationship_type: How the inviter knows the invitee.
            expire_days: Days until expiry; 0 means the invite never expires.
            now: Creation timestamp.
            code_bytes: Random bytes in the code (16 bytes = 128 bits).
            invitee_name: Optional intended recipient name.
            notes: Optional freeform notes.

        Returns:
            The new InviteToken entity (not yet stored).
        """
        expires_at = now + timedelta(days=expire_days) if expire_days > 0 else None
        return cls(
            code=secrets.token_hex(code_bytes),
            inviter_id=inviter_id,
            entity_type=entity_type,
            relationship_type=relationship_type,
            invitee_name=invitee_name,
            notes=notes,
            created_at=now,
            expires_at=expires_at,
        )

    @property
    def is_used(self) -> bool:
        """Check if the invite has been consumed."""
        return self.used_at is not None

    def is_expired_at(self, now: datetime) -> bool:
        """Check if the invite is past its expiry at the given time."""
        return self.expires_at is not None and now > self.expires_at

    def state_at(self, now: datetime) -> InviteState:
        """Lifecycle state at the given time. A used invite never reads as expired."""
        if self.is_used:
            return InviteState.USED
        if self.is_expired_at(now):
            return InviteState.EXPIRED
        return InviteState.PENDING
