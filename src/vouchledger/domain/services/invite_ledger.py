"""Invite ledger: the lifecycle of single-use invite codes.

The ledger is the only writer of invite rows. Consumption is the only path
that ever sets ``used_at``, and it is a single conditional update, so two
registrations racing on one code cannot both win. Invite codes are
credentials and are never written to the log.

The ledger flushes but never commits; the caller owns the transaction.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.core.config import Settings, get_settings
from vouchledger.core.logging import get_logger
from vouchledger.domain.entities import (
    AttestationType,
    EntityType,
    InviteState,
    InviteToken,
    InviteValidationStatus,
    allowed_attestation_types,
    default_attestation_type,
    parse_attestation_type,
    parse_entity_type,
)
from vouchledger.domain.exceptions import (
    AlreadyUsedError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from vouchledger.domain.services.naming import canonicalize_name
from vouchledger.infrastructure.persistence.repositories import (
    IdentityRepository,
    InviteRepository,
)

logger = get_logger(__name__)


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class InviteValidation:
    """Result of validating an invite code.

    Attributes:
        status: One of valid, invalid, already-used or expired.
        invite: The stored invite, or None when the code is unknown.
    """

    status: InviteValidationStatus
    invite: InviteToken | None = None

    @property
    def is_valid(self) -> bool:
        return self.status == InviteValidationStatus.VALID

    def raise_for_status(self) -> InviteToken:
        """Return the invite if valid, otherwise raise the matching error.

        Raises:
            NotFoundError: The code does not exist.
            AlreadyUsedError: The code has been consumed.
            ExpiredError: The code is past its expiry.
        """
        if self.status == InviteValidationStatus.INVALID:
            raise NotFoundError("Invite code is not valid")
        if self.status == InviteValidationStatus.ALREADY_USED:
            raise AlreadyUsedError("Invite code has already been used")
        if self.status == InviteValidationStatus.EXPIRED:
            raise ExpiredError("Invite code has expired")
        return self.invite


class InviteLedger:
    """Create, validate, consume and revoke invite codes."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            session: SQLAlchemy async session.
            settings: Application settings (defaults to the cached settings).
            clock: Returns the current UTC time; injectable for tests.
        """
        self.session = session
        self.settings = settings or get_settings()
        self.clock = clock or utc_now
        self.invite_repo = InviteRepository(session)
        self.identity_repo = IdentityRepository(session)

    async def create_invite(
        self,
        inviter_id: int,
        entity_type: EntityType | str,
        expire_days: int | None = None,
        invitee_name: str | None = None,
        relationship_type: AttestationType | str | None = None,
        notes: str | None = None,
    ) -> InviteToken:
        """Create a new invite.

        Args:
            inviter_id: Identity creating the invite.
            entity_type: 'human' or 'bot'.
            expire_days: Days until expiry. 0 means never; None means the
                configured default.
            invitee_name: Intended recipient. A hint for audit, never enforced.
            relationship_type: How the inviter knows the invitee. Defaults to
                the entity kind's default type.
            notes: Freeform notes.

        Returns:
            The stored invite, including its code.

        Raises:
            ValidationError: If the entity type, relationship type or expiry
                is not allowed.
            NotFoundError: If the inviter is not a registered identity.
        """
        parsed_entity = parse_entity_type(entity_type)
        if parsed_entity is None:
            raise ValidationError(f"Invalid entity type '{entity_type}'")

        if relationship_type is None:
            parsed_relationship = default_attestation_type(parsed_entity)
        else:
            parsed_relationship = parse_attestation_type(relationship_type)
            if parsed_relationship not in allowed_attestation_types(parsed_entity):
                raise ValidationError(
                    f"Relationship type '{relationship_type}' is not valid "
                    f"for {parsed_entity.value} invites"
                )

        if expire_days is None:
            expire_days = self.settings.invite_expire_days
        if expire_days < 0:
            raise ValidationError("expire_days must be zero or positive")
        if expire_days > self.settings.invite_max_expire_days:
            raise ValidationError(
                f"expire_days must be at most {self.settings.invite_max_expire_days}"
            )

        if await self.identity_repo.get_by_id(inviter_id) is None:
            raise NotFoundError(f"Inviter {inviter_id} is not a registered identity")

        if invitee_name is not None:
            invitee_name = canonicalize_name(invitee_name) or invitee_name.strip() or None

        invite = InviteToken.generate(
            inviter_id=inviter_id,
            entity_type=parsed_entity,
            relationship_type=parsed_relationship,
            expire_days=expire_days,
            now=self.clock(),
            code_bytes=self.settings.invite_code_bytes,
            invitee_name=invitee_name,
            notes=notes or None,
        )
        invite = await self.invite_repo.create(invite)

        logger.info(
            "Invite created",
            invite_id=invite.id,
            inviter_id=inviter_id,
            entity_type=parsed_entity.value,
            relationship_type=parsed_relationship.value,
            expires_at=invite.expires_at.isoformat() if invite.expires_at else None,
        )
        return invite

    async def validate(self, code: str) -> InviteValidation:
        """Check whether a code could be consumed right now. Never writes."""
        invite = await self.invite_repo.get_by_code(code) if code else None
        if invite is None:
            return InviteValidation(InviteValidationStatus.INVALID)
        if invite.is_used:
            return InviteValidation(InviteValidationStatus.ALREADY_USED, invite)
        if invite.is_expired_at(self.clock()):
            return InviteValidation(InviteValidationStatus.EXPIRED, invite)
        return InviteValidation(InviteValidationStatus.VALID, invite)

    async def consume(self, code: str, user_id: int) -> bool:
        """Atomically mark a code as used by a new identity.

        Returns:
            True if this call consumed the code. False if the code does not
            exist, is already used, is expired, or the identity was already
            created with another invite.
        """
        if not code:
            return False
        consumed = await self.invite_repo.consume(code, user_id, self.clock())
        if consumed:
            logger.info("Invite consumed", user_id=user_id)
        else:
            logger.info("Invite consumption lost or rejected", user_id=user_id)
        return consumed

    async def revoke(self, invite_id: int) -> bool:
        """Delete an invite while it is still unused.

        Returns:
            True if the invite was deleted, False if it was used or missing.
        """
        revoked = await self.invite_repo.revoke(invite_id)
        if revoked:
            logger.info("Invite revoked", invite_id=invite_id)
        else:
            logger.info("Invite not revoked (used or missing)", invite_id=invite_id)
        return revoked

    async def get_consuming_invite(self, user_id: int) -> InviteToken | None:
        """Get the invite that created an identity (None for genesis identities)."""
        return await self.invite_repo.get_by_used_by_id(user_id)

    async def get_invite(self, invite_id: int) -> InviteToken | None:
        return await self.invite_repo.get_by_id(invite_id)

    async def get_invite_by_code(self, code: str) -> InviteToken | None:
        return await self.invite_repo.get_by_code(code)

    async def list_invites_by_inviter(self, inviter_id: int) -> list[InviteToken]:
        """List an inviter's invites, newest first."""
        return await self.invite_repo.list_by_inviter(inviter_id)

    async def list_invites(self, limit: int = 100, offset: int = 0) -> list[InviteToken]:
        """List all invites for the audit view, newest first."""
        return await self.invite_repo.list_all(limit=limit, offset=offset)

    async def get_unused_invite_by_name(self, invitee_name: str) -> InviteToken | None:
        """Get the newest unused invite addressed to a name."""
        canonical = canonicalize_name(invitee_name)
        if canonical is None:
            return None
        return await self.invite_repo.get_unused_by_invitee_name(canonical)

    def invite_status(self, invite: InviteToken) -> InviteState:
        """Audit state of an invite: pending, used or expired."""
        return invite.state_at(self.clock())

    def build_invite_url(self, code: str) -> str:
        """Shareable signup link for an invite code."""
        return f"{self.settings.external_url}/signup?invite={code}"
