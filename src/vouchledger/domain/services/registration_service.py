"""Registration: create an identity with an invite and record its origin.

The identity row and the invite consumption commit together. If the
consumption loses a race, the identity is rolled back with it. The origin
attestation is written afterwards in its own commit; failing to write it
never undoes a registration.
"""

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError as SQLAlchemyIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.core.config import Settings, get_settings
from vouchledger.core.logging import get_logger
from vouchledger.domain.entities import (
    AttestationRecord,
    EntityType,
    Identity,
    InviteToken,
)
from vouchledger.domain.exceptions import AuthorizationError, ConflictError, ValidationError
from vouchledger.domain.services.attestation_registry import BOT_ROLE, AttestationRegistry
from vouchledger.domain.services.invite_ledger import InviteLedger
from vouchledger.domain.services.system_identity_guard import SystemIdentityGuard
from vouchledger.infrastructure.identity import IdentityProvider
from vouchledger.infrastructure.persistence.repositories import IdentityRepository

logger = get_logger(__name__)

DEFAULT_ROLE = "member"


@dataclass
class RegistrationResult:
    """Outcome of a successful registration.

    Attributes:
        identity: The new identity.
        invite: The consumed invite, or None for exempt registrations.
        origin_attestation: The invite-record, or None if it was skipped.
    """

    identity: Identity
    invite: InviteToken | None = None
    origin_attestation: AttestationRecord | None = None


class RegistrationService:
    """Register new identities through the invite ledger."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: InviteLedger,
        registry: AttestationRegistry,
        guard: SystemIdentityGuard,
        identity_provider: IdentityProvider,
        settings: Settings | None = None,
    ) -> None:
        self.session = session
        self.ledger = ledger
        self.registry = registry
        self.guard = guard
        self.identities = identity_provider
        self.settings = settings or get_settings()
        self.identity_repo = IdentityRepository(session)

    async def check_invite(
        self, invite_code: str | None, creator_id: int | None = None
    ) -> InviteToken | None:
        """Pre-authentication check run before any account is created.

        Elevated creators may register accounts without an invite.

        Returns:
            The valid invite, or None when no invite is needed and none was given.

        Raises:
            ValidationError: An invite is required but no code was given.
            NotFoundError: The code does not exist.
            AlreadyUsedError: The code has been consumed.
            ExpiredError: The code is past its expiry.
        """
        exempt = creator_id is not None and await self.identities.is_elevated_role(creator_id)
        if not invite_code:
            if self.settings.invites_required and not exempt:
                raise ValidationError("An invite code is required to create an account")
            return None

        validation = await self.ledger.validate(invite_code)
        return validation.raise_for_status()

    def _canonical_name(self, name: str) -> str:
        canonical = self.identities.canonicalize(name)
        if canonical is None:
            raise ValidationError(f"'{name}' is not a valid account name")
        if self.guard.is_reserved(canonical):
            raise ValidationError(f"'{canonical}' is reserved for the system")
        return canonical

    async def _check_role_grant(self, role: str, creator_id: int | None) -> None:
        """Only an elevated creator may choose a role other than the default."""
        if role == DEFAULT_ROLE:
            return
        if creator_id is None or not await self.identities.is_elevated_role(creator_id):
            logger.warning("Role assignment denied", role=role, creator_id=creator_id)
            raise AuthorizationError(f"Only an elevated creator may assign the role '{role}'")

    async def register(
        self,
        name: str,
        invite_code: str | None = None,
        creator_id: int | None = None,
        role: str = DEFAULT_ROLE,
    ) -> RegistrationResult:
        """Create an identity, consume its invite and write its invite-record.

        Args:
            name: Requested account name.
            invite_code: Invite code, required unless the creator is elevated.
            creator_id: Identity creating the account on someone's behalf.
            role: Role for the new identity. Anything but the default needs an
                elevated creator. Bot invites register bots.

        Returns:
            The registration result.

        Raises:
            ValidationError: Missing code, invalid or reserved name.
            AuthorizationError: A non-default role without an elevated creator.
            ConflictError: Name taken, or the invite was consumed concurrently.
            NotFoundError, AlreadyUsedError, ExpiredError: Invalid invite.
        """
        await self._check_role_grant(role, creator_id)
        invite = await self.check_invite(invite_code, creator_id)
        canonical = self._canonical_name(name)

        if await self.identity_repo.get_by_name(canonical) is not None:
            raise ConflictError(f"Account name '{canonical}' is already taken")

        if invite is not None and invite.entity_type == EntityType.BOT and role == DEFAULT_ROLE:
            role = BOT_ROLE

        try:
            identity = await self.identity_repo.create(name=canonical, role=role)
        except SQLAlchemyIntegrityError:
            await self.session.rollback()
            raise ConflictError(f"Account name '{canonical}' is already taken")

        if invite is not None:
            if not await self.ledger.consume(invite_code, identity.id):
                await self.session.rollback()
                logger.info("Registration lost invite race", name=canonical)
                raise ConflictError("Invite code was used by another registration")

        await self.session.commit()
        logger.info(
            "Identity registered",
            identity_id=identity.id,
            name=canonical,
            invited=invite is not None,
        )

        result = RegistrationResult(identity=identity)
        if invite is None:
            return result

        result.invite = await self.ledger.get_invite(invite.id)
        try:
            result.origin_attestation = await self.registry.create_origin_attestation(
                identity.id, result.invite
            )
            await self.session.commit()
        except ConflictError as e:
            logger.warning(
                "Origin attestation not written",
                identity_id=identity.id,
                error=e.message,
            )

        logger.info(
            "Registration complete",
            identity_id=identity.id,
            inviter_id=invite.inviter_id,
            origin_attestation_id=(
                result.origin_attestation.id if result.origin_attestation else None
            ),
        )
        return result

    async def create_administrator(self, name: str, role: str | None = None) -> Identity:
        """Create an elevated identity without an invite.

        Operator bootstrap for a fresh deployment, run from the command line
        before any elevated identity exists to vouch for others. Commits its
        own transaction.

        Args:
            name: Requested account name.
            role: One of ``settings.elevated_roles`` (defaults to the first).

        Raises:
            ValidationError: Invalid or reserved name, or a role that is not elevated.
            ConflictError: Name taken.
        """
        role = role or next(iter(self.settings.elevated_roles), None)
        if role is None or role not in self.settings.elevated_roles:
            raise ValidationError(f"'{role}' is not an elevated role")
        canonical = self._canonical_name(name)

        if await self.identity_repo.get_by_name(canonical) is not None:
            raise ConflictError(f"Account name '{canonical}' is already taken")

        try:
            identity = await self.identity_repo.create(name=canonical, role=role)
            await self.session.commit()
        except SQLAlchemyIntegrityError:
            await self.session.rollback()
            raise ConflictError(f"Account name '{canonical}' is already taken")

        logger.info("Administrator created", identity_id=identity.id, name=canonical, role=role)
        return identity
