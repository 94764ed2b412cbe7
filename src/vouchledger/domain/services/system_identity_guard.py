"""System identity guard.

The reserved system identity authors every origin and genesis record. It is
claimed once during deployment bootstrap, before registrations open, so no
member can register the name first. The guard never takes over a name that
is already held by an ordinary identity.
"""

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError as SQLAlchemyIntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.core.config import Settings, get_settings
from vouchledger.core.logging import get_logger
from vouchledger.domain.entities import Identity
from vouchledger.domain.exceptions import ValidationError
from vouchledger.domain.services.naming import canonicalize_name
from vouchledger.infrastructure.persistence.repositories import IdentityRepository

logger = get_logger(__name__)

SYSTEM_ROLE = "system"


class GuardStatus(str, Enum):
    """Outcome of ensuring the reserved identity."""

    READY = "ready"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class GuardOutcome:
    """Result of ``SystemIdentityGuard.ensure``.

    Attributes:
        status: READY when the reserved identity exists, CONFLICT when the
            name is held by an ordinary identity.
        name: Canonical reserved name.
        identity: The system identity when READY.
    """

    status: GuardStatus
    name: str
    identity: Identity | None = None

    @property
    def is_ready(self) -> bool:
        return self.status == GuardStatus.READY


class SystemIdentityGuard:
    """Idempotently claim the reserved system identity."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.identity_repo = IdentityRepository(session)

    def reserved_name(self, reserved_name: str | None = None) -> str:
        """Canonical form of the reserved name.

        Raises:
            ValidationError: If the configured name is not a valid account name.
        """
        raw = reserved_name or self.settings.system_identity_name
        canonical = canonicalize_name(raw)
        if canonical is None:
            raise ValidationError(f"Reserved system name '{raw}' is not a valid account name")
        return canonical

    def is_reserved(self, name: str) -> bool:
        """Check whether a name canonicalises to the reserved system name."""
        return canonicalize_name(name) == self.reserved_name()

    async def get_system_identity(self) -> Identity | None:
        """Get the system identity, or None if it was never claimed or is squatted."""
        identity = await self.identity_repo.get_by_name(self.reserved_name())
        if identity is None or not identity.is_system:
            return None
        return identity

    def _classify(self, name: str, identity: Identity) -> GuardOutcome:
        if identity.is_system:
            logger.info("System identity ready", name=name, identity_id=identity.id)
            return GuardOutcome(GuardStatus.READY, name, identity)
        logger.warning(
            "Reserved system name is held by an ordinary identity",
            name=name,
            identity_id=identity.id,
        )
        return GuardOutcome(GuardStatus.CONFLICT, name)

    async def ensure(self, reserved_name: str | None = None) -> GuardOutcome:
        """Create the reserved identity if it does not exist yet.

        Safe to call repeatedly. Commits its own transaction.

        Args:
            reserved_name: Name to reserve (defaults to settings.system_identity_name).

        Returns:
            READY with the identity, or CONFLICT if the name belongs to an
            ordinary identity. A conflict is never overwritten.
        """
        name = self.reserved_name(reserved_name)

        existing = await self.identity_repo.get_by_name(name)
        if existing is not None:
            return self._classify(name, existing)

        try:
            identity = await self.identity_repo.create(
                name=name, role=SYSTEM_ROLE, is_system=True
            )
            await self.session.commit()
        except SQLAlchemyIntegrityError:
            # Another bootstrap or a registration claimed the name first
            await self.session.rollback()
            existing = await self.identity_repo.get_by_name(name)
            if existing is None:
                raise
            return self._classify(name, existing)

        logger.info("System identity created", name=name, identity_id=identity.id)
        return GuardOutcome(GuardStatus.READY, name, identity)
