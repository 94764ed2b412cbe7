"""Identity provider backed by the identities table."""

from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.core.config import Settings, get_settings
from vouchledger.core.context import get_current_actor_id
from vouchledger.domain.entities import Identity
from vouchledger.domain.exceptions import AuthorizationError
from vouchledger.domain.services.naming import canonicalize_name
from vouchledger.infrastructure.identity.base import IdentityProvider
from vouchledger.infrastructure.persistence.repositories import IdentityRepository


class SqlIdentityProvider(IdentityProvider):
    """Resolve identities from the local identities table.

    The current actor comes from the context variable bound by the caller
    (the CLI binds ``--actor``; a host application binds its session user).
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.repository = IdentityRepository(session)

    def canonicalize(self, name: str) -> str | None:
        return canonicalize_name(name)

    async def resolve_user_id(self, name: str) -> int | None:
        identity = await self.get_identity_by_name(name)
        return identity.id if identity else None

    async def get_identity(self, user_id: int) -> Identity | None:
        return await self.repository.get_by_id(user_id)

    async def get_identity_by_name(self, name: str) -> Identity | None:
        """Get an identity by name, canonicalising it first."""
        canonical = self.canonicalize(name)
        if canonical is None:
            return None
        return await self.repository.get_by_name(canonical)

    async def is_elevated_role(self, user_id: int) -> bool:
        identity = await self.repository.get_by_id(user_id)
        return identity is not None and identity.role in self.settings.elevated_roles

    def current_actor_id(self) -> int:
        actor_id = get_current_actor_id()
        if actor_id is None:
            raise AuthorizationError("No acting identity is bound to this context")
        return actor_id
