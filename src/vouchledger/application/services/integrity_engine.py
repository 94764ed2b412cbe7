"""Integrity engine: every service wired onto one session.

Host applications and the CLI build one engine per unit of work. The domain
services only flush; the engine's ``commit`` ends the unit of work.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.core.config import Settings, get_settings
from vouchledger.domain.services.ancestry_resolver import AncestryResolver
from vouchledger.domain.services.attestation_registry import AttestationRegistry
from vouchledger.domain.services.genesis_bootstrap import GenesisBootstrapService
from vouchledger.domain.services.invite_ledger import InviteLedger
from vouchledger.domain.services.registration_service import RegistrationService
from vouchledger.domain.services.system_identity_guard import SystemIdentityGuard
from vouchledger.infrastructure.content import ContentStore, SqlContentStore
from vouchledger.infrastructure.identity import IdentityProvider, SqlIdentityProvider


@dataclass
class IntegrityEngine:
    """Facade over the ledger, resolver, registry and guard."""

    session: AsyncSession
    settings: Settings
    identities: IdentityProvider
    content: ContentStore
    ledger: InviteLedger
    resolver: AncestryResolver
    guard: SystemIdentityGuard
    registry: AttestationRegistry
    registration: RegistrationService
    genesis: GenesisBootstrapService

    @classmethod
    def from_session(
        cls,
        session: AsyncSession,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
        identity_provider: IdentityProvider | None = None,
        content_store: ContentStore | None = None,
    ) -> "IntegrityEngine":
        """Build an engine on a session.

        Args:
            session: SQLAlchemy async session shared by every service.
            settings: Application settings (defaults to the cached settings).
            clock: Returns the current UTC time; injectable for tests.
            identity_provider: Host identity provider (defaults to the SQL one).
            content_store: Host content store (defaults to the SQL one).
        """
        settings = settings or get_settings()
        identities = identity_provider or SqlIdentityProvider(session, settings)
        content = content_store or SqlContentStore(session)
        ledger = InviteLedger(session, settings, clock)
        guard = SystemIdentityGuard(session, settings)
        registry = AttestationRegistry(
            session,
            identity_provider=identities,
            content_store=content,
            ledger=ledger,
            guard=guard,
            settings=settings,
            clock=clock,
        )
        return cls(
            session=session,
            settings=settings,
            identities=identities,
            content=content,
            ledger=ledger,
            resolver=AncestryResolver(ledger),
            guard=guard,
            registry=registry,
            registration=RegistrationService(
                session, ledger, registry, guard, identities, settings
            ),
            genesis=GenesisBootstrapService(
                session, registry, ledger, guard, identities, content
            ),
        )

    async def commit(self) -> None:
        """Commit the unit of work."""
        await self.session.commit()
