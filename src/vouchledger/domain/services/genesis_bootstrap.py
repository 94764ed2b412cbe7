"""Genesis bootstrap: protected records for identities that predate invites.

Run once when the invitation system is introduced to an existing community.
Every identity without a consuming invite gets a genesis record authored by
the system identity. Re-running skips identities already covered.
"""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.core.logging import get_logger
from vouchledger.domain.exceptions import ConflictError, NotFoundError, ValidationError
from vouchledger.domain.services.attestation_registry import BOT_ROLE, AttestationRegistry
from vouchledger.domain.services.invite_ledger import InviteLedger
from vouchledger.domain.services.system_identity_guard import SystemIdentityGuard
from vouchledger.infrastructure.content import ContentStore, genesis_page_path
from vouchledger.infrastructure.identity import IdentityProvider
from vouchledger.infrastructure.persistence.repositories import IdentityRepository

logger = get_logger(__name__)


@dataclass
class GenesisReport:
    """Summary of a bootstrap run.

    Attributes:
        total: Identities examined.
        created: Page paths created (or that would be created in a dry run).
        skipped: (name, reason) pairs.
        failed: Page paths that could not be created.
        dry_run: Whether nothing was written.
    """

    total: int = 0
    created: list[str] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    dry_run: bool = False


class GenesisBootstrapService:
    """Create genesis records for existing identities."""

    def __init__(
        self,
        session: AsyncSession,
        registry: AttestationRegistry,
        ledger: InviteLedger,
        guard: SystemIdentityGuard,
        identity_provider: IdentityProvider,
        content_store: ContentStore,
    ) -> None:
        self.session = session
        self.registry = registry
        self.ledger = ledger
        self.guard = guard
        self.identities = identity_provider
        self.content = content_store
        self.identity_repo = IdentityRepository(session)

    async def run(
        self,
        dry_run: bool = False,
        only_name: str | None = None,
        exclude_bots: bool = False,
    ) -> GenesisReport:
        """Create genesis records, committing after each one.

        Args:
            dry_run: Report what would be created without writing.
            only_name: Process a single identity by name.
            exclude_bots: Skip identities with the bot role.

        Raises:
            NotFoundError: If the system identity is unavailable (not in dry runs),
                or ``only_name`` is not a registered identity.
            ValidationError: If ``only_name`` is not a valid account name.
        """
        report = GenesisReport(dry_run=dry_run)

        if not dry_run and await self.guard.get_system_identity() is None:
            raise NotFoundError(
                "System identity is not available; run ensure-system-identity first"
            )

        if only_name is not None:
            canonical = self.identities.canonicalize(only_name)
            if canonical is None:
                raise ValidationError(f"'{only_name}' is not a valid account name")
            identity = await self.identity_repo.get_by_name(canonical)
            if identity is None:
                raise NotFoundError(f"Identity '{canonical}' does not exist")
            identities = [identity]
        else:
            identities = await self.identity_repo.list_all()

        for identity in identities:
            report.total += 1

            if identity.is_system:
                report.skipped.append((identity.name, "system"))
                continue
            if exclude_bots and identity.role == BOT_ROLE:
                report.skipped.append((identity.name, "bot"))
                continue
            if await self.ledger.get_consuming_invite(identity.id) is not None:
                report.skipped.append((identity.name, "invited"))
                continue

            page_path = genesis_page_path(identity.name)
            if await self.content.exists(page_path):
                report.skipped.append((identity.name, "exists"))
                continue

            if dry_run:
                report.created.append(page_path)
                continue

            try:
                record = await self.registry.create_genesis_attestation(identity.id)
            except ConflictError:
                record = None
            if record is None:
                report.failed.append(page_path)
                continue
            await self.session.commit()
            report.created.append(page_path)

        logger.info(
            "Genesis bootstrap finished",
            dry_run=dry_run,
            total=report.total,
            created=len(report.created),
            skipped=len(report.skipped),
            failed=len(report.failed),
        )
        return report
