"""Repository for identity database operations."""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.domain.entities import Identity
from vouchledger.infrastructure.persistence.models import IdentityModel
from vouchledger.infrastructure.persistence.repositories.utils import as_utc


class IdentityRepository:
    """Repository for identity database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_entity(self, model: IdentityModel) -> Identity:
        """Convert infrastructure model to domain entity."""
        return Identity(
            id=model.id,
            name=model.name,
            role=model.role,
            is_system=model.is_system,
            created_at=as_utc(model.created_at),
        )

    async def create(
        self,
        name: str,
        role: str = "member",
        is_system: bool = False,
        created_at: datetime | None = None,
    ) -> Identity:
        """Store a new identity.

        Args:
            name: Canonical account name.
            role: Role name.
            is_system: Whether this is the reserved system identity.
            created_at: Creation timestamp (defaults to now).

        Returns:
            The stored identity with its assigned ID.

        Raises:
            sqlalchemy.exc.IntegrityError: If the name is already taken.
        """
        model = IdentityModel(
            name=name,
            role=role,
            is_system=is_system,
            created_at=created_at or datetime.now(timezone.utc),
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_id(self, identity_id: int) -> Identity | None:
        """Get an identity by ID."""
        result = await self._session.execute(
            select(IdentityModel).where(IdentityModel.id == identity_id)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_name(self, name: str) -> Identity | None:
        """Get an identity by its canonical name."""
        result = await self._session.execute(
            select(IdentityModel).where(IdentityModel.name == name)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_all(self) -> list[Identity]:
        """List all identities, oldest first."""
        result = await self._session.execute(
            select(IdentityModel).order_by(IdentityModel.id.asc())
        )
        return [self._to_entity(model) for model in result.scalars().all()]
