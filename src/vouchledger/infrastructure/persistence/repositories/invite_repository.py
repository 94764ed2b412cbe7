"""Repository for invite database operations.

Consumption and revocation are single conditional statements. Their
row counts decide the outcome, so two callers racing on the same code
cannot both succeed regardless of which process they run in.
"""

from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from vouchledger.domain.entities import AttestationType, EntityType, InviteToken
from vouchledger.infrastructure.persistence.models import InviteModel
from vouchledger.infrastructure.persistence.repositories.utils import as_utc


class InviteRepository:
    """Repository for invite database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: InviteToken) -> InviteModel:
        """Convert domain entity to infrastructure model."""
        return InviteModel(
            id=entity.id,
            code=entity.code,
            inviter_id=entity.inviter_id,
            invitee_name=entity.invitee_name,
            entity_type=entity.entity_type.value,
            relationship_type=entity.relationship_type.value,
            created_at=entity.created_at,
            expires_at=entity.expires_at,
            used_at=entity.used_at,
            used_by_id=entity.used_by_id,
            notes=entity.notes,
        )

    def _to_entity(self, model: InviteModel) -> InviteToken:
        """Convert infrastructure model to domain entity."""
        return InviteToken(
            id=model.id,
            code=model.code,
            inviter_id=model.inviter_id,
            invitee_name=model.invitee_name,
            entity_type=EntityType(model.entity_type),
            relationship_type=AttestationType(model.relationship_type),
            created_at=as_utc(model.created_at),
            expires_at=as_utc(model.expires_at),
            used_at=as_utc(model.used_at),
            used_by_id=model.used_by_id,
            notes=model.notes,
        )

    async def _fetch_one(self, *criteria) -> InviteToken | None:
        # Conditional writes bypass the identity map; always reload row state
        stmt = (
            select(InviteModel)
            .where(*criteria)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        model = result.scalars().first()
        return self._to_entity(model) if model else None

    async def _fetch_all(self, stmt) -> list[InviteToken]:
        result = await self._session.execute(
            stmt.execution_options(populate_existing=True)
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def create(self, entity: InviteToken) -> InviteToken:
        """Store a new invite.

        Args:
            entity: The InviteToken entity to store.

        Returns:
            The stored entity with its assigned ID.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_id(self, invite_id: int) -> InviteToken | None:
        """Get an invite by ID."""
        return await self._fetch_one(InviteModel.id == invite_id)

    async def get_by_code(self, code: str) -> InviteToken | None:
        """Get an invite by its code."""
        return await self._fetch_one(InviteModel.code == code)

    async def get_by_used_by_id(self, user_id: int) -> InviteToken | None:
        """Get the invite that was consumed to create the given identity."""
        return await self._fetch_one(InviteModel.used_by_id == user_id)

    async def get_unused_by_invitee_name(self, invitee_name: str) -> InviteToken | None:
        """Get the most recent unused invite addressed to a name."""
        stmt = (
            select(InviteModel)
            .where(
                InviteModel.invitee_name == invitee_name,
                InviteModel.used_at.is_(None),
            )
            .order_by(InviteModel.created_at.desc(), InviteModel.id.desc())
            .limit(1)
        )
        invites = await self._fetch_all(stmt)
        return invites[0] if invites else None

    async def list_by_inviter(self, inviter_id: int) -> list[InviteToken]:
        """List invites created by an identity, newest first."""
        stmt = (
            select(InviteModel)
            .where(InviteModel.inviter_id == inviter_id)
            .order_by(InviteModel.created_at.desc(), InviteModel.id.desc())
        )
        return await self._fetch_all(stmt)

    async def list_all(self, limit: int = 100, offset: int = 0) -> list[InviteToken]:
        """List all invites, newest first.

        Args:
            limit: Maximum number of invites to return.
            offset: Number of invites to skip.
        """
        stmt = (
            select(InviteModel)
            .order_by(InviteModel.created_at.desc(), InviteModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return await self._fetch_all(stmt)

    async def consume(self, code: str, user_id: int, now: datetime) -> bool:
        """Atomically mark an invite as used by an identity.

        The update only matches a row that is unused and unexpired, and only
        when no other invite has already been consumed by the same identity.

        Args:
            code: Invite code.
            user_id: Identity being created with the invite.
            now: Consumption timestamp, also used for the expiry check.

        Returns:
            True if this call consumed the invite, False otherwise.
        """
        prior = aliased(InviteModel)
        already_invited = select(prior.id).where(prior.used_by_id == user_id).exists()
        stmt = (
            update(InviteModel.__table__)
            .where(
                InviteModel.code == code,
                InviteModel.used_at.is_(None),
                or_(InviteModel.expires_at.is_(None), InviteModel.expires_at >= now),
                ~already_invited,
            )
            .values(used_at=now, used_by_id=user_id)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def revoke(self, invite_id: int) -> bool:
        """Delete an invite if it is still unused.

        Returns:
            True if the invite was deleted, False if it was used or missing.
        """
        stmt = delete(InviteModel.__table__).where(
            InviteModel.id == invite_id,
            InviteModel.used_at.is_(None),
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1
