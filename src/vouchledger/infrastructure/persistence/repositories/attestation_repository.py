"""Repository for attestation database operations."""

import json
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vouchledger.domain.entities import (
    AttestationKind,
    AttestationRecord,
    AttestationType,
)
from vouchledger.infrastructure.persistence.models import AttestationModel
from vouchledger.infrastructure.persistence.repositories.utils import as_utc


class AttestationRepository:
    """Repository for attestation database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_entity(self, model: AttestationModel) -> AttestationRecord:
        """Convert infrastructure model to domain entity."""
        return AttestationRecord(
            id=model.id,
            subject_id=model.subject_id,
            attester_id=model.attester_id,
            attestation_type=AttestationType(model.attestation_type),
            freeform_text=model.freeform_text,
            page_path=model.page_path,
            kind=AttestationKind(model.kind),
            invite_id=model.invite_id,
            is_protected=model.is_protected,
            protection_rules=json.loads(model.protection_rules or "{}"),
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    async def _get_model(self, *criteria) -> AttestationModel | None:
        result = await self._session.execute(select(AttestationModel).where(*criteria))
        return result.scalar_one_or_none()

    async def create(self, entity: AttestationRecord) -> AttestationRecord:
        """Store a new attestation.

        Args:
            entity: The AttestationRecord entity to store.

        Returns:
            The stored entity with its assigned ID.

        Raises:
            sqlalchemy.exc.IntegrityError: If the (subject, attester) pair or
                the page path already exists.
        """
        model = AttestationModel(
            subject_id=entity.subject_id,
            attester_id=entity.attester_id,
            attestation_type=entity.attestation_type.value,
            freeform_text=entity.freeform_text,
            kind=entity.kind.value,
            page_path=entity.page_path,
            invite_id=entity.invite_id,
            is_protected=entity.is_protected,
            protection_rules=json.dumps(entity.protection_rules, sort_keys=True),
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_id(self, attestation_id: int) -> AttestationRecord | None:
        """Get an attestation by ID."""
        model = await self._get_model(AttestationModel.id == attestation_id)
        return self._to_entity(model) if model else None

    async def get_by_pair(self, subject_id: int, attester_id: int) -> AttestationRecord | None:
        """Get the attestation for a (subject, attester) pair."""
        model = await self._get_model(
            AttestationModel.subject_id == subject_id,
            AttestationModel.attester_id == attester_id,
        )
        return self._to_entity(model) if model else None

    async def get_by_page_path(self, page_path: str) -> AttestationRecord | None:
        """Get the attestation published at a content path."""
        model = await self._get_model(AttestationModel.page_path == page_path)
        return self._to_entity(model) if model else None

    async def list_for_subject(self, subject_id: int) -> list[AttestationRecord]:
        """List attestations about a subject, oldest first."""
        result = await self._session.execute(
            select(AttestationModel)
            .where(AttestationModel.subject_id == subject_id)
            .order_by(AttestationModel.created_at.asc(), AttestationModel.id.asc())
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def list_by_attester(self, attester_id: int) -> list[AttestationRecord]:
        """List attestations written by an attester, oldest first."""
        result = await self._session.execute(
            select(AttestationModel)
            .where(AttestationModel.attester_id == attester_id)
            .order_by(AttestationModel.created_at.asc(), AttestationModel.id.asc())
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def update(
        self,
        attestation_id: int,
        updated_at: datetime,
        attestation_type: AttestationType | None = None,
        freeform_text: str | None = None,
        protection_rules: dict[str, str] | None = None,
    ) -> AttestationRecord | None:
        """Update mutable fields of an attestation.

        Subject and attester are never changed.

        Returns:
            The updated entity, or None if it does not exist.
        """
        model = await self._get_model(AttestationModel.id == attestation_id)
        if model is None:
            return None
        if attestation_type is not None:
            model.attestation_type = attestation_type.value
        if freeform_text is not None:
            model.freeform_text = freeform_text
        if protection_rules is not None:
            model.is_protected = bool(protection_rules)
            model.protection_rules = json.dumps(protection_rules, sort_keys=True)
        model.updated_at = updated_at
        await self._session.flush()
        return self._to_entity(model)
