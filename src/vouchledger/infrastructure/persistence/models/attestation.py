"""SQLAlchemy model for the attestations table.

The unique constraint on (subject_id, attester_id) is what closes the
create-create race between concurrent attestations of the same pair.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from vouchledger.infrastructure.persistence.database import Base


class AttestationModel(Base):
    """SQLAlchemy model for the attestations table.

    Attributes:
        id: Primary key (autoincrement integer).
        subject_id: Identity being vouched for.
        attester_id: Identity doing the vouching.
        attestation_type: How the attester knows the subject.
        freeform_text: Attester's free text.
        kind: peer, origin or genesis.
        page_path: Content store path of the published record, unique.
        invite_id: Consumed invite for origin records.
        is_protected: Whether the record is tamper-protected.
        protection_rules: JSON object mapping action to required capability.
        created_at: Timestamp when the record was created.
        updated_at: Timestamp of the last edit.
    """

    __tablename__ = "attestations"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Attestation ID",
    )
    subject_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("identities.id"),
        nullable=False,
        index=True,
        comment="Identity being attested",
    )
    attester_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("identities.id"),
        nullable=False,
        index=True,
        comment="Identity making the attestation",
    )
    attestation_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Attestation type",
    )
    freeform_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )
    kind: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="peer",
        comment="peer, origin or genesis",
    )
    page_path: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        unique=True,
        comment="Content store path",
    )
    invite_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("invites.id"),
        nullable=True,
        comment="Consumed invite (origin records)",
    )
    is_protected: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    protection_rules: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="{}",
        comment="JSON: action -> required capability",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("subject_id", "attester_id", name="uq_attestations_subject_attester"),
        CheckConstraint("subject_id <> attester_id", name="ck_attestations_not_self"),
    )

    def __repr__(self) -> str:
        return (
            f"<Attestation(id={self.id}, subject_id={self.subject_id}, "
            f"attester_id={self.attester_id}, kind={self.kind})>"
        )
