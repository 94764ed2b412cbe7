"""SQLAlchemy model for the invites table.

Each row is a single-use invite code. A row is consumed at most once by a
conditional update and may only be deleted while unused.
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from vouchledger.infrastructure.persistence.database import Base


class InviteModel(Base):
    """SQLAlchemy model for the invites table.

    Attributes:
        id: Primary key (autoincrement integer).
        code: Random hex code, unique.
        inviter_id: Foreign key to the identity that created the invite.
        invitee_name: Intended recipient name (not enforced).
        entity_type: 'human' or 'bot'.
        relationship_type: How the inviter knows the invitee.
        created_at: Timestamp when the invite was created.
        expires_at: Expiry timestamp (NULL = never expires).
        used_at: Consumption timestamp (NULL = unused).
        used_by_id: Identity created with this invite (NULL = unused).
        notes: Freeform notes about the invitee.
    """

    __tablename__ = "invites"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Invite ID",
    )
    code: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="Random invite code (hex)",
    )
    inviter_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("identities.id"),
        nullable=False,
        index=True,
        comment="Foreign key to identities table (inviter)",
    )
    invitee_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Intended recipient name (soft tracking)",
    )
    entity_type: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="human",
        comment="Entity type: human or bot",
    )
    relationship_type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="How the inviter knows the invitee",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Expiry timestamp (NULL = never)",
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Consumption timestamp",
    )
    used_by_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("identities.id"),
        nullable=True,
        index=True,
        comment="Foreign key to identities table (invitee)",
    )
    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Freeform notes about the invitee",
    )

    __table_args__ = (
        CheckConstraint("entity_type IN ('human', 'bot')", name="ck_invites_entity_type"),
        CheckConstraint(
            "(used_at IS NULL AND used_by_id IS NULL) "
            "OR (used_at IS NOT NULL AND used_by_id IS NOT NULL)",
            name="ck_invites_used_pair",
        ),
    )

    def __repr__(self) -> str:
        return f"<Invite(id={self.id}, inviter_id={self.inviter_id}, used_by_id={self.used_by_id})>"
