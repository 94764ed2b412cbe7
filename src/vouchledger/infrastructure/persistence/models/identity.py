"""SQLAlchemy model for the identities table.

Identities are the host community's accounts. The engine creates rows here
only for registrations and for the reserved system identity.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from vouchledger.infrastructure.persistence.database import Base


class IdentityModel(Base):
    """SQLAlchemy model for the identities table.

    Attributes:
        id: Primary key (autoincrement integer).
        name: Canonical account name, unique.
        role: Role name (e.g. member, bot, sysop).
        is_system: Whether this row is the reserved system identity.
        created_at: Timestamp when the identity was created.
    """

    __tablename__ = "identities"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Identity ID",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Canonical account name",
    )
    role: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="member",
        comment="Role name; elevated roles are configured in settings",
    )
    is_system: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether this is the reserved system identity",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Identity(id={self.id}, name={self.name}, is_system={self.is_system})>"
