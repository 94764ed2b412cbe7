"""SQLAlchemy model for the pages table.

Backs the SQL content store: published attestation content and its
protection rules, keyed by path.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from vouchledger.infrastructure.persistence.database import Base


class PageModel(Base):
    """SQLAlchemy model for the pages table."""

    __tablename__ = "pages"

    path: Mapped[str] = mapped_column(
        String(512),
        primary_key=True,
        comment="Page path, e.g. User:Alice/Attestations/by-Bob",
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("identities.id"),
        nullable=False,
        comment="Identity that created the page",
    )
    last_editor_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("identities.id"),
        nullable=True,
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

    def __repr__(self) -> str:
        return f"<Page(path={self.path}, author_id={self.author_id})>"
