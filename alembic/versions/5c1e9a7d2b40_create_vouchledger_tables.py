"""create_vouchledger_tables

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-18 10:12:44.318205

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d2b40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "identities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False, comment="Identity ID"),
        sa.Column("name", sa.String(length=255), nullable=False, comment="Canonical account name"),
        sa.Column(
            "role",
            sa.String(length=64),
            nullable=False,
            comment="Role name; elevated roles are configured in settings",
        ),
        sa.Column(
            "is_system",
            sa.Boolean(),
            nullable=False,
            comment="Whether this is the reserved system identity",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_identities_name"), "identities", ["name"], unique=True)

    op.create_table(
        "invites",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False, comment="Invite ID"),
        sa.Column("code", sa.String(length=64), nullable=False, comment="Random invite code (hex)"),
        sa.Column(
            "inviter_id",
            sa.Integer(),
            nullable=False,
            comment="Foreign key to identities table (inviter)",
        ),
        sa.Column(
            "invitee_name",
            sa.String(length=255),
            nullable=True,
            comment="Intended recipient name (soft tracking)",
        ),
        sa.Column(
            "entity_type", sa.String(length=16), nullable=False, comment="Entity type: human or bot"
        ),
        sa.Column(
            "relationship_type",
            sa.String(length=32),
            nullable=False,
            comment="How the inviter knows the invitee",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column(
            "expires_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Expiry timestamp (NULL = never)",
        ),
        sa.Column(
            "used_at", sa.DateTime(timezone=True), nullable=True, comment="Consumption timestamp"
        ),
        sa.Column(
            "used_by_id",
            sa.Integer(),
            nullable=True,
            comment="Foreign key to identities table (invitee)",
        ),
        sa.Column("notes", sa.Text(), nullable=True, comment="Freeform notes about the invitee"),
        sa.CheckConstraint("entity_type IN ('human', 'bot')", name="ck_invites_entity_type"),
        sa.CheckConstraint(
            "(used_at IS NULL AND used_by_id IS NULL) "
            "OR (used_at IS NOT NULL AND used_by_id IS NOT NULL)",
            name="ck_invites_used_pair",
        ),
        sa.ForeignKeyConstraint(["inviter_id"], ["identities.id"]),
        sa.ForeignKeyConstraint(["used_by_id"], ["identities.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_invites_code"), "invites", ["code"], unique=True)
    op.create_index(op.f("ix_invites_inviter_id"), "invites", ["inviter_id"], unique=False)
    op.create_index(op.f("ix_invites_invitee_name"), "invites", ["invitee_name"], unique=False)
    op.create_index(op.f("ix_invites_used_by_id"), "invites", ["used_by_id"], unique=False)

    op.create_table(
        "attestations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False, comment="Attestation ID"),
        sa.Column("subject_id", sa.Integer(), nullable=False, comment="Identity being attested"),
        sa.Column(
            "attester_id", sa.Integer(), nullable=False, comment="Identity making the attestation"
        ),
        sa.Column(
            "attestation_type", sa.String(length=32), nullable=False, comment="Attestation type"
        ),
        sa.Column("freeform_text", sa.Text(), nullable=False),
        sa.Column(
            "kind", sa.String(length=16), nullable=False, comment="peer, origin or genesis"
        ),
        sa.Column(
            "page_path", sa.String(length=512), nullable=False, comment="Content store path"
        ),
        sa.Column(
            "invite_id", sa.Integer(), nullable=True, comment="Consumed invite (origin records)"
        ),
        sa.Column("is_protected", sa.Boolean(), nullable=False),
        sa.Column(
            "protection_rules",
            sa.Text(),
            nullable=False,
            comment="JSON: action -> required capability",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("subject_id <> attester_id", name="ck_attestations_not_self"),
        sa.ForeignKeyConstraint(["attester_id"], ["identities.id"]),
        sa.ForeignKeyConstraint(["invite_id"], ["invites.id"]),
        sa.ForeignKeyConstraint(["subject_id"], ["identities.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("page_path"),
        sa.UniqueConstraint(
            "subject_id", "attester_id", name="uq_attestations_subject_attester"
        ),
    )
    op.create_index(
        op.f("ix_attestations_subject_id"), "attestations", ["subject_id"], unique=False
    )
    op.create_index(
        op.f("ix_attestations_attester_id"), "attestations", ["attester_id"], unique=False
    )

    op.create_table(
        "pages",
        sa.Column(
            "path",
            sa.String(length=512),
            nullable=False,
            comment="Page path, e.g. User:Alice/Attestations/by-Bob",
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "author_id", sa.Integer(), nullable=False, comment="Identity that created the page"
        ),
        sa.Column("last_editor_id", sa.Integer(), nullable=True),
        sa.Column(
            "protection_rules",
            sa.Text(),
            nullable=False,
            comment="JSON: action -> required capability",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["author_id"], ["identities.id"]),
        sa.ForeignKeyConstraint(["last_editor_id"], ["identities.id"]),
        sa.PrimaryKeyConstraint("path"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("pages")
    op.drop_index(op.f("ix_attestations_attester_id"), table_name="attestations")
    op.drop_index(op.f("ix_attestations_subject_id"), table_name="attestations")
    op.drop_table("attestations")
    op.drop_index(op.f("ix_invites_used_by_id"), table_name="invites")
    op.drop_index(op.f("ix_invites_invitee_name"), table_name="invites")
    op.drop_index(op.f("ix_invites_inviter_id"), table_name="invites")
    op.drop_index(op.f("ix_invites_code"), table_name="invites")
    op.drop_table("invites")
    op.drop_index(op.f("ix_identities_name"), table_name="identities")
    op.drop_table("identities")
