"""Create vendor listing draft review schema."""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261019_01"
down_revision: str | Sequence[str] | None = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create users, live listings, drafts, moderation ledger and notifications."""

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=True),
        sa.Column("phone_number", sa.String(), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
    )

    op.create_table(
        "vendors",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("website_url", sa.String(length=500), nullable=True),
        sa.Column("contact_email", sa.String(length=320), nullable=True),
        sa.Column("phone_number", sa.String(length=40), nullable=True),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"]),
    )
    op.create_index("ix_vendors_owner_id", "vendors", ["owner_id"])

    op.create_table(
        "services",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("website_url", sa.String(length=500), nullable=True),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["vendor_id"], ["vendors.id"]),
    )
    op.create_index("ix_services_vendor_id", "services", ["vendor_id"])

    op.create_table(
        "entity_drafts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("entity_kind", sa.String(length=16), nullable=False),
        sa.Column("entity_lineage_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("vendor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("row_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("state", sa.String(length=32), nullable=False, server_default="DRAFT"),
        sa.Column("change_summary", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("reviewed_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("submitted_at", sa.DateTime(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["reviewed_by_id"], ["users.id"]),
        sa.UniqueConstraint(
            "entity_kind",
            "entity_lineage_id",
            "version_number",
            name="uq_entity_drafts_lineage_version",
        ),
        sa.CheckConstraint(
            "state IN ('DRAFT', 'SUBMITTED', 'CHANGES_REQUESTED', 'APPROVED', 'PUBLISHED', 'REJECTED')",
            name="ck_entity_drafts_state",
        ),
        sa.CheckConstraint(
            "entity_kind IN ('service', 'vendor')",
            name="ck_entity_drafts_kind",
        ),
    )
    op.create_index("ix_entity_drafts_entity_lineage_id", "entity_drafts", ["entity_lineage_id"])
    op.create_index("ix_entity_drafts_kind_state", "entity_drafts", ["entity_kind", "state"])
    op.create_index(
        "uq_entity_drafts_single_submitted",
        "entity_drafts",
        ["entity_kind", "entity_lineage_id"],
        unique=True,
        postgresql_where=sa.text("state = 'SUBMITTED'"),
        sqlite_where=sa.text("state = 'SUBMITTED'"),
    )

    op.create_table(
        "moderation_actions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("draft_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("draft_version_number", sa.Integer(), nullable=False),
        sa.Column("entity_kind", sa.String(length=16), nullable=False),
        sa.Column("entity_lineage_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=32), nullable=False),
        sa.Column("actor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["actor_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint(
            "entity_kind",
            "entity_lineage_id",
            "sequence",
            name="uq_moderation_actions_lineage_sequence",
        ),
        sa.CheckConstraint(
            "action_type IN ('SUBMIT', 'APPROVE', 'REJECT', 'REQUEST_CHANGES')",
            name="ck_moderation_actions_type",
        ),
    )
    op.create_index("ix_moderation_actions_draft_id", "moderation_actions", ["draft_id"])
    op.create_index(
        "ix_moderation_actions_lineage",
        "moderation_actions",
        ["entity_kind", "entity_lineage_id"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("priority", sa.String(), nullable=True, server_default="medium"),
        sa.Column("is_read", sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "notification_preferences",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("pref_type", sa.String(), nullable=False),
        sa.Column("channel", sa.String(), nullable=False, server_default="in_app"),
        sa.Column("enabled", sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "pref_type", "channel"),
    )


def downgrade() -> None:
    """Drop the draft review schema."""

    op.drop_table("notification_preferences")
    op.drop_table("notifications")
    op.drop_index("ix_moderation_actions_lineage", table_name="moderation_actions")
    op.drop_index("ix_moderation_actions_draft_id", table_name="moderation_actions")
    op.drop_table("moderation_actions")
    op.drop_index("uq_entity_drafts_single_submitted", table_name="entity_drafts")
    op.drop_index("ix_entity_drafts_kind_state", table_name="entity_drafts")
    op.drop_index("ix_entity_drafts_entity_lineage_id", table_name="entity_drafts")
    op.drop_table("entity_drafts")
    op.drop_index("ix_services_vendor_id", table_name="services")
    op.drop_table("services")
    op.drop_index("ix_vendors_owner_id", table_name="vendors")
    op.drop_table("vendors")
    op.drop_table("users")
