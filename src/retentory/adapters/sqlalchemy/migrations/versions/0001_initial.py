"""Initial inventory schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "schedule",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("application_number", sa.String(length=16), nullable=True),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("approving_body", sa.String(), nullable=True),
        sa.Column("approval_status", sa.String(length=32), nullable=False),
        sa.Column("approval_date", sa.Date(), nullable=True),
        sa.Column("retention_statement", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("pdf", sa.Text(), nullable=True),
        sa.Column("tags", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_schedule"),
        sa.UniqueConstraint("application_number", name="uq_schedule_application_number"),
    )

    op.create_table(
        "series_item",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("schedule_id", sa.Uuid(), nullable=False),
        sa.Column("item_number", sa.String(length=32), nullable=False),
        sa.Column("record_series_title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("dates_covered_start", sa.Date(), nullable=True),
        sa.Column("dates_covered_end", sa.Date(), nullable=True),
        sa.Column("open_ended", sa.Boolean(), nullable=False),
        sa.Column("arrangement", sa.String(), nullable=True),
        sa.Column("division", sa.String(), nullable=True),
        sa.Column("contact", sa.String(), nullable=True),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("retention", sa.Text(), nullable=False),
        sa.Column("retention_is_permanent", sa.Boolean(), nullable=False),
        sa.Column("retention_text", sa.Text(), nullable=True),
        sa.Column("volume_paper_cubic_feet", sa.Float(), nullable=True),
        sa.Column("volume_electronic_bytes", sa.BigInteger(), nullable=True),
        sa.Column("annual_accumulation_paper_cubic_feet", sa.Float(), nullable=True),
        sa.Column("annual_accumulation_electronic_bytes", sa.BigInteger(), nullable=True),
        sa.Column("media_types", sa.Text(), nullable=False),
        sa.Column("omb_or_statute_refs", sa.Text(), nullable=False),
        sa.Column("related_series", sa.Text(), nullable=False),
        sa.Column("legal_hold", sa.Boolean(), nullable=False),
        sa.Column("audit_hold", sa.Boolean(), nullable=False),
        sa.Column("representative_name", sa.String(), nullable=True),
        sa.Column("representative_title", sa.String(), nullable=True),
        sa.Column("representative_email", sa.String(), nullable=True),
        sa.Column("records_officer_name", sa.String(), nullable=True),
        sa.Column("records_officer_email", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["schedule_id"], ["schedule.id"], name="fk_series_item_schedule_id_schedule"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_series_item"),
        sa.UniqueConstraint("schedule_id", "item_number", name="uq_series_item_schedule_item"),
    )
    op.create_index("ix_series_item_division", "series_item", ["division"])

    op.create_table(
        "audit_event",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("entity", sa.String(length=16), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=16), nullable=False),
        sa.Column("actor", sa.String(), nullable=False),
        sa.Column("at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_audit_event"),
    )
    op.create_index("ix_audit_event_subject", "audit_event", ["entity", "entity_id", "at"])


def downgrade() -> None:
    op.drop_index("ix_audit_event_subject", table_name="audit_event")
    op.drop_table("audit_event")
    op.drop_index("ix_series_item_division", table_name="series_item")
    op.drop_table("series_item")
    op.drop_table("schedule")
