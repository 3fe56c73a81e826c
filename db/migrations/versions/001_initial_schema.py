"""Initial schema: crm companies, contacts, links, promotion intents.

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns() -> list:
    return [
        sa.Column("created_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("created_by", sa.Text, nullable=True),
        sa.Column("updated_by", sa.Text, nullable=True),
    ]


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS crm")

    # ─── CORE entities ───────────────────────────────────────────────────────

    op.create_table(
        "companies",
        sa.Column("company_id", sa.Text, primary_key=True),
        sa.Column("company_name", sa.Text, nullable=False),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column("address", sa.Text, nullable=True),
        sa.Column("city", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("company_type", sa.Text, nullable=True),
        sa.Column("customer_stage", sa.Text, nullable=True),
        sa.Column("interaction_rating", sa.Text, nullable=True),
        *_audit_columns(),
        schema="crm",
    )

    op.create_table(
        "contacts",
        sa.Column("contact_id", sa.Text, primary_key=True),
        sa.Column("source_id", sa.Text, nullable=True),
        sa.Column("name", sa.Text, nullable=True),
        sa.Column("company_id", sa.Text, nullable=True),
        sa.Column("department", sa.Text, nullable=True),
        sa.Column("job_title", sa.Text, nullable=True),
        sa.Column("mobile", sa.Text, nullable=True),
        sa.Column("phone", sa.Text, nullable=True),
        sa.Column("email", sa.Text, nullable=True),
        *_audit_columns(),
        schema="crm",
    )
    op.create_index("ix_contacts_source_id", "contacts", ["source_id"], schema="crm")

    op.create_table(
        "opportunity_contact_links",
        sa.Column("opportunity_id", sa.Text, primary_key=True),
        sa.Column("contact_id", sa.Text, primary_key=True),
        sa.Column("link_status", sa.Text, nullable=False, server_default="active"),
        *_audit_columns(),
        sa.CheckConstraint(
            "link_status IN ('active', 'removed')",
            name="ck_opp_contact_link_status",
        ),
        schema="crm",
    )

    # ─── Promotion saga ──────────────────────────────────────────────────────

    op.create_table(
        "promotion_intents",
        sa.Column("intent_id", sa.Text, primary_key=True),
        sa.Column("source_ref", sa.Text, nullable=False),
        sa.Column("source_fingerprint", sa.Text, nullable=True),
        sa.Column("official_id", sa.Text, nullable=False),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("created_by", sa.Text, nullable=True),
        sa.Column("created_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("action IN ('upgrade', 'link')", name="ck_promotion_intent_action"),
        sa.CheckConstraint("status IN ('pending', 'completed')", name="ck_promotion_intent_status"),
        schema="crm",
    )
    op.create_index("ix_promotion_intents_status", "promotion_intents", ["status"], schema="crm")


def downgrade() -> None:
    op.drop_index("ix_promotion_intents_status", table_name="promotion_intents", schema="crm")
    op.drop_index("ix_contacts_source_id", table_name="contacts", schema="crm")
    op.drop_table("promotion_intents", schema="crm")
    op.drop_table("opportunity_contact_links", schema="crm")
    op.drop_table("contacts", schema="crm")
    op.drop_table("companies", schema="crm")
