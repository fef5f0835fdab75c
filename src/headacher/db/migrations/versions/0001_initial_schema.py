"""Initial schema: accounts, identities, nonces, headaches, events

Learn: (provider, identifier) is unique across all accounts. That one
constraint is what makes concurrent first sign-ins converge on a single
account and what turns a cross-account link into a 409.

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ─── Accounts & identities ───────────────────────────
    op.create_table(
        "accounts",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
    )

    op.create_table(
        "identities",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.String(128),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider", sa.String(20), nullable=False),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("provider", "identifier", name="uq_identities_provider_identifier"),
    )
    op.create_index("idx_identities_account", "identities", ["account_id"])

    op.create_table(
        "nonces",
        sa.Column("address", sa.String(64), primary_key=True),
        sa.Column("value", sa.String(64), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
    )

    # ─── Account-owned records ───────────────────────────
    op.create_table(
        "headaches",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.String(128),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("severity", sa.Integer, nullable=False),
        sa.Column("aura", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint("severity BETWEEN 0 AND 10", name="ck_headaches_severity"),
        sa.CheckConstraint("aura IN (0, 1)", name="ck_headaches_aura"),
    )
    op.create_index(
        "idx_headaches_account_timestamp", "headaches", ["account_id", "timestamp"]
    )

    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "account_id",
            sa.String(128),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("value", sa.Text, nullable=False, server_default=""),
    )
    op.create_index("idx_events_account_timestamp", "events", ["account_id", "timestamp"])
    op.create_index("idx_events_account_type", "events", ["account_id", "event_type"])


def downgrade() -> None:
    op.drop_index("idx_events_account_type", table_name="events")
    op.drop_index("idx_events_account_timestamp", table_name="events")
    op.drop_table("events")
    op.drop_index("idx_headaches_account_timestamp", table_name="headaches")
    op.drop_table("headaches")
    op.drop_table("nonces")
    op.drop_index("idx_identities_account", table_name="identities")
    op.drop_table("identities")
    op.drop_table("accounts")
