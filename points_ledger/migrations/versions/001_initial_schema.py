"""Initial schema — ledger tables, constraints, and indexes.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order (FK dependency order):
  payer_balances → deposits → available_remainders → spend_records
  → allocation_records

ON DELETE policies:
  deposits.*, available_remainders.*       → RESTRICT (audit trail)
  allocation_records.spend_record_id       → CASCADE  (owned by the spend)
  allocation_records.(other FKs)           → RESTRICT
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration, no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    """Apply the full initial schema."""

    # ── payer_balances ─────────────────────────────────────────────────────
    # payer UNIQUE; the service looks payers up case-insensitively.

    op.create_table(
        "payer_balances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("payer", sa.String(255), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_payer_balances"),
        sa.UniqueConstraint("payer", name="uq_payer_balances_payer"),
        sa.CheckConstraint(
            "LENGTH(TRIM(payer)) > 0",
            name="ck_payer_balances_payer_nonempty",
        ),
    )

    # ── deposits ───────────────────────────────────────────────────────────

    op.create_table(
        "deposits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "payer_balance_id",
            sa.Integer(),
            sa.ForeignKey("payer_balances.id", ondelete="RESTRICT", name="fk_deposits_payer_balance"),
            nullable=False,
        ),
        sa.Column("payer", sa.String(255), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_deposits"),
    )

    # ── available_remainders ───────────────────────────────────────────────
    # 1:1 with deposits (UNIQUE deposit_id).

    op.create_table(
        "available_remainders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "deposit_id",
            sa.Integer(),
            sa.ForeignKey("deposits.id", ondelete="RESTRICT", name="fk_available_remainders_deposit"),
            nullable=False,
        ),
        sa.Column(
            "payer_balance_id",
            sa.Integer(),
            sa.ForeignKey(
                "payer_balances.id",
                ondelete="RESTRICT",
                name="fk_available_remainders_payer_balance",
            ),
            nullable=False,
        ),
        sa.Column("payer", sa.String(255), nullable=False),
        sa.Column("original_points", sa.Integer(), nullable=False),
        sa.Column("allocated_points", sa.Integer(), nullable=False),
        sa.Column("unallocated_points", sa.Integer(), nullable=False),
        sa.Column("fully_allocated", sa.Boolean(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_available_remainders"),
        sa.UniqueConstraint("deposit_id", name="uq_available_remainders_deposit"),
    )

    # ── spend_records ──────────────────────────────────────────────────────

    op.create_table(
        "spend_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("points_spent", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_spend_records"),
        sa.CheckConstraint(
            "points_spent >= 0",
            name="ck_spend_records_points_nonnegative",
        ),
    )

    # ── allocation_records ─────────────────────────────────────────────────

    op.create_table(
        "allocation_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "spend_record_id",
            sa.Integer(),
            sa.ForeignKey("spend_records.id", ondelete="CASCADE", name="fk_allocation_records_spend"),
            nullable=False,
        ),
        sa.Column(
            "available_remainder_id",
            sa.Integer(),
            sa.ForeignKey(
                "available_remainders.id",
                ondelete="RESTRICT",
                name="fk_allocation_records_remainder",
            ),
            nullable=False,
        ),
        sa.Column(
            "deposit_id",
            sa.Integer(),
            sa.ForeignKey("deposits.id", ondelete="RESTRICT", name="fk_allocation_records_deposit"),
            nullable=False,
        ),
        sa.Column(
            "payer_balance_id",
            sa.Integer(),
            sa.ForeignKey(
                "payer_balances.id",
                ondelete="RESTRICT",
                name="fk_allocation_records_payer_balance",
            ),
            nullable=False,
        ),
        sa.Column("payer", sa.String(255), nullable=False),
        sa.Column("points_allocated", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_allocation_records"),
    )

    # ── Indexes ────────────────────────────────────────────────────────────

    op.create_index("ix_deposits_payer_balance_id", "deposits", ["payer_balance_id"])
    op.create_index(
        "ix_available_remainders_payer_balance_id",
        "available_remainders",
        ["payer_balance_id"],
    )
    # Oldest-first spend walk: WHERE NOT fully_allocated ORDER BY timestamp, id
    op.create_index(
        "idx_available_remainders_scan",
        "available_remainders",
        ["fully_allocated", "timestamp", "id"],
    )
    op.create_index(
        "ix_allocation_records_spend_record_id",
        "allocation_records",
        ["spend_record_id"],
    )
    op.create_index(
        "ix_allocation_records_available_remainder_id",
        "allocation_records",
        ["available_remainder_id"],
    )


def downgrade() -> None:
    """
    Drop all objects created in upgrade(), in reverse dependency order.

    Provided for local development reset. Production corrections are made
    with a new forward migration.
    """
    op.drop_index("ix_allocation_records_available_remainder_id", table_name="allocation_records")
    op.drop_index("ix_allocation_records_spend_record_id",        table_name="allocation_records")
    op.drop_index("idx_available_remainders_scan",                table_name="available_remainders")
    op.drop_index("ix_available_remainders_payer_balance_id",     table_name="available_remainders")
    op.drop_index("ix_deposits_payer_balance_id",                 table_name="deposits")

    op.drop_table("allocation_records")
    op.drop_table("spend_records")
    op.drop_table("available_remainders")
    op.drop_table("deposits")
    op.drop_table("payer_balances")
