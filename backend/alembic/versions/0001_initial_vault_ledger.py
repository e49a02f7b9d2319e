"""Initial vault ledger schema."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# Revision identifiers, used by Alembic.
revision = "0001_initial_vault"
down_revision = None
branch_labels = None
depends_on = None


# uint256 in atomic units (see app.core.base.Uint256).
UINT256 = sa.Numeric(78, 0)


def upgrade() -> None:
    # Enum types store member names, matching the ORM SAEnum columns.
    vault_role = postgresql.ENUM(
        "ROOT",
        "ADMINISTRATOR",
        "MANAGER",
        "CLIENT",
        name="vault_role",
        create_type=False,
    )
    ledger_event_type = postgresql.ENUM(
        "ACCOUNT_CREATED",
        "DEPOSIT_MADE",
        "WITHDRAWAL_MADE",
        "TRANSFER_MADE",
        "TOKEN_DEPOSIT",
        "TOKEN_WITHDRAWAL",
        "ROLE_GRANTED",
        "ROLE_REVOKED",
        "TOKEN_ALLOWED",
        "TOKEN_DISALLOWED",
        "BANK_CAP_INCREASED",
        "DEPOSITS_PAUSED",
        "DEPOSITS_UNPAUSED",
        name="ledger_event_type",
        create_type=False,
    )

    bind = op.get_bind()
    for enum_type in (vault_role, ledger_event_type):
        enum_type.create(bind, checkfirst=True)

    # -------------------------------------------------------------------------
    # 1. vault_state (singleton)
    # -------------------------------------------------------------------------
    op.create_table(
        "vault_state",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("bank_cap_usd", UINT256, nullable=False),
        sa.Column("total_deposited_usd", UINT256, nullable=False),
        sa.Column("deposits_paused", sa.Boolean(), nullable=False),
        sa.Column("initialized_by", sa.String(length=128), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("id = 1", name="ck_vault_state_singleton"),
        sa.CheckConstraint("total_deposited_usd >= 0", name="ck_vault_state_total_non_negative"),
    )

    # -------------------------------------------------------------------------
    # 2. accounts
    # -------------------------------------------------------------------------
    op.create_table(
        "accounts",
        sa.Column("owner", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("native_balance", UINT256, nullable=False),
        sa.Column("account_exists", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=128), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("native_balance >= 0", name="ck_accounts_native_balance_non_negative"),
    )

    # -------------------------------------------------------------------------
    # 3. token_balances
    # -------------------------------------------------------------------------
    op.create_table(
        "token_balances",
        sa.Column(
            "owner",
            sa.String(length=128),
            sa.ForeignKey("accounts.owner", name="fk_token_balances_owner", ondelete="RESTRICT"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("token_id", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("amount", UINT256, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("amount >= 0", name="ck_token_balances_amount_non_negative"),
    )

    # -------------------------------------------------------------------------
    # 4. role_grants
    # -------------------------------------------------------------------------
    op.create_table(
        "role_grants",
        sa.Column("role", vault_role, primary_key=True, nullable=False),
        sa.Column("identity", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("granted_by", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_role_grants_identity", "role_grants", ["identity"], unique=False)

    # -------------------------------------------------------------------------
    # 5. allowed_tokens
    # -------------------------------------------------------------------------
    op.create_table(
        "allowed_tokens",
        sa.Column("token_id", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("allowed_by", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

    # -------------------------------------------------------------------------
    # 6. ledger_events (append-only)
    # -------------------------------------------------------------------------
    op.create_table(
        "ledger_events",
        sa.Column("seq", sa.BigInteger(), sa.Identity(always=False), primary_key=True, nullable=False),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("event_type", ledger_event_type, nullable=False),
        sa.Column("actor", sa.String(length=128), nullable=False),
        sa.Column("subject", sa.String(length=128), nullable=True),
        sa.Column("counterparty", sa.String(length=128), nullable=True),
        sa.Column("token_id", sa.String(length=128), nullable=True),
        sa.Column("amount", UINT256, nullable=True),
        sa.Column("usd_value", UINT256, nullable=True),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("event_id", name="uq_ledger_events_event_id"),
    )
    op.create_index("ix_ledger_events_event_type", "ledger_events", ["event_type"], unique=False)
    op.create_index("ix_ledger_events_subject", "ledger_events", ["subject"], unique=False)


def downgrade() -> None:
    # Drop tables in strict reverse dependency order.
    op.drop_index("ix_ledger_events_subject", table_name="ledger_events")
    op.drop_index("ix_ledger_events_event_type", table_name="ledger_events")
    op.drop_table("ledger_events")

    op.drop_table("allowed_tokens")

    op.drop_index("ix_role_grants_identity", table_name="role_grants")
    op.drop_table("role_grants")

    op.drop_table("token_balances")
    op.drop_table("accounts")
    op.drop_table("vault_state")

    # Drop ENUM types last.
    bind = op.get_bind()
    for enum_name in ("ledger_event_type", "vault_role"):
        postgresql.ENUM(name=enum_name).drop(bind, checkfirst=True)
