"""marketplace core tables

Revision ID: 3f1c9a7d2e40
Revises:
Create Date: 2026-10-19 13:20:41.118302

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOW = sa.text("CURRENT_TIMESTAMP")
ADDRESS = sa.String(length=42)
# TokenAmount: base-10 string of an unsigned 256-bit integer
AMOUNT = sa.String(length=80)


def upgrade():
    op.create_table(
        "deployments",
        sa.Column("address", ADDRESS, primary_key=True, nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=True),
        sa.Column("symbol", sa.String(length=32), nullable=True),
        sa.Column("owner", ADDRESS, nullable=False),
        sa.Column("config_json", sa.JSON(), nullable=False),
        sa.Column("initialized_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    )
    op.create_index("ix_deployments_kind", "deployments", ["kind"])

    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("address", ADDRESS, nullable=False),
        sa.Column("display_name", sa.String(length=256), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("password_hash", sa.String(length=256), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.UniqueConstraint("username", name="uq_accounts_username"),
        sa.UniqueConstraint("address", name="uq_accounts_address"),
    )

    op.create_table(
        "role_grants",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("scope", ADDRESS, nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("account", ADDRESS, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("granted_by", ADDRESS, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.UniqueConstraint("scope", "role", "account", name="uq_role_grants_scope_role_account"),
    )
    op.create_index("ix_role_grants_account", "role_grants", ["account"])

    # ─────────── ownership registry ───────────
    op.create_table(
        "tokens",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("collection", ADDRESS, nullable=False),
        sa.Column("token_id", sa.Integer(), nullable=False),
        sa.Column("creator", ADDRESS, nullable=False),
        sa.Column("uri", sa.Text(), nullable=False),
        sa.Column("supply", sa.BigInteger(), nullable=False),
        sa.Column("data", sa.String(length=256), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.UniqueConstraint("collection", "token_id", name="uq_tokens_collection_token"),
        sa.CheckConstraint("token_id >= 1", name="ck_tokens_id_positive"),
        sa.CheckConstraint("supply >= 1", name="ck_tokens_supply_positive"),
    )

    op.create_table(
        "token_balances",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("collection", ADDRESS, nullable=False),
        sa.Column("token_id", sa.Integer(), nullable=False),
        sa.Column("owner", ADDRESS, nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.UniqueConstraint("collection", "token_id", "owner", name="uq_token_balances_holder"),
        sa.CheckConstraint("amount >= 0", name="ck_token_balances_nonnegative"),
    )
    op.create_index("ix_token_balances_owner", "token_balances", ["owner"])

    op.create_table(
        "operator_approvals",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("collection", ADDRESS, nullable=False),
        sa.Column("owner", ADDRESS, nullable=False),
        sa.Column("operator", ADDRESS, nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("collection", "owner", "operator", name="uq_operator_approvals"),
    )

    # ─────────── funds ledger ───────────
    op.create_table(
        "fund_balances",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("token", ADDRESS, nullable=False),
        sa.Column("account", ADDRESS, nullable=False),
        sa.Column("amount", AMOUNT, nullable=False),
        sa.UniqueConstraint("token", "account", name="uq_fund_balances_holder"),
    )

    op.create_table(
        "fund_allowances",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("token", ADDRESS, nullable=False),
        sa.Column("owner", ADDRESS, nullable=False),
        sa.Column("spender", ADDRESS, nullable=False),
        sa.Column("amount", AMOUNT, nullable=False),
        sa.UniqueConstraint("token", "owner", "spender", name="uq_fund_allowances_pair"),
    )

    # ─────────── license ledger ───────────
    op.create_table(
        "licenses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("license_contract", ADDRESS, nullable=False),
        sa.Column("collection", ADDRESS, nullable=False),
        sa.Column("token_id", sa.Integer(), nullable=False),
        sa.Column("licensee", ADDRESS, nullable=False),
        sa.Column("grantor", ADDRESS, nullable=False),
        sa.Column("term_units", sa.Integer(), nullable=False),
        sa.Column("term_start", sa.BigInteger(), nullable=False),
        sa.Column("term_end", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("term_units >= 1", name="ck_licenses_term_positive"),
        sa.CheckConstraint("term_end >= term_start", name="ck_licenses_window"),
    )
    op.create_index(
        "ix_licenses_lookup",
        "licenses",
        ["license_contract", "collection", "token_id", "licensee"],
    )

    # ─────────── listings / bids / sales ───────────
    op.create_table(
        "listings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("marketplace", ADDRESS, nullable=False),
        sa.Column("asset_type", sa.Integer(), nullable=False),
        sa.Column("seller", ADDRESS, nullable=False),
        sa.Column("creator", ADDRESS, nullable=False),
        sa.Column("token_address", ADDRESS, nullable=False),
        sa.Column("token_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.BigInteger(), nullable=False),
        sa.Column("price", AMOUNT, nullable=False),
        sa.Column("uri", sa.Text(), nullable=False),
        sa.Column("stakeholders", sa.JSON(), nullable=False),
        sa.Column("royalty_split", sa.JSON(), nullable=False),
        sa.Column("is_auction", sa.Boolean(), nullable=False),
        sa.Column("listing_uri", sa.Text(), nullable=False),
        sa.Column("sale_mode", sa.String(length=32), nullable=False),
        sa.Column("state", sa.String(length=16), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("starting_price", AMOUNT, nullable=True),
        sa.Column("start_at", sa.BigInteger(), nullable=True),
        sa.Column("expires_at", sa.BigInteger(), nullable=True),
        sa.Column("discount_rate", AMOUNT, nullable=True),
        sa.Column("reserve_price", AMOUNT, nullable=True),
        sa.Column("duration", sa.BigInteger(), nullable=True),
        sa.Column("highest_bid", AMOUNT, nullable=True),
        sa.Column("highest_bidder", ADDRESS, nullable=True),
        sa.Column("auction_end", sa.BigInteger(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.CheckConstraint("quantity >= 1", name="ck_listings_quantity_positive"),
    )
    op.create_index("ix_listings_marketplace_state", "listings", ["marketplace", "state"])
    op.create_index("ix_listings_seller", "listings", ["seller"])
    op.create_index("ix_listings_token", "listings", ["token_address", "token_id"])

    op.create_table(
        "bids",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "listing_id",
            sa.Integer(),
            sa.ForeignKey("listings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("bidder", ADDRESS, nullable=False),
        sa.Column("amount", AMOUNT, nullable=False),
        sa.Column("placed_at", sa.BigInteger(), nullable=False),
        sa.Column("refunded", sa.Boolean(), nullable=False),
        sa.Column("refunded_at", sa.BigInteger(), nullable=True),
    )
    op.create_index("ix_bids_listing", "bids", ["listing_id"])

    op.create_table(
        "sales",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "listing_id",
            sa.Integer(),
            sa.ForeignKey("listings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("marketplace", ADDRESS, nullable=False),
        sa.Column("buyer", ADDRESS, nullable=False),
        sa.Column("seller", ADDRESS, nullable=False),
        sa.Column("sale_mode", sa.String(length=32), nullable=False),
        sa.Column("final_price", AMOUNT, nullable=False),
        sa.Column("settled_at", sa.BigInteger(), nullable=False),
        sa.Column("certificate_collection", ADDRESS, nullable=True),
        sa.Column("certificate_token_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.UniqueConstraint("listing_id", name="uq_sales_listing"),
    )

    op.create_table(
        "payouts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "sale_id",
            sa.Uuid(),
            sa.ForeignKey("sales.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("recipient", ADDRESS, nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("share_bps", sa.Integer(), nullable=True),
        sa.Column("amount", AMOUNT, nullable=False),
    )

    # ─────────── ledger / audit / idempotency ───────────
    op.create_table(
        "market_ledger_entries",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("marketplace", ADDRESS, nullable=False),
        sa.Column("listing_id", sa.Integer(), nullable=True),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("entry_type", sa.String(length=64), nullable=False),
        sa.Column("prev_hash", sa.String(length=128), nullable=False),
        sa.Column("entry_hash", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("payload_json", sa.JSON(), nullable=False),
        sa.UniqueConstraint("marketplace", "seq", name="uq_market_ledger_seq"),
    )
    op.create_index("ix_market_ledger_listing", "market_ledger_entries", ["listing_id"])

    op.create_table(
        "audit_log_records",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("request_id", sa.String(length=128), nullable=False),
        sa.Column("route", sa.String(length=256), nullable=False),
        sa.Column("method", sa.String(length=16), nullable=False),
        sa.Column("actor", ADDRESS, nullable=False),
        sa.Column("scope", ADDRESS, nullable=True),
        sa.Column("action", sa.String(length=96), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("payload_hash", sa.String(length=128), nullable=False),
        sa.Column("payload_summary_json", sa.JSON(), nullable=False),
        sa.Column("ref_id", sa.String(length=128), nullable=True),
    )
    op.create_index("ix_audit_log_records_request_id", "audit_log_records", ["request_id"])
    op.create_index("ix_audit_scope", "audit_log_records", ["scope"])
    op.create_index("ix_audit_action", "audit_log_records", ["action"])
    op.create_index("ix_audit_created", "audit_log_records", ["created_at"])

    op.create_table(
        "idempotency_key_records",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("account", ADDRESS, nullable=False),
        sa.Column("endpoint_key", sa.String(length=160), nullable=False),
        sa.Column("idem_key", sa.String(length=128), nullable=False),
        sa.Column("request_hash", sa.String(length=128), nullable=False),
        sa.Column("response_status", sa.Integer(), nullable=False),
        sa.Column("response_json", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.UniqueConstraint("account", "endpoint_key", "idem_key", name="uq_idem_scope"),
    )
    op.create_index("ix_idem_lookup", "idempotency_key_records", ["account", "endpoint_key"])


def downgrade():
    op.drop_index("ix_idem_lookup", table_name="idempotency_key_records")
    op.drop_table("idempotency_key_records")
    for ix in ("ix_audit_created", "ix_audit_action", "ix_audit_scope", "ix_audit_log_records_request_id"):
        op.drop_index(ix, table_name="audit_log_records")
    op.drop_table("audit_log_records")
    op.drop_index("ix_market_ledger_listing", table_name="market_ledger_entries")
    op.drop_table("market_ledger_entries")
    op.drop_table("payouts")
    op.drop_table("sales")
    op.drop_index("ix_bids_listing", table_name="bids")
    op.drop_table("bids")
    for ix in ("ix_listings_token", "ix_listings_seller", "ix_listings_marketplace_state"):
        op.drop_index(ix, table_name="listings")
    op.drop_table("listings")
    op.drop_index("ix_licenses_lookup", table_name="licenses")
    op.drop_table("licenses")
    op.drop_table("fund_allowances")
    op.drop_table("fund_balances")
    op.drop_table("operator_approvals")
    op.drop_index("ix_token_balances_owner", table_name="token_balances")
    op.drop_table("token_balances")
    op.drop_table("tokens")
    op.drop_index("ix_role_grants_account", table_name="role_grants")
    op.drop_table("role_grants")
    op.drop_table("accounts")
    op.drop_index("ix_deployments_kind", table_name="deployments")
    op.drop_table("deployments")
