"""Pricing and commissions schema - dive centers, price lists with dive-count
tiers, agents with commercial terms and commissions, bookings, invoices, taxes.

Revision ID: 001_pricing_and_commissions
Revises:
Create Date: 2026-01-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

revision = "001_pricing_and_commissions"
down_revision = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # ================================================================
    # 1. dive_centers - tenants
    # ================================================================
    op.create_table(
        "dive_centers",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD"),
        sa.Column("status", sa.String(20), server_default="active"),
        sa.Column("settings", JSONB, nullable=True),  # currency_rates, tax_calculation_mode, service_charge_percentage
        *_timestamps(),
    )

    # ================================================================
    # 2. price_lists / price_list_items / price_list_item_tiers
    # ================================================================
    op.create_table(
        "price_lists",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("dive_center_id", sa.BigInteger, sa.ForeignKey("dive_centers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "price_list_items",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("price_list_id", sa.BigInteger, sa.ForeignKey("price_lists.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("service_type", sa.String(100), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("price", sa.DECIMAL(10, 2), nullable=True),
        sa.Column("base_price", sa.DECIMAL(10, 2), nullable=True),
        sa.Column("pricing_model", sa.Enum("SINGLE", "RANGE", "TIERED", name="pricing_model_enum"), server_default="SINGLE"),
        sa.Column("min_dives", sa.Integer, server_default="1"),
        sa.Column("max_dives", sa.Integer, server_default="1"),
        sa.Column("priority", sa.Integer, server_default="0", index=True),
        sa.Column("valid_from", sa.Date, nullable=True),
        sa.Column("valid_until", sa.Date, nullable=True),
        sa.Column(
            "applicable_to",
            sa.Enum("ALL", "MEMBER", "NON_MEMBER", "GROUP", "CORPORATE", name="applicable_to_enum"),
            server_default="ALL",
        ),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("tax_percentage", sa.DECIMAL(5, 2), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true"),
        sa.Column("sort_order", sa.Integer, server_default="0"),
        *_timestamps(),
    )
    op.create_index("idx_active_dives", "price_list_items", ["is_active", "min_dives", "max_dives"])
    op.create_index("idx_validity", "price_list_items", ["valid_from", "valid_until"])

    op.create_table(
        "price_list_item_tiers",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("item_id", sa.BigInteger, sa.ForeignKey("price_list_items.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("tier_name", sa.String(100), nullable=True),
        sa.Column("from_dives", sa.Integer, nullable=False),
        sa.Column("to_dives", sa.Integer, nullable=False),
        sa.Column("price_per_dive", sa.DECIMAL(10, 2), server_default="0"),
        sa.Column("total_price", sa.DECIMAL(10, 2), nullable=True),  # fixed price when the whole tier is used
        sa.Column("is_active", sa.Boolean, server_default="true"),
        sa.Column("sort_order", sa.Integer, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("from_dives <= to_dives", name="ck_tier_dive_range"),
    )

    # ================================================================
    # 3. agents and their terms
    # ================================================================
    op.create_table(
        "agents",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("dive_center_id", sa.BigInteger, sa.ForeignKey("dive_centers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("agent_name", sa.String(255), nullable=False),
        sa.Column(
            "agent_type",
            sa.Enum("Travel Agent", "Resort / Guest House", "Tour Operator", "Freelancer", name="agent_type_enum"),
            server_default="Travel Agent",
        ),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("status", sa.Enum("Active", "Suspended", name="agent_status_enum"), server_default="Active", index=True),
        sa.Column("brand_name", sa.String(255), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "agent_commercial_terms",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.BigInteger, sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column(
            "commission_type",
            sa.Enum("Percentage", "Fixed Amount", name="commission_type_enum"),
            server_default="Percentage",
        ),
        sa.Column("commission_rate", sa.DECIMAL(10, 2), server_default="0"),
        sa.Column("vat_applicable", sa.Boolean, server_default="false"),
        sa.Column("credit_limit", sa.DECIMAL(12, 2), nullable=True),
        sa.Column("exclude_equipment_from_commission", sa.Boolean, server_default="false"),
        sa.Column("include_manual_items_in_commission", sa.Boolean, server_default="true"),
        *_timestamps(),
    )

    op.create_table(
        "agent_contracts",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.BigInteger, sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("contract_start_date", sa.Date, nullable=True),
        sa.Column("contract_end_date", sa.Date, nullable=True),
        sa.Column("commission_valid_from", sa.Date, nullable=True),
        sa.Column("commission_valid_until", sa.Date, nullable=True),
        *_timestamps(),
    )

    # ================================================================
    # 4. bookings, booking_dives
    # ================================================================
    op.create_table(
        "bookings",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("dive_center_id", sa.BigInteger, sa.ForeignKey("dive_centers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("customer_id", sa.BigInteger, nullable=False, index=True),
        sa.Column("agent_id", sa.BigInteger, sa.ForeignKey("agents.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("booking_date", sa.Date, nullable=True),
        sa.Column("status", sa.String(20), server_default="Pending"),
        *_timestamps(),
    )

    op.create_table(
        "booking_dives",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.BigInteger, sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("dive_date", sa.Date, nullable=True),
        sa.Column("price", sa.DECIMAL(10, 2), nullable=True),
        *_timestamps(),
    )

    # ================================================================
    # 5. invoices, invoice_items
    # ================================================================
    op.create_table(
        "invoices",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("dive_center_id", sa.BigInteger, sa.ForeignKey("dive_centers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("agent_id", sa.BigInteger, sa.ForeignKey("agents.id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("booking_id", sa.BigInteger, sa.ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True),
        sa.Column("invoice_no", sa.String(50), nullable=True),
        sa.Column("invoice_date", sa.Date, nullable=False),
        sa.Column("subtotal", sa.DECIMAL(12, 2), server_default="0"),
        sa.Column("discount", sa.DECIMAL(12, 2), server_default="0"),
        sa.Column("service_charge", sa.DECIMAL(12, 2), server_default="0"),
        sa.Column("tax", sa.DECIMAL(12, 2), server_default="0"),
        sa.Column("total", sa.DECIMAL(12, 2), server_default="0"),
        sa.Column("currency", sa.String(3), server_default="USD"),
        sa.Column("status", sa.String(20), server_default="Draft"),
        sa.Column("invoice_type", sa.String(20), server_default="Full"),
        *_timestamps(),
    )

    op.create_table(
        "invoice_items",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("invoice_id", sa.BigInteger, sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("booking_dive_id", sa.BigInteger, sa.ForeignKey("booking_dives.id", ondelete="SET NULL"), nullable=True),
        sa.Column("booking_equipment_id", sa.BigInteger, nullable=True, index=True),
        sa.Column("booking_excursion_id", sa.BigInteger, nullable=True),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=True),
        sa.Column("unit_price", sa.DECIMAL(10, 2), nullable=True),
        sa.Column("total", sa.DECIMAL(10, 2), nullable=True),
        *_timestamps(),
    )

    # ================================================================
    # 6. agent_commissions - one row per (agent, invoice)
    # ================================================================
    op.create_table(
        "agent_commissions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.BigInteger, sa.ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("invoice_id", sa.BigInteger, sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("commissionable_amount", sa.DECIMAL(12, 2), server_default="0"),
        sa.Column("commission_amount", sa.DECIMAL(12, 2), server_default="0"),
        sa.Column(
            "status",
            sa.Enum("Pending", "Paid", "Cancelled", name="commission_status_enum"),
            server_default="Pending",
            index=True,
        ),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("agent_id", "invoice_id", name="uq_agent_commission_agent_invoice"),
    )

    # ================================================================
    # 7. taxes
    # ================================================================
    op.create_table(
        "taxes",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, index=True),
        sa.Column("percentage", sa.DECIMAL(5, 2), server_default="0"),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("taxes")
    op.drop_table("agent_commissions")
    op.drop_table("invoice_items")
    op.drop_table("invoices")
    op.drop_table("booking_dives")
    op.drop_table("bookings")
    op.drop_table("agent_contracts")
    op.drop_table("agent_commercial_terms")
    op.drop_table("agents")
    op.drop_table("price_list_item_tiers")
    op.drop_table("price_list_items")
    op.drop_table("price_lists")
    op.drop_table("dive_centers")

    sa.Enum(name="commission_status_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="commission_type_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="agent_status_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="agent_type_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="applicable_to_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="pricing_model_enum").drop(op.get_bind(), checkfirst=True)
