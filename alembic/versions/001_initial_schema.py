"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-01-15

Creates all tables for the DabaBlane backend:
- Users (admins, vendors, customers of record)
- Catalogue (categories, blanes)
- Bookings (customers, orders, reservations)
- Payments (gateway transactions)
- Commission settings and vendor overrides
- Vendor settlement ledger, audit log and monthly invoices
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _booking_columns() -> list[sa.Column]:
    """Columns shared by orders and reservations."""
    return [
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("vendor_id", sa.Uuid, sa.ForeignKey("users.id"), index=True),
        sa.Column("phone", sa.String(20)),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("partiel_price", sa.Numeric(12, 2)),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("status", sa.String(40), nullable=False, index=True),
        sa.Column("cancel_token", sa.String(64)),
        sa.Column("cancel_token_created_at", sa.DateTime(timezone=True)),
        sa.Column("comments", sa.Text),
        sa.Column("source", sa.String(20)),
        sa.Column("vendor_override", sa.Boolean),
        sa.Column("created_at", sa.DateTime(timezone=True), index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    ]


def upgrade() -> None:
    """Create all database tables."""

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("name", sa.String(255)),
        sa.Column("phone", sa.String(20)),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("company_name", sa.String(255), index=True),
        sa.Column("custom_commission_rate", sa.Numeric(5, 2)),
        sa.Column("rib_account", sa.Text),
        sa.Column("is_active", sa.Boolean),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    # ==================== CATALOGUE ====================
    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("default_commission_rate", sa.Numeric(5, 2)),
    )

    op.create_table(
        "blanes",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("description", sa.Text),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("vendor_id", sa.Uuid, sa.ForeignKey("users.id"), index=True),
        sa.Column("commerce_name", sa.String(255), index=True),
        sa.Column("commerce_phone", sa.String(20)),
        sa.Column("category_id", sa.Uuid, sa.ForeignKey("categories.id")),
        sa.Column("price_current", sa.Numeric(12, 2), nullable=False),
        sa.Column("city", sa.String(255)),
        sa.Column("is_digital", sa.Boolean),
        sa.Column("livraison_in_city", sa.Numeric(12, 2)),
        sa.Column("livraison_out_city", sa.Numeric(12, 2)),
        sa.Column("stock", sa.Integer),
        sa.Column("max_orders", sa.Integer),
        sa.Column("availability_per_day", sa.Integer),
        sa.Column("max_reservation_par_creneau", sa.Integer),
        sa.Column("nombre_max_reservation", sa.Integer),
        sa.Column("type_time", sa.String(20)),
        sa.Column("heure_debut", sa.String(5)),
        sa.Column("heure_fin", sa.String(5)),
        sa.Column("intervale_reservation", sa.Integer),
        sa.Column("start_date", sa.Date),
        sa.Column("expiration_date", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("city", sa.String(255)),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "orders",
        *_booking_columns(),
        sa.Column("NUM_ORD", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("blane_id", sa.Uuid, sa.ForeignKey("blanes.id"), nullable=False, index=True),
        sa.Column("customer_id", sa.Uuid, sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("delivery_address", sa.String(255)),
        sa.Column("city", sa.String(255)),
    )

    op.create_table(
        "reservations",
        *_booking_columns(),
        sa.Column("NUM_RES", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("blane_id", sa.Uuid, sa.ForeignKey("blanes.id"), nullable=False, index=True),
        sa.Column("customer_id", sa.Uuid, sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("date", sa.Date, nullable=False, index=True),
        sa.Column("time", sa.String(5)),
        sa.Column("end_date", sa.Date),
        sa.Column("number_persons", sa.Integer),
        sa.Column("city", sa.String(255)),
    )

    # ==================== PAYMENTS ====================
    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("order_id", sa.Uuid, sa.ForeignKey("orders.id"), index=True),
        sa.Column("reservation_id", sa.Uuid, sa.ForeignKey("reservations.id"), index=True),
        sa.Column("transid", sa.String(100), unique=True, nullable=False),
        sa.Column("proc_return_code", sa.String(10)),
        sa.Column("response", sa.String(50)),
        sa.Column("auth_code", sa.String(50)),
        sa.Column("transaction_date", sa.String(50)),
        sa.Column("gateway_response", sa.JSON),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint(
            "(order_id IS NULL) <> (reservation_id IS NULL)",
            name="ck_transactions_single_target",
        ),
    )

    # ==================== COMMISSION ====================
    op.create_table(
        "commission_settings",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("partial_payment_commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("vat_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("transfer_processing_day", sa.String(20)),
        sa.Column("daba_blane_account_iban", sa.String(64)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "vendor_commissions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("vendor_id", sa.Uuid, sa.ForeignKey("users.id"), index=True),
        sa.Column("category_id", sa.Uuid, sa.ForeignKey("categories.id"), nullable=False, index=True),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("is_active", sa.Boolean),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    # ==================== VENDOR LEDGER ====================
    op.create_table(
        "vendor_payments",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("vendor_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("order_id", sa.Uuid, sa.ForeignKey("orders.id"), unique=True),
        sa.Column("reservation_id", sa.Uuid, sa.ForeignKey("reservations.id"), unique=True),
        sa.Column("total_amount_ttc", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_type", sa.String(10), nullable=False),
        sa.Column("commission_rate_applied", sa.Numeric(7, 4), nullable=False),
        sa.Column("commission_amount_excl_vat", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_vat", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission_amount_incl_vat", sa.Numeric(12, 2), nullable=False),
        sa.Column("net_amount_ttc", sa.Numeric(12, 2), nullable=False),
        sa.Column("transfer_status", sa.String(20), nullable=False, index=True),
        sa.Column("transfer_date", sa.Date),
        sa.Column("processed_by", sa.Uuid, sa.ForeignKey("users.id")),
        sa.Column("processed_at", sa.DateTime(timezone=True)),
        sa.Column("booking_date", sa.Date),
        sa.Column("payment_date", sa.Date, nullable=False),
        sa.Column("week_start", sa.Date, nullable=False, index=True),
        sa.Column("week_end", sa.Date, nullable=False),
        sa.Column("debit_account", sa.String(255)),
        sa.Column("credit_account", sa.Text),
        sa.Column("reason", sa.Text),
        sa.Column("note", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "vendor_payment_logs",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("vendor_payment_id", sa.Uuid, sa.ForeignKey("vendor_payments.id"), index=True),
        sa.Column("admin_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("previous_status", sa.String(20)),
        sa.Column("new_status", sa.String(20)),
        sa.Column("affected_rows", sa.Integer),
        sa.Column("admin_note", sa.Text),
        sa.Column("changes", sa.JSON),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "vendor_monthly_invoices",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("vendor_id", sa.Uuid, sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("month", sa.Integer, nullable=False),
        sa.Column("invoice_number", sa.String(50), unique=True, nullable=False),
        sa.Column("total_ttc", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_commission_excl_vat", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_commission_vat", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_commission_incl_vat", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_net", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_count", sa.Integer),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("vendor_monthly_invoices")
    op.drop_table("vendor_payment_logs")
    op.drop_table("vendor_payments")
    op.drop_table("vendor_commissions")
    op.drop_table("commission_settings")
    op.drop_table("transactions")
    op.drop_table("reservations")
    op.drop_table("orders")
    op.drop_table("customers")
    op.drop_table("blanes")
    op.drop_table("categories")
    op.drop_table("users")
