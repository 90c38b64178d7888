"""initial schema: users, vehicles, service requests

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return table_name in set(inspector.get_table_names())


def _index_exists(table_name: str, index_name: str) -> bool:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    if table_name not in set(inspector.get_table_names()):
        return False
    return index_name in {idx["name"] for idx in inspector.get_indexes(table_name)}


def upgrade() -> None:
    if not _table_exists("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("username", sa.String(length=30), nullable=False),
            sa.Column("email", sa.String(length=254), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("role", sa.String(length=16), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("phone_number", sa.String(length=32), nullable=True),
            sa.Column("is_verified", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            # customer
            sa.Column("address", sa.JSON(), nullable=True),
            sa.Column("preferences", sa.JSON(), nullable=True),
            sa.Column("loyalty_points", sa.Integer(), nullable=True),
            sa.Column("total_spent", sa.Float(), nullable=True),
            sa.Column("member_since", sa.DateTime(), nullable=True),
            sa.Column("last_service_date", sa.DateTime(), nullable=True),
            sa.Column("emergency_contact", sa.JSON(), nullable=True),
            # mechanic
            sa.Column("specialization", sa.JSON(), nullable=True),
            sa.Column("experience", sa.Integer(), nullable=True),
            sa.Column("rating", sa.Float(), nullable=True),
            sa.Column("total_ratings", sa.Integer(), nullable=True),
            sa.Column("availability", sa.JSON(), nullable=True),
            sa.Column("certifications", sa.JSON(), nullable=True),
            sa.Column("business_info", sa.JSON(), nullable=True),
            sa.Column("performance", sa.JSON(), nullable=True),
            sa.Column("pricing", sa.JSON(), nullable=True),
            # admin
            sa.Column("permissions", sa.JSON(), nullable=True),
            sa.Column("departments", sa.JSON(), nullable=True),
            sa.Column("clearance_level", sa.String(length=16), nullable=True),
            sa.Column("last_login", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
    if not _index_exists("users", "ix_users_email"):
        op.create_index("ix_users_email", "users", ["email"], unique=True)
    if not _index_exists("users", "ix_users_username"):
        op.create_index("ix_users_username", "users", ["username"], unique=True)
    if not _index_exists("users", "ix_users_role"):
        op.create_index("ix_users_role", "users", ["role"])
    if not _index_exists("users", "ix_users_status"):
        op.create_index("ix_users_status", "users", ["status"])
    if not _index_exists("users", "ix_users_created_at"):
        op.create_index("ix_users_created_at", "users", ["created_at"])

    if not _table_exists("vehicles"):
        op.create_table(
            "vehicles",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("make", sa.String(length=64), nullable=False),
            sa.Column("model", sa.String(length=64), nullable=False),
            sa.Column("year", sa.Integer(), nullable=False),
            sa.Column("vin", sa.String(length=17), nullable=True),
            sa.Column("license_plate", sa.String(length=32), nullable=True),
            sa.Column("color", sa.String(length=32), nullable=True),
            sa.Column("mileage", sa.Integer(), nullable=True),
            sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
            sa.Column("purchase_date", sa.DateTime(), nullable=True),
            sa.Column("last_service_date", sa.DateTime(), nullable=True),
            sa.Column("next_service_due", sa.DateTime(), nullable=True),
            sa.Column("insurance", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
    if not _index_exists("vehicles", "ix_vehicles_customer_id"):
        op.create_index("ix_vehicles_customer_id", "vehicles", ["customer_id"])
    if not _index_exists("vehicles", "ix_vehicles_vin"):
        op.create_index("ix_vehicles_vin", "vehicles", ["vin"])
    if not _index_exists("vehicles", "ix_vehicles_license_plate"):
        op.create_index("ix_vehicles_license_plate", "vehicles", ["license_plate"])
    if not _index_exists("vehicles", "uq_vehicles_one_primary"):
        op.create_index(
            "uq_vehicles_one_primary",
            "vehicles",
            ["customer_id"],
            unique=True,
            sqlite_where=sa.text("is_primary = 1"),
            postgresql_where=sa.text("is_primary"),
        )

    if not _table_exists("service_requests"):
        op.create_table(
            "service_requests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
            sa.Column(
                "vehicle_id", sa.String(length=36), sa.ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True
            ),
            sa.Column(
                "mechanic_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
            ),
            sa.Column("description", sa.String(length=1000), nullable=False),
            sa.Column("question", sa.String(length=500), nullable=True),
            sa.Column("service_type", sa.String(length=16), nullable=False),
            sa.Column("priority", sa.String(length=8), nullable=False, server_default="medium"),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("estimated_cost", sa.Float(), nullable=True),
            sa.Column("actual_cost", sa.Float(), nullable=True),
            sa.Column("estimated_duration", sa.Float(), nullable=True),
            sa.Column("actual_duration", sa.Float(), nullable=True),
            sa.Column("preferred_date", sa.DateTime(), nullable=True),
            sa.Column("preferred_time", sa.String(length=32), nullable=True),
            sa.Column("location", sa.String(length=32), nullable=False, server_default="customer_location"),
            sa.Column("address", sa.JSON(), nullable=True),
            sa.Column("scheduled_date", sa.DateTime(), nullable=True),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
    for column in ("customer_id", "vehicle_id", "mechanic_id", "service_type", "status", "created_at"):
        index_name = f"ix_service_requests_{column}"
        if not _index_exists("service_requests", index_name):
            op.create_index(index_name, "service_requests", [column])

    if not _table_exists("service_request_notes"):
        op.create_table(
            "service_request_notes",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column(
                "service_request_id",
                sa.String(length=36),
                sa.ForeignKey("service_requests.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("author_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
    if not _index_exists("service_request_notes", "ix_service_request_notes_service_request_id"):
        op.create_index(
            "ix_service_request_notes_service_request_id", "service_request_notes", ["service_request_id"]
        )


def downgrade() -> None:
    op.drop_table("service_request_notes")
    op.drop_table("service_requests")
    op.drop_table("vehicles")
    op.drop_table("users")
