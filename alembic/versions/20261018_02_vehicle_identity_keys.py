"""vehicle identity keys for case-insensitive matching

Revision ID: 20261018_02
Revises: 20261018_01
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision = "20261018_02"
down_revision = "20261018_01"
branch_labels = None
depends_on = None


def _column_exists(table_name: str, column_name: str) -> bool:
    inspector = sa.inspect(op.get_bind())
    return column_name in {col["name"] for col in inspector.get_columns(table_name)}


def _index_exists(table_name: str, index_name: str) -> bool:
    inspector = sa.inspect(op.get_bind())
    return index_name in {idx["name"] for idx in inspector.get_indexes(table_name)}


def upgrade() -> None:
    added = False
    for column in ("make_key", "model_key"):
        if not _column_exists("vehicles", column):
            op.add_column(
                "vehicles", sa.Column(column, sa.String(length=128), nullable=False, server_default="")
            )
            added = True

    if added:
        # Python casefold, not SQL lower(): SQLite only folds ASCII.
        bind = op.get_bind()
        vehicles = sa.table(
            "vehicles",
            sa.column("id", sa.String),
            sa.column("make", sa.String),
            sa.column("model", sa.String),
            sa.column("make_key", sa.String),
            sa.column("model_key", sa.String),
        )
        rows = bind.execute(sa.select(vehicles.c.id, vehicles.c.make, vehicles.c.model)).all()
        for vehicle_id, make, model in rows:
            bind.execute(
                vehicles.update()
                .where(vehicles.c.id == vehicle_id)
                .values(make_key=(make or "").strip().casefold(), model_key=(model or "").strip().casefold())
            )

    if not _index_exists("vehicles", "ix_vehicles_identity"):
        op.create_index("ix_vehicles_identity", "vehicles", ["customer_id", "make_key", "model_key", "year"])


def downgrade() -> None:
    op.drop_index("ix_vehicles_identity", table_name="vehicles")
    op.drop_column("vehicles", "model_key")
    op.drop_column("vehicles", "make_key")
