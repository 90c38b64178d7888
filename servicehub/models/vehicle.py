"""
ORM model for customer vehicles.

A vehicle is owned by exactly one customer. The partial unique index
``uq_vehicles_one_primary`` allows at most one ``is_primary`` row per
customer, so two concurrent writers cannot both commit a primary vehicle.

``make_key`` and ``model_key`` hold the casefolded make and model. Lookups
match on them rather than on the database's ``lower()``, which only folds
ASCII on SQLite.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, false, text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from . import Base


VEHICLE_STATUSES = ("active", "inactive", "sold", "totaled")


def identity_key(value: str) -> str:
    return value.strip().casefold()


class Vehicle(Base):
    __tablename__ = "vehicles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    make: Mapped[str] = mapped_column(String(64))
    model: Mapped[str] = mapped_column(String(64))
    make_key: Mapped[str] = mapped_column(String(128), server_default="")
    model_key: Mapped[str] = mapped_column(String(128), server_default="")
    year: Mapped[int] = mapped_column(Integer)
    vin: Mapped[str | None] = mapped_column(String(17), nullable=True, index=True)
    license_plate: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    status: Mapped[str] = mapped_column(String(16), default="active", server_default="active")
    purchase_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_service_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_service_due: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    insurance: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Principal", foreign_keys=[customer_id])

    __table_args__ = (
        Index(
            "uq_vehicles_one_primary",
            "customer_id",
            unique=True,
            sqlite_where=text("is_primary = 1"),
            postgresql_where=text("is_primary"),
        ),
        Index("ix_vehicles_identity", "customer_id", "make_key", "model_key", "year"),
    )

    @validates("make", "model")
    def _sync_identity_key(self, key: str, value: str) -> str:
        setattr(self, f"{key}_key", identity_key(value or ""))
        return value
