"""
ORM models for service requests and their audit notes.

A service request is a customer's ticket for a mechanic to work on one
of the customer's vehicles. Notes are append-only: the lifecycle code
adds a row per status change or assignment and never edits one.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base


SERVICE_TYPES = ("repair", "maintenance", "inspection", "diagnostic", "emergency")
PRIORITIES = ("low", "medium", "high", "urgent")
LOCATIONS = ("customer_location", "mechanic_shop", "mobile_service")


class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    # Nullable only so that deleting a vehicle can detach its requests.
    vehicle_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True, index=True
    )
    mechanic_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    description: Mapped[str] = mapped_column(String(1000))
    question: Mapped[str | None] = mapped_column(String(500), nullable=True)
    service_type: Mapped[str] = mapped_column(String(16), index=True)
    priority: Mapped[str] = mapped_column(String(8), default="medium", server_default="medium")
    status: Mapped[str] = mapped_column(String(16), default="pending", server_default="pending", index=True)
    estimated_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    actual_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    estimated_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    actual_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    preferred_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    preferred_time: Mapped[str | None] = mapped_column(String(32), nullable=True)
    location: Mapped[str] = mapped_column(String(32), default="customer_location", server_default="customer_location")
    address: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    scheduled_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Principal", foreign_keys=[customer_id])
    mechanic = relationship("Principal", foreign_keys=[mechanic_id])
    vehicle = relationship("Vehicle", foreign_keys=[vehicle_id])
    notes: Mapped[list[ServiceRequestNote]] = relationship(
        "ServiceRequestNote",
        back_populates="service_request",
        cascade="all, delete-orphan",
        order_by="ServiceRequestNote.id",
    )


class ServiceRequestNote(Base):
    __tablename__ = "service_request_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    service_request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("service_requests.id", ondelete="CASCADE"), index=True
    )
    author_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    text: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    service_request: Mapped[ServiceRequest] = relationship("ServiceRequest", back_populates="notes")
