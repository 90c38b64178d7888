"""
ORM models for principals.

Customers, mechanics and admins share the ``users`` table. The ``role``
column is the discriminator: loading a row yields the mapped class for
its role, so callers dispatch on the class (or the tag) instead of
probing optional attributes. Role-specific columns are nullable at the
table level and defaulted by each subclass constructor.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base


ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"
ROLE_MECHANIC = "mechanic"
ROLES = (ROLE_ADMIN, ROLE_CUSTOMER, ROLE_MECHANIC)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_BANNED = "banned"
STATUSES = (STATUS_PENDING, STATUS_APPROVED, STATUS_BANNED)

CLEARANCE_RANK = {
    "director": 4,
    "supervisor": 3,
    "senior": 2,
    "basic": 1,
}

ADMIN_PERMISSIONS = ("read", "write", "delete", "manage_users", "manage_system", "view_analytics")
ADMIN_DEPARTMENTS = ("general", "customer_service", "mechanic_management", "financial", "technical")
MECHANIC_SPECIALIZATIONS = (
    "Engine Repair",
    "Brake Systems",
    "Electrical",
    "AC/Heating",
    "Suspension",
    "Exhaust",
    "Diagnostics",
    "General Maintenance",
)


class Principal(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    username: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(254), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(16), index=True)
    status: Mapped[str] = mapped_column(String(16), default=STATUS_PENDING, server_default=STATUS_PENDING, index=True)
    phone_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_verified: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"polymorphic_on": "role"}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} email={self.email} status={self.status}>"


class Customer(Principal):
    address: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    preferences: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    loyalty_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_spent: Mapped[float | None] = mapped_column(Float, nullable=True)
    member_since: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_service_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    emergency_contact: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    vehicles = relationship(
        "Vehicle",
        primaryjoin="Customer.id == Vehicle.customer_id",
        foreign_keys="Vehicle.customer_id",
        viewonly=True,
        order_by="Vehicle.created_at.desc()",
    )
    service_requests = relationship(
        "ServiceRequest",
        primaryjoin="Customer.id == ServiceRequest.customer_id",
        foreign_keys="ServiceRequest.customer_id",
        viewonly=True,
        order_by="ServiceRequest.created_at.desc()",
    )

    __mapper_args__ = {"polymorphic_identity": ROLE_CUSTOMER}

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("loyalty_points", 0)
        kwargs.setdefault("total_spent", 0.0)
        kwargs.setdefault("member_since", datetime.utcnow())
        kwargs.setdefault("is_verified", False)
        kwargs.setdefault(
            "preferences",
            {
                "preferred_contact_method": "email",
                "notification_settings": {"email": True, "sms": False, "push": True},
                "language": "en",
                "timezone": "UTC",
            },
        )
        super().__init__(**kwargs)


class Mechanic(Principal):
    specialization: Mapped[list | None] = mapped_column(JSON, nullable=True)
    experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating: Mapped[float | None] = mapped_column(Float, nullable=True)
    total_ratings: Mapped[int | None] = mapped_column(Integer, nullable=True)
    availability: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    certifications: Mapped[list | None] = mapped_column(JSON, nullable=True)
    business_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    performance: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    pricing: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    service_requests = relationship(
        "ServiceRequest",
        primaryjoin="Mechanic.id == ServiceRequest.mechanic_id",
        foreign_keys="ServiceRequest.mechanic_id",
        viewonly=True,
        order_by="ServiceRequest.created_at.desc()",
    )

    __mapper_args__ = {"polymorphic_identity": ROLE_MECHANIC}

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("specialization", [])
        kwargs.setdefault("experience", 0)
        kwargs.setdefault("rating", 0.0)
        kwargs.setdefault("total_ratings", 0)
        kwargs.setdefault("availability", {"is_available": True, "timezone": "UTC"})
        kwargs.setdefault("certifications", [])
        kwargs.setdefault(
            "performance",
            {
                "jobs_completed": 0,
                "average_job_time": 0,
                "on_time_rate": 100,
                "customer_satisfaction": 0,
                "repeat_customer_rate": 0,
            },
        )
        kwargs.setdefault(
            "pricing",
            {"hourly_rate": 0, "minimum_charge": 0, "travel_fee": 0, "accepts_insurance": False},
        )
        kwargs.setdefault("is_verified", False)
        super().__init__(**kwargs)


class Admin(Principal):
    permissions: Mapped[list | None] = mapped_column(JSON, nullable=True)
    departments: Mapped[list | None] = mapped_column(JSON, nullable=True)
    clearance_level: Mapped[str | None] = mapped_column(String(16), nullable=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    __mapper_args__ = {"polymorphic_identity": ROLE_ADMIN}

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("permissions", ["read", "write", "delete"])
        kwargs.setdefault("departments", ["general"])
        kwargs.setdefault("clearance_level", "basic")
        super().__init__(**kwargs)

    @property
    def clearance_rank(self) -> int:
        return CLEARANCE_RANK.get(self.clearance_level or "", 0)


PRINCIPAL_CLASSES: dict[str, type[Principal]] = {
    ROLE_CUSTOMER: Customer,
    ROLE_MECHANIC: Mechanic,
    ROLE_ADMIN: Admin,
}
