"""
SQLAlchemy model base class for the Service Hub backend.

This package defines ORM models for principals (customers, mechanics and
admins sharing one table), vehicles, and service requests with their
audit notes. All models inherit from the declarative `Base` defined here.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


from .principal import Principal, Customer, Mechanic, Admin  # noqa: E402,F401
from .vehicle import Vehicle  # noqa: E402,F401
from .service_request import ServiceRequest, ServiceRequestNote  # noqa: E402,F401

__all__ = [
    "Base",

    # Principals
    "Principal",
    "Customer",
    "Mechanic",
    "Admin",

    # Vehicles / requests
    "Vehicle",
    "ServiceRequest",
    "ServiceRequestNote",
]
