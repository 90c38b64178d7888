"""
Pydantic schemas for vehicle request/response validation.
"""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class VehicleIn(BaseModel):
    """Vehicle attributes supplied by a profile form or a service request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    make: str | None = Field(None, max_length=64)
    model: str | None = Field(None, max_length=64)
    year: int | None = None
    vin: str | None = None
    license_plate: str | None = None
    color: str | None = Field(None, max_length=32)
    mileage: int | None = None
    is_primary: bool = False
    purchase_date: datetime | None = None
    insurance: dict | None = None


class VehicleUpdate(BaseModel):
    """Mutable vehicle attributes. Identity fields (make/model/year) are fixed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    vin: str | None = None
    license_plate: str | None = None
    color: str | None = Field(None, max_length=32)
    mileage: int | None = None
    status: str | None = None
    last_service_date: datetime | None = None
    next_service_due: datetime | None = None
    insurance: dict | None = None


class VehicleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    make: str
    model: str
    year: int
    vin: str | None
    license_plate: str | None
    color: str | None
    mileage: int | None
    is_primary: bool
    status: str
    purchase_date: datetime | None = None
    last_service_date: datetime | None = None
    next_service_due: datetime | None = None
    insurance: dict | None = None
    created_at: datetime
    updated_at: datetime
