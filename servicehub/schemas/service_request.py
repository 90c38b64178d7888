"""
Pydantic schemas for service request request/response validation.
"""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .vehicle import VehicleIn, VehicleOut


class ServiceRequestCreate(BaseModel):
    """Payload for a customer opening a service request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    vehicle_data: VehicleIn | None = None
    vehicle_id: str | None = None
    mechanic_id: str | None = None
    description: str | None = None
    service_type: str | None = None
    priority: str | None = None
    question: str | None = None
    preferred_date: datetime | None = None
    preferred_time: str | None = None
    location: str | None = None
    address: dict | None = None
    estimated_cost: float | None = None
    estimated_duration: float | None = None


class ServiceRequestUpdate(BaseModel):
    """Mechanic-side update: a status transition and/or a question."""

    status: str | None = None
    question: str | None = None


class AssignMechanicIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    mechanic_id: str


class PrincipalBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    role: str


class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    text: str
    author_id: str | None
    created_at: datetime


class ServiceRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    vehicle_id: str | None
    mechanic_id: str | None
    description: str
    question: str | None
    service_type: str
    priority: str
    status: str
    estimated_cost: float | None = None
    actual_cost: float | None = None
    estimated_duration: float | None = None
    actual_duration: float | None = None
    preferred_date: datetime | None = None
    preferred_time: str | None = None
    location: str
    address: dict | None = None
    scheduled_date: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    customer: PrincipalBrief | None = None
    mechanic: PrincipalBrief | None = None
    vehicle: VehicleOut | None = None
    notes: list[NoteOut] = []
