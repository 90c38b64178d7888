"""
Vehicle endpoints for the signed-in customer's garage.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.auth import UserContext, require_roles
from ...core.db import get_db
from ...schemas.service_request import ServiceRequestOut
from ...schemas.vehicle import VehicleIn, VehicleOut, VehicleUpdate
from ...services import vehicles as vehicle_service
from ...services.service_requests import list_by_vehicle


router = APIRouter(prefix="/api/v1/vehicles", tags=["vehicles"])
customer_only = require_roles("customer")


@router.post("", response_model=VehicleOut, status_code=201)
def create_vehicle(
    payload: VehicleIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(customer_only),
) -> VehicleOut:
    vehicle = vehicle_service.create_vehicle(db, user.user_id, payload.model_dump())
    return VehicleOut.model_validate(vehicle)


@router.get("", response_model=List[VehicleOut])
def list_vehicles(
    db: Session = Depends(get_db),
    user: UserContext = Depends(customer_only),
) -> List[VehicleOut]:
    return [VehicleOut.model_validate(v) for v in vehicle_service.list_customer_vehicles(db, user.user_id)]


@router.put("/{vehicle_id}", response_model=VehicleOut)
def update_vehicle(
    vehicle_id: str,
    payload: VehicleUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(customer_only),
) -> VehicleOut:
    vehicle = vehicle_service.update_vehicle(db, user.user_id, vehicle_id, payload.model_dump(exclude_unset=True))
    return VehicleOut.model_validate(vehicle)


@router.put("/{vehicle_id}/primary", response_model=VehicleOut)
def set_primary(
    vehicle_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(customer_only),
) -> VehicleOut:
    return VehicleOut.model_validate(vehicle_service.set_primary_vehicle(db, user.user_id, vehicle_id))


@router.delete("/{vehicle_id}")
def delete_vehicle(
    vehicle_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(customer_only),
) -> dict:
    vehicle_service.delete_vehicle(db, user.user_id, vehicle_id)
    return {"message": "Vehicle deleted successfully"}


@router.get("/{vehicle_id}/service-history", response_model=List[ServiceRequestOut])
def service_history(
    vehicle_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(customer_only),
) -> List[ServiceRequestOut]:
    vehicle = vehicle_service.get_owned_vehicle(db, user.user_id, vehicle_id)
    return [ServiceRequestOut.model_validate(r) for r in list_by_vehicle(db, vehicle.id)]
