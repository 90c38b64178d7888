"""
Vehicle reconciliation and garage management for customers.

At most one vehicle per customer is primary. Every code path that sets
a primary vehicle first clears the flag on the customer's other
vehicles inside the same transaction; the partial unique index on
``vehicles`` rejects a concurrent writer that slips between the two.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Mapping

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import DuplicateError, ForbiddenError, NotFoundError, ValidationError
from ..models.principal import ROLE_CUSTOMER, Principal
from ..models.service_request import ServiceRequest
from ..models.vehicle import VEHICLE_STATUSES, Vehicle, identity_key


logger = logging.getLogger("vehicles")

VIN_LENGTH = 17
MIN_YEAR = 1900
PRIMARY_CONFLICT = "Another primary vehicle was set concurrently; retry the request"


def _parse_year(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


def _upper(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip().upper()
    return text or None


def _validate_identity(data: Mapping[str, Any]) -> tuple[str, str, int]:
    errors: list[str] = []
    make = str(data.get("make") or "").strip()
    model = str(data.get("model") or "").strip()
    year = _parse_year(data.get("year"))
    if not make:
        errors.append("Vehicle make is required")
    if not model:
        errors.append("Vehicle model is required")
    if year is None:
        errors.append("Vehicle year is required")
    elif year < MIN_YEAR or year > datetime.utcnow().year + 1:
        errors.append(f"Vehicle year must be between {MIN_YEAR} and {datetime.utcnow().year + 1}")
    errors.extend(_validate_details(data))
    if errors:
        raise ValidationError("Invalid vehicle data", errors=errors)
    return make, model, year


def _validate_details(data: Mapping[str, Any]) -> list[str]:
    errors: list[str] = []
    vin = _upper(data.get("vin"))
    if vin is not None and len(vin) != VIN_LENGTH:
        errors.append("VIN must be exactly 17 characters")
    mileage = data.get("mileage")
    if mileage is not None and (not isinstance(mileage, int) or mileage < 0):
        errors.append("Mileage cannot be negative")
    status = data.get("status")
    if status is not None and status not in VEHICLE_STATUSES:
        errors.append("Vehicle status must be one of: " + ", ".join(VEHICLE_STATUSES))
    return errors


def _require_customer(db: Session, customer_id: str) -> Principal:
    owner = db.get(Principal, customer_id)
    if not owner or owner.role != ROLE_CUSTOMER:
        raise NotFoundError("Customer not found")
    return owner


def _count_vehicles(db: Session, customer_id: str) -> int:
    return db.query(func.count(Vehicle.id)).filter(Vehicle.customer_id == customer_id).scalar() or 0


def _clear_other_primaries(db: Session, customer_id: str, keep_id: str | None) -> None:
    query = db.query(Vehicle).filter(Vehicle.customer_id == customer_id, Vehicle.is_primary.is_(True))
    if keep_id:
        query = query.filter(Vehicle.id != keep_id)
    query.update({Vehicle.is_primary: False}, synchronize_session="fetch")


def _flush(db: Session) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        raise DuplicateError(PRIMARY_CONFLICT) from exc


def _commit(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateError(PRIMARY_CONFLICT) from exc


def _build_vehicle(customer_id: str, make: str, model: str, year: int, data: Mapping[str, Any]) -> Vehicle:
    return Vehicle(
        customer_id=customer_id,
        make=make,
        model=model,
        year=year,
        vin=_upper(data.get("vin")),
        license_plate=_upper(data.get("license_plate")),
        color=(str(data["color"]).strip() or None) if data.get("color") else None,
        mileage=data.get("mileage"),
        purchase_date=data.get("purchase_date"),
        insurance=data.get("insurance"),
        status="active",
        is_primary=False,
    )


def find_or_create_vehicle(db: Session, customer_id: str, data: Mapping[str, Any]) -> Vehicle:
    """
    Resolve vehicle attributes to one of the customer's vehicles.

    An existing vehicle with the same make and model (case-insensitive)
    and year is returned unchanged. Otherwise a new vehicle is added; it
    becomes primary when it is the customer's first. The session is only
    flushed so that the caller commits the vehicle together with whatever
    references it.
    """
    make, model, year = _validate_identity(data)
    _require_customer(db, customer_id)

    existing = (
        db.query(Vehicle)
        .filter(
            Vehicle.customer_id == customer_id,
            Vehicle.make_key == identity_key(make),
            Vehicle.model_key == identity_key(model),
            Vehicle.year == year,
        )
        .order_by(Vehicle.created_at.asc())
        .first()
    )
    if existing:
        return existing

    vehicle = _build_vehicle(customer_id, make, model, year, data)
    vehicle.is_primary = _count_vehicles(db, customer_id) == 0
    db.add(vehicle)
    _flush(db)
    logger.info(
        "Vehicle created customer=%s vehicle=%s primary=%s", customer_id, vehicle.id, vehicle.is_primary
    )
    return vehicle


def create_vehicle(db: Session, customer_id: str, data: Mapping[str, Any]) -> Vehicle:
    make, model, year = _validate_identity(data)
    _require_customer(db, customer_id)

    vehicle = _build_vehicle(customer_id, make, model, year, data)
    make_primary = bool(data.get("is_primary")) or _count_vehicles(db, customer_id) == 0
    if make_primary:
        _clear_other_primaries(db, customer_id, keep_id=None)
    vehicle.is_primary = make_primary
    db.add(vehicle)
    _commit(db)
    db.refresh(vehicle)
    logger.info("Vehicle added customer=%s vehicle=%s primary=%s", customer_id, vehicle.id, vehicle.is_primary)
    return vehicle


def list_customer_vehicles(db: Session, customer_id: str) -> list[Vehicle]:
    return (
        db.query(Vehicle)
        .filter(Vehicle.customer_id == customer_id)
        .order_by(Vehicle.is_primary.desc(), Vehicle.created_at.desc())
        .all()
    )


def get_owned_vehicle(db: Session, customer_id: str, vehicle_id: str) -> Vehicle:
    vehicle = db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise NotFoundError("Vehicle not found")
    if vehicle.customer_id != customer_id:
        raise ForbiddenError("Not authorized to access this vehicle")
    return vehicle


def set_primary_vehicle(db: Session, customer_id: str, vehicle_id: str) -> Vehicle:
    vehicle = get_owned_vehicle(db, customer_id, vehicle_id)
    if vehicle.is_primary:
        return vehicle
    _clear_other_primaries(db, customer_id, keep_id=vehicle.id)
    vehicle.is_primary = True
    _commit(db)
    db.refresh(vehicle)
    logger.info("Primary vehicle changed customer=%s vehicle=%s", customer_id, vehicle.id)
    return vehicle


def update_vehicle(db: Session, customer_id: str, vehicle_id: str, updates: Mapping[str, Any]) -> Vehicle:
    vehicle = get_owned_vehicle(db, customer_id, vehicle_id)
    updates = {k: v for k, v in updates.items() if v is not None}

    errors = _validate_details(updates)
    mileage = updates.get("mileage")
    if isinstance(mileage, int) and vehicle.mileage is not None and mileage < vehicle.mileage:
        errors.append("Mileage cannot decrease")
    if errors:
        raise ValidationError("Invalid vehicle data", errors=errors)

    if "vin" in updates:
        vehicle.vin = _upper(updates["vin"])
    if "license_plate" in updates:
        vehicle.license_plate = _upper(updates["license_plate"])
    for key in ("color", "mileage", "status", "last_service_date", "next_service_due", "insurance"):
        if key in updates:
            setattr(vehicle, key, updates[key])
    db.commit()
    db.refresh(vehicle)
    return vehicle


def delete_vehicle(db: Session, customer_id: str, vehicle_id: str) -> None:
    """Delete a vehicle, detaching its service requests and handing primary to the newest survivor."""
    vehicle = get_owned_vehicle(db, customer_id, vehicle_id)
    was_primary = vehicle.is_primary
    try:
        detached = (
            db.query(ServiceRequest)
            .filter(ServiceRequest.vehicle_id == vehicle.id)
            .update({ServiceRequest.vehicle_id: None}, synchronize_session="fetch")
        )
        db.delete(vehicle)
        db.flush()
        if was_primary:
            successor = (
                db.query(Vehicle)
                .filter(Vehicle.customer_id == customer_id)
                .order_by(Vehicle.created_at.desc())
                .first()
            )
            if successor:
                successor.is_primary = True
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateError(PRIMARY_CONFLICT) from exc
    except Exception:
        db.rollback()
        raise
    logger.info("Vehicle deleted customer=%s vehicle=%s detached_requests=%s", customer_id, vehicle_id, detached)
