"""
Service request lifecycle.

Status changes follow ``TRANSITIONS``; anything else is rejected. Each
change appends a note to the request's history, and entering
``completed`` stamps ``completed_at``.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Mapping

from sqlalchemy.orm import Session, selectinload

from ..core.errors import ForbiddenError, NotFoundError, ValidationError
from ..models.principal import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_MECHANIC, Principal
from ..models.service_request import LOCATIONS, PRIORITIES, SERVICE_TYPES, ServiceRequest, ServiceRequestNote
from ..models.vehicle import Vehicle
from .vehicles import find_or_create_vehicle


logger = logging.getLogger("service-requests")

TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"accepted", "rejected"}),
    "accepted": frozenset({"question", "in_progress", "cancelled"}),
    "question": frozenset({"accepted", "rejected"}),
    "in_progress": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "rejected": frozenset(),
    "cancelled": frozenset(),
}
STATUSES = tuple(TRANSITIONS)

DESCRIPTION_MAX_LEN = 1000
QUESTION_MAX_LEN = 500


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def _populated(db: Session):
    return db.query(ServiceRequest).options(
        selectinload(ServiceRequest.customer),
        selectinload(ServiceRequest.mechanic),
        selectinload(ServiceRequest.vehicle),
        selectinload(ServiceRequest.notes),
    )


def _load(db: Session, request_id: str) -> ServiceRequest:
    req = _populated(db).filter(ServiceRequest.id == request_id).first()
    if not req:
        raise NotFoundError("Service request not found")
    return req


def _resolve_mechanic(db: Session, mechanic_id: str) -> Principal:
    mechanic = db.get(Principal, mechanic_id)
    if not mechanic:
        raise NotFoundError("Mechanic not found")
    if mechanic.role != ROLE_MECHANIC:
        raise ValidationError("Assigned user must be a mechanic")
    return mechanic


def _payload_errors(payload: Mapping[str, Any]) -> list[str]:
    errors: list[str] = []
    description = str(payload.get("description") or "").strip()
    if not description:
        errors.append("Description is required")
    elif len(description) > DESCRIPTION_MAX_LEN:
        errors.append("Description cannot exceed 1000 characters")

    service_type = payload.get("service_type")
    if not service_type:
        errors.append("Service type is required")
    elif service_type not in SERVICE_TYPES:
        errors.append("Service type must be one of: " + ", ".join(SERVICE_TYPES))

    priority = payload.get("priority")
    if priority is not None and priority not in PRIORITIES:
        errors.append("Priority must be one of: " + ", ".join(PRIORITIES))
    location = payload.get("location")
    if location is not None and location not in LOCATIONS:
        errors.append("Location must be one of: " + ", ".join(LOCATIONS))
    question = payload.get("question")
    if question is not None and len(question) > QUESTION_MAX_LEN:
        errors.append("Question cannot exceed 500 characters")
    for key in ("estimated_cost", "estimated_duration"):
        value = payload.get(key)
        if value is not None and value < 0:
            errors.append(f"{key.replace('_', ' ').capitalize()} cannot be negative")

    if not payload.get("vehicle_id") and not payload.get("vehicle_data"):
        errors.append("Vehicle information is required")
    return errors


def create_service_request(db: Session, customer_id: str, payload: Mapping[str, Any]) -> ServiceRequest:
    """
    Open a request for one of the customer's vehicles.

    The vehicle is either referenced by ``vehicle_id`` or resolved from
    ``vehicle_data`` (make/model/year) through find-or-create. Vehicle
    resolution and the request insert commit together or not at all.
    """
    customer = db.get(Principal, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    if customer.role != ROLE_CUSTOMER:
        raise ForbiddenError("Only customers can create service requests")

    errors = _payload_errors(payload)
    if errors:
        raise ValidationError("Validation failed", errors=errors)

    try:
        vehicle_id = payload.get("vehicle_id")
        if vehicle_id:
            vehicle = db.get(Vehicle, vehicle_id)
            if not vehicle:
                raise NotFoundError("Vehicle not found")
            if vehicle.customer_id != customer.id:
                raise ValidationError("Vehicle does not belong to this customer")
        else:
            vehicle = find_or_create_vehicle(db, customer.id, payload["vehicle_data"])

        mechanic_id = payload.get("mechanic_id")
        if mechanic_id:
            _resolve_mechanic(db, mechanic_id)

        req = ServiceRequest(
            customer_id=customer.id,
            vehicle_id=vehicle.id,
            mechanic_id=mechanic_id or None,
            description=str(payload["description"]).strip(),
            question=payload.get("question"),
            service_type=payload["service_type"],
            priority=payload.get("priority") or "medium",
            status="pending",
            estimated_cost=payload.get("estimated_cost"),
            estimated_duration=payload.get("estimated_duration"),
            preferred_date=payload.get("preferred_date"),
            preferred_time=payload.get("preferred_time"),
            location=payload.get("location") or "customer_location",
            address=payload.get("address"),
        )
        db.add(req)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Service request created id=%s customer=%s vehicle=%s mechanic=%s",
        req.id,
        customer.id,
        req.vehicle_id,
        req.mechanic_id or "-",
    )
    return _load(db, req.id)


def update_service_request(
    db: Session,
    request_id: str,
    acting_mechanic_id: str,
    *,
    status: str | None = None,
    question: str | None = None,
) -> ServiceRequest:
    req = _load(db, request_id)
    if not req.mechanic_id or req.mechanic_id != acting_mechanic_id:
        raise ForbiddenError("Not authorized to update this service request")

    target = status.strip().lower() if status is not None else None
    if target is not None:
        if target not in TRANSITIONS:
            raise ValidationError("Invalid status", errors=["Status must be one of: " + ", ".join(STATUSES)])
        if target != req.status and not can_transition(req.status, target):
            raise ValidationError(f"Cannot change status from {req.status} to {target}")
    if question is not None and len(question) > QUESTION_MAX_LEN:
        raise ValidationError("Question cannot exceed 500 characters")

    previous = req.status
    if target is not None and target != previous:
        now = datetime.utcnow()
        req.status = target
        req.notes.append(
            ServiceRequestNote(author_id=acting_mechanic_id, text=f"Status changed from {previous} to {target}")
        )
        if target == "completed":
            req.completed_at = now
            if req.vehicle is not None:
                req.vehicle.last_service_date = now
            if req.customer is not None and req.customer.role == ROLE_CUSTOMER:
                req.customer.last_service_date = now
    if question is not None:
        req.question = question

    db.commit()
    if target is not None and target != previous:
        logger.info("Service request status id=%s %s -> %s by=%s", req.id, previous, target, acting_mechanic_id)
    return _load(db, req.id)


def assign_mechanic(db: Session, request_id: str, customer_id: str, mechanic_id: str) -> ServiceRequest:
    req = _load(db, request_id)
    if req.customer_id != customer_id:
        raise ForbiddenError("Not authorized to update this service request")
    if req.status != "pending":
        raise ValidationError("A mechanic can only be assigned while the request is pending")
    mechanic = _resolve_mechanic(db, mechanic_id)

    req.mechanic_id = mechanic.id
    req.notes.append(ServiceRequestNote(author_id=customer_id, text="Assigned to mechanic"))
    db.commit()
    logger.info("Mechanic assigned request=%s mechanic=%s", req.id, mechanic.id)
    return _load(db, req.id)


def get_service_request(db: Session, request_id: str, *, viewer_id: str, viewer_role: str) -> ServiceRequest:
    req = _load(db, request_id)
    if viewer_role != ROLE_ADMIN and viewer_id not in {req.customer_id, req.mechanic_id}:
        raise ForbiddenError("Not authorized to view this service request")
    return req


def list_by_mechanic(db: Session, mechanic_id: str, status: str | None = None) -> list[ServiceRequest]:
    query = _populated(db).filter(ServiceRequest.mechanic_id == mechanic_id)
    if status:
        query = query.filter(ServiceRequest.status == status)
    return query.order_by(ServiceRequest.created_at.desc()).all()


def list_by_customer(db: Session, customer_id: str) -> list[ServiceRequest]:
    return (
        _populated(db)
        .filter(ServiceRequest.customer_id == customer_id)
        .order_by(ServiceRequest.created_at.desc())
        .all()
    )


def list_by_status(db: Session, status: str) -> list[ServiceRequest]:
    status = (status or "").strip().lower()
    if status not in TRANSITIONS:
        raise ValidationError("Invalid status", errors=["Status must be one of: " + ", ".join(STATUSES)])
    return (
        _populated(db)
        .filter(ServiceRequest.status == status)
        .order_by(ServiceRequest.created_at.desc())
        .all()
    )


def list_by_vehicle(db: Session, vehicle_id: str) -> list[ServiceRequest]:
    return (
        _populated(db)
        .filter(ServiceRequest.vehicle_id == vehicle_id)
        .order_by(ServiceRequest.created_at.desc())
        .all()
    )


def mechanic_queue(db: Session, mechanic_id: str) -> list[ServiceRequest]:
    return list_by_mechanic(db, mechanic_id, status="pending")


def mechanic_appointments(db: Session, mechanic_id: str) -> list[ServiceRequest]:
    return list_by_mechanic(db, mechanic_id, status="accepted")
