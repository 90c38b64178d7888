"""
Service request endpoints.

Customers open requests and pick a mechanic; the assigned mechanic
drives the status through its lifecycle. Listing endpoints are scoped
to the principal they name unless the caller is an admin.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user, require_roles
from ...core.db import get_db
from ...core.errors import ForbiddenError
from ...schemas.service_request import (
    AssignMechanicIn,
    ServiceRequestCreate,
    ServiceRequestOut,
    ServiceRequestUpdate,
)
from ...services import service_requests as lifecycle


router = APIRouter(prefix="/api/v1/service-request", tags=["service-requests"])


def _ensure_self_or_admin(user: UserContext, principal_id: str) -> None:
    if not user.is_admin and user.user_id != principal_id:
        raise ForbiddenError("Not authorized to view these service requests")


def _out(rows) -> List[ServiceRequestOut]:
    return [ServiceRequestOut.model_validate(r) for r in rows]


@router.post("", response_model=ServiceRequestOut, status_code=201)
def create_service_request(
    payload: ServiceRequestCreate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles("customer")),
) -> ServiceRequestOut:
    req = lifecycle.create_service_request(db, user.user_id, payload.model_dump())
    return ServiceRequestOut.model_validate(req)


@router.get("/mechanic/{mechanic_id}", response_model=List[ServiceRequestOut])
def list_for_mechanic(
    mechanic_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[ServiceRequestOut]:
    _ensure_self_or_admin(user, mechanic_id)
    return _out(lifecycle.list_by_mechanic(db, mechanic_id))


@router.get("/mechanic/{mechanic_id}/queue", response_model=List[ServiceRequestOut])
def mechanic_queue(
    mechanic_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[ServiceRequestOut]:
    _ensure_self_or_admin(user, mechanic_id)
    return _out(lifecycle.mechanic_queue(db, mechanic_id))


@router.get("/mechanic/{mechanic_id}/appointments", response_model=List[ServiceRequestOut])
def mechanic_appointments(
    mechanic_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[ServiceRequestOut]:
    _ensure_self_or_admin(user, mechanic_id)
    return _out(lifecycle.mechanic_appointments(db, mechanic_id))


@router.get("/customer/{customer_id}", response_model=List[ServiceRequestOut])
def list_for_customer(
    customer_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> List[ServiceRequestOut]:
    _ensure_self_or_admin(user, customer_id)
    return _out(lifecycle.list_by_customer(db, customer_id))


@router.get("/status/{status}", response_model=List[ServiceRequestOut])
def list_by_status(
    status: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles("admin")),
) -> List[ServiceRequestOut]:
    return _out(lifecycle.list_by_status(db, status))


@router.get("/{request_id}", response_model=ServiceRequestOut)
def get_service_request(
    request_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> ServiceRequestOut:
    req = lifecycle.get_service_request(db, request_id, viewer_id=user.user_id, viewer_role=user.role)
    return ServiceRequestOut.model_validate(req)


@router.put("/{request_id}", response_model=ServiceRequestOut)
def update_service_request(
    request_id: str,
    payload: ServiceRequestUpdate,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles("mechanic")),
) -> ServiceRequestOut:
    req = lifecycle.update_service_request(
        db,
        request_id,
        user.user_id,
        status=payload.status,
        question=payload.question,
    )
    return ServiceRequestOut.model_validate(req)


@router.put("/{request_id}/mechanic", response_model=ServiceRequestOut)
def assign_mechanic(
    request_id: str,
    payload: AssignMechanicIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles("customer")),
) -> ServiceRequestOut:
    req = lifecycle.assign_mechanic(db, request_id, user.user_id, payload.mechanic_id)
    return ServiceRequestOut.model_validate(req)
