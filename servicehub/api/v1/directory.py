"""
Directory endpoints listing mechanics and customers.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user, require_roles
from ...core.db import get_db
from ...services import directory
from ...services.identity import serialize_principal


router = APIRouter(prefix="/api/v1/list", tags=["directory"])


@router.get("/mechanics")
def list_mechanics(
    specialization: str | None = Query(None),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    mechanics = directory.list_mechanics(db, specialization=specialization, include_unapproved=user.is_admin)
    return {"mechanics": [serialize_principal(m) for m in mechanics], "count": len(mechanics)}


@router.get("/mechanics/{mechanic_id}")
def get_mechanic(
    mechanic_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    return {"mechanic": serialize_principal(directory.get_mechanic(db, mechanic_id))}


@router.put("/mechanics/{mechanic_id}")
def update_mechanic(
    mechanic_id: str,
    updates: dict = Body(...),
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles("mechanic", "admin")),
) -> dict:
    mechanic = directory.update_mechanic_profile(
        db, mechanic_id, updates, viewer_id=user.user_id, viewer_role=user.role
    )
    return {"message": "Mechanic updated successfully", "mechanic": serialize_principal(mechanic)}


@router.post("/mechanics/{mechanic_id}/certifications", status_code=201)
def add_certification(
    mechanic_id: str,
    payload: dict = Body(...),
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles("mechanic", "admin")),
) -> dict:
    record = directory.add_certification(db, mechanic_id, payload, viewer_id=user.user_id, viewer_role=user.role)
    return {"message": "Certification added", "certification": record}


@router.get("/customers")
def list_customers(
    status: str | None = Query(None),
    db: Session = Depends(get_db),
    user: UserContext = Depends(require_roles("admin")),
) -> dict:
    customers = directory.list_customers(db, status=status)
    return {"customers": [serialize_principal(c) for c in customers], "count": len(customers)}
