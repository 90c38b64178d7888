"""
Admin user-management endpoints.

Every route requires an admin session. Status changes and deletes are
additionally gated by the clearance hierarchy in the admin policy.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.auth import UserContext, require_roles
from ...core.db import get_db
from ...core.pagination import DEFAULT_PAGE_SIZE
from ...schemas.admin import StatusUpdateIn
from ...services import admin_policy
from ...services.identity import serialize_principal
from ...services.user_stats import get_user_stats


router = APIRouter(prefix="/api/v1/admin", tags=["admin"])
admin_only = require_roles("admin")


@router.get("/users")
def list_users(
    user_type: str | None = Query(None, alias="userType"),
    status: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
    user: UserContext = Depends(admin_only),
) -> dict:
    users, pagination = admin_policy.list_users(db, user_type=user_type, status=status, page=page, limit=limit)
    return {"users": [serialize_principal(u) for u in users], "pagination": pagination}


@router.get("/users/stats")
def user_stats(
    db: Session = Depends(get_db),
    user: UserContext = Depends(admin_only),
) -> dict:
    return get_user_stats(db)


@router.get("/users/{user_id}")
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(admin_only),
) -> dict:
    return {"user": serialize_principal(admin_policy.get_user(db, user_id))}


@router.patch("/users/{user_id}/status")
def update_user_status(
    user_id: str,
    payload: StatusUpdateIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(admin_only),
) -> dict:
    target = admin_policy.update_user_status(db, user.user_id, user_id, payload.status)
    return {"message": f"User status updated to {target.status}", "user": serialize_principal(target)}


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    user: UserContext = Depends(admin_only),
) -> dict:
    admin_policy.delete_user(db, user.user_id, user_id)
    return {"message": "User deleted successfully"}
