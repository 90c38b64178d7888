"""
Admin user management gated by the clearance hierarchy.

Every status change and delete runs `authorize_admin_action` first. An
admin may act on any customer or mechanic, but on another admin only
when their own clearance rank is strictly higher. Nobody acts on their
own account through these operations.
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.errors import (
    ForbiddenError,
    InsufficientClearanceError,
    NotFoundError,
    SelfActionError,
    ValidationError,
)
from ..core.pagination import DEFAULT_PAGE_SIZE, clamp_page_size, pagination_block
from ..models.principal import (
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_MECHANIC,
    ROLES,
    STATUS_APPROVED,
    STATUSES,
    Principal,
)
from ..models.service_request import ServiceRequest, ServiceRequestNote
from ..models.vehicle import Vehicle


logger = logging.getLogger("admin-actions")


def _fetch(db: Session, user_id: str, *, lock: bool) -> Principal | None:
    query = db.query(Principal).filter(Principal.id == user_id)
    if lock:
        query = query.with_for_update()
    return query.first()


def authorize_admin_action(
    db: Session,
    acting_admin_id: str,
    target_user_id: str,
    action: str,
    lock: bool = False,
) -> Principal:
    """
    Check that ``acting_admin_id`` may ``action`` the target and return the target.

    With ``lock=True`` both rows are read ``FOR UPDATE`` so that the check
    and the caller's write happen in one transaction.
    """
    if acting_admin_id == target_user_id:
        raise SelfActionError(f"Cannot {action} your own account")

    actor = _fetch(db, acting_admin_id, lock=lock)
    if not actor:
        raise NotFoundError("Admin user not found")
    if actor.role != ROLE_ADMIN or actor.status != STATUS_APPROVED:
        raise ForbiddenError("Access denied. Admin privileges required.")

    target = _fetch(db, target_user_id, lock=lock)
    if not target:
        raise NotFoundError("Target user not found")

    if target.role == ROLE_ADMIN:
        if actor.clearance_rank <= target.clearance_rank:
            raise InsufficientClearanceError(
                f"Cannot {action} admin accounts with equal or higher clearance level"
            )
    return target


def update_user_status(db: Session, acting_admin_id: str, target_user_id: str, status: str | None) -> Principal:
    status = (status or "").strip().lower()
    if status not in STATUSES:
        raise ValidationError(
            "Invalid status", errors=["Status must be one of: " + ", ".join(STATUSES)]
        )
    try:
        target = authorize_admin_action(db, acting_admin_id, target_user_id, "modify", lock=True)
        previous = target.status
        target.status = status
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(target)
    logger.info(
        "User status updated actor=%s target=%s role=%s %s -> %s",
        acting_admin_id,
        target.id,
        target.role,
        previous,
        status,
    )
    return target


def delete_user(db: Session, acting_admin_id: str, target_user_id: str) -> None:
    """
    Delete a customer or mechanic.

    A customer's service requests (with their notes) and vehicles go
    with them. A mechanic's assigned requests stay and lose the mechanic.
    """
    try:
        target = authorize_admin_action(db, acting_admin_id, target_user_id, "delete", lock=True)
        if target.role == ROLE_ADMIN:
            raise ForbiddenError("Admin users cannot be deleted")
        target_role = target.role

        removed_requests = 0
        removed_vehicles = 0
        if target.role == ROLE_CUSTOMER:
            request_ids = [
                rid for (rid,) in db.query(ServiceRequest.id).filter(ServiceRequest.customer_id == target.id)
            ]
            if request_ids:
                db.query(ServiceRequestNote).filter(
                    ServiceRequestNote.service_request_id.in_(request_ids)
                ).delete(synchronize_session=False)
                removed_requests = (
                    db.query(ServiceRequest)
                    .filter(ServiceRequest.id.in_(request_ids))
                    .delete(synchronize_session=False)
                )
            removed_vehicles = (
                db.query(Vehicle).filter(Vehicle.customer_id == target.id).delete(synchronize_session=False)
            )
        elif target.role == ROLE_MECHANIC:
            db.query(ServiceRequest).filter(ServiceRequest.mechanic_id == target.id).update(
                {ServiceRequest.mechanic_id: None}, synchronize_session=False
            )
        db.query(ServiceRequestNote).filter(ServiceRequestNote.author_id == target.id).update(
            {ServiceRequestNote.author_id: None}, synchronize_session=False
        )
        db.delete(target)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info(
        "User deleted actor=%s target=%s role=%s requests=%s vehicles=%s",
        acting_admin_id,
        target_user_id,
        target_role,
        removed_requests,
        removed_vehicles,
    )


def list_users(
    db: Session,
    *,
    user_type: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> tuple[list[Principal], dict]:
    query = db.query(Principal)
    if user_type:
        if user_type not in ROLES:
            raise ValidationError("Invalid user type", errors=["User type must be one of: " + ", ".join(ROLES)])
        query = query.filter(Principal.role == user_type)
    if status:
        if status not in STATUSES:
            raise ValidationError("Invalid status", errors=["Status must be one of: " + ", ".join(STATUSES)])
        query = query.filter(Principal.status == status)

    page = max(1, page)
    limit = clamp_page_size(limit)
    total = query.with_entities(func.count(Principal.id)).scalar() or 0
    users = query.order_by(Principal.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
    return users, pagination_block(page=page, limit=limit, total=total)


def get_user(db: Session, user_id: str) -> Principal:
    user = db.get(Principal, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user
