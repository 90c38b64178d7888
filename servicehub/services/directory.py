"""
Mechanic and customer directory lookups.
"""

from __future__ import annotations

from datetime import datetime
import logging
import uuid
from typing import Any, Mapping

from pydantic.alias_generators import to_snake
from sqlalchemy.orm import Session

from ..core.errors import ForbiddenError, NotFoundError, ValidationError
from ..models.principal import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_MECHANIC, STATUS_APPROVED, Customer, Mechanic
from .identity import clean_role_data


logger = logging.getLogger("directory")

_CERTIFICATION_KEYS = ("name", "issuer", "issued_at", "expires_at", "credential_id")


def list_mechanics(
    db: Session,
    *,
    specialization: str | None = None,
    include_unapproved: bool = False,
) -> list[Mechanic]:
    query = db.query(Mechanic)
    if not include_unapproved:
        query = query.filter(Mechanic.status == STATUS_APPROVED)
    mechanics = query.order_by(Mechanic.rating.desc(), Mechanic.created_at.desc()).all()
    if specialization:
        # JSON containment differs across backends; filter in Python.
        mechanics = [m for m in mechanics if specialization in (m.specialization or [])]
    return mechanics


def get_mechanic(db: Session, mechanic_id: str) -> Mechanic:
    mechanic = db.get(Mechanic, mechanic_id)
    if not mechanic or mechanic.role != ROLE_MECHANIC:
        raise NotFoundError("Mechanic not found")
    return mechanic


def _ensure_editor(mechanic: Mechanic, viewer_id: str, viewer_role: str) -> None:
    if viewer_role != ROLE_ADMIN and viewer_id != mechanic.id:
        raise ForbiddenError("Not authorized to update this mechanic")


def update_mechanic_profile(
    db: Session,
    mechanic_id: str,
    updates: Mapping[str, Any],
    *,
    viewer_id: str,
    viewer_role: str,
) -> Mechanic:
    mechanic = get_mechanic(db, mechanic_id)
    _ensure_editor(mechanic, viewer_id, viewer_role)
    cleaned, errors = clean_role_data(ROLE_MECHANIC, dict(updates or {}))
    if errors:
        raise ValidationError("Validation failed", errors=errors)
    for key, value in cleaned.items():
        setattr(mechanic, key, value)
    db.commit()
    db.refresh(mechanic)
    logger.info("Mechanic profile updated id=%s by=%s fields=%s", mechanic.id, viewer_id, sorted(cleaned) or "-")
    return mechanic


def add_certification(
    db: Session,
    mechanic_id: str,
    data: Mapping[str, Any],
    *,
    viewer_id: str,
    viewer_role: str,
) -> dict:
    """Record certification metadata. Documents are stored as URL strings only."""
    mechanic = get_mechanic(db, mechanic_id)
    _ensure_editor(mechanic, viewer_id, viewer_role)

    fields = {to_snake(k): v for k, v in (data or {}).items()}
    name = str(fields.get("name") or "").strip()
    documents = fields.get("documents") or []
    errors: list[str] = []
    if not name:
        errors.append("Certification name is required")
    if not isinstance(documents, list) or not all(isinstance(d, str) and d.strip() for d in documents):
        errors.append("Documents must be a list of URL strings")
    if errors:
        raise ValidationError("Validation failed", errors=errors)

    record = {k: fields[k] for k in _CERTIFICATION_KEYS if fields.get(k) is not None}
    record.update(
        id=str(uuid.uuid4()),
        name=name,
        documents=[d.strip() for d in documents],
        added_at=datetime.utcnow().isoformat(),
    )
    # Reassign so the JSON column is marked dirty.
    mechanic.certifications = [*(mechanic.certifications or []), record]
    db.commit()
    logger.info("Certification added mechanic=%s cert=%s", mechanic.id, record["id"])
    return record


def list_customers(db: Session, *, status: str | None = None) -> list[Customer]:
    query = db.query(Customer).filter(Customer.role == ROLE_CUSTOMER)
    if status:
        query = query.filter(Customer.status == status)
    return query.order_by(Customer.created_at.desc()).all()
