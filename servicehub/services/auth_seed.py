"""
Bootstrap seed helpers for the first administrator.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import DuplicateError
from ..core.security import hash_password
from ..models.principal import ADMIN_DEPARTMENTS, ADMIN_PERMISSIONS, STATUS_APPROVED, Admin, Principal


def create_director_admin(db: Session, *, username: str, email: str, password: str) -> Admin | None:
    """
    Create an approved director admin unless any admin already exists.

    Returns ``None`` when an admin is already present. Raises
    ``DuplicateError`` when the email or username belongs to another account.
    """
    logger = logging.getLogger("auth-seed")
    if db.query(Admin.id).first():
        logger.info("Admin already exists; skipping bootstrap admin")
        return None
    email = email.strip().lower()
    username = username.strip()
    if db.query(Principal.id).filter(Principal.email == email).first():
        raise DuplicateError(f"Email {email} is already registered to another account")
    if db.query(Principal.id).filter(Principal.username == username).first():
        raise DuplicateError(f"Username {username} is already taken")

    admin = Admin(
        username=username,
        email=email,
        password_hash=hash_password(password),
        status=STATUS_APPROVED,
        clearance_level="director",
        permissions=list(ADMIN_PERMISSIONS),
        departments=list(ADMIN_DEPARTMENTS),
        is_verified=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Bootstrap admin created id=%s email=%s", admin.id, admin.email)
    return admin


def seed_admin_user(db: Session) -> None:
    logger = logging.getLogger("auth-seed")
    email = (settings.admin_email or "").strip()
    username = (settings.admin_username or "admin").strip()
    password = (settings.admin_password or "").strip()

    if not email:
        logger.warning("Skipping admin seed: empty SERVICEHUB_ADMIN_EMAIL")
        return
    if not password:
        logger.warning("Skipping admin seed: SERVICEHUB_ADMIN_PASSWORD is empty")
        return
    try:
        create_director_admin(db, username=username, email=email, password=password)
    except DuplicateError as exc:
        logger.warning("Skipping admin seed: %s", exc.detail)
