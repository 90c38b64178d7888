"""
Registration, login and profile management for principals.

Field rules are evaluated together so that a single ValidationError
reports every violation. Role-specific profile data is filtered through
a per-role whitelist before it reaches the model.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import re
from typing import Any

from email_validator import EmailNotValidError, validate_email
from pydantic.alias_generators import to_snake
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import env_flag
from ..core.errors import AuthError, DuplicateError, ForbiddenError, NotFoundError, ValidationError
from ..core.security import create_access_token, hash_password, verify_password
from ..models.principal import (
    ADMIN_DEPARTMENTS,
    ADMIN_PERMISSIONS,
    MECHANIC_SPECIALIZATIONS,
    PRINCIPAL_CLASSES,
    ROLE_ADMIN,
    ROLE_CUSTOMER,
    ROLE_MECHANIC,
    ROLES,
    STATUS_APPROVED,
    STATUS_BANNED,
    STATUS_PENDING,
    Admin,
    Principal,
)


logger = logging.getLogger("auth")

USERNAME_RE = re.compile(r"^[A-Za-z0-9]+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
PASSWORD_SYMBOLS = set("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?")
EMAIL_MAX_LEN = 254

PENDING_LOGIN_MESSAGE = "Account pending approval. Please wait for administrator approval."
BANNED_LOGIN_MESSAGE = "Account has been banned. Please contact support."

_ROLE_FIELDS: dict[str, tuple[str, ...]] = {
    ROLE_CUSTOMER: ("phone_number", "address", "preferences", "emergency_contact"),
    ROLE_MECHANIC: ("phone_number", "specialization", "experience", "availability", "business_info", "pricing"),
    ROLE_ADMIN: ("phone_number", "permissions", "departments"),
}
_ADDRESS_KEYS = ("street", "city", "state", "zip_code", "country")


@dataclass
class SessionGrant:
    principal: Principal
    token: str
    bootstrap_admin: bool = False


def _username_errors(username: str) -> list[str]:
    if not username:
        return ["Username is required"]
    errors: list[str] = []
    if not USERNAME_RE.match(username):
        errors.append("Username must only contain alphanumeric characters")
    if len(username) < 3:
        errors.append("Username must be at least 3 characters long")
    if len(username) > 30:
        errors.append("Username cannot exceed 30 characters")
    return errors


def _normalize_email(email: str) -> tuple[str | None, list[str]]:
    if not email:
        return None, ["Email is required"]
    if len(email) > EMAIL_MAX_LEN:
        return None, ["Email cannot exceed 254 characters"]
    try:
        result = validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return None, ["Please provide a valid email address"]
    return result.normalized.lower(), []


def password_errors(password: str) -> list[str]:
    if not password:
        return ["Password is required"]
    errors: list[str] = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if len(password) > 25:
        errors.append("Password cannot exceed 25 characters")
    has_lower = any(c.islower() for c in password)
    has_upper = any(c.isupper() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_symbol = any(c in PASSWORD_SYMBOLS for c in password)
    if not (has_lower and has_upper and has_digit and has_symbol):
        errors.append(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return errors


def clean_role_data(role: str, data: dict[str, Any] | None) -> tuple[dict[str, Any], list[str]]:
    """Keep whitelisted keys for the role (accepting camelCase) and validate them."""
    allowed = _ROLE_FIELDS.get(role, ())
    cleaned: dict[str, Any] = {}
    for key, value in (data or {}).items():
        name = to_snake(key)
        if name in allowed and value is not None:
            cleaned[name] = value

    errors: list[str] = []
    phone = cleaned.get("phone_number")
    if phone is not None and (not isinstance(phone, str) or not PHONE_RE.match(phone)):
        errors.append("Please provide a valid phone number")

    address = cleaned.get("address")
    if address is not None:
        if not isinstance(address, dict):
            errors.append("Address must be an object")
        else:
            cleaned["address"] = {to_snake(k): v for k, v in address.items() if to_snake(k) in _ADDRESS_KEYS}

    specialization = cleaned.get("specialization")
    if specialization is not None:
        if not isinstance(specialization, list) or any(s not in MECHANIC_SPECIALIZATIONS for s in specialization):
            errors.append("Specialization must be a list of: " + ", ".join(MECHANIC_SPECIALIZATIONS))

    experience = cleaned.get("experience")
    if experience is not None:
        try:
            years = int(experience)
        except (TypeError, ValueError):
            years = -1
        if years < 0 or years > 50:
            errors.append("Experience must be between 0 and 50 years")
        else:
            cleaned["experience"] = years

    for key, choices in (("permissions", ADMIN_PERMISSIONS), ("departments", ADMIN_DEPARTMENTS)):
        values = cleaned.get(key)
        if values is not None and (not isinstance(values, list) or any(v not in choices for v in values)):
            errors.append(f"{key.title()} must be a list of: " + ", ".join(choices))

    return cleaned, errors


def _admin_exists(db: Session) -> bool:
    return db.query(Admin.id).first() is not None


def get_principal(db: Session, user_id: str) -> Principal:
    principal = db.get(Principal, user_id)
    if not principal:
        raise NotFoundError("User not found")
    return principal


def register(
    db: Session,
    *,
    username: str | None,
    email: str | None,
    password: str | None,
    role: str | None,
    role_data: dict[str, Any] | None = None,
) -> SessionGrant:
    username = (username or "").strip()
    role = (role or "").strip().lower()
    password = password or ""

    errors = _username_errors(username)
    normalized_email, email_errors = _normalize_email((email or "").strip())
    errors.extend(email_errors)
    errors.extend(password_errors(password))
    if not role:
        errors.append("Role is required")
    elif role not in ROLES:
        errors.append("Role must be one of: " + ", ".join(ROLES))
    cleaned, role_errors = clean_role_data(role, role_data)
    errors.extend(role_errors)
    if errors:
        raise ValidationError("Validation failed", errors=errors)

    if db.query(Principal.id).filter(Principal.email == normalized_email).first():
        raise DuplicateError("User already exists with this email")
    if db.query(Principal.id).filter(func.lower(Principal.username) == username.lower()).first():
        raise DuplicateError("Username is already taken")

    status = STATUS_PENDING
    bootstrap = False
    if role == ROLE_ADMIN:
        # Clients may never pick their own clearance.
        cleaned["clearance_level"] = "basic"
        if env_flag("ALLOW_FIRST_ADMIN"):
            if _admin_exists(db):
                raise ForbiddenError("Admin registration is not allowed. Contact system administrator.")
            status = STATUS_APPROVED
            bootstrap = True
            cleaned["clearance_level"] = "director"
            cleaned.setdefault("permissions", list(ADMIN_PERMISSIONS))
            cleaned.setdefault("departments", list(ADMIN_DEPARTMENTS))

    model_cls = PRINCIPAL_CLASSES[role]
    principal = model_cls(
        username=username,
        email=normalized_email,
        password_hash=hash_password(password),
        status=status,
        **cleaned,
    )
    db.add(principal)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateError("User already exists with this email") from exc
    db.refresh(principal)

    if bootstrap:
        logger.warning("Bootstrap admin registered id=%s email=%s", principal.id, principal.email)
    logger.info("Registered principal id=%s role=%s status=%s", principal.id, role, principal.status)
    token = create_access_token(user_id=principal.id, role=principal.role)
    return SessionGrant(principal=principal, token=token, bootstrap_admin=bootstrap)


def next_steps(principal: Principal) -> str:
    if principal.status == STATUS_APPROVED:
        return "Your account is active. You can log in now."
    return "Your account is pending approval. An administrator will review it shortly."


def login(db: Session, *, email: str | None, password: str | None) -> SessionGrant:
    email = (email or "").strip().lower()
    if not email or not password:
        raise ValidationError("Validation failed", errors=["Email and password are required"])

    principal = db.query(Principal).filter(Principal.email == email).first()
    if not principal or not verify_password(password, principal.password_hash):
        logger.info("Failed login email=%s", email)
        raise AuthError("Invalid credentials")
    if principal.status == STATUS_PENDING:
        raise ForbiddenError(PENDING_LOGIN_MESSAGE)
    if principal.status == STATUS_BANNED:
        raise ForbiddenError(BANNED_LOGIN_MESSAGE)

    if isinstance(principal, Admin):
        principal.last_login = datetime.utcnow()
        db.commit()
        db.refresh(principal)
    token = create_access_token(user_id=principal.id, role=principal.role)
    return SessionGrant(principal=principal, token=token)


def update_profile(db: Session, user_id: str, updates: dict[str, Any]) -> Principal:
    """Apply self-service profile edits. Password, role, status and id are never touched here."""
    principal = get_principal(db, user_id)
    updates = {to_snake(k): v for k, v in (updates or {}).items()}

    errors: list[str] = []
    if "username" in updates:
        username = str(updates.get("username") or "").strip()
        errors.extend(_username_errors(username))
        if not errors and username.lower() != principal.username.lower():
            taken = (
                db.query(Principal.id)
                .filter(func.lower(Principal.username) == username.lower(), Principal.id != principal.id)
                .first()
            )
            if taken:
                raise DuplicateError("Username is already taken")
        new_username = username
    else:
        new_username = None

    new_email = None
    if "email" in updates:
        new_email, email_errors = _normalize_email(str(updates.get("email") or "").strip())
        errors.extend(email_errors)

    cleaned, role_errors = clean_role_data(principal.role, updates)
    errors.extend(role_errors)
    if errors:
        raise ValidationError("Validation failed", errors=errors)

    if new_email and new_email != principal.email:
        taken = db.query(Principal.id).filter(Principal.email == new_email, Principal.id != principal.id).first()
        if taken:
            raise DuplicateError("User already exists with this email")
        principal.email = new_email
    if new_username:
        principal.username = new_username
    # Admins cannot widen their own permissions from the profile form.
    if isinstance(principal, Admin):
        cleaned.pop("permissions", None)
        cleaned.pop("departments", None)
    for key, value in cleaned.items():
        setattr(principal, key, value)

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateError("User already exists with this email") from exc
    db.refresh(principal)
    logger.info("Profile updated id=%s fields=%s", principal.id, sorted(cleaned) or "-")
    return principal


def change_password(db: Session, user_id: str, *, current_password: str | None, new_password: str | None) -> None:
    errors: list[str] = []
    if not current_password:
        errors.append("Current password is required")
    errors.extend(password_errors(new_password or ""))
    if errors:
        raise ValidationError("Validation failed", errors=errors)

    principal = get_principal(db, user_id)
    if not verify_password(current_password, principal.password_hash):
        raise AuthError("Current password is incorrect")
    principal.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password changed id=%s", principal.id)


def logout(user_id: str) -> None:
    # Tokens are stateless; the client discards its copy.
    logger.info("User logged out id=%s", user_id)


def serialize_principal(principal: Principal) -> dict:
    """Public representation of a principal. The password hash is never included."""
    data = {
        "id": principal.id,
        "username": principal.username,
        "email": principal.email,
        "role": principal.role,
        "status": principal.status,
        "phone_number": principal.phone_number,
        "is_verified": principal.is_verified,
        "created_at": principal.created_at.isoformat() if principal.created_at else None,
        "updated_at": principal.updated_at.isoformat() if principal.updated_at else None,
    }
    if principal.role == ROLE_CUSTOMER:
        data.update(
            address=principal.address,
            preferences=principal.preferences,
            loyalty_points=principal.loyalty_points,
            total_spent=principal.total_spent,
            member_since=principal.member_since.isoformat() if principal.member_since else None,
            last_service_date=principal.last_service_date.isoformat() if principal.last_service_date else None,
            emergency_contact=principal.emergency_contact,
        )
    elif principal.role == ROLE_MECHANIC:
        data.update(
            specialization=principal.specialization,
            experience=principal.experience,
            rating=principal.rating,
            total_ratings=principal.total_ratings,
            availability=principal.availability,
            certifications=principal.certifications,
            business_info=principal.business_info,
            performance=principal.performance,
            pricing=principal.pricing,
        )
    elif principal.role == ROLE_ADMIN:
        data.update(
            permissions=principal.permissions,
            departments=principal.departments,
            clearance_level=principal.clearance_level,
            last_login=principal.last_login.isoformat() if principal.last_login else None,
        )
    return data
