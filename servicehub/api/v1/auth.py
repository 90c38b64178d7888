"""
Authentication endpoints: registration, login and self-service profile.
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ...core.auth import UserContext, get_current_user
from ...core.db import get_db
from ...schemas.auth import ChangePasswordIn, LoginIn, RegisterIn
from ...services import identity


router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _build_session_response(grant: identity.SessionGrant, message: str) -> dict:
    return {
        "message": message,
        "access_token": grant.token,
        "token_type": "bearer",
        "user": identity.serialize_principal(grant.principal),
    }


@router.post("/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)) -> dict:
    grant = identity.register(
        db,
        username=payload.username,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        role_data=payload.role_data(),
    )
    body = _build_session_response(grant, "User registered successfully")
    body["next_steps"] = identity.next_steps(grant.principal)
    return body


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)) -> dict:
    grant = identity.login(db, email=payload.email, password=payload.password)
    return _build_session_response(grant, "Login successful")


@router.get("/profile")
def get_profile(
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    return {"user": identity.serialize_principal(identity.get_principal(db, user.user_id))}


@router.put("/profile")
def update_profile(
    updates: dict = Body(...),
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    principal = identity.update_profile(db, user.user_id, updates)
    return {"message": "Profile updated successfully", "user": identity.serialize_principal(principal)}


@router.put("/change-password")
def change_password(
    payload: ChangePasswordIn,
    db: Session = Depends(get_db),
    user: UserContext = Depends(get_current_user),
) -> dict:
    identity.change_password(
        db,
        user.user_id,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return {"message": "Password changed successfully"}


@router.post("/logout")
def logout(user: UserContext = Depends(get_current_user)) -> dict:
    identity.logout(user.user_id)
    return {"message": "Logged out successfully"}
