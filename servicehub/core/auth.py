"""
Session verification and role gates for API routes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from .errors import AuthError, ForbiddenError
from .security import TokenError, decode_access_token


ROLES = ("admin", "customer", "mechanic")


@dataclass(frozen=True)
class UserContext:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


def verify_session(token: Optional[str]) -> UserContext:
    """
    Verify a bearer token and return the caller's id and role.

    Only the signature, expiry and claims are checked; the account row is
    not read. Account status gates login alone, so a token issued at
    registration (status pending) or before a ban stays valid until it
    expires.
    """
    if not token:
        raise AuthError("No token, authorization denied")
    try:
        claims = decode_access_token(token)
    except TokenError as exc:
        raise AuthError("Token is not valid") from exc
    user_id = str(claims.get("sub") or "").strip()
    role = str(claims.get("role") or "").strip().lower()
    if not user_id or role not in ROLES:
        raise AuthError("Invalid token claims")
    return UserContext(user_id=user_id, role=role)


def get_current_user(authorization: Optional[str] = Header(None)) -> UserContext:
    return verify_session(_extract_bearer_token(authorization))


def require_roles(*roles: str):
    allowed = {r.strip().lower() for r in roles if r and r.strip()}

    def _dep(user: UserContext = Depends(get_current_user)) -> UserContext:
        if allowed and user.role not in allowed:
            if allowed == {"admin"}:
                raise ForbiddenError("Access denied. Admin privileges required.")
            raise ForbiddenError("Access denied for role " + user.role)
        return user

    return _dep
