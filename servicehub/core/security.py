"""
Security helpers for password hashing and signed session tokens.

Passwords are stored as ``pbkdf2_sha256$<rounds>$<salt>$<digest>`` with
the salt and digest base64url-encoded. Session tokens are compact HS256
JWTs carrying the principal id (``sub``), its ``role``, ``iat`` and
``exp``. The header algorithm is checked before the signature so a token
claiming any other algorithm (``none`` included) is refused outright.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any


PASSWORD_SCHEME = "pbkdf2_sha256"
DEFAULT_HASH_ROUNDS = 120_000
SALT_BYTES = 16

TOKEN_ALGORITHM = "HS256"
DEFAULT_TOKEN_TTL_MIN = 24 * 60
DEV_JWT_SECRET = "dev-jwt-secret-change-me"


class TokenError(ValueError):
    """Raised when a session token cannot be verified."""


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _hash_rounds() -> int:
    try:
        return max(1, int(os.getenv("SERVICEHUB_PASSWORD_HASH_ROUNDS", str(DEFAULT_HASH_ROUNDS))))
    except ValueError:
        return DEFAULT_HASH_ROUNDS


def _pbkdf2(password: str, salt: bytes, rounds: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    rounds = _hash_rounds()
    salt = secrets.token_bytes(SALT_BYTES)
    digest = _pbkdf2(password, salt, rounds)
    return f"{PASSWORD_SCHEME}${rounds}${_b64url_encode(salt)}${_b64url_encode(digest)}"


def verify_password(password: str, encoded: str) -> bool:
    """Check ``password`` against a stored hash; malformed hashes never match."""
    parts = (encoded or "").split("$")
    if len(parts) != 4 or parts[0] != PASSWORD_SCHEME:
        return False
    try:
        rounds = int(parts[1])
        salt = _b64url_decode(parts[2])
        expected = _b64url_decode(parts[3])
    except ValueError:
        return False
    if rounds < 1:
        return False
    return hmac.compare_digest(_pbkdf2(password or "", salt, rounds), expected)


def _jwt_secret() -> str:
    secret = (os.getenv("SERVICEHUB_JWT_SECRET") or "").strip()
    if secret:
        return secret
    env = (os.getenv("SERVICEHUB_ENV") or os.getenv("APP_ENV") or "dev").strip().lower()
    return "" if env == "prod" else DEV_JWT_SECRET


def _token_ttl() -> timedelta:
    try:
        minutes = max(1, int(os.getenv("SERVICEHUB_JWT_EXP_MIN", str(DEFAULT_TOKEN_TTL_MIN))))
    except ValueError:
        minutes = DEFAULT_TOKEN_TTL_MIN
    return timedelta(minutes=minutes)


def _encode_segment(data: dict[str, Any]) -> str:
    return _b64url_encode(json.dumps(data, separators=(",", ":")).encode("utf-8"))


def _decode_segment(segment: str) -> Any:
    return json.loads(_b64url_decode(segment).decode("utf-8"))


def _sign(secret: str, signing_input: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def session_claims(user_id: str, role: str, issued: datetime) -> dict[str, Any]:
    return {
        "sub": user_id,
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + _token_ttl()).timestamp()),
    }


def create_access_token(*, user_id: str, role: str, now: datetime | None = None) -> str:
    secret = _jwt_secret()
    if not secret:
        raise RuntimeError("SERVICEHUB_JWT_SECRET is required in prod")
    claims = session_claims(user_id, role, now or datetime.now(timezone.utc))
    signing_input = f"{_encode_segment({'alg': TOKEN_ALGORITHM, 'typ': 'JWT'})}.{_encode_segment(claims)}"
    return f"{signing_input}.{_b64url_encode(_sign(secret, signing_input))}"


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify algorithm, signature and expiry, then return the claims."""
    secret = _jwt_secret()
    if not secret:
        raise TokenError("JWT secret not configured")
    try:
        header_b64, payload_b64, signature_b64 = (token or "").split(".")
    except ValueError as exc:
        raise TokenError("Malformed token") from exc
    try:
        header = _decode_segment(header_b64)
        claims = _decode_segment(payload_b64)
        signature = _b64url_decode(signature_b64)
    except ValueError as exc:
        # json and base64 errors are both ValueError subclasses.
        raise TokenError("Malformed token") from exc

    if not isinstance(header, dict) or header.get("alg") != TOKEN_ALGORITHM:
        raise TokenError("Unsupported token algorithm")
    if not hmac.compare_digest(_sign(secret, f"{header_b64}.{payload_b64}"), signature):
        raise TokenError("Invalid signature")
    if not isinstance(claims, dict):
        raise TokenError("Invalid payload")
    try:
        exp = int(claims.get("exp") or 0)
    except (TypeError, ValueError):
        exp = 0
    if exp <= 0:
        raise TokenError("Missing exp")
    if datetime.now(timezone.utc).timestamp() >= exp:
        raise TokenError("Token expired")
    return claims
