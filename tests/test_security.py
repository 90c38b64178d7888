from datetime import datetime, timedelta, timezone

import pytest

from servicehub.core import security
from servicehub.core.auth import verify_session
from servicehub.core.errors import AuthError


def test_password_hash_roundtrip_and_salting():
    first = security.hash_password("Abcd1234!")
    second = security.hash_password("Abcd1234!")
    assert first != second
    assert first.startswith("pbkdf2_sha256$")
    assert security.verify_password("Abcd1234!", first)
    assert not security.verify_password("Abcd1234?", first)
    assert not security.verify_password("Abcd1234!", "garbage")


def test_token_carries_id_role_and_one_day_expiry(monkeypatch):
    monkeypatch.delenv("SERVICEHUB_JWT_EXP_MIN", raising=False)
    issued = datetime.now(timezone.utc)
    token = security.create_access_token(user_id="u-1", role="customer", now=issued)
    claims = security.decode_access_token(token)
    assert claims["sub"] == "u-1"
    assert claims["role"] == "customer"
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60


def test_expired_token_rejected():
    issued = datetime.now(timezone.utc) - timedelta(days=2)
    token = security.create_access_token(user_id="u-1", role="customer", now=issued)
    with pytest.raises(security.TokenError):
        security.decode_access_token(token)


def test_tampered_token_rejected():
    token = security.create_access_token(user_id="u-1", role="customer")
    header, payload, signature = token.split(".")
    forged = security.create_access_token(user_id="u-1", role="admin").split(".")[1]
    with pytest.raises(security.TokenError):
        security.decode_access_token(f"{header}.{forged}.{signature}")


def test_verify_session_messages():
    with pytest.raises(AuthError) as exc:
        verify_session(None)
    assert exc.value.detail == "No token, authorization denied"

    with pytest.raises(AuthError) as exc:
        verify_session("not-a-token")
    assert exc.value.detail == "Token is not valid"

    ctx = verify_session(security.create_access_token(user_id="m-9", role="mechanic"))
    assert ctx.user_id == "m-9"
    assert ctx.role == "mechanic"
    assert not ctx.is_admin


def test_password_hash_layout_and_malformed_hashes():
    encoded = security.hash_password("Abcd1234!")
    scheme, rounds, salt, digest = encoded.split("$")
    assert scheme == "pbkdf2_sha256"
    assert int(rounds) == security._hash_rounds()
    assert len(security._b64url_decode(salt)) == security.SALT_BYTES
    assert len(security._b64url_decode(digest)) == 32
    assert not security.verify_password("Abcd1234!", f"{scheme}$0${salt}${digest}")
    assert not security.verify_password("Abcd1234!", f"bcrypt${rounds}${salt}${digest}")
    assert not security.verify_password("Abcd1234!", f"{scheme}$many${salt}${digest}")


def test_token_with_other_algorithm_rejected():
    token = security.create_access_token(user_id="u-1", role="customer")
    _, payload, _ = token.split(".")
    unsigned_header = security._encode_segment({"alg": "none", "typ": "JWT"})
    with pytest.raises(security.TokenError) as exc:
        security.decode_access_token(f"{unsigned_header}.{payload}.")
    assert str(exc.value) == "Unsupported token algorithm"


def test_verify_session_does_not_consult_account_status():
    # Status gates login only; an issued token stays usable until it expires.
    token = security.create_access_token(user_id="banned-user", role="customer")
    ctx = verify_session(token)
    assert ctx.user_id == "banned-user"
