from datetime import timedelta

import jwt
import pytest

from authapp.core import config
from authapp.core.security import (
    InvalidSessionToken,
    SESSION_TTL,
    decode_session_token,
    hash_password,
    issue_session_token,
    verify_password,
)
from authapp.core.time import utcnow


def test_password_hash_round_trip():
    hashed = hash_password("Secret123!")

    assert hashed.startswith("$2")
    assert verify_password("Secret123!", hashed)
    assert not verify_password("secret123!", hashed)


def test_verify_password_handles_missing_and_malformed_hashes():
    assert not verify_password("Secret123!", None)
    assert not verify_password("", hash_password("Secret123!"))
    assert not verify_password("Secret123!", "not-a-bcrypt-hash")


def test_session_token_claims():
    token = issue_session_token("abc", "ann@example.com")

    claims = decode_session_token(token)

    assert claims.user_id == "abc"
    assert claims.email == "ann@example.com"
    remaining = claims.expires_at - utcnow()
    assert timedelta(days=6, hours=23) < remaining <= SESSION_TTL


def test_expired_session_token_is_rejected():
    token = issue_session_token("abc", "ann@example.com", now=utcnow() - timedelta(days=8))

    with pytest.raises(InvalidSessionToken):
        decode_session_token(token)


def test_token_signed_with_other_secret_is_rejected():
    now = utcnow()
    forged = jwt.encode(
        {"userId": "abc", "email": "a@x.com", "iat": now, "exp": now + SESSION_TTL},
        "not-" + config.JWT_SECRET,
        algorithm="HS256",
    )

    with pytest.raises(InvalidSessionToken):
        decode_session_token(forged)


def test_token_without_account_claims_is_rejected():
    now = utcnow()
    token = jwt.encode(
        {"sub": "abc", "iat": now, "exp": now + SESSION_TTL},
        config.JWT_SECRET,
        algorithm="HS256",
    )

    with pytest.raises(InvalidSessionToken):
        decode_session_token(token)


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
def test_malformed_tokens_are_rejected(token):
    with pytest.raises(InvalidSessionToken):
        decode_session_token(token)
