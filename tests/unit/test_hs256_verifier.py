from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from social_chat.application.exceptions import AuthError
from social_chat.infrastructure.auth.hs256_verifier import HS256Verifier

SECRET = "unit-test-secret-with-enough-length-for-hs256"


def _token(claims: dict, secret: str = SECRET) -> str:
    claims.setdefault("exp", datetime.now(timezone.utc) + timedelta(minutes=5))
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def verifier() -> HS256Verifier:
    return HS256Verifier(SECRET)


@pytest.mark.asyncio
async def test_sub_claim(verifier):
    identity = await verifier.verify(_token({"sub": "u-alice", "username": "alice"}))
    assert identity.id == "u-alice"
    assert identity.username == "alice"


@pytest.mark.asyncio
async def test_legacy_id_claim(verifier):
    identity = await verifier.verify(_token({"_id": "64b7f0", "username": "bob"}))
    assert identity.id == "64b7f0"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("token", "detail"),
    [
        ("", "No token provided"),
        ("not-a-jwt", "Invalid token"),
        (_token({"sub": "u-alice"}, secret="another-secret-with-enough-length-too"), "Invalid token"),
        (_token({"sub": "u-alice", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)}), "Token expired"),
        (_token({"username": "nobody"}), "Invalid token payload"),
    ],
)
async def test_rejected(verifier, token, detail):
    with pytest.raises(AuthError) as exc:
        await verifier.verify(token)
    assert exc.value.detail == detail


@pytest.mark.asyncio
async def test_exp_required(verifier):
    token = jwt.encode({"sub": "u-alice"}, SECRET, algorithm="HS256")
    with pytest.raises(AuthError):
        await verifier.verify(token)
