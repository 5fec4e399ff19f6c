"""JWT token creation and verification."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest

from otakuloot.auth.jwt import _load_private_key, create_access_token, verify_token
from otakuloot.config import get_settings


def _encode(**overrides) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": "1",
        "email": "player@example.com",
        "iat": now,
        "exp": now + timedelta(minutes=5),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    payload.update(overrides)
    return pyjwt.encode(payload, _load_private_key(), algorithm=settings.jwt_algorithm)


class TestAccessToken:
    def test_round_trip_claims(self):
        token = create_access_token(42, "player@example.com")
        payload = verify_token(token)
        assert payload["sub"] == "42"
        assert payload["email"] == "player@example.com"
        assert payload["iss"] == "otakuloot"
        assert payload["type"] == "access"

    def test_expired_token_rejected(self):
        token = _encode(exp=datetime.now(timezone.utc) - timedelta(minutes=1))
        with pytest.raises(pyjwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_type_rejected(self):
        with pytest.raises(pyjwt.InvalidTokenError, match="Expected token type"):
            verify_token(_encode(type="refresh"))

    def test_wrong_issuer_rejected(self):
        with pytest.raises(pyjwt.InvalidTokenError):
            verify_token(_encode(iss="someone-else"))

    def test_tampered_token_rejected(self):
        token = create_access_token(1, "player@example.com")
        with pytest.raises(pyjwt.InvalidTokenError):
            verify_token(token[:-4] + "AAAA")
