"""Unit tests for JWT decoding and authentication utilities."""

import time
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.algorithms import ECAlgorithm

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt, get_signing_key
from src.schemas.auth import TokenPayload

SIGNING_KEY = ec.generate_private_key(ec.SECP256R1())
OTHER_KEY = ec.generate_private_key(ec.SECP256R1())
SIGNING_JWK = ECAlgorithm.to_jwk(SIGNING_KEY.public_key())


def create_test_token(
    sub: str | None = "550e8400-e29b-41d4-a716-446655440000",
    email: str | None = "Buyer@Example.com",
    role: str | None = "authenticated",
    exp_offset: int = 3600,
    aud: str = "authenticated",
    key: Any = SIGNING_KEY,
) -> str:
    """Create a test ES256 token.

    Args:
        sub: Subject (user ID); omitted when None.
        email: User email.
        role: User role.
        exp_offset: Seconds from now for expiration (negative for expired).
        aud: Audience claim.
        key: EC private key used to sign.

    Returns:
        str: Encoded JWT token.
    """
    now = int(time.time())
    payload = {
        "email": email,
        "role": role,
        "exp": now + exp_offset,
        "iat": now,
        "aud": aud,
        "iss": "https://test.supabase.co/auth/v1",
    }
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, key, algorithm="ES256")


@pytest.fixture(autouse=True)
def signing_settings() -> Generator[MagicMock, None, None]:
    """Point auth at the test signing key."""
    settings = MagicMock(supabase_signing_key_jwk=SIGNING_JWK, supabase_jwt_audience="authenticated")
    get_signing_key.cache_clear()
    with patch("src.api.middleware.auth.get_settings", return_value=settings):
        yield settings
    get_signing_key.cache_clear()


class TestDecodeJWT:
    """Tests for decode_jwt function."""

    def test_decodes_valid_token(self) -> None:
        payload = decode_jwt(create_test_token())

        assert payload.sub == "550e8400-e29b-41d4-a716-446655440000"
        assert payload.role == "authenticated"
        assert payload.aud == "authenticated"

    def test_email_is_lowercased(self) -> None:
        """Test orders are owned by a normalised email."""
        assert decode_jwt(create_test_token()).email == "buyer@example.com"

    def test_expired_token(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(exp_offset=-3600))

        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED

    def test_token_signed_with_other_key(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(key=OTHER_KEY))

        assert exc_info.value.code == AuthErrorCode.INVALID_SIGNATURE

    def test_wrong_audience(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(aud="anon-service"))

        assert exc_info.value.code == AuthErrorCode.INVALID_AUDIENCE

    def test_missing_sub_claim(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(sub=None))

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_hs256_token_rejected(self) -> None:
        """Test a symmetric token cannot pass as a Supabase token."""
        now = int(time.time())
        token = jwt.encode(
            {"sub": "550e8400-e29b-41d4-a716-446655440000", "exp": now + 60, "iat": now, "aud": "authenticated"},
            "shared-secret-that-is-long-enough-for-hs256",
            algorithm="HS256",
        )

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    @pytest.mark.parametrize("token", ["not-a-valid-jwt-token", ""])
    def test_malformed_token(self, token: str) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_invalid_signing_key_config(self, signing_settings: MagicMock) -> None:
        signing_settings.supabase_signing_key_jwk = "not json"

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token())

        assert "JWK" in exc_info.value.message


class TestTokenPayload:
    def test_to_user_context(self) -> None:
        user = decode_jwt(create_test_token()).to_user_context()

        assert str(user.user_id) == "550e8400-e29b-41d4-a716-446655440000"
        assert user.email == "buyer@example.com"

    @pytest.mark.parametrize(
        ("email", "expected"),
        [(" Buyer@Example.COM ", "buyer@example.com"), ("   ", None), (None, None)],
    )
    def test_email_is_normalized(self, email: str | None, expected: str | None) -> None:
        payload = TokenPayload(sub="550e8400-e29b-41d4-a716-446655440000", email=email, exp=2, iat=1)

        assert payload.email == expected
        assert payload.to_user_context().email == expected
