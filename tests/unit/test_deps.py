"""Unit tests for FastAPI dependency injection functions."""

import time
from unittest.mock import MagicMock, patch

import pytest
from fastapi import HTTPException

from src.api.deps import get_countries_cache, get_country_service, get_current_user
from src.api.middleware.auth import AuthError, AuthErrorCode
from src.core.cache import TTLCache
from src.schemas.auth import TokenPayload, UserContext
from src.services.country_service import CountryService


def token_payload(email: str | None = "buyer@example.com") -> TokenPayload:
    now = int(time.time())
    return TokenPayload(
        sub="550e8400-e29b-41d4-a716-446655440000",
        email=email,
        role="authenticated",
        exp=now + 3600,
        iat=now,
    )


class TestGetCurrentUser:
    """Tests for get_current_user dependency."""

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_extracts_user_context(self, mock_decode: MagicMock) -> None:
        mock_decode.return_value = token_payload()

        user = await get_current_user("Bearer valid-token")

        mock_decode.assert_called_once_with("valid-token")
        assert isinstance(user, UserContext)
        assert user.email == "buyer@example.com"

    @pytest.mark.asyncio
    async def test_missing_header(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Authorization header required"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Token abc", "Bearer", "Bearer a b"])
    async def test_bad_header_format(self, header: str) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(header)

        assert exc_info.value.status_code == 401
        assert "Bearer <token>" in exc_info.value.detail

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_expired_token(self, mock_decode: MagicMock) -> None:
        mock_decode.side_effect = AuthError("Token has expired", AuthErrorCode.TOKEN_EXPIRED)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("Bearer expired")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_invalid_token(self, mock_decode: MagicMock) -> None:
        mock_decode.side_effect = AuthError("Invalid token signature", AuthErrorCode.INVALID_SIGNATURE)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("Bearer forged")

        assert exc_info.value.detail == "Invalid token signature"

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_token_without_email_rejected(self, mock_decode: MagicMock) -> None:
        """Test orders cannot be owned without an email claim."""
        mock_decode.return_value = token_payload(email=None)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user("Bearer no-email")

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has no email claim"


class TestCountryDependencies:
    def test_country_service_uses_app_cache(self) -> None:
        cache = TTLCache()
        request = MagicMock()
        request.app.state.countries_cache = cache

        service = get_country_service(get_countries_cache(request))

        assert isinstance(service, CountryService)
        assert service.cache is cache
