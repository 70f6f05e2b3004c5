"""JWT authentication middleware and utilities."""

import json
import logging
from enum import Enum
from functools import lru_cache
from typing import Any

import jwt
from jwt import PyJWK

from src.core.config import get_settings
from src.schemas.auth import TokenPayload

logger = logging.getLogger(__name__)


class AuthErrorCode(str, Enum):
    """Authentication error codes."""

    UNAUTHORIZED = "UNAUTHORIZED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_AUDIENCE = "INVALID_AUDIENCE"


class AuthError(Exception):
    """Authentication error with specific error code.

    Raised when JWT validation fails for any reason.
    The error code indicates the specific failure reason.
    """

    def __init__(self, message: str, code: AuthErrorCode) -> None:
        """Initialize authentication error.

        Args:
            message: Human-readable error description.
            code: Specific error code for programmatic handling.
        """
        self.message = message
        self.code = code
        super().__init__(message)


@lru_cache
def get_signing_key() -> Any:
    """Load the Supabase public key from the configured JWK.

    Returns:
        Public key for JWT verification.

    Raises:
        AuthError: If the JWK is missing or malformed.
    """
    jwk_json = get_settings().supabase_signing_key_jwk
    if not jwk_json:
        raise AuthError("Signing key not configured", AuthErrorCode.INVALID_TOKEN)

    try:
        return PyJWK.from_dict(json.loads(jwk_json)).key
    except (json.JSONDecodeError, jwt.PyJWKError) as e:
        logger.error("Supabase signing key could not be loaded: %s", str(e))
        raise AuthError(f"Invalid signing key JWK: {e}", AuthErrorCode.INVALID_TOKEN) from e


def decode_jwt(token: str) -> TokenPayload:
    """Decode and validate a Supabase access token.

    Checks the ES256 signature, expiry, issue time and audience.

    Args:
        token: The JWT token string to decode.

    Returns:
        TokenPayload: Validated token payload.

    Raises:
        AuthError: If token is invalid, expired, or has wrong signature.
    """
    settings = get_settings()
    public_key = get_signing_key()

    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            public_key,
            algorithms=["ES256"],
            audience=settings.supabase_jwt_audience,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token has expired", AuthErrorCode.TOKEN_EXPIRED) from e
    except jwt.InvalidSignatureError as e:
        raise AuthError("Invalid token signature", AuthErrorCode.INVALID_SIGNATURE) from e
    except jwt.InvalidAudienceError as e:
        raise AuthError("Token audience not accepted", AuthErrorCode.INVALID_AUDIENCE) from e
    except jwt.MissingRequiredClaimError as e:
        raise AuthError(f"Token missing required claim: {e}", AuthErrorCode.INVALID_TOKEN) from e
    except jwt.InvalidTokenError as e:
        raise AuthError(f"Invalid token: {e}", AuthErrorCode.INVALID_TOKEN) from e

    aud = payload.get("aud")
    return TokenPayload(
        sub=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role"),
        exp=payload["exp"],
        iat=payload["iat"],
        aud=aud if isinstance(aud, str) else None,
        iss=payload.get("iss"),
    )
