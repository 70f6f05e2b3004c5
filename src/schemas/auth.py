"""Identity schemas for Supabase access tokens.

Orders and payments are keyed by email, so the email claim is normalized
once here and every service sees the same lowercase form.
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def normalize_email(value: str | None) -> str | None:
    """Trim and lowercase an email, mapping blanks to None."""
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


class UserContext(BaseModel):
    """The buyer behind the current request."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Supabase user id (JWT sub claim)")
    email: str | None = Field(default=None, description="Lowercased email that owns orders and payments")
    role: str | None = Field(default=None, description="Supabase role claim")


class TokenPayload(BaseModel):
    """Claims read from a verified Supabase access token."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Supabase user id")
    email: str | None = Field(default=None, description="Email claim, lowercased")
    role: str | None = Field(default=None, description="Supabase role claim")
    exp: int = Field(description="Expiry (Unix epoch)")
    iat: int = Field(description="Issue time (Unix epoch)")
    aud: str | None = Field(default=None, description="Audience")
    iss: str | None = Field(default=None, description="Issuer")

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str | None) -> str | None:
        return normalize_email(v)

    def to_user_context(self) -> UserContext:
        return UserContext(user_id=UUID(self.sub), email=self.email, role=self.role)


class AuthenticatedResponse(BaseModel):
    """Body of the authenticated health check."""

    model_config = ConfigDict(from_attributes=True)

    authenticated: bool = Field(default=True, description="Authentication status")
    user_id: str = Field(description="Authenticated user ID")
    email: str | None = Field(default=None, description="Email that owns the user's orders")
    role: str | None = Field(default=None, description="User role if available")
