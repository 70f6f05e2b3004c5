"""Shipping destination country schemas."""

from pydantic import BaseModel, ConfigDict, Field


class CountrySchema(BaseModel):
    """A shipping destination."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(description="Common country name")
    code: str = Field(description="ISO 3166-1 alpha-2 code")
    flag: str = Field(default="", description="Flag emoji")
    region: str = Field(default="", description="Region")
    subregion: str = Field(default="", description="Subregion")
    capital: str | None = Field(default=None, description="Capital city")


class CountryListResponse(BaseModel):
    """Schema for country list responses."""

    model_config = ConfigDict(from_attributes=True)

    items: list[CountrySchema] = Field(description="Countries sorted by name")
