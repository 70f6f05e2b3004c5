"""Shipping destination routes."""

from typing import Annotated

from fastapi import APIRouter, Query

from src.api.deps import Countries
from src.schemas.country import CountryListResponse, CountrySchema

router = APIRouter(prefix="/countries", tags=["countries"])


@router.get(
    "",
    response_model=CountryListResponse,
    summary="List shipping destinations",
    description="Countries available as shipping destinations, optionally filtered by region.",
)
async def list_countries(
    service: Countries,
    region: Annotated[str | None, Query(description="Region filter, e.g. 'Europe'")] = None,
) -> CountryListResponse:
    """List shipping destination countries."""
    countries = await service.list_countries(region=region)
    return CountryListResponse(items=[CountrySchema(**c) for c in countries])
