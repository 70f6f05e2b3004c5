"""Shipping destination countries from the REST Countries API."""

import logging
from typing import Any

import httpx

from src.core.cache import TTLCache
from src.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

COUNTRIES_CACHE_KEY = "countries:all"

FALLBACK_COUNTRIES: list[dict[str, Any]] = [
    {"name": "United States", "code": "US", "flag": "🇺🇸", "region": "Americas", "subregion": "North America"},
    {"name": "United Kingdom", "code": "GB", "flag": "🇬🇧", "region": "Europe", "subregion": "Northern Europe"},
    {"name": "Germany", "code": "DE", "flag": "🇩🇪", "region": "Europe", "subregion": "Western Europe"},
    {"name": "France", "code": "FR", "flag": "🇫🇷", "region": "Europe", "subregion": "Western Europe"},
    {"name": "Italy", "code": "IT", "flag": "🇮🇹", "region": "Europe", "subregion": "Southern Europe"},
    {"name": "Spain", "code": "ES", "flag": "🇪🇸", "region": "Europe", "subregion": "Southern Europe"},
    {"name": "Netherlands", "code": "NL", "flag": "🇳🇱", "region": "Europe", "subregion": "Western Europe"},
    {"name": "Canada", "code": "CA", "flag": "🇨🇦", "region": "Americas", "subregion": "North America"},
    {"name": "Australia", "code": "AU", "flag": "🇦🇺", "region": "Oceania", "subregion": "Australia and New Zealand"},
    {"name": "Japan", "code": "JP", "flag": "🇯🇵", "region": "Asia", "subregion": "Eastern Asia"},
    {"name": "South Korea", "code": "KR", "flag": "🇰🇷", "region": "Asia", "subregion": "Eastern Asia"},
    {"name": "Singapore", "code": "SG", "flag": "🇸🇬", "region": "Asia", "subregion": "South-Eastern Asia"},
    {"name": "Hong Kong", "code": "HK", "flag": "🇭🇰", "region": "Asia", "subregion": "Eastern Asia"},
    {"name": "United Arab Emirates", "code": "AE", "flag": "🇦🇪", "region": "Asia", "subregion": "Western Asia"},
    {"name": "Saudi Arabia", "code": "SA", "flag": "🇸🇦", "region": "Asia", "subregion": "Western Asia"},
    {"name": "Brazil", "code": "BR", "flag": "🇧🇷", "region": "Americas", "subregion": "South America"},
    {"name": "Mexico", "code": "MX", "flag": "🇲🇽", "region": "Americas", "subregion": "North America"},
    {"name": "China", "code": "CN", "flag": "🇨🇳", "region": "Asia", "subregion": "Eastern Asia"},
    {"name": "Thailand", "code": "TH", "flag": "🇹🇭", "region": "Asia", "subregion": "South-Eastern Asia"},
    {"name": "Malaysia", "code": "MY", "flag": "🇲🇾", "region": "Asia", "subregion": "South-Eastern Asia"},
    {"name": "Indonesia", "code": "ID", "flag": "🇮🇩", "region": "Asia", "subregion": "South-Eastern Asia"},
    {"name": "Vietnam", "code": "VN", "flag": "🇻🇳", "region": "Asia", "subregion": "South-Eastern Asia"},
    {"name": "Philippines", "code": "PH", "flag": "🇵🇭", "region": "Asia", "subregion": "South-Eastern Asia"},
    {"name": "South Africa", "code": "ZA", "flag": "🇿🇦", "region": "Africa", "subregion": "Southern Africa"},
    {"name": "Egypt", "code": "EG", "flag": "🇪🇬", "region": "Africa", "subregion": "Northern Africa"},
    {"name": "Nigeria", "code": "NG", "flag": "🇳🇬", "region": "Africa", "subregion": "Western Africa"},
    {"name": "Bangladesh", "code": "BD", "flag": "🇧🇩", "region": "Asia", "subregion": "Southern Asia"},
    {"name": "Pakistan", "code": "PK", "flag": "🇵🇰", "region": "Asia", "subregion": "Southern Asia"},
    {"name": "Sri Lanka", "code": "LK", "flag": "🇱🇰", "region": "Asia", "subregion": "Southern Asia"},
    {"name": "Nepal", "code": "NP", "flag": "🇳🇵", "region": "Asia", "subregion": "Southern Asia"},
]


def _parse_country(raw: dict[str, Any]) -> dict[str, Any]:
    capital = raw.get("capital") or []
    return {
        "name": (raw.get("name") or {}).get("common") or "",
        "code": raw.get("cca2") or "",
        "flag": raw.get("flag") or "",
        "region": raw.get("region") or "",
        "subregion": raw.get("subregion") or "",
        "capital": capital[0] if capital else None,
    }


class CountryService:
    """Lists shipping destinations.

    Results are kept in the injected cache. When the API cannot be reached
    a built-in list is served and nothing is cached, so the next request
    tries again.
    """

    def __init__(
        self,
        cache: TTLCache,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize country service.

        Args:
            cache: Cache owned by the application.
            settings: Optional settings (defaults to ``get_settings()``).
            transport: Optional httpx transport (used by tests).
        """
        self.cache = cache
        self.settings = settings or get_settings()
        self._transport = transport

    async def list_countries(self, region: str | None = None) -> list[dict[str, Any]]:
        """List countries sorted by name.

        Args:
            region: Optional region filter (case-insensitive).

        Returns:
            list[dict]: Countries.
        """
        countries = self.cache.get(COUNTRIES_CACHE_KEY)
        if countries is None:
            countries = await self._fetch_countries()

        if region:
            wanted = region.strip().lower()
            countries = [c for c in countries if c["region"].lower() == wanted]
        return countries

    async def _fetch_countries(self) -> list[dict[str, Any]]:
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.countries_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(self.settings.countries_api_url)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Countries API unavailable, serving fallback list: %s", str(e))
            return sorted(FALLBACK_COUNTRIES, key=lambda c: c["name"])

        countries = [_parse_country(raw) for raw in data]
        countries = sorted((c for c in countries if c["name"] and c["code"]), key=lambda c: c["name"])

        self.cache.set(COUNTRIES_CACHE_KEY, countries, ttl_seconds=self.settings.countries_cache_ttl_seconds)
        logger.info("Loaded %d countries", len(countries))
        return countries
