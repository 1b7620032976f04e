"""Google Hotels results through SerpAPI's ``google_hotels`` engine.

The request carries as much of the criteria as the engine understands (price band,
rating tier, property types, cancellation, rental mode) so that only plausible
candidates come back.
"""
from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import Dict, Optional

import httpx

from lodging_search.config.settings import Settings
from lodging_search.properties.models import NormalizedProperty, ResolvedCriteria
from lodging_search.properties.normalizer import from_google_hotels
from lodging_search.sources.base import PropertySource, Reporter, SourceUnavailableError
from lodging_search.sources.http import Sleep, get_json

logger = logging.getLogger(__name__)

# SerpAPI rating filter codes: 8 -> 4.0+, 9 -> 4.5+.
RATING_TIERS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("romantic", "honeymoon", "anniversary", "luxury"), 9),
    (("business", "work", "conference"), 8),
)

RENTAL_KEYWORDS = (
    "apartment",
    "vacation rental",
    "rental",
    "house",
    "home",
    "villa",
    "cabin",
    "cottage",
    "condo",
    "chalet",
    "airbnb",
    "unique stay",
)

HOTEL_PROPERTY_TYPES: dict[str, int] = {
    "beach": 12,
    "boutique": 13,
    "hostel": 14,
    "inn": 15,
    "motel": 16,
    "resort": 17,
    "spa": 18,
    "bed and breakfast": 19,
    "b&b": 19,
    "apartment hotel": 21,
    "ryokan": 24,
}

RENTAL_PROPERTY_TYPES: dict[str, int] = {
    "apartment": 1,
    "cabin": 3,
    "chalet": 4,
    "cottage": 5,
    "house": 8,
    "villa": 9,
}


def mentions(text: str, keyword: str) -> bool:
    """Whole-word (optionally plural) match, so ``spa`` does not hit ``space``."""
    return re.search(rf"(?<!\w){re.escape(keyword)}s?(?!\w)", text) is not None


def _preference_text(criteria: ResolvedCriteria) -> str:
    parts = [criteria.trip_purpose or "", criteria.property_type or ""]
    parts.extend(criteria.location_preferences)
    parts.extend(criteria.additional_requests)
    return " ".join(parts).lower()


def infer_rating_tier(criteria: ResolvedCriteria) -> Optional[int]:
    text = _preference_text(criteria)
    for keywords, tier in RATING_TIERS:
        if any(mentions(text, keyword) for keyword in keywords):
            return tier
    return None


def is_rental_mode(criteria: ResolvedCriteria) -> bool:
    kind = (criteria.property_type or "").lower()
    if mentions(kind, "hotel"):
        return False
    return any(mentions(kind, keyword) for keyword in RENTAL_KEYWORDS)


def infer_bedrooms(guests: int) -> int:
    return max(1, math.ceil(guests / 2))


def infer_property_types(criteria: ResolvedCriteria, rental: bool) -> Optional[str]:
    kind = (criteria.property_type or "").lower()
    if not kind:
        return None
    table = RENTAL_PROPERTY_TYPES if rental else HOTEL_PROPERTY_TYPES
    codes = sorted({code for keyword, code in table.items() if mentions(kind, keyword)})
    return ",".join(str(code) for code in codes) or None


def build_query_params(criteria: ResolvedCriteria, settings: Settings) -> Dict[str, str]:
    """Translate criteria into SerpAPI ``google_hotels`` parameters (without the key)."""
    rental = is_rental_mode(criteria)
    params: Dict[str, str] = {
        "engine": "google_hotels",
        "q": f"{criteria.destination} {'vacation rentals' if rental else 'hotels'}",
        "check_in_date": criteria.check_in.isoformat(),
        "check_out_date": criteria.check_out.isoformat(),
        "adults": str(criteria.guests),
        "currency": criteria.currency,
        "gl": settings.serpapi_country,
        "hl": settings.serpapi_language,
    }
    if criteria.budget_min is not None:
        params["min_price"] = str(int(criteria.budget_min))
    if criteria.budget_max is not None:
        params["max_price"] = str(int(math.ceil(criteria.budget_max)))
    tier = infer_rating_tier(criteria)
    if tier is not None:
        params["rating"] = str(tier)
    if criteria.flexible_cancellation:
        params["free_cancellation"] = "true"
    if rental:
        params["vacation_rentals"] = "true"
        params["bedrooms"] = str(infer_bedrooms(criteria.guests))
    property_types = infer_property_types(criteria, rental)
    if property_types:
        params["property_types"] = property_types
    return params


class GoogleHotelsSource(PropertySource):
    name = "google_hotels"
    label = "Google Hotels"

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not settings.serpapi_key:
            raise ValueError("GoogleHotelsSource requires settings.serpapi_key")
        self.settings = settings
        self.timeout_s = settings.api_timeout_s
        self.max_results = settings.max_properties_per_source
        self._transport = transport
        self._sleep = sleep

    async def fetch(self, criteria: ResolvedCriteria, report: Reporter) -> list[NormalizedProperty]:
        params = build_query_params(criteria, self.settings)
        logger.debug("Google Hotels query: %s", params)
        report(f"Searching {self.label} for {criteria.destination}...")
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.api_timeout_s), transport=self._transport
        ) as client:
            payload = await get_json(
                client,
                self.settings.serpapi_base_url,
                params={**params, "api_key": self.settings.serpapi_key},
                retries=self.settings.api_max_retries,
                backoff_s=self.settings.api_backoff_s,
                sleep=self._sleep,
            )
        if not isinstance(payload, dict):
            raise SourceUnavailableError("search payload is not an object")
        if payload.get("error"):
            raise SourceUnavailableError(str(payload["error"]))
        items = payload.get("properties") or []
        properties: list[NormalizedProperty] = []
        for item in items:
            if len(properties) >= self.max_results:
                break
            if not isinstance(item, dict):
                continue
            prop = from_google_hotels(
                item, destination=criteria.destination, nights=criteria.nights, source=self.name
            )
            if prop is not None:
                properties.append(prop)
        report(f"Found {len(properties)} properties from {self.label}")
        return properties
