"""Booking.com hotel search through the RapidAPI ``booking-com`` service."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from lodging_search.config.settings import Settings
from lodging_search.properties.models import NormalizedProperty, ResolvedCriteria
from lodging_search.properties.normalizer import from_booking_api
from lodging_search.sources.base import PropertySource, Reporter, SourceUnavailableError
from lodging_search.sources.http import Sleep, get_json

logger = logging.getLogger(__name__)

PREFERRED_DEST_TYPES = ("city", "region")


@dataclass(frozen=True)
class BookingLocation:
    dest_id: str
    dest_type: str
    label: str


def pick_location(candidates: Any) -> Optional[BookingLocation]:
    """First city/region match, else the first entry carrying a destination id."""
    if not isinstance(candidates, list):
        return None
    entries = [entry for entry in candidates if isinstance(entry, dict) and entry.get("dest_id")]
    preferred = [entry for entry in entries if entry.get("dest_type") in PREFERRED_DEST_TYPES]
    chosen = (preferred or entries or [None])[0]
    if chosen is None:
        return None
    return BookingLocation(
        dest_id=str(chosen["dest_id"]),
        dest_type=str(chosen.get("dest_type") or "city"),
        label=str(chosen.get("label") or chosen.get("name") or ""),
    )


class BookingApiSource(PropertySource):
    """Two-step search: resolve the destination id, then query hotels for it."""

    name = "booking.com"
    label = "Booking.com API"

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not settings.rapidapi_key:
            raise ValueError("BookingApiSource requires settings.rapidapi_key")
        self.settings = settings
        self.timeout_s = settings.api_timeout_s
        self.max_results = settings.max_properties_per_source
        self._transport = transport
        self._sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        headers = {
            "X-RapidAPI-Key": self.settings.rapidapi_key or "",
            "X-RapidAPI-Host": self.settings.rapidapi_host,
            "Accept": "application/json",
        }
        return httpx.AsyncClient(
            base_url=self.settings.booking_api_base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(self.settings.api_timeout_s),
            transport=self._transport,
        )

    async def _get(self, client: httpx.AsyncClient, path: str, params: Dict[str, Any]) -> Any:
        return await get_json(
            client,
            path,
            params=params,
            retries=self.settings.api_max_retries,
            backoff_s=self.settings.api_backoff_s,
            sleep=self._sleep,
        )

    async def fetch(self, criteria: ResolvedCriteria, report: Reporter) -> list[NormalizedProperty]:
        report("Fetching accommodation data from Booking.com API...")
        async with self._client() as client:
            report(f"Looking up destination: {criteria.destination}...")
            candidates = await self._get(
                client,
                "/hotels/locations",
                {"name": criteria.destination, "locale": self.settings.api_locale},
            )
            location = pick_location(candidates)
            if location is None:
                raise SourceUnavailableError(f"no destination id for {criteria.destination!r}")
            logger.info("Resolved %r to %s %s", criteria.destination, location.dest_type, location.dest_id)

            report("Searching hotels via Booking.com API...")
            payload = await self._get(client, "/hotels/search", self.search_params(location, criteria))

        results = payload.get("result") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise SourceUnavailableError("hotel search payload has no result list")
        properties: list[NormalizedProperty] = []
        for hotel in results:
            if len(properties) >= self.max_results:
                break
            if not isinstance(hotel, dict):
                continue
            prop = from_booking_api(hotel, nights=criteria.nights, source=self.name)
            if prop is not None:
                properties.append(prop)
        report(f"Found {len(properties)} properties from Booking.com API")
        return properties

    def search_params(self, location: BookingLocation, criteria: ResolvedCriteria) -> Dict[str, str]:
        return {
            "dest_id": location.dest_id,
            "dest_type": location.dest_type,
            "order_by": "popularity",
            "adults_number": str(criteria.guests),
            "room_number": "1",
            "filter_by_currency": criteria.currency,
            "locale": self.settings.api_locale,
            "units": "metric",
            "checkin_date": criteria.check_in.isoformat(),
            "checkout_date": criteria.check_out.isoformat(),
            "page_number": "0",
            "include_adjacency": "true",
        }
