"""Static catalog answering searches when live sources are disabled."""
from __future__ import annotations

import logging
from typing import Mapping, Optional

from lodging_search.properties.models import NormalizedProperty, ResolvedCriteria
from lodging_search.sources.base import PropertySource, Reporter
from lodging_search.utils.throttling import NoPacing, Pacer

logger = logging.getLogger(__name__)

DEFAULT_KEY = "default"


def _listing(name: str, price: int, rating: float, description: str, amenities: tuple[str, ...], location: str) -> NormalizedProperty:
    return NormalizedProperty(
        name=name,
        price=price,
        source="demo",
        rating=rating,
        description=description,
        amenities=amenities,
        location=location,
    )


DEMO_CATALOG: Mapping[str, tuple[NormalizedProperty, ...]] = {
    "paris": (
        _listing(
            "Hotel de Crillon",
            450,
            4.8,
            "Luxury hotel in the heart of Paris with stunning views of Place de la Concorde",
            ("wifi", "spa", "concierge", "restaurant"),
            "Place de la Concorde, Paris",
        ),
        _listing(
            "Le Marais Boutique Stay",
            180,
            4.5,
            "Charming boutique hotel in historic Le Marais district",
            ("wifi", "breakfast", "air conditioning"),
            "Le Marais, Paris",
        ),
        _listing(
            "Modern Apartment near Louvre",
            120,
            4.3,
            "Spacious 2-bedroom apartment with kitchen, 5 minutes from Louvre",
            ("wifi", "kitchen", "family-friendly"),
            "1st Arrondissement, Paris",
        ),
    ),
    "new york": (
        _listing(
            "The Plaza Hotel",
            580,
            4.7,
            "Iconic luxury hotel overlooking Central Park",
            ("spa", "restaurant", "concierge", "gym"),
            "Fifth Avenue, New York",
        ),
        _listing(
            "Brooklyn Heights Loft",
            220,
            4.4,
            "Stylish loft with Manhattan skyline views",
            ("wifi", "kitchen", "balcony"),
            "Brooklyn Heights, New York",
        ),
    ),
    "tokyo": (
        _listing(
            "Park Hyatt Tokyo",
            650,
            4.9,
            "Ultra-modern luxury hotel with city views and world-class service",
            ("spa", "pool", "restaurant", "concierge"),
            "Shinjuku, Tokyo",
        ),
        _listing(
            "Traditional Ryokan Experience",
            280,
            4.6,
            "Authentic Japanese inn with tatami rooms and onsen",
            ("traditional bath", "restaurant", "garden"),
            "Asakusa, Tokyo",
        ),
    ),
    DEFAULT_KEY: (
        _listing(
            "Grand Central Hotel",
            150,
            4.2,
            "Comfortable hotel with modern amenities in city center",
            ("wifi", "restaurant", "parking"),
            "City Center",
        ),
        _listing(
            "Cozy Downtown Apartment",
            95,
            4.1,
            "Well-equipped apartment perfect for travelers",
            ("wifi", "kitchen", "parking"),
            "Downtown",
        ),
    ),
}


def listings_for(destination: str, catalog: Mapping[str, tuple[NormalizedProperty, ...]] = DEMO_CATALOG) -> list[NormalizedProperty]:
    """Catalog entries whose key and ``destination`` contain one another, else the default set."""
    key = destination.strip().lower()
    if key:
        for location, listings in catalog.items():
            if location == DEFAULT_KEY:
                continue
            if location in key or key in location:
                return list(listings)
    return list(catalog.get(DEFAULT_KEY, ()))


class DemoSource(PropertySource):
    """Answers from :data:`DEMO_CATALOG`, pausing briefly so progress reads like a live run."""

    name = "demo"
    label = "Demo catalog"
    timeout_s = 30.0

    def __init__(
        self,
        *,
        catalog: Optional[Mapping[str, tuple[NormalizedProperty, ...]]] = None,
        pacer: Optional[Pacer] = None,
    ) -> None:
        self._catalog = catalog if catalog is not None else DEMO_CATALOG
        self._pacer = pacer or NoPacing()

    async def fetch(self, criteria: ResolvedCriteria, report: Reporter) -> list[NormalizedProperty]:
        report("Starting accommodation search (demo mode)...")
        for site in ("Booking.com", "Airbnb", "Hotels.com"):
            await self._pacer.pause(0.5, 1.0)
            report(f"Searching {site}...")
        listings = listings_for(criteria.destination, self._catalog)
        logger.info("Demo catalog matched %s listings for %r", len(listings), criteria.destination)
        return listings
