"""Lodging domain models, criteria resolution and provider normalisation."""

from .criteria import parse_date_text, resolve_criteria, resolve_dates
from .models import (
    AccommodationResult,
    Budget,
    NormalizedProperty,
    PropertyEvaluation,
    ResolvedCriteria,
    SearchCriteria,
)
from .normalizer import (
    ScrapedCard,
    build_property,
    from_booking_api,
    from_google_hotels,
    from_scraped_card,
)

__all__ = [
    "AccommodationResult",
    "Budget",
    "NormalizedProperty",
    "PropertyEvaluation",
    "ResolvedCriteria",
    "ScrapedCard",
    "SearchCriteria",
    "build_property",
    "from_booking_api",
    "from_google_hotels",
    "from_scraped_card",
    "parse_date_text",
    "resolve_criteria",
    "resolve_dates",
]
