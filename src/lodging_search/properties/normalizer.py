"""Total mapping functions from provider payloads into :class:`NormalizedProperty`.

Every helper here treats a missing or malformed field as a default value. A record only
becomes ``None`` when it cannot satisfy the minimal contract (a name and a positive
nightly price); callers drop those records.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urljoin

from .models import NormalizedProperty

_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?")
_FOR_NIGHTS = re.compile(r"(\d[\d,]*(?:\.\d+)?)\D{0,12}?for\s+(\d+)\s+nights?", re.IGNORECASE)
_PER_NIGHT = re.compile(r"(\d[\d,]*(?:\.\d+)?)[^\d]{0,12}?(?:/\s*)?night", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

GOOGLE_IMAGE_FIELDS: tuple[str, ...] = ("serpapi_thumbnail", "photo", "image", "main_photo")


@dataclass(slots=True)
class ScrapedCard:
    """Raw strings lifted from one result card of a scraped search page."""

    source: str
    base_url: str
    name: str = ""
    price_text: str = ""
    rating_text: str = ""
    rating_scale: float = 5.0
    description: str = ""
    location: str = ""
    amenities: List[str] = field(default_factory=list)
    image_url: Optional[str] = None
    href: Optional[str] = None
    price_per_stay: bool = False
    nights: int = 1


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = _NUMBER.search(value)
        if not match:
            return None
        value = match.group(0).replace(",", "")
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def dedupe_amenities(values: Iterable[Any]) -> tuple[str, ...]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = clean_text(value)
        key = text.lower()
        if not text or key in seen:
            continue
        seen.add(key)
        result.append(text)
    return tuple(result)


def normalise_rating(value: Any, scale: float = 5.0) -> Optional[float]:
    """Map a rating on ``scale`` onto 0-5; zero, negative or out-of-range values become ``None``."""
    rating = _to_float(value)
    if rating is None or rating <= 0 or scale <= 0 or rating > scale:
        return None
    return round(rating * 5.0 / scale, 2)


def nightly_price(amount: Any, *, nights: int = 1, per_stay: bool = False) -> int:
    value = _to_float(amount)
    if value is None or value <= 0:
        return 0
    if per_stay and nights > 1:
        value = value / nights
    return int(round(value))


def parse_price_text(text: str, *, nights: int = 1, per_stay: bool = False) -> int:
    """Extract a nightly price from card text such as ``US$1,234`` or ``$120 night``.

    An explicit per-night figure wins. Otherwise the last amount is used (discounted
    prices follow the struck-through original), divided by ``nights`` when the text says
    ``total`` or the site quotes whole stays.
    """
    text = clean_text(text)
    if not text:
        return 0
    stay = _FOR_NIGHTS.search(text)
    if stay:
        return nightly_price(stay.group(1), nights=int(stay.group(2)), per_stay=True)
    per_night = _PER_NIGHT.search(text)
    if per_night:
        return nightly_price(per_night.group(1))
    amounts = _NUMBER.findall(text)
    if not amounts:
        return 0
    per_stay = per_stay or "total" in text.lower()
    return nightly_price(amounts[-1], nights=nights, per_stay=per_stay)


def build_property(
    *,
    name: Any,
    price: int,
    source: str,
    rating: Optional[float] = None,
    description: Any = "",
    amenities: Iterable[Any] = (),
    location: Any = "",
    image_url: Any = None,
    booking_url: Any = None,
) -> Optional[NormalizedProperty]:
    prop = NormalizedProperty(
        name=clean_text(name),
        price=price if price > 0 else 0,
        source=source,
        rating=rating,
        description=clean_text(description),
        amenities=dedupe_amenities(amenities),
        location=clean_text(location),
        image_url=clean_text(image_url) or None,
        booking_url=clean_text(booking_url) or None,
    )
    return prop if prop.is_valid else None


def from_scraped_card(card: ScrapedCard) -> Optional[NormalizedProperty]:
    href = clean_text(card.href)
    image = clean_text(card.image_url)
    if image.startswith("data:"):
        image = ""
    return build_property(
        name=card.name,
        price=parse_price_text(card.price_text, nights=card.nights, per_stay=card.price_per_stay),
        source=card.source,
        rating=normalise_rating(_to_float(card.rating_text), card.rating_scale),
        description=card.description,
        amenities=card.amenities,
        location=card.location,
        image_url=image or None,
        booking_url=urljoin(card.base_url, href) if href else None,
    )


def _booking_api_price(hotel: Dict[str, Any], nights: int) -> int:
    composite: Dict[str, Any] = hotel.get("composite_price_breakdown") or {}
    per_night: Dict[str, Any] = composite.get("gross_amount_per_night") or {}
    price = nightly_price(per_night.get("value"))
    if price:
        return price
    breakdown: Dict[str, Any] = hotel.get("price_breakdown") or {}
    price = nightly_price(breakdown.get("gross_price"), nights=nights, per_stay=True)
    if price:
        return price
    return nightly_price(hotel.get("min_total_price"), nights=nights, per_stay=True)


def _booking_api_amenities(hotel: Dict[str, Any]) -> list[str]:
    amenities: list[str] = []
    if hotel.get("accommodation_type_name"):
        amenities.append(hotel["accommodation_type_name"])
    distance = clean_text(hotel.get("distance_to_cc"))
    if distance:
        amenities.append(f"{distance} km from city center")
    flags = (
        ("is_free_cancellable", "Free cancellation"),
        ("is_no_prepayment_block", "No prepayment needed"),
        ("hotel_include_breakfast", "Breakfast included"),
        ("has_swimming_pool", "Swimming pool"),
        ("is_beach_front", "Beachfront"),
    )
    for key, label in flags:
        value = hotel.get(key)
        if value is True or _to_float(value):
            amenities.append(label)
    return amenities


def from_booking_api(hotel: Dict[str, Any], *, nights: int, source: str = "booking.com") -> Optional[NormalizedProperty]:
    """Map one entry of the RapidAPI ``/hotels/search`` ``result`` list."""
    address = clean_text(hotel.get("address"))
    district = clean_text(hotel.get("district"))
    city = clean_text(hotel.get("city") or hotel.get("city_name_en"))
    location = ", ".join(dict.fromkeys(part for part in (address, district, city) if part))
    kind = clean_text(hotel.get("accommodation_type_name")) or "Accommodation"
    description = f"{kind} in {district or city or address or 'the destination'}."
    score_word = clean_text(hotel.get("review_score_word"))
    review_count = int(_to_float(hotel.get("review_nr")) or 0)
    if score_word:
        description += f" Rated {score_word} from {review_count} reviews."
    photo = clean_text(hotel.get("max_photo_url") or hotel.get("main_photo_url"))
    if photo:
        photo = photo.replace("square60", "max500")
    return build_property(
        name=hotel.get("hotel_name") or hotel.get("hotel_name_trans"),
        price=_booking_api_price(hotel, nights),
        source=source,
        rating=normalise_rating(hotel.get("review_score"), 10.0),
        description=description,
        amenities=_booking_api_amenities(hotel),
        location=location,
        image_url=photo or None,
        booking_url=hotel.get("url"),
    )


def google_hotels_image(item: Dict[str, Any]) -> Optional[str]:
    """Pick the first usable image: thumbnail, gallery, then alternate photo fields."""
    thumbnail = clean_text(item.get("thumbnail"))
    if thumbnail:
        return thumbnail
    for image in item.get("images") or []:
        if isinstance(image, dict):
            candidate = clean_text(image.get("original_image") or image.get("thumbnail"))
        else:
            candidate = clean_text(image)
        if candidate:
            return candidate
    for key in GOOGLE_IMAGE_FIELDS:
        candidate = item.get(key)
        if isinstance(candidate, dict):
            candidate = candidate.get("link") or candidate.get("url")
        candidate = clean_text(candidate)
        if candidate:
            return candidate
    return None


def _google_hotels_price(item: Dict[str, Any], nights: int) -> int:
    rate: Dict[str, Any] = item.get("rate_per_night") or {}
    price = nightly_price(rate.get("extracted_lowest")) or nightly_price(rate.get("lowest"))
    if price:
        return price
    total: Dict[str, Any] = item.get("total_rate") or {}
    return nightly_price(
        total.get("extracted_lowest") or total.get("lowest"), nights=nights, per_stay=True
    )


def from_google_hotels(
    item: Dict[str, Any], *, destination: str, nights: int, source: str = "google_hotels"
) -> Optional[NormalizedProperty]:
    """Map one entry of a SerpAPI ``google_hotels`` ``properties`` list."""
    nearby = [
        clean_text(place.get("name"))
        for place in item.get("nearby_places") or []
        if isinstance(place, dict) and place.get("name")
    ]
    location = f"Near {nearby[0]}, {destination}" if nearby else destination
    description = clean_text(item.get("description"))
    if not description:
        kind = clean_text(item.get("hotel_class")) or clean_text(item.get("type")) or "Accommodation"
        description = f"{kind} in {destination}"
    essentials = [clean_text(entry) for entry in item.get("essential_info") or [] if clean_text(entry)]
    if essentials:
        description = f"{description}. {', '.join(essentials)}"
    amenities = [entry for entry in item.get("amenities") or [] if isinstance(entry, str)]
    return build_property(
        name=item.get("name"),
        price=_google_hotels_price(item, nights),
        source=source,
        rating=normalise_rating(item.get("overall_rating")),
        description=description,
        amenities=amenities,
        location=location,
        image_url=google_hotels_image(item),
        booking_url=item.get("link"),
    )
