from __future__ import annotations

from lodging_search.properties.normalizer import (
    ScrapedCard,
    dedupe_amenities,
    from_booking_api,
    from_google_hotels,
    from_scraped_card,
    google_hotels_image,
    normalise_rating,
    parse_price_text,
)


def test_from_booking_api_maps_payload_and_halves_rating() -> None:
    hotel = {
        "hotel_name": "Hotel  Lutetia",
        "review_score": 9.1,
        "review_score_word": "Superb",
        "review_nr": 2301,
        "accommodation_type_name": "Hotel",
        "address": "45 Boulevard Raspail",
        "district": "6th arr.",
        "city": "Paris",
        "distance_to_cc": "1.9",
        "is_free_cancellable": 1,
        "hotel_include_breakfast": 0,
        "has_swimming_pool": True,
        "composite_price_breakdown": {"gross_amount_per_night": {"value": 612.4, "currency": "EUR"}},
        "max_photo_url": "https://cf.bstatic.com/xdata/images/hotel/square60/1.jpg",
        "url": "https://www.booking.com/hotel/fr/lutetia.html",
    }

    prop = from_booking_api(hotel, nights=3)

    assert prop is not None
    assert prop.name == "Hotel Lutetia"
    assert prop.price == 612
    assert prop.rating == 4.55
    assert prop.location == "45 Boulevard Raspail, 6th arr., Paris"
    assert prop.description == "Hotel in 6th arr.. Rated Superb from 2301 reviews."
    assert prop.amenities == ("Hotel", "1.9 km from city center", "Free cancellation", "Swimming pool")
    assert prop.image_url == "https://cf.bstatic.com/xdata/images/hotel/max500/1.jpg"
    assert prop.booking_url == "https://www.booking.com/hotel/fr/lutetia.html"
    assert prop.source == "booking.com"


def test_from_booking_api_derives_nightly_price_from_totals() -> None:
    hotel = {"hotel_name": "Stay", "price_breakdown": {"gross_price": "900"}}
    assert from_booking_api(hotel, nights=3).price == 300

    hotel = {"hotel_name": "Stay", "min_total_price": 450.0}
    assert from_booking_api(hotel, nights=3).price == 150


def test_from_booking_api_drops_unpriced_or_unnamed_records() -> None:
    assert from_booking_api({"hotel_name": "No price"}, nights=2) is None
    assert from_booking_api({"min_total_price": 100}, nights=2) is None
    assert from_booking_api({"hotel_name": "Bad", "min_total_price": "n/a"}, nights=2) is None


def test_from_google_hotels_maps_item() -> None:
    item = {
        "name": "Shinjuku Granbell",
        "description": "Stylish hotel near the station",
        "rate_per_night": {"lowest": "$142", "extracted_lowest": 142},
        "overall_rating": 4.3,
        "amenities": ["Free Wi-Fi", "Bar", "free wi-fi"],
        "nearby_places": [{"name": "Shinjuku Station"}],
        "essential_info": ["Entire villa"],
        "images": [{"thumbnail": "https://img/thumb.jpg", "original_image": "https://img/full.jpg"}],
        "link": "https://granbell.example",
    }

    prop = from_google_hotels(item, destination="Tokyo", nights=2)

    assert prop is not None
    assert prop.price == 142
    assert prop.rating == 4.3
    assert prop.location == "Near Shinjuku Station, Tokyo"
    assert prop.description == "Stylish hotel near the station. Entire villa"
    assert prop.amenities == ("Free Wi-Fi", "Bar")
    assert prop.image_url == "https://img/full.jpg"
    assert prop.source == "google_hotels"


def test_from_google_hotels_uses_total_rate_when_nightly_missing() -> None:
    item = {"name": "Cabin", "total_rate": {"extracted_lowest": 600}, "type": "vacation rental"}

    prop = from_google_hotels(item, destination="Aspen", nights=4)

    assert prop.price == 150
    assert prop.rating is None
    assert prop.location == "Aspen"
    assert prop.description == "vacation rental in Aspen"


def test_google_hotels_image_priority() -> None:
    assert google_hotels_image({"thumbnail": "t", "images": [{"original_image": "g"}]}) == "t"
    assert google_hotels_image({"images": [{"original_image": "g", "thumbnail": "gt"}]}) == "g"
    assert google_hotels_image({"images": [{"thumbnail": "gt"}]}) == "gt"
    assert google_hotels_image({"images": [], "serpapi_thumbnail": "s", "photo": "p"}) == "s"
    assert google_hotels_image({"photo": {"link": "p"}}) == "p"
    assert google_hotels_image({"image": "i"}) == "i"
    assert google_hotels_image({"images": [{}], "thumbnail": ""}) is None


def test_from_scraped_card_parses_stay_totals_and_ten_point_ratings() -> None:
    card = ScrapedCard(
        source="booking.com",
        base_url="https://www.booking.com/",
        name="  Le Marais\nBoutique ",
        price_text="US$1,290 US$855",
        rating_text="Scored 8.6",
        rating_scale=10.0,
        amenities=["Free WiFi", "free wifi", "Breakfast"],
        image_url="data:image/gif;base64,AAAA",
        href="/hotel/fr/marais.html?aid=1",
        price_per_stay=True,
        nights=3,
    )

    prop = from_scraped_card(card)

    assert prop is not None
    assert prop.name == "Le Marais Boutique"
    assert prop.price == 285
    assert prop.rating == 4.3
    assert prop.amenities == ("Free WiFi", "Breakfast")
    assert prop.image_url is None
    assert prop.booking_url == "https://www.booking.com/hotel/fr/marais.html?aid=1"


def test_from_scraped_card_with_missing_fields_is_dropped() -> None:
    assert from_scraped_card(ScrapedCard(source="airbnb.com", base_url="https://www.airbnb.com/", name="Loft")) is None


def test_parse_price_text_variants() -> None:
    assert parse_price_text("$120 night") == 120
    assert parse_price_text("€ 95 / night · €285 total", nights=3) == 95
    assert parse_price_text("$855 for 3 nights") == 285
    assert parse_price_text("$600 total", nights=4) == 150
    assert parse_price_text("Price unavailable") == 0
    assert parse_price_text("") == 0


def test_normalise_rating_edges() -> None:
    assert normalise_rating("4.87") == 4.87
    assert normalise_rating(8.0, 10.0) == 4.0
    assert normalise_rating(0) is None
    assert normalise_rating(11, 10.0) is None
    assert normalise_rating("New") is None


def test_dedupe_amenities_keeps_first_spelling() -> None:
    assert dedupe_amenities(["WiFi", " wifi ", "Pool", "", None]) == ("WiFi", "Pool")
