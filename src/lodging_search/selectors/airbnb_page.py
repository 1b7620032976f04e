"""Centralised selectors for the Airbnb search flow."""
from __future__ import annotations


class AirbnbSelectors:
    home_url = "https://www.airbnb.com"
    cookie_buttons = (
        "button:has-text('Accept all')",
        "button:has-text('OK')",
    )

    destination_input = "[data-testid='structured-search-input-field-query'], input[name='query'], [placeholder*='Search']"
    autocomplete_option = "[data-testid='option-0'], [data-testid='search-option'], [role='option']"

    date_field = "[data-testid='structured-search-input-field-split-dates-0']"
    calendar_day = "[data-testid='calendar-day-{us_date}']"
    calendar_next = "button[aria-label*='Move forward']"

    guests_toggle = "[data-testid='structured-search-input-field-guests-button']"
    adults_value = "[data-testid='stepper-adults-value']"
    adults_increase = "[data-testid='stepper-adults-increase-button']"
    adults_decrease = "[data-testid='stepper-adults-decrease-button']"

    submit_button = "[data-testid='structured-search-input-search-button'], button[type='submit']"

    result_cards = "[data-testid='card-container'], [itemprop='itemListElement']"
    card_title = "[data-testid='listing-card-name'], [data-testid='listing-card-title'], .t1jojoys"
    card_price = "[data-testid='price-availability-row'], [data-testid='price-availability'], ._1jo4hgw"
    card_rating = "span[aria-label*='out of 5'], [data-testid='listing-card-rating'], .r1dxllyb"
    card_description = "[data-testid='listing-card-subtitle'], .s1cjsi4j"
    card_location = "[data-testid='listing-card-title'], .t1jojoys"
    card_image = "img"
    card_link = "a"
    next_page = "a[aria-label='Next']"
