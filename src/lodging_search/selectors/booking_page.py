"""Centralised selectors for the Booking.com search flow.

Each entry is a comma-separated selector list; the first visible match wins. Keep
legacy class names next to the current ``data-testid`` hooks.
"""
from __future__ import annotations


class BookingSelectors:
    home_url = "https://www.booking.com"
    cookie_buttons = (
        "#onetrust-accept-btn-handler",
        "button[data-testid='cookie-banner-accept']",
        "button[data-testid='accept-cookies']",
        "button:has-text('Accept')",
    )
    dismiss_signin = "button[aria-label='Dismiss sign-in info.']"

    destination_input = "[data-testid='destination-container'] input, input#ss, input[name='ss']"
    autocomplete_option = "[data-testid='autocomplete-results'] li, [data-testid='autocomplete-result'], .c-autocomplete__item"

    date_field = "[data-testid='date-display-field-start'], [data-testid='searchbox-dates-container'], .sb-date-field"
    calendar_day = "[data-date='{iso}']"
    calendar_next = "button[aria-label='Next month']"

    occupancy_toggle = "[data-testid='occupancy-config'], .sb-group-field"
    adults_input = "input#group_adults"
    adults_value = "label[for='group_adults'] ~ div span, [data-testid='occupancy-popup'] span[aria-hidden='true']"
    adults_increase = "label[for='group_adults'] ~ div button:last-child"
    adults_decrease = "label[for='group_adults'] ~ div button:first-child"
    occupancy_done = "[data-testid='occupancy-popup'] button:has-text('Done')"

    submit_button = "[data-testid='header-search-button'], button[type='submit'], .sb-searchbox__button"

    review_filter = "[data-filters-item='review_score:review_score={score}'] input, input[name='review_score={score}']"
    load_more = "button:has-text('Load more results')"

    result_cards = "[data-testid='property-card'], .sr_property_block"
    card_title = "[data-testid='title'], .sr-hotel__name, h3"
    card_price = "[data-testid='price-and-discounted-price'], .prco-valign-middle-helper"
    card_rating = "[data-testid='review-score'] > div:first-child, .bui-review-score__badge"
    card_description = "[data-testid='recommended-units'], [data-testid='description'], .hotel_description"
    card_location = "[data-testid='address'], .sr_hotel_address"
    card_amenities = "[data-testid='property-card-unit-configuration'] li, .sr-hotel__facility, .bui-badge"
    card_image = "img[data-testid='image'], img"
    card_link = "a[data-testid='title-link'], a"
