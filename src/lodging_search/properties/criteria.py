"""Resolve loosely specified criteria into concrete search parameters."""
from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from typing import Callable, Optional, TYPE_CHECKING

from .models import Budget, ResolvedCriteria, SearchCriteria

if TYPE_CHECKING:  # pragma: no cover
    from lodging_search.config.settings import Settings

logger = logging.getLogger(__name__)

_RELATIVE_DATE = re.compile(r"^(?P<count>\d+)\s*(?P<unit>[dDwWmM])$")
_SLASH_DATE = re.compile(r"^(?P<month>\d{1,2})/(?P<day>\d{1,2})(?:/(?P<year>\d{2,4}))?$")


def parse_date_text(value: str, *, today: Optional[date] = None) -> date:
    """Parse ISO dates, ``today``, ``+14d``/``+2w``/``+1m`` offsets and ``M/D[/YYYY]``.

    Raises ``ValueError`` for anything else.
    """
    today = today or date.today()
    text = value.strip()
    lowered = text.lower()
    if lowered == "today":
        return today
    if lowered == "tomorrow":
        return today + timedelta(days=1)
    if lowered.startswith("today+"):
        lowered = f"+{lowered.split('+', 1)[1]}"
    if lowered.startswith("+"):
        match = _RELATIVE_DATE.match(lowered[1:])
        if not match:
            raise ValueError(f"Unsupported relative date '{value}'. Use forms like '+14d', '+2w', '+1m'.")
        count = int(match.group("count"))
        unit = match.group("unit").lower()
        # Months are 30-day blocks.
        days = {"d": 1, "w": 7, "m": 30}[unit] * count
        try:
            return today + timedelta(days=days)
        except OverflowError as exc:
            raise ValueError(f"Relative date '{value}' is out of range.") from exc
    slash = _SLASH_DATE.match(text)
    if slash:
        year_text = slash.group("year")
        year = int(year_text) if year_text else today.year
        if year < 100:
            year += 2000
        return date(year, int(slash.group("month")), int(slash.group("day")))
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid date '{value}'. Provide YYYY-MM-DD, M/D or a relative offset.") from exc


def _try_parse(value: Optional[str], today: date, label: str) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_date_text(value, today=today)
    except ValueError:
        logger.warning("Ignoring unparseable %s date %r", label, value)
        return None


def resolve_dates(
    check_in: Optional[str],
    check_out: Optional[str],
    *,
    today: date,
    offset_days: int = 7,
    nights: int = 3,
) -> tuple[date, date]:
    """Return a (check_in, check_out) pair with check_out strictly after check_in."""
    start = _try_parse(check_in, today, "check-in")
    end = _try_parse(check_out, today, "check-out")
    try:
        if start is None and end is not None:
            start = max(end - timedelta(days=nights), today)
        if start is None:
            start = today + timedelta(days=offset_days)
        if end is None or end <= start:
            end = start + timedelta(days=nights)
    except OverflowError:
        logger.warning("Dates %r to %r leave the calendar range; using the default window", check_in, check_out)
        start = today + timedelta(days=offset_days)
        end = start + timedelta(days=nights)
    return start, end


def resolve_criteria(
    criteria: SearchCriteria,
    settings: "Settings",
    *,
    today: Callable[[], date] = date.today,
) -> ResolvedCriteria:
    """Fill in dates, guests and currency from configuration defaults."""
    check_in, check_out = resolve_dates(
        criteria.check_in,
        criteria.check_out,
        today=today(),
        offset_days=settings.default_check_in_offset_days,
        nights=settings.default_nights,
    )
    budget: Optional[Budget] = criteria.budget
    if budget is not None and "currency" in budget.model_fields_set:
        currency = budget.currency
    else:
        currency = settings.default_currency
    if budget is not None and budget.min is None and budget.max is None:
        budget = None
    elif budget is not None:
        budget = budget.model_copy(update={"currency": currency})
    return ResolvedCriteria(
        destination=criteria.destination,
        check_in=check_in,
        check_out=check_out,
        guests=criteria.guests or settings.default_guests,
        budget=budget,
        currency=currency,
        amenities=tuple(criteria.amenities),
        trip_purpose=criteria.trip_purpose,
        location_preferences=tuple(criteria.location_preferences),
        property_type=criteria.property_type,
        flexible_cancellation=criteria.flexible_cancellation,
        additional_requests=tuple(criteria.additional_requests),
    )
