"""Hard-constraint filter applied before any candidate is scored."""
from __future__ import annotations

import logging
from typing import Iterable

from lodging_search.properties.models import NormalizedProperty, ResolvedCriteria

logger = logging.getLogger(__name__)

MIN_RATING = 3.0


def rejection_reason(prop: NormalizedProperty, criteria: ResolvedCriteria) -> str | None:
    if not prop.name.strip():
        return "missing name"
    if prop.price <= 0:
        return "non-positive price"
    if criteria.budget_max is not None and prop.price > criteria.budget_max:
        return "over budget"
    if criteria.budget_min is not None and prop.price < criteria.budget_min:
        return "under budget"
    if prop.rating is not None and prop.rating < MIN_RATING:
        return "rating below floor"
    return None


def prefilter(properties: Iterable[NormalizedProperty], criteria: ResolvedCriteria) -> list[NormalizedProperty]:
    """Keep candidates that satisfy the budget band, rating floor and required fields, in order."""
    kept: list[NormalizedProperty] = []
    for prop in properties:
        reason = rejection_reason(prop, criteria)
        if reason:
            logger.debug("Dropping %r from %s: %s", prop.name, prop.source, reason)
            continue
        kept.append(prop)
    return kept
