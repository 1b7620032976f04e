"""Match scoring for pre-filtered candidates.

Each candidate gets one model call asking for a ``SCORE:`` / ``REASONING:`` reply. A
reply without a score becomes a neutral 50; a call that fails outright (timeout,
provider error, no provider configured) falls back to :func:`fallback_score`, a
deterministic heuristic over price, rating and amenity count. Calls are spaced by a
pacer and bounded by ``evaluation_concurrency``; the final order comes only from the
stable descending sort, so ties keep their input order.
"""
from __future__ import annotations

import asyncio
import logging
import re
from typing import Iterable, MutableMapping, Optional, Sequence

from lodging_search.config.settings import Settings
from lodging_search.properties.models import NormalizedProperty, PropertyEvaluation, ResolvedCriteria
from lodging_search.ranking.llm_client import LLMClient
from lodging_search.sources.base import Reporter, silent_reporter
from lodging_search.utils.throttling import IntervalPacer, Pacer

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50

SYSTEM_PROMPT = "You are an expert travel accommodation evaluator."

FALLBACK_REASONING = "AI evaluation failed, using fallback scoring based on price and rating"
NO_MODEL_REASONING = "Scored with price and rating heuristics (no language model configured)"
PARSE_FAILURE_REASONING = "Could not read a score from the AI evaluation response; using a neutral score"
MISSING_REASONING = "No reasoning provided"

_SCORE = re.compile(r"SCORE:\s*\[?\s*(-?\d+(?:\.\d+)?)", re.IGNORECASE)
_REASONING = re.compile(r"REASONING:\s*(.+)", re.IGNORECASE | re.DOTALL)


class EvaluationError(RuntimeError):
    """The scoring call for one candidate failed after all retries."""


def _money(value: Optional[float], placeholder: str) -> str:
    if value is None:
        return placeholder
    return f"{value:g}"


def build_prompt(prop: NormalizedProperty, criteria: ResolvedCriteria) -> str:
    preferences = []
    if criteria.trip_purpose:
        preferences.append(f"- Trip purpose: {criteria.trip_purpose}")
    if criteria.property_type:
        preferences.append(f"- Preferred property type: {criteria.property_type}")
    if criteria.amenities:
        preferences.append(f"- Wanted amenities: {', '.join(criteria.amenities)}")
    if criteria.location_preferences:
        preferences.append(f"- Location preferences: {', '.join(criteria.location_preferences)}")
    if criteria.flexible_cancellation:
        preferences.append("- Needs flexible cancellation")
    if criteria.additional_requests:
        preferences.append(f"- Other requests: {', '.join(criteria.additional_requests)}")
    preference_block = "\n".join(preferences) or "- None stated"

    rating = f"{prop.rating:g}/5" if prop.rating else "Not available"
    return f"""Analyze this property and provide a match score (0-100) and reasoning.

SEARCH CRITERIA:
- Destination: {criteria.destination}
- Budget: {_money(criteria.budget_min, 'No min')} - {_money(criteria.budget_max, 'No max')} {criteria.currency} per night
- Guests: {criteria.guests}
- Check-in: {criteria.check_in.isoformat()}
- Check-out: {criteria.check_out.isoformat()}

TRAVELER PREFERENCES:
{preference_block}

PROPERTY TO EVALUATE:
- Name: {prop.name}
- Price: {prop.price} {criteria.currency} per night
- Rating: {rating}
- Location: {prop.location or 'Not specified'}
- Description: {prop.description or 'No description available'}
- Amenities: {', '.join(prop.amenities) or 'No amenities listed'}
- Source: {prop.source}

EVALUATION CRITERIA:
1. Price-value ratio (25%): How well does the price match the value offered?
2. Location convenience (20%): How well-located is the property for the destination?
3. Guest ratings/reviews (20%): Quality indicated by ratings and reputation
4. Amenities match (15%): How well do amenities match traveler needs?
5. Property type suitability (10%): Appropriateness for the trip type
6. Overall appeal (10%): General attractiveness and uniqueness

Provide your response in this EXACT format:
SCORE: [number 0-100]
REASONING: [2-3 sentences explaining why this property is a good/poor match for the criteria, focusing on the most important factors]

Be objective and consider both strengths and weaknesses. Higher scores (80-100) for exceptional matches, 60-79 for good matches, 40-59 for average, 20-39 for poor matches, 0-19 for very poor matches."""


def parse_evaluation(prop: NormalizedProperty, text: str) -> PropertyEvaluation:
    score_match = _SCORE.search(text or "")
    score: Optional[int] = None
    if score_match:
        try:
            score = round(float(score_match.group(1)))
        except (ValueError, OverflowError):
            score = None
    if score is None:
        logger.info("No usable SCORE line in evaluation of %r", prop.name)
        return PropertyEvaluation(
            property=prop,
            match_score=NEUTRAL_SCORE,
            reasoning=PARSE_FAILURE_REASONING,
            scored_by="parse-failure",
        )
    reasoning_match = _REASONING.search(text)
    reasoning = reasoning_match.group(1).strip() if reasoning_match else ""
    return PropertyEvaluation(property=prop, match_score=score, reasoning=reasoning or MISSING_REASONING)


def fallback_score(price: float, budget_max: Optional[float], rating: Optional[float], amenity_count: int) -> int:
    score = NEUTRAL_SCORE

    if budget_max:
        ratio = price / budget_max
        if ratio <= 0.7:
            score += 20
        elif ratio <= 0.9:
            score += 10
        elif ratio <= 1.0:
            score += 5
        else:
            score -= 15

    if rating:
        if rating >= 4.5:
            score += 20
        elif rating >= 4.0:
            score += 15
        elif rating >= 3.5:
            score += 10
        elif rating >= 3.0:
            score += 5
        else:
            score -= 10

    if amenity_count > 3:
        score += 5

    return max(0, min(100, score))


def fallback_evaluation(
    prop: NormalizedProperty, criteria: ResolvedCriteria, reasoning: str = FALLBACK_REASONING
) -> PropertyEvaluation:
    return PropertyEvaluation(
        property=prop,
        match_score=fallback_score(prop.price, criteria.budget_max, prop.rating, len(prop.amenities)),
        reasoning=reasoning,
        scored_by="fallback",
    )


def rank_evaluations(evaluations: Iterable[PropertyEvaluation]) -> list[PropertyEvaluation]:
    """Highest score first; equal scores keep their incoming order."""
    return sorted(evaluations, key=lambda evaluation: evaluation.match_score, reverse=True)


class Evaluator:
    """Scores candidates against the criteria, never dropping one."""

    def __init__(
        self,
        settings: Settings,
        *,
        llm: Optional[LLMClient] = None,
        pacer: Optional[Pacer] = None,
    ) -> None:
        self.settings = settings
        if llm is None and settings.llm_configured:
            llm = LLMClient(settings)
        self.llm = llm
        self.pacer = pacer or IntervalPacer(settings.evaluation_interval_s)
        self.timeout_s = settings.evaluation_timeout_s
        self.max_retries = settings.max_evaluation_retries
        self.concurrency = settings.evaluation_concurrency

    async def evaluate(
        self,
        properties: Sequence[NormalizedProperty],
        criteria: ResolvedCriteria,
        report: Reporter = silent_reporter,
        *,
        scored: Optional[MutableMapping[int, PropertyEvaluation]] = None,
    ) -> list[PropertyEvaluation]:
        """Score every candidate and return them ranked.

        ``scored`` receives each evaluation under its input index as soon as it is
        ready, so a caller that cancels the run can still use the finished ones.
        """
        results: MutableMapping[int, PropertyEvaluation] = scored if scored is not None else {}
        total = len(properties)
        if total == 0:
            return []
        if self.llm is None:
            report("No AI model configured, scoring properties by price and rating...")
            for index, prop in enumerate(properties):
                results[index] = fallback_evaluation(prop, criteria, NO_MODEL_REASONING)
            return rank_evaluations(results[index] for index in range(total))

        report(f"Starting AI-powered evaluation of {total} properties...")
        semaphore = asyncio.Semaphore(self.concurrency)

        async def score(index: int, prop: NormalizedProperty) -> None:
            async with semaphore:
                report(f'AI evaluating property {index + 1} of {total}: "{prop.name}"...')
                results[index] = await self.evaluate_one(prop, criteria)

        await asyncio.gather(*(score(index, prop) for index, prop in enumerate(properties)))
        report("AI evaluation complete. Ranking properties by match score...")
        return rank_evaluations(results[index] for index in range(total))

    async def evaluate_one(self, prop: NormalizedProperty, criteria: ResolvedCriteria) -> PropertyEvaluation:
        if self.llm is None:
            return fallback_evaluation(prop, criteria, NO_MODEL_REASONING)
        try:
            text = await self._complete(build_prompt(prop, criteria))
            return parse_evaluation(prop, text)
        except EvaluationError as exc:
            logger.warning("Evaluation of %r failed, using fallback score: %s", prop.name, exc)
        except Exception:
            logger.exception("Unexpected error evaluating %r, using fallback score", prop.name)
        return fallback_evaluation(prop, criteria)

    async def _complete(self, prompt: str) -> str:
        assert self.llm is not None
        last_error: Optional[BaseException] = None
        for attempt in range(self.max_retries + 1):
            await self.pacer.wait_turn()
            try:
                return await asyncio.wait_for(
                    self.llm.complete(
                        SYSTEM_PROMPT,
                        prompt,
                        max_tokens=self.settings.evaluation_max_tokens,
                        temperature=self.settings.evaluation_temperature,
                    ),
                    timeout=self.timeout_s,
                )
            except asyncio.TimeoutError as exc:
                last_error = exc
                logger.warning("Evaluation call timed out after %.0fs (attempt %s)", self.timeout_s, attempt + 1)
            except Exception as exc:
                last_error = exc
                logger.warning("Evaluation call failed (attempt %s): %s", attempt + 1, exc)
        raise EvaluationError(f"no usable response after {self.max_retries + 1} attempts") from last_error
