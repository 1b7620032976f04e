"""Search orchestration: fan out to sources, filter, score, rank and report."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional, Sequence

from lodging_search.config.settings import Settings
from lodging_search.properties.criteria import resolve_criteria
from lodging_search.properties.models import (
    AccommodationResult,
    NormalizedProperty,
    PropertyEvaluation,
    ResolvedCriteria,
    SearchCriteria,
)
from lodging_search.pipeline.events import ProgressEvent, ProgressSink
from lodging_search.ranking.evaluator import Evaluator, fallback_evaluation, rank_evaluations
from lodging_search.ranking.prefilter import prefilter
from lodging_search.sources.base import PropertySource, degradation_message

logger = logging.getLogger(__name__)

# Extra time granted on top of a source's own timeout before the orchestrator gives up on it.
SOURCE_GRACE_S = 5.0

NO_RESULTS_MESSAGE = (
    "No properties found matching your criteria. Consider adjusting your dates, budget or destination."
)
FAILURE_MESSAGE = "Search failed. Please try again."


class EventStream:
    """Wraps a sink: one ``results`` at most, one ``complete``, nothing after it.

    A sink that raises is logged and otherwise ignored.
    """

    def __init__(self, sink: ProgressSink) -> None:
        self._sink = sink
        self.results_sent = False
        self.completed = False

    def _send(self, event: ProgressEvent) -> None:
        if self.completed:
            logger.debug("Dropping %s event after completion", event.type)
            return
        try:
            self._sink(event)
        except Exception:
            logger.exception("Progress sink rejected %s event", event.type)

    def progress(self, message: str) -> None:
        self._send(ProgressEvent.progress(message))

    def error(self, message: str) -> None:
        self._send(ProgressEvent.error(message))

    def results(self, accommodations: Sequence[AccommodationResult], criteria: ResolvedCriteria) -> None:
        if self.results_sent:
            logger.warning("Ignoring a second results event")
            return
        self.results_sent = True
        self._send(ProgressEvent.results(accommodations, criteria.to_dict()))

    def complete(self) -> None:
        if self.completed:
            return
        self._send(ProgressEvent.complete())
        self.completed = True


@dataclass
class RunState:
    """What one run has gathered so far; read back when the time budget runs out."""

    criteria: Optional[ResolvedCriteria] = None
    source_results: dict[int, list[NormalizedProperty]] = field(default_factory=dict)
    candidates: Optional[list[NormalizedProperty]] = None
    scored: dict[int, PropertyEvaluation] = field(default_factory=dict)
    results: list[AccommodationResult] = field(default_factory=list)

    def merged(self, source_count: int) -> list[NormalizedProperty]:
        merged: list[NormalizedProperty] = []
        for index in range(source_count):
            merged.extend(self.source_results.get(index, ()))
        return merged


class SearchOrchestrator:
    """Runs one search end to end and reports it through a progress sink.

    ``run`` never raises for source, scoring or sink failures; whatever happens the
    sink sees exactly one ``complete``.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        sources: Optional[Sequence[PropertySource]] = None,
        evaluator: Optional[Evaluator] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.settings = settings
        if sources is None:
            from lodging_search.sources.registry import build_sources

            sources = build_sources(settings)
        self.sources = list(sources)
        self.evaluator = evaluator or Evaluator(settings)
        self._today = today

    async def run(self, criteria: SearchCriteria, emit: ProgressSink) -> list[AccommodationResult]:
        stream = EventStream(emit)
        state = RunState()
        try:
            state.criteria = resolve_criteria(criteria, self.settings, today=self._today)
            logger.info(
                "Searching %s from %s to %s for %s guests",
                state.criteria.destination,
                state.criteria.check_in,
                state.criteria.check_out,
                state.criteria.guests,
            )
            try:
                await asyncio.wait_for(self._pipeline(state, stream), timeout=self.settings.search_timeout_s)
            except asyncio.TimeoutError:
                logger.warning("Search exceeded %.0fs; returning partial results", self.settings.search_timeout_s)
                stream.progress("Search time limit reached, returning the results gathered so far...")
                self._publish_partial(state, stream)
        except Exception:
            logger.exception("Search for %r failed", criteria.destination)
            stream.error(FAILURE_MESSAGE)
            state.results = []
        finally:
            stream.complete()
        return state.results

    async def _pipeline(self, state: RunState, stream: EventStream) -> None:
        criteria = state.criteria
        assert criteria is not None
        stream.progress(f"Starting accommodation search for {criteria.destination}...")
        raw = await self._gather(criteria, stream, state)
        if not raw:
            self._publish_empty(criteria, stream)
            return

        stream.progress(f"Found {len(raw)} properties, applying filters...")
        candidates = prefilter(raw, criteria)
        if len(candidates) > self.settings.max_total_properties:
            logger.info("Capping %s candidates at %s", len(candidates), self.settings.max_total_properties)
            candidates = candidates[: self.settings.max_total_properties]
        state.candidates = candidates
        if not candidates:
            self._publish_empty(criteria, stream)
            return
        stream.progress(f"Filtered to {len(candidates)} properties for evaluation...")

        evaluations = await self.evaluator.evaluate(candidates, criteria, stream.progress, scored=state.scored)
        self._publish(evaluations, state, stream)

    async def _gather(self, criteria: ResolvedCriteria, stream: EventStream, state: RunState) -> list[NormalizedProperty]:
        labels = ", ".join(source.label for source in self.sources)
        stream.progress(f"Searching {labels}...")

        async def collect(index: int, source: PropertySource) -> None:
            try:
                found = await asyncio.wait_for(
                    source.search(criteria, stream.progress), timeout=source.timeout_s + SOURCE_GRACE_S
                )
            except asyncio.TimeoutError:
                logger.warning("%s did not return within %.0fs", source.label, source.timeout_s + SOURCE_GRACE_S)
                stream.progress(degradation_message(source.label))
                found = []
            except Exception:
                logger.exception("%s raised past its boundary", source.label)
                stream.progress(degradation_message(source.label))
                found = []
            state.source_results[index] = list(found)

        await asyncio.gather(*(collect(index, source) for index, source in enumerate(self.sources)))
        return state.merged(len(self.sources))

    def _publish(self, evaluations: Sequence[PropertyEvaluation], state: RunState, stream: EventStream) -> None:
        assert state.criteria is not None
        state.results = [
            AccommodationResult.from_evaluation(evaluation, rank)
            for rank, evaluation in enumerate(evaluations, start=1)
        ]
        stream.progress(f"Search complete! Found {len(state.results)} accommodations matching your criteria.")
        stream.results(state.results, state.criteria)

    def _publish_empty(self, criteria: ResolvedCriteria, stream: EventStream) -> None:
        stream.progress(NO_RESULTS_MESSAGE)
        stream.results([], criteria)

    def _publish_partial(self, state: RunState, stream: EventStream) -> None:
        criteria = state.criteria
        assert criteria is not None
        if stream.results_sent:
            return
        candidates = state.candidates
        if candidates is None:
            candidates = prefilter(state.merged(len(self.sources)), criteria)[: self.settings.max_total_properties]
        if not candidates:
            self._publish_empty(criteria, stream)
            return
        evaluations = [
            state.scored.get(index) or fallback_evaluation(prop, criteria)
            for index, prop in enumerate(candidates)
        ]
        self._publish(rank_evaluations(evaluations), state, stream)
