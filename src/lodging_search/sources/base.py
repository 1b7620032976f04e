"""Common capability shared by every property source."""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable

from lodging_search.properties.models import NormalizedProperty, ResolvedCriteria

logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]


class SourceUnavailableError(RuntimeError):
    """Raised inside a source when its upstream cannot be reached or understood."""


def silent_reporter(_message: str) -> None:
    return None


def degradation_message(label: str) -> str:
    return f"{label} search encountered issues, continuing with available results..."


class PropertySource(ABC):
    """A source answers ``search`` with valid properties and never raises.

    Subclasses implement :meth:`fetch`; any exception it raises, or running past
    ``timeout_s``, is logged and turned into an empty result plus one progress notice.
    """

    name: str = "source"
    label: str = "Source"
    timeout_s: float = 30.0

    async def search(
        self, criteria: ResolvedCriteria, report: Reporter = silent_reporter
    ) -> list[NormalizedProperty]:
        try:
            properties = await asyncio.wait_for(self.fetch(criteria, report), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.warning("%s search timed out after %.0fs", self.label, self.timeout_s)
            report(degradation_message(self.label))
            return []
        except SourceUnavailableError as exc:
            logger.warning("%s unavailable: %s", self.label, exc)
            report(degradation_message(self.label))
            return []
        except Exception:
            logger.exception("%s search failed", self.label)
            report(degradation_message(self.label))
            return []
        valid = [prop for prop in properties if prop.is_valid]
        if len(valid) != len(properties):
            logger.debug("%s dropped %s invalid records", self.label, len(properties) - len(valid))
        logger.info("%s returned %s properties", self.label, len(valid))
        return valid

    @abstractmethod
    async def fetch(self, criteria: ResolvedCriteria, report: Reporter) -> list[NormalizedProperty]:
        """Query the upstream and map its records."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
