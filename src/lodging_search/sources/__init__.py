"""Property sources: browser scrapers, HTTP APIs and the demo catalog."""

from .base import PropertySource, Reporter, SourceUnavailableError, degradation_message
from .demo import DemoSource
from .registry import build_sources

__all__ = [
    "DemoSource",
    "PropertySource",
    "Reporter",
    "SourceUnavailableError",
    "build_sources",
    "degradation_message",
]
