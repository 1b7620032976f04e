"""TOML run profiles for manual searches from the command line.

A profile holds a ``[criteria]`` table describing the trip plus optional ``[sources]``
and ``[browser]`` tables whose keys override :class:`~lodging_search.config.settings.Settings`.
Keys left out of a table keep whatever the environment configured.
"""
from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from lodging_search.properties.models import Budget, SearchCriteria

if TYPE_CHECKING:  # pragma: no cover
    from lodging_search.config.settings import Settings

# Section key -> Settings attribute.
SOURCE_OVERRIDES: Mapping[str, str] = {
    "use_real_search": "use_real_search",
    "scrape_booking": "scrape_booking_enabled",
    "scrape_airbnb": "scrape_airbnb_enabled",
    "max_properties_per_source": "max_properties_per_source",
    "max_total_properties": "max_total_properties",
    "search_timeout_s": "search_timeout_s",
}
BROWSER_OVERRIDES: Mapping[str, str] = {
    "headless": "headless",
    "slow_mo_ms": "slow_mo_ms",
    "viewport_width": "viewport_width",
    "viewport_height": "viewport_height",
    "human_delay_enabled": "human_delay_enabled",
    "log_level": "log_level",
}


def _as_list(value: object) -> list[str]:
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else value
    if not isinstance(items, (list, tuple)):
        raise TypeError("expected a comma separated string or a list")
    return [str(item).strip() for item in items if str(item).strip()]


class CriteriaSection(BaseModel):
    destination: Optional[str] = None
    check_in: Optional[str] = Field(default=None, description="ISO date, 'today', '+14d' or 'M/D'")
    check_out: Optional[str] = None
    guests: Optional[int] = Field(default=None, ge=1)
    budget_min: Optional[float] = Field(default=None, ge=0)
    budget_max: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    amenities: list[str] = Field(default_factory=list)
    trip_purpose: Optional[str] = None
    location_preferences: list[str] = Field(default_factory=list)
    property_type: Optional[str] = None
    flexible_cancellation: Optional[bool] = None
    additional_requests: list[str] = Field(default_factory=list)

    @field_validator("amenities", "location_preferences", "additional_requests", mode="before")
    @classmethod
    def _split_lists(cls, value: object) -> list[str]:
        return _as_list(value)

    @field_validator("destination", "trip_purpose", "property_type", mode="before")
    @classmethod
    def _empty_is_unset(cls, value: object) -> object:
        return None if isinstance(value, str) and not value.strip() else value

    def budget(self) -> Optional[Budget]:
        if self.budget_min is None and self.budget_max is None:
            return None
        if self.currency:
            return Budget(min=self.budget_min, max=self.budget_max, currency=self.currency)
        return Budget(min=self.budget_min, max=self.budget_max)


class SourcesSection(BaseModel):
    use_real_search: Optional[bool] = None
    scrape_booking: Optional[bool] = None
    scrape_airbnb: Optional[bool] = None
    max_properties_per_source: Optional[int] = Field(default=None, gt=0)
    max_total_properties: Optional[int] = Field(default=None, gt=0)
    search_timeout_s: Optional[float] = Field(default=None, gt=0)


class BrowserSection(BaseModel):
    headless: Optional[bool] = None
    slow_mo_ms: Optional[int] = Field(default=None, ge=0)
    viewport_width: Optional[int] = Field(default=None, ge=0)
    viewport_height: Optional[int] = Field(default=None, ge=0)
    human_delay_enabled: Optional[bool] = None
    log_level: Optional[str] = None


class RunConfig(BaseModel):
    profile: str = Field(default="default", description="Label written to the logs")
    notes: Optional[str] = None
    criteria: CriteriaSection = Field(default_factory=CriteriaSection)
    sources: SourcesSection = Field(default_factory=SourcesSection)
    browser: BrowserSection = Field(default_factory=BrowserSection)
    log_dir: Optional[str] = None

    @classmethod
    def load(cls, path: Path) -> "RunConfig":
        with path.open("rb") as handle:
            return cls.model_validate(tomllib.load(handle))

    def apply_to(self, settings: "Settings", *, base_dir: Optional[Path] = None) -> None:
        """Copy every key the profile sets onto ``settings``."""
        _override(settings, self.sources, SOURCE_OVERRIDES)
        _override(settings, self.browser, BROWSER_OVERRIDES)
        if self.log_dir:
            log_dir = Path(self.log_dir).expanduser()
            if base_dir is not None and not log_dir.is_absolute():
                log_dir = (base_dir / log_dir).resolve()
            settings.log_dir = log_dir

    def search_criteria(self, **overrides: object) -> SearchCriteria:
        """Criteria from the profile; non-empty keyword overrides (CLI flags) win."""
        data = self.criteria.model_dump(exclude={"budget_min", "budget_max", "currency"})
        data["budget"] = self.criteria.budget()
        for key, value in overrides.items():
            if value is not None and value != "" and value != []:
                data[key] = value
        return SearchCriteria.model_validate(data)


def _override(settings: "Settings", section: BaseModel, targets: Mapping[str, str]) -> None:
    for key, attribute in targets.items():
        value = getattr(section, key)
        if value is not None:
            setattr(settings, attribute, value)


__all__ = ["RunConfig"]
