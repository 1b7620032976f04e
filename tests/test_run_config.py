from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from lodging_search.config.run_config import RunConfig
from lodging_search.config.settings import Settings
from lodging_search.properties.models import Budget

SAMPLE = """
profile = "paris-weekend"
notes = "Anniversary trip"
log_dir = "logs/paris"

[criteria]
destination = "Paris"
check_in = "+14d"
check_out = "+17d"
guests = 2
budget_max = 250
currency = "eur"
amenities = "wifi, breakfast"
trip_purpose = "anniversary"
location_preferences = ["near Louvre", "  "]
property_type = ""

[sources]
use_real_search = true
scrape_airbnb = false
max_properties_per_source = 4
search_timeout_s = 90

[browser]
headless = false
viewport_width = 1280
log_level = "DEBUG"
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "run_config.toml"
    path.write_text(text)
    return path


def test_load_decodes_sections(tmp_path: Path) -> None:
    config = RunConfig.load(_write(tmp_path, SAMPLE))

    assert config.profile == "paris-weekend"
    assert config.criteria.amenities == ["wifi", "breakfast"]
    assert config.criteria.location_preferences == ["near Louvre"]
    assert config.criteria.property_type is None
    assert config.sources.scrape_airbnb is False
    assert config.sources.scrape_booking is None
    assert config.browser.viewport_width == 1280


def test_apply_to_overrides_only_configured_values(tmp_path: Path) -> None:
    config = RunConfig.load(_write(tmp_path, SAMPLE))
    settings = Settings(_env_file=None)

    config.apply_to(settings, base_dir=tmp_path)

    assert settings.use_real_search is True
    assert settings.scrape_airbnb_enabled is False
    assert settings.scrape_booking_enabled is True
    assert settings.max_properties_per_source == 4
    assert settings.search_timeout_s == 90
    assert settings.headless is False
    assert settings.viewport_width == 1280
    assert settings.viewport_height == 1080
    assert settings.log_level == "DEBUG"
    assert settings.log_dir == (tmp_path / "logs/paris").resolve()


def test_search_criteria_builds_budget_and_applies_overrides(tmp_path: Path) -> None:
    config = RunConfig.load(_write(tmp_path, SAMPLE))

    criteria = config.search_criteria(destination="Lyon", guests=None, amenities=[])

    assert criteria.destination == "Lyon"
    assert criteria.guests == 2
    assert criteria.check_in == "+14d"
    assert criteria.budget == Budget(max=250, currency="EUR")
    assert criteria.amenities == ["wifi", "breakfast"]
    assert criteria.trip_purpose == "anniversary"


def test_empty_config_requires_destination() -> None:
    config = RunConfig()

    assert config.search_criteria(destination="Tokyo").budget is None
    with pytest.raises(ValidationError):
        config.search_criteria()


def test_invalid_section_values_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        RunConfig.load(_write(tmp_path, "[sources]\nmax_properties_per_source = 0\n"))
