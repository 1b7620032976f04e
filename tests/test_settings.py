from __future__ import annotations

import pytest

from lodging_search.config.settings import DEFAULT_CHROMIUM_ARGS, Settings


def test_settings_builds_stealth_kwargs(tmp_path) -> None:
    settings = Settings(
        stealth_enabled=True,
        fingerprint_platform="Win32",
        log_dir=tmp_path / "logs",
        _env_file=None,
    )

    kwargs = settings.stealth_kwargs()
    assert kwargs["navigator_platform_override"] == "Win32"
    assert kwargs["navigator_languages_override"] == ("en-US", "en")
    settings.ensure_directories()
    assert settings.log_dir.exists()


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LODGING_USE_REAL_SEARCH", "true")
    monkeypatch.setenv("LODGING_MAX_PROPERTIES_PER_SOURCE", "5")
    monkeypatch.setenv("LODGING_ALLOWED_ORIGINS", "http://localhost:3000, https://app.example")
    monkeypatch.setenv("LODGING_SERPAPI_KEY", "abc")

    settings = Settings(_env_file=None)

    assert settings.use_real_search is True
    assert settings.max_properties_per_source == 5
    assert settings.allowed_origins == ("http://localhost:3000", "https://app.example")
    assert settings.serpapi_key == "abc"


def test_browser_launch_and_context_options() -> None:
    settings = Settings(headless=False, slow_mo_ms=50, _env_file=None)

    launch = settings.chromium_launch_args()
    assert launch["headless"] is False
    assert launch["slow_mo"] == 50
    assert launch["args"] == list(DEFAULT_CHROMIUM_ARGS)
    assert "--disable-blink-features=AutomationControlled" in launch["args"]

    context = settings.context_options()
    assert context["viewport"] == {"width": 1920, "height": 1080}
    assert context["locale"] == "en-US"
    assert context["timezone_id"] == "America/New_York"


def test_disabled_fingerprint_and_stealth() -> None:
    settings = Settings(fingerprint_enabled=False, stealth_enabled=False, _env_file=None)

    assert settings.fingerprint_overrides() is None
    assert settings.stealth_kwargs() == {}


def test_human_delay_bounds_are_ordered() -> None:
    settings = Settings(human_delay_min_s=3.0, human_delay_max_s=1.0, _env_file=None)

    assert settings.human_delay_bounds() == (1.0, 3.0)


def test_llm_configured_flag() -> None:
    assert not Settings(openai_api_key=None, anthropic_api_key=None, _env_file=None).llm_configured
    assert Settings(anthropic_api_key="sk-ant", openai_api_key=None, _env_file=None).llm_configured


def test_currency_must_be_iso_code() -> None:
    with pytest.raises(ValueError):
        Settings(default_currency="dollars", _env_file=None)
