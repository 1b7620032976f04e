"""Runtime configuration for the search pipeline.

Relies on pydantic-settings so that environment variables (prefixed with ``LODGING_``)
can override defaults. API keys are usually supplied through ``.env``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_CHROMIUM_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=VizDisplayCompositor",
)


def _split_csv(value: object, field_name: str) -> Tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, tuple):
        return tuple(str(item).strip() for item in value if str(item).strip())
    if isinstance(value, list):
        return tuple(str(item).strip() for item in value if str(item).strip())
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",")]
        return tuple(part for part in parts if part)
    raise TypeError(f"{field_name} must be provided as a comma-separated string or list")


class Settings(BaseSettings):
    """Captures runtime configuration for sources, ranking and the browser."""

    use_real_search: bool = Field(
        default=False,
        description="Query live sources; when false the demo catalog answers every search",
    )
    scrape_booking_enabled: bool = Field(default=True, description="Drive the Booking.com web UI")
    scrape_airbnb_enabled: bool = Field(default=True, description="Drive the Airbnb web UI")

    rapidapi_key: Optional[str] = Field(default=None, description="RapidAPI key for the Booking.com API")
    rapidapi_host: str = Field(default="booking-com.p.rapidapi.com")
    booking_api_base_url: str = Field(default="https://booking-com.p.rapidapi.com/v1")
    api_locale: str = Field(default="en-gb", description="Locale sent to the Booking.com API")
    serpapi_key: Optional[str] = Field(default=None, description="SerpAPI key for Google Hotels")
    serpapi_base_url: str = Field(default="https://serpapi.com/search.json")
    serpapi_country: str = Field(default="us")
    serpapi_language: str = Field(default="en")

    openai_api_key: Optional[str] = None
    openai_model: str = Field(default="gpt-4o-mini")
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = Field(default="claude-sonnet-4-5-20250929")
    evaluation_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    evaluation_max_tokens: int = Field(default=300, gt=0)

    max_properties_per_source: int = Field(default=8, gt=0)
    max_total_properties: int = Field(default=16, gt=0)
    api_timeout_s: float = Field(default=30.0, gt=0, description="Per-adapter bound for HTTP sources")
    api_max_retries: int = Field(default=2, ge=0)
    api_backoff_s: float = Field(default=1.0, ge=0)
    scrape_timeout_s: float = Field(default=240.0, gt=0, description="Per-adapter bound for browser sources")
    search_timeout_s: float = Field(default=600.0, gt=0, description="Wall-clock bound for one search")
    evaluation_timeout_s: float = Field(default=60.0, gt=0)
    max_evaluation_retries: int = Field(default=2, ge=0)
    evaluation_concurrency: int = Field(default=1, ge=1)
    evaluation_interval_s: float = Field(
        default=2.0, ge=0, description="Minimum spacing between evaluation calls"
    )

    default_guests: int = Field(default=2, ge=1)
    default_currency: str = Field(default="USD")
    default_check_in_offset_days: int = Field(default=7, ge=0)
    default_nights: int = Field(default=3, ge=1)

    headless: bool = True
    slow_mo_ms: int = Field(default=0, description="Slow-mo delay in milliseconds")
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    locale: str = Field(default="en-US")
    timezone_id: str = Field(default="America/New_York")
    default_timeout_ms: int = Field(default=15000)
    navigation_timeout_ms: int = Field(default=30000)
    chromium_channel: Optional[str] = Field(
        default=None, description="Browser channel (e.g. 'chrome'); None uses bundled Chromium"
    )
    chromium_args: Annotated[Tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_CHROMIUM_ARGS,
        description="Extra Chromium args passed during launch",
    )
    page_pool_size: int = Field(default=2, ge=0, description="Idle pages kept per session")
    human_delay_enabled: bool = Field(default=True, description="Pause between simulated actions")
    human_delay_min_s: float = Field(default=1.0, ge=0)
    human_delay_max_s: float = Field(default=3.0, ge=0)

    stealth_enabled: bool = Field(default=True, description="Apply playwright-stealth evasions")
    stealth_init_scripts_only: bool = False
    fingerprint_enabled: bool = Field(default=True, description="Inject navigator overrides")
    fingerprint_platform: Optional[str] = Field(default="Win32")
    fingerprint_languages: Annotated[Tuple[str, ...], NoDecode] = Field(default=("en-US", "en"))
    fingerprint_hardware_concurrency: Optional[int] = Field(default=8)
    fingerprint_device_memory: Optional[float] = Field(default=8.0)
    fingerprint_webgl_vendor: Optional[str] = Field(default="Google Inc. (Intel)")
    fingerprint_webgl_renderer: Optional[str] = Field(
        default="ANGLE (Intel, Intel(R) UHD Graphics 630 Direct3D11 vs_5_0 ps_5_0, D3D11)"
    )

    hyperbrowser_enabled: bool = Field(default=False, description="Use a remote Hyperbrowser session")
    hyperbrowser_api_key: Optional[str] = None
    hyperbrowser_use_stealth: bool = True
    hyperbrowser_accept_cookies: bool = True
    hyperbrowser_region: Optional[str] = None

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("data/logs"))
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=8000)
    allowed_origins: Annotated[Tuple[str, ...], NoDecode] = Field(default=("*",))

    model_config = SettingsConfigDict(
        env_prefix="LODGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("log_dir", mode="before")
    def _expand_log_dir(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value
        return Path(value).expanduser()

    @field_validator("chromium_args", mode="before")
    def _parse_chromium_args(cls, value: object) -> Tuple[str, ...]:
        return _split_csv(value, "chromium_args")

    @field_validator("fingerprint_languages", mode="before")
    def _parse_fingerprint_languages(cls, value: object) -> Tuple[str, ...]:
        return _split_csv(value, "fingerprint_languages")

    @field_validator("allowed_origins", mode="before")
    def _parse_allowed_origins(cls, value: object) -> Tuple[str, ...]:
        return _split_csv(value, "allowed_origins")

    @field_validator("default_currency")
    def _upper_currency(cls, value: str) -> str:
        currency = value.strip().upper()
        if len(currency) != 3:
            raise ValueError("default_currency must be a three-letter ISO code")
        return currency

    def ensure_directories(self) -> None:
        """Create the log directory if it is missing."""
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def viewport(self) -> dict[str, int]:
        return {"width": self.viewport_width, "height": self.viewport_height}

    def chromium_launch_args(self) -> dict[str, object]:
        launch_args: dict[str, object] = {
            "headless": self.headless,
        }
        if self.slow_mo_ms:
            launch_args["slow_mo"] = self.slow_mo_ms
        if self.chromium_channel:
            launch_args["channel"] = self.chromium_channel
        if self.chromium_args:
            launch_args["args"] = list(self.chromium_args)
        return launch_args

    def context_options(self) -> dict[str, object]:
        return {
            "viewport": self.viewport(),
            "user_agent": self.user_agent,
            "locale": self.locale,
            "timezone_id": self.timezone_id,
            "is_mobile": False,
            "has_touch": False,
        }

    def stealth_kwargs(self) -> dict[str, object]:
        if not self.stealth_enabled:
            return {}
        kwargs: dict[str, object] = {
            "init_scripts_only": self.stealth_init_scripts_only,
            "navigator_user_agent_override": self.user_agent,
        }
        if len(self.fingerprint_languages) >= 2:
            kwargs["navigator_languages_override"] = tuple(self.fingerprint_languages[:2])
        if self.fingerprint_platform:
            kwargs["navigator_platform_override"] = self.fingerprint_platform
        return kwargs

    def fingerprint_overrides(self):
        if not self.fingerprint_enabled:
            return None
        from lodging_search.core.fingerprint import FingerprintOverrides

        return FingerprintOverrides(
            platform=self.fingerprint_platform,
            languages=self.fingerprint_languages or (self.locale,),
            hardware_concurrency=self.fingerprint_hardware_concurrency,
            device_memory=self.fingerprint_device_memory,
            webgl_vendor=self.fingerprint_webgl_vendor,
            webgl_renderer=self.fingerprint_webgl_renderer,
        )

    def human_delay_bounds(self) -> tuple[float, float]:
        low, high = self.human_delay_min_s, self.human_delay_max_s
        if high < low:
            low, high = high, low
        return low, high

    @property
    def llm_configured(self) -> bool:
        return bool(self.openai_api_key or self.anthropic_api_key)
