"""Value objects shared by sources, ranking and the event stream."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def _coerce_string_list(value: object) -> list[str]:
    if value in (None, "", ()):
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise TypeError("Expected string or list of strings")


class Budget(BaseModel):
    """Nightly price band; either bound may be absent."""

    min: Optional[float] = Field(default=None, ge=0)
    max: Optional[float] = Field(default=None, ge=0)
    currency: str = Field(default="USD")

    @field_validator("currency", mode="before")
    @classmethod
    def _normalise_currency(cls, value: object) -> str:
        if value in (None, ""):
            return "USD"
        return str(value).strip().upper()

    @model_validator(mode="after")
    def _check_bounds(self) -> "Budget":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("budget.min must not exceed budget.max")
        return self


class SearchCriteria(BaseModel):
    """Trip criteria as handed over by the conversation layer.

    Dates stay as provided (ISO dates, ``today``, ``+14d`` offsets or ``M/D`` strings);
    :func:`lodging_search.properties.criteria.resolve_criteria` turns them into a
    :class:`ResolvedCriteria` before any source is queried.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    destination: str
    check_in: Optional[str] = Field(default=None, validation_alias=AliasChoices("check_in", "checkIn"))
    check_out: Optional[str] = Field(default=None, validation_alias=AliasChoices("check_out", "checkOut"))
    guests: Optional[int] = Field(default=None, ge=1)
    budget: Optional[Budget] = None
    amenities: list[str] = Field(default_factory=list)
    trip_purpose: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("trip_purpose", "tripPurpose")
    )
    location_preferences: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("location_preferences", "locationPreferences"),
    )
    property_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("property_type", "propertyType")
    )
    flexible_cancellation: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("flexible_cancellation", "flexibleCancellation")
    )
    additional_requests: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("additional_requests", "additionalRequests"),
    )

    @field_validator("destination")
    @classmethod
    def _require_destination(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("destination must not be blank")
        return text

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def _dates_as_text(cls, value: object) -> Optional[str]:
        if value in (None, ""):
            return None
        if isinstance(value, date):
            return value.isoformat()
        text = str(value).strip()
        return text or None

    @field_validator("amenities", "location_preferences", "additional_requests", mode="before")
    @classmethod
    def _coerce_lists(cls, value: object) -> list[str]:
        return _coerce_string_list(value)

    @field_validator("trip_purpose", "property_type", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@dataclass(frozen=True, slots=True)
class ResolvedCriteria:
    """Criteria with every default filled in; what sources and ranking consume."""

    destination: str
    check_in: date
    check_out: date
    guests: int
    budget: Optional[Budget] = None
    currency: str = "USD"
    amenities: Tuple[str, ...] = ()
    trip_purpose: Optional[str] = None
    location_preferences: Tuple[str, ...] = ()
    property_type: Optional[str] = None
    flexible_cancellation: Optional[bool] = None
    additional_requests: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def budget_min(self) -> Optional[float]:
        return self.budget.min if self.budget else None

    @property
    def budget_max(self) -> Optional[float]:
        return self.budget.max if self.budget else None

    def to_dict(self) -> dict[str, object]:
        return {
            "destination": self.destination,
            "checkIn": self.check_in.isoformat(),
            "checkOut": self.check_out.isoformat(),
            "guests": self.guests,
            "budget": (
                {"min": self.budget.min, "max": self.budget.max, "currency": self.budget.currency}
                if self.budget
                else None
            ),
            "amenities": list(self.amenities),
            "tripPurpose": self.trip_purpose,
            "locationPreferences": list(self.location_preferences),
            "propertyType": self.property_type,
            "flexibleCancellation": self.flexible_cancellation,
            "additionalRequests": list(self.additional_requests),
        }


@dataclass(frozen=True, slots=True)
class NormalizedProperty:
    """One lodging candidate in the shape every source must produce."""

    name: str
    price: int
    source: str
    rating: Optional[float] = None
    description: str = ""
    amenities: Tuple[str, ...] = ()
    location: str = ""
    image_url: Optional[str] = None
    booking_url: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.name.strip()) and self.price > 0


@dataclass(frozen=True, slots=True)
class PropertyEvaluation:
    """A scored candidate. ``scored_by`` records which path produced the score."""

    property: NormalizedProperty
    match_score: int
    reasoning: str
    scored_by: str = "llm"

    def __post_init__(self) -> None:
        object.__setattr__(self, "match_score", max(0, min(100, int(self.match_score))))


@dataclass(slots=True)
class AccommodationResult:
    """Public, display-ready result; ids follow final rank order."""

    id: str
    name: str
    price: int
    rating: float
    description: str
    location: str
    match_score: int
    reasoning: str
    source: str
    amenities: List[str] = field(default_factory=list)
    image_url: Optional[str] = None
    booking_url: Optional[str] = None

    @classmethod
    def from_evaluation(cls, evaluation: PropertyEvaluation, rank: int) -> "AccommodationResult":
        prop = evaluation.property
        return cls(
            id=f"property-{rank}",
            name=prop.name,
            price=prop.price,
            rating=prop.rating or 0.0,
            description=prop.description or "No description available",
            location=prop.location,
            match_score=evaluation.match_score,
            reasoning=evaluation.reasoning,
            source=prop.source,
            amenities=list(prop.amenities),
            image_url=prop.image_url,
            booking_url=prop.booking_url,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "rating": self.rating,
            "description": self.description,
            "amenities": list(self.amenities),
            "imageUrl": self.image_url,
            "location": self.location,
            "bookingUrl": self.booking_url,
            "aiReasoning": self.reasoning,
            "matchScore": self.match_score,
            "source": self.source,
        }
