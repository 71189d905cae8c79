"""Pydantic schemas for Vinofind data validation."""

import math
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vinofind.constants import ScoringStrategy

WineId = Union[int, str]


def _blank_to_none(value: Any) -> Any:
    """Map NaN, None and whitespace-only strings to None, strip the rest."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class WineRecord(BaseModel):
    """One catalog entry.

    Records are frozen: the ranker never mutates them, and annotations such
    as commentary are attached to copies by the caller.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: WineId = Field(..., description="Stable unique identifier within a catalog")
    title: str = Field(..., min_length=1, description="Display name")
    variety: Optional[str] = Field(None, description="Grape or style category")
    country: Optional[str] = Field(None, description="Country of origin")
    region: Optional[str] = Field(None, description="Wine region")
    winery: Optional[str] = Field(None, description="Producer")
    price: Optional[float] = Field(None, gt=0, description="Price in USD")
    rating: Optional[float] = Field(None, gt=0, description="Critic score, conventionally 0-100")
    description: str = Field("", description="Free-text tasting description")

    # Optional descriptive tags
    flavor_profile: Optional[str] = None
    body: Optional[str] = None
    tannins: Optional[str] = None
    acidity: Optional[str] = None
    aroma: Optional[str] = None

    @field_validator(
        "variety", "country", "region", "winery",
        "flavor_profile", "body", "tannins", "acidity", "aroma",
        mode="before",
    )
    @classmethod
    def _normalize_optional_text(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("description", mode="before")
    @classmethod
    def _normalize_description(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        return "" if value is None else value

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class FilterSpec(BaseModel):
    """Caller-supplied hard constraints for a search.

    Absent fields impose no constraint. Malformed values are dropped
    rather than rejected.
    """

    model_config = ConfigDict(populate_by_name=True)

    variety: Optional[str] = Field(None, description="Case-insensitive substring of variety")
    country: Optional[str] = Field(None, description="Case-insensitive substring of country")
    max_price: Optional[float] = Field(None, alias="maxPrice", description="Inclusive price ceiling")

    @field_validator("variety", "country", mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, str):
            return None
        return _blank_to_none(value)

    @field_validator("max_price", mode="before")
    @classmethod
    def _tolerate_bad_price(cls, value: Any) -> Optional[float]:
        value = _blank_to_none(value)
        if value is None or isinstance(value, bool):
            return None
        try:
            price = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(price) or price <= 0:
            return None
        return price

    @property
    def is_empty(self) -> bool:
        return self.variety is None and self.country is None and self.max_price is None

    def active_field_count(self) -> int:
        """Number of fields that actually constrain the result."""
        return sum(v is not None for v in (self.variety, self.country, self.max_price))


class ScoredWine(WineRecord):
    """A WineRecord plus the score the ranker assigned it."""

    similarity_score: float = Field(..., ge=-1.0, le=1.0)
    strategy: ScoringStrategy = Field(..., description="How the score was produced")
    comment: Optional[str] = Field(None, description="Commentary attached by the caller")

    @classmethod
    def from_record(
        cls,
        record: WineRecord,
        score: float,
        strategy: ScoringStrategy
    ) -> 'ScoredWine':
        return cls(**record.model_dump(), similarity_score=score, strategy=strategy)

    def with_comment(self, comment: Optional[str]) -> 'ScoredWine':
        return self.model_copy(update={"comment": comment})


class VarietyCount(BaseModel):
    variety: str
    count: int = Field(..., ge=1)


class CountryCount(BaseModel):
    country: str
    count: int = Field(..., ge=1)


class PriceRange(BaseModel):
    min: float = 0.0
    max: float = 0.0


class PreferenceProfile(BaseModel):
    """Aggregate taste statistics over a set of selected wines."""

    favorite_varieties: List[VarietyCount] = Field(default_factory=list)
    preferred_countries: List[CountryCount] = Field(default_factory=list)
    average_price: float = 0.0
    average_rating: float = 0.0
    price_range: PriceRange = Field(default_factory=PriceRange)
    n_selected: int = 0

    @classmethod
    def empty(cls) -> 'PreferenceProfile':
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.n_selected == 0


class TasteRecommendations(BaseModel):
    """Result of a taste-based recommendation call."""

    recommendations: List[ScoredWine] = Field(default_factory=list)
    profile: PreferenceProfile = Field(default_factory=PreferenceProfile)


class CommentContext(BaseModel):
    """Structured context handed to the commentary generator."""

    query: Optional[str] = None
    filters: Optional[FilterSpec] = None
    recommendations: List[ScoredWine] = Field(default_factory=list)
    profile: Optional[PreferenceProfile] = None
    selected_wines: List[WineRecord] = Field(default_factory=list)
    wine: Optional[WineRecord] = None

    @property
    def top_wine(self) -> Optional[ScoredWine]:
        return self.recommendations[0] if self.recommendations else None


class RecommendationResponse(BaseModel):
    """Query search results plus an overall comment."""

    recommendations: List[ScoredWine]
    llm_comment: str


class TasteResponse(TasteRecommendations):
    """Taste recommendations plus an overall comment."""

    llm_comment: str


class WineSummary(BaseModel):
    """Compact listing row with display defaults filled in."""

    id: WineId
    name: str
    variety: str
    country: str
    price: float
    rating: float
    description: str

    @classmethod
    def from_record(cls, record: WineRecord) -> 'WineSummary':
        return cls(
            id=record.id,
            name=record.title or "Untitled",
            variety=record.variety or "Unknown",
            country=record.country or "Unknown",
            price=record.price or 0.0,
            rating=record.rating or 0.0,
            description=record.description or "",
        )
