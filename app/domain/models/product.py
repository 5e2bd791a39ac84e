from __future__ import annotations
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Wire and Mongo documents are camelCase; attributes stay snake_case.
_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

PriceRange = Literal["budget", "mid-range", "premium", "luxury"]

SEARCH_HISTORY_LIMIT = 10


class Product(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    category: str
    price: float = Field(..., ge=0)
    rating: float = Field(0.0, ge=0, le=5)
    reviews: int = Field(0, ge=0)
    in_stock: bool = True
    description: str = ""
    image: str = ""

    model_config = _CAMEL


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    model_config = _CAMEL


class UserProfile(BaseModel):
    """
    Read-only view of a stored user profile, limited to what the
    recommendation pipeline consumes.
    """
    user_id: Optional[str] = None
    name: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[Address] = None
    favorite_categories: List[str] = []
    price_range: Optional[PriceRange] = None
    shopping_frequency: Optional[str] = None
    interests: List[str] = []
    lifestyle: Optional[str] = None
    search_history: List[str] = []  # most recent first
    onboarding_completed: bool = False

    model_config = _CAMEL

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def _datetime_to_date(cls, v):
        # Mongo hands back datetimes for Date fields
        if isinstance(v, datetime):
            return v.date()
        return v

    @field_validator("search_history")
    @classmethod
    def _bound_search_history(cls, v: List[str]) -> List[str]:
        return v[:SEARCH_HISTORY_LIMIT]


class RecommendationItem(BaseModel):
    """A candidate product the model recommended, with its explanation."""
    product: Product
    explanation: str
    relevance_score: float = Field(..., ge=0, le=100)
    match_reasons: List[str]

    model_config = _CAMEL


class StreamStats(BaseModel):
    total_filtered: int = 0
    total_products: int = 0

    model_config = _CAMEL
