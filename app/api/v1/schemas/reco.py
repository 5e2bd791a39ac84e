# api/v1/schemas/reco.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional

from app.domain.models.product import Product

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductRecommendationsIn(BaseModel):
    product_id: Optional[str] = None
    limit: Optional[int] = Field(None, description="Clamped to [1, 20]; server default when omitted")

    model_config = _CAMEL


class ProductRecommendationsOut(BaseModel):
    data: List[Product]


class TestRecommendationsIn(BaseModel):
    """Ad-hoc catalog and preferences, both passed as JSON strings."""
    products_json: Optional[str] = None
    user_preferences_json: Optional[str] = None

    model_config = _CAMEL


class ErrorOut(BaseModel):
    error: str
