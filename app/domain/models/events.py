from __future__ import annotations
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from app.domain.models.product import RecommendationItem

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class MetadataEvent(BaseModel):
    type: Literal["metadata"] = "metadata"
    total_filtered: int
    total_products: int

    model_config = _CAMEL


class RecommendationEvent(BaseModel):
    type: Literal["recommendation"] = "recommendation"
    data: RecommendationItem

    model_config = _CAMEL


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str

    model_config = _CAMEL


class DoneEvent(BaseModel):
    """Terminal marker. Serialized as the literal `[DONE]` payload, never as JSON."""
    type: Literal["done"] = "done"

    model_config = _CAMEL


StreamEvent = Union[MetadataEvent, RecommendationEvent, ErrorEvent, DoneEvent]

# Only these variants travel as JSON frames
WireEvent = Annotated[
    Union[MetadataEvent, RecommendationEvent, ErrorEvent],
    Field(discriminator="type"),
]
WIRE_EVENT_ADAPTER: TypeAdapter[WireEvent] = TypeAdapter(WireEvent)
