# app/api/v1/routers/recommendations.py
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import TypeAdapter, ValidationError
from typing import Annotated, Optional
import json
import logging
import time

from app.api.deps import catalog_dep, model_client_dep, profile_repo_dep
from app.api.v1.schemas.reco import (
    ErrorOut,
    ProductRecommendationsIn,
    ProductRecommendationsOut,
    TestRecommendationsIn,
)
from app.core.config import Settings, get_settings
from app.domain.models.product import UserProfile
from app.domain.repositories.product_repo import CatalogRepo
from app.domain.repositories.profile_repo import ProfileRepo
from app.domain.services.emitter import SSE_HEADERS, sse_stream
from app.domain.services.llm_svc import ModelClient
from app.domain.services.pipeline_svc import (
    InvalidRecommendationRequest,
    PreparedRequest,
    prepare_recommendation_request,
    stream_recommendation_events,
)
from app.domain.services.similar_products_svc import get_similar_products

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recommendations"])

DEFAULT_USER_NAME = "Test User"

ERROR_RESPONSES = {code: {"model": ErrorOut} for code in (400, 401, 404, 503)}


def _event_stream(request: Request, prepared: PreparedRequest, model_client: ModelClient) -> StreamingResponse:
    events = stream_recommendation_events(
        prepared,
        model_client,
        is_disconnected=request.is_disconnected,
    )
    return StreamingResponse(sse_stream(events), media_type="text/event-stream", headers=SSE_HEADERS)


def _prepare(catalog, profile: UserProfile, user_name: str, settings: Settings) -> PreparedRequest:
    try:
        return prepare_recommendation_request(
            catalog, profile, user_name, candidate_limit=settings.candidate_limit,
        )
    except InvalidRecommendationRequest as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/recommendations", responses=ERROR_RESPONSES)
async def recommendations(
    request: Request,
    x_user_id: Annotated[Optional[str], Header()] = None,
    catalog: CatalogRepo = Depends(catalog_dep),
    profiles: ProfileRepo = Depends(profile_repo_dep),
    model_client: ModelClient = Depends(model_client_dep),
    settings: Settings = Depends(get_settings),
):
    """
    Personalised recommendations as a `text/event-stream`.
    Pipeline: profile → candidate filter → prompt → model stream → incremental extraction → frames.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    profile = await profiles.get_by_user_id(x_user_id)
    if not profile or not profile.onboarding_completed:
        raise HTTPException(status_code=400, detail="Please complete onboarding first")

    prepared = _prepare(catalog.all(), profile, profile.name or DEFAULT_USER_NAME, settings)
    logger.info(
        "Request: recommendations user_id=%s, candidates=%s, catalog=%s",
        x_user_id, len(prepared.candidates), prepared.total_products,
    )
    return _event_stream(request, prepared, model_client)


@router.post("/recommendations/product", response_model=ProductRecommendationsOut, responses=ERROR_RESPONSES)
async def product_recommendations(
    body: ProductRecommendationsIn,
    catalog: CatalogRepo = Depends(catalog_dep),
    settings: Settings = Depends(get_settings),
):
    """Related items for one product: content-based scoring, no model call."""
    if not body.product_id:
        raise HTTPException(status_code=400, detail="productId is required")

    current = catalog.get_by_id(body.product_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Product not found")

    limit = body.limit if body.limit is not None else settings.similar_default_limit
    start_time = time.perf_counter()
    items = get_similar_products(current, catalog.all(), limit=limit)
    logger.info(
        "Response: product_recommendations product_id=%s, count=%s, elapsed_time=%.4fs",
        body.product_id, len(items), time.perf_counter() - start_time,
    )
    return ProductRecommendationsOut(data=items)


_PREFERENCES = TypeAdapter(UserProfile)


@router.post("/test-recommendations", responses=ERROR_RESPONSES)
async def test_recommendations(
    request: Request,
    body: TestRecommendationsIn,
    model_client: ModelClient = Depends(model_client_dep),
    settings: Settings = Depends(get_settings),
):
    """Same stream against an ad-hoc catalog and preference set (playground)."""
    if not body.products_json or not body.user_preferences_json:
        raise HTTPException(
            status_code=400,
            detail="Both products JSON and user preferences JSON are required",
        )

    try:
        raw_products = json.loads(body.products_json)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid products JSON format")
    if not isinstance(raw_products, list) or not raw_products:
        raise HTTPException(status_code=400, detail="Products must be a non-empty array")
    try:
        catalog = CatalogRepo.from_json(body.products_json)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid products: {e.error_count()} validation errors")

    try:
        profile = _PREFERENCES.validate_json(body.user_preferences_json)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid user preferences JSON format")

    prepared = _prepare(catalog.all(), profile, profile.name or DEFAULT_USER_NAME, settings)
    logger.info(f"Filtered {prepared.total_products} products down to {len(prepared.candidates)} based on user preferences")
    return _event_stream(request, prepared, model_client)
