import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Sequence

from app.domain.models.events import (
    DoneEvent,
    ErrorEvent,
    MetadataEvent,
    RecommendationEvent,
    StreamEvent,
)
from app.domain.models.product import Product, UserProfile
from app.domain.services.constants import CANDIDATE_LIMIT
from app.domain.services.filters import filter_candidates
from app.domain.services.llm_svc import ModelClient
from app.domain.services.prompts import build_recommendation_prompt
from app.domain.services.stream_extractor import ReconciliationError, RecommendationStreamExtractor

logger = logging.getLogger(__name__)

DisconnectProbe = Callable[[], Awaitable[bool]]


class InvalidRecommendationRequest(ValueError):
    """Upstream input the pipeline cannot work with; rejected before streaming."""


@dataclass(frozen=True)
class PreparedRequest:
    candidates: List[Product]
    prompt: str
    total_products: int


def prepare_recommendation_request(
    catalog: Sequence[Product],
    profile: UserProfile,
    user_name: str,
    *,
    candidate_limit: int = CANDIDATE_LIMIT,
    today: Optional[date] = None,
) -> PreparedRequest:
    """
    Validate inputs, build the candidate set and render the prompt.
    Raises InvalidRecommendationRequest when there is nothing to recommend from.
    """
    if not catalog:
        raise InvalidRecommendationRequest("Product catalog is empty")

    candidates = filter_candidates(catalog, profile, limit=candidate_limit)
    if not candidates:
        raise InvalidRecommendationRequest("No in-stock products available")

    prompt = build_recommendation_prompt(profile, candidates, user_name, today=today)
    logger.debug(f"Prompt size={len(prompt)} chars candidates={len(candidates)}")
    return PreparedRequest(candidates=candidates, prompt=prompt, total_products=len(catalog))


async def stream_recommendation_events(
    prepared: PreparedRequest,
    model_client: ModelClient,
    *,
    is_disconnected: Optional[DisconnectProbe] = None,
) -> AsyncIterator[StreamEvent]:
    """
    End-to-end streaming pipeline for one request.

    Event order:
      Metadata -> Recommendation* -> Done
                                  -> Error (model/transport failure, or an
                                     unparseable document with nothing sent)

    Notes:
      - The extractor is fed once per chunk; items are yielded the moment they
        are accepted.
      - A model failure ends the stream with an Error event; the partial buffer
        is not parsed.
      - When `is_disconnected` reports True the stream stops silently and the
        model stream is closed.
    """
    yield MetadataEvent(
        total_filtered=len(prepared.candidates),
        total_products=prepared.total_products,
    )

    extractor = RecommendationStreamExtractor(prepared.candidates)
    chunks = model_client.stream(prepared.prompt)
    logger.info("Starting to stream recommendations...")

    try:
        async for chunk in chunks:
            if is_disconnected is not None and await is_disconnected():
                logger.info(f"Client disconnected after {extractor.emitted_count} recommendations, stopping")
                return
            logger.debug(f"Received chunk ({len(chunk)} chars), total: {len(extractor.text) + len(chunk)}")
            for item in extractor.feed(chunk):
                yield RecommendationEvent(data=item)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(f"Model stream failed after {extractor.emitted_count} recommendations: {e}")
        yield ErrorEvent(error=str(e) or e.__class__.__name__)
        return
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()

    logger.info(f"Stream complete. Sent {extractor.emitted_count} recommendations. Checking for missed ones...")
    try:
        late = extractor.finish()
    except ReconciliationError as e:
        if extractor.emitted_count == 0:
            logger.error(f"Final parsing failed with nothing sent: {e}")
            yield ErrorEvent(error=str(e))
            return
        logger.warning(f"Final parsing failed, keeping {extractor.emitted_count} streamed recommendations: {e}")
        late = []

    for item in late:
        yield RecommendationEvent(data=item)

    logger.info(f"Streaming finished. Total recommendations sent: {extractor.emitted_count}")
    yield DoneEvent()
