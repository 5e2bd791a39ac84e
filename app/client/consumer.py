# app/client/consumer.py

from __future__ import annotations
from dataclasses import dataclass, field
from typing import AsyncIterable, Callable, List, Optional, Sequence, Tuple
import codecs
import logging

import httpx
from pydantic import ValidationError

from app.domain.models.events import (
    WIRE_EVENT_ADAPTER,
    DoneEvent,
    ErrorEvent,
    MetadataEvent,
    RecommendationEvent,
    StreamEvent,
)
from app.domain.models.product import RecommendationItem, StreamStats
from app.domain.repositories.reco_cache_repo import RecommendationCache
from app.domain.services.emitter import DONE_PAYLOAD, FRAME_DELIMITER, FRAME_PREFIX

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Tuple[RecommendationItem, ...]], None]


class RecommendationStreamError(RuntimeError):
    """The stream ended with an error. `partial` holds what arrived before it."""

    def __init__(self, message: str, partial: Sequence[RecommendationItem] = ()):
        super().__init__(message)
        self.message = message
        self.partial: Tuple[RecommendationItem, ...] = tuple(partial)


# =============================================================================
#                               FRAMING
# =============================================================================

class FrameDecoder:
    """
    Incremental UTF-8 decoding and `\\n\\n` frame splitting.
    A trailing partial frame is kept until the next read completes it.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""

    def feed(self, data: bytes) -> List[str]:
        self._buffer += self._decoder.decode(data)
        *frames, self._buffer = self._buffer.split(FRAME_DELIMITER)
        return frames

    def close(self) -> str:
        """Flush the decoder and return the leftover (incomplete) text, if any."""
        self._buffer += self._decoder.decode(b"", final=True)
        leftover, self._buffer = self._buffer, ""
        return leftover


def parse_frame(frame: str) -> Optional[StreamEvent]:
    """
    Decode one frame. Returns None for frames that carry no `data: ` payload.
    Raises ValidationError when the JSON payload is malformed or of unknown type.
    """
    if not frame.startswith(FRAME_PREFIX):
        return None
    payload = frame[len(FRAME_PREFIX):]
    if payload == DONE_PAYLOAD:
        return DoneEvent()
    return WIRE_EVENT_ADAPTER.validate_json(payload)


# =============================================================================
#                               CONSUMER
# =============================================================================

class RecommendationStreamConsumer:
    """
    Builds the ordered, append-only result list from a recommendation stream.
    `on_update` receives a snapshot of the list after every new item.
    """

    def __init__(self, on_update: Optional[UpdateCallback] = None):
        self.recommendations: List[RecommendationItem] = []
        self.stats = StreamStats()
        self.completed = False
        self._on_update = on_update
        self._decoder = FrameDecoder()

    async def consume(self, chunks: AsyncIterable[bytes]) -> List[RecommendationItem]:
        async for data in chunks:
            for frame in self._decoder.feed(data):
                self._handle_frame(frame)
        leftover = self._decoder.close()
        if leftover.strip():
            logger.warning(f"Discarding incomplete frame at end of stream ({len(leftover)} chars)")
        return self.recommendations

    def _handle_frame(self, frame: str) -> None:
        try:
            event = parse_frame(frame)
        except ValidationError as e:
            logger.error(f"Parse error: {e}")
            return
        if event is not None:
            self.dispatch(event)

    def dispatch(self, event: StreamEvent) -> None:
        if isinstance(event, MetadataEvent):
            self.stats = StreamStats(
                total_filtered=event.total_filtered,
                total_products=event.total_products,
            )
        elif isinstance(event, RecommendationEvent):
            self.recommendations.append(event.data)
            logger.debug(f"Received recommendation #{len(self.recommendations)}: {event.data.product.name}")
            if self._on_update is not None:
                self._on_update(tuple(self.recommendations))
        elif isinstance(event, ErrorEvent):
            raise RecommendationStreamError(event.error, self.recommendations)
        elif isinstance(event, DoneEvent):
            logger.info("Streaming complete")
            self.completed = True
        else:
            raise TypeError(f"Unhandled stream event: {event!r}")


# =============================================================================
#                               CLIENT
# =============================================================================

@dataclass(frozen=True)
class RecommendationsResult:
    recommendations: Tuple[RecommendationItem, ...]
    stats: StreamStats = field(default_factory=StreamStats)
    from_cache: bool = False


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or "Failed to fetch recommendations")
    return "Failed to fetch recommendations"


class RecommendationsClient:
    """
    Fetches personalised recommendations, serving a valid cache entry when
    there is one. A complete stream (Done received) with at least one item
    overwrites the user's entry.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        cache: RecommendationCache,
        *,
        path: str = "/recommendations",
    ):
        self.http = http
        self.cache = cache
        self.path = path

    async def get_recommendations(
        self,
        user_id: str,
        *,
        force_refresh: bool = False,
        on_update: Optional[UpdateCallback] = None,
    ) -> RecommendationsResult:
        if not force_refresh:
            if cached := await self.cache.get(user_id):
                logger.info(f"Loaded cached recommendations for user_id={user_id}")
                return RecommendationsResult(
                    recommendations=tuple(cached.recommendations),
                    stats=cached.stats,
                    from_cache=True,
                )

        consumer = RecommendationStreamConsumer(on_update)
        async with self.http.stream("POST", self.path, headers={"X-User-Id": user_id}) as response:
            if response.is_error:
                await response.aread()
                raise RecommendationStreamError(_error_message(response))
            await consumer.consume(response.aiter_bytes())

        if consumer.completed and consumer.recommendations:
            await self.cache.set(user_id, consumer.recommendations, consumer.stats)

        return RecommendationsResult(
            recommendations=tuple(consumer.recommendations),
            stats=consumer.stats,
        )

    async def clear_cache(self, user_id: str) -> None:
        await self.cache.invalidate(user_id)

    async def on_profile_changed(self, user_id: str) -> None:
        """Profile edits change the candidate set; previous results no longer apply."""
        await self.cache.invalidate(user_id)
