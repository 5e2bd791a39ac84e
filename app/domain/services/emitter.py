import json
from typing import AsyncIterable, AsyncIterator

from app.domain.models.events import DoneEvent, StreamEvent

DONE_PAYLOAD = "[DONE]"
DONE_FRAME = f"data: {DONE_PAYLOAD}\n\n"
FRAME_PREFIX = "data: "
FRAME_DELIMITER = "\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def encode_event(event: StreamEvent) -> str:
    """One event -> one `data: <json>\\n\\n` frame (compact JSON, camelCase keys)."""
    if isinstance(event, DoneEvent):
        return DONE_FRAME
    payload = event.model_dump(mode="json", by_alias=True)
    return f"{FRAME_PREFIX}{json.dumps(payload, ensure_ascii=False, separators=(',', ':'))}{FRAME_DELIMITER}"


async def sse_stream(events: AsyncIterable[StreamEvent]) -> AsyncIterator[bytes]:
    """Encode events as they are produced; one frame per yield, no batching."""
    try:
        async for event in events:
            yield encode_event(event).encode("utf-8")
    finally:
        # release the upstream pipeline (and its model stream) on disconnect
        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()
