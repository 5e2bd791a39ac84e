# app/domain/services/llm_svc.py

from __future__ import annotations
from typing import AsyncIterator, Protocol
import logging
from time import monotonic as _now

from openai import AsyncOpenAI

from app.core.config import Settings

logger = logging.getLogger(__name__)


class ModelClient(Protocol):
    """Anything that turns a prompt into an ordered stream of text chunks."""

    def stream(self, prompt: str) -> AsyncIterator[str]:
        ...


class OpenAIModelClient:
    """
    Streaming chat completion against OpenAI.
    Yields the text deltas as they arrive; the concatenation is expected to be
    one JSON document. Transport/model errors propagate to the caller.
    """

    def __init__(self, settings: Settings, client: AsyncOpenAI | None = None):
        self.settings = settings
        self.client = client or AsyncOpenAI(api_key=settings.OPENAI_API_KEY)

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        t0 = _now()
        stream = await self.client.chat.completions.create(
            model=self.settings.OPENAI_RECO_MODEL,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.settings.llm_temperature,
            top_p=self.settings.llm_top_p,
            timeout=self.settings.openai_timeout_s,
            response_format={"type": "json_object"},
            stream=True,
        )
        n_chunks = 0
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    n_chunks += 1
                    yield delta
        finally:
            await stream.close()
            logger.info(
                f"LLM stream model={self.settings.OPENAI_RECO_MODEL} "
                f"chunks={n_chunks} duration={_now() - t0:.3f}s"
            )
