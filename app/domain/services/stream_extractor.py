# app/domain/services/stream_extractor.py

from __future__ import annotations
from typing import Dict, List, Optional, Sequence, Set
import json
import logging
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.domain.models.product import Product, RecommendationItem

logger = logging.getLogger(__name__)

# =============================================================================
#                               VALIDATION SCHEMA
# =============================================================================

class RecommendationDraft(BaseModel):
    """
    One element of the model's `recommendations` array:
      {
        "productId": "<candidate id>",
        "explanation": "why it fits this user",
        "relevanceScore": 0-100,
        "matchReasons": ["...", "..."]
      }
    """
    product_id: str = Field(..., alias="productId", min_length=1)
    explanation: str = Field(..., min_length=1)
    relevance_score: float = Field(..., alias="relevanceScore", ge=0, le=100)
    match_reasons: List[str] = Field(..., alias="matchReasons")

    # strict: "90" is not a number, 1 is not a string
    model_config = ConfigDict(strict=True, populate_by_name=True)


class RecommendationDocument(BaseModel):
    recommendations: List[RecommendationDraft]

    model_config = ConfigDict(strict=True)


class ReconciliationError(ValueError):
    """The accumulated model output is not a valid recommendations document."""


# Regex to strip code fences (``` or ```json) from LLM output
_CODE_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)
_ARRAY_START_RE = re.compile(r'"recommendations"\s*:\s*\[')
_DOCUMENT_RE = re.compile(r"\{[\s\S]*\}")

def _strip_fences(s: str) -> str:
    """Remove ``` or ```json fences the LLM might add."""
    return _CODE_FENCE_RE.sub("", s).strip()

# =============================================================================
#                               EXTRACTOR
# =============================================================================

class RecommendationStreamExtractor:
    """
    Turns an arbitrarily chunked model response into RecommendationItems as soon
    as each element of the `recommendations` array is a complete object.

    The scanner keeps its lexer state (string, escape, brace depth) between
    chunks, so braces inside string values never split or merge objects, and
    the buffer is walked only once.

    `sent_count` is the contiguous watermark of consumed array elements: every
    index below it has been emitted or dropped for good. An element that does
    not decode or validate stays pending and keeps the watermark behind it;
    later elements are still emitted right away and remembered in `_consumed`
    so no index is ever handled twice.
    """

    def __init__(self, candidates: Sequence[Product]):
        self._by_id: Dict[str, Product] = {p.id: p for p in candidates}
        self._buffer = ""
        self._objects: List[str] = []
        self._consumed: Set[int] = set()
        self._emitted_ids: Set[str] = set()
        self.sent_count = 0

        # lexer state
        self._array_found = False
        self._array_closed = False
        self._scan_pos = 0
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._obj_start = 0

    @property
    def text(self) -> str:
        return self._buffer

    @property
    def emitted_count(self) -> int:
        return len(self._emitted_ids)

    # ----- incremental path --------------------------------------------------

    def feed(self, chunk: str) -> List[RecommendationItem]:
        """Append a chunk and return the items that became complete with it."""
        if not chunk:
            return []
        self._buffer += chunk

        if not self._array_found:
            m = _ARRAY_START_RE.search(self._buffer)
            if not m:
                return []
            self._array_found = True
            self._scan_pos = m.end()

        self._scan()
        return self._drain()

    def _scan(self) -> None:
        buf = self._buffer
        i = self._scan_pos
        end = len(buf)
        while i < end and not self._array_closed:
            ch = buf[i]
            if self._in_string:
                if self._escape:
                    self._escape = False
                elif ch == "\\":
                    self._escape = True
                elif ch == '"':
                    self._in_string = False
            elif ch == '"':
                self._in_string = True
            elif ch == "{":
                if self._depth == 0:
                    self._obj_start = i
                self._depth += 1
            elif ch == "}":
                if self._depth > 0:
                    self._depth -= 1
                    if self._depth == 0:
                        self._objects.append(buf[self._obj_start:i + 1])
            elif ch == "]" and self._depth == 0:
                self._array_closed = True
            i += 1
        self._scan_pos = i

    def _drain(self) -> List[RecommendationItem]:
        accepted: List[RecommendationItem] = []
        for index in range(self.sent_count, len(self._objects)):
            if index in self._consumed:
                continue
            draft = self._decode(index, self._objects[index])
            if draft is None:
                continue  # pending, retried on the next chunk
            item = self._resolve(index, draft)
            if item is not None:
                logger.info(f"Streaming recommendation #{self.emitted_count}: {item.product.name}")
                accepted.append(item)
        self._advance_watermark()
        return accepted

    def _decode(self, index: int, raw: str) -> Optional[RecommendationDraft]:
        try:
            return RecommendationDraft.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.debug(f"Skipping object at index {index} for now: {e.__class__.__name__}")
            return None

    def _resolve(self, index: int, draft: RecommendationDraft) -> Optional[RecommendationItem]:
        """
        Mark the element consumed and build the item, or drop it when the id is
        not a candidate or was already emitted.
        """
        self._consumed.add(index)
        product = self._by_id.get(draft.product_id)
        if product is None:
            logger.warning(f"Dropping recommendation #{index}: unknown product_id={draft.product_id}")
            return None
        if draft.product_id in self._emitted_ids:
            logger.warning(f"Dropping recommendation #{index}: duplicate product_id={draft.product_id}")
            return None
        self._emitted_ids.add(draft.product_id)
        return RecommendationItem(
            product=product,
            explanation=draft.explanation,
            relevance_score=draft.relevance_score,
            match_reasons=draft.match_reasons,
        )

    def _advance_watermark(self) -> None:
        while self.sent_count in self._consumed:
            self.sent_count += 1

    # ----- reconciliation ----------------------------------------------------

    def finish(self) -> List[RecommendationItem]:
        """
        End-of-stream pass: parse the whole buffer as one document and return
        every element the incremental scan did not consume.
        Raises ReconciliationError when the document is missing or invalid.
        """
        raw = _strip_fences(self._buffer)
        match = _DOCUMENT_RE.search(raw)
        if not match:
            raise ReconciliationError("Invalid LLM JSON: no JSON object in model output")
        try:
            document = RecommendationDocument.model_validate(json.loads(match.group(0)))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ReconciliationError(f"Invalid LLM JSON: {e}") from e

        late: List[RecommendationItem] = []
        for index, draft in enumerate(document.recommendations):
            if index < self.sent_count or index in self._consumed:
                continue
            item = self._resolve(index, draft)
            if item is not None:
                logger.info(f"Final pass - sending recommendation #{index + 1}: {item.product.name}")
                late.append(item)
        self._advance_watermark()

        if late:
            logger.info(f"Reconciliation recovered {len(late)} missed recommendations")
        return late
