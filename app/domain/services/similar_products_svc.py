import logging
from typing import List, NamedTuple, Sequence

from app.domain.models.product import Product
from app.domain.services.constants import (
    CATEGORY_MATCH_WEIGHT,
    PRICE_PROXIMITY_BAND,
    PRICE_PROXIMITY_MAX,
    RATING_WEIGHT,
    SIMILAR_MAX_LIMIT,
    SIMILAR_MIN_LIMIT,
    TEXT_OVERLAP_WEIGHT,
)
from app.domain.services.text_similarity import jaccard_similarity, tokenize

logger = logging.getLogger(__name__)


class ScoredProduct(NamedTuple):
    product: Product
    score: float


def clamp_limit(limit: int) -> int:
    return max(SIMILAR_MIN_LIMIT, min(SIMILAR_MAX_LIMIT, int(limit)))


def _product_text(p: Product) -> str:
    return f"{p.name} {p.description}"


def similarity_score(reference: Product, candidate: Product) -> float:
    """
    Content score of `candidate` against `reference`:
      - category match: +5
      - price proximity: up to 3, reaching 0 once the gap is >= 75% of the reference price
      - rating: (rating / 5) * 1.5
      - text overlap: Jaccard(name + description) * 2
    """
    score = CATEGORY_MATCH_WEIGHT if candidate.category == reference.category else 0.0

    price_diff = abs(candidate.price - reference.price)
    band = max(1.0, reference.price * PRICE_PROXIMITY_BAND)
    score += max(0.0, PRICE_PROXIMITY_MAX - price_diff / band)

    score += (candidate.rating / 5) * RATING_WEIGHT

    overlap = jaccard_similarity(tokenize(_product_text(reference)), tokenize(_product_text(candidate)))
    score += overlap * TEXT_OVERLAP_WEIGHT
    return score


def score_similar_products(reference: Product, catalog: Sequence[Product]) -> List[ScoredProduct]:
    """Score every in-stock product except the reference, best first (stable on ties)."""
    scored = [
        ScoredProduct(p, similarity_score(reference, p))
        for p in catalog
        if p.id != reference.id and p.in_stock
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored


def get_similar_products(reference: Product, catalog: Sequence[Product], limit: int = 8) -> List[Product]:
    """
    Related items for a single product. Pure and synchronous: no model call, no I/O.
    `limit` is clamped to [1, 20].
    """
    k = clamp_limit(limit)
    ranked = score_similar_products(reference, catalog)[:k]
    logger.debug(
        f"Related items for product_id={reference.id}: "
        f"{[(s.product.id, round(s.score, 3)) for s in ranked]}"
    )
    return [s.product for s in ranked]
