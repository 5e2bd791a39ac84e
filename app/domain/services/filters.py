import logging
import math
from typing import List, Optional, Sequence, Tuple

from app.domain.models.product import Product, UserProfile
from app.domain.services.constants import CANDIDATE_LIMIT, PRICE_RANGES

logger = logging.getLogger(__name__)


def price_window(price_range: Optional[str]) -> Tuple[float, float]:
    """
    Map a price range preference to its [low, high) window.
    Unknown or missing preferences do not constrain the price.
    """
    if not price_range:
        return 0.0, math.inf
    return PRICE_RANGES.get(price_range, (0.0, math.inf))


def _in_window(price: float, window: Tuple[float, float]) -> bool:
    low, high = window
    return low <= price < high


def filter_candidates(
    catalog: Sequence[Product],
    profile: UserProfile,
    *,
    limit: int = CANDIDATE_LIMIT,
) -> List[Product]:
    """
    Narrow the catalog to the candidate set handed to the model.

    Stages, each applied to the previous stage's output:
      1) favourite categories (when any are set)
      2) price range window (when set)
      3) in-stock only
      4) empty result -> reset to every in-stock product
      5) truncate to `limit`, catalog order preserved
    """
    filtered: List[Product] = list(catalog)

    if profile.favorite_categories:
        favorites = set(profile.favorite_categories)
        filtered = [p for p in filtered if p.category in favorites]

    if profile.price_range:
        window = price_window(profile.price_range)
        filtered = [p for p in filtered if _in_window(p.price, window)]

    filtered = [p for p in filtered if p.in_stock]

    if not filtered:
        logger.info("No product matched the profile preferences, falling back to all in-stock products")
        filtered = [p for p in catalog if p.in_stock]

    candidates = filtered[:limit]
    logger.info(f"Filtered {len(catalog)} products down to {len(candidates)} candidates")
    return candidates
