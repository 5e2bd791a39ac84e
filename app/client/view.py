import math
from typing import Callable, Dict, List, Literal, Optional, Sequence, Tuple

from app.domain.models.product import RecommendationItem

SortOption = Literal["relevance", "price-asc", "price-desc", "rating-desc", "name-asc", "name-desc"]

_SORTS: Dict[str, Tuple[Callable[[RecommendationItem], object], bool]] = {
    "relevance": (lambda r: r.relevance_score, True),
    "price-asc": (lambda r: r.product.price, False),
    "price-desc": (lambda r: r.product.price, True),
    "rating-desc": (lambda r: r.product.rating, True),
    "name-asc": (lambda r: r.product.name.casefold(), False),
    "name-desc": (lambda r: r.product.name.casefold(), True),
}


def available_categories(items: Sequence[RecommendationItem]) -> List[str]:
    return sorted({r.product.category for r in items})


def price_bounds(items: Sequence[RecommendationItem]) -> Tuple[float, float]:
    """Price slider bounds; (0, 1000) when there is nothing to show yet."""
    if not items:
        return 0.0, 1000.0
    prices = [r.product.price for r in items]
    return float(math.floor(min(prices))), float(math.ceil(max(prices)))


def filter_recommendations(
    items: Sequence[RecommendationItem],
    *,
    search: str = "",
    category: str = "all",
    price: Optional[Tuple[float, float]] = None,
    min_rating: float = 0.0,
    sort: SortOption = "relevance",
) -> List[RecommendationItem]:
    """
    Narrow and order the received list for display. The source list is not
    modified; streaming keeps appending to it independently.
    """
    result = list(items)

    if search:
        needle = search.lower()
        result = [
            r for r in result
            if needle in r.product.name.lower() or needle in r.product.description.lower()
        ]

    if category != "all":
        result = [r for r in result if r.product.category == category]

    if price is not None:
        low, high = price
        result = [r for r in result if low <= r.product.price <= high]

    result = [r for r in result if r.product.rating >= min_rating]

    if sort not in _SORTS:
        raise ValueError(f"Unknown sort option: {sort}")
    key, reverse = _SORTS[sort]
    result.sort(key=key, reverse=reverse)
    return result
