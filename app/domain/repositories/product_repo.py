# app/domain/repositories/product_repo.py

from __future__ import annotations
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import json
import logging

from pydantic import TypeAdapter

from app.domain.models.product import Product

logger = logging.getLogger(__name__)

_PRODUCTS = TypeAdapter(List[Product])


class CatalogRepo:
    """
    Static product catalog, validated once and kept in memory.
    `all()` preserves the source order, which the candidate filter relies on.
    """

    def __init__(self, products: Iterable[Product]):
        self._products: List[Product] = list(products)
        self._by_id: Dict[str, Product] = {p.id: p for p in self._products}

    @classmethod
    def from_json_file(cls, path: str | Path) -> "CatalogRepo":
        raw = Path(path).read_text(encoding="utf-8")
        products = _PRODUCTS.validate_python(json.loads(raw))
        logger.info(f"Loaded {len(products)} products from {path}")
        return cls(products)

    @classmethod
    def from_json(cls, text: str) -> "CatalogRepo":
        """Parse an ad-hoc catalog (JSON array of products). Raises ValueError on bad input."""
        return cls(_PRODUCTS.validate_json(text))

    def all(self) -> List[Product]:
        return list(self._products)

    def get_by_id(self, product_id: str) -> Optional[Product]:
        return self._by_id.get(product_id)

    def __len__(self) -> int:
        return len(self._products)
