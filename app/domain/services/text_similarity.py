import re
from typing import AbstractSet, Set

from app.domain.services.constants import MIN_TOKEN_LENGTH

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> Set[str]:
    """
    Lowercase, replace anything outside [a-z0-9\\s] with a space, split on
    whitespace and keep tokens of at least MIN_TOKEN_LENGTH characters.
    """
    cleaned = _NON_ALNUM_RE.sub(" ", (text or "").lower())
    return {t for t in cleaned.split() if len(t) >= MIN_TOKEN_LENGTH}


def jaccard_similarity(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """|A ∩ B| / |A ∪ B|, or 0.0 when either set is empty."""
    if not a or not b:
        return 0.0
    intersection = len(a & b)
    union = len(a) + len(b) - intersection
    return intersection / union if union else 0.0
