
import math

# Candidate pre-filtering
CANDIDATE_LIMIT = 30  # Max number of products handed to the model

# Price range preference -> [low, high) price window; luxury is unbounded
PRICE_RANGES = {
    "budget": (0.0, 50.0),
    "mid-range": (50.0, 200.0),
    "premium": (200.0, 500.0),
    "luxury": (500.0, math.inf),
}

# Content-based "related items" scoring weights
CATEGORY_MATCH_WEIGHT = 5.0
PRICE_PROXIMITY_MAX = 3.0
PRICE_PROXIMITY_BAND = 0.25  # fraction of the reference price worth one point
RATING_WEIGHT = 1.5
TEXT_OVERLAP_WEIGHT = 2.0
MIN_TOKEN_LENGTH = 3  # shorter tokens are discarded

# Related items limit bounds
SIMILAR_MIN_LIMIT = 1
SIMILAR_MAX_LIMIT = 20
