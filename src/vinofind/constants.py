"""
Vinofind Constants and Enums

Centralized constants, enums, and magic values for the retrieval and
ranking core.
"""

from enum import Enum
from typing import Tuple


# =======================
# SCORING STRATEGY
# =======================

class ScoringStrategy(str, Enum):
    """How a single candidate was scored.

    Chosen per call and per record from data availability:
    EMBEDDING when both sides have a vector, KEYWORD (query search) or
    PROFILE (taste recommendation) otherwise,
    NEUTRAL for browse-mode (blank query).
    """
    EMBEDDING = "embedding"
    KEYWORD = "keyword"
    PROFILE = "profile"
    NEUTRAL = "neutral"


# =======================
# COMMENTARY TYPES
# =======================

class CommentType(str, Enum):
    """Kinds of natural-language commentary the generator can produce."""
    FILTERED = "filtered"
    TASTE = "taste"
    SIMPLE = "simple"
    WINE_DETAILS = "wine_details"
    PAIRING = "pairing"
    OCCASION = "occasion"


# =======================
# COLUMN NAME CONSTANTS
# =======================

class ColumnNames:
    """CSV column names to avoid string hardcoding."""

    ID = "id"
    TITLE = "title"
    VARIETY = "variety"
    COUNTRY = "country"
    REGION = "region"
    WINERY = "winery"
    PRICE = "price"
    RATING = "rating"
    DESCRIPTION = "description"

    # Optional descriptive tags
    FLAVOR_PROFILE = "flavor_profile"
    BODY = "body"
    TANNINS = "tannins"
    ACIDITY = "acidity"
    AROMA = "aroma"

    # Source aliases seen in exported catalogs
    TITLE_ALIASES = ("name",)
    RATING_ALIASES = ("points", "score")
    REGION_ALIASES = ("region_1", "province")
    NUMERIC_COLUMNS = ("price", "points", "rating", "score")

    @classmethod
    def text_index_fields(cls) -> list:
        """Fields concatenated into the inverted text index."""
        return [cls.TITLE, cls.VARIETY, cls.COUNTRY, cls.DESCRIPTION]


# Values that mean "no value" in exported catalogs
UNKNOWN_SENTINELS = frozenset({"", "unknown", "null", "none", "nan", "n/a"})


# =======================
# ALGORITHM CONSTANTS
# =======================

class AlgorithmConstants:
    """
    Algorithm constants with documentation.

    Weights are chosen so that every heuristic score tops out at 1.0
    before clamping.
    """

    # TOKENIZATION
    # Tokens of this length or shorter carry no signal ("a", "of", "de")
    MIN_TOKEN_LENGTH_EXCLUSIVE = 2

    # BROWSE MODE
    NEUTRAL_SCORE = 0.5

    # KEYWORD HEURISTIC (per query token, normalized by token count)
    TITLE_WEIGHT = 0.40
    VARIETY_WEIGHT = 0.25
    COUNTRY_WEIGHT = 0.10
    DESCRIPTION_WEIGHT = 0.10

    # Applied to every post-filter candidate alike, so they never reorder
    FILTER_MATCH_BONUS = 0.03
    HIGH_RATING_THRESHOLD = 90.0
    HIGH_RATING_BONUS = 0.05

    # TASTE PROFILE HEURISTIC
    PROFILE_BASE_SCORE = 0.30
    PROFILE_VARIETY_WEIGHT = 0.25  # divided by (rank + 1)
    PROFILE_COUNTRY_WEIGHT = 0.15  # divided by (rank + 1)
    PROFILE_PRICE_WEIGHT = 0.15
    PROFILE_RATING_WEIGHT = 0.15

    # FACETS
    PRICE_RANGE_FALLBACK: Tuple[float, float] = (10.0, 500.0)

    # RESULT LIMITS
    FILTERED_LIMIT = 20
    SIMPLE_LIMIT = 15
    TASTE_LIMIT = 12
    COMMENTED_TOP_N = 3

    # INGESTION
    MAX_CSV_ROWS = 1000
    PLACEHOLDER_PRICE_RANGE: Tuple[float, float] = (20.0, 120.0)
    PLACEHOLDER_RATING_RANGE: Tuple[float, float] = (80.0, 100.0)
    TITLE_FROM_DESCRIPTION_CHARS = 50

    # COMMENTARY
    BUDGET_PRICE_CEILING = 30.0
    PREMIUM_PRICE_FLOOR = 100.0
    MAX_TEXT_INPUT_LENGTH = 500


# Red-wine markers used by the pairing template
RED_VARIETY_MARKERS = ("red", "cabernet", "merlot", "pinot noir", "syrah", "malbec")
