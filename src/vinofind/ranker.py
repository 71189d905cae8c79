"""
RelevanceRanker: scored, capped result lists for query search and
taste-based recommendation.

Scoring strategy is picked per call and per record from data availability:

- EMBEDDING: cosine similarity, when the record has an aligned vector and
  the other side (query vector, or at least one selected wine) does too
- KEYWORD: weighted token overlap with the query (search fallback)
- PROFILE: closeness to the PreferenceProfile (taste fallback)
- NEUTRAL: flat 0.5 for browse mode (blank query)

All recoverable failures on the scoring path are absorbed here. A failing
or slow embedder degrades the whole query to KEYWORD scoring; a missing
vector degrades that single record.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from vinofind.catalog import CatalogIndex
from vinofind.config import EMBED_TIMEOUT_SECONDS
from vinofind.constants import AlgorithmConstants, ColumnNames, ScoringStrategy
from vinofind.embeddings import Embedder, EmbeddingTable, cosine_similarity
from vinofind.preferences import PreferenceAnalyzer
from vinofind.schema import (
    FilterSpec,
    PreferenceProfile,
    ScoredWine,
    TasteRecommendations,
    WineRecord,
)
from vinofind.utils import as_id_list, clamp, id_key, safe_divide, tokenize

logger = logging.getLogger(__name__)

_FIELD_WEIGHTS = (
    (ColumnNames.TITLE, AlgorithmConstants.TITLE_WEIGHT),
    (ColumnNames.VARIETY, AlgorithmConstants.VARIETY_WEIGHT),
    (ColumnNames.COUNTRY, AlgorithmConstants.COUNTRY_WEIGHT),
    (ColumnNames.DESCRIPTION, AlgorithmConstants.DESCRIPTION_WEIGHT),
)


def keyword_score(
    field_tokens: Dict[str, FrozenSet[str]],
    query_tokens: Sequence[str],
    rating: Optional[float] = None,
    active_filters: int = 0
) -> float:
    """
    Weighted keyword-overlap score in [0, 1].

    Each query token earns the weight of every field it appears in (title
    highest, variety medium, country and description lowest); the total is
    normalized by the number of query tokens. Small fixed bonuses follow for
    each active filter and for a rating above the high-rating threshold.
    """
    hits = 0.0
    for token in query_tokens:
        for field, weight in _FIELD_WEIGHTS:
            if token in field_tokens.get(field, ()):
                hits += weight

    score = safe_divide(hits, len(query_tokens))
    score += AlgorithmConstants.FILTER_MATCH_BONUS * active_filters
    if rating is not None and rating > AlgorithmConstants.HIGH_RATING_THRESHOLD:
        score += AlgorithmConstants.HIGH_RATING_BONUS

    return clamp(score)


def _rank_bonus(value: Optional[str], ranked: Iterable[str], weight: float) -> float:
    """weight / (rank + 1) for the first case-insensitive match, else 0."""
    if not value:
        return 0.0
    value = value.lower()
    for rank, candidate in enumerate(ranked):
        if candidate.lower() == value:
            return weight / (rank + 1)
    return 0.0


def _closeness(value: Optional[float], target: float) -> float:
    """1 at the target, falling linearly to 0 at 100% relative distance."""
    if not value or target <= 0:
        return 0.0
    return max(0.0, 1.0 - safe_divide(abs(value - target), target))


def profile_score(record: WineRecord, profile: PreferenceProfile) -> float:
    """
    Taste-profile similarity heuristic in [0, 1].

    Base value, plus a variety bonus decaying with the variety's rank in the
    profile, a smaller country bonus decaying the same way, and bonuses
    inversely proportional to the relative price and rating distance from
    the profile averages.
    """
    score = AlgorithmConstants.PROFILE_BASE_SCORE
    score += _rank_bonus(
        record.variety,
        (v.variety for v in profile.favorite_varieties),
        AlgorithmConstants.PROFILE_VARIETY_WEIGHT,
    )
    score += _rank_bonus(
        record.country,
        (c.country for c in profile.preferred_countries),
        AlgorithmConstants.PROFILE_COUNTRY_WEIGHT,
    )
    score += AlgorithmConstants.PROFILE_PRICE_WEIGHT * _closeness(record.price, profile.average_price)
    score += AlgorithmConstants.PROFILE_RATING_WEIGHT * _closeness(record.rating, profile.average_rating)
    return clamp(score)


def _rank(scored: List[ScoredWine], limit: int) -> List[ScoredWine]:
    """Descending by score; ties keep catalog order (sorted() is stable)."""
    return sorted(scored, key=lambda wine: -wine.similarity_score)[:limit]


class RelevanceRanker:
    """
    Query search and multi-item taste recommendation over a CatalogIndex.

    Collaborators are injected; none are looked up globally.
    """

    def __init__(
        self,
        catalog: CatalogIndex,
        embeddings: Optional[EmbeddingTable] = None,
        embedder: Optional[Embedder] = None,
        analyzer: Optional[PreferenceAnalyzer] = None,
        embed_timeout: float = EMBED_TIMEOUT_SECONDS
    ):
        """
        Args:
            catalog: Built CatalogIndex
            embeddings: Precomputed vectors aligned to the catalog
            embedder: Query embedding capability, used only by search()
            analyzer: Taste profile builder (default PreferenceAnalyzer())
            embed_timeout: Seconds to wait for the embedder before falling back

        The embedder runs on a single worker thread owned by the ranker. A
        call that outlives embed_timeout keeps that worker busy, so the
        embedder must bound its own requests (OpenAIEmbedder passes a
        client timeout).
        """
        self.catalog = catalog
        self.embeddings = embeddings if embeddings else None
        self.embedder = embedder
        self.analyzer = analyzer or PreferenceAnalyzer()
        self.embed_timeout = embed_timeout
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def can_embed_queries(self) -> bool:
        return self.embeddings is not None and self.embedder is not None

    def _vector_for(self, record: WineRecord, position: Optional[int]) -> Optional[np.ndarray]:
        if self.embeddings is None:
            return None
        return self.embeddings.vector_for(record.id, position)

    def _embed_query(self, query: str) -> Optional[np.ndarray]:
        """
        Embed the query under a timeout.

        Returns:
            Query vector, or None when the embedder failed, timed out or
            returned something unusable. Never raises.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vinofind-embed")

        try:
            future = self._executor.submit(self.embedder.embed, query)
            vector = np.asarray(future.result(timeout=self.embed_timeout), dtype=float).ravel()
        except FutureTimeoutError:
            future.cancel()
            logger.warning(f"Query embedding timed out after {self.embed_timeout}s, "
                           "falling back to keyword scoring")
            return None
        except Exception as e:
            logger.warning(f"Query embedding failed ({type(e).__name__}: {e}), "
                           "falling back to keyword scoring")
            return None

        if vector.size == 0 or not np.all(np.isfinite(vector)):
            logger.warning("Query embedding was empty or non-finite, falling back to keyword scoring")
            return None
        return vector

    # =======================
    # QUERY SEARCH
    # =======================

    def search(
        self,
        query: Optional[str] = "",
        filters: Optional[FilterSpec] = None,
        limit: int = AlgorithmConstants.FILTERED_LIMIT
    ) -> List[ScoredWine]:
        """
        Rank catalog wines against a free-text query within hard filters.

        Args:
            query: Free text; blank means "browse within filters"
            filters: Hard constraints applied before scoring
            limit: Maximum number of results

        Returns:
            At most `limit` ScoredWines, by non-increasing score
        """
        filters = filters or FilterSpec()
        limit = max(0, int(limit))
        candidates = self.catalog.apply_filters_indexed(filters)
        query = (query or "").strip()

        if not query:
            return self._neutral(candidates, limit)

        query_vector = self._embed_query(query) if self.can_embed_queries else None
        tokens = list(dict.fromkeys(tokenize(query)))

        if query_vector is None and not tokens:
            logger.debug(f"Query {query!r} has no usable tokens, browsing instead")
            return self._neutral(candidates, limit)

        keyword_hits = self.catalog.matching_positions(tokens)
        active_filters = filters.active_field_count()

        scored = []
        for position, record in candidates:
            vector = self._vector_for(record, position) if query_vector is not None else None
            if vector is not None:
                scored.append(ScoredWine.from_record(
                    record, cosine_similarity(query_vector, vector), ScoringStrategy.EMBEDDING
                ))
                continue

            field_tokens = self.catalog.field_tokens(position) if position in keyword_hits else {}
            score = keyword_score(field_tokens, tokens, record.rating, active_filters)
            scored.append(ScoredWine.from_record(record, score, ScoringStrategy.KEYWORD))

        results = _rank(scored, limit)
        logger.debug(f"search({query!r}) scored {len(scored)} candidates, returning {len(results)}")
        return results

    def _neutral(self, candidates: Sequence[Tuple[int, WineRecord]], limit: int) -> List[ScoredWine]:
        return [
            ScoredWine.from_record(r, AlgorithmConstants.NEUTRAL_SCORE, ScoringStrategy.NEUTRAL)
            for _, r in candidates[:limit]
        ]

    # =======================
    # TASTE RECOMMENDATION
    # =======================

    def recommend_for_selection(
        self,
        selected_ids: Optional[Iterable[Any]],
        limit: int = AlgorithmConstants.TASTE_LIMIT
    ) -> TasteRecommendations:
        """
        Rank the rest of the catalog by affinity to a set of selected wines.

        Unknown ids are dropped silently. Selected wines are never
        recommended back.

        Args:
            selected_ids: Ids of wines the user picked; a single id is accepted
            limit: Maximum number of recommendations

        Returns:
            TasteRecommendations; empty recommendations and the empty
            profile when nothing resolves
        """
        limit = max(0, int(limit))

        selected_positions = set()
        for wine_id in as_id_list(selected_ids):
            position = self.catalog.position_of(wine_id)
            if position is None:
                logger.debug(f"Ignoring unknown wine id {wine_id!r} in selection")
                continue
            selected_positions.add(position)

        if not selected_positions:
            return TasteRecommendations(recommendations=[], profile=PreferenceProfile.empty())

        # Catalog order keeps profile tie-breaking deterministic
        ordered_positions = sorted(selected_positions)
        selected = [self.catalog.records[p] for p in ordered_positions]
        profile = self.analyzer.analyze(selected)
        selected_keys = {id_key(r.id) for r in selected}

        selected_vectors = []
        for position, record in zip(ordered_positions, selected):
            vector = self._vector_for(record, position)
            if vector is not None:
                selected_vectors.append(vector)

        scored = []
        for position, record in enumerate(self.catalog.records):
            if position in selected_positions or id_key(record.id) in selected_keys:
                continue

            vector = self._vector_for(record, position) if selected_vectors else None
            if vector is not None:
                score = float(np.mean([cosine_similarity(vector, s) for s in selected_vectors]))
                scored.append(ScoredWine.from_record(record, score, ScoringStrategy.EMBEDDING))
            else:
                scored.append(ScoredWine.from_record(
                    record, profile_score(record, profile), ScoringStrategy.PROFILE
                ))

        results = _rank(scored, limit)
        logger.info(f"Taste recommendations: {len(selected)} selected, "
                    f"{len(scored)} candidates, returning {len(results)}")
        return TasteRecommendations(recommendations=results, profile=profile)
