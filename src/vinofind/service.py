"""
Sommelier: application-facing facade over the ranking core.

Wires CatalogIndex, RelevanceRanker and CommentaryGenerator together with
explicit dependency injection, and attaches commentary to copies of ranked
results after ranking.
"""

import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from vinofind.cache import JsonFileCache
from vinofind.catalog import CatalogIndex
from vinofind.commentary import CommentaryGenerator
from vinofind.config import CATALOG_CSV_URL, EMBED_TIMEOUT_SECONDS, EMBEDDINGS_URL
from vinofind.constants import AlgorithmConstants, CommentType
from vinofind.embeddings import Embedder, EmbeddingTable
from vinofind.error_handling import DataLoadError
from vinofind.ingestion import load_catalog
from vinofind.ranker import RelevanceRanker
from vinofind.sample_data import sample_catalog
from vinofind.schema import (
    CommentContext,
    FilterSpec,
    PriceRange,
    RecommendationResponse,
    ScoredWine,
    TasteResponse,
    WineRecord,
    WineSummary,
)
from vinofind.utils import as_id_list

logger = logging.getLogger(__name__)

FilterInput = Union[FilterSpec, Mapping[str, Any], None]


def _coerce_filters(filters: FilterInput) -> FilterSpec:
    if filters is None:
        return FilterSpec()
    if isinstance(filters, FilterSpec):
        return filters
    return FilterSpec.model_validate(dict(filters))


class Sommelier:
    """
    Wine search and recommendation service for one catalog session.

    Example:
        sommelier = Sommelier.from_sources("wines.csv", "embeddings.json")
        response = sommelier.filtered_recommendations("bold red", {"country": "France"})
    """

    def __init__(
        self,
        records: Iterable[WineRecord],
        embeddings: Optional[EmbeddingTable] = None,
        embedder: Optional[Embedder] = None,
        commentator: Optional[CommentaryGenerator] = None,
        embed_timeout: float = EMBED_TIMEOUT_SECONDS
    ):
        """
        Args:
            records: Normalized catalog
            embeddings: Precomputed vectors aligned to the catalog
            embedder: Query embedding capability
            commentator: Commentary collaborator (default: templated only)
            embed_timeout: Seconds to wait for a query embedding
        """
        self.catalog = CatalogIndex(records)
        self.ranker = RelevanceRanker(
            self.catalog,
            embeddings=embeddings,
            embedder=embedder,
            embed_timeout=embed_timeout,
        )
        self.commentator = commentator or CommentaryGenerator()
        logger.info(f"Sommelier ready: {len(self.catalog)} wines, "
                    f"{'API' if self.commentator.uses_api else 'templated'} commentary")

    @classmethod
    def from_sources(
        cls,
        csv_source: Optional[Union[str, Path]] = None,
        embeddings_source: Optional[Union[str, Path]] = None,
        cache: Optional[JsonFileCache] = None,
        embedder: Optional[Embedder] = None,
        commentator: Optional[CommentaryGenerator] = None,
        seed: Optional[int] = None
    ) -> 'Sommelier':
        """
        Load a catalog through the ingestion layer.

        Falls back to the built-in sample catalog when no source is
        configured or the catalog cannot be loaded. Without an explicit
        commentator, commentary uses the OpenAI API when OPENAI_API_KEY is
        set and templates otherwise.
        """
        csv_source = csv_source or CATALOG_CSV_URL
        embeddings_source = embeddings_source or EMBEDDINGS_URL
        commentator = commentator or CommentaryGenerator.from_env(cache)

        if not csv_source:
            logger.warning("No catalog source configured, using built-in sample catalog")
            return cls(sample_catalog(), embedder=embedder, commentator=commentator)

        try:
            snapshot = load_catalog(csv_source, embeddings_source, cache=cache, seed=seed)
        except DataLoadError as e:
            logger.error(f"Catalog load failed: {e}")
            logger.warning("Using built-in sample catalog")
            return cls(sample_catalog(), embedder=embedder, commentator=commentator)

        return cls(
            snapshot.records,
            embeddings=snapshot.embeddings,
            embedder=embedder,
            commentator=commentator,
        )

    # =======================
    # FACETS
    # =======================

    def countries(self) -> List[str]:
        return list(self.catalog.countries)

    def varieties(self) -> List[str]:
        return list(self.catalog.varieties)

    def price_range(self) -> PriceRange:
        return self.catalog.price_range

    # =======================
    # RECOMMENDATIONS
    # =======================

    def filtered_recommendations(self, query: str, filters: FilterInput = None) -> RecommendationResponse:
        """Query search within filters, with an overall comment and top-wine notes."""
        filters = _coerce_filters(filters)
        results = self.ranker.search(query, filters, AlgorithmConstants.FILTERED_LIMIT)

        comment = self.commentator.generate(
            CommentType.FILTERED,
            CommentContext(query=query, filters=filters, recommendations=results),
        )
        return RecommendationResponse(recommendations=self._annotate_top(results), llm_comment=comment)

    def simple_recommendations(self, query: str) -> RecommendationResponse:
        """Unfiltered query search."""
        results = self.ranker.search(query, None, AlgorithmConstants.SIMPLE_LIMIT)

        comment = self.commentator.generate(
            CommentType.SIMPLE,
            CommentContext(query=query, recommendations=results),
        )
        return RecommendationResponse(recommendations=self._annotate_top(results), llm_comment=comment)

    def taste_recommendations(self, selected_ids: Union[Sequence[Any], Any]) -> TasteResponse:
        """Recommendations from the user's selected wines (or a single id)."""
        selected_ids = as_id_list(selected_ids)
        result = self.ranker.recommend_for_selection(selected_ids, AlgorithmConstants.TASTE_LIMIT)

        selected = []
        seen = set()
        for wine_id in selected_ids:
            wine = self.catalog.lookup_by_id(wine_id)
            if wine is not None and wine.id not in seen:
                seen.add(wine.id)
                selected.append(wine)

        comment = self.commentator.generate(
            CommentType.TASTE,
            CommentContext(
                recommendations=result.recommendations,
                profile=result.profile,
                selected_wines=selected,
            ),
        )
        return TasteResponse(
            recommendations=result.recommendations,
            profile=result.profile,
            llm_comment=comment,
        )

    def _annotate_top(self, results: List[ScoredWine]) -> List[ScoredWine]:
        """Copies of the results with WINE_DETAILS comments on the top few."""
        top_n = AlgorithmConstants.COMMENTED_TOP_N
        annotated = [
            wine.with_comment(self.commentator.generate(CommentType.WINE_DETAILS, CommentContext(wine=wine)))
            for wine in results[:top_n]
        ]
        return annotated + list(results[top_n:])

    # =======================
    # SINGLE WINES
    # =======================

    def wine_list(self) -> List[WineSummary]:
        return [WineSummary.from_record(r) for r in self.catalog]

    def get_wine(self, wine_id: Any) -> Optional[WineRecord]:
        return self.catalog.lookup_by_id(wine_id)

    def _resolve(self, wine: Union[WineRecord, Any]) -> Optional[WineRecord]:
        if isinstance(wine, WineRecord):
            return wine
        return self.catalog.lookup_by_id(wine)

    def wine_comment(self, wine: Union[WineRecord, Any]) -> str:
        """Expert notes for one wine (record or id)."""
        return self.commentator.generate(CommentType.WINE_DETAILS, CommentContext(wine=self._resolve(wine)))

    def wine_pairing(self, wine_id: Any) -> str:
        """Food pairing advice; generic advice for an unknown id."""
        wine = self.catalog.lookup_by_id(wine_id)
        if wine is None:
            logger.warning(f"Pairing requested for unknown wine {wine_id!r}")
        return self.commentator.generate(CommentType.PAIRING, CommentContext(wine=wine))

    def wine_occasion(self, wine: Union[WineRecord, Any]) -> str:
        """Occasions that suit one wine (record or id)."""
        return self.commentator.generate(CommentType.OCCASION, CommentContext(wine=self._resolve(wine)))
