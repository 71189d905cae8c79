"""
CatalogIndex: the immutable wine collection for one session.

Derives filter facets (countries, varieties, price range), applies hard
filter constraints, resolves ids, and keeps a token -> positions inverted
index over title, variety, country and description.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

import pandas as pd

from vinofind.constants import AlgorithmConstants, ColumnNames, UNKNOWN_SENTINELS
from vinofind.schema import FilterSpec, PriceRange, WineRecord
from vinofind.utils import id_key, tokenize

logger = logging.getLogger(__name__)


def matches_filters(record: WineRecord, filters: Optional[FilterSpec]) -> bool:
    """True when the record satisfies every present field of the filter."""
    if filters is None or filters.is_empty:
        return True

    if filters.variety is not None:
        if filters.variety.lower() not in (record.variety or "").lower():
            return False

    if filters.country is not None:
        if filters.country.lower() not in (record.country or "").lower():
            return False

    if filters.max_price is not None:
        if record.price is None or record.price > filters.max_price:
            return False

    return True


def _distinct_values(df: pd.DataFrame, column: str) -> List[str]:
    """Sorted distinct non-empty values of a column, excluding sentinels."""
    if column not in df.columns:
        return []
    values = df[column].dropna().astype(str).str.strip()
    values = values[~values.str.lower().isin(UNKNOWN_SENTINELS)]
    return sorted(values.unique().tolist())


class CatalogIndex:
    """
    Structural queries over a catalog snapshot.

    Build once per catalog load; afterwards the index is read-only.
    """

    def __init__(self, records: Optional[Iterable[WineRecord]] = None):
        self.records: Tuple[WineRecord, ...] = ()
        self.countries: List[str] = []
        self.varieties: List[str] = []
        lo, hi = AlgorithmConstants.PRICE_RANGE_FALLBACK
        self.price_range: PriceRange = PriceRange(min=lo, max=hi)

        self._positions: Dict[str, int] = {}
        self._inverted: Dict[str, List[int]] = {}
        self._field_tokens: List[Dict[str, FrozenSet[str]]] = []

        if records is not None:
            self.build(records)

    def build(self, records: Iterable[WineRecord]) -> 'CatalogIndex':
        """
        Derive facets and the text index from the record collection.

        Args:
            records: Normalized WineRecords

        Returns:
            self, for chaining
        """
        self.records = tuple(records)
        self._build_facets()
        self._build_text_index()

        logger.info(
            f"Catalog indexed: {len(self.records)} wines, {len(self.countries)} countries, "
            f"{len(self.varieties)} varieties, ${self.price_range.min:.2f}-${self.price_range.max:.2f}, "
            f"{self.vocabulary_size} index terms"
        )
        return self

    def _build_facets(self) -> None:
        df = pd.DataFrame(
            [r.model_dump(include={ColumnNames.COUNTRY, ColumnNames.VARIETY, ColumnNames.PRICE})
             for r in self.records]
        )

        self.countries = _distinct_values(df, ColumnNames.COUNTRY)
        self.varieties = _distinct_values(df, ColumnNames.VARIETY)

        lo, hi = AlgorithmConstants.PRICE_RANGE_FALLBACK
        if ColumnNames.PRICE in df.columns:
            prices = pd.to_numeric(df[ColumnNames.PRICE], errors="coerce")
            prices = prices[prices > 0]
            if not prices.empty:
                lo, hi = float(prices.min()), float(prices.max())
        self.price_range = PriceRange(min=lo, max=hi)

    def _build_text_index(self) -> None:
        self._positions = {}
        self._field_tokens = []
        inverted: Dict[str, List[int]] = defaultdict(list)

        for position, record in enumerate(self.records):
            key = id_key(record.id)
            if key in self._positions:
                logger.warning(f"Duplicate wine id {record.id!r}; lookups resolve to the first")
            else:
                self._positions[key] = position

            fields = {
                field: frozenset(tokenize(getattr(record, field)))
                for field in ColumnNames.text_index_fields()
            }
            self._field_tokens.append(fields)

            for token in frozenset().union(*fields.values()):
                inverted[token].append(position)

        self._inverted = dict(inverted)

    # =======================
    # FILTERING & LOOKUP
    # =======================

    def apply_filters(
        self,
        records: Optional[Sequence[WineRecord]] = None,
        filters: Optional[FilterSpec] = None
    ) -> List[WineRecord]:
        """
        Subsequence of records satisfying every present filter field.

        Never mutates or reorders; an empty list is a valid answer.

        Args:
            records: Records to filter (default: the whole catalog)
            filters: Constraints; None or an empty FilterSpec keeps everything
        """
        if records is None:
            return [r for _, r in self.apply_filters_indexed(filters)]
        return [r for r in records if matches_filters(r, filters)]

    def apply_filters_indexed(
        self,
        filters: Optional[FilterSpec] = None
    ) -> List[Tuple[int, WineRecord]]:
        """
        Catalog records satisfying the filter, paired with their positions.

        Positions identify records even when ids repeat, so scoring can
        read per-record index data without resolving the id again.
        """
        return [
            (position, record)
            for position, record in enumerate(self.records)
            if matches_filters(record, filters)
        ]

    def lookup_by_id(self, wine_id: Any) -> Optional[WineRecord]:
        """Return the record with this id, or None when unknown."""
        position = self.position_of(wine_id)
        return None if position is None else self.records[position]

    def position_of(self, wine_id: Any) -> Optional[int]:
        """Catalog position of a record id, or None when unknown."""
        if wine_id is None:
            return None
        return self._positions.get(id_key(wine_id))

    # =======================
    # TEXT INDEX
    # =======================

    def matching_positions(self, tokens: Iterable[str]) -> Set[int]:
        """Positions of records containing at least one of the tokens."""
        hits: Set[int] = set()
        for token in tokens:
            hits.update(self._inverted.get(token, ()))
        return hits

    def field_tokens(self, position: int) -> Dict[str, FrozenSet[str]]:
        """Per-field token sets for the record at a catalog position."""
        return self._field_tokens[position]

    @property
    def vocabulary_size(self) -> int:
        return len(self._inverted)

    # =======================
    # CONTAINER PROTOCOL
    # =======================

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[WineRecord]:
        return iter(self.records)
