"""
Catalog ingestion: CSV wine exports and precomputed embedding documents.

Turns loosely-typed exports into validated WineRecords so the ranking core
never has to guess at schemas. Missing prices and ratings get a synthetic
in-range placeholder here, upstream of the core.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
import requests
from pydantic import ValidationError

from vinofind.cache import JsonFileCache
from vinofind.constants import AlgorithmConstants, ColumnNames
from vinofind.embeddings import EmbeddingTable
from vinofind.error_handling import DataLoadError, ErrorContext
from vinofind.schema import WineRecord

logger = logging.getLogger(__name__)

Source = Union[str, Path]


@dataclass
class CatalogSnapshot:
    """Everything one catalog load produced."""
    records: List[WineRecord]
    embeddings: Optional[EmbeddingTable] = None
    source: str = ""
    from_cache: bool = False


def _is_url(source: Source) -> bool:
    return str(source).startswith(("http://", "https://"))


def _to_float(value: Any) -> float:
    """Parse a numeric cell; anything unparseable counts as 0."""
    try:
        number = float(str(value).replace("$", "").replace(",", "").strip())
    except (TypeError, ValueError):
        return 0.0
    return number if np.isfinite(number) else 0.0


def _clean_cell(value: Any) -> Any:
    """Strip strings; short rows come back from pandas padded with NaN."""
    if isinstance(value, float) and not np.isfinite(value):
        return ""
    return value.strip() if isinstance(value, str) else value


def _parse_id(value: Any, row_number: int) -> Union[int, str]:
    text = str(value).strip() if value is not None else ""
    if not text:
        return row_number
    try:
        number = float(text)
    except ValueError:
        return text
    return int(number) if number.is_integer() else text


def _first_present(row: Dict[str, Any], keys) -> Any:
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_row(
    row: Dict[str, Any],
    row_number: int,
    rng: np.random.Generator
) -> Optional[Dict[str, Any]]:
    """
    Map one raw CSV row onto WineRecord fields.

    Args:
        row: Raw cells keyed by header
        row_number: 1-based data row number, used as id fallback
        rng: Source of placeholder prices and ratings

    Returns:
        Field dict ready for WineRecord validation, or None if the row has
        no usable title
    """
    row = {
        str(k).strip().strip('"').lower(): _clean_cell(v)
        for k, v in row.items()
    }

    for column in ColumnNames.NUMERIC_COLUMNS:
        if column in row:
            row[column] = _to_float(row[column])

    description = row.get(ColumnNames.DESCRIPTION) or ""
    title = _first_present(row, (ColumnNames.TITLE,) + ColumnNames.TITLE_ALIASES)
    if not title and description:
        title = description[:AlgorithmConstants.TITLE_FROM_DESCRIPTION_CHARS] + "..."
    if not title:
        return None

    price = row.get(ColumnNames.PRICE) or 0.0
    if price <= 0:
        price = round(float(rng.uniform(*AlgorithmConstants.PLACEHOLDER_PRICE_RANGE)), 2)

    rating = next(
        (row[c] for c in (ColumnNames.RATING,) + ColumnNames.RATING_ALIASES if row.get(c, 0) > 0),
        0.0,
    )
    if rating <= 0:
        rating = round(float(rng.uniform(*AlgorithmConstants.PLACEHOLDER_RATING_RANGE)), 1)

    return {
        ColumnNames.ID: _parse_id(row.get(ColumnNames.ID), row_number),
        ColumnNames.TITLE: title,
        ColumnNames.VARIETY: row.get(ColumnNames.VARIETY),
        ColumnNames.COUNTRY: row.get(ColumnNames.COUNTRY),
        ColumnNames.REGION: _first_present(row, (ColumnNames.REGION,) + ColumnNames.REGION_ALIASES),
        ColumnNames.WINERY: row.get(ColumnNames.WINERY),
        ColumnNames.PRICE: price,
        ColumnNames.RATING: rating,
        ColumnNames.DESCRIPTION: description,
        ColumnNames.FLAVOR_PROFILE: row.get(ColumnNames.FLAVOR_PROFILE),
        ColumnNames.BODY: row.get(ColumnNames.BODY),
        ColumnNames.TANNINS: row.get(ColumnNames.TANNINS),
        ColumnNames.ACIDITY: row.get(ColumnNames.ACIDITY),
        ColumnNames.AROMA: row.get(ColumnNames.AROMA),
    }


def validate_rows(
    df: pd.DataFrame,
    seed: Optional[int] = None
) -> Tuple[List[WineRecord], List[int]]:
    """
    Validate every row of a raw catalog frame into WineRecords.

    Rows without a title, or that fail validation, are skipped with a
    warning rather than failing the load.

    Returns:
        (records, kept_rows): kept_rows[i] is the 0-based frame row that
        produced records[i], used to realign positional data to the catalog
    """
    rng = np.random.default_rng(seed)
    records = []
    kept_rows = []

    for index, row in enumerate(df.to_dict("records")):
        row_number = index + 1
        fields = normalize_row(row, row_number, rng)
        if fields is None:
            logger.debug(f"Skipping row {row_number}: no title")
            continue
        try:
            records.append(WineRecord.model_validate(fields))
        except ValidationError as e:
            logger.warning(f"Skipping row {row_number}: {e.error_count()} validation error(s)")
            continue
        kept_rows.append(index)

    return records, kept_rows


def records_from_dataframe(df: pd.DataFrame, seed: Optional[int] = None) -> List[WineRecord]:
    """Validated WineRecords for a raw catalog frame; see validate_rows."""
    return validate_rows(df, seed=seed)[0]


def load_catalog_csv(
    source: Source,
    max_rows: int = AlgorithmConstants.MAX_CSV_ROWS,
    seed: Optional[int] = None
) -> List[WineRecord]:
    """
    Load and normalize a wine catalog CSV from a path or URL.

    Args:
        source: Local path or http(s) URL
        max_rows: Cap on data rows read
        seed: Seed for placeholder prices/ratings (None = nondeterministic)

    Returns:
        Validated WineRecords in file order

    Raises:
        DataLoadError: if the file cannot be read or yields no wines
    """
    return _read_catalog_csv(source, max_rows, seed)[0]


def _read_catalog_csv(
    source: Source,
    max_rows: int,
    seed: Optional[int]
) -> Tuple[List[WineRecord], List[int]]:
    try:
        df = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            nrows=max_rows,
            skipinitialspace=True,
        )
    except (OSError, ValueError) as e:
        raise DataLoadError(f"Could not read catalog CSV from {source}: {e}") from e

    records, kept_rows = validate_rows(df, seed=seed)
    logger.info(f"Parsed catalog CSV: {len(records)} wines from {len(df)} rows")

    if not records:
        raise DataLoadError(f"Catalog CSV at {source} contains no usable wines")
    return records, kept_rows


def load_embeddings_json(source: Source, timeout: float = 30.0) -> Optional[EmbeddingTable]:
    """
    Load precomputed embeddings from a JSON file or URL.

    Returns:
        EmbeddingTable, or None when the document shape is not recognized

    Raises:
        DataLoadError: if the document cannot be fetched or decoded
    """
    try:
        if _is_url(source):
            response = requests.get(str(source), timeout=timeout)
            response.raise_for_status()
            payload = response.json()
        else:
            with open(source, "r", encoding="utf-8") as f:
                payload = json.load(f)
    except (OSError, ValueError, requests.RequestException) as e:
        raise DataLoadError(f"Could not load embeddings from {source}: {e}") from e

    table = EmbeddingTable.from_payload(payload)
    if table is None:
        logger.warning(f"Unrecognized embeddings format in {source}, ignoring")
        return None

    logger.info(f"Loaded {len(table)} embeddings ({table.dimension} dims)")
    return table


def load_catalog(
    csv_source: Source,
    embeddings_source: Optional[Source] = None,
    cache: Optional[JsonFileCache] = None,
    seed: Optional[int] = None
) -> CatalogSnapshot:
    """
    Load a catalog snapshot, reusing a cached one while it is fresh.

    Embeddings are optional: any failure loading them leaves the snapshot
    without vectors instead of failing the load.

    Raises:
        DataLoadError: if the catalog itself cannot be loaded
    """
    cache_key = f"{csv_source}|{embeddings_source or ''}"

    if cache is not None:
        with ErrorContext(
            "reading cached catalog",
            fallback_value=False,
            recoverable=(KeyError, TypeError, ValueError),
        ):
            cached = cache.get(cache_key, namespace="catalog")
            if cached:
                records = [WineRecord.model_validate(r) for r in cached["records"]]
                embeddings = (
                    EmbeddingTable.from_payload(cached["embeddings"])
                    if cached.get("embeddings") else None
                )
                logger.info(f"Catalog loaded from cache: {len(records)} wines")
                return CatalogSnapshot(records, embeddings, str(csv_source), from_cache=True)

    records, kept_rows = _read_catalog_csv(csv_source, AlgorithmConstants.MAX_CSV_ROWS, seed)

    embeddings = None
    if embeddings_source:
        try:
            embeddings = load_embeddings_json(embeddings_source)
        except DataLoadError as e:
            logger.warning(f"Embeddings not loaded, keyword scoring only: {e}")

    if embeddings is not None:
        # Positional vectors follow CSV rows, not the records that survived validation
        embeddings = embeddings.select_positions(kept_rows)

    if cache is not None:
        cache.set(
            cache_key,
            {
                "records": [r.model_dump(mode="json") for r in records],
                "embeddings": embeddings.to_payload() if embeddings else None,
            },
            namespace="catalog",
        )

    return CatalogSnapshot(records, embeddings, str(csv_source))
