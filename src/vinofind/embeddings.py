"""
Embedding vectors and the embedding capability.

- EmbeddingTable: optional id-keyed (or positional) lookup of precomputed
  wine vectors, aligned to the catalog at load time
- cosine_similarity: directional alignment of two vectors
- Embedder: the single-call "text -> vector" capability the ranker consumes
- OpenAIEmbedder: Embedder backed by the OpenAI embeddings endpoint
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

import numpy as np
from openai import OpenAI

from vinofind.config import EMBEDDING_MODEL, EMBED_TIMEOUT_SECONDS, OPENAI_API_KEY
from vinofind.error_handling import EmbeddingError
from vinofind.schema import WineRecord
from vinofind.utils import id_key

logger = logging.getLogger(__name__)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two vectors

    Formula: cos(θ) = (A · B) / (||A|| ||B||)

    Returns the signed value in [-1, 1]. Vectors of unequal length and
    zero vectors compare as 0.0.
    """
    vec_a = np.asarray(vec_a, dtype=float).ravel()
    vec_b = np.asarray(vec_b, dtype=float).ravel()

    if vec_a.shape != vec_b.shape or vec_a.size == 0:
        return 0.0

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = np.dot(vec_a, vec_b) / (norm_a * norm_b)

    # Floating point can overshoot by an ulp
    return float(np.clip(similarity, -1.0, 1.0))


def _as_vector(raw: Any) -> Optional[np.ndarray]:
    """Coerce a raw JSON vector into a finite 1-D float array, or None."""
    if raw is None:
        return None
    try:
        vec = np.asarray(raw, dtype=float).ravel()
    except (TypeError, ValueError):
        return None
    if vec.size == 0 or not np.all(np.isfinite(vec)):
        return None
    return vec


class EmbeddingTable:
    """
    Precomputed wine vectors keyed by record id, with positional fallback.

    A missing or unusable entry means "no embedding for this record"; it is
    never an error.
    """

    def __init__(
        self,
        by_id: Optional[Mapping[Any, Any]] = None,
        by_position: Optional[Sequence[Any]] = None
    ):
        self._by_id: Dict[str, np.ndarray] = {}
        self._by_position: List[Optional[np.ndarray]] = []

        for key, raw in (by_id or {}).items():
            vec = _as_vector(raw)
            if vec is not None:
                self._by_id[id_key(key)] = vec

        for raw in (by_position or []):
            self._by_position.append(_as_vector(raw))

        lengths = {v.size for v in self._by_id.values()}
        lengths.update(v.size for v in self._by_position if v is not None)
        if len(lengths) > 1:
            logger.warning(f"Embedding table mixes vector lengths {sorted(lengths)}; "
                           "mismatched pairs will score 0")
        self.dimension: Optional[int] = max(lengths) if lengths else None

    @classmethod
    def from_payload(cls, payload: Any) -> Optional['EmbeddingTable']:
        """
        Build a table from a decoded embeddings JSON document.

        Accepted shapes:
            [[...], [...]]                      positional vectors
            {"embeddings": ...} / {"data": ...}  wrapped, either shape
            {"<id>": [...], ...}                id-keyed vectors
            [{"id": ..., "embedding": [...]}]   id-keyed rows

        Returns:
            EmbeddingTable, or None when the shape is not recognized
        """
        if isinstance(payload, Mapping):
            for wrapper_key in ("embeddings", "data"):
                if wrapper_key in payload:
                    return cls.from_payload(payload[wrapper_key])
            if payload and all(_as_vector(v) is not None for v in payload.values()):
                return cls(by_id=payload)
            return None

        if isinstance(payload, list):
            if payload and all(isinstance(row, Mapping) for row in payload):
                rows = {
                    row.get("id"): row.get("embedding", row.get("vector"))
                    for row in payload
                    if row.get("id") is not None
                }
                return cls(by_id=rows)
            return cls(by_position=payload)

        return None

    def to_payload(self) -> Dict[str, Any]:
        """JSON-serializable form accepted by from_payload."""
        if self._by_id:
            return {"embeddings": {k: v.tolist() for k, v in self._by_id.items()}}
        return {"embeddings": [None if v is None else v.tolist() for v in self._by_position]}

    def select_positions(self, rows: Sequence[int]) -> 'EmbeddingTable':
        """
        Re-index positional vectors onto a subset of source rows.

        Entry i of the result is entry rows[i] of this table. Id-keyed
        vectors carry over unchanged.
        """
        if not self._by_position:
            return self
        picked = [
            self._by_position[row] if 0 <= row < len(self._by_position) else None
            for row in rows
        ]
        return EmbeddingTable(by_id=self._by_id, by_position=picked)

    def vector_for(self, record_id: Any, position: Optional[int] = None) -> Optional[np.ndarray]:
        """
        Look up a record's vector by id, falling back to catalog position.

        Args:
            record_id: WineRecord.id
            position: Index of the record in the catalog the table was aligned to

        Returns:
            Vector or None when this record has no embedding
        """
        vec = self._by_id.get(id_key(record_id))
        if vec is not None:
            return vec
        if position is not None and 0 <= position < len(self._by_position):
            return self._by_position[position]
        return None

    def __len__(self) -> int:
        return len(self._by_id) + sum(v is not None for v in self._by_position)

    def __bool__(self) -> bool:
        return len(self) > 0


class Embedder(Protocol):
    """
    Text-to-vector capability. May raise; callers degrade on failure.

    Implementations must enforce their own request timeout. The ranker stops
    waiting after its embed timeout but cannot interrupt a running call.
    """

    def embed(self, text: str) -> Sequence[float]:
        ...


def record_embedding_text(record: WineRecord) -> str:
    """Compact profile text used when embedding a catalog record."""
    parts = [
        record.title,
        record.variety,
        record.country,
        record.region,
        record.flavor_profile,
        record.aroma,
        record.description,
    ]
    return ". ".join(p for p in parts if p)


class OpenAIEmbedder:
    """Embedder backed by the OpenAI embeddings API."""

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: str = EMBEDDING_MODEL,
        timeout: float = EMBED_TIMEOUT_SECONDS
    ):
        """
        Args:
            client: Preconfigured OpenAI client. Built from OPENAI_API_KEY if None.
            model: Embedding model name
            timeout: Per-request timeout in seconds
        """
        if client is None:
            if not OPENAI_API_KEY:
                raise ValueError("OPENAI_API_KEY not found in environment variables")
            client = OpenAI(api_key=OPENAI_API_KEY, timeout=timeout, max_retries=0)

        self.client = client
        self.model = model

    def embed(self, text: str) -> np.ndarray:
        """
        Embed a single text.

        Raises:
            EmbeddingError: on any API failure or empty response
        """
        try:
            response = self.client.embeddings.create(model=self.model, input=text)
            vector = np.asarray(response.data[0].embedding, dtype=float)
        except Exception as e:
            raise EmbeddingError(f"Embedding request failed: {type(e).__name__} - {e}") from e

        logger.debug(f"Embedded {len(text)} chars into {vector.size} dims")
        return vector

    def embed_catalog(self, records: Sequence[WineRecord]) -> EmbeddingTable:
        """
        Precompute an id-keyed table for a catalog.

        Records whose request fails are left out of the table and will be
        scored by the keyword heuristic.
        """
        vectors = {}
        for record in records:
            try:
                vectors[record.id] = self.embed(record_embedding_text(record))
            except EmbeddingError as e:
                logger.warning(f"Skipping embedding for wine {record.id}: {e}")
        logger.info(f"Embedded {len(vectors)}/{len(records)} catalog records")
        return EmbeddingTable(by_id=vectors)
