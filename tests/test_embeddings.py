"""
Tests for embedding vectors and the OpenAI-backed embedder.
"""

import numpy as np
import pytest

from vinofind.embeddings import (
    EmbeddingTable,
    OpenAIEmbedder,
    cosine_similarity,
    record_embedding_text,
)
from vinofind.error_handling import EmbeddingError
from vinofind.schema import WineRecord


class TestCosineSimilarity:

    def test_identical_vectors(self):
        vec = [8.0, 7.0, 5.0, 2.0, 9.0]
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors_are_negative(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        a = np.array([0.3, 0.1, 0.9])
        assert cosine_similarity(a, a * 7.5) == pytest.approx(1.0)

    def test_symmetric(self):
        a, b = [0.2, 0.5, 0.1], [0.9, 0.1, 0.4]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_unequal_lengths(self):
        assert cosine_similarity([1.0, 0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_empty(self):
        assert cosine_similarity([], []) == 0.0

    def test_within_bounds(self):
        rng = np.random.default_rng(0)
        for _ in range(50):
            a, b = rng.normal(size=8), rng.normal(size=8)
            assert -1.0 <= cosine_similarity(a, b) <= 1.0


class TestEmbeddingTable:
    """Payload shapes and lookup."""

    def test_positional_list(self):
        table = EmbeddingTable.from_payload([[1.0, 0.0], [0.0, 1.0]])

        assert len(table) == 2
        assert table.dimension == 2
        assert table.vector_for("any", 1).tolist() == [0.0, 1.0]
        assert table.vector_for("any", 5) is None
        assert table.vector_for("any") is None

    @pytest.mark.parametrize("wrapper", ["embeddings", "data"])
    def test_wrapped_payload(self, wrapper):
        table = EmbeddingTable.from_payload({wrapper: {"1": [1.0, 2.0]}})
        assert table.vector_for(1).tolist() == [1.0, 2.0]

    def test_id_keyed_mapping(self):
        table = EmbeddingTable.from_payload({"7": [0.5, 0.5], "abc": [1.0, 0.0]})

        assert table.vector_for(7).tolist() == [0.5, 0.5]
        assert table.vector_for("7").tolist() == [0.5, 0.5]
        assert table.vector_for("abc").tolist() == [1.0, 0.0]

    def test_id_keyed_rows(self):
        table = EmbeddingTable.from_payload([
            {"id": 1, "embedding": [1.0, 0.0]},
            {"id": 2, "vector": [0.0, 1.0]},
            {"embedding": [9.0, 9.0]},
        ])

        assert len(table) == 2
        assert table.vector_for(2).tolist() == [0.0, 1.0]

    def test_id_takes_precedence_over_position(self):
        table = EmbeddingTable(by_id={1: [1.0, 0.0]}, by_position=[[0.0, 1.0]])

        assert table.vector_for(1, 0).tolist() == [1.0, 0.0]
        assert table.vector_for(2, 0).tolist() == [0.0, 1.0]

    def test_unusable_entries_mean_no_embedding(self):
        table = EmbeddingTable.from_payload([[1.0, 0.0], None, [], ["x", "y"], [float("nan"), 1.0]])

        assert len(table) == 1
        assert table.vector_for(None, 1) is None
        assert table.vector_for(None, 4) is None

    @pytest.mark.parametrize("payload", ["text", 42, None, {"1": "not a vector"}])
    def test_unrecognized_payloads(self, payload):
        assert EmbeddingTable.from_payload(payload) is None

    def test_empty_table_is_falsy(self):
        assert not EmbeddingTable()
        assert EmbeddingTable().dimension is None

    def test_to_payload_reloads(self):
        table = EmbeddingTable(by_id={3: [0.1, 0.2]})
        reloaded = EmbeddingTable.from_payload(table.to_payload())
        assert reloaded.vector_for(3).tolist() == [0.1, 0.2]

    def test_select_positions(self):
        table = EmbeddingTable(by_position=[[9.0, 9.0], [1.0, 0.0], [0.0, 1.0]])
        selected = table.select_positions([1, 2, 7])

        assert selected.vector_for("a", 0).tolist() == [1.0, 0.0]
        assert selected.vector_for("b", 1).tolist() == [0.0, 1.0]
        assert selected.vector_for("c", 2) is None
        assert len(selected) == 2

    def test_select_positions_keeps_id_keyed_table(self):
        table = EmbeddingTable(by_id={1: [1.0, 0.0]})
        assert table.select_positions([5]) is table


class TestOpenAIEmbedder:

    def test_embed_returns_vector(self, fake_embeddings_client):
        client = fake_embeddings_client(vector=[0.1, 0.2, 0.3])
        embedder = OpenAIEmbedder(client=client, model="test-model")

        vector = embedder.embed("bold red")

        assert vector.tolist() == [0.1, 0.2, 0.3]
        assert client.calls == [("test-model", "bold red")]

    def test_api_failure_raises_embedding_error(self, fake_embeddings_client):
        embedder = OpenAIEmbedder(client=fake_embeddings_client(error=ConnectionError("down")))

        with pytest.raises(EmbeddingError):
            embedder.embed("bold red")

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr("vinofind.embeddings.OPENAI_API_KEY", None)
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            OpenAIEmbedder()

    def test_embed_catalog(self, two_wines, fake_embeddings_client):
        embedder = OpenAIEmbedder(client=fake_embeddings_client(vector=[1.0, 0.0]))

        table = embedder.embed_catalog(two_wines)

        assert len(table) == 2
        assert table.vector_for(1).tolist() == [1.0, 0.0]

    def test_embed_catalog_skips_failures(self, two_wines, fake_embeddings_client):
        embedder = OpenAIEmbedder(client=fake_embeddings_client(error=RuntimeError("boom")))

        table = embedder.embed_catalog(two_wines)

        assert len(table) == 0
        assert table.vector_for(1) is None


def test_record_embedding_text_skips_missing_fields():
    record = WineRecord(id=1, title="Merlot Classic", variety="Merlot", description="Plum notes")
    assert record_embedding_text(record) == "Merlot Classic. Merlot. Plum notes"
