"""
Tests for the Sommelier facade.
"""

import pytest

from vinofind.commentary import CommentaryGenerator
from vinofind.constants import ScoringStrategy
from vinofind.embeddings import EmbeddingTable
from vinofind.sample_data import sample_catalog
from vinofind.schema import FilterSpec
from vinofind.service import Sommelier


@pytest.fixture
def sommelier(demo_wines):
    return Sommelier(demo_wines)


class TestFacets:

    def test_facets_match_catalog(self, sommelier):
        assert "France" in sommelier.countries()
        assert "Cabernet Sauvignon" in sommelier.varieties()
        price_range = sommelier.price_range()
        assert price_range.min <= 28.50
        assert price_range.max >= 125.99

    def test_facet_lists_are_copies(self, sommelier):
        sommelier.countries().append("Atlantis")
        assert "Atlantis" not in sommelier.countries()


class TestRecommendations:

    def test_filtered_recommendations(self, sommelier):
        response = sommelier.filtered_recommendations("cabernet", {"country": "france", "maxPrice": 200})

        assert response.recommendations
        assert all("france" in w.country.lower() for w in response.recommendations)
        assert all(w.price <= 200 for w in response.recommendations)
        assert len(response.recommendations) <= 20
        assert response.llm_comment

    def test_filtered_accepts_filter_spec(self, sommelier):
        response = sommelier.filtered_recommendations("", FilterSpec(variety="Chardonnay"))
        assert all("chardonnay" in w.variety.lower() for w in response.recommendations)
        assert all(w.strategy == ScoringStrategy.NEUTRAL for w in response.recommendations)

    def test_malformed_filter_values_ignored(self, sommelier):
        response = sommelier.filtered_recommendations("", {"maxPrice": "cheap", "variety": ""})
        assert len(response.recommendations) == 20

    def test_top_results_get_comments(self, sommelier):
        response = sommelier.simple_recommendations("red wine")

        recs = response.recommendations
        assert len(recs) == 15
        assert all(w.comment for w in recs[:3])
        assert all(w.comment is None for w in recs[3:])

    def test_comments_do_not_leak_into_ranker_results(self, sommelier):
        sommelier.simple_recommendations("red wine")
        assert all(w.comment is None for w in sommelier.ranker.search("red wine", None, 15))

    def test_no_matches(self, sommelier):
        response = sommelier.filtered_recommendations("cabernet", {"country": "Atlantis"})
        assert response.recommendations == []
        assert "No wines matched" in response.llm_comment

    def test_taste_recommendations(self, sommelier):
        response = sommelier.taste_recommendations([1, 3])

        returned = {w.id for w in response.recommendations}
        assert len(response.recommendations) == 12
        assert not returned & {1, 3}
        assert response.profile.n_selected == 2
        assert response.llm_comment

    def test_taste_with_single_string_id(self, sommelier):
        response = sommelier.taste_recommendations("12")

        assert response.profile.n_selected == 1
        assert 12 not in {w.id for w in response.recommendations}
        assert response.profile.favorite_varieties[0].variety == sommelier.get_wine(12).variety

    def test_taste_with_generator_of_ids(self, sommelier):
        response = sommelier.taste_recommendations(i for i in (1, 3))
        assert response.profile.n_selected == 2

    def test_taste_with_unknown_ids(self, sommelier):
        response = sommelier.taste_recommendations([999])
        assert response.recommendations == []
        assert response.profile.is_empty

    def test_commentator_is_injected(self, demo_wines, fake_chat_client):
        client = fake_chat_client(content="Try the Bordeaux.")
        sommelier = Sommelier(demo_wines, commentator=CommentaryGenerator(client=client))

        response = sommelier.simple_recommendations("bordeaux")

        assert response.llm_comment == "Try the Bordeaux."
        assert response.recommendations[0].comment == "Try the Bordeaux."

    def test_embeddings_flow_through(self, two_wines, fake_embedder):
        sommelier = Sommelier(
            two_wines,
            embeddings=EmbeddingTable({1: [1.0, 0.0], 2: [0.0, 1.0]}),
            embedder=fake_embedder(default=[0.0, 1.0]),
        )

        response = sommelier.simple_recommendations("something white")

        assert [w.id for w in response.recommendations] == [2, 1]
        assert response.recommendations[0].strategy == ScoringStrategy.EMBEDDING


class TestSingleWines:

    def test_wine_list(self, sommelier, demo_wines):
        listing = sommelier.wine_list()
        assert len(listing) == len(demo_wines)
        assert listing[0].name == "Cabernet Sauvignon Reserve 2018"

    def test_get_wine(self, sommelier):
        assert sommelier.get_wine("2").variety == "Chardonnay"
        assert sommelier.get_wine(999) is None

    def test_wine_comment_by_id_and_record(self, sommelier):
        by_id = sommelier.wine_comment(1)
        by_record = sommelier.wine_comment(sommelier.get_wine(1))
        assert by_id == by_record
        assert "premium" in by_id

    def test_pairing(self, sommelier):
        assert "16-18°C" in sommelier.wine_pairing(1)
        assert "grilled" in sommelier.wine_pairing(999)

    def test_occasion(self, sommelier):
        assert "Celebration dinner" in sommelier.wine_occasion(1)


class TestFromSources:

    @pytest.fixture(autouse=True)
    def no_api_key(self, monkeypatch):
        monkeypatch.setattr("vinofind.commentary.OPENAI_API_KEY", None)

    def test_commentary_from_environment(self, monkeypatch, tmp_path, cache):
        monkeypatch.setattr("vinofind.commentary.OPENAI_API_KEY", "sk-test")
        sommelier = Sommelier.from_sources(tmp_path / "absent.csv", cache=cache)

        assert sommelier.commentator.uses_api
        assert sommelier.commentator.cache is cache

    def test_templated_commentary_without_key(self, tmp_path):
        sommelier = Sommelier.from_sources(tmp_path / "absent.csv")
        assert not sommelier.commentator.uses_api

    def test_explicit_commentator_wins(self, tmp_path, fake_chat_client):
        commentator = CommentaryGenerator(client=fake_chat_client(content="ok"))
        sommelier = Sommelier.from_sources(tmp_path / "absent.csv", commentator=commentator)
        assert sommelier.commentator is commentator

    def test_no_source_uses_sample_catalog(self, monkeypatch):
        monkeypatch.setattr("vinofind.service.CATALOG_CSV_URL", None)
        sommelier = Sommelier.from_sources()
        assert len(sommelier.catalog) == len(sample_catalog())

    def test_load_failure_uses_sample_catalog(self, tmp_path):
        sommelier = Sommelier.from_sources(tmp_path / "absent.csv")
        assert len(sommelier.catalog) == len(sample_catalog())

    def test_loads_csv_and_embeddings(self, tmp_path, monkeypatch):
        monkeypatch.setattr("vinofind.service.EMBEDDINGS_URL", None)
        csv_path = tmp_path / "wines.csv"
        csv_path.write_text(
            "id,title,variety,country,price,points\n"
            "10,Malbec Alto,Malbec,Argentina,22,90\n"
            "11,Riesling Trocken,Riesling,Germany,19,88\n",
            encoding="utf-8",
        )
        embeddings_path = tmp_path / "embeddings.json"
        embeddings_path.write_text('{"10": [1.0, 0.0], "11": [0.0, 1.0]}', encoding="utf-8")

        sommelier = Sommelier.from_sources(csv_path, embeddings_path)

        assert sommelier.countries() == ["Argentina", "Germany"]
        assert sommelier.ranker.embeddings is not None
        result = sommelier.taste_recommendations([10])
        assert [w.id for w in result.recommendations] == [11]
        assert result.recommendations[0].strategy == ScoringStrategy.EMBEDDING
