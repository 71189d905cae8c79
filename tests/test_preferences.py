"""
Tests for PreferenceAnalyzer.
"""

import pytest

from vinofind.preferences import PreferenceAnalyzer, analyze_preferences
from vinofind.schema import PreferenceProfile, WineRecord


def wine(wine_id, variety=None, country=None, price=None, rating=None):
    return WineRecord(id=wine_id, title=f"Wine {wine_id}", variety=variety,
                      country=country, price=price, rating=rating)


class TestAnalyzePreferences:

    def test_empty_selection(self):
        profile = analyze_preferences([])

        assert profile == PreferenceProfile.empty()
        assert profile.is_empty
        assert profile.favorite_varieties == []
        assert profile.average_price == 0.0
        assert profile.price_range.min == 0.0 and profile.price_range.max == 0.0

    def test_counts_descending(self):
        profile = analyze_preferences([
            wine(1, "Syrah", "France"),
            wine(2, "Merlot", "Chile"),
            wine(3, "Merlot", "Chile"),
            wine(4, "Merlot", "France"),
        ])

        assert [(v.variety, v.count) for v in profile.favorite_varieties] == [("Merlot", 3), ("Syrah", 1)]
        assert [(c.country, c.count) for c in profile.preferred_countries] == [("France", 2), ("Chile", 2)]

    def test_ties_keep_first_encountered_order(self):
        profile = analyze_preferences([wine(1, "Riesling"), wine(2, "Malbec"), wine(3, "Tempranillo")])
        assert [v.variety for v in profile.favorite_varieties] == ["Riesling", "Malbec", "Tempranillo"]

    def test_missing_values_not_counted(self):
        profile = analyze_preferences([wine(1, None, None), wine(2, "Malbec", "Argentina")])

        assert [v.variety for v in profile.favorite_varieties] == ["Malbec"]
        assert [c.country for c in profile.preferred_countries] == ["Argentina"]
        assert profile.n_selected == 2

    def test_averages_skip_missing_prices_and_ratings(self):
        profile = analyze_preferences([
            wine(1, price=20, rating=90),
            wine(2, price=None, rating=None),
            wine(3, price=40, rating=80),
        ])

        assert profile.average_price == pytest.approx(30.0)
        assert profile.average_rating == pytest.approx(85.0)
        assert profile.price_range.min == 20
        assert profile.price_range.max == 40

    def test_no_prices_at_all(self):
        profile = analyze_preferences([wine(1, "Merlot"), wine(2, "Merlot")])

        assert profile.average_price == 0.0
        assert profile.average_rating == 0.0
        assert not profile.is_empty

    def test_deterministic_and_pure(self):
        selected = [wine(1, "Syrah", "France", 30, 91), wine(2, "Merlot", "Chile", 15, 87)]
        before = [w.model_dump() for w in selected]

        assert analyze_preferences(selected) == analyze_preferences(selected)
        assert [w.model_dump() for w in selected] == before

    def test_accepts_generators(self):
        profile = analyze_preferences(w for w in [wine(1, "Syrah", price=10)])
        assert profile.n_selected == 1
        assert profile.average_price == 10


class TestPreferenceAnalyzer:

    def test_analyze_matches_function(self, demo_wines):
        analyzer = PreferenceAnalyzer()
        assert analyzer.analyze(demo_wines[:5]) == analyze_preferences(demo_wines[:5])
