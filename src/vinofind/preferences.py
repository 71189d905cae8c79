"""
PreferenceAnalyzer: aggregate taste statistics over selected wines.

A pure function of its input. Identical input order gives an identical
profile; ties in variety/country counts keep first-encountered order.
"""

import logging
from collections import Counter
from typing import Iterable, List

import numpy as np

from vinofind.schema import CountryCount, PreferenceProfile, PriceRange, VarietyCount, WineRecord

logger = logging.getLogger(__name__)


def _ranked_counts(values: Iterable[str]) -> List[tuple]:
    """(value, count) pairs, descending by count, ties in first-seen order."""
    counts = Counter(v for v in values if v)
    # Counter preserves insertion order and sorted() is stable
    return sorted(counts.items(), key=lambda item: -item[1])


def analyze_preferences(selected: Iterable[WineRecord]) -> PreferenceProfile:
    """
    Derive a PreferenceProfile from a set of selected wines.

    Args:
        selected: Selected WineRecords, in the order they should be counted

    Returns:
        PreferenceProfile; the empty profile when nothing is selected
    """
    selected = list(selected)
    if not selected:
        return PreferenceProfile.empty()

    favorite_varieties = [
        VarietyCount(variety=variety, count=count)
        for variety, count in _ranked_counts(w.variety for w in selected)
    ]
    preferred_countries = [
        CountryCount(country=country, count=count)
        for country, count in _ranked_counts(w.country for w in selected)
    ]

    prices = np.array([w.price for w in selected if w.price and w.price > 0], dtype=float)
    ratings = np.array([w.rating for w in selected if w.rating and w.rating > 0], dtype=float)

    profile = PreferenceProfile(
        favorite_varieties=favorite_varieties,
        preferred_countries=preferred_countries,
        average_price=float(prices.mean()) if prices.size else 0.0,
        average_rating=float(ratings.mean()) if ratings.size else 0.0,
        price_range=PriceRange(
            min=float(prices.min()) if prices.size else 0.0,
            max=float(prices.max()) if prices.size else 0.0,
        ),
        n_selected=len(selected),
    )

    logger.debug(
        f"Profile from {len(selected)} wines: top variety "
        f"{favorite_varieties[0].variety if favorite_varieties else None}, "
        f"avg ${profile.average_price:.2f}, avg rating {profile.average_rating:.1f}"
    )
    return profile


class PreferenceAnalyzer:
    """Object wrapper so the analyzer can be injected and swapped."""

    def analyze(self, selected: Iterable[WineRecord]) -> PreferenceProfile:
        return analyze_preferences(selected)
