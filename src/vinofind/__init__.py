"""Vinofind - wine search and taste-based recommendation over an in-memory catalog."""

from vinofind.catalog import CatalogIndex
from vinofind.preferences import PreferenceAnalyzer, analyze_preferences
from vinofind.ranker import RelevanceRanker
from vinofind.schema import FilterSpec, PreferenceProfile, ScoredWine, TasteRecommendations, WineRecord
from vinofind.service import Sommelier

__version__ = "0.1.0"

__all__ = [
    'CatalogIndex',
    'RelevanceRanker',
    'PreferenceAnalyzer',
    'analyze_preferences',
    'Sommelier',
    'WineRecord',
    'FilterSpec',
    'ScoredWine',
    'PreferenceProfile',
    'TasteRecommendations',
    '__version__',
]
