"""
Shared fixtures for Vinofind tests.

Collaborators (embedders, OpenAI clients) are plain fakes injected through
constructors; no test touches the network.
"""

import time
from types import SimpleNamespace

import pytest

from vinofind.cache import JsonFileCache
from vinofind.catalog import CatalogIndex
from vinofind.sample_data import sample_catalog
from vinofind.schema import WineRecord


class FakeEmbedder:
    """Returns canned vectors per text and counts calls."""

    def __init__(self, vectors=None, default=None):
        self.vectors = vectors or {}
        self.default = default
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        return self.vectors.get(text, self.default)


class FailingEmbedder:
    def __init__(self):
        self.calls = 0

    def embed(self, text):
        self.calls += 1
        raise RuntimeError("embedding service unavailable")


class SlowEmbedder:
    def __init__(self, delay=0.5):
        self.delay = delay

    def embed(self, text):
        time.sleep(self.delay)
        return [1.0, 0.0]


class FakeChatClient:
    """Mimics the slice of the OpenAI client used for chat completions."""

    def __init__(self, content="A lovely wine.", error=None):
        self.content = content
        self.error = error
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeEmbeddingsClient:
    """Mimics client.embeddings.create(model=..., input=...)."""

    def __init__(self, vector=None, error=None):
        self.vector = vector if vector is not None else [0.1, 0.2, 0.3]
        self.error = error
        self.calls = []
        self.embeddings = SimpleNamespace(create=self._create)

    def _create(self, model, input):
        self.calls.append((model, input))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=[SimpleNamespace(embedding=list(self.vector))])


@pytest.fixture
def two_wines():
    """Minimal catalog: a French Cabernet and a US Chardonnay."""
    return [
        WineRecord(
            id=1,
            title="Cabernet Sauvignon Reserve",
            variety="Cabernet Sauvignon",
            country="France",
            price=125,
            rating=96,
        ),
        WineRecord(
            id=2,
            title="Chardonnay Barrel Select",
            variety="Chardonnay",
            country="USA",
            price=45,
            rating=92,
        ),
    ]


@pytest.fixture
def catalog(two_wines):
    return CatalogIndex(two_wines)


@pytest.fixture
def demo_wines():
    return sample_catalog()


@pytest.fixture
def demo_catalog(demo_wines):
    return CatalogIndex(demo_wines)


@pytest.fixture
def cache(tmp_path):
    return JsonFileCache(cache_dir=tmp_path / "cache", ttl_hours=1)


@pytest.fixture
def fake_embedder():
    return FakeEmbedder


@pytest.fixture
def failing_embedder():
    return FailingEmbedder()


@pytest.fixture
def slow_embedder():
    return SlowEmbedder()


@pytest.fixture
def fake_chat_client():
    return FakeChatClient


@pytest.fixture
def fake_embeddings_client():
    return FakeEmbeddingsClient
