"""Tests for query embedding: timeout, retry, dimension fitting."""

import time

import pytest

from scheme_finder.core.config import EmbeddingConfig
from scheme_finder.core.errors import EmbeddingUnavailable
from scheme_finder.embedding.base import EmbeddingProvider
from scheme_finder.embedding.client import embed_query


class FakeProvider(EmbeddingProvider):
    """Returns queued results; an Exception in the queue is raised instead."""

    def __init__(self, *results: object, delay: float = 0.0) -> None:
        self._results = list(results)
        self._delay = delay
        self.calls: list[tuple[str, str | None, int | None]] = []

    @property
    def provider_id(self) -> str:
        return "fake"

    @property
    def default_model(self) -> str:
        return "fake-embed"

    @property
    def env_var(self) -> None:
        return None

    def embed(self, text: str, model: str | None = None, *, dimension: int | None = None) -> list[float]:
        self.calls.append((text, model, dimension))
        if self._delay:
            time.sleep(self._delay)
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result  # type: ignore[return-value]


def _config(**kw: object) -> EmbeddingConfig:
    defaults: dict[str, object] = {"dimension": 3, "retry_backoff_seconds": 0.0}
    defaults.update(kw)
    return EmbeddingConfig(**defaults)  # type: ignore[arg-type]


class TestEmbedQuery:
    async def test_success_fits_dimension(self) -> None:
        provider = FakeProvider([0.1, 0.2, 0.3, 0.4])
        vector = await embed_query(provider, "farmer", _config())
        assert vector == [0.1, 0.2, 0.3]
        assert provider.calls == [("farmer", None, 3)]

    async def test_short_vector_padded(self) -> None:
        provider = FakeProvider([0.5])
        assert await embed_query(provider, "farmer", _config()) == [0.5, 0.0, 0.0]

    async def test_passes_model_override(self) -> None:
        provider = FakeProvider([1.0, 0.0, 0.0])
        await embed_query(provider, "loan", _config(model="custom-model"))
        assert provider.calls[0][1] == "custom-model"

    async def test_retries_once_then_succeeds(self) -> None:
        provider = FakeProvider(RuntimeError("quota"), [1.0, 1.0, 1.0])
        vector = await embed_query(provider, "loan", _config(max_retries=1))
        assert vector == [1.0, 1.0, 1.0]
        assert len(provider.calls) == 2

    async def test_exhausted_retries_raise(self) -> None:
        provider = FakeProvider(RuntimeError("quota"), RuntimeError("quota"))
        with pytest.raises(EmbeddingUnavailable, match="quota") as exc_info:
            await embed_query(provider, "loan", _config(max_retries=1))
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert len(provider.calls) == 2

    async def test_no_retries_configured(self) -> None:
        provider = FakeProvider(ValueError("GOOGLE_API_KEY environment variable is required"))
        with pytest.raises(EmbeddingUnavailable, match="GOOGLE_API_KEY"):
            await embed_query(provider, "loan", _config(max_retries=0))
        assert len(provider.calls) == 1

    async def test_timeout(self) -> None:
        provider = FakeProvider([1.0, 0.0, 0.0], delay=0.5)
        with pytest.raises(EmbeddingUnavailable):
            await embed_query(provider, "loan", _config(timeout_seconds=0.05, max_retries=0))

    async def test_empty_vector_not_retried(self) -> None:
        provider = FakeProvider([], [1.0, 0.0, 0.0])
        with pytest.raises(EmbeddingUnavailable, match="empty embedding"):
            await embed_query(provider, "loan", _config(max_retries=1))
        assert len(provider.calls) == 1
