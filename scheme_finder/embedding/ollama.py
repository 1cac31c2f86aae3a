"""Ollama local embedding provider (OpenAI-compatible API)."""

import logging

from scheme_finder.embedding.base import EmbeddingProvider

logger = logging.getLogger(__name__)

_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a local Ollama instance via the OpenAI-compatible API."""

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "nomic-embed-text"

    @property
    def env_var(self) -> None:
        return None

    def embed(
        self,
        text: str,
        model: str | None = None,
        *,
        dimension: int | None = None,
    ) -> list[float]:
        try:
            import openai
        except ImportError:
            msg = (
                "openai is required for Ollama (OpenAI-compatible API). "
                "Install with: pip install 'scheme-finder[openai]'"
            )
            raise ImportError(msg) from None

        client = openai.OpenAI(base_url=_OLLAMA_BASE_URL, api_key="ollama")
        use_model = model or self.default_model

        logger.debug("Embedding query with Ollama (%s)", use_model)
        response = client.embeddings.create(model=use_model, input=text)

        return list(response.data[0].embedding)
