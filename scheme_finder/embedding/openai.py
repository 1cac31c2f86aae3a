"""OpenAI embedding provider."""

import logging
import os

from scheme_finder.embedding.base import EmbeddingProvider

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the OpenAI API. Output size is fixed by the model."""

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "text-embedding-3-small"

    @property
    def env_var(self) -> str:
        return "OPENAI_API_KEY"

    def embed(
        self,
        text: str,
        model: str | None = None,
        *,
        dimension: int | None = None,
    ) -> list[float]:
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            msg = "OPENAI_API_KEY environment variable is required"
            raise ValueError(msg)

        try:
            import openai
        except ImportError:
            msg = (
                "openai is required for OpenAI embeddings. "
                "Install with: pip install 'scheme-finder[openai]'"
            )
            raise ImportError(msg) from None

        client = openai.OpenAI(api_key=api_key)
        use_model = model or self.default_model

        logger.debug("Embedding query with OpenAI (%s)", use_model)
        response = client.embeddings.create(model=use_model, input=text)

        return list(response.data[0].embedding)
