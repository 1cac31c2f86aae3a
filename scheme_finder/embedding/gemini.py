"""Google Gemini embedding provider (google-genai SDK)."""

import logging
import os

from scheme_finder.embedding.base import EmbeddingProvider

logger = logging.getLogger(__name__)


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the Gemini API.

    gemini-embedding-001 is Matryoshka-trained, so asking for a reduced
    ``output_dimensionality`` matches truncating the full vector.
    """

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return "gemini-embedding-001"

    @property
    def env_var(self) -> str:
        return "GOOGLE_API_KEY"

    def embed(
        self,
        text: str,
        model: str | None = None,
        *,
        dimension: int | None = None,
    ) -> list[float]:
        api_key = os.environ.get("GOOGLE_API_KEY")
        if not api_key:
            msg = "GOOGLE_API_KEY environment variable is required"
            raise ValueError(msg)

        try:
            from google import genai
            from google.genai import types as genai_types
        except ImportError:
            msg = (
                "google-genai is required for Gemini embeddings. "
                "Install with: pip install 'scheme-finder[gemini]'"
            )
            raise ImportError(msg) from None

        use_model = model or self.default_model
        config = (
            genai_types.EmbedContentConfig(output_dimensionality=dimension)
            if dimension
            else None
        )

        logger.debug("Embedding query with Gemini (%s)", use_model)
        client = genai.Client(api_key=api_key)
        response = client.models.embed_content(model=use_model, contents=text, config=config)

        return list(response.embeddings[0].values)
