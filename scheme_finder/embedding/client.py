"""Query embedding with timeout, a bounded retry, and dimension fitting."""

import asyncio
import logging

from scheme_finder.core.config import EmbeddingConfig
from scheme_finder.core.errors import EmbeddingUnavailable
from scheme_finder.embedding.base import EmbeddingProvider, fit_dimension

logger = logging.getLogger(__name__)


async def embed_query(
    provider: EmbeddingProvider,
    text: str,
    config: EmbeddingConfig,
) -> list[float]:
    """Embed a query, fitted to ``config.dimension``.

    The provider call is blocking, so it runs in a worker thread under
    ``config.timeout_seconds``. A failed attempt is retried up to
    ``config.max_retries`` times with linear backoff.

    Raises:
        EmbeddingUnavailable: If every attempt failed or timed out.
    """
    attempts = config.max_retries + 1
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(
                    provider.embed, text, config.model, dimension=config.dimension,
                ),
                timeout=config.timeout_seconds,
            )
        except Exception as e:  # provider SDKs raise their own error types
            last_error = e
            logger.warning(
                "Embedding attempt %d/%d via '%s' failed: %s",
                attempt, attempts, provider.provider_id, e or type(e).__name__,
            )
            if attempt < attempts:
                await asyncio.sleep(config.retry_backoff_seconds * attempt)
            continue

        if not raw:
            last_error = ValueError("provider returned an empty embedding")
            break
        return fit_dimension(raw, config.dimension)

    msg = f"Query embedding unavailable from '{provider.provider_id}': {last_error}"
    raise EmbeddingUnavailable(msg) from last_error
