"""Abstract base class for embedding providers and shared vector helpers."""

from abc import ABC, abstractmethod


def fit_dimension(vector: list[float], dimension: int) -> list[float]:
    """Truncate or zero-pad a vector to ``dimension``.

    Stored scheme vectors were produced the same way, so query vectors must
    be fitted identically before comparison.
    """
    if len(vector) >= dimension:
        return list(vector[:dimension])
    return list(vector) + [0.0] * (dimension - len(vector))


class EmbeddingProvider(ABC):
    """Base class that every embedding provider must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'gemini')."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""

    @abstractmethod
    def embed(
        self,
        text: str,
        model: str | None = None,
        *,
        dimension: int | None = None,
    ) -> list[float]:
        """Embed a single text and return the raw vector.

        Args:
            text: Query text to embed.
            model: Override the provider's default model. None uses default.
            dimension: Requested output size, for providers that support
                reduced-dimension output. Others ignore it.

        Returns:
            The embedding as a list of floats (length is provider-dependent).
        """
