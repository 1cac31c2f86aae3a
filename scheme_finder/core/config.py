"""Configuration models and YAML loader for the scheme finder."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator


class DatabaseConfig(BaseModel):
    """Scheme corpus / profile store location."""

    path: str = "data/schemes.db"


class EmbeddingConfig(BaseModel):
    """Query embedding provider settings.

    ``dimension`` must match the length of the vectors stored with the corpus;
    query embeddings are truncated or zero-padded to it.
    """

    enabled: bool = True
    provider: str = "gemini"
    model: str | None = None
    dimension: int = Field(default=2000, ge=1)
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=1, ge=0, le=3)
    retry_backoff_seconds: float = Field(default=0.5, ge=0.0)


class SearchConfig(BaseModel):
    """Weights and sizing for hybrid retrieval."""

    semantic_weight: float = Field(default=0.65, ge=0.0, le=1.0)
    lexical_weight: float = Field(default=0.35, ge=0.0, le=1.0)
    overfetch_factor: int = Field(default=3, ge=1, le=10)
    candidate_pool: int = Field(default=50, ge=1)
    default_limit: int = Field(default=20, ge=1, le=100)

    @model_validator(mode="after")
    def semantic_outweighs_lexical(self) -> "SearchConfig":
        if self.semantic_weight < self.lexical_weight:
            msg = "semantic_weight must be >= lexical_weight"
            raise ValueError(msg)
        return self


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
