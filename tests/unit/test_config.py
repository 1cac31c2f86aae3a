"""Tests for configuration models and YAML loading."""

from pathlib import Path
from textwrap import dedent

import pytest
from pydantic import ValidationError

from scheme_finder.core.config import (
    DatabaseConfig,
    EmbeddingConfig,
    SearchConfig,
    Settings,
)


class TestEmbeddingConfig:
    def test_defaults(self) -> None:
        c = EmbeddingConfig()
        assert c.enabled is True
        assert c.provider == "gemini"
        assert c.model is None
        assert c.dimension == 2000
        assert c.max_retries == 1

    def test_dimension_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            EmbeddingConfig(dimension=0)

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            EmbeddingConfig(timeout_seconds=0)

    def test_max_retries_bounds(self) -> None:
        with pytest.raises(ValidationError):
            EmbeddingConfig(max_retries=-1)
        with pytest.raises(ValidationError):
            EmbeddingConfig(max_retries=4)


class TestSearchConfig:
    def test_defaults(self) -> None:
        c = SearchConfig()
        assert c.semantic_weight == 0.65
        assert c.lexical_weight == 0.35
        assert c.overfetch_factor == 3
        assert c.default_limit == 20

    def test_semantic_must_outweigh_lexical(self) -> None:
        with pytest.raises(ValidationError, match="semantic_weight must be >= lexical_weight"):
            SearchConfig(semantic_weight=0.3, lexical_weight=0.7)

    def test_equal_weights_allowed(self) -> None:
        c = SearchConfig(semantic_weight=0.5, lexical_weight=0.5)
        assert c.semantic_weight == c.lexical_weight

    def test_weight_bounds(self) -> None:
        with pytest.raises(ValidationError):
            SearchConfig(semantic_weight=1.5)

    def test_overfetch_bounds(self) -> None:
        with pytest.raises(ValidationError):
            SearchConfig(overfetch_factor=0)
        with pytest.raises(ValidationError):
            SearchConfig(overfetch_factor=11)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.database == DatabaseConfig()
        assert s.database.path == "data/schemes.db"
        assert s.embedding.provider == "gemini"

    def test_from_yaml(self, tmp_path: Path) -> None:
        p = tmp_path / "settings.yaml"
        p.write_text(dedent("""\
            database:
              path: /tmp/custom.db
            embedding:
              provider: openai
              dimension: 1536
            search:
              semantic_weight: 0.7
              lexical_weight: 0.3
        """))
        s = Settings.from_yaml(p)
        assert s.database.path == "/tmp/custom.db"
        assert s.embedding.provider == "openai"
        assert s.embedding.dimension == 1536
        assert s.search.semantic_weight == 0.7
        assert s.search.overfetch_factor == 3

    def test_empty_yaml_uses_defaults(self, tmp_path: Path) -> None:
        p = tmp_path / "empty.yaml"
        p.write_text("")
        s = Settings.from_yaml(p)
        assert s == Settings()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            Settings.from_yaml(tmp_path / "nope.yaml")

    def test_invalid_weights_in_yaml(self, tmp_path: Path) -> None:
        p = tmp_path / "bad.yaml"
        p.write_text("search:\n  semantic_weight: 0.2\n  lexical_weight: 0.8\n")
        with pytest.raises(ValidationError):
            Settings.from_yaml(p)

    def test_repo_settings_file_loads(self) -> None:
        path = Path(__file__).resolve().parents[2] / "config" / "settings.yaml"
        s = Settings.from_yaml(path)
        assert s.embedding.dimension == 2000
