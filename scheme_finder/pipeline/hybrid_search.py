"""Hybrid retrieval: vector similarity blended with weighted keyword scoring.

Both sub-searches run with the same SearchFilters pushed into SQL. Each
sub-score is min-max normalised on its own candidate set before blending:

  score = semantic_weight * semantic + lexical_weight * lexical

A scheme found by only one sub-search contributes 0 for the other. When no
query embedding can be obtained the ranking falls back to lexical-only and
the returned ``HybridResults`` is marked ``degraded``.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Iterable
from typing import NamedTuple

from scheme_finder.core import db
from scheme_finder.core.config import Settings
from scheme_finder.core.errors import EmbeddingUnavailable
from scheme_finder.core.schemas import Scheme, SchemeWithScore, SearchFilters
from scheme_finder.embedding.base import EmbeddingProvider
from scheme_finder.embedding.client import embed_query
from scheme_finder.pipeline.query_parser import extract_search_keywords

logger = logging.getLogger(__name__)


class HybridResults(NamedTuple):
    """Ranked schemes of one hybrid search and whether it fell back to lexical-only."""

    results: list[SchemeWithScore]
    degraded: bool


class HybridSearchService:
    """Ranks corpus schemes for a query text. Holds no per-request state."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        provider: EmbeddingProvider | None,
        settings: Settings,
    ) -> None:
        self._conn = conn
        self._provider = provider if settings.embedding.enabled else None
        self._settings = settings

    async def semantic_search(
        self,
        query_text: str,
        limit: int = 20,
        filters: SearchFilters | None = None,
    ) -> list[SchemeWithScore]:
        """Top-``limit`` schemes by cosine similarity to the query.

        Raises:
            EmbeddingUnavailable: If no query embedding could be obtained.
            RetrievalError: If the corpus could not be read.
        """
        if not query_text.strip():
            return []
        vector = await self._embed(query_text)
        hits = db.find_by_vector(self._conn, vector, filters, limit)
        return [
            SchemeWithScore(scheme=scheme, score=max(similarity, 0.0), semantic_score=similarity)
            for scheme, similarity in hits
        ]

    async def hybrid_search(
        self,
        query_text: str,
        filters: SearchFilters | None = None,
        limit: int = 20,
        extra_keywords: Iterable[str] = (),
    ) -> HybridResults:
        """Blend semantic and lexical rankings for ``query_text``.

        ``extra_keywords`` widen the lexical query only (e.g. category terms
        suggested by the parser). A blank query browses the filtered corpus
        by id with score 0 and is never degraded.

        Raises:
            RetrievalError: If the corpus could not be read.
        """
        text = query_text.strip()
        keywords = _dedupe([*extract_search_keywords(text), *extra_keywords])

        if not text and not keywords:
            schemes = db.list_schemes(self._conn, filters, limit=limit)
            logger.debug("Blank query: browsing %d schemes", len(schemes))
            browsed = [SchemeWithScore(scheme=_strip(s), score=0.0) for s in schemes]
            return HybridResults(browsed, degraded=False)

        pool = max(limit, self._settings.search.candidate_pool)

        embed_task: asyncio.Task[list[float]] | None = None
        if self._provider is not None and text:
            embed_task = asyncio.create_task(self._embed(text))
            # let the task hand the provider call to its worker thread
            await asyncio.sleep(0)

        try:
            lexical = db.find_by_lexical_query(self._conn, keywords, filters, pool)
        except Exception:
            if embed_task is not None:
                embed_task.cancel()
            raise

        semantic: list[tuple[Scheme, float]] = []
        degraded = False
        if embed_task is not None:
            try:
                vector = await embed_task
            except EmbeddingUnavailable as e:
                logger.warning("Semantic search unavailable, ranking lexically: %s", e)
                degraded = True
            else:
                semantic = db.find_by_vector(self._conn, vector, filters, pool)
        elif text:
            degraded = True

        logger.debug(
            "Hybrid search '%s': %d lexical, %d semantic candidates",
            text, len(lexical), len(semantic),
        )
        return HybridResults(self._blend(semantic, lexical)[:limit], degraded)

    def _blend(
        self,
        semantic: list[tuple[Scheme, float]],
        lexical: list[tuple[Scheme, float]],
    ) -> list[SchemeWithScore]:
        weights = self._settings.search
        semantic_weight = weights.semantic_weight
        lexical_weight = weights.lexical_weight
        if not semantic:
            semantic_weight, lexical_weight = 0.0, 1.0

        schemes: dict[int, Scheme] = {}
        for scheme, _ in (*lexical, *semantic):
            schemes.setdefault(scheme.id, _strip(scheme))
        semantic_norm = normalise_scores({s.id: v for s, v in semantic})
        lexical_norm = normalise_scores({s.id: v for s, v in lexical})

        blended = [
            SchemeWithScore(
                scheme=scheme,
                score=(
                    semantic_weight * semantic_norm.get(scheme_id, 0.0)
                    + lexical_weight * lexical_norm.get(scheme_id, 0.0)
                ),
                semantic_score=semantic_norm.get(scheme_id),
                lexical_score=lexical_norm.get(scheme_id),
            )
            for scheme_id, scheme in schemes.items()
        ]
        blended.sort(key=lambda s: (-s.score, s.scheme.id))
        return blended

    async def _embed(self, text: str) -> list[float]:
        if self._provider is None:
            msg = "No embedding provider configured"
            raise EmbeddingUnavailable(msg)
        return await embed_query(self._provider, text, self._settings.embedding)


def normalise_scores(scores: dict[int, float]) -> dict[int, float]:
    """Min-max normalise to [0, 1]. All-equal values map to 1.0."""
    if not scores:
        return {}
    low, high = min(scores.values()), max(scores.values())
    if high == low:
        return {k: 1.0 for k in scores}
    span = high - low
    return {k: (v - low) / span for k, v in scores.items()}


def _strip(scheme: Scheme) -> Scheme:
    if scheme.embedding is None:
        return scheme
    return scheme.model_copy(update={"embedding": None})


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        key = item.lower().strip()
        if key and key not in seen:
            seen.add(key)
            out.append(key)
    return out
