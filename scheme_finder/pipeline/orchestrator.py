"""Orchestrator: wires parser, hybrid search, profile lookup, and eligibility.

Data flow for one smart search:
  1. Parse the raw text into a ParsedIntent (advisory)
  2. Hybrid search, overfetched, concurrently with profile resolution
  3. Eligibility over every candidate (only when a profile is present)
  4. Stable partition by eligibility status, relevance order kept within
     (recommendations also drop schemes below possibly_eligible)
  5. Paginate
"""

import asyncio
import json
import logging
import sqlite3

from scheme_finder.core import db
from scheme_finder.core.config import Settings
from scheme_finder.core.errors import ProfileNotFound, SchemeNotFound
from scheme_finder.core.schemas import (
    EligibilityResult,
    EligibilityStatus,
    SchemeWithScore,
    SearchFilters,
    SearchResult,
    SmartSearchQuery,
    UserProfile,
)
from scheme_finder.pipeline.eligibility import check_eligibility, score_schemes_by_eligibility
from scheme_finder.pipeline.hybrid_search import HybridSearchService
from scheme_finder.pipeline.query_parser import LIFE_EVENTS, build_profile_query, parse_query_local

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    """Entry point for ranked, eligibility-annotated scheme searches."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        search_service: HybridSearchService,
        settings: Settings,
    ) -> None:
        self._conn = conn
        self._search = search_service
        self._settings = settings

    async def orchestrate_smart_search(self, query: SmartSearchQuery) -> SearchResult:
        """Run the full pipeline for one query.

        Raises:
            RetrievalError: If the corpus could not be searched.
        """
        return await self._run(query)

    async def search_by_category(
        self,
        category: str,
        profile: UserProfile | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchResult:
        """Browse one category, scoped to the profile's state and eligibility-ranked."""
        query = SmartSearchQuery(
            raw_text="",
            profile=profile,
            limit=limit,
            offset=offset,
            filters=scope_to_profile(SearchFilters(category=category), profile),
        )
        return await self._run(query)

    async def search_by_life_event(
        self,
        event: str,
        profile: UserProfile | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchResult:
        """Search schemes relevant to a life event such as ``job_loss``.

        Raises:
            ValueError: If the event tag is unknown.
        """
        life_event = LIFE_EVENTS.get(event)
        if life_event is None:
            available = ", ".join(sorted(LIFE_EVENTS))
            msg = f"Unknown life event '{event}'. Available: {available}"
            raise ValueError(msg)

        query = SmartSearchQuery(
            raw_text=" ".join(life_event.keywords),
            profile=profile,
            limit=limit,
            offset=offset,
            filters=scope_to_profile(SearchFilters(), profile),
        )
        return await self._run(query)

    async def get_personalized_recommendations(
        self,
        user_id: str,
        limit: int = 20,
        query_text: str | None = None,
    ) -> SearchResult:
        """Recommend eligible or possibly eligible schemes for a stored profile.

        A user without a usable stored profile gets a generic, eligibility-free
        ranking instead.
        """
        profile = await self._resolve_profile(None, user_id)
        text = query_text or build_profile_query(profile)
        logger.info("Recommendations for '%s' using '%s'", user_id, text)
        query = SmartSearchQuery(
            raw_text=text,
            profile=profile,
            limit=limit,
            filters=scope_to_profile(SearchFilters(), profile),
        )
        return await self._run(query, min_status=EligibilityStatus.POSSIBLY_ELIGIBLE)

    def check_scheme(self, scheme_id: int, profile: UserProfile) -> EligibilityResult:
        """Check one scheme's eligibility for a profile.

        Raises:
            SchemeNotFound: If no scheme has this id.
        """
        scheme = db.get_scheme(self._conn, scheme_id)
        if scheme is None:
            raise SchemeNotFound(scheme_id)
        return check_eligibility(profile, scheme)

    async def _run(
        self,
        query: SmartSearchQuery,
        min_status: EligibilityStatus | None = None,
    ) -> SearchResult:
        intent = parse_query_local(query.raw_text)
        extra_keywords = [c.lower() for c in intent.suggested_categories]
        fetch_limit = (query.offset + query.limit) * self._settings.search.overfetch_factor

        logger.info(
            "Smart search '%s' (categories=%s, filters=%s)",
            query.raw_text, intent.suggested_categories, query.filters.model_dump(exclude_none=True),
        )
        (candidates, degraded), profile = await asyncio.gather(
            self._search.hybrid_search(
                query.raw_text,
                filters=query.filters,
                limit=fetch_limit,
                extra_keywords=extra_keywords,
            ),
            self._resolve_profile(query.profile, query.user_id),
        )

        profile_applied = profile is not None and not profile.is_empty()
        if profile_applied:
            candidates = rank_by_eligibility(score_schemes_by_eligibility(profile, candidates))
            if min_status is not None:
                candidates = [
                    s for s in candidates
                    if s.eligibility is not None
                    and s.eligibility.status.priority <= min_status.priority
                ]

        page = candidates[query.offset:query.offset + query.limit]
        logger.info(
            "Smart search: %d candidates, returning %d (profile=%s, degraded=%s)",
            len(candidates), len(page), profile_applied, degraded,
        )
        return SearchResult(
            results=page,
            total=len(candidates),
            limit=query.limit,
            offset=query.offset,
            parsed_intent=intent,
            profile_applied=profile_applied,
            degraded=degraded,
        )

    async def _resolve_profile(
        self,
        profile: UserProfile | None,
        user_id: str | None,
    ) -> UserProfile | None:
        if profile is not None:
            return profile
        if user_id is None:
            return None
        try:
            return db.get_profile(self._conn, user_id)
        except ProfileNotFound:
            logger.info("No stored profile for '%s' - searching without eligibility", user_id)
        except (sqlite3.Error, ValueError) as e:
            logger.warning("Profile lookup for '%s' failed: %s", user_id, e)
        return None


def scope_to_profile(filters: SearchFilters, profile: UserProfile | None) -> SearchFilters:
    """Default the state filter to the profile's state. Explicit filters win."""
    if profile is None or not profile.state:
        return filters
    return filters.merged_with(SearchFilters(state=profile.state))


def rank_by_eligibility(candidates: list[SchemeWithScore]) -> list[SchemeWithScore]:
    """Stable partition by eligibility status priority.

    Relevance order is preserved within each status group; candidates
    without an eligibility result sort with ``unknown``.
    """
    return sorted(
        candidates,
        key=lambda s: s.eligibility.status.priority if s.eligibility else 2,
    )


def export_results_json(result: SearchResult) -> str:
    """Export a search result page as a JSON string."""
    data = []
    for s in result.results:
        scheme = s.scheme
        entry = {
            "id": scheme.id,
            "slug": scheme.slug,
            "name": scheme.name,
            "level": scheme.level,
            "state": scheme.state,
            "category": scheme.category,
            "score": round(s.score, 4),
        }
        if s.eligibility is not None:
            entry["eligibility"] = {
                "status": s.eligibility.status.value,
                "confidence": s.eligibility.confidence,
                "matched": s.eligibility.matched_criteria,
                "unmatched": s.eligibility.unmatched_criteria,
                "undecided": s.eligibility.undecided_criteria,
            }
        data.append(entry)
    return json.dumps(
        {
            "total": result.total,
            "offset": result.offset,
            "limit": result.limit,
            "degraded": result.degraded,
            "results": data,
        },
        indent=2,
    )
