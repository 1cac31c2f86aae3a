"""SQLite layer for the scheme corpus and user profiles.

Scheme embeddings are stored as float32 BLOBs next to the scheme row.
Every query function applies SearchFilters in SQL, so callers never spend
their result budget on rows a filter would discard.
"""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np

from scheme_finder.core.errors import ProfileNotFound, RetrievalError
from scheme_finder.core.schemas import Scheme, SearchFilters, UserProfile

logger = logging.getLogger(__name__)

_SCHEMES_TABLE = """
CREATE TABLE IF NOT EXISTS schemes (
    id           INTEGER PRIMARY KEY,
    slug         TEXT    NOT NULL UNIQUE,
    name         TEXT    NOT NULL,
    level        TEXT    NOT NULL DEFAULT 'Central',
    state        TEXT,
    category     TEXT    NOT NULL DEFAULT '',
    details      TEXT    NOT NULL DEFAULT '',
    benefits     TEXT    NOT NULL DEFAULT '',
    eligibility  TEXT    NOT NULL DEFAULT '',
    application  TEXT    NOT NULL DEFAULT '',
    documents    TEXT    NOT NULL DEFAULT '',
    tags         TEXT    NOT NULL DEFAULT '',
    embedding    BLOB,
    updated_at   TEXT    NOT NULL
);
"""

_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id      TEXT PRIMARY KEY,
    profile_json TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);
"""

# Per-keyword field weights for lexical scoring.
_LEXICAL_FIELD_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("name", 10),
    ("tags", 8),
    ("benefits", 5),
    ("eligibility", 5),
    ("details", 3),
)

# Terms this short (e.g. "sc", "st") match whole words only.
_WHOLE_WORD_MAX_LEN = 2

# Punctuation treated as a word break for whole-word matching.
_WORD_BREAKS: tuple[str, ...] = (
    "'/'", "','", "'.'", "';'", "':'", "'('", "')'",
    "'['", "']'", "'-'", "'\"'", "char(10)",
)


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    if str(path) != ":memory:":
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_SCHEMES_TABLE)
    conn.execute(_PROFILES_TABLE)
    conn.commit()
    return conn


# ---------------------------------------------------------------------------
# Schemes
# ---------------------------------------------------------------------------


def upsert_scheme(conn: sqlite3.Connection, scheme: Scheme) -> None:
    """Insert or replace a scheme row (embedding included when present)."""
    conn.execute(
        """
        INSERT OR REPLACE INTO schemes
            (id, slug, name, level, state, category, details, benefits,
             eligibility, application, documents, tags, embedding, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            scheme.id,
            scheme.slug,
            scheme.name,
            scheme.level,
            scheme.state,
            scheme.category,
            scheme.details,
            scheme.benefits,
            scheme.eligibility,
            scheme.application,
            scheme.documents,
            ",".join(scheme.tags),
            _encode_vector(scheme.embedding),
            datetime.now().isoformat(),
        ),
    )
    conn.commit()


def get_scheme(conn: sqlite3.Connection, scheme_id: int) -> Scheme | None:
    """Return the scheme with the given id, or None."""
    rows = _query(conn, "SELECT * FROM schemes WHERE id = ?", (scheme_id,))
    return _row_to_scheme(rows[0]) if rows else None


def count_schemes(conn: sqlite3.Connection, filters: SearchFilters | None = None) -> int:
    """Count schemes inside the filters."""
    where, params = _filter_clause(filters)
    rows = _query(conn, f"SELECT COUNT(*) AS total FROM schemes WHERE {where}", params)
    return int(rows[0]["total"])


def list_schemes(
    conn: sqlite3.Connection,
    filters: SearchFilters | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Scheme]:
    """Browse schemes inside the filters, ordered by id."""
    where, params = _filter_clause(filters)
    rows = _query(
        conn,
        f"SELECT * FROM schemes WHERE {where} ORDER BY id ASC LIMIT ? OFFSET ?",
        (*params, limit, offset),
    )
    return [_row_to_scheme(r) for r in rows]


def find_by_lexical_query(
    conn: sqlite3.Connection,
    keywords: list[str],
    filters: SearchFilters | None = None,
    limit: int = 50,
) -> list[tuple[Scheme, float]]:
    """Keyword search with weighted field scoring.

    Each keyword contributes the weight of every field it appears in
    (name 10, tags 8, benefits 5, eligibility 5, details 3). Rows matching
    no keyword are not returned. Terms of two letters or fewer match whole
    words only. Sorted by score desc, then id asc.
    """
    terms = [kw.lower().strip() for kw in keywords if kw.strip()]
    if not terms:
        return []

    score_parts: list[str] = []
    score_params: list[str] = []
    match_parts: list[str] = []
    match_params: list[str] = []
    for term in terms:
        whole_word = len(term) <= _WHOLE_WORD_MAX_LEN
        pattern = f"% {term} %" if whole_word else f"%{term}%"
        for field, weight in _LEXICAL_FIELD_WEIGHTS:
            expr = _searchable(field, whole_word=whole_word)
            score_parts.append(f"CASE WHEN {expr} LIKE ? THEN {weight} ELSE 0 END")
            score_params.append(pattern)
            match_parts.append(f"{expr} LIKE ?")
            match_params.append(pattern)

    where, filter_params = _filter_clause(filters)
    sql = f"""
        SELECT *, ({" + ".join(score_parts)}) AS lexical_score
        FROM schemes
        WHERE ({" OR ".join(match_parts)}) AND {where}
        ORDER BY lexical_score DESC, id ASC
        LIMIT ?
    """
    rows = _query(conn, sql, (*score_params, *match_params, *filter_params, limit))
    return [(_row_to_scheme(r), float(r["lexical_score"])) for r in rows]


def find_by_vector(
    conn: sqlite3.Connection,
    embedding: list[float],
    filters: SearchFilters | None = None,
    limit: int = 50,
) -> list[tuple[Scheme, float]]:
    """Cosine-similarity search over schemes that have an embedding.

    Schemes without a stored vector, or whose vector length differs from the
    query, are left out rather than scored as zero.
    """
    query = np.asarray(embedding, dtype=np.float32)
    query_norm = float(np.linalg.norm(query))
    if query.size == 0 or query_norm == 0.0:
        return []

    where, params = _filter_clause(filters)
    rows = _query(
        conn,
        f"SELECT * FROM schemes WHERE embedding IS NOT NULL AND {where}",
        params,
    )

    scored: list[tuple[Scheme, float]] = []
    skipped = 0
    for row in rows:
        vector = np.frombuffer(row["embedding"], dtype=np.float32)
        norm = float(np.linalg.norm(vector))
        if vector.shape != query.shape or norm == 0.0:
            skipped += 1
            continue
        similarity = float(np.dot(query, vector) / (query_norm * norm))
        scored.append((_row_to_scheme(row, with_embedding=False), similarity))

    if skipped:
        logger.debug("find_by_vector: skipped %d schemes with unusable vectors", skipped)

    scored.sort(key=lambda pair: (-pair[1], pair[0].id))
    return scored[:limit]


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


def upsert_profile(conn: sqlite3.Connection, user_id: str, profile: UserProfile) -> None:
    """Store (or replace) a user's profile."""
    conn.execute(
        """
        INSERT INTO user_profiles (user_id, profile_json, updated_at)
        VALUES (?, ?, ?)
        ON CONFLICT(user_id)
        DO UPDATE SET profile_json = excluded.profile_json, updated_at = excluded.updated_at
        """,
        (user_id, profile.model_dump_json(exclude_none=True), datetime.now().isoformat()),
    )
    conn.commit()


def get_profile(conn: sqlite3.Connection, user_id: str) -> UserProfile:
    """Return the stored profile for a user.

    Raises:
        ProfileNotFound: If the user has no stored profile.
    """
    row = conn.execute(
        "SELECT profile_json FROM user_profiles WHERE user_id = ?",
        (user_id,),
    ).fetchone()
    if row is None:
        raise ProfileNotFound(user_id)
    return UserProfile.model_validate(json.loads(row["profile_json"]))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _query(conn: sqlite3.Connection, sql: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
    try:
        return conn.execute(sql, params).fetchall()
    except sqlite3.Error as e:
        msg = f"search unavailable: {e}"
        raise RetrievalError(msg) from e


def _filter_clause(filters: SearchFilters | None) -> tuple[str, tuple[str, ...]]:
    """Build the SearchFilters WHERE fragment.

    Category is a case-insensitive substring, level is exact, and a state
    filter admits that state's schemes plus every Central scheme.
    """
    if filters is None or filters.is_empty():
        return "1 = 1", ()

    conditions: list[str] = []
    params: list[str] = []
    if filters.category:
        conditions.append("LOWER(category) LIKE ?")
        params.append(f"%{filters.category.lower()}%")
    if filters.level:
        conditions.append("level = ?")
        params.append(filters.level)
    if filters.state:
        conditions.append("(level = 'Central' OR LOWER(COALESCE(state, '')) = ?)")
        params.append(filters.state.lower())
    return " AND ".join(conditions), tuple(params)


def _searchable(field: str, *, whole_word: bool) -> str:
    """SQL expression for a lowercased field, space-padded with punctuation
    turned into spaces when matching whole words."""
    expr = f"LOWER(COALESCE({field}, ''))"
    if not whole_word:
        return expr
    for brk in _WORD_BREAKS:
        expr = f"REPLACE({expr}, {brk}, ' ')"
    return f"(' ' || {expr} || ' ')"


def _encode_vector(vector: list[float] | None) -> bytes | None:
    if vector is None:
        return None
    return np.asarray(vector, dtype=np.float32).tobytes()


def _row_to_scheme(row: sqlite3.Row, *, with_embedding: bool = True) -> Scheme:
    embedding = None
    if with_embedding and row["embedding"] is not None:
        embedding = np.frombuffer(row["embedding"], dtype=np.float32).tolist()
    return Scheme(
        id=row["id"],
        slug=row["slug"],
        name=row["name"],
        level=row["level"],
        state=row["state"],
        category=row["category"] or "",
        details=row["details"] or "",
        benefits=row["benefits"] or "",
        eligibility=row["eligibility"] or "",
        application=row["application"] or "",
        documents=row["documents"] or "",
        tags=[t.strip() for t in (row["tags"] or "").split(",") if t.strip()],
        embedding=embedding,
    )
