"""Local, deterministic query understanding.

Turns a free-text utterance into a ParsedIntent using a fixed lexicon:
no network, no randomness, safe to call on every keystroke.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from scheme_finder.core.schemas import ParsedIntent, UserProfile

# Canonical category names. Each is a case-insensitive substring of the
# corpus category labels (e.g. "Agriculture,Rural & Environment").
# Order doubles as the tie-break priority for category ranking.
CATEGORY_PRIORITY: tuple[str, ...] = (
    "Agriculture",
    "Education",
    "Health",
    "Housing",
    "Employment",
    "Business",
    "Women",
    "Social Welfare",
    "Banking",
)

STOPWORDS = frozenset({
    "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "shall", "can", "need", "dare",
    "to", "of", "in", "for", "on", "with", "at", "by", "from", "as",
    "into", "through", "during", "before", "after", "above", "below",
    "between", "under", "again", "further", "then", "once", "here",
    "there", "when", "where", "why", "how", "all", "each", "few",
    "more", "most", "other", "some", "such", "no", "nor", "not",
    "only", "own", "same", "so", "than", "too", "very", "s", "t",
    "just", "don", "now", "i", "me", "my", "myself", "we", "our",
    "ours", "you", "your", "he", "him", "his", "she", "her", "it",
    "its", "they", "their", "what", "which", "who", "whom", "this",
    "that", "these", "those", "am", "and", "but", "if", "or", "because",
    "while", "any", "get", "want", "looking", "find", "help", "please",
    "scheme", "schemes", "yojana", "about", "also", "like",
})

INDIAN_STATES: tuple[str, ...] = (
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka",
    "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya",
    "Mizoram", "Nagaland", "Odisha", "Punjab", "Rajasthan", "Sikkim",
    "Tamil Nadu", "Telangana", "Tripura", "Uttar Pradesh", "Uttarakhand",
    "West Bengal", "Delhi", "Puducherry", "Chandigarh", "Jammu and Kashmir",
    "Ladakh", "Andaman and Nicobar Islands", "Lakshadweep",
    "Dadra and Nagar Haveli and Daman and Diu",
)

_STATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"\b{re.escape(s.lower())}\b"), s)
    # Longest names first so "Andhra Pradesh" is not shadowed by a prefix.
    for s in sorted(INDIAN_STATES, key=len, reverse=True)
)

_TOKEN_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class LexiconEntry:
    """A group of domain terms sharing the same category / life-event mapping."""

    terms: tuple[str, ...]
    categories: tuple[str, ...] = ()
    life_events: tuple[str, ...] = ()


LEXICON: tuple[LexiconEntry, ...] = (
    LexiconEntry(
        ("farmer", "farmers", "farming", "farm", "kisan", "crop", "crops",
         "agriculture", "agricultural", "cultivation", "irrigation", "tractor",
         "seed", "seeds", "fertilizer", "livestock", "dairy", "fisherman", "fisheries"),
        ("Agriculture",), ("farmer",),
    ),
    LexiconEntry(("crop loss", "crop failure", "crop damage"), ("Agriculture",), ("crop_loss",)),
    LexiconEntry(
        ("scholarship", "scholarships", "student", "students", "college", "school",
         "university", "education", "study", "tuition", "fee", "fees", "degree",
         "engineering", "medical college", "phd", "hostel", "admission"),
        ("Education",), ("student",),
    ),
    LexiconEntry(
        ("job", "jobs", "employment", "unemployed", "unemployment", "career",
         "training", "skill", "skills", "apprentice", "apprenticeship", "vocational"),
        ("Employment",), ("job_loss",),
    ),
    LexiconEntry(
        ("worker", "workers", "labour", "labor", "labourer", "construction worker",
         "artisan", "artisans", "unorganised", "unorganized"),
        ("Employment", "Social Welfare"), ("worker",),
    ),
    LexiconEntry(
        ("business", "startup", "enterprise", "msme", "entrepreneur",
         "entrepreneurs", "shop", "self employed", "mudra"),
        ("Business", "Banking"), ("starting_business",),
    ),
    LexiconEntry(("loan", "loans", "credit"), ("Banking", "Business"), ()),
    LexiconEntry(
        ("house", "home", "housing", "shelter", "awas", "roof", "homeless"),
        ("Housing",), (),
    ),
    LexiconEntry(
        ("health", "medical", "hospital", "treatment", "disease", "illness",
         "doctor", "medicine", "surgery", "cancer"),
        ("Health",), (),
    ),
    LexiconEntry(
        ("insurance", "premium", "coverage", "claim"),
        ("Banking", "Health"), (),
    ),
    LexiconEntry(
        ("women", "woman", "female", "girl", "girls", "mahila", "lady"),
        ("Women", "Social Welfare"), ("women",),
    ),
    LexiconEntry(
        ("maternity", "pregnant", "pregnancy", "newborn", "delivery", "childbirth"),
        ("Women", "Health"), ("childbirth",),
    ),
    LexiconEntry(("widow", "widows", "widowed"), ("Social Welfare", "Women"), ("widow",)),
    LexiconEntry(
        ("marriage", "wedding", "vivah", "shadi", "intercaste"),
        ("Social Welfare", "Women"), ("marriage",),
    ),
    LexiconEntry(
        ("pension", "senior", "elderly", "old age", "retired", "retirement", "vridha"),
        ("Social Welfare", "Health"), ("senior_citizen",),
    ),
    LexiconEntry(
        ("disabled", "disability", "handicapped", "divyang", "pwd", "blind", "deaf"),
        ("Social Welfare", "Health"), ("disability",),
    ),
    LexiconEntry(
        ("death", "died", "passed away", "demise", "deceased", "funeral", "ex gratia"),
        ("Social Welfare",), ("death_in_family",),
    ),
    LexiconEntry(
        ("flood", "drought", "cyclone", "disaster", "earthquake"),
        ("Social Welfare", "Agriculture"), ("natural_disaster",),
    ),
    LexiconEntry(
        ("sc", "st", "obc", "dalit", "tribal", "scheduled caste", "scheduled tribe",
         "backward", "minority"),
        ("Social Welfare",), (),
    ),
    LexiconEntry(("bpl", "poverty", "poor"), ("Social Welfare",), ()),
)

# term -> entry, split into single-word and multi-word lookups
_WORD_INDEX: dict[str, LexiconEntry] = {}
_PHRASE_INDEX: dict[str, LexiconEntry] = {}
for _entry in LEXICON:
    for _term in _entry.terms:
        (_PHRASE_INDEX if " " in _term else _WORD_INDEX)[_term] = _entry


@dataclass(frozen=True)
class LifeEvent:
    """Search keywords and categories associated with a life event."""

    keywords: tuple[str, ...]
    categories: tuple[str, ...] = ()


LIFE_EVENTS: dict[str, LifeEvent] = {
    "death_in_family": LifeEvent(
        ("death", "deceased", "relief", "funeral", "compensation", "ex-gratia"),
        ("Social Welfare",),
    ),
    "marriage": LifeEvent(("marriage", "wedding", "vivah", "shadi", "incentive"), ("Social Welfare",)),
    "childbirth": LifeEvent(
        ("maternity", "pregnancy", "child", "newborn", "delivery", "maternal"),
        ("Women", "Health"),
    ),
    "education_start": LifeEvent(
        ("admission", "school", "college", "education", "scholarship", "fee"),
        ("Education",),
    ),
    "job_loss": LifeEvent(
        ("unemployment", "job loss", "laid off", "employment", "assistance"),
        ("Employment",),
    ),
    "starting_business": LifeEvent(
        ("startup", "new business", "entrepreneur", "loan", "msme"),
        ("Business",),
    ),
    "retirement": LifeEvent(("pension", "retired", "retirement", "senior", "elderly"), ("Social Welfare",)),
    "senior_citizen": LifeEvent(("senior citizen", "pension", "elderly", "old age"), ("Social Welfare",)),
    "disability": LifeEvent(
        ("disability", "disabled", "accident", "handicapped", "divyang"),
        ("Social Welfare",),
    ),
    "natural_disaster": LifeEvent(("flood", "drought", "disaster", "relief", "compensation"), ("Social Welfare",)),
    "crop_loss": LifeEvent(
        ("crop failure", "crop loss", "farmer", "agriculture", "compensation"),
        ("Agriculture",),
    ),
    "farmer": LifeEvent(("farmer", "kisan", "agriculture", "crop", "farming"), ("Agriculture",)),
    "student": LifeEvent(("student", "scholarship", "education", "college", "study"), ("Education",)),
    "worker": LifeEvent(("worker", "labour", "construction", "unorganised"), ("Employment",)),
    "widow": LifeEvent(("widow", "pension", "assistance", "mahila"), ("Social Welfare",)),
    "women": LifeEvent(("women", "mahila", "empowerment", "girl"), ("Women",)),
}


def parse_query_local(text: str) -> ParsedIntent:
    """Parse a free-text query into keywords, ranked categories and life events.

    Empty or whitespace-only input yields an empty ParsedIntent. Never raises.
    """
    normalized = " ".join(_TOKEN_RE.findall((text or "").lower()))
    if not normalized:
        return ParsedIntent()

    tokens = normalized.split()
    hits: list[LexiconEntry] = [_WORD_INDEX[t] for t in tokens if t in _WORD_INDEX]
    padded = f" {normalized} "
    hits.extend(entry for phrase, entry in _PHRASE_INDEX.items() if f" {phrase} " in padded)

    return ParsedIntent(
        keywords=_keywords(tokens),
        suggested_categories=_rank_categories(hits),
        life_events=_dedupe(event for entry in hits for event in entry.life_events),
        state=_detect_state(normalized),
    )


def extract_search_keywords(text: str) -> list[str]:
    """Deduplicated, stopword-free tokens of ``text`` in input order."""
    return parse_query_local(text).keywords


def get_suggested_categories(text: str) -> list[str]:
    """Categories ranked by lexicon hits; ties follow CATEGORY_PRIORITY."""
    return parse_query_local(text).suggested_categories


def build_profile_query(profile: UserProfile | None) -> str:
    """Synthesise search text from a profile for recommendation requests."""
    if profile is None:
        return "welfare assistance benefit"

    parts: list[str] = []
    profession = (profile.profession or "").lower()
    if profile.is_farmer or "farm" in profession:
        parts.append("farmer agriculture kisan crop")
    if profile.is_student:
        parts.append("student scholarship education")
    if profile.is_worker or "worker" in profession or "labour" in profession:
        parts.append("worker labour construction")
    if profile.is_business_owner:
        parts.append("business msme entrepreneur loan")
    if profile.is_widow:
        parts.append("widow pension assistance")
    if profile.is_senior_citizen or (profile.age is not None and profile.age >= 60):
        parts.append("senior citizen pension elderly")
    if profile.is_disabled:
        parts.append("disability divyang pension")
    if profile.is_bpl or profile.income_range == "below_1lakh":
        parts.append("bpl poverty welfare subsidy")
    if profile.is_minority:
        parts.append("minority")
    if profile.gender == "female":
        parts.append("women mahila")
    if profile.category in ("sc", "st"):
        parts.append("scheduled caste scheduled tribe")
    elif profile.category == "obc":
        parts.append("obc backward class")
    elif profile.category == "ews":
        parts.append("ews economically weaker")
    if profile.age is not None and profile.age < 18:
        parts.append("child school education")
    elif profile.age is not None and profile.age <= 35:
        parts.append("youth skill employment")
    if profile.profession and profile.profession.lower() not in " ".join(parts):
        parts.append(profile.profession.lower())
    if profile.state:
        parts.append(f"in {profile.state}")

    return " ".join(parts) if parts else "welfare assistance benefit"


def _keywords(tokens: list[str]) -> list[str]:
    kept = (
        t for t in tokens
        if t not in STOPWORDS and (len(t) > 2 or t in _WORD_INDEX)
    )
    return _dedupe(kept)


def _rank_categories(hits: list[LexiconEntry]) -> list[str]:
    counts: dict[str, int] = {}
    for entry in hits:
        for category in entry.categories:
            counts[category] = counts.get(category, 0) + 1
    return sorted(counts, key=lambda c: (-counts[c], CATEGORY_PRIORITY.index(c)))


def _detect_state(normalized: str) -> str | None:
    for pattern, name in _STATE_PATTERNS:
        if pattern.search(normalized):
            return name
    return None


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
