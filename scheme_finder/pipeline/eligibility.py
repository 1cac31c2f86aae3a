"""Heuristic eligibility evaluation against unstructured eligibility prose.

A scheme's eligibility text is split into clauses. Every clause is run through
a table of SignalRules; a rule's detector recognises a criterion in the clause
(age range, income ceiling, occupation, ...) and its comparator decides it
against the profile:

  True   → matched criterion
  False  → unmatched criterion (hard rules disqualify, soft rules downgrade)
  None   → undecided: the profile lacks the field, lowers confidence only

Status derivation:
  any hard mismatch                    → not_eligible
  no mismatch, at least one match      → eligible
  soft mismatches only                 → possibly_eligible
  nothing evaluable                    → unknown (confidence 0)

The rule table is configuration: pass a different ``rules`` sequence to
check_eligibility() to add or tune criterion types.
"""

import logging
import math
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from scheme_finder.core.schemas import (
    EligibilityResult,
    EligibilityStatus,
    Scheme,
    SchemeWithScore,
    UserProfile,
)
from scheme_finder.pipeline.query_parser import INDIAN_STATES

logger = logging.getLogger(__name__)

UNDECIDED_PENALTY = 0.9
UNRECOGNISED_CLAUSE_PENALTY = 0.97


@dataclass(frozen=True)
class Criterion:
    """A criterion recognised in one clause."""

    kind: str
    label: str
    value: Any = None


Detector = Callable[[str, Scheme], Criterion | None]
Comparator = Callable[[Criterion, UserProfile], bool | None]


@dataclass(frozen=True)
class SignalRule:
    """A (detector, comparator) pair. ``hard`` mismatches force not_eligible."""

    name: str
    detector: Detector
    comparator: Comparator
    hard: bool = False


@dataclass
class _Tally:
    matched: list[str] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    undecided: list[str] = field(default_factory=list)
    hard_mismatch: bool = False
    unrecognised_clauses: int = 0

    @property
    def detected(self) -> int:
        return len(self.matched) + len(self.unmatched) + len(self.undecided)

    @property
    def evaluable(self) -> int:
        return len(self.matched) + len(self.unmatched)


# ---------------------------------------------------------------------------
# Clause splitting
# ---------------------------------------------------------------------------

_LINE_SPLIT_RE = re.compile(r"[\r\n]+|[•●▪◦■➢►]")
_SENTENCE_SPLIT_RE = re.compile(
    r"(?<=[.!?])\s+(?=[A-Z(])"        # sentence end (not "Rs. 2,00,000")
    r"|;\s*"                          # semicolons
    r"|(?<=\S)\s+(?=\(?\d{1,2}[.)]\s+[A-Za-z])"  # inline "1. ... 2. ..."
)
_LEADING_MARKER_RE = re.compile(r"^\s*(?:[-*]|\(?(?:\d{1,2}|[a-h]|[ivx]{1,4})[.)])\s+")


def split_clauses(text: str | None) -> list[str]:
    """Split eligibility prose into candidate criterion clauses."""
    if not text or not text.strip():
        return []
    clauses: list[str] = []
    for line in _LINE_SPLIT_RE.split(text):
        for piece in _SENTENCE_SPLIT_RE.split(line):
            clause = _LEADING_MARKER_RE.sub("", piece).strip(" \t-*:,.")
            if sum(ch.isalnum() for ch in clause) >= 3:
                clauses.append(clause)
    return clauses


# ---------------------------------------------------------------------------
# Age
# ---------------------------------------------------------------------------

_AGE_CONTEXT_RE = re.compile(r"\bage[ds]?\b|years? old|years? of age")
_YEARS_RE = re.compile(r"\d+\s*(?:years?|yrs)\b")
_NOT_AGE_RE = re.compile(r"resid|domicile|experience|service|period|duration|since|stay|living|tenure")
_AGE_RANGE_RE = re.compile(
    r"(\d{1,3})\s*(?:-|–|—|to|and)\s*(\d{1,3})(?!\s*(?:lakh|lac|crore|%|,\d))"
)
_AGE_MAX_RE = re.compile(
    r"\b(below|under|less than|up ?to|not more than|not exceeding|not exceed|"
    r"maximum(?: age)?(?: limit)?(?: of)?|max\.?|at most)\s*"
    r"(?:the\s+)?(?:age\s+(?:of\s+)?)?(\d{1,3})\b"
)
_AGE_MIN_RE = re.compile(
    r"\b(?:above|over|more than|at least|atleast|minimum(?: age)?(?: of)?|min\.?|"
    r"not less than|completed)\s*(?:the\s+)?(?:age\s+(?:of\s+)?)?(\d{1,3})\b"
)
_AGE_MIN_SUFFIX_RE = re.compile(
    r"(\d{1,3})\s*(?:years?|yrs)?(?:\s+of\s+age)?\s+(?:or|and)\s+(?:above|more|older|over)"
)
_STRICT_MAX_WORDS = ("below", "under", "less than")
_MAX_HUMAN_AGE = 120


def detect_age(clause: str, scheme: Scheme) -> Criterion | None:
    if not _AGE_CONTEXT_RE.search(clause):
        if not _YEARS_RE.search(clause) or _NOT_AGE_RE.search(clause):
            return None

    match = _AGE_RANGE_RE.search(clause)
    if match:
        low, high = int(match.group(1)), int(match.group(2))
        if low <= high <= _MAX_HUMAN_AGE:
            return Criterion("age", f"Age between {low} and {high}", (low, high))

    low = high = None
    parts: list[str] = []
    match = _AGE_MIN_RE.search(clause) or _AGE_MIN_SUFFIX_RE.search(clause)
    if match:
        low = int(match.group(1))
        parts.append(f"Age {low} or above")
    match = _AGE_MAX_RE.search(clause)
    if match:
        bound = int(match.group(2))
        strict = match.group(1).startswith(_STRICT_MAX_WORDS)
        high = bound - 1 if strict else bound
        parts.append(f"below {bound}" if strict else f"up to {bound}")

    if low is None and high is None:
        return None
    if (low or 0) > _MAX_HUMAN_AGE or (high or 0) > _MAX_HUMAN_AGE:
        return None
    label = " and ".join(parts)
    if low is None:
        label = f"Age {label}"
    return Criterion("age", label, (low, high))


def compare_age(criterion: Criterion, profile: UserProfile) -> bool | None:
    if profile.age is None:
        return None
    low, high = criterion.value
    return (low is None or profile.age >= low) and (high is None or profile.age <= high)


_SENIOR_RE = re.compile(r"senior citizens?|elderly|old[- ]age|aged persons?")


def detect_senior_citizen(clause: str, scheme: Scheme) -> Criterion | None:
    if _SENIOR_RE.search(clause):
        return Criterion("senior_citizen", "Senior citizen (60 years or above)")
    return None


def compare_senior_citizen(criterion: Criterion, profile: UserProfile) -> bool | None:
    if profile.age is not None:
        return profile.age >= 60
    return profile.is_senior_citizen


# ---------------------------------------------------------------------------
# Income
# ---------------------------------------------------------------------------

_INCOME_CONTEXT_RE = re.compile(r"\bincome\b|\bearning")
_INCOME_LIMIT_RE = re.compile(
    r"(?:not exceed(?:ing)?|does not exceed|less than|below|under|up ?to|within|"
    r"maximum(?: of)?|ceiling of|limit of|not more than|<=?)\s*"
    r"(?:of\s+)?(?:rs\.?|₹|inr|rupees)?\s*(\d[\d,]*(?:\.\d+)?)\s*(lakhs?|lacs?|crores?)?"
)
_INCOME_BUCKETS: dict[str, tuple[float, float]] = {
    "below_1lakh": (0.0, 100_000.0),
    "1lakh_2.5lakh": (100_000.0, 250_000.0),
    "2.5lakh_5lakh": (250_000.0, 500_000.0),
    "5lakh_10lakh": (500_000.0, 1_000_000.0),
    "above_10lakh": (1_000_000.0, math.inf),
}


def detect_income_limit(clause: str, scheme: Scheme) -> Criterion | None:
    if not _INCOME_CONTEXT_RE.search(clause):
        return None
    match = _INCOME_LIMIT_RE.search(clause)
    if not match:
        return None
    amount = float(match.group(1).replace(",", ""))
    unit = match.group(2) or ""
    if unit.startswith("crore"):
        amount *= 10_000_000
    elif unit or amount < 1000:
        # bare small numbers in income clauses are lakh figures
        amount *= 100_000
    if amount <= 0:
        return None
    return Criterion("income", f"Annual family income up to Rs {amount / 100_000:g} lakh", amount)


def compare_income_limit(criterion: Criterion, profile: UserProfile) -> bool | None:
    income_range = profile.income_range
    if income_range is None and profile.is_bpl:
        income_range = "below_1lakh"
    if income_range is None:
        return None
    lower, upper = _INCOME_BUCKETS[income_range]
    if upper <= criterion.value:
        return True
    if lower >= criterion.value:
        return False
    return None  # bucket straddles the limit


_BPL_RE = re.compile(r"\bbpl\b|below (?:the )?poverty line|antyodaya")


def detect_bpl(clause: str, scheme: Scheme) -> Criterion | None:
    if _BPL_RE.search(clause):
        return Criterion("bpl", "Below poverty line (BPL) household")
    return None


def compare_bpl(criterion: Criterion, profile: UserProfile) -> bool | None:
    if profile.is_bpl is not None:
        return profile.is_bpl
    if profile.income_range == "below_1lakh":
        return True
    return None


# ---------------------------------------------------------------------------
# Occupation
# ---------------------------------------------------------------------------


def _occupation_rule(
    name: str,
    pattern: str,
    flag: str,
    profession_terms: tuple[str, ...],
    label: str,
) -> SignalRule:
    regex = re.compile(pattern)

    def detector(clause: str, scheme: Scheme) -> Criterion | None:
        if regex.search(clause):
            return Criterion(name, label)
        return None

    def comparator(criterion: Criterion, profile: UserProfile) -> bool | None:
        profession = (profile.profession or "").lower()
        by_profession = any(term in profession for term in profession_terms)
        flag_value = getattr(profile, flag)
        if flag_value:
            return True
        if flag_value is False:
            return by_profession
        if not profession:
            return None
        return by_profession

    return SignalRule(name, detector, comparator, hard=False)


# ---------------------------------------------------------------------------
# Social category
# ---------------------------------------------------------------------------

_CATEGORY_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("sc", re.compile(r"\bsc\b|scheduled castes?")),
    ("st", re.compile(r"\bst\b|scheduled tribes?")),
    ("obc", re.compile(r"\bobc\b|other backward|backward class")),
    ("ews", re.compile(r"\bews\b|economically weaker")),
    ("general", re.compile(r"general category")),
)


def detect_social_category(clause: str, scheme: Scheme) -> Criterion | None:
    allowed = tuple(code for code, regex in _CATEGORY_PATTERNS if regex.search(clause))
    if not allowed:
        return None
    label = "Social category: " + "/".join(code.upper() for code in allowed)
    return Criterion("category", label, allowed)


def compare_social_category(criterion: Criterion, profile: UserProfile) -> bool | None:
    if profile.category is None:
        return None
    return profile.category in criterion.value


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------

_RESIDENCE_RE = re.compile(
    r"\b(?:residents?|resides?|residing|domicile[ds]?|natives?|permanent(?:ly)? resid\w*|belong\w* to)\b"
)
_STATE_NAME_RES: tuple[tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(rf"(?:\b(of|in|from)\s+(?:the\s+state\s+of\s+)?)?\b{re.escape(s.lower())}\b"), s)
    for s in sorted(INDIAN_STATES, key=len, reverse=True)
)
_THE_STATE_RE = re.compile(r"\b(?:the|this|same) state\b")


def detect_state_residence(clause: str, scheme: Scheme) -> Criterion | None:
    residence = _RESIDENCE_RE.search(clause) is not None
    for regex, state in _STATE_NAME_RES:
        match = regex.search(clause)
        if match and (residence or match.group(1)):
            return Criterion("state", f"Resident of {state}", state)
    if residence and scheme.level == "State" and scheme.state and _THE_STATE_RE.search(clause):
        return Criterion("state", f"Resident of {scheme.state}", scheme.state)
    return None


def compare_state_residence(criterion: Criterion, profile: UserProfile) -> bool | None:
    if not profile.state:
        return None
    return _same_place(profile.state, criterion.value)


_DISTRICT_RES = (
    re.compile(r"\bdistricts? of ([a-z][a-z ]{2,30}?)(?:\s+(?:district|in|of|and)\b|[,.]|$)"),
    re.compile(r"\b([a-z]{3,30}) district\b"),
)
_DISTRICT_STOPWORDS = frozenset({
    "the", "same", "any", "concerned", "respective", "each", "that", "their",
    "his", "her", "this", "home", "such", "every", "one", "other", "your",
})


def detect_district(clause: str, scheme: Scheme) -> Criterion | None:
    for regex in _DISTRICT_RES:
        match = regex.search(clause)
        if match:
            name = match.group(1).strip()
            if name.split()[0] in _DISTRICT_STOPWORDS:
                continue
            return Criterion("district", f"Resident of {name.title()} district", name)
    return None


def compare_district(criterion: Criterion, profile: UserProfile) -> bool | None:
    if not profile.district:
        return None
    return _same_place(profile.district, criterion.value)


def _same_place(a: str, b: str) -> bool:
    a, b = a.strip().lower(), b.strip().lower()
    return bool(a and b) and (a == b or a in b or b in a)


# ---------------------------------------------------------------------------
# Gender and personal circumstances
# ---------------------------------------------------------------------------

_FEMALE_RE = re.compile(r"\b(?:women|woman|female|girls?|mahilas?|ladies|lady|mothers?)\b")
_MALE_RE = re.compile(r"\b(?:men|man|male|boys?)\b")


def detect_gender(clause: str, scheme: Scheme) -> Criterion | None:
    if _FEMALE_RE.search(clause) and not _MALE_RE.search(clause):
        return Criterion("gender", "Women applicants", "female")
    return None


def compare_gender(criterion: Criterion, profile: UserProfile) -> bool | None:
    if profile.gender is None:
        return None
    return profile.gender == criterion.value


def _flag_rule(name: str, pattern: str, flag: str, label: str, *, hard: bool) -> SignalRule:
    regex = re.compile(pattern)

    def detector(clause: str, scheme: Scheme) -> Criterion | None:
        return Criterion(name, label) if regex.search(clause) else None

    def comparator(criterion: Criterion, profile: UserProfile) -> bool | None:
        return getattr(profile, flag)

    return SignalRule(name, detector, comparator, hard=hard)


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

DEFAULT_RULES: tuple[SignalRule, ...] = (
    SignalRule("age", detect_age, compare_age, hard=True),
    SignalRule("senior_citizen", detect_senior_citizen, compare_senior_citizen, hard=True),
    SignalRule("income", detect_income_limit, compare_income_limit),
    SignalRule("bpl", detect_bpl, compare_bpl),
    _occupation_rule(
        "farmer",
        r"\b(?:farmers?|kisans?|cultivators?|agricultur\w*|land ?holders?|landholding)\b",
        "is_farmer",
        ("farm", "agricultur", "kisan", "cultivat"),
        "Occupation: farmer",
    ),
    _occupation_rule(
        "student",
        r"\b(?:students?|studying|enrolled|pursuing|scholars?)\b",
        "is_student",
        ("student",),
        "Occupation: student",
    ),
    _occupation_rule(
        "worker",
        r"\b(?:workers?|labou?rers?|labou?r|artisans?|wage earners?)\b",
        "is_worker",
        ("worker", "labour", "labor", "artisan", "mason"),
        "Occupation: worker",
    ),
    _occupation_rule(
        "business_owner",
        r"\b(?:entrepreneurs?|business(?:es)?|msmes?|enterprises?|self[- ]employed|start-?ups?)\b",
        "is_business_owner",
        ("business", "entrepreneur", "shop", "trader", "self employed", "self-employed"),
        "Occupation: business owner",
    ),
    SignalRule("category", detect_social_category, compare_social_category, hard=True),
    SignalRule("state", detect_state_residence, compare_state_residence, hard=True),
    SignalRule("district", detect_district, compare_district),
    SignalRule("gender", detect_gender, compare_gender, hard=True),
    _flag_rule("widow", r"\bwidow(?:s|ed|er)?\b", "is_widow", "Widow", hard=True),
    _flag_rule(
        "disability",
        r"disab\w*|divyang|handicap\w*|\bpwd\b|differently[- ]abled|\bblind\b|\bdeaf\b",
        "is_disabled",
        "Person with disability",
        hard=False,
    ),
    _flag_rule(
        "minority",
        r"\bminorit(?:y|ies)\b|\bmuslims?\b|\bchristians?\b|\bsikhs?\b|\bbuddhists?\b|\bjains?\b|\bparsis?\b",
        "is_minority",
        "Minority community",
        hard=False,
    ),
)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def check_eligibility(
    profile: UserProfile | Mapping[str, Any] | None,
    scheme: Scheme,
    rules: Sequence[SignalRule] = DEFAULT_RULES,
) -> EligibilityResult:
    """Evaluate one profile against one scheme's eligibility text.

    Pure and deterministic. Never raises on malformed scheme text: an empty
    description yields ``unknown`` with confidence 0.
    """
    user = _coerce_profile(profile)
    clauses = split_clauses(scheme.eligibility)
    if not clauses:
        return EligibilityResult(scheme_id=scheme.id)

    tally = _Tally()
    seen: set[str] = set()
    for clause in clauses:
        lowered = clause.lower()
        fired = False
        for rule in rules:
            criterion = _detect(rule, lowered, scheme)
            if criterion is None:
                continue
            fired = True
            if criterion.label in seen:
                continue
            seen.add(criterion.label)
            _record(tally, rule, criterion, user)
        if not fired:
            tally.unrecognised_clauses += 1

    return EligibilityResult(
        scheme_id=scheme.id,
        status=_derive_status(tally),
        confidence=_confidence(tally),
        matched_criteria=tally.matched,
        unmatched_criteria=tally.unmatched,
        undecided_criteria=tally.undecided,
    )


def check_batch_eligibility(
    profile: UserProfile | Mapping[str, Any] | None,
    schemes: Iterable[Scheme],
) -> dict[int, EligibilityResult]:
    """Evaluate a profile against many schemes, keyed by scheme id."""
    user = _coerce_profile(profile)
    return {s.id: check_eligibility(user, s) for s in schemes}


def score_schemes_by_eligibility(
    profile: UserProfile | Mapping[str, Any] | None,
    scored: Sequence[SchemeWithScore],
) -> list[SchemeWithScore]:
    """Attach an EligibilityResult to each scored scheme, preserving order."""
    user = _coerce_profile(profile)
    return [
        s.model_copy(update={"eligibility": check_eligibility(user, s.scheme)})
        for s in scored
    ]


def filter_by_eligibility(
    profile: UserProfile | Mapping[str, Any] | None,
    schemes: Iterable[Scheme],
    min_status: EligibilityStatus = EligibilityStatus.POSSIBLY_ELIGIBLE,
) -> list[Scheme]:
    """Keep schemes whose status ranks at or above ``min_status``."""
    user = _coerce_profile(profile)
    return [
        s for s in schemes
        if check_eligibility(user, s).status.priority <= min_status.priority
    ]


def _coerce_profile(profile: UserProfile | Mapping[str, Any] | None) -> UserProfile:
    if profile is None:
        return UserProfile()
    if isinstance(profile, UserProfile):
        return profile
    return UserProfile.model_validate(dict(profile))


def _detect(rule: SignalRule, clause: str, scheme: Scheme) -> Criterion | None:
    try:
        return rule.detector(clause, scheme)
    except Exception:
        logger.warning(
            "Eligibility rule '%s' failed on scheme %d - skipping clause",
            rule.name, scheme.id, exc_info=True,
        )
        return None


def _record(tally: _Tally, rule: SignalRule, criterion: Criterion, profile: UserProfile) -> None:
    outcome = rule.comparator(criterion, profile)
    if outcome is None:
        tally.undecided.append(criterion.label)
    elif outcome:
        tally.matched.append(criterion.label)
    else:
        tally.unmatched.append(criterion.label)
        if rule.hard:
            tally.hard_mismatch = True


def _derive_status(tally: _Tally) -> EligibilityStatus:
    if tally.evaluable == 0:
        return EligibilityStatus.UNKNOWN
    if tally.hard_mismatch:
        return EligibilityStatus.NOT_ELIGIBLE
    if tally.unmatched:
        return EligibilityStatus.POSSIBLY_ELIGIBLE
    return EligibilityStatus.ELIGIBLE


def _confidence(tally: _Tally) -> int:
    if tally.evaluable == 0:
        return 0
    base = 100.0 * tally.evaluable / tally.detected
    base *= UNDECIDED_PENALTY ** len(tally.undecided)
    base *= UNRECOGNISED_CLAUSE_PENALTY ** tally.unrecognised_clauses
    return max(0, min(100, round(base)))
