"""Core data models for scheme discovery and eligibility matching."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SchemeLevel = Literal["Central", "State"]
Gender = Literal["male", "female", "other"]
IncomeRange = Literal[
    "below_1lakh",
    "1lakh_2.5lakh",
    "2.5lakh_5lakh",
    "5lakh_10lakh",
    "above_10lakh",
]
SocialCategory = Literal["general", "obc", "sc", "st", "ews"]


class Scheme(BaseModel):
    """A welfare scheme record from the corpus.

    Frozen: the corpus owns schemes and the pipeline only reads them.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    slug: str
    name: str
    level: SchemeLevel = "Central"
    state: str | None = None
    category: str = ""
    details: str = ""
    benefits: str = ""
    eligibility: str = ""
    application: str = ""
    documents: str = ""
    tags: list[str] = Field(default_factory=list)
    embedding: list[float] | None = Field(default=None, repr=False)

    @property
    def category_tags(self) -> list[str]:
        return [c.strip() for c in self.category.split(",") if c.strip()]


class UserProfile(BaseModel):
    """A (possibly partial) citizen profile.

    Every field is optional; ``None`` means "not provided", which the
    eligibility engine treats as unknown rather than as a negative answer.
    camelCase keys (``incomeRange``, ``isFarmer``) are accepted as aliases.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    age: int | None = Field(default=None, ge=0, le=130)
    gender: Gender | None = None
    state: str | None = None
    district: str | None = None
    profession: str | None = None
    income_range: IncomeRange | None = None
    category: SocialCategory | None = None
    is_student: bool | None = None
    is_farmer: bool | None = None
    is_business_owner: bool | None = None
    is_worker: bool | None = None
    is_widow: bool | None = None
    is_senior_citizen: bool | None = None
    is_disabled: bool | None = None
    is_minority: bool | None = None
    is_bpl: bool | None = Field(default=None, alias="isBPL")

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class ParsedIntent(BaseModel):
    """Structured reading of a free-text query. Recomputed per query."""

    model_config = ConfigDict(frozen=True)

    keywords: list[str] = Field(default_factory=list)
    suggested_categories: list[str] = Field(default_factory=list)
    life_events: list[str] = Field(default_factory=list)
    state: str | None = None

    def is_empty(self) -> bool:
        return not (self.keywords or self.suggested_categories or self.life_events)


class EligibilityStatus(str, Enum):
    ELIGIBLE = "eligible"
    POSSIBLY_ELIGIBLE = "possibly_eligible"
    UNKNOWN = "unknown"
    NOT_ELIGIBLE = "not_eligible"

    @property
    def priority(self) -> int:
        """Rank used for result partitioning (lower sorts first)."""
        return _STATUS_PRIORITY[self]


_STATUS_PRIORITY = {
    EligibilityStatus.ELIGIBLE: 0,
    EligibilityStatus.POSSIBLY_ELIGIBLE: 1,
    EligibilityStatus.UNKNOWN: 2,
    EligibilityStatus.NOT_ELIGIBLE: 3,
}


class EligibilityResult(BaseModel):
    """Outcome of evaluating one profile against one scheme."""

    model_config = ConfigDict(frozen=True)

    scheme_id: int
    status: EligibilityStatus = EligibilityStatus.UNKNOWN
    confidence: int = Field(default=0, ge=0, le=100)
    matched_criteria: list[str] = Field(default_factory=list)
    unmatched_criteria: list[str] = Field(default_factory=list)
    undecided_criteria: list[str] = Field(default_factory=list)


class SchemeWithScore(BaseModel):
    """Wrapper that pairs a frozen Scheme with a relevance score and eligibility."""

    model_config = ConfigDict(frozen=True)

    scheme: Scheme
    score: float = Field(default=0.0, ge=0.0)
    semantic_score: float | None = None
    lexical_score: float | None = None
    eligibility: EligibilityResult | None = None


class SearchFilters(BaseModel):
    """Explicit corpus filters. Applied before scoring."""

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    state: str | None = None
    level: SchemeLevel | None = None

    def is_empty(self) -> bool:
        return self.category is None and self.state is None and self.level is None

    def merged_with(self, other: "SearchFilters") -> "SearchFilters":
        """Fill unset fields from ``other``; fields set on self win."""
        return SearchFilters(
            category=self.category or other.category,
            state=self.state or other.state,
            level=self.level or other.level,
        )


class SmartSearchQuery(BaseModel):
    """A search request as received from the HTTP or chat layer."""

    raw_text: str = ""
    profile: UserProfile | None = None
    user_id: str | None = None
    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    filters: SearchFilters = Field(default_factory=SearchFilters)


class SearchResult(BaseModel):
    """Ranked, annotated, paginated search output."""

    results: list[SchemeWithScore] = Field(default_factory=list)
    total: int = 0
    limit: int = 20
    offset: int = 0
    parsed_intent: ParsedIntent = Field(default_factory=ParsedIntent)
    profile_applied: bool = False
    degraded: bool = False
