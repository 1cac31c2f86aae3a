"""Tests for domain models."""

import pytest
from pydantic import ValidationError

from scheme_finder.core.schemas import (
    EligibilityResult,
    EligibilityStatus,
    ParsedIntent,
    Scheme,
    SchemeWithScore,
    SearchFilters,
    SmartSearchQuery,
    UserProfile,
)


def _scheme(**kw: object) -> Scheme:
    defaults: dict[str, object] = {"id": 1, "slug": "pm-kisan", "name": "PM Kisan"}
    defaults.update(kw)
    return Scheme(**defaults)  # type: ignore[arg-type]


class TestScheme:
    def test_frozen(self) -> None:
        s = _scheme()
        with pytest.raises(ValidationError):
            s.name = "Other"  # type: ignore[misc]

    def test_category_tags(self) -> None:
        s = _scheme(category="Agriculture,Rural & Environment, Banking ")
        assert s.category_tags == ["Agriculture", "Rural & Environment", "Banking"]

    def test_level_validated(self) -> None:
        with pytest.raises(ValidationError):
            _scheme(level="District")

    def test_embedding_hidden_from_repr(self) -> None:
        s = _scheme(embedding=[0.1, 0.2])
        assert "0.1" not in repr(s)


class TestUserProfile:
    def test_empty_profile_valid(self) -> None:
        p = UserProfile()
        assert p.is_empty() is True
        assert p.is_farmer is None

    def test_camel_case_aliases(self) -> None:
        p = UserProfile.model_validate(
            {"age": 45, "isFarmer": True, "incomeRange": "below_1lakh", "isBPL": True},
        )
        assert p.is_farmer is True
        assert p.income_range == "below_1lakh"
        assert p.is_bpl is True
        assert p.is_empty() is False

    def test_snake_case_accepted(self) -> None:
        p = UserProfile.model_validate({"is_student": True, "is_bpl": False})
        assert p.is_student is True
        assert p.is_bpl is False

    def test_age_bounds(self) -> None:
        with pytest.raises(ValidationError):
            UserProfile(age=-1)
        with pytest.raises(ValidationError):
            UserProfile(age=200)

    def test_invalid_income_range(self) -> None:
        with pytest.raises(ValidationError):
            UserProfile.model_validate({"incomeRange": "lots"})


class TestEligibilityStatus:
    def test_priority_order(self) -> None:
        order = sorted(EligibilityStatus, key=lambda s: s.priority)
        assert order == [
            EligibilityStatus.ELIGIBLE,
            EligibilityStatus.POSSIBLY_ELIGIBLE,
            EligibilityStatus.UNKNOWN,
            EligibilityStatus.NOT_ELIGIBLE,
        ]

    def test_string_values(self) -> None:
        assert EligibilityStatus.NOT_ELIGIBLE.value == "not_eligible"

    def test_result_defaults(self) -> None:
        r = EligibilityResult(scheme_id=3)
        assert r.status == EligibilityStatus.UNKNOWN
        assert r.confidence == 0
        assert r.matched_criteria == []

    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            EligibilityResult(scheme_id=1, confidence=101)


class TestSearchFilters:
    def test_empty(self) -> None:
        assert SearchFilters().is_empty() is True
        assert SearchFilters(level="State").is_empty() is False

    def test_merged_with_self_wins(self) -> None:
        explicit = SearchFilters(category="Health")
        other = SearchFilters(category="Education", state="Goa")
        merged = explicit.merged_with(other)
        assert merged.category == "Health"
        assert merged.state == "Goa"
        assert merged.level is None


class TestSmartSearchQuery:
    def test_defaults(self) -> None:
        q = SmartSearchQuery()
        assert q.limit == 20
        assert q.offset == 0
        assert q.filters.is_empty()

    def test_limit_bounds(self) -> None:
        with pytest.raises(ValidationError):
            SmartSearchQuery(limit=0)
        with pytest.raises(ValidationError):
            SmartSearchQuery(limit=101)

    def test_negative_offset_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SmartSearchQuery(offset=-1)


class TestMisc:
    def test_parsed_intent_empty(self) -> None:
        assert ParsedIntent().is_empty() is True
        assert ParsedIntent(keywords=["loan"]).is_empty() is False

    def test_score_non_negative(self) -> None:
        with pytest.raises(ValidationError):
            SchemeWithScore(scheme=_scheme(), score=-0.1)
