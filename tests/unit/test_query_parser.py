"""Tests for local query parsing: keywords, categories, life events, state."""

from scheme_finder.core.schemas import ParsedIntent, UserProfile
from scheme_finder.pipeline.query_parser import (
    CATEGORY_PRIORITY,
    LIFE_EVENTS,
    build_profile_query,
    extract_search_keywords,
    get_suggested_categories,
    parse_query_local,
)


class TestParseQueryLocal:
    def test_empty_input(self) -> None:
        assert parse_query_local("") == ParsedIntent()
        assert parse_query_local("   \n\t") == ParsedIntent()

    def test_only_punctuation(self) -> None:
        intent = parse_query_local("?!...")
        assert intent.keywords == []
        assert intent.suggested_categories == []

    def test_scholarship_engineering_student(self) -> None:
        intent = parse_query_local("scholarship for engineering student")
        assert intent.suggested_categories[0] == "Education"
        assert {"scholarship", "engineering", "student"} <= set(intent.keywords)
        assert "for" not in intent.keywords
        assert "student" in intent.life_events

    def test_no_lexicon_hit_keywords_only(self) -> None:
        intent = parse_query_local("xylophone quartz")
        assert intent.keywords == ["xylophone", "quartz"]
        assert intent.suggested_categories == []
        assert intent.life_events == []

    def test_short_lexicon_terms_kept(self) -> None:
        intent = parse_query_local("loan for sc st youth")
        assert "sc" in intent.keywords
        assert "st" in intent.keywords

    def test_short_non_lexicon_tokens_dropped(self) -> None:
        assert "ab" not in parse_query_local("ab farmer").keywords

    def test_phrase_life_event(self) -> None:
        intent = parse_query_local("my father passed away last month")
        assert "death_in_family" in intent.life_events
        assert "Social Welfare" in intent.suggested_categories

    def test_crop_loss_phrase(self) -> None:
        intent = parse_query_local("compensation for crop loss due to flood")
        assert intent.suggested_categories[0] == "Agriculture"
        assert "crop_loss" in intent.life_events
        assert "natural_disaster" in intent.life_events

    def test_widow_pension(self) -> None:
        intent = parse_query_local("pension for widow")
        assert intent.suggested_categories[0] == "Social Welfare"
        assert "widow" in intent.life_events

    def test_state_detected(self) -> None:
        assert parse_query_local("farmer schemes in Tamil Nadu").state == "Tamil Nadu"
        assert parse_query_local("farmer schemes").state is None

    def test_longest_state_name_wins(self) -> None:
        intent = parse_query_local("schemes for jammu and kashmir residents")
        assert intent.state == "Jammu and Kashmir"

    def test_keywords_deduplicated_in_order(self) -> None:
        assert parse_query_local("Loan loan LOAN house loan").keywords == ["loan", "house"]

    def test_deterministic(self) -> None:
        text = "housing loan for women entrepreneurs in Kerala"
        assert parse_query_local(text) == parse_query_local(text)


class TestHelpers:
    def test_extract_search_keywords(self) -> None:
        assert extract_search_keywords("I want a tractor subsidy") == ["tractor", "subsidy"]

    def test_category_ties_follow_priority(self) -> None:
        # one hit each for Housing and Health
        cats = get_suggested_categories("house hospital")
        assert cats == sorted(cats, key=CATEGORY_PRIORITY.index)
        assert cats[0] == "Health"

    def test_counts_beat_priority(self) -> None:
        cats = get_suggested_categories("loan insurance")
        assert cats[0] == "Banking"

    def test_life_event_table(self) -> None:
        for name, event in LIFE_EVENTS.items():
            assert event.keywords, name
            assert all(c in CATEGORY_PRIORITY for c in event.categories), name


class TestBuildProfileQuery:
    def test_none_profile(self) -> None:
        assert build_profile_query(None) == "welfare assistance benefit"

    def test_empty_profile(self) -> None:
        assert build_profile_query(UserProfile()) == "welfare assistance benefit"

    def test_farmer_in_state(self) -> None:
        text = build_profile_query(UserProfile(is_farmer=True, state="Punjab"))
        assert "farmer" in text
        assert text.endswith("Punjab")

    def test_senior_by_age(self) -> None:
        assert "pension" in build_profile_query(UserProfile(age=67))

    def test_profession_appended(self) -> None:
        text = build_profile_query(UserProfile(profession="Weaver"))
        assert "weaver" in text
