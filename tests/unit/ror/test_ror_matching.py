"""
Tests for affiliation matching.

The matcher runs over a small in-memory set of organizations so that the
expected scores can be worked out by hand.
"""

import pytest

from commonmeta.ror.matching import (
    MATCHING_TYPE_ACRONYM,
    MATCHING_TYPE_COMMON,
    MATCHING_TYPE_EXACT,
    AffiliationMatcher,
    clean_search_string,
    get_countries,
    get_similarity,
    heuristic_substrings,
    levenshtein_distance,
    normalize,
    partial_ratio,
    ratio,
)
from commonmeta.ror.model import ROR

LUH = "https://ror.org/0304hq317"
CAMBRIDGE = "https://ror.org/013meh722"


def organization(id, names, country, status="active"):
    return ROR.model_validate(
        {
            "id": id,
            "names": names,
            "status": status,
            "types": ["education"],
            "locations": [{"geonames_details": {"country_code": country}}],
        }
    )


@pytest.fixture
def organizations():
    return [
        organization(
            LUH,
            [
                {"value": "Leibniz Universität Hannover", "types": ["ror_display", "label"], "lang": "de"},
                {"value": "Leibniz University Hannover", "types": ["label"], "lang": "en"},
                {"value": "LUH", "types": ["acronym"]},
            ],
            "DE",
        ),
        organization(
            CAMBRIDGE,
            [
                {"value": "University of Cambridge", "types": ["ror_display", "label"], "lang": "en"},
                {"value": "Cambridge University", "types": ["alias"], "lang": "en"},
            ],
            "GB",
        ),
        organization(
            "https://ror.org/04wxnsj81",
            [{"value": "DataCite", "types": ["ror_display", "label"], "lang": "en"}],
            "DE",
        ),
        organization(
            "https://ror.org/00k4n6c32",
            [{"value": "Old Institute of Testing", "types": ["ror_display"]}],
            "DE",
            status="inactive",
        ),
    ]


@pytest.fixture
def matcher(organizations):
    return AffiliationMatcher(organizations)


# ============================================================================
# String helpers
# ============================================================================


class TestSimilarity:
    """Tests for the string similarity helpers."""

    def test_levenshtein_distance(self) -> None:
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_ratio(self) -> None:
        assert ratio("abc", "abc") == 1.0
        assert ratio("", "abc") == 0.0
        assert ratio("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_partial_ratio(self) -> None:
        assert partial_ratio("abc", "xxabcxx") == 1.0
        assert partial_ratio("xxabcxx", "abd") == pytest.approx(2 / 3)
        assert partial_ratio("", "abc") == 0.0

    def test_normalize(self) -> None:
        assert normalize("Univ. of Hannover") == "university hannover"
        assert normalize("Leibniz Universität  Hannover") == "leibniz universitat hannover"
        assert normalize("Dept. Physics & Astronomy") == "department physics astronomy"

    def test_get_similarity_contained_name(self) -> None:
        assert get_similarity("Department of Physics, University of Cambridge", "University of Cambridge") == 1.0
        assert get_similarity("", "University of Cambridge") == 0.0

    def test_clean_search_string(self) -> None:
        assert clean_search_string("Dept. of Physics, 30167 Hannover") == "Dept of Physics Hannover"

    def test_heuristic_substrings(self) -> None:
        assert heuristic_substrings("University of Cambridge") == [
            "University of Cambridge",
            "Cambridge University",
        ]
        assert heuristic_substrings("Cambridge University") == [
            "Cambridge University",
            "University of Cambridge",
        ]
        assert heuristic_substrings("DataCite") == []


class TestCountries:
    """Tests for country extraction from affiliation strings."""

    def test_country_name(self) -> None:
        assert get_countries("Leibniz University Hannover, Germany") == ["DE"]

    def test_country_code_is_mapped_to_region(self) -> None:
        assert get_countries("University of Cambridge, UK") == ["GB-UK"]

    def test_no_country(self) -> None:
        assert get_countries("DataCite") == []


# ============================================================================
# Matcher
# ============================================================================


class TestAffiliationMatcher:
    """Tests for AffiliationMatcher.match()."""

    def test_exact_match(self, matcher) -> None:
        results = matcher.match("Leibniz Universität Hannover")
        assert len(results) == 1
        assert results[0].organization.id == LUH
        assert results[0].matching_type == MATCHING_TYPE_EXACT
        assert results[0].chosen is True
        assert results[0].score == 1.0

    def test_name_inside_longer_string(self, matcher) -> None:
        results = matcher.match("Department of Physics, University of Cambridge")
        assert [m.organization.id for m in results] == [CAMBRIDGE]
        assert results[0].chosen is True
        assert results[0].matching_type == MATCHING_TYPE_COMMON

    def test_acronym(self, matcher) -> None:
        results = matcher.match("LUH")
        assert [m.organization.id for m in results] == [LUH]
        assert results[0].matching_type == MATCHING_TYPE_ACRONYM
        assert results[0].chosen is True

    def test_country_mismatch(self, matcher) -> None:
        results = matcher.match("Leibniz University Hannover, UK")
        assert LUH not in [m.organization.id for m in results]
        assert not any(m.chosen for m in results)

    def test_country_match(self, matcher) -> None:
        results = matcher.match("Leibniz University Hannover, Germany")
        assert results[0].organization.id == LUH
        assert results[0].chosen is True

    def test_conflicting_nodes_choose_nothing(self, matcher) -> None:
        results = matcher.match("University of Cambridge; Leibniz University Hannover")
        assert {m.organization.id for m in results} == {CAMBRIDGE, LUH}
        assert not any(m.chosen for m in results)

    def test_inactive_organizations(self, matcher) -> None:
        assert matcher.match("Old Institute of Testing") == []
        results = matcher.match("Old Institute of Testing", active_only=False)
        assert results[0].organization.id == "https://ror.org/00k4n6c32"

    @pytest.mark.parametrize("affiliation", ["", "   ", "Germany", "Hannover"])
    def test_nothing_to_match(self, matcher, affiliation) -> None:
        assert matcher.match(affiliation) == []

    def test_empty_catalog(self) -> None:
        assert AffiliationMatcher([]).match("University of Cambridge") == []

    def test_to_dict(self, matcher) -> None:
        result = matcher.match("Leibniz Universität Hannover")[0].to_dict()
        assert result["substring"] == "Leibniz Universität Hannover"
        assert result["score"] == 1.0
        assert result["matching_type"] == MATCHING_TYPE_EXACT
        assert result["chosen"] is True
        assert result["organization"]["id"] == LUH
