"""Tests for DOI validation, normalization and generation."""

import re
from unittest.mock import patch

import pytest

from commonmeta.utils import doi as doi_utils
from commonmeta.utils.doi import (
    decode_doi,
    doi_from_url,
    encode_doi,
    get_doi_ra,
    is_rogue_scholar_doi,
    normalize_doi,
    validate_doi,
    validate_prefix,
)


class TestValidateDoi:
    """Tests for validate_doi() and normalize_doi()."""

    @pytest.mark.parametrize(
        "value",
        [
            "10.5555/12345678",
            "doi:10.5555/12345678",
            "https://doi.org/10.5555/12345678",
            "http://dx.doi.org/10.5555/12345678",
            "https://handle.stage.datacite.org/10.5555/12345678",
        ],
    )
    def test_accepted_forms(self, value: str) -> None:
        assert validate_doi(value) == ("10.5555/12345678", True)

    def test_rejects_non_doi(self) -> None:
        assert validate_doi("https://example.org/10.5555") == ("", False)
        assert validate_doi("") == ("", False)
        assert validate_doi(None) == ("", False)

    def test_normalize_lowercases(self) -> None:
        assert normalize_doi("10.7554/eLife.01567") == "https://doi.org/10.7554/elife.01567"

    def test_normalize_keeps_stage_resolver(self) -> None:
        assert (
            normalize_doi("https://handle.stage.datacite.org/10.5438/MQWQ-T8WE")
            == "https://handle.stage.datacite.org/10.5438/mqwq-t8we"
        )

    def test_normalize_invalid(self) -> None:
        assert normalize_doi("not a doi") == ""

    def test_doi_from_url(self) -> None:
        assert doi_from_url("https://doi.org/10.1371/JOURNAL.PONE.0000030") == "10.1371/journal.pone.0000030"


class TestPrefix:
    """Tests for validate_prefix()."""

    def test_prefix_of_doi_url(self) -> None:
        assert validate_prefix("https://doi.org/10.59350/f9zqn-sf065") == ("10.59350", True)

    def test_bare_prefix(self) -> None:
        assert validate_prefix("10.5555") == ("10.5555", True)

    def test_invalid_prefix(self) -> None:
        assert validate_prefix("11.5555") == ("", False)


class TestRegistrationAgency:
    """Tests for get_doi_ra() and is_rogue_scholar_doi()."""

    def test_known_crossref_prefix_needs_no_lookup(self) -> None:
        with patch.object(doi_utils, "_lookup_ra") as lookup:
            assert get_doi_ra("10.59350/f9zqn-sf065") == ("Crossref", True)
        lookup.assert_not_called()

    def test_known_datacite_prefix(self) -> None:
        assert get_doi_ra("10.34732/xdtr8-4d316") == ("DataCite", True)

    def test_unknown_prefix_is_looked_up(self) -> None:
        with patch.object(doi_utils, "_lookup_ra", return_value="mEDRA") as lookup:
            assert get_doi_ra("10.1234/example") == ("mEDRA", True)
        lookup.assert_called_once_with("10.1234")

    def test_unknown_doi(self) -> None:
        with patch.object(doi_utils, "_lookup_ra", return_value="DOI does not exist"):
            assert get_doi_ra("10.1234/example") == ("", False)

    def test_rogue_scholar_doi(self) -> None:
        assert is_rogue_scholar_doi("https://doi.org/10.59350/f9zqn-sf065")
        assert is_rogue_scholar_doi("10.5438/abc", ra="DataCite")
        assert not is_rogue_scholar_doi("10.59350/abc", ra="DataCite")
        assert not is_rogue_scholar_doi("10.7554/elife.01567")


class TestEncodeDoi:
    """Tests for encode_doi() and decode_doi()."""

    def test_encode_without_registration_check(self) -> None:
        value = encode_doi("10.59350", check_registered=False)
        assert re.fullmatch(r"https://doi\.org/10\.59350/[0-9a-z]{5}-[0-9a-z]{3}\d{2}", value)

    def test_encode_skips_registered_dois(self) -> None:
        with patch.object(doi_utils, "is_registered_doi", side_effect=[True, False]) as check:
            value = encode_doi("10.59350")
        assert value.startswith("https://doi.org/10.59350/")
        assert check.call_count == 2

    def test_decode_generated_doi(self) -> None:
        assert decode_doi("https://doi.org/10.59350/f9zqn-sf065") == 526124770784

    def test_decode_non_generated_doi(self) -> None:
        assert decode_doi("10.7554/elife.01567") == 0
