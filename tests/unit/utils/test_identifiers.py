"""Tests for identifier validators, normalizers and format detection."""

from unittest.mock import patch

import pytest

from commonmeta.core.exceptions import ChecksumMismatchError, InvalidIdentifierError
from commonmeta.utils import identifiers
from commonmeta.utils.identifiers import (
    community_slug_as_url,
    decode_id,
    find_from_format,
    issn_as_url,
    normalize_id,
    normalize_orcid,
    normalize_ror,
    normalize_url,
    validate_id,
    validate_isbn,
    validate_issn,
    validate_openalex,
    validate_orcid,
    validate_rid,
    validate_ror,
    validate_url,
    validate_uuid,
)


class TestUrls:
    """Tests for normalize_url(), validate_url() and normalize_id()."""

    def test_normalize_url_strips_fragment_and_tracking(self) -> None:
        url = "http://example.org/blog/post/?utm_source=feed#comments"
        assert normalize_url(url, secure=True) == "https://example.org/blog/post"

    def test_normalize_url_keeps_other_query(self) -> None:
        assert normalize_url("https://example.org/search?q=1") == "https://example.org/search?q=1"

    def test_normalize_url_lower(self) -> None:
        assert normalize_url("https://Example.org/Post", lower=True) == "https://example.org/post"

    def test_normalize_url_rejects_relative(self) -> None:
        assert normalize_url("/blog/post") == ""
        assert normalize_url("") == ""

    def test_validate_url(self) -> None:
        assert validate_url("https://doi.org/10.5555/1") == "DOI"
        assert validate_url("https://example.org") == "URL"
        assert validate_url("https://example.org/a;jsessionid=1") == ""
        assert validate_url("ftp://example.org") == ""

    def test_normalize_id(self) -> None:
        assert normalize_id("10.5555/ABC") == "https://doi.org/10.5555/abc"
        assert normalize_id("http://example.org/post/") == "https://example.org/post"
        assert normalize_id("tests/fixtures/record.json") == ""


class TestPersonAndOrganizationIds:
    """Tests for ORCID and ROR identifiers."""

    def test_validate_orcid_forms(self) -> None:
        expected = ("0000-0002-1825-0097", True)
        assert validate_orcid("https://orcid.org/0000-0002-1825-0097") == expected
        assert validate_orcid("http://sandbox.orcid.org/0000-0002-1825-0097") == expected
        assert validate_orcid("0000 0002 1825 0097") == expected

    def test_validate_orcid_invalid(self) -> None:
        assert validate_orcid("0000-0002-1825") == ("", False)

    def test_normalize_orcid(self) -> None:
        assert normalize_orcid("0000-0002-1825-009x") == "https://orcid.org/0000-0002-1825-009X"

    def test_validate_ror(self) -> None:
        assert validate_ror("https://ror.org/0304hq317") == ("0304hq317", True)
        assert validate_ror("0342dzm54") == ("0342dzm54", True)

    def test_validate_ror_wrong_checksum(self) -> None:
        assert validate_ror("0304hq318") == ("", False)

    def test_normalize_ror_requires_scheme_for_urls(self) -> None:
        assert normalize_ror("0304hq317") == "https://ror.org/0304hq317"
        assert normalize_ror("ror.org/0304hq317") == ""


class TestOtherIds:
    """Tests for ISSN, ISBN, UUID, OpenAlex and InvenioRDM ids."""

    def test_issn(self) -> None:
        assert validate_issn("2050-084x") == ("2050-084X", True)
        assert validate_issn("https://portal.issn.org/resource/ISSN/1932-6203") == ("1932-6203", True)
        assert validate_issn("1932-620") == ("", False)
        assert issn_as_url("1932-6203") == "https://portal.issn.org/resource/ISSN/1932-6203"

    @pytest.mark.parametrize("value", ["978-3-16-148410-0", "0-306-40615-2", "ISBN 0306406152"])
    def test_valid_isbn(self, value: str) -> None:
        _, ok = validate_isbn(value)
        assert ok

    def test_invalid_isbn(self) -> None:
        assert validate_isbn("978-3-16-148410-1") == ("", False)

    def test_uuid(self) -> None:
        assert validate_uuid("2b3cdd27-5123-4167-9482-3c074392e2d2") == (
            "2b3cdd27-5123-4167-9482-3c074392e2d2",
            True,
        )
        assert validate_uuid("2b3cdd27-5123-1167-9482-3c074392e2d2") == ("", False)

    def test_openalex(self) -> None:
        assert validate_openalex("https://openalex.org/w2741809807") == ("W2741809807", True)
        assert validate_openalex("https://api.openalex.org/works/W2741809807") == ("W2741809807", True)
        assert validate_openalex("X2741809807") == ("", False)

    def test_rid(self) -> None:
        assert validate_rid("1xr1m-wnh16") == ("1xr1m-wnh16", True)
        assert validate_rid("https://rogue-scholar.org/api/records/1xr1m-wnh16") == ("1xr1m-wnh16", True)
        assert validate_rid("1xr1m") == ("", False)

    def test_community_slug_as_url(self) -> None:
        assert community_slug_as_url("front_matter") == "https://rogue-scholar.org/api/communities/front_matter"
        assert community_slug_as_url("") == ""


class TestValidateId:
    """Tests for validate_id() and decode_id()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("https://doi.org/10.7554/elife.01567", ("10.7554/elife.01567", "DOI")),
            ("https://doi.org/10.13039/100000001", ("10.13039/100000001", "Crossref Funder ID")),
            ("https://orcid.org/0000-0002-1825-0097", ("0000-0002-1825-0097", "ORCID")),
            ("https://ror.org/0304hq317", ("0304hq317", "ROR")),
            ("1932-6203", ("1932-6203", "ISSN")),
            ("https://example.org/post", ("https://example.org/post", "URL")),
            ("no identifier", ("", "")),
        ],
    )
    def test_validate_id(self, value: str, expected: tuple) -> None:
        assert validate_id(value) == expected

    def test_decode_doi(self) -> None:
        assert decode_id("https://doi.org/10.59350/f9zqn-sf065") == 526124770784

    def test_decode_ror(self) -> None:
        assert decode_id("https://ror.org/0342dzm54") == 104937460

    def test_decode_orcid(self) -> None:
        assert decode_id("https://orcid.org/0000-0002-1825-0097") == 21825009

    def test_decode_orcid_wrong_checksum(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            decode_id("0000-0002-1825-0098")

    def test_decode_doi_wrong_checksum(self) -> None:
        with pytest.raises(ChecksumMismatchError):
            decode_id("10.59350/f9zqn-sf066")

    def test_decode_unsupported(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            decode_id("https://example.org")


class TestFindFromFormat:
    """Tests for find_from_format()."""

    def test_by_crossref_doi(self) -> None:
        with patch.object(identifiers, "get_doi_ra", return_value=("Crossref", True)):
            assert find_from_format(pid="https://doi.org/10.7554/elife.01567") == "crossref"

    def test_unknown_ra_defaults_to_datacite(self) -> None:
        with patch.object(identifiers, "get_doi_ra", return_value=("", False)):
            assert find_from_format(pid="10.1234/x") == "datacite"

    def test_by_other_ids(self) -> None:
        assert find_from_format(pid="https://openalex.org/W2741809807") == "openalex"
        assert find_from_format(pid="https://api.rogue-scholar.org/posts/abc") == "jsonfeed"
        assert find_from_format(pid="2b3cdd27-5123-4167-9482-3c074392e2d2") == "jsonfeed"
        assert find_from_format(pid="https://zenodo.org/records/123") == "inveniordm"
        assert find_from_format(pid="https://blog.front-matter.io/posts/x") == "schemaorg"

    def test_by_extension(self) -> None:
        assert find_from_format(ext=".xml") == "crossrefxml"

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"schema_version": "https://commonmeta.org/commonmeta_v0.16"}, "commonmeta"),
            ({"@context": "http://schema.org"}, "schemaorg"),
            ({"guid": "x"}, "jsonfeed"),
            ({"data": {"attributes": {"schemaVersion": "http://datacite.org/schema/kernel-4"}}}, "datacite"),
            ({"source": "Crossref"}, "crossref"),
            ({"issued": {"date-parts": [[2020]]}}, "csl"),
            ({"metadata": {}, "pids": {}}, "inveniordm"),
            ({"id": "https://openalex.org/W1"}, "openalex"),
            ({"unknown": True}, ""),
        ],
    )
    def test_by_map(self, data: dict, expected: str) -> None:
        assert find_from_format(data=data) == expected

    def test_by_string(self) -> None:
        assert find_from_format(content='{"guid": "x"}') == "jsonfeed"
        assert find_from_format(content="<doi_records/>") == "crossrefxml"

    def test_default(self) -> None:
        assert find_from_format() == "datacite"
