"""Tests for the InvenioRDM reader and writer."""

import json
from urllib.parse import parse_qs, urlparse

import pytest

from commonmeta.core.exceptions import InvalidIdentifierError, SchemaValidationError
from commonmeta.formats import inveniordm
from commonmeta.formats.base import QueryOptions
from commonmeta.model.record import Date, FundingReference, Record

DOI = "https://doi.org/10.59350/sfzv4-xdb68"


@pytest.fixture
def content(load_fixture):
    return load_fixture("inveniordm-record.json")


@pytest.fixture
def record(content):
    return inveniordm.read(content)


@pytest.fixture
def zenodo():
    return {
        "id": 5244404,
        "doi": "10.5281/zenodo.5244404",
        "links": {"self_html": "https://zenodo.org/records/5244404"},
        "metadata": {
            "title": "commonmeta-ruby",
            "resource_type": {"type": "software"},
            "publication_date": "2021-08-24",
            "creators": [
                {"name": "Fenner, Martin", "orcid": "0000-0003-1419-2405", "affiliation": "DataCite"},
                {"name": "DataCite"},
            ],
            "license": {"id": "MIT"},
            "keywords": ["metadata", "ruby"],
            "version": "3.0",
            "grants": [
                {
                    "code": "777523",
                    "title": "FREYA",
                    "url": "http://cordis.europa.eu/project/id/777523",
                    "funder": {"doi": "10.13039/501100000780", "name": "European Commission"},
                }
            ],
        },
    }


class TestRead:
    """Tests for inveniordm.read() with an InvenioRDM record."""

    def test_basic_fields(self, record) -> None:
        assert record.id == DOI
        assert record.type == "BlogPost"
        assert record.url == "https://blog.front-matter.io/posts/commonmeta"
        assert record.title == "Commonmeta <i>metadata</i>"
        assert record.abstract == "Summary <b>here</b>"
        assert record.language == "en"
        assert record.version == "v1"
        assert record.publisher.name == "Front Matter"
        assert record.provider == ""
        assert record.content_html == "<p>Hello</p>"
        assert record.feature_image == "https://blog.front-matter.io/content/images/cover.png"

    def test_contributors(self, record) -> None:
        fenner, foundation, doe = record.contributors
        assert fenner.id == "https://orcid.org/0000-0003-1419-2405"
        assert (fenner.given_name, fenner.family_name, fenner.name) == ("Martin", "Fenner", "")
        assert fenner.affiliations[0].id == "https://ror.org/04wxnsj81"
        assert foundation.type == "Organization"
        assert foundation.name == "Front Matter Foundation"
        assert (doe.given_name, doe.family_name) == ("Jane", "Doe")
        assert doe.contributor_roles == ["ContactPerson"]

    def test_dates(self, record) -> None:
        assert record.date.published == "2023-05-01"
        assert record.date.updated == "2023-05-02"

    def test_identifiers(self, record) -> None:
        assert [(i.identifier, i.identifier_type) for i in record.identifiers] == [
            (DOI, "DOI"),
            ("1xr1m-wnh16", "RID"),
            ("62d42bbd41e317003df48efb", "GUID"),
        ]

    def test_subjects(self, record) -> None:
        assert [s.subject for s in record.subjects] == [
            "FOS: Computer and information sciences",
            "FOS: Earth and related environmental sciences",
        ]

    def test_container_relations_references(self, record) -> None:
        assert (record.container.type, record.container.identifier) == ("Journal", "2749-9952")
        assert [(r.type, r.id) for r in record.relations] == [
            ("IsPartOf", "https://portal.issn.org/resource/ISSN/2749-9952"),
            ("IsIdenticalTo", "https://doi.org/10.5281/zenodo.123"),
        ]
        assert [(r.key, r.id, r.unstructured) for r in record.references] == [
            ("ref1", "https://doi.org/10.5555/12345678", ""),
            ("ref2", "", "Plain reference (2020)."),
        ]

    def test_license_and_funding(self, record) -> None:
        assert record.license.id == "CC-BY-4.0"
        funding = record.funding_references[0]
        assert funding.funder_identifier == "https://ror.org/00k4n6c32"
        assert funding.funder_identifier_type == "ROR"
        assert (funding.award_number, funding.award_title) == ("654039", "THOR")
        assert funding.award_uri == "https://cordis.europa.eu/project/id/654039"

    def test_datacite_provider(self, content) -> None:
        content["pids"]["doi"]["provider"] = "datacite"
        assert inveniordm.read(content).provider == "DataCite"

    def test_self_link_without_doi(self, content) -> None:
        content["pids"] = {}
        assert inveniordm.read(content).id == "https://rogue-scholar.org/records/1xr1m-wnh16"

    def test_unidentifiable(self) -> None:
        with pytest.raises(ValueError):
            inveniordm.read({"metadata": {"title": "Lost"}})


class TestReadZenodo:
    """Tests for inveniordm.read() with a legacy Zenodo record."""

    def test_fields(self, zenodo) -> None:
        record = inveniordm.read(zenodo)
        assert record.id == "https://doi.org/10.5281/zenodo.5244404"
        assert record.type == "Software"
        assert record.url == "https://zenodo.org/records/5244404"
        assert record.license.id == "MIT"
        assert [s.subject for s in record.subjects] == ["metadata", "ruby"]
        assert record.identifier_of_type("RID") == "5244404"

    def test_contributors(self, zenodo) -> None:
        fenner, datacite = inveniordm.read(zenodo).contributors
        assert fenner.id == "https://orcid.org/0000-0003-1419-2405"
        assert (fenner.given_name, fenner.family_name) == ("Martin", "Fenner")
        assert fenner.affiliations[0].name == "DataCite"
        assert datacite.type == "Organization"

    def test_grants(self, zenodo) -> None:
        funding = inveniordm.read(zenodo).funding_references[0]
        assert funding.funder_identifier == "https://doi.org/10.13039/501100000780"
        assert funding.funder_identifier_type == "Crossref Funder ID"
        assert funding.award_number == "777523"
        assert funding.award_uri == "https://cordis.europa.eu/project/id/777523"


class TestNetwork:
    """Tests for the InvenioRDM API calls."""

    @pytest.mark.parametrize(
        "pid,expected",
        [
            ("https://zenodo.org/records/10495720", "https://zenodo.org/api/records/10495720"),
            (
                "https://rogue-scholar.org/api/records/1xr1m-wnh16",
                "https://rogue-scholar.org/api/records/1xr1m-wnh16",
            ),
        ],
    )
    def test_record_url(self, pid, expected) -> None:
        assert inveniordm.record_url(pid) == expected

    def test_record_url_invalid(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            inveniordm.record_url("10.59350/sfzv4-xdb68")

    def test_fetch(self, mock_client, content) -> None:
        mock_client.get_json.return_value = content
        record = inveniordm.fetch("https://rogue-scholar.org/records/1xr1m-wnh16", client=mock_client)
        assert record.id == DOI
        mock_client.get_json.assert_called_once_with(
            "https://rogue-scholar.org/api/records/1xr1m-wnh16"
        )

    def test_fetch_all(self, mock_client, content) -> None:
        mock_client.get_json.return_value = {"hits": {"hits": [content, {"metadata": {}}]}}
        records = inveniordm.fetch_all(QueryOptions(), client=mock_client)
        assert [r.id for r in records] == [DOI]

    def test_query_url(self) -> None:
        options = QueryOptions(
            community="front_matter", type="publication-blogpost", year="2023", language="en"
        )
        url = urlparse(inveniordm.query_url(options))
        assert url.netloc == "rogue-scholar.org"
        assert url.path == "/api/communities/front_matter/records"
        query = parse_qs(url.query)
        assert query["q"] == [
            "metadata.resource_type.id:publication-blogpost AND "
            "metadata.publication_date:[2023-01-01 TO 2023-12-31] AND "
            "metadata.languages.id:eng"
        ]
        assert query["size"] == ["10"]
        assert query["sort"] == ["newest"]

    def test_query_url_other_host(self) -> None:
        url = urlparse(inveniordm.query_url(QueryOptions(host="zenodo.org", number=500)))
        assert (url.netloc, url.path) == ("zenodo.org", "/api/records")
        assert parse_qs(url.query)["size"] == ["100"]
        assert "q" not in parse_qs(url.query)

    def test_search_by_doi(self, mock_client) -> None:
        mock_client.get_json.return_value = {"hits": {"hits": [{"id": "1xr1m-wnh16"}]}}
        assert inveniordm.search_by_doi(DOI, client=mock_client, token="secret") == "1xr1m-wnh16"
        mock_client.get_json.assert_called_once_with(
            "https://rogue-scholar.org/api/records?q=doi:10.59350%2Fsfzv4-xdb68",
            not_found_ok=True,
            headers={"Authorization": "Bearer secret"},
        )

    def test_search_by_doi_no_hits(self, mock_client) -> None:
        mock_client.get_json.return_value = None
        assert inveniordm.search_by_doi(DOI, client=mock_client) == ""

    def test_search_by_doi_invalid(self, mock_client) -> None:
        with pytest.raises(InvalidIdentifierError):
            inveniordm.search_by_doi("not-a-doi", client=mock_client)

    def test_search_by_slug(self, mock_client) -> None:
        mock_client.get_json.return_value = {"hits": {"hits": [{"id": "a1b2"}]}}
        assert inveniordm.search_by_slug("front_matter", client=mock_client) == "a1b2"


class TestWrite:
    """Tests for the InvenioRDM writer."""

    def test_envelope(self, record) -> None:
        payload = inveniordm.convert(record)
        assert payload["pids"] == {"doi": {"identifier": "10.59350/sfzv4-xdb68", "provider": "external"}}
        assert payload["access"] == {"record": "public", "files": "public"}
        assert payload["files"] == {"enabled": False}
        assert payload["custom_fields"]["journal:journal"] == {"title": "Front Matter", "issn": "2749-9952"}
        assert payload["custom_fields"]["rs:content_html"] == "<p>Hello</p>"

    def test_metadata(self, record) -> None:
        metadata = inveniordm.convert(record)["metadata"]
        assert metadata["resource_type"] == {"id": "publication-blogpost"}
        assert metadata["title"] == "Commonmeta <i>metadata</i>"
        assert metadata["publication_date"] == "2023-05-01"
        assert metadata["languages"] == [{"id": "eng"}]
        assert metadata["rights"] == [{"id": "cc-by-4.0"}]
        assert {"date": "2023-05-01", "type": {"id": "issued"}} in metadata["dates"]
        assert {"date": "2023-05-02", "type": {"id": "updated"}} in metadata["dates"]
        assert metadata["identifiers"] == [
            {"identifier": "62d42bbd41e317003df48efb", "scheme": "guid"},
            {"identifier": "https://blog.front-matter.io/posts/commonmeta", "scheme": "url"},
        ]
        assert metadata["related_identifiers"] == [
            {"identifier": "10.5281/zenodo.123", "scheme": "doi", "relation_type": {"id": "isidenticalto"}}
        ]

    def test_creators(self, record) -> None:
        creators = inveniordm.convert(record)["metadata"]["creators"]
        assert creators == [
            {
                "person_or_org": {
                    "type": "personal",
                    "given_name": "Martin",
                    "family_name": "Fenner",
                    "identifiers": [{"identifier": "0000-0003-1419-2405", "scheme": "orcid"}],
                },
                "affiliations": [{"id": "04wxnsj81", "name": "DataCite"}],
            },
            {"person_or_org": {"type": "organizational", "name": "Front Matter Foundation"}},
        ]

    def test_funding_and_references(self, record) -> None:
        metadata = inveniordm.convert(record)["metadata"]
        assert metadata["funding"] == [
            {"funder": {"name": "European Commission", "id": "00k4n6c32"}, "award": {"id": "654039"}}
        ]
        assert metadata["references"] == [
            {"reference": "Unknown title", "scheme": "doi", "identifier": "10.5555/12345678"},
            {"reference": "Plain reference (2020)."},
        ]

    def test_unknown_award(self) -> None:
        record = Record(
            id=DOI,
            type="Post",
            date=Date(published="2024-01-01"),
            funding_references=[
                FundingReference(
                    funder_name="Wellcome Trust",
                    award_number="W1",
                    award_uri="https://wellcome.org/grants/W1",
                )
            ],
        )
        metadata = inveniordm.convert(record)["metadata"]
        assert metadata["resource_type"] == {"id": "publication"}
        assert metadata["funding"][0]["award"] == {
            "number": "W1",
            "title": {"en": "No title"},
            "identifiers": [{"identifier": "https://wellcome.org/grants/W1", "scheme": "url"}],
        }

    def test_placeholders(self) -> None:
        record = Record(id=DOI, type="StudyRegistration", date=Date(published="2024-01-01"))
        metadata = inveniordm.convert(record)["metadata"]
        assert metadata["title"] == "No title"
        assert metadata["creators"] == [{"person_or_org": {"type": "organizational", "name": "No author"}}]
        assert metadata["resource_type"] == {"id": "publication-other"}
        json.loads(inveniordm.write(record))

    def test_write_requires_publication_date(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            inveniordm.write(Record(id=DOI, type="BlogPost"))
        assert exc_info.value.output

    def test_write_all(self, record) -> None:
        undated = Record(id=DOI, type="BlogPost")
        output = json.loads(inveniordm.write_all([record, undated]))
        assert len(output) == 2
        with pytest.raises(SchemaValidationError):
            inveniordm.write_all([record, undated], strict=True)

    def test_round_trip(self, record) -> None:
        payload = inveniordm.convert(record)
        payload["id"] = "1xr1m-wnh16"
        again = inveniordm.read(payload)
        assert again.id == record.id
        assert again.type == "BlogPost"
        assert again.url == record.url
        assert [c.id for c in again.contributors] == [c.id for c in record.contributors[:2]]
