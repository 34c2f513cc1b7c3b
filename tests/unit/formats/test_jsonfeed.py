"""Tests for the JSON Feed (Rogue Scholar posts) reader."""

import json
from urllib.parse import parse_qs, urlparse

import pytest

from commonmeta.core.exceptions import InvalidIdentifierError
from commonmeta.formats import jsonfeed
from commonmeta.formats.base import QueryOptions

DOI = "https://doi.org/10.59350/sfzv4-xdb68"
UUID = "4e4bf150-751f-4245-b4ca-fe69e3c3bb24"


@pytest.fixture
def post():
    return {
        "id": UUID,
        "doi": DOI,
        "guid": "https://blog.front-matter.io/posts/commonmeta",
        "rid": "1xr1m-wnh16",
        "url": "http://blog.front-matter.io/posts/commonmeta/",
        "title": "Commonmeta <i>metadata</i>",
        "summary": "Summary of the post.",
        "content_html": "<p>Hello</p>",
        "image": "https://blog.front-matter.io/content/images/cover.png",
        "published_at": 1611311475,
        "updated_at": 1611397875,
        "language": "en",
        "tags": ["Metadata", "Open Science"],
        "authors": [
            {
                "name": "Martin Fenner",
                "url": "https://orcid.org/0000-0003-1419-2405",
                "affiliation": [{"id": "https://ror.org/04wxnsj81", "name": "DataCite"}],
            },
            {"name": "Front Matter Foundation"},
        ],
        "blog": {
            "slug": "front_matter",
            "title": "Front Matter",
            "description": "The Front Matter Blog",
            "language": "en",
            "license": "https://creativecommons.org/licenses/by/4.0/legalcode",
            "favicon": "https://blog.front-matter.io/favicon.png",
            "generator": "Ghost 5.25",
            "home_page_url": "https://blog.front-matter.io",
            "issn": "2749-9952",
            "prefix": "10.59350",
            "category": "computerAndInformationSciences",
            "status": "active",
            "funding": {
                "funderName": "European Commission",
                "funderIdentifier": "https://doi.org/10.13039/501100000780",
                "funderIdentifierType": "Crossref Funder ID",
                "awardNumber": "654039",
            },
        },
        "relationships": [
            {"type": "IsIdenticalTo", "urls": ["https://doi.org/10.5281/ZENODO.123"]},
            {"type": "HasAward", "urls": ["https://cordis.europa.eu/project/id/101017536"]},
            {"type": "Unknown", "urls": ["https://example.org/elsewhere"]},
        ],
        "reference": [
            {"key": "ref1", "id": "https://doi.org/10.5555/12345678", "title": "Toy", "publicationYear": 2008},
            {"key": "ref1", "id": "https://doi.org/10.5555/12345678"},
            {"key": "ref2", "unstructured": "A plain text reference."},
        ],
    }


class TestRead:
    """Tests for jsonfeed.read()."""

    def test_basic_fields(self, post) -> None:
        record = jsonfeed.read(post)
        assert record.id == DOI
        assert record.type == "BlogPost"
        assert record.url == "https://blog.front-matter.io/posts/commonmeta"
        assert record.title == "Commonmeta <i>metadata</i>"
        assert record.abstract == "Summary of the post."
        assert record.content_html == "<p>Hello</p>"
        assert record.feature_image == "https://blog.front-matter.io/content/images/cover.png"
        assert record.publisher.name == "Front Matter"
        assert record.provider == "Crossref"
        assert record.license.id == "CC-BY-4.0"

    def test_dates(self, post) -> None:
        record = jsonfeed.read(post)
        assert record.date.published == "2021-01-22T10:31:15Z"
        assert record.date.updated == "2021-01-23T10:31:15Z"

    def test_container(self, post) -> None:
        container = jsonfeed.read(post).container
        assert (container.type, container.title) == ("Blog", "Front Matter")
        assert (container.identifier, container.identifier_type) == ("2749-9952", "ISSN")
        assert container.platform == "Ghost 5.25"
        assert container.license.url == "https://creativecommons.org/licenses/by/4.0/legalcode"

    def test_container_without_issn(self, post) -> None:
        del post["blog"]["issn"]
        container = jsonfeed.read(post).container
        assert (container.identifier, container.identifier_type) == (
            "https://blog.front-matter.io",
            "URL",
        )

    def test_identifiers_and_files(self, post) -> None:
        record = jsonfeed.read(post)
        assert [(i.identifier, i.identifier_type) for i in record.identifiers] == [
            (DOI, "DOI"),
            (UUID, "UUID"),
            ("https://blog.front-matter.io/posts/commonmeta", "GUID"),
            ("1xr1m-wnh16", "RID"),
        ]
        assert [f.mime_type for f in record.files] == [
            "text/markdown",
            "application/pdf",
            "application/epub+zip",
            "application/xml",
        ]
        assert record.files[0].url == "https://api.rogue-scholar.org/posts/10.59350/sfzv4-xdb68.md"

    def test_relations(self, post) -> None:
        relations = [(r.type, r.id) for r in jsonfeed.read(post).relations]
        assert relations == [
            ("IsPartOf", "https://portal.issn.org/resource/ISSN/2749-9952"),
            ("IsPartOf", "https://rogue-scholar.org/api/communities/front_matter"),
            ("IsIdenticalTo", "https://doi.org/10.5281/zenodo.123"),
            ("IsPartOf", "https://rogue-scholar.org/api/communities/computerAndInformationSciences"),
        ]

    def test_subjects_and_contributors(self, post) -> None:
        record = jsonfeed.read(post)
        assert [s.subject for s in record.subjects] == [
            "Computer and information sciences",
            "Metadata",
            "Open Science",
        ]
        fenner, foundation = record.contributors
        assert fenner.id == "https://orcid.org/0000-0003-1419-2405"
        assert fenner.affiliations[0].id == "https://ror.org/04wxnsj81"
        assert foundation.type == "Organization"

    def test_references(self, post) -> None:
        references = jsonfeed.read(post).references
        assert [(r.key, r.publication_year) for r in references] == [("ref1", "2008"), ("ref2", "")]
        assert references[1].unstructured == "A plain text reference."

    def test_funding_from_blog_and_award(self, post) -> None:
        funding = jsonfeed.read(post).funding_references
        assert [(f.funder_name, f.award_number) for f in funding] == [
            ("European Commission", "654039"),
            ("European Commission", "101017536"),
        ]
        assert funding[1].award_uri == "https://cordis.europa.eu/project/id/101017536"

    def test_post_funding_replaces_awards(self, post) -> None:
        post["funding_references"] = [{"funderName": "Wellcome Trust", "awardNumber": "W1"}]
        funding = jsonfeed.read(post).funding_references
        assert [f.funder_name for f in funding] == ["European Commission", "Wellcome Trust"]

    def test_archived_blog_uses_archive_url(self, post) -> None:
        post["blog"]["status"] = "archived"
        post["archive_url"] = "https://wayback.example.org/post"
        assert jsonfeed.read(post).url == "https://wayback.example.org/post"

    def test_generated_doi_under_blog_prefix(self, post) -> None:
        del post["doi"]
        assert jsonfeed.get_id(post).startswith("https://doi.org/10.59350/")

    def test_url_without_prefix(self, post) -> None:
        del post["doi"]
        del post["blog"]["prefix"]
        assert jsonfeed.get_id(post) == "https://blog.front-matter.io/posts/commonmeta"

    def test_nothing_to_identify(self) -> None:
        with pytest.raises(ValueError):
            jsonfeed.read({"title": "Orphan"})


class TestAwards:
    """Tests for jsonfeed.get_award()."""

    def test_nsf_award(self) -> None:
        award = jsonfeed.get_award(
            [
                "https://doi.org/10.13039/100000001",
                "https://www.nsf.gov/awardsearch/showAward?AWD_ID=2134956",
            ]
        )
        assert award.funder_name == "National Science Foundation"
        assert award.award_number == "2134956"

    def test_cordis_award(self) -> None:
        award = jsonfeed.get_award(["https://cordis.europa.eu/project/id/101017536"])
        assert award.funder_identifier == "https://doi.org/10.13039/501100000780"
        assert award.award_number == "101017536"

    def test_unknown_award(self) -> None:
        assert jsonfeed.get_award(["https://example.org/grant/1"]) is None
        assert jsonfeed.get_award([]) is None


class TestNetwork:
    """Tests for the Rogue Scholar API calls."""

    @pytest.mark.parametrize(
        "pid,expected",
        [
            ("10.59350/sfzv4-xdb68", "https://api.rogue-scholar.org/posts/10.59350/sfzv4-xdb68"),
            (UUID, f"https://api.rogue-scholar.org/posts/{UUID}"),
            (
                "https://api.rogue-scholar.org/posts/10.59350/sfzv4-xdb68",
                "https://api.rogue-scholar.org/posts/10.59350/sfzv4-xdb68",
            ),
        ],
    )
    def test_post_url(self, pid, expected) -> None:
        assert jsonfeed.post_url(pid) == expected

    def test_post_url_invalid(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            jsonfeed.post_url("not a post")

    def test_query_url(self) -> None:
        query = parse_qs(urlparse(jsonfeed.query_url(QueryOptions(community="front_matter"))).query)
        assert query == {
            "flag": ["needs_update"],
            "blog_slug": ["front_matter"],
            "per_page": ["10"],
            "page": ["1"],
        }
        archived = parse_qs(urlparse(jsonfeed.query_url(QueryOptions(is_archived=True))).query)
        assert "flag" not in archived

    def test_fetch(self, mock_client, post) -> None:
        mock_client.get_json.return_value = post
        assert jsonfeed.fetch(DOI, client=mock_client).id == DOI
        mock_client.get_json.assert_called_once_with(
            "https://api.rogue-scholar.org/posts/10.59350/sfzv4-xdb68"
        )

    def test_fetch_all(self, mock_client, post) -> None:
        mock_client.get_json.return_value = {"items": [post, {"title": "Orphan"}]}
        records = jsonfeed.fetch_all(QueryOptions(), client=mock_client)
        assert [r.id for r in records] == [DOI]

    def test_load_all(self, tmp_path, post) -> None:
        path = tmp_path / "posts.json"
        path.write_text(json.dumps({"items": [post]}))
        assert [r.id for r in jsonfeed.load_all(path)] == [DOI]
