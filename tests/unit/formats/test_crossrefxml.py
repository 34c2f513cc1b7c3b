"""Tests for the Crossref XML reader and deposit writer."""

from unittest.mock import patch

import pytest

from commonmeta.core.exceptions import (
    DecodeFailureError,
    NetworkFailureError,
    UnsupportedConversionError,
)
from commonmeta.formats import crossrefxml
from commonmeta.formats.base import QueryOptions
from commonmeta.formats.crossrefxml import Account
from commonmeta.formats.crossrefxml.reader import find_queries, parse
from commonmeta.model.record import (
    Container,
    Contributor,
    Date,
    Description,
    FundingReference,
    Identifier,
    License,
    Publisher,
    Record,
    Reference,
    Relation,
    Subject,
    Title,
)


@pytest.fixture
def record(fixture_path):
    return crossrefxml.load(fixture_path("crossrefxml-work.xml"))


@pytest.fixture
def account() -> Account:
    return Account(
        login_id="fm",
        login_passwd="secret",
        depositor="Front Matter",
        email="info@front-matter.io",
        registrant="Front Matter",
    )


class TestRead:
    """Tests for reading unixsd query results."""

    def test_basic_fields(self, record) -> None:
        assert record.id == "https://doi.org/10.7554/elife.01567"
        assert record.type == "JournalArticle"
        assert record.provider == "Crossref"
        assert record.language == "en"
        assert record.url == "https://elifesciences.org/articles/01567"
        assert record.archive_locations == ["CLOCKSS"]

    def test_dates(self, record) -> None:
        assert record.date.published == "2014-02-11"
        assert record.date.submitted == "2013-09-20"
        assert record.date.accepted == "2014-01-02"
        assert record.date.updated == "2022-03-25T12:19:11Z"

    def test_container(self, record) -> None:
        assert record.container.title == "eLife"
        assert record.container.identifier == "2050-084X"
        assert record.container.type == "Journal"
        assert record.container.volume == "3"

    def test_contributors(self, record) -> None:
        first, editor, organization = record.contributors
        assert first.id == "https://orcid.org/0000-0002-4456-5432"
        assert first.affiliations[0].id == "https://ror.org/019whta54"
        assert first.affiliations[0].name == "University of Lausanne"
        assert editor.contributor_roles == ["Editor"]
        assert editor.affiliations[0].name == "University of Lausanne, Switzerland"
        assert organization.type == "Organization"
        assert organization.name == "Plant Phenomics Consortium"

    def test_abstract_keeps_inline_text(self, record) -> None:
        assert record.descriptions[0].type == "Abstract"
        assert "makes Arabidopsis a preferred subject" in record.abstract

    def test_programs(self, record) -> None:
        assert record.license == License(
            id="CC-BY-3.0", url="https://creativecommons.org/licenses/by/3.0/legalcode"
        )
        funding = record.funding_references[0]
        assert funding.funder_name == "European Commission"
        assert funding.funder_identifier == "https://doi.org/10.13039/501100000780"
        assert funding.award_number == "654039"
        assert [(r.type, r.id) for r in record.relations] == [
            ("IsSupplementedBy", "https://doi.org/10.5061/dryad.b835k"),
            ("HasReview", "https://doi.org/10.7554/elife.01567.019"),
            ("IsPartOf", "https://portal.issn.org/resource/ISSN/2050-084X"),
        ]

    def test_identifiers_and_references(self, record) -> None:
        assert record.identifiers[1] == Identifier(identifier="e01567", identifier_type="Other")
        assert [r.key for r in record.references] == ["bib1", "bib2"]
        assert record.references[0].id == "https://doi.org/10.1038/nature02100"
        assert record.files[0].mime_type == "application/pdf"

    def test_publisher(self, record) -> None:
        assert record.publisher == Publisher(
            id="https://api.crossref.org/members/4374",
            name="eLife Sciences Publications, Ltd",
        )

    def test_malformed_xml(self) -> None:
        with pytest.raises(DecodeFailureError):
            parse(b"<crossref_result><unclosed></crossref_result>")

    def test_list_records(self, load_fixture) -> None:
        single = load_fixture("crossrefxml-work.xml")
        query = single[single.index("<query ") : single.index("</query>") + len("</query>")]
        document = f"<ListRecords><record><metadata>{query}</metadata></record><record><metadata>{query}</metadata></record></ListRecords>"
        root = parse(document.encode("utf-8"))
        assert len(find_queries(root)) == 2
        assert len(crossrefxml.read_all(find_queries(root))) == 2

    def test_fetch(self, mock_client, make_response, load_fixture) -> None:
        mock_client.get.return_value = make_response(text=load_fixture("crossrefxml-work.xml"))
        record = crossrefxml.fetch("10.7554/elife.01567", client=mock_client)
        assert record.type == "JournalArticle"
        _, kwargs = mock_client.get.call_args
        assert kwargs["headers"]["Accept"] == "application/vnd.crossref.unixsd+xml"

    def test_fetch_all_skips_failed_works(self, settings, mock_client, make_response, load_fixture) -> None:
        settings.workers = 3
        work = load_fixture("crossrefxml-work.xml")

        def get(url, **kwargs):
            if "elife" in url:
                return make_response(text=work)
            raise NetworkFailureError("HTTP 503", status=503, url=url)

        mock_client.get.side_effect = get
        items = [{"DOI": "10.7554/elife.01567"}, {"DOI": "10.5555/unavailable"}, {"DOI": "10.7554/elife.01567"}]
        with patch("commonmeta.formats.crossrefxml.reader.get_all_works", return_value=items):
            records = crossrefxml.fetch_all(QueryOptions(), client=mock_client)
        assert [r.id for r in records] == ["https://doi.org/10.7554/elife.01567"] * 2
        assert mock_client.get.call_count == 3


def _journal_article() -> Record:
    return Record(
        id="https://doi.org/10.53731/ybhah-9jy85",
        type="JournalArticle",
        url="https://blog.example.org/posts/1",
        titles=[Title(title="A title"), Title(title="A subtitle", type="Subtitle")],
        contributors=[
            Contributor(
                id="https://orcid.org/0000-0003-1419-2405",
                given_name="Martin",
                family_name="Fenner",
            ),
            Contributor(type="Organization", name="Front Matter"),
        ],
        container=Container(
            identifier="2749-9952",
            identifier_type="ISSN",
            title="Front Matter",
            volume="1",
            first_page="1",
            last_page="10",
        ),
        date=Date(published="2023-10-04"),
        descriptions=[Description(description="An abstract.", type="Abstract")],
        license=License(id="CC-BY-4.0", url="https://creativecommons.org/licenses/by/4.0/legalcode"),
        funding_references=[
            FundingReference(
                funder_identifier="https://doi.org/10.13039/501100000780",
                funder_identifier_type="Crossref Funder ID",
                funder_name="European Commission",
                award_number="654039",
            )
        ],
        relations=[
            Relation(id="https://doi.org/10.5281/zenodo.1", type="IsSupplementedBy"),
            Relation(id="https://doi.org/10.5281/zenodo.2", type="IsVersionOf"),
            Relation(id="https://example.org/cites", type="Cites"),
        ],
        references=[
            Reference(key="ref1", id="https://doi.org/10.1038/nature02100"),
            Reference(unstructured="Unstructured citation"),
            Reference(id="https://example.org/no-doi"),
        ],
        publisher=Publisher(name="Front Matter"),
    )


class TestWrite:
    """Tests for deposit batches."""

    def test_journal_article(self, account) -> None:
        root = parse(crossrefxml.write(_journal_article(), account))
        assert root.tag == "doi_batch"
        assert root.get("version") == "5.3.1"
        assert root.find("head/depositor/depositor_name").text == "Front Matter"
        assert root.find("head/registrant").text == "Front Matter"
        journal = root.find("body/journal")
        assert journal.find("journal_metadata/full_title").text == "Front Matter"
        assert journal.find("journal_metadata/issn").text == "2749-9952"
        assert journal.find("journal_issue/journal_volume/volume").text == "1"
        article = journal.find("journal_article")
        assert article.find("titles/title").text == "A title"
        assert article.find("titles/subtitle").text == "A subtitle"
        assert article.find("doi_data/doi").text == "10.53731/ybhah-9jy85"
        assert article.find("pages/last_page").text == "10"

    def test_contributors(self, account) -> None:
        article = parse(crossrefxml.write(_journal_article(), account)).find("body/journal/journal_article")
        person = article.find("contributors/person_name")
        assert person.get("sequence") == "first"
        assert person.find("surname").text == "Fenner"
        assert person.find("ORCID").text == "https://orcid.org/0000-0003-1419-2405"
        organization = article.find("contributors/organization")
        assert organization.get("sequence") == "additional"
        assert organization.text == "Front Matter"

    def test_programs(self, account) -> None:
        article = parse(crossrefxml.write(_journal_article(), account)).find("body/journal/journal_article")
        programs = {p.get("name"): p for p in article.findall("program")}
        assert set(programs) == {"fundref", "AccessIndicators", "relations"}
        licenses = programs["AccessIndicators"].findall("license_ref")
        assert [l.get("applies_to") for l in licenses] == ["vor", "tdm"]
        relations = programs["relations"].findall("related_item/*")
        assert [(r.tag, r.get("relationship-type")) for r in relations] == [
            ("inter_work_relation", "isSupplementedBy"),
            ("intra_work_relation", "isVersionOf"),
        ]

    def test_citations_skip_unusable(self, account) -> None:
        article = parse(crossrefxml.write(_journal_article(), account)).find("body/journal/journal_article")
        citations = article.findall("citation_list/citation")
        assert [c.get("key") for c in citations] == ["ref1", "ref2"]
        assert citations[0].find("doi").text == "10.1038/nature02100"

    def test_blog_post_is_posted_content(self, account) -> None:
        record = _journal_article().model_copy(
            update={"type": "BlogPost", "subjects": [Subject(subject="FOS: Computer and information sciences")]}
        )
        posted = parse(crossrefxml.write(record, account)).find("body/posted_content")
        assert posted.get("type") == "other"
        assert posted.find("group_title").text == "FOS: Computer and information sciences"
        assert posted.find("posted_date/year").text == "2023"
        assert posted.find("institution/institution_name").text == "Front Matter"

    def test_unsupported_type(self, account) -> None:
        record = Record(id="https://doi.org/10.5281/zenodo.1", type="Software")
        with pytest.raises(UnsupportedConversionError):
            crossrefxml.write(record, account)

    def test_write_all_skips_unsupported(self, account) -> None:
        records = [_journal_article(), Record(id="https://doi.org/10.5281/zenodo.1", type="Software")]
        root = parse(crossrefxml.write_all(records, account))
        assert len(list(root.find("body"))) == 1
        with pytest.raises(UnsupportedConversionError):
            crossrefxml.write_all(records, account, strict=True)

    def test_round_trip_through_reader(self, record, account) -> None:
        root = parse(crossrefxml.write(record, account))
        article = root.find("body/journal/journal_article")
        assert article.find("doi_data/doi").text == "10.7554/elife.01567"
        assert article.find("publication_date/year").text == "2014"
        assert article.find("archive_locations/archive").get("name") == "CLOCKSS"
