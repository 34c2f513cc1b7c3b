"""Tests for the Commonmeta record model."""

import pytest
from pydantic import ValidationError

from commonmeta.model.record import (
    Affiliation,
    Container,
    Contributor,
    Date,
    Description,
    FundingReference,
    Identifier,
    Record,
    Reference,
    Relation,
    Subject,
    Title,
    dedupe_contributors,
    primary_identifier,
)
from commonmeta.model.types import contributor_role, work_type

DOI = "https://doi.org/10.7554/elife.01567"


class TestRecordNormalization:
    """Invariants enforced when a record is built."""

    def test_id_and_type_required(self) -> None:
        with pytest.raises(ValidationError):
            Record(id=DOI)

    def test_primary_identifier_first(self) -> None:
        record = Record(
            id=DOI,
            type="JournalArticle",
            identifiers=[Identifier(identifier="https://example.org/a", identifier_type="URL")],
        )
        assert record.identifiers[0].identifier == DOI
        assert record.identifiers[0].identifier_type == "DOI"
        assert len(record.identifiers) == 2

    def test_primary_identifier_not_duplicated(self) -> None:
        record = Record(
            id=DOI,
            type="JournalArticle",
            identifiers=[
                Identifier(identifier="https://doi.org/10.7554/ELIFE.01567", identifier_type="DOI"),
                Identifier(identifier="https://example.org/a", identifier_type="URL"),
                Identifier(identifier="https://example.org/a", identifier_type="URL"),
            ],
        )
        assert [i.identifier for i in record.identifiers] == [DOI, "https://example.org/a"]

    def test_contributor_defaults_to_author(self) -> None:
        record = Record(id=DOI, type="JournalArticle", contributors=[Contributor(name="Jane Doe")])
        assert record.contributors[0].contributor_roles == ["Author"]
        assert record.authors == record.contributors

    def test_organization_has_no_person_names(self) -> None:
        record = Record(
            id=DOI,
            type="JournalArticle",
            contributors=[Contributor(type="Organization", given_name="DataCite", family_name="Team")],
        )
        contributor = record.contributors[0]
        assert contributor.name == "DataCite Team"
        assert contributor.given_name == ""
        assert contributor.family_name == ""

    def test_duplicates_removed(self) -> None:
        record = Record(
            id=DOI,
            type="JournalArticle",
            relations=[
                Relation(id="https://doi.org/10.1/a", type="IsPartOf"),
                Relation(id="https://doi.org/10.1/a", type="IsPartOf"),
                Relation(id="https://doi.org/10.1/a", type="HasPart"),
            ],
            subjects=[Subject(subject="Biology"), Subject(subject="Biology")],
            references=[
                Reference(key="ref1", id="https://doi.org/10.1/b"),
                Reference(key="ref1", id="https://doi.org/10.1/c"),
                Reference(unstructured="Unkeyed"),
                Reference(unstructured="Unkeyed"),
            ],
            funding_references=[
                FundingReference(funder_name="European Commission", award_number="654039"),
                FundingReference(funder_name="European Commission", award_number="654039"),
            ],
            archive_locations=["Portico", "Portico"],
        )
        assert len(record.relations) == 2
        assert len(record.subjects) == 1
        assert [r.id for r in record.references[:1]] == ["https://doi.org/10.1/b"]
        assert len(record.references) == 3
        assert len(record.funding_references) == 1
        assert record.archive_locations == ["Portico"]


class TestDedupeContributors:
    """Tests for contributor de-duplication."""

    def test_same_orcid(self) -> None:
        contributors = [
            Contributor(id="https://orcid.org/0000-0003-1419-2405", given_name="Martin", family_name="Fenner"),
            Contributor(id="https://orcid.org/0000-0003-1419-2405", given_name="M.", family_name="Fenner"),
        ]
        assert len(dedupe_contributors(contributors)) == 1

    def test_same_names_case_insensitive(self) -> None:
        contributors = [
            Contributor(given_name="Martin", family_name="Fenner"),
            Contributor(given_name="martin", family_name="FENNER"),
            Contributor(given_name="Josiah", family_name="Carberry"),
        ]
        result = dedupe_contributors(contributors)
        assert [c.family_name for c in result] == ["Fenner", "Carberry"]

    def test_same_names_different_orcids(self) -> None:
        contributors = [
            Contributor(id="https://orcid.org/0000-0002-8635-8390", given_name="Wei", family_name="Wang"),
            Contributor(id="https://orcid.org/0000-0003-1419-2405", given_name="Wei", family_name="Wang"),
        ]
        assert len(dedupe_contributors(contributors)) == 2

    def test_record_compares_ids_only(self) -> None:
        record = Record(
            id=DOI,
            type="JournalArticle",
            contributors=[
                Contributor(given_name="John", family_name="Smith", contributor_roles=["Author"]),
                Contributor(given_name="John", family_name="Smith", contributor_roles=["Editor"]),
                Contributor(id="https://orcid.org/0000-0002-8635-8390", name="Wei Wang"),
                Contributor(id="https://orcid.org/0000-0003-1419-2405", name="Wei Wang"),
                Contributor(id="https://orcid.org/0000-0003-1419-2405", name="W. Wang"),
            ],
        )
        assert [c.contributor_roles for c in record.contributors[:2]] == [["Author"], ["Editor"]]
        assert [c.id for c in record.contributors[2:]] == [
            "https://orcid.org/0000-0002-8635-8390",
            "https://orcid.org/0000-0003-1419-2405",
        ]


class TestRecordAccessors:
    """Tests for convenience accessors and serialization."""

    def test_title_and_abstract(self) -> None:
        record = Record(
            id=DOI,
            type="JournalArticle",
            titles=[Title(title="Main"), Title(title="Sub", type="Subtitle")],
            descriptions=[Description(description="Abstract text", type="Abstract")],
        )
        assert record.title == "Main"
        assert record.abstract == "Abstract text"

    def test_empty_accessors(self) -> None:
        record = Record(id=DOI, type="Other")
        assert record.title == ""
        assert record.abstract == ""
        assert record.identifier_of_type("UUID") == ""
        assert record.date_value() == ""

    def test_date_value_fallback(self) -> None:
        record = Record(id=DOI, type="Dataset", date=Date(created="2020-01-01", updated="2021-01-01"))
        assert record.date_value() == "2020-01-01"

    def test_to_dict_uses_camel_case_and_drops_empty(self) -> None:
        record = Record(
            id=DOI,
            type="JournalArticle",
            container=Container(title="eLife", first_page="e01567"),
            contributors=[
                Contributor(
                    given_name="Martin",
                    family_name="Fenner",
                    affiliations=[Affiliation(name="DataCite")],
                )
            ],
        )
        data = record.to_dict()
        assert data["container"] == {"title": "eLife", "firstPage": "e01567"}
        assert data["contributors"][0]["givenName"] == "Martin"
        assert data["contributors"][0]["contributorRoles"] == ["Author"]
        assert "descriptions" not in data
        assert "license" not in data

    def test_from_dict_round_trip(self) -> None:
        data = {
            "id": DOI,
            "type": "JournalArticle",
            "titles": [{"title": "Hello"}],
            "date": {"published": "2014-02-11"},
        }
        record = Record.from_dict(data)
        assert record.date.published == "2014-02-11"
        assert Record.from_json(record.to_json()).to_dict() == record.to_dict()

    def test_container_pages(self) -> None:
        assert Container(first_page="1", last_page="10").pages() == "1-10"
        assert Container(first_page="e01567").pages() == "e01567"
        assert Container(last_page="10").pages() == "10"


class TestTypes:
    """Tests for vocabulary helpers."""

    def test_work_type(self) -> None:
        assert work_type("JournalArticle") == "JournalArticle"
        assert work_type("journal-article") == "Other"
        assert work_type(None) == "Other"

    def test_contributor_role(self) -> None:
        assert contributor_role("Editor") == "Editor"
        assert contributor_role("") == "Author"
        assert contributor_role("Baker") == "Other"

    def test_primary_identifier(self) -> None:
        assert primary_identifier("https://ror.org/04wxnsj81").identifier_type == "ROR"
        assert primary_identifier("") is None
