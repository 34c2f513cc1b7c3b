"""Tests for reading ROR organizations: API, builtin catalog, data dumps."""

import io
import json
import zipfile
from unittest.mock import patch

import pytest

from commonmeta.core.exceptions import (
    DecodeFailureError,
    InvalidExtensionError,
    InvalidIdentifierError,
    NetworkFailureError,
    NotFoundError,
)
from commonmeta.model.record import Record
from commonmeta.ror import reader
from commonmeta.ror.model import ROR
from commonmeta.ror.writer import write_all

LUH = "https://ror.org/0304hq317"


@pytest.fixture(autouse=True)
def fresh_catalog():
    reader.clear_cache()
    yield
    reader.clear_cache()


@pytest.fixture
def data_dump(luh_item):
    """Zipped v1.63 data dump holding one organization."""
    name = "v1.63-2025-04-03-ror-data"
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(f"{name}.csv", "id\n")
        archive.writestr(f"{name}_schema_v2.json", json.dumps([luh_item]))
    return buffer.getvalue()


@pytest.fixture
def luh_item():
    return {
        "id": LUH,
        "names": [
            {"value": "Leibniz Universität Hannover", "types": ["ror_display", "label"], "lang": "de"},
            {"value": "Leibniz University Hannover", "types": ["label"], "lang": "en"},
            {"value": "LUH", "types": ["acronym"], "lang": None},
        ],
        "types": ["education"],
        "status": "active",
        "established": 1831,
        "links": [{"type": "website", "value": "https://www.uni-hannover.de"}],
        "external_ids": [{"type": "grid", "all": ["grid.9122.8"], "preferred": "grid.9122.8"}],
        "locations": [
            {
                "geonames_id": 2910831,
                "geonames_details": {"country_code": "DE", "country_name": "Germany", "name": "Hannover"},
            }
        ],
        "admin": {"last_modified": {"date": "2025-03-27", "schema_version": "2.1"}},
    }


class TestModel:
    """Tests for the ROR record model."""

    def test_names(self, luh_item) -> None:
        org = ROR.model_validate(luh_item)
        assert org.display_name == "Leibniz Universität Hannover"
        assert org.labels == {"de": "Leibniz Universität Hannover", "en": "Leibniz University Hannover"}
        assert org.acronyms == ["LUH"]
        assert org.aliases == []
        assert org.matching_names() == ["Leibniz Universität Hannover", "Leibniz University Hannover"]

    def test_properties(self, luh_item) -> None:
        org = ROR.model_validate(luh_item)
        assert org.country_code == "DE"
        assert org.website == "https://www.uni-hannover.de"
        assert org.wikipedia_url == ""
        assert org.last_modified == "2025-03-27"
        assert org.external_id("grid").preferred == "grid.9122.8"
        assert org.external_id("isni") is None

    def test_to_dict_drops_empty_values(self, luh_item) -> None:
        document = ROR.model_validate(luh_item).to_dict()
        assert "domains" not in document
        assert "relationships" not in document
        assert document["names"][2] == {"value": "LUH", "types": ["acronym"]}


class TestOrganizationIds:
    """Tests for reader.validate_organization_id()."""

    @pytest.mark.parametrize(
        "pid,expected",
        [
            ("https://ror.org/0304hq317", ("0304hq317", "ROR")),
            ("grid.9122.8", ("grid.9122.8", "GRID")),
            ("https://www.grid.ac/institutes/grid.9122.8", ("grid.9122.8", "GRID")),
            ("0000000121632777", ("0000 0001 2163 2777", "ISNI")),
            ("https://www.wikidata.org/wiki/Q315658", ("Q315658", "Wikidata")),
            ("https://doi.org/10.13039/501100001659", ("501100001659", "Crossref Funder ID")),
            ("not an id", ("", "")),
            ("", ("", "")),
        ],
    )
    def test_validate_organization_id(self, pid, expected) -> None:
        assert reader.validate_organization_id(pid) == expected


class TestAPI:
    """Tests for the ROR REST API calls."""

    def test_fetch_by_ror(self, mock_client, luh_item) -> None:
        mock_client.get_json.return_value = luh_item
        org = reader.fetch(LUH, client=mock_client)
        assert org.id == LUH
        mock_client.get_json.assert_called_once_with("https://api.ror.org/v2/organizations/0304hq317")

    def test_fetch_by_external_id(self, mock_client, luh_item) -> None:
        mock_client.get_json.return_value = {"number_of_results": 1, "items": [luh_item]}
        assert reader.fetch("grid.9122.8", client=mock_client).id == LUH
        mock_client.get_json.assert_called_once_with(
            "https://api.ror.org/v2/organizations?query=grid.9122.8"
        )

    def test_fetch_ambiguous_external_id(self, mock_client, luh_item) -> None:
        mock_client.get_json.return_value = {"number_of_results": 2, "items": [luh_item, luh_item]}
        with pytest.raises(NotFoundError):
            reader.fetch("grid.9122.8", client=mock_client)

    def test_fetch_invalid(self, mock_client) -> None:
        with pytest.raises(InvalidIdentifierError):
            reader.fetch("Leibniz", client=mock_client)
        mock_client.get_json.assert_not_called()

    def test_fetch_invalid_record(self, mock_client) -> None:
        mock_client.get_json.return_value = {"names": []}
        with pytest.raises(DecodeFailureError):
            reader.fetch(LUH, client=mock_client)

    def test_match_organization(self, mock_client, luh_item) -> None:
        mock_client.get_json.return_value = {
            "items": [
                {"chosen": False, "organization": {"id": "https://ror.org/013meh722"}},
                {"chosen": True, "organization": luh_item},
            ]
        }
        org = reader.match_organization("Leibniz Universität Hannover", client=mock_client)
        assert org.id == LUH
        mock_client.get_json.assert_called_once_with(
            "https://api.ror.org/v2/organizations?affiliation=Leibniz%20Universit%C3%A4t%20Hannover"
        )

    def test_match_organization_nothing_chosen(self, mock_client) -> None:
        mock_client.get_json.return_value = {"items": []}
        assert reader.match_organization("Somewhere", client=mock_client) is None


class TestCatalog:
    """Tests for the builtin catalog and local lookups."""

    def test_load_builtin(self) -> None:
        catalog = reader.load_builtin()
        assert catalog[LUH].display_name == "Leibniz Universität Hannover"
        assert "https://ror.org/04wxnsj81" in catalog

    def test_search(self) -> None:
        assert reader.search("https://ror.org/0304hq317").id == LUH
        assert reader.search("0304hq317").id == LUH
        assert reader.search("grid.9122.8").id == LUH
        assert reader.search("grid.0000.1") is None

    def test_search_invalid(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            reader.search("Leibniz")

    def test_map_ror(self) -> None:
        assert reader.map_ror(LUH, "LUH") == (LUH, "LUH", "")
        assert reader.map_ror(LUH) == (LUH, "Leibniz Universität Hannover", "")
        assert reader.map_ror("https://example.org/org") == ("https://example.org/org", "", "")
        assert reader.map_ror(name="Leibniz Universität Hannover") == (
            "",
            "Leibniz Universität Hannover",
            "",
        )
        assert reader.map_ror(name="Leibniz Universität Hannover", match=True) == (
            LUH,
            "Leibniz Universität Hannover",
            "ror",
        )
        assert reader.map_ror(name="Front Matter", match=True) == ("", "Front Matter", "")

    def test_load_builtin_installs_missing_catalog(self, ror_catalog, data_dump) -> None:
        ror_catalog.unlink()
        with patch("commonmeta.ror.reader.download_file", return_value=data_dump) as download:
            assert list(reader.load_builtin()) == [LUH]
        assert "v1.63-2025-04-03-ror-data.zip" in download.call_args.args[0]
        assert ror_catalog.exists()

    def test_map_ror_without_catalog(self, ror_catalog) -> None:
        ror_catalog.unlink()
        with patch(
            "commonmeta.ror.reader.download_file",
            side_effect=NetworkFailureError("Request to zenodo.org failed"),
        ):
            assert reader.map_ror(LUH) == (LUH, "", "")
            assert reader.map_ror(name="Leibniz Universität Hannover", match=True) == (
                "",
                "Leibniz Universität Hannover",
                "",
            )

    def test_extract_all(self) -> None:
        record = Record.from_dict(
            {
                "id": "https://doi.org/10.5555/12345678",
                "type": "JournalArticle",
                "contributors": [
                    {
                        "type": "Person",
                        "givenName": "Josiah",
                        "familyName": "Carberry",
                        "affiliations": [
                            {"id": LUH},
                            {"id": "https://ror.org/04wxnsj81"},
                            {"name": "No id"},
                        ],
                    }
                ],
            }
        )
        assert list(reader.extract_all([record])) == ["https://ror.org/0304hq317", "https://ror.org/04wxnsj81"]


class TestFiles:
    """Tests for reader.load_all() and fetch_all()."""

    @pytest.mark.parametrize("extension", [".json", ".jsonl", ".yaml", ".csv", ".avro"])
    def test_load_all(self, tmp_path, luh_item, extension) -> None:
        catalog = {LUH: ROR.model_validate(luh_item)}
        path = tmp_path / f"ror{extension}"
        path.write_bytes(write_all(catalog, extension))
        loaded = reader.load_all(str(path))
        assert list(loaded) == [LUH]
        assert loaded[LUH].display_name == "Leibniz Universität Hannover"
        assert loaded[LUH].country_code == "DE"

    def test_load_all_items_envelope(self, tmp_path, luh_item) -> None:
        path = tmp_path / "ror.json"
        path.write_text(json.dumps({"items": [luh_item]}))
        assert list(reader.load_all(str(path))) == [LUH]

    def test_load_all_invalid_extension(self, tmp_path) -> None:
        path = tmp_path / "ror.xml"
        path.write_text("<ror/>")
        with pytest.raises(InvalidExtensionError):
            reader.load_all(str(path))

    def test_basename(self) -> None:
        assert reader.basename("v1.63") == "v1.63-2025-04-03-ror-data"
        assert reader.basename("v0.1") == ""
        assert reader.parse_data_version("v1.62-2025-03-27") == "v1.62"
        assert reader.parse_data_version("") == reader.DEFAULT_VERSION

    def test_fetch_all_unknown_version(self) -> None:
        with pytest.raises(ValueError):
            reader.fetch_all("v0.1")

    def test_fetch_all_installs_catalog(self, data_dump, settings) -> None:
        with patch("commonmeta.ror.reader.download_file", return_value=data_dump) as download:
            catalog = reader.fetch_all("v1.63")

        assert list(catalog) == [LUH]
        download.assert_called_once_with(
            "https://zenodo.org/records/15132361/files/v1.63-2025-04-03-ror-data.zip?download=1",
            progress=False,
        )
        assert (settings.data_dir / "ror.avro").exists()
        assert list(reader.load_builtin()) == [LUH]
