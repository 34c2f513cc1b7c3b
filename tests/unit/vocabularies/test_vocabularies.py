"""Tests for the Fields of Science, country, language and award vocabularies."""

from commonmeta.vocabularies import countries, fos, languages
from commonmeta.vocabularies.awards import find_award


class TestFieldsOfScience:
    """Tests for the OECD Fields of Science."""

    def test_find_by_key_label_and_uri(self) -> None:
        field = fos.find_field("computerAndInformationSciences")
        assert field.code == "1.2"
        assert fos.find_field("FOS: Computer and information sciences") == field
        assert fos.find_field("computer and information sciences") == field
        assert fos.find_field(field.uri) == field

    def test_conversions(self) -> None:
        assert fos.key_to_label("humanities") == "Humanities"
        assert fos.label_to_key("Humanities") == "humanities"
        assert fos.label_to_uri("Humanities") == "http://www.oecd.org/science/inno/38235147.pdf?6"
        assert fos.is_fos("FOS: Law")
        assert not fos.is_fos("Climate change")

    def test_subject(self) -> None:
        assert fos.find_field("law").subject == "FOS: Law"

    def test_keys_are_unique(self) -> None:
        assert len({f.key.lower() for f in fos.FIELDS}) == len(fos.FIELDS)


class TestCountries:
    """Tests for the country vocabulary."""

    def test_get_country(self) -> None:
        assert countries.get_country("de").name == "Germany"
        assert countries.get_country("DEU").code == "DE"
        assert countries.get_country("germany").iso3 == "DEU"
        assert countries.get_country("Atlantis") is None

    def test_country_name(self) -> None:
        assert countries.country_name("US") == "United States"
        assert countries.country_name("") == ""

    def test_aliases_and_cities(self) -> None:
        assert "united kingdom" in countries.country_aliases()["uk"]
        assert countries.is_city("London")
        assert not countries.is_city("Heidelberg University")

    def test_regions(self) -> None:
        assert countries.to_region("GB") == "GB-UK"
        assert countries.to_region("DE") == "DE"


class TestLanguages:
    """Tests for language code conversion."""

    def test_get_language(self) -> None:
        assert languages.get_language("eng") == "en"
        assert languages.get_language("en-US") == "en"
        assert languages.get_language("de", format="iso639-3") == "deu"
        assert languages.get_language("German", format="name") == "German"
        assert languages.get_language("chi") == "zh"
        assert languages.get_language("xx") == ""


class TestAwards:
    """Tests for the awards vocabulary."""

    def test_find_award(self) -> None:
        award = find_award("654039")
        assert award["acronym"] == "THOR"
        assert find_award("000000") is None
        assert find_award("") is None
