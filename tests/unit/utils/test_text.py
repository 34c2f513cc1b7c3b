"""Tests for text helpers."""

from commonmeta.utils import text


class TestSanitize:
    """Tests for HTML cleanup."""

    def test_sanitize_keeps_inline_markup(self) -> None:
        assert text.sanitize("<p>Hello <i>world</i></p>") == "Hello <i>world</i>"
        assert text.sanitize("H<sub>2</sub>O <script>x</script>").startswith("H<sub>2</sub>O")
        assert text.sanitize(None) == ""

    def test_sanitize_text(self) -> None:
        assert text.sanitize_text("<p>Hello <b>world</b></p>") == "Hello world"
        assert text.sanitize_text("Fish &amp; Chips") == "Fish & Chips"
        assert text.sanitize_text("") == ""

    def test_strip_jats_title(self) -> None:
        content = "<jats:title>Abstract</jats:title><jats:p>Text</jats:p>"
        assert text.strip_jats_title(content) == "<jats:p>Text</jats:p>"


class TestCaseConversion:
    """Tests for case conversion helpers."""

    def test_conversions(self) -> None:
        assert text.camel_case_to_words("BookChapter") == "Book chapter"
        assert text.camel_case_to_snake_case("contributorRoles") == "contributor_roles"
        assert text.camel_case_string("JournalArticle") == "journalArticle"
        assert text.kebab_case_to_pascal_case("journal-article") == "JournalArticle"
        assert text.pascal_case_to_kebab_case("JournalArticle") == "journal-article"
        assert text.words_to_camel_case("Computer and information sciences") == (
            "computerAndInformationSciences"
        )
        assert text.title_case("dataset") == "Dataset"


class TestCollections:
    """Tests for list and dict helpers."""

    def test_compact(self) -> None:
        value = {"a": "", "b": [None, {}], "c": {"d": ""}, "e": 0, "f": ["x", ""]}
        assert text.compact(value) == {"e": 0, "f": ["x"]}

    def test_wrap(self) -> None:
        assert text.wrap(None) == []
        assert text.wrap("a") == ["a"]
        assert text.wrap(["a"]) == ["a"]

    def test_dedupe(self) -> None:
        assert text.dedupe([1, 2, 1, 3]) == [1, 2, 3]
        items = [{"id": "a"}, {"id": ""}, {"id": "a"}, {"id": ""}]
        assert text.dedupe(items, key=lambda i: i["id"]) == [{"id": "a"}, {"id": ""}, {"id": ""}]

    def test_parse_string(self) -> None:
        assert text.parse_string("12") == "12"
        assert text.parse_string(12.0) == "12"
        assert text.parse_string(1.5) == "1.5"
        assert text.parse_string(True) == ""
        assert text.parse_string(None) == ""
