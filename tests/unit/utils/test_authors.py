"""Tests for personal name heuristics."""

import pytest

from commonmeta.utils.authors import is_personal_name, parse_name


class TestParseName:
    """Tests for parse_name()."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Martin Fenner", ("Martin", "Fenner", "")),
            ("Fenner, Martin", ("Martin", "Fenner", "")),
            ("Fenner, Martin, PhD", ("Martin", "Fenner", "")),
            ("Dr. Martin Fenner", ("Martin", "Fenner", "")),
            ("John Ronald Reuel Tolkien", ("John Ronald Reuel", "Tolkien", "")),
            ("Harvard University", ("", "", "Harvard University")),
            ("Madonna", ("", "", "Madonna")),
            ("", ("", "", "")),
        ],
    )
    def test_parse_name(self, name: str, expected: tuple) -> None:
        assert parse_name(name) == expected

    def test_is_personal_name(self) -> None:
        assert is_personal_name("Josiah Carberry")
        assert not is_personal_name("The Rogue Scholar Team")
        assert not is_personal_name("Fenner; Carberry")
