"""Personal name heuristics used when a source gives only a display name."""

from typing import Tuple

ORGANIZATION_WORDS = (
    "University",
    "College",
    "Institute",
    "School",
    "Center",
    "Centre",
    "Department",
    "Laboratory",
    "Library",
    "Museum",
    "Foundation",
    "Society",
    "Association",
    "Company",
    "Corporation",
    "Collaboration",
    "Consortium",
    "Incorporated",
    "Inc.",
    "Institut",
    "Research",
    "Science",
    "Team",
    "Ministry",
    "Government",
    "Redaktion",
    "Count",
)
NAME_SUFFIXES = ("MD", "PhD", "BS")
HONORIFICS = ("Dr.", "Prof.", "Dr", "Prof")


def is_personal_name(name: str) -> bool:
    """Guess whether a display name belongs to a person rather than an organization."""
    if not name or ";" in name:
        return False
    if len(name.split(" ")) == 1 and "," not in name:
        return False
    return not any(word in name for word in ORGANIZATION_WORDS)


def _strip_affixes(name: str) -> str:
    parts = name.split(", ")
    if len(parts) > 1 and parts[-1] in NAME_SUFFIXES:
        name = ", ".join(parts[:-1])
    words = name.split(" ")
    while len(words) > 1 and words[0] in HONORIFICS:
        words = words[1:]
    return " ".join(words)


def parse_name(name: str) -> Tuple[str, str, str]:
    """Split a display name into (given_name, family_name, name).

    Organizations keep their full name in the third element. Personal names
    in "Family, Given" order are split at the comma, otherwise the last word
    is the family name.

    Example:
        parse_name("Martin Fenner")          # ("Martin", "Fenner", "")
        parse_name("Fenner, Martin")         # ("Martin", "Fenner", "")
        parse_name("Harvard University")     # ("", "", "Harvard University")
    """
    name = (name or "").strip()
    if not is_personal_name(name):
        return "", "", name

    name = _strip_affixes(name)
    comma = name.split(", ", 1)
    if len(comma) > 1:
        return comma[1], comma[0], ""

    words = name.split(" ")
    if len(words) == 1:
        return "", name, ""
    return " ".join(words[:-1]), words[-1], ""
