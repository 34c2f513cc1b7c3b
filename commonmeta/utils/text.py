"""Text helpers: HTML sanitizing, case conversion and list utilities."""

import html
import re
from typing import Any, Callable, Hashable, Iterable, List, Optional, TypeVar, Union

import nh3
from bs4 import BeautifulSoup

T = TypeVar("T")

ALLOWED_TAGS = {"b", "br", "code", "em", "i", "sub", "sup", "strong"}


def sanitize(content: Optional[str]) -> str:
    """Remove all HTML tags except a small inline whitelist.

    Used for titles and descriptions, where <i>, <sub> and <sup> carry meaning.
    """
    if not content:
        return ""
    cleaned = nh3.clean(content, tags=ALLOWED_TAGS, attributes={})
    return cleaned.strip("\n").strip()


def sanitize_text(content: Optional[str]) -> str:
    """Convert HTML or JATS markup to plain text.

    Strips tags, decodes entities and collapses whitespace.
    """
    if not content:
        return ""
    if "<" in content:
        content = BeautifulSoup(content, "lxml").get_text(" ")
    content = html.unescape(content)
    return re.sub(r"\s+", " ", content).strip()


def strip_jats_title(content: Optional[str]) -> str:
    """Drop a leading <jats:title>Abstract</jats:title> before sanitizing."""
    if not content:
        return ""
    return re.sub(r"^\s*<jats:title>[^<]*</jats:title>", "", content)


def title_case(content: str) -> str:
    """Capitalize the first letter without changing the rest."""
    if not content:
        return content
    return content[0].upper() + content[1:]


def camel_case_to_words(content: str) -> str:
    """"BookChapter" -> "Book chapter"."""
    if not content:
        return content
    words = re.sub(r"(.)([A-Z][a-z]+)", r"\1 \2", content)
    words = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", words)
    return words[0].upper() + words[1:].lower()


def camel_case_to_snake_case(content: str) -> str:
    words = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", content)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", words).lower()


def camel_case_string(content: str) -> str:
    """PascalCase -> camelCase."""
    if not content:
        return content
    return content[0].lower() + content[1:]


def kebab_case_to_camel_case(content: str) -> str:
    return re.sub(r"-([a-z])", lambda m: m.group(1).upper(), content)


def kebab_case_to_pascal_case(content: str) -> str:
    """"journal-article" -> "JournalArticle"."""
    value = kebab_case_to_camel_case(content)
    return value[:1].upper() + value[1:]


def pascal_case_to_kebab_case(content: str) -> str:
    return camel_case_to_snake_case(content).replace("_", "-")


def wrap(item: Union[None, T, List[T]]) -> List[T]:
    """Turn None, a single item, or a list into a list."""
    if item is None:
        return []
    if isinstance(item, list):
        return item
    return [item]


def compact(value: Any) -> Any:
    """Recursively drop None, empty strings, empty lists and empty dicts."""
    if isinstance(value, dict):
        result = {k: compact(v) for k, v in value.items()}
        return {k: v for k, v in result.items() if v not in (None, "", [], {})}
    if isinstance(value, list):
        result = [compact(v) for v in value]
        return [v for v in result if v not in (None, "", [], {})]
    return value


def dedupe(items: Iterable[T], key: Optional[Callable[[T], Hashable]] = None) -> List[T]:
    """Order-preserving de-duplication; first occurrence wins.

    Items whose key is empty are always kept.
    """
    seen = set()
    result: List[T] = []
    for item in items:
        k = key(item) if key else item
        if k in (None, ""):
            result.append(item)
            continue
        if k in seen:
            continue
        seen.add(k)
        result.append(item)
    return result


def parse_string(value: Any) -> str:
    """Coerce a JSON scalar (string or number) to a string."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def words_to_camel_case(content: str) -> str:
    """"Computer and information sciences" -> "computerAndInformationSciences"."""
    words = [w for w in re.split(r"[\s_-]+", content or "") if w]
    if not words:
        return ""
    return words[0].lower() + "".join(w[:1].upper() + w[1:].lower() for w in words[1:])
