"""Language codes: ISO 639-1, ISO 639-3 (and 639-2/B) and English names."""

from functools import lru_cache
from typing import Dict, NamedTuple, Optional


class Language(NamedTuple):
    part1: str
    part3: str
    part2b: str
    name: str


# part1, part3, part2b, name
LANGUAGES = (
    Language("af", "afr", "afr", "Afrikaans"),
    Language("ar", "ara", "ara", "Arabic"),
    Language("bg", "bul", "bul", "Bulgarian"),
    Language("bn", "ben", "ben", "Bengali"),
    Language("ca", "cat", "cat", "Catalan"),
    Language("cs", "ces", "cze", "Czech"),
    Language("cy", "cym", "wel", "Welsh"),
    Language("da", "dan", "dan", "Danish"),
    Language("de", "deu", "ger", "German"),
    Language("el", "ell", "gre", "Modern Greek (1453-)"),
    Language("en", "eng", "eng", "English"),
    Language("eo", "epo", "epo", "Esperanto"),
    Language("es", "spa", "spa", "Spanish"),
    Language("et", "est", "est", "Estonian"),
    Language("eu", "eus", "baq", "Basque"),
    Language("fa", "fas", "per", "Persian"),
    Language("fi", "fin", "fin", "Finnish"),
    Language("fr", "fra", "fre", "French"),
    Language("ga", "gle", "gle", "Irish"),
    Language("gl", "glg", "glg", "Galician"),
    Language("he", "heb", "heb", "Hebrew"),
    Language("hi", "hin", "hin", "Hindi"),
    Language("hr", "hrv", "hrv", "Croatian"),
    Language("hu", "hun", "hun", "Hungarian"),
    Language("hy", "hye", "arm", "Armenian"),
    Language("id", "ind", "ind", "Indonesian"),
    Language("is", "isl", "ice", "Icelandic"),
    Language("it", "ita", "ita", "Italian"),
    Language("ja", "jpn", "jpn", "Japanese"),
    Language("ka", "kat", "geo", "Georgian"),
    Language("ko", "kor", "kor", "Korean"),
    Language("la", "lat", "lat", "Latin"),
    Language("lt", "lit", "lit", "Lithuanian"),
    Language("lv", "lav", "lav", "Latvian"),
    Language("mk", "mkd", "mac", "Macedonian"),
    Language("ms", "msa", "may", "Malay (macrolanguage)"),
    Language("mt", "mlt", "mlt", "Maltese"),
    Language("nl", "nld", "dut", "Dutch"),
    Language("no", "nor", "nor", "Norwegian"),
    Language("nb", "nob", "nob", "Norwegian Bokmål"),
    Language("nn", "nno", "nno", "Norwegian Nynorsk"),
    Language("pl", "pol", "pol", "Polish"),
    Language("pt", "por", "por", "Portuguese"),
    Language("ro", "ron", "rum", "Romanian"),
    Language("ru", "rus", "rus", "Russian"),
    Language("sk", "slk", "slo", "Slovak"),
    Language("sl", "slv", "slv", "Slovenian"),
    Language("sq", "sqi", "alb", "Albanian"),
    Language("sr", "srp", "srp", "Serbian"),
    Language("sv", "swe", "swe", "Swedish"),
    Language("sw", "swa", "swa", "Swahili (macrolanguage)"),
    Language("ta", "tam", "tam", "Tamil"),
    Language("th", "tha", "tha", "Thai"),
    Language("tr", "tur", "tur", "Turkish"),
    Language("uk", "ukr", "ukr", "Ukrainian"),
    Language("ur", "urd", "urd", "Urdu"),
    Language("vi", "vie", "vie", "Vietnamese"),
    Language("zh", "zho", "chi", "Chinese"),
)


@lru_cache(maxsize=1)
def _index() -> Dict[str, Language]:
    index: Dict[str, Language] = {}
    for language in LANGUAGES:
        for key in (language.part1, language.part3, language.part2b, language.name.lower()):
            index.setdefault(key, language)
    return index


def find_language(code: Optional[str]) -> Optional[Language]:
    """Find a language by any code or its English name.

    Region subtags are ignored: "en-US" and "en_GB" resolve to English.
    """
    if not code:
        return None
    value = code.strip().lower()
    language = _index().get(value)
    if language is None and len(value) > 3 and value[2:3] in ("-", "_"):
        language = _index().get(value[:2])
    return language


def get_language(code: Optional[str], format: str = "iso639-1") -> str:
    """Convert a language code.

    Args:
        code: ISO 639-1, 639-2/B or 639-3 code, or English name
        format: "iso639-1" (default), "iso639-3" or "name"

    Returns:
        Converted value, or "" for unknown languages
    """
    language = find_language(code)
    if language is None:
        return ""
    if format == "iso639-3":
        return language.part3
    if format == "name":
        return language.name
    return language.part1
