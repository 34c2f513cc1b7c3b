"""Identifier validators and normalizers.

Every validator returns ``(value, ok)``; invalid inputs yield ``("", False)``.
Normalizers return the canonical URL form or "".

    validate_orcid("https://orcid.org/0000-0002-8635-8390")  # ("0000-0002-8635-8390", True)
    normalize_ror("ror.org/0304hq317")                        # ""  (scheme required)
    normalize_ror("0304hq317")                                # "https://ror.org/0304hq317"
    validate_id("https://doi.org/10.13039/100000001")        # ("10.13039/100000001", "Crossref Funder ID")
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional, Tuple

from furl import furl

from commonmeta.core.exceptions import InvalidIdentifierError
from commonmeta.utils import crockford
from commonmeta.utils.doi import get_doi_ra, normalize_doi, validate_doi, validate_prefix

ORCID_RE = re.compile(
    r"^(?:(?:http|https)://(?:(?:www|sandbox)\.)?orcid\.org/)?"
    r"(\d{4})[ -]?(\d{4})[ -]?(\d{4})[ -]?(\d{3}[0-9X])$",
    re.IGNORECASE,
)
ROR_RE = re.compile(r"^(?:(?:http|https)://(?:www\.)?ror\.org/)?(0[0-9a-z]{6}\d{2})$")
ISSN_RE = re.compile(r"^(?:https://portal\.issn\.org/resource/ISSN/)?(\d{4}-\d{3}[\dxX])$")
UUID_RE = re.compile(
    r"^[a-fA-F0-9]{8}-[a-fA-F0-9]{4}-4[a-fA-F0-9]{3}-[89aAbB][a-fA-F0-9]{3}-[a-fA-F0-9]{12}$"
)
OPENALEX_RE = re.compile(
    r"^(?:https?://(?:api\.)?openalex\.org/(?:works/|authors/|institutions/|sources/"
    r"|publishers/|funders/|concepts/|topics/)?)?([WAISPFCT]\d{2,})$",
    re.IGNORECASE,
)
RID_RE = re.compile(r"^(?:https?://[^/]+/(?:api/)?records/)?([0-9a-z]{5}-[0-9a-z]{3}\d{2})$")
ROGUE_SCHOLAR_POST_RE = re.compile(r"^https:/(?:/)?api\.rogue-scholar\.org/posts/(.+)$")
INVENIORDM_RECORD_RE = re.compile(r"^https://([^/]+)/(?:api/)?records/(.+)$")

DISALLOWED_URL_FRAGMENTS = (";origin=", ";jsessionid=")
IGNORED_QUERY_PARAMS = (
    "origin",
    "ref",
    "referrer",
    "source",
    "utm_content",
    "utm_medium",
    "utm_campaign",
    "utm_source",
)


# ============================================================================
# URLs
# ============================================================================


def normalize_url(url: Optional[str], secure: bool = False, lower: bool = False) -> str:
    """Normalize a URL.

    Removes the fragment, tracking query parameters and a trailing slash
    (when there is no query). Relative URLs and URLs without host yield "".

    Args:
        url: Input URL
        secure: Rewrite http to https
        lower: Lowercase the whole URL
    """
    if not url or not isinstance(url, str):
        return ""
    try:
        f = furl(url.strip())
    except ValueError:
        return ""
    if not f.host or f.scheme not in ("http", "https"):
        return ""
    f.remove(fragment=True)
    f.remove(list(IGNORED_QUERY_PARAMS))
    if secure and f.scheme == "http":
        f.scheme = "https"
    result = f.url
    if not f.query.params and result.endswith("/") and len(str(f.path)) > 1:
        result = result.rstrip("/")
    if lower:
        return result.lower()
    return result


def validate_url(url: Optional[str]) -> str:
    """Classify a URL: "DOI", "URL" or "" when not a usable web URL."""
    if not url:
        return ""
    _, ok = validate_doi(url)
    if ok:
        return "DOI"
    if any(fragment in url for fragment in DISALLOWED_URL_FRAGMENTS):
        return ""
    try:
        f = furl(url)
    except ValueError:
        return ""
    if f.scheme in ("http", "https") and f.host:
        return "URL"
    return ""


def normalize_id(pid: Optional[str]) -> str:
    """Normalize a persistent identifier: DOI, UUID or http(s) URL.

    Returns:
        Normalized identifier or "" (e.g. for file paths)
    """
    if not pid:
        return ""
    doi = normalize_doi(pid)
    if doi:
        return doi
    uuid, ok = validate_uuid(pid)
    if ok:
        return uuid
    try:
        f = furl(pid)
    except ValueError:
        return ""
    if f.scheme not in ("http", "https") or not f.host:
        return ""
    if f.scheme == "http":
        f.scheme = "https"
    return f.url.rstrip("/")


# ============================================================================
# ORCID, ROR, ISSN, ISBN, UUID, OpenAlex
# ============================================================================


def validate_orcid(orcid: Optional[str]) -> Tuple[str, bool]:
    """Validate an ORCID and return it in hyphenated form."""
    if not orcid:
        return "", False
    match = ORCID_RE.match(orcid.strip())
    if not match:
        return "", False
    return "-".join(match.groups()).upper(), True


def normalize_orcid(orcid: Optional[str]) -> str:
    value, ok = validate_orcid(orcid)
    if not ok:
        return ""
    return "https://orcid.org/" + value


def orcid_checksum(base_digits: str) -> str:
    """ISO 7064 mod 11-2 check character for the first 15 ORCID digits."""
    total = 0
    for digit in base_digits:
        total = (total + int(digit)) * 2
    result = (12 - total % 11) % 11
    return "X" if result == 10 else str(result)


def validate_ror(ror: Optional[str]) -> Tuple[str, bool]:
    """Validate a ROR id: "0", six Crockford characters, two checksum digits."""
    if not ror:
        return "", False
    match = ROR_RE.match(ror.strip())
    if not match:
        return "", False
    value = match.group(1)
    try:
        number = crockford.decode(value[:7])
    except InvalidIdentifierError:
        return "", False
    if not crockford.validate(number, int(value[7:])):
        return "", False
    return value, True


def normalize_ror(ror: Optional[str]) -> str:
    value, ok = validate_ror(ror)
    if not ok:
        return ""
    return "https://ror.org/" + value


def validate_issn(issn: Optional[str]) -> Tuple[str, bool]:
    if not issn:
        return "", False
    match = ISSN_RE.match(issn.strip())
    if not match:
        return "", False
    return match.group(1).upper(), True


def issn_as_url(issn: Optional[str]) -> str:
    if not issn:
        return ""
    return f"https://portal.issn.org/resource/ISSN/{issn}"


def validate_isbn(isbn: Optional[str]) -> Tuple[str, bool]:
    """Validate an ISBN-10 (mod 11) or ISBN-13 (mod 10) after stripping separators."""
    if not isbn:
        return "", False
    value = re.sub(r"[\s-]", "", isbn.strip()).upper()
    if value.startswith("ISBN"):
        value = value[4:].lstrip(":")
    if re.fullmatch(r"\d{9}[\dX]", value):
        total = sum((10 - i) * (10 if c == "X" else int(c)) for i, c in enumerate(value))
        return (value, True) if total % 11 == 0 else ("", False)
    if re.fullmatch(r"\d{13}", value):
        total = sum(int(c) * (1 if i % 2 == 0 else 3) for i, c in enumerate(value))
        return (value, True) if total % 10 == 0 else ("", False)
    return "", False


def validate_uuid(uuid: Optional[str]) -> Tuple[str, bool]:
    """Validate a version 4 UUID."""
    if not uuid or not UUID_RE.match(uuid.strip()):
        return "", False
    return uuid.strip(), True


def validate_openalex(openalex_id: Optional[str]) -> Tuple[str, bool]:
    """Validate an OpenAlex id such as W2741809807 or https://openalex.org/W2741809807."""
    if not openalex_id:
        return "", False
    match = OPENALEX_RE.match(openalex_id.strip())
    if not match:
        return "", False
    return match.group(1).upper(), True


def validate_rid(rid: Optional[str]) -> Tuple[str, bool]:
    """Validate an InvenioRDM record id (Crockford base32 with checksum, e.g. 1xr1m-wnh16)."""
    if not rid:
        return "", False
    match = RID_RE.match(rid.strip())
    if not match:
        return "", False
    return match.group(1), True


def community_slug_as_url(slug: Optional[str], host: str = "rogue-scholar.org") -> str:
    if not slug:
        return ""
    return f"https://{host or 'rogue-scholar.org'}/api/communities/{slug}"


# ============================================================================
# Generic identifiers
# ============================================================================


def validate_id(pid: Optional[str]) -> Tuple[str, str]:
    """Validate an identifier and return (identifier, identifierType).

    Checked in order: DOI, UUID, ORCID, ROR, ISSN, URL.
    DOIs with the Crossref Funder Registry prefix 10.13039 are typed
    "Crossref Funder ID".
    """
    if not pid:
        return "", ""
    doi, ok = validate_doi(pid)
    if ok:
        prefix, _ = validate_prefix(doi)
        if prefix == "10.13039":
            return doi, "Crossref Funder ID"
        return doi, "DOI"
    uuid, ok = validate_uuid(pid)
    if ok:
        return uuid, "UUID"
    orcid, ok = validate_orcid(pid)
    if ok:
        return orcid, "ORCID"
    ror, ok = validate_ror(pid)
    if ok:
        return ror, "ROR"
    issn, ok = validate_issn(pid)
    if ok:
        return issn, "ISSN"
    if validate_url(pid) == "URL":
        return pid, "URL"
    return "", ""


def decode_id(pid: str) -> int:
    """Decode the numeric value of a generated DOI, a ROR id or an ORCID.

    Raises:
        InvalidIdentifierError: Unsupported identifier or wrong ORCID checksum
        ChecksumMismatchError: Crockford checksum mismatch
    """
    identifier, identifier_type = validate_id(pid)
    if identifier_type == "DOI":
        suffix = identifier.split("/", 1)[1]
        return crockford.decode(suffix, checksum=True)
    if identifier_type == "ROR":
        return crockford.decode(identifier, checksum=True)
    if identifier_type == "ORCID":
        digits = identifier.replace("-", "")
        if orcid_checksum(digits[:-1]) != digits[-1]:
            raise InvalidIdentifierError(
                f"Wrong checksum {digits[-1]} for identifier {identifier}"
            )
        return int(digits[:-1])
    raise InvalidIdentifierError(f"Identifier {pid} not recognized")


# ============================================================================
# Format detection
# ============================================================================


def find_from_format_by_id(pid: str) -> str:
    """Guess the reader for an identifier, resolving the DOI RA when needed."""
    doi, ok = validate_doi(pid)
    if ok:
        ra, found = get_doi_ra(doi)
        return ra.lower() if found else "datacite"
    _, ok = validate_openalex(pid)
    if ok:
        return "openalex"
    if "jsonfeed" in pid or ROGUE_SCHOLAR_POST_RE.match(pid):
        return "jsonfeed"
    _, ok = validate_uuid(pid)
    if ok:
        return "jsonfeed"
    if INVENIORDM_RECORD_RE.match(pid):
        return "inveniordm"
    return "schemaorg"


def find_from_format_by_map(data: Optional[Dict[str, Any]]) -> str:
    """Guess the reader for an already parsed JSON object."""
    if not isinstance(data, dict):
        return ""
    schema_version = data.get("schema_version") or ""
    if isinstance(schema_version, str) and schema_version.startswith("https://commonmeta.org"):
        return "commonmeta"
    if data.get("@context") in ("http://schema.org", "https://schema.org"):
        return "schemaorg"
    if "guid" in data:
        return "jsonfeed"
    envelope = data.get("data")
    attributes = envelope.get("attributes") if isinstance(envelope, dict) else None
    schema = (attributes or data).get("schemaVersion") or ""
    if isinstance(schema, str) and schema.startswith("http://datacite.org/schema/kernel"):
        return "datacite"
    if data.get("source") == "Crossref" or "message" in data and isinstance(data["message"], dict):
        return "crossref"
    if isinstance(data.get("issued"), dict) and "date-parts" in data["issued"]:
        return "csl"
    if "conceptdoi" in data or ("metadata" in data and "pids" in data):
        return "inveniordm"
    if "abstract_inverted_index" in data or str(data.get("id", "")).startswith("https://openalex.org/"):
        return "openalex"
    if "id" in data and "type" in data and "contributors" in data:
        return "commonmeta"
    return ""


def find_from_format_by_string(content: Optional[str]) -> str:
    if not content:
        return ""
    try:
        data = json.loads(content)
    except ValueError:
        if content.lstrip().startswith("<"):
            return "crossrefxml"
        return ""
    return find_from_format_by_map(data)


def find_from_format_by_ext(ext: str) -> str:
    return {".xml": "crossrefxml"}.get(ext, "")


def find_from_format(
    pid: str = "",
    content: str = "",
    ext: str = "",
    data: Optional[Dict[str, Any]] = None,
) -> str:
    """Find the reader format from an id, an extension, a parsed map or a string."""
    if pid:
        return find_from_format_by_id(pid)
    if ext and find_from_format_by_ext(ext):
        return find_from_format_by_ext(ext)
    if data is not None:
        return find_from_format_by_map(data)
    if content:
        return find_from_format_by_string(content)
    return "datacite"
