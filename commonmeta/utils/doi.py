"""DOI validation, normalization and registration agency lookup.

Accepted inputs:
- 10.5555/12345678
- doi:10.5555/12345678
- https://doi.org/10.5555/12345678 (also dx.doi.org, handle.net and the
  DataCite handle test/stage resolvers)

Normalized form is always ``https://doi.org/<lowercased doi>``.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional, Tuple
from urllib.parse import urlparse

from commonmeta.core.exceptions import (
    ChecksumMismatchError,
    InvalidIdentifierError,
    NetworkFailureError,
    NotFoundError,
)
from commonmeta.core.http import get_client
from commonmeta.core.logging import get_logger
from commonmeta.utils import crockford

logger = get_logger(__name__)

_RESOLVERS = (
    r"doi\.org|hdl\.handle\.net|handle\.net|"
    r"handle\.stage\.datacite\.org|handle\.test\.datacite\.org"
)
DOI_RE = re.compile(
    rf"^(?:(?:http|https):/(?:/)?(?:dx\.)?(?:{_RESOLVERS})/)?(?:doi:)?(10\.\d{{4,9}}/\S+)$",
    re.IGNORECASE,
)
PREFIX_RE = re.compile(
    rf"^(?:(?:http|https):/(?:/)?(?:dx\.)?(?:{_RESOLVERS})/)?(?:doi:)?(10\.\d{{4,9}})(?:/|$)",
    re.IGNORECASE,
)

KNOWN_CROSSREF_PREFIXES = frozenset(
    {
        "10.53731",
        "10.54900",
        "10.59347",
        "10.59348",
        "10.59349",
        "10.59350",
        "10.59351",
        "10.64000",
    }
)
KNOWN_DATACITE_PREFIXES = frozenset({"10.34732", "10.57689", "10.83132"})

ROGUE_SCHOLAR_CROSSREF_PREFIXES = frozenset(
    {
        "10.53731",
        "10.54900",
        "10.57689",
        "10.59347",
        "10.59348",
        "10.59349",
        "10.59350",
        "10.63485",
        "10.64000",
    }
)
ROGUE_SCHOLAR_DATACITE_PREFIXES = frozenset(
    {"10.5438", "10.34732", "10.57689", "10.58079", "10.60804"}
)

DOI_RA_URL = "https://doi.org/doiRA/{prefix}"


def validate_doi(doi: Optional[str]) -> Tuple[str, bool]:
    """Return the bare DOI and whether the input is a valid DOI."""
    if not doi:
        return "", False
    match = DOI_RE.match(doi.strip())
    if not match:
        return "", False
    return match.group(1), True


def doi_resolver(doi: str, sandbox: bool = False) -> str:
    host = urlparse(doi).netloc
    if sandbox or host in ("handle.stage.datacite.org", "stage.datacite.org"):
        return "https://handle.stage.datacite.org/"
    return "https://doi.org/"


def normalize_doi(doi: Optional[str], sandbox: bool = False) -> str:
    """Normalize a DOI to its lowercase https://doi.org/ URL.

    Returns:
        Normalized DOI URL, or "" when the input is not a DOI
    """
    bare, ok = validate_doi(doi)
    if not ok:
        return ""
    return doi_resolver(doi or "", sandbox) + bare.lower()


def doi_as_url(doi: Optional[str]) -> str:
    return normalize_doi(doi)


def doi_from_url(url: Optional[str]) -> str:
    """Return the lowercase bare DOI of a DOI URL, or ""."""
    bare, ok = validate_doi(url)
    return bare.lower() if ok else ""


def escape_doi(doi: Optional[str]) -> str:
    bare, ok = validate_doi(doi)
    if not ok:
        return ""
    return bare.replace("/", "%2F")


def validate_prefix(doi: Optional[str]) -> Tuple[str, bool]:
    """Return the DOI prefix (10.NNNN) of a DOI, DOI URL or bare prefix."""
    if not doi:
        return "", False
    match = PREFIX_RE.match(doi.strip())
    if not match:
        return "", False
    return match.group(1), True


def prefix_from_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.netloc != "doi.org" or not parsed.path.startswith("/10."):
        return ""
    return parsed.path.split("/")[1]


def is_registered_doi(doi: str) -> bool:
    """HEAD the DOI resolver; True when the DOI redirects to a landing page."""
    url = normalize_doi(doi)
    if not url:
        return False
    try:
        response = get_client().request(
            "HEAD", url, expected=(404,), allow_redirects=False
        )
    except NetworkFailureError:
        return False
    return response.status_code <= 308


def encode_doi(prefix: str, check_registered: bool = True) -> str:
    """Generate a new random DOI URL for a prefix, e.g. https://doi.org/10.59350/f9zqn-sf065."""
    for _ in range(10):
        suffix = crockford.generate(length=10, split_every=5, checksum=True)
        doi = f"https://doi.org/{prefix}/{suffix}"
        if not check_registered or not is_registered_doi(doi):
            return doi
    raise NetworkFailureError(f"Could not generate an unregistered DOI for {prefix}")


def decode_doi(doi: str) -> int:
    """Decode the Crockford suffix of a generated DOI; 0 if not decodable."""
    bare, ok = validate_doi(doi)
    if not ok:
        return 0
    suffix = bare.split("/", 1)[1]
    try:
        return crockford.decode(suffix, checksum=True)
    except (InvalidIdentifierError, ChecksumMismatchError) as e:
        logger.debug("Could not decode DOI suffix", doi=doi, error=str(e))
        return 0


@lru_cache(maxsize=1024)
def _lookup_ra(prefix: str) -> str:
    try:
        result = get_client().get_json(DOI_RA_URL.format(prefix=prefix))
    except NotFoundError:
        return ""
    if not isinstance(result, list) or not result:
        return ""
    return result[0].get("RA", "")


def get_doi_ra(doi: str) -> Tuple[str, bool]:
    """Resolve the registration agency of a DOI ("Crossref", "DataCite", ...).

    Known Rogue Scholar prefixes are answered without a network call;
    other prefixes are looked up at doi.org and cached per process.
    """
    prefix, ok = validate_prefix(doi)
    if not ok:
        return "", False
    if prefix in KNOWN_CROSSREF_PREFIXES:
        return "Crossref", True
    if prefix in KNOWN_DATACITE_PREFIXES:
        return "DataCite", True
    ra = _lookup_ra(prefix)
    if not ra or ra.lower().startswith("invalid") or ra == "DOI does not exist":
        return "", False
    return ra, True


def is_rogue_scholar_doi(doi: str, ra: str = "") -> bool:
    """True iff the DOI prefix belongs to the Rogue Scholar allow-list."""
    prefix, ok = validate_prefix(doi)
    if not ok:
        return False
    is_crossref = prefix in ROGUE_SCHOLAR_CROSSREF_PREFIXES
    is_datacite = prefix in ROGUE_SCHOLAR_DATACITE_PREFIXES
    if ra.lower() == "crossref":
        return is_crossref
    if ra.lower() == "datacite":
        return is_datacite
    return is_crossref or is_datacite
