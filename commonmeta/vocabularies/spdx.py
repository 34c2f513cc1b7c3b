"""SPDX license list.

Maps license URLs to SPDX licenseIds and back. The embedded list is a
subset of https://github.com/spdx/license-list-data covering the licenses
seen in scholarly metadata; `commonmeta install spdx` downloads the full
list into the data directory, which is then used in preference.

URLs are compared without scheme, "www.", query, fragment and trailing
slash, so http/https variants of the same license URL are equivalent.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from commonmeta.core.config import get_settings
from commonmeta.core.fileio import decode_json, download_file, read_file, write_file
from commonmeta.core.logging import get_logger
from commonmeta.utils.identifiers import normalize_url

logger = get_logger(__name__)

DATA_DIR = Path(__file__).parent / "data"
SPDX_FILENAME = "licenses.json"
SPDX_DOWNLOAD_URL = (
    "https://raw.githubusercontent.com/spdx/license-list-data/refs/heads/main/json/licenses.json"
)
# a downloaded list smaller than this is treated as truncated
MIN_INSTALLED_SIZE = 50 * 1024

NORMALIZED_CC_LICENSES: Dict[str, str] = {
    "https://creativecommons.org/licenses/by/1.0": "https://creativecommons.org/licenses/by/1.0/legalcode",
    "https://creativecommons.org/licenses/by/2.0": "https://creativecommons.org/licenses/by/2.0/legalcode",
    "https://creativecommons.org/licenses/by/2.5": "https://creativecommons.org/licenses/by/2.5/legalcode",
    "https://creativecommons.org/licenses/by/3.0": "https://creativecommons.org/licenses/by/3.0/legalcode",
    "https://creativecommons.org/licenses/by/3.0/us": "https://creativecommons.org/licenses/by/3.0/legalcode",
    "https://creativecommons.org/licenses/by/4.0": "https://creativecommons.org/licenses/by/4.0/legalcode",
    "https://creativecommons.org/licenses/by-nc/1.0": "https://creativecommons.org/licenses/by-nc/1.0/legalcode",
    "https://creativecommons.org/licenses/by-nc/2.0": "https://creativecommons.org/licenses/by-nc/2.0/legalcode",
    "https://creativecommons.org/licenses/by-nc/2.5": "https://creativecommons.org/licenses/by-nc/2.5/legalcode",
    "https://creativecommons.org/licenses/by-nc/3.0": "https://creativecommons.org/licenses/by-nc/3.0/legalcode",
    "https://creativecommons.org/licenses/by-nc/4.0": "https://creativecommons.org/licenses/by-nc/4.0/legalcode",
    "https://creativecommons.org/licenses/by-nd-nc/1.0": "https://creativecommons.org/licenses/by-nd-nc/1.0/legalcode",
    "https://creativecommons.org/licenses/by-nd-nc/2.0": "https://creativecommons.org/licenses/by-nd-nc/2.0/legalcode",
    "https://creativecommons.org/licenses/by-nd-nc/2.5": "https://creativecommons.org/licenses/by-nd-nc/2.5/legalcode",
    "https://creativecommons.org/licenses/by-nd-nc/3.0": "https://creativecommons.org/licenses/by-nd-nc/3.0/legalcode",
    "https://creativecommons.org/licenses/by-nd-nc/4.0": "https://creativecommons.org/licenses/by-nd-nc/4.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-sa/1.0": "https://creativecommons.org/licenses/by-nc-sa/1.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-sa/2.0": "https://creativecommons.org/licenses/by-nc-sa/2.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-sa/2.5": "https://creativecommons.org/licenses/by-nc-sa/2.5/legalcode",
    "https://creativecommons.org/licenses/by-nc-sa/3.0": "https://creativecommons.org/licenses/by-nc-sa/3.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-sa/3.0/us": "https://creativecommons.org/licenses/by-nc-sa/3.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-sa/4.0": "https://creativecommons.org/licenses/by-nc-sa/4.0/legalcode",
    "https://creativecommons.org/licenses/by-nd/1.0": "https://creativecommons.org/licenses/by-nd/1.0/legalcode",
    "https://creativecommons.org/licenses/by-nd/2.0": "https://creativecommons.org/licenses/by-nd/2.0/legalcode",
    "https://creativecommons.org/licenses/by-nd/2.5": "https://creativecommons.org/licenses/by-nd/2.5/legalcode",
    "https://creativecommons.org/licenses/by-nd/3.0": "https://creativecommons.org/licenses/by-nd/3.0/legalcode",
    "https://creativecommons.org/licenses/by-nd/4.0": "https://creativecommons.org/licenses/by-nd/4.0/legalcode",
    "https://creativecommons.org/licenses/by-sa/1.0": "https://creativecommons.org/licenses/by-sa/1.0/legalcode",
    "https://creativecommons.org/licenses/by-sa/2.0": "https://creativecommons.org/licenses/by-sa/2.0/legalcode",
    "https://creativecommons.org/licenses/by-sa/2.5": "https://creativecommons.org/licenses/by-sa/2.5/legalcode",
    "https://creativecommons.org/licenses/by-sa/3.0": "https://creativecommons.org/licenses/by-sa/3.0/legalcode",
    "https://creativecommons.org/licenses/by-sa/4.0": "https://creativecommons.org/licenses/by-sa/4.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-nd/1.0": "https://creativecommons.org/licenses/by-nc-nd/1.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-nd/2.0": "https://creativecommons.org/licenses/by-nc-nd/2.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-nd/2.5": "https://creativecommons.org/licenses/by-nc-nd/2.5/legalcode",
    "https://creativecommons.org/licenses/by-nc-nd/3.0": "https://creativecommons.org/licenses/by-nc-nd/3.0/legalcode",
    "https://creativecommons.org/licenses/by-nc-nd/4.0": "https://creativecommons.org/licenses/by-nc-nd/4.0/legalcode",
    "https://creativecommons.org/licenses/publicdomain": "https://creativecommons.org/licenses/publicdomain/",
    "https://creativecommons.org/publicdomain/zero/1.0": "https://creativecommons.org/publicdomain/zero/1.0/legalcode",
}


@dataclass
class License:
    """One entry of the SPDX license list."""

    license_id: str
    name: str = ""
    reference: str = ""
    see_also: List[str] = field(default_factory=list)
    is_deprecated: bool = False
    is_osi_approved: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "License":
        return cls(
            license_id=data.get("licenseId", ""),
            name=data.get("name", ""),
            reference=data.get("reference", ""),
            see_also=list(data.get("seeAlso") or []),
            is_deprecated=bool(data.get("isDeprecatedLicenseId", False)),
            is_osi_approved=bool(data.get("isOsiApproved", False)),
        )

    @property
    def url(self) -> str:
        """Canonical URL: the first seeAlso URL that maps back to this license."""
        index = _url_index()
        for url in self.see_also:
            if index.get(_url_key(url)) == self.license_id:
                return url
        return self.reference


def _url_key(url: str) -> str:
    """Comparison key for a license URL."""
    value = url.strip().lower()
    for prefix in ("https://", "http://"):
        if value.startswith(prefix):
            value = value[len(prefix):]
    if value.startswith("www."):
        value = value[4:]
    value = value.split("#", 1)[0].split("?", 1)[0]
    return value.rstrip("/")


def _installed_path() -> Path:
    return get_settings().data_dir / SPDX_FILENAME


@lru_cache(maxsize=1)
def load_builtin() -> Tuple[License, ...]:
    """Load the license list once per process.

    Uses the installed full list when present, else the embedded subset.
    """
    path = _installed_path()
    if path.exists() and path.stat().st_size > MIN_INSTALLED_SIZE:
        source = path
    else:
        source = DATA_DIR / SPDX_FILENAME
    content = decode_json(read_file(source), str(source))
    licenses = tuple(License.from_dict(item) for item in content.get("licenses", []))
    logger.debug("Loaded SPDX licenses", count=len(licenses), source=str(source))
    return licenses


@lru_cache(maxsize=1)
def _url_index() -> Dict[str, str]:
    """URL key -> licenseId. Current ids win over deprecated ones."""
    index: Dict[str, str] = {}
    licenses = load_builtin()
    ordered = [lic for lic in licenses if not lic.is_deprecated] + [
        lic for lic in licenses if lic.is_deprecated
    ]
    for lic in ordered:
        for url in lic.see_also:
            index.setdefault(_url_key(url), lic.license_id)
        if lic.reference:
            index.setdefault(_url_key(lic.reference), lic.license_id)
    return index


@lru_cache(maxsize=1)
def _id_index() -> Dict[str, License]:
    return {lic.license_id.lower(): lic for lic in load_builtin()}


def clear_cache() -> None:
    load_builtin.cache_clear()
    _url_index.cache_clear()
    _id_index.cache_clear()


def normalize_cc_url(url: Optional[str]) -> Tuple[str, bool]:
    """Normalize a Creative Commons license URL to its legalcode form.

    Returns:
        (url, True) for a known CC license, (https-normalized url, False) otherwise
    """
    if not url:
        return "", False
    normalized = normalize_url(url, secure=True)
    if not normalized:
        return "", False
    legalcode = NORMALIZED_CC_LICENSES.get(normalized)
    if legalcode is None:
        return normalized, False
    return legalcode, True


def url_to_spdx(url: Optional[str]) -> str:
    """Return the SPDX licenseId for a license URL, or ""."""
    if not url:
        return ""
    normalized, _ = normalize_cc_url(url)
    return _url_index().get(_url_key(normalized or url), "")


def spdx_to_url(license_id: Optional[str]) -> str:
    """Return the canonical license URL for an SPDX licenseId, or ""."""
    if not license_id:
        return ""
    lic = _id_index().get(license_id.lower())
    return lic.url if lic else ""


def search(id_or_url: Optional[str]) -> Optional[License]:
    """Look up a license by SPDX licenseId (case-insensitive) or URL."""
    if not id_or_url:
        return None
    if "://" in id_or_url:
        license_id = url_to_spdx(id_or_url)
        return _id_index().get(license_id.lower()) if license_id else None
    return _id_index().get(id_or_url.lower())


def get_license(url: Optional[str] = None, license_id: Optional[str] = None) -> Dict[str, str]:
    """Build a Commonmeta license {id, url} from a URL and/or an SPDX id.

    The URL is CC-normalized and https-enforced. When the id is known, the
    URL is the canonical one for that id so that url_to_spdx(url) == id.
    """
    spdx_id = ""
    if license_id:
        lic = _id_index().get(license_id.lower())
        spdx_id = lic.license_id if lic else ""
    if not spdx_id and url:
        spdx_id = url_to_spdx(url)
    if spdx_id:
        return {"id": spdx_id, "url": spdx_to_url(spdx_id)}
    if url:
        normalized, _ = normalize_cc_url(url)
        return {"url": normalized} if normalized else {}
    return {}


def fetch_all(progress: bool = False) -> List[License]:
    """Download the full SPDX license list into the data directory."""
    output = download_file(SPDX_DOWNLOAD_URL, progress=progress)
    content = decode_json(output, SPDX_DOWNLOAD_URL)
    path = _installed_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    write_file(path, output)
    clear_cache()
    logger.info("Installed SPDX licenses", path=str(path), version=content.get("licenseListVersion"))
    return [License.from_dict(item) for item in content.get("licenses", [])]
