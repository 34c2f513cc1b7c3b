"""
Ghost Admin API: point a post's canonical URL at its DOI.

Architecture Context
--------------------
    Rogue Scholar post (DOI, URL)
        │  slug = last path segment of the URL
        ▼
    GET  {api_url}/ghost/api/admin/posts/slug/{slug}/   -> id, updated_at
    PUT  {api_url}/ghost/api/admin/posts/{id}/          canonical_url = DOI

Authentication uses a short-lived HS256 token signed with the Admin API key
(``<id>:<hex secret>``), see https://ghost.org/docs/admin-api/#token-authentication.
"""

import binascii
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from urllib.parse import urlparse

from jose import jwt

from commonmeta.core.exceptions import CommonmetaError, NotFoundError
from commonmeta.core.http import HttpClient
from commonmeta.core.logging import get_logger
from commonmeta.formats import jsonfeed
from commonmeta.utils.doi import normalize_doi

logger = get_logger(__name__)

TOKEN_LIFETIME = timedelta(minutes=5)
AUDIENCE = "/admin/"
API_VERSION = "v5"


class GhostKeyError(CommonmetaError):
    """Raised when the Admin API key is not ``<id>:<hex secret>``."""

    error_code = "CM-GHOST-001"
    why_it_happened = "The Ghost Admin API key could not be parsed"
    how_to_fix = ["Copy the Admin API key from Ghost > Settings > Integrations"]


def generate_token(api_key: str, now: Optional[datetime] = None) -> str:
    """Sign a short-lived Admin API token.

    Raises:
        GhostKeyError: key is not ``<id>:<hex secret>``
    """
    parts = api_key.split(":")
    if len(parts) != 2:
        raise GhostKeyError("Invalid Ghost Admin API key format")
    key_id, secret = parts
    try:
        secret_bytes = binascii.unhexlify(secret)
    except (binascii.Error, ValueError) as e:
        raise GhostKeyError("Ghost Admin API secret is not hex encoded") from e
    now = now or datetime.now(timezone.utc)
    claims = {
        "iat": int(now.timestamp()),
        "exp": int((now + TOKEN_LIFETIME).timestamp()),
        "aud": AUDIENCE,
    }
    return jwt.encode(claims, secret_bytes, algorithm="HS256", headers={"kid": key_id})


def _headers(token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Ghost {token}",
        "Content-Type": "application/json",
        "Accept-Version": API_VERSION,
    }


def update_ghost_post(
    pid: str, api_key: str, api_url: str, client: Optional[HttpClient] = None
) -> str:
    """Set the canonical URL of a Ghost post to the DOI of its Rogue Scholar record.

    Args:
        pid: Rogue Scholar post id
        api_key: Ghost Admin API key
        api_url: Base URL of the Ghost site

    Returns:
        Confirmation message

    Raises:
        NotFoundError: post has no DOI or URL, or Ghost does not know the slug
    """
    client = client or HttpClient()
    post = jsonfeed.get(pid, client)
    doi = normalize_doi(post.get("doi"))
    url = post.get("url") or ""
    if not doi or not url:
        raise NotFoundError(f"DOI or URL not found for post {pid}")

    token = generate_token(api_key)
    api_url = api_url.rstrip("/")
    slug = urlparse(url).path.rstrip("/").split("/")[-1]
    content = client.get_json(f"{api_url}/ghost/api/admin/posts/slug/{slug}/", headers=_headers(token))
    posts = content.get("posts") or []
    if not posts:
        raise NotFoundError(f"Ghost post not found: {slug}")
    guid = posts[0].get("id", "")
    updated_at = posts[0].get("updated_at", "")
    if not guid or not updated_at:
        raise NotFoundError(f"Ghost post {slug} has no id or updated_at")

    # updated_at guards against overwriting concurrent edits
    client.request(
        "PUT",
        f"{api_url}/ghost/api/admin/posts/{guid}/",
        json={"posts": [{"canonical_url": doi, "updated_at": updated_at}]},
        headers=_headers(token),
    )
    logger.info("Updated canonical URL", doi=doi, guid=guid)
    return f"Canonical URL {doi} updated for GUID {guid} at {updated_at}"
