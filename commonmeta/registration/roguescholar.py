"""Rogue Scholar legacy database updates.

After a post is registered, the legacy posts table is told the record id
(InvenioRDM) or DOI (Crossref) so the blog pipeline stops re-submitting it.
"""

import time
from typing import Optional

from commonmeta.core.config import get_settings
from commonmeta.core.exceptions import CommonmetaError
from commonmeta.core.http import HttpClient
from commonmeta.core.logging import get_logger
from commonmeta.registration.response import STATUS_UPDATED_LEGACY, APIResponse

logger = get_logger(__name__)

LEGACY_HOST = "bosczcmeodcrajtcaddf.supabase.co"


def update_legacy_record(
    response: APIResponse,
    legacy_key: str,
    field: str = "doi",
    client: Optional[HttpClient] = None,
) -> APIResponse:
    """PATCH the legacy post row keyed by the response UUID.

    Args:
        response: Envelope carrying the post UUID and the new rid or DOI
        legacy_key: Service key of the legacy database
        field: "rid" to store the InvenioRDM record id, else "doi"

    Raises:
        CommonmetaError: missing key, UUID or value to store
        NetworkFailureError: the update was rejected
    """
    if not legacy_key:
        raise CommonmetaError("No legacy key provided")
    if not response.uuid:
        raise CommonmetaError(f"No UUID provided for {response.doi or response.id}")
    now = str(int(time.time()))
    if field == "rid" and response.id:
        payload = {"rid": response.id}
    elif response.doi:
        payload = {"doi": response.doi}
    else:
        raise CommonmetaError("No valid field to update")
    payload.update({"indexed_at": now, "indexed": "true", "archived": "true"})

    client = client or HttpClient(timeout=get_settings().registration_timeout)
    client.request(
        "PATCH",
        f"https://{LEGACY_HOST}/rest/v1/posts?id=eq.{response.uuid}",
        json=payload,
        headers={
            "apikey": legacy_key,
            "Authorization": f"Bearer {legacy_key}",
            "Prefer": "return=minimal",
        },
    )
    logger.debug("Updated legacy record", uuid=response.uuid, field=field)
    response.status = STATUS_UPDATED_LEGACY
    return response
