"""
DataCite registration client.

DOIs are created or updated with ``PUT /dois/<doi>`` in the JSON:API
envelope ``{"data": {"type": "dois", "attributes": ...}}`` using HTTP basic
auth with the repository id and password. ``development=True`` targets the
DataCite test system.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from commonmeta.core.config import get_settings
from commonmeta.core.exceptions import CommonmetaError
from commonmeta.core.fileio import decode_json
from commonmeta.core.http import HttpClient
from commonmeta.core.logging import BatchLogger, get_logger
from commonmeta.core.retry import registration_retry
from commonmeta.core.workers import run_ordered
from commonmeta.formats.datacite.writer import write
from commonmeta.model.record import Record
from commonmeta.registration.response import (
    STATUS_FAILED,
    STATUS_FAILED_MISSING_DOI,
    STATUS_SKIPPED,
    STATUS_SUBMITTED,
    APIResponse,
)
from commonmeta.utils.doi import escape_doi, get_doi_ra, validate_doi

logger = get_logger(__name__)

API_URL = "https://api.datacite.org"
TEST_API_URL = "https://api.test.datacite.org"


@dataclass
class Account:
    """DataCite repository credentials."""

    client: str = ""
    password: str = ""
    development: bool = False

    @property
    def api_url(self) -> str:
        return TEST_API_URL if self.development else API_URL

    @property
    def auth(self) -> Tuple[str, str]:
        return (self.client, self.password)


@registration_retry
def _put(client: HttpClient, url: str, attributes: bytes, account: Account) -> dict:
    response = client.request(
        "PUT",
        url,
        data=b'{"data":{"type":"dois","attributes":' + attributes + b"}}",
        auth=account.auth,
        headers={"Content-Type": "application/vnd.api+json"},
    )
    return decode_json(response.content, source=url)


def upsert(record: Record, account: Account, client: Optional[HttpClient] = None) -> APIResponse:
    """Register or update one DataCite DOI.

    Records whose DOI belongs to another registration agency are skipped
    without any write.
    """
    doi, ok = validate_doi(record.id)
    if not ok:
        return APIResponse(doi=record.id, status=STATUS_FAILED_MISSING_DOI)
    try:
        ra, ok = get_doi_ra(doi)
    except CommonmetaError as e:
        logger.warning("Registration agency lookup failed", doi=doi, error=str(e))
        return APIResponse(doi=doi, status=STATUS_FAILED)
    if not ok or ra != "DataCite":
        logger.info("Skipping non-DataCite DOI", doi=doi, ra=ra)
        return APIResponse(doi=doi, status=STATUS_SKIPPED)

    response = APIResponse(doi=doi)
    client = client or HttpClient(timeout=get_settings().registration_timeout)
    try:
        attributes = write(record)
        content = _put(client, f"{account.api_url}/dois/{escape_doi(doi)}", attributes, account)
    except CommonmetaError as e:
        logger.warning("DataCite registration failed", doi=doi, error=str(e))
        response.status = STATUS_FAILED
        return response

    data = content.get("data") or {}
    attrs = data.get("attributes") or {}
    response.id = data.get("id", "")
    response.created = attrs.get("created", "")
    response.updated = attrs.get("updated", "")
    response.timestamp = attrs.get("updated", "")
    response.status = STATUS_SUBMITTED
    return response


def upsert_all(
    records: List[Record], account: Account, client: Optional[HttpClient] = None
) -> List[APIResponse]:
    """Register records in parallel; envelopes keep the order of the records."""
    batch = BatchLogger("datacite.upsert_all")
    client = client or HttpClient(timeout=get_settings().registration_timeout)
    responses = []
    results = run_ordered(lambda record: upsert(record, account, client), records)
    for record, response in zip(records, results):
        if response.status == STATUS_SKIPPED:
            continue
        if response.failed:
            batch.record_failed(record.id, response.status)
        else:
            batch.record_ok()
        responses.append(response)
    batch.finish()
    return responses
