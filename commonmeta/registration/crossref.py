"""
Crossref deposit client.

Architecture Context
--------------------
    batch = crossrefxml.write_all(records, account)
        │
        ▼
    POST https://doi.crossref.org/servlet/deposit
        multipart: operation=doMDUpload, login_id, login_passwd, fname=<batch>
        │
        ▼
    HTML acknowledgement ("SUCCESS" / "FAILURE" in <h2>)

Crossref processes deposits asynchronously; a successful upload only means
the batch was queued, so every envelope ends up ``submitted``.

Design Decisions
----------------
1. **Crossref DOIs only**: records whose DOI is registered elsewhere are
   skipped before anything is sent.
2. **One batch per call**: ``upsert_all`` deposits all records in a single
   ``doi_batch`` and shares its ``doi_batch_id`` across the envelopes.
"""

import re
import time
from datetime import datetime, timezone
from typing import List, Optional

from bs4 import BeautifulSoup

from commonmeta.core.config import get_settings
from commonmeta.core.exceptions import CommonmetaError
from commonmeta.core.http import HttpClient
from commonmeta.core.logging import get_logger
from commonmeta.core.retry import registration_retry
from commonmeta.core.workers import run_ordered
from commonmeta.formats.crossrefxml.writer import Account, write_all
from commonmeta.model.record import Record
from commonmeta.registration import roguescholar
from commonmeta.registration.response import (
    STATUS_FAILED,
    STATUS_FAILED_MISSING_DOI,
    STATUS_SKIPPED,
    STATUS_SUBMITTED,
    APIResponse,
)
from commonmeta.utils.doi import get_doi_ra, is_rogue_scholar_doi, validate_doi

logger = get_logger(__name__)

DEPOSIT_URL = "https://doi.crossref.org/servlet/deposit"
TEST_DEPOSIT_URL = "https://test.crossref.org/servlet/deposit"

DOI_BATCH_ID_RE = re.compile(r"<doi_batch_id>([^<]+)</doi_batch_id>")


class DepositFailedError(CommonmetaError):
    """Raised when Crossref rejects an uploaded batch."""

    error_code = "CM-REG-001"
    why_it_happened = "The deposit endpoint answered with FAILURE"
    how_to_fix = [
        "Check --login_id and --login_passwd",
        "Check that the depositor account may register this DOI prefix",
    ]


def parse_acknowledgement(html: str) -> None:
    """Raise if the deposit acknowledgement page reports a failure."""
    soup = BeautifulSoup(html, "lxml")
    heading = soup.find("h2")
    if heading is not None and heading.get_text(strip=True) == "FAILURE":
        paragraph = soup.find("p")
        message = paragraph.get_text(strip=True) if paragraph is not None else "Deposit failed"
        raise DepositFailedError(message)


@registration_retry
def deposit(
    batch: bytes,
    account: Account,
    development: bool = False,
    client: Optional[HttpClient] = None,
) -> str:
    """Upload one ``doi_batch`` and return the acknowledgement HTML.

    Raises:
        DepositFailedError: Crossref answered FAILURE
        NetworkFailureError: transport error or HTTP error status
    """
    client = client or HttpClient(timeout=get_settings().registration_timeout)
    # the file name shown in the Crossref admin interface
    filename = str(int(time.time()))
    response = client.request(
        "POST",
        TEST_DEPOSIT_URL if development else DEPOSIT_URL,
        data={
            "operation": "doMDUpload",
            "login_id": account.login_id,
            "login_passwd": account.login_passwd,
        },
        files={"fname": (filename, batch, "application/xml")},
    )
    parse_acknowledgement(response.text)
    return response.text


def _envelope(record: Record) -> Optional[APIResponse]:
    """Response for a depositable record, None for DOIs of other agencies."""
    doi, ok = validate_doi(record.id)
    if not ok:
        return APIResponse(doi=record.id, status=STATUS_FAILED_MISSING_DOI)
    try:
        ra, ok = get_doi_ra(doi)
    except CommonmetaError as e:
        logger.warning("Registration agency lookup failed", doi=doi, error=str(e))
        return APIResponse(doi=doi, status=STATUS_FAILED)
    if not ok or ra != "Crossref":
        logger.info("Skipping non-Crossref DOI", doi=doi, ra=ra)
        return None
    response = APIResponse(doi=doi)
    if is_rogue_scholar_doi(doi, "crossref"):
        response.uuid = record.identifier_of_type("UUID")
    return response


def upsert_all(
    records: List[Record],
    account: Account,
    legacy_key: str = "",
    development: bool = False,
    client: Optional[HttpClient] = None,
) -> List[APIResponse]:
    """Deposit all Crossref records in one batch.

    Registration agencies are looked up in parallel; a record whose lookup
    fails gets a failed envelope and is left out of the batch.
    """
    responses = []
    depositable = []
    for record, response in zip(records, run_ordered(_envelope, records)):
        if response is None:
            continue
        responses.append(response)
        if not response.failed:
            depositable.append(record)
    if not depositable:
        return responses

    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    batch = write_all(depositable, account)
    match = DOI_BATCH_ID_RE.search(batch.decode("utf-8"))
    batch_id = match.group(1) if match else ""
    try:
        deposit(batch, account, development=development, client=client)
        status = STATUS_SUBMITTED
    except CommonmetaError as e:
        logger.warning("Crossref deposit failed", doi_batch_id=batch_id, error=str(e))
        status = STATUS_FAILED

    for response in responses:
        if response.failed:
            continue
        response.doi_batch_id = batch_id
        response.timestamp = timestamp
        response.status = status
        if status == STATUS_SUBMITTED and legacy_key and response.uuid:
            try:
                roguescholar.update_legacy_record(response, legacy_key, field="doi")
            except CommonmetaError as e:
                logger.warning("Legacy update failed", doi=response.doi, error=str(e))
    return responses


def upsert(
    record: Record,
    account: Account,
    legacy_key: str = "",
    development: bool = False,
    client: Optional[HttpClient] = None,
) -> APIResponse:
    responses = upsert_all([record], account, legacy_key, development, client)
    if not responses:
        return APIResponse(doi=record.id, status=STATUS_SKIPPED)
    return responses[0]
