"""
InvenioRDM registration client.

Architecture Context
--------------------
Each record moves through a small state machine against the InvenioRDM
REST API of one host:

    search_by_doi(doi)
        │
        ├── found ─────► edit_published_record ─► update_draft_record ─┐
        │                                                              │
        └── not found ─► create_draft_record ──(409)──► edit branch    │
                                │                                      │
                                └──────────────────────────────────────┤
                                                                       ▼
                                                         publish_draft_record
                                                                       │
                                              add_record_to_community (optional)

Design Decisions
----------------
1. **Envelope, not exceptions**: ``upsert`` never raises for a single
   record. Failures are logged and recorded in ``APIResponse.status`` so
   that ``upsert_all`` can report on a whole batch.
2. **Publish is retried**: InvenioRDM occasionally answers 5xx while the
   search index catches up; publish uses ``registration_retry``.
3. **One limiter per client**: 450 requests per 30 s for upserts, 900 per
   60 s for deletes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from commonmeta.core.config import get_settings
from commonmeta.core.exceptions import (
    CommonmetaError,
    DecodeFailureError,
    NetworkFailureError,
    RateLimitedError,
)
from commonmeta.core.fileio import decode_json
from commonmeta.core.http import HttpClient, TokenBucket
from commonmeta.core.logging import BatchLogger, get_logger
from commonmeta.core.retry import registration_retry
from commonmeta.core.workers import run_ordered
from commonmeta.formats.inveniordm import reader
from commonmeta.formats.inveniordm.reader import DEFAULT_HOST
from commonmeta.formats.inveniordm.writer import COMMUNITY_URL_PREFIX, convert
from commonmeta.model.record import Record
from commonmeta.registration import roguescholar
from commonmeta.registration.response import (
    STATUS_ADDED_TO_COMMUNITY,
    STATUS_DELETED,
    STATUS_DRAFT,
    STATUS_FAILED,
    STATUS_FAILED_CREATE_DRAFT,
    STATUS_FAILED_MISSING_DOI,
    STATUS_FAILED_NOT_FOUND,
    STATUS_FAILED_RATE_LIMITED,
    STATUS_PUBLISHED,
    APIResponse,
)
from commonmeta.utils.doi import validate_doi
from commonmeta.vocabularies.fos import FIELDS

logger = get_logger(__name__)

UPSERT_LIMIT = (450, 30.0)
DELETE_LIMIT = (900, 60.0)


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class InvenioRDMClient:
    """Authenticated client for the records and communities API of one host.

    Example:
        client = InvenioRDMClient("rogue-scholar.org", token)
        response = client.upsert(record)
        print(response.id, response.status)
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        token: str = "",
        legacy_key: str = "",
        limit: tuple = UPSERT_LIMIT,
        http: Optional[HttpClient] = None,
    ) -> None:
        self.host = host
        self.token = token
        self.legacy_key = legacy_key
        self.http = http or HttpClient(
            timeout=get_settings().registration_timeout,
            limiter=TokenBucket.per_interval(*limit),
            headers={"Authorization": f"Bearer {token}"},
        )
        # local development instances use self-signed certificates
        self._request_kwargs: Dict[str, Any] = {"verify": False} if host == "localhost" else {}

    def _url(self, path: str) -> str:
        return f"https://{self.host}/api/{path}"

    def _request(self, method: str, path: str, expected: tuple = (), **kwargs: Any) -> Any:
        kwargs.update(self._request_kwargs)
        return self.http.request(method, self._url(path), expected=expected, **kwargs)

    def _json(self, resp: Any) -> Dict[str, Any]:
        """Decoded JSON object of a response; DecodeFailureError for other bodies."""
        content = decode_json(resp.content, source=resp.url or self.host)
        if not isinstance(content, dict):
            raise DecodeFailureError(f"Expected a JSON object from {resp.url or self.host}")
        return content

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def search_by_doi(self, doi: str) -> str:
        return reader.search_by_doi(doi, self.host, client=self.http, token=self.token)

    def search_by_slug(self, slug: str) -> str:
        return reader.search_by_slug(slug, self.host, client=self.http, token=self.token)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def create_draft_record(self, response: APIResponse, payload: Dict[str, Any]) -> APIResponse:
        """POST a new draft. 409 propagates so the caller can edit instead."""
        try:
            resp = self._request("POST", "records", json=payload)
        except RateLimitedError:
            response.status = STATUS_FAILED_RATE_LIMITED
            raise
        except NetworkFailureError as e:
            if e.status != 409:
                response.status = STATUS_FAILED_CREATE_DRAFT
            raise
        if resp.status_code != 201:
            response.status = STATUS_FAILED_CREATE_DRAFT
            raise NetworkFailureError(
                f"Unexpected status {resp.status_code} creating draft for {response.doi}",
                status=resp.status_code,
                url=self._url("records"),
            )
        content = self._json(resp)
        response.id = content.get("id", "")
        response.created = content.get("created", "")
        response.updated = content.get("updated", "")
        response.status = STATUS_DRAFT
        return response

    def edit_published_record(self, response: APIResponse) -> APIResponse:
        """Create a draft from the published record."""
        resp = self._request("POST", f"records/{response.id}/draft")
        response.updated = self._json(resp).get("updated", "")
        response.status = STATUS_DRAFT
        return response

    def update_draft_record(self, response: APIResponse, payload: Dict[str, Any]) -> APIResponse:
        resp = self._request("PUT", f"records/{response.id}/draft", json=payload)
        response.updated = self._json(resp).get("updated", "")
        return response

    @registration_retry
    def publish_draft_record(self, response: APIResponse) -> APIResponse:
        """Publish the draft; 5xx responses are retried with backoff."""
        resp = self._request("POST", f"records/{response.id}/draft/actions/publish")
        if resp.status_code != 202:
            raise NetworkFailureError(
                f"Unexpected status {resp.status_code} publishing {response.id}",
                status=resp.status_code,
            )
        content = self._json(resp)
        response.created = content.get("created", response.created)
        response.updated = content.get("updated", response.updated)
        response.status = STATUS_PUBLISHED
        return response

    def add_record_to_community(self, response: APIResponse, community_id: str) -> APIResponse:
        self._request(
            "POST",
            f"records/{response.id}/communities",
            json={"communities": [{"id": community_id}]},
        )
        response.status = STATUS_ADDED_TO_COMMUNITY
        return response

    def delete_draft_record(self, response: APIResponse) -> APIResponse:
        """Discard a draft record. A missing draft is reported, not raised."""
        resp = self._request("DELETE", f"records/{response.id}/draft", expected=(404,))
        if resp.status_code == 404:
            response.status = STATUS_FAILED_NOT_FOUND
        else:
            response.status = STATUS_DELETED
        response.timestamp = _now()
        return response

    def create_community(self, slug: str, title: str, community_type: str = "topic") -> str:
        payload = {
            "access": {"visibility": "public", "member_policy": "open", "record_policy": "open"},
            "slug": slug,
            "metadata": {"title": title, "type": {"id": community_type}},
        }
        resp = self._request("POST", "communities", json=payload)
        return self._json(resp).get("id", "")

    def create_subject_communities(self) -> List[Dict[str, str]]:
        """Create one topic community per Field of Science, skipping existing slugs."""
        results = []
        for field in FIELDS:
            slug = field.key.lower()
            community_id = self.search_by_slug(slug)
            status = "exists"
            if not community_id:
                community_id = self.create_community(slug, field.label)
                status = "created"
            logger.info("Subject community", slug=slug, status=status)
            results.append({"slug": slug, "id": community_id, "status": status})
        return results

    # ------------------------------------------------------------------
    # Upsert
    # ------------------------------------------------------------------

    def _edit_and_update(self, response: APIResponse, payload: Dict[str, Any]) -> APIResponse:
        response = self.edit_published_record(response)
        return self.update_draft_record(response, payload)

    def _register(self, response: APIResponse, record: Record, mode: str) -> APIResponse:
        payload = convert(record)
        if not payload.get("metadata", {}).get("publication_date"):
            response.status = STATUS_FAILED
            logger.warning("Missing publication date", doi=response.doi)
            return response

        for relation in record.relations:
            if relation.type == "IsPartOf" and relation.id.startswith(COMMUNITY_URL_PREFIX):
                response.community = relation.id.split("/")[5]
        response.uuid = record.identifier_of_type("UUID")

        response.id = self.search_by_doi(response.doi)
        if response.id:
            if mode == "create":
                response.status = STATUS_FAILED
                logger.warning("Record already exists", doi=response.doi, id=response.id)
                return response
            response = self._edit_and_update(response, payload)
        elif mode == "update":
            response.status = STATUS_FAILED_NOT_FOUND
            return response
        else:
            try:
                response = self.create_draft_record(response, payload)
            except NetworkFailureError as e:
                if e.status != 409:
                    raise
                logger.info("Draft exists, editing instead", doi=response.doi)
                response.id = self.search_by_doi(response.doi)
                if not response.id:
                    raise
                response = self._edit_and_update(response, payload)

        response = self.publish_draft_record(response)

        if response.community:
            community_id = self.search_by_slug(response.community)
            if community_id:
                response = self.add_record_to_community(response, community_id)

        if self.host == DEFAULT_HOST and self.legacy_key:
            response = roguescholar.update_legacy_record(response, self.legacy_key, field="rid")
        return response

    def upsert(self, record: Record, mode: str = "upsert") -> APIResponse:
        """Create or update one record.

        Args:
            record: Record with a DOI as id
            mode: "upsert", "create" (only new records) or "update"
                (only existing records)
        """
        doi, ok = validate_doi(record.id)
        response = APIResponse(doi=doi, timestamp=_now())
        if not ok:
            response.status = STATUS_FAILED_MISSING_DOI
            return response
        try:
            response = self._register(response, record, mode)
        except CommonmetaError as e:
            if not response.failed:
                response.status = STATUS_FAILED
            logger.warning("InvenioRDM registration failed", doi=doi, error=str(e))
        return response

    def upsert_all(self, records: List[Record], mode: str = "upsert") -> List[APIResponse]:
        """Upsert records in parallel; envelopes keep the order of the records."""
        batch = BatchLogger("inveniordm.upsert_all")
        responses = []
        results = run_ordered(lambda record: self.upsert(record, mode), records)
        for record, response in zip(records, results):
            if response.failed:
                batch.record_failed(record.id, response.status)
            else:
                batch.record_ok()
            responses.append(response)
        batch.finish()
        return responses


def upsert(record: Record, host: str = DEFAULT_HOST, token: str = "", legacy_key: str = "") -> APIResponse:
    return InvenioRDMClient(host, token, legacy_key).upsert(record)


def upsert_all(
    records: List[Record], host: str = DEFAULT_HOST, token: str = "", legacy_key: str = ""
) -> List[APIResponse]:
    return InvenioRDMClient(host, token, legacy_key).upsert_all(records)


def delete_draft_record(rid: str, host: str = DEFAULT_HOST, token: str = "") -> APIResponse:
    """Delete the draft of record `rid`; a missing draft is reported in the status."""
    client = InvenioRDMClient(host, token, limit=DELETE_LIMIT)
    return client.delete_draft_record(APIResponse(id=rid))
