"""Response envelope returned by every registration client.

Callers keep the list of envelopes as an audit trail of a push: which DOI
went where, under which record id, and how far the deposit got.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

# Terminal and intermediate states written to APIResponse.status
STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"
STATUS_ADDED_TO_COMMUNITY = "added_to_community"
STATUS_SUBMITTED = "submitted"
STATUS_UPDATED_LEGACY = "updated_legacy"
STATUS_DELETED = "deleted"
STATUS_FAILED = "failed"
STATUS_FAILED_MISSING_DOI = "failed_missing_doi"
STATUS_FAILED_RATE_LIMITED = "failed_rate_limited"
STATUS_FAILED_CREATE_DRAFT = "failed_create_draft"
STATUS_FAILED_NOT_FOUND = "failed_not_found"
STATUS_SKIPPED = "skipped"


@dataclass
class APIResponse:
    """Outcome of registering one record."""

    doi: str = ""
    id: str = ""
    doi_batch_id: str = ""
    uuid: str = ""
    community: str = ""
    created: str = ""
    updated: str = ""
    timestamp: str = ""
    status: str = ""

    @property
    def failed(self) -> bool:
        return self.status.startswith(STATUS_FAILED)

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary without empty fields."""
        return {k: v for k, v in asdict(self).items() if v}
