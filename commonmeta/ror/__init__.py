"""
ROR: the Research Organization Registry.

Organization records, the local catalog, and the affiliation matcher.
"""

from commonmeta.ror.matching import (
    MIN_CHOSEN_SCORE,
    MIN_MATCHING_SCORE,
    AffiliationMatcher,
    MatchedOrganization,
)
from commonmeta.ror.model import ROR, InvenioRDMAffiliation
from commonmeta.ror.reader import (
    extract_all,
    fetch,
    fetch_all,
    get_display_name,
    load_all,
    load_builtin,
    map_ror,
    match_affiliation,
    match_organization,
    search,
)
from commonmeta.ror.writer import (
    filter_catalog,
    to_invenio_rdm,
    write,
    write_all,
    write_all_invenio_rdm,
    write_invenio_rdm,
)

__all__ = [
    "MIN_CHOSEN_SCORE",
    "MIN_MATCHING_SCORE",
    "AffiliationMatcher",
    "InvenioRDMAffiliation",
    "MatchedOrganization",
    "ROR",
    "extract_all",
    "fetch",
    "fetch_all",
    "filter_catalog",
    "get_display_name",
    "load_all",
    "load_builtin",
    "map_ror",
    "match_affiliation",
    "match_organization",
    "search",
    "to_invenio_rdm",
    "write",
    "write_all",
    "write_all_invenio_rdm",
    "write_invenio_rdm",
]
