"""
Canonical model: the Commonmeta record, its vocabularies and schema checks.
"""

from commonmeta.model.record import (
    COMMONMETA_SCHEMA_URL,
    Affiliation,
    Container,
    Contributor,
    Date,
    Description,
    File,
    FundingReference,
    GeoLocation,
    GeoLocationBox,
    GeoLocationPoint,
    Identifier,
    License,
    Publisher,
    Record,
    Reference,
    Relation,
    Subject,
    Title,
)
from commonmeta.model.schema import check, validate

__all__ = [
    "COMMONMETA_SCHEMA_URL",
    "Affiliation",
    "Container",
    "Contributor",
    "Date",
    "Description",
    "File",
    "FundingReference",
    "GeoLocation",
    "GeoLocationBox",
    "GeoLocationPoint",
    "Identifier",
    "License",
    "Publisher",
    "Record",
    "Reference",
    "Relation",
    "Subject",
    "Title",
    "check",
    "validate",
]
