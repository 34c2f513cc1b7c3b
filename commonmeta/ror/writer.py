"""
Writing ROR catalogs: registry JSON, Avro, CSV and InvenioRDM vocabularies.

Architecture Context
--------------------
    catalog = filter_catalog(load_builtin(), type="funder", country="de")
    write_all(catalog, ".avro")                      # ROR v2 records
    write_all_invenio_rdm(catalog, ".yaml")          # affiliations vocabulary

The InvenioRDM affiliations vocabulary is the one consumed by
``invenio vocabularies import``; an entry looks like

    - id: 0304hq317
      country: DE
      identifiers: [{identifier: 0304hq317, scheme: ror}]
      name: Leibniz Universität Hannover
      title: {de: Leibniz Universität Hannover, en: Leibniz University Hannover}
      acronym: LUH
"""

import csv
import io
from datetime import datetime
from typing import Any, Dict, List, Optional

import fastavro

from commonmeta.core.exceptions import InvalidExtensionError
from commonmeta.core.fileio import dump_json, dump_jsonl, dump_yaml
from commonmeta.core.logging import get_logger
from commonmeta.ror.model import (
    ACRONYM,
    ALIAS,
    LABEL,
    ROR,
    ROR_DISPLAY,
    InvenioIdentifier,
    InvenioRDMAffiliation,
    avro_schema,
)
from commonmeta.utils.identifiers import validate_ror

logger = get_logger(__name__)

Catalog = Dict[str, ROR]

CATALOG_EXTENSIONS = (".avro", ".yaml", ".json", ".jsonl", ".csv")
INVENIORDM_EXTENSIONS = (".yaml", ".json")

# pseudo-files of the InvenioRDM vocabularies with special filtering
FUNDERS_FILE = "funders.yaml"
AFFILIATIONS_FILE = "affiliations_ror.yaml"

CSV_FIELDS = [
    "id",
    "name",
    "types",
    "status",
    "links",
    "aliases",
    "labels",
    "acronyms",
    "wikipedia_url",
    "established",
    "addresses[0].lat",
    "addresses[0].lng",
    "addresses[0].geonames_city.name",
    "addresses[0].geonames_city.id",
    "addresses[0].geonames_city.geonames_admin1.name",
    "addresses[0].geonames_city.geonames_admin1.code",
    "country.country_code",
    "country.country_name",
    "external_ids.GRID.preferred",
    "external_ids.GRID.all",
    "external_ids.ISNI.preferred",
    "external_ids.ISNI.all",
    "external_ids.FundRef.preferred",
    "external_ids.FundRef.all",
    "external_ids.Wikidata.preferred",
    "external_ids.Wikidata.all",
    "relationships",
]

# CSV column prefix -> ROR external id type
CSV_EXTERNAL_IDS = {
    "GRID": "grid",
    "ISNI": "isni",
    "FundRef": "fundref",
    "Wikidata": "wikidata",
}

RELATIONSHIP_LABELS = {"child": "Child", "parent": "Parent", "related": "Related"}


# ============================================================================
# Conversions
# ============================================================================


def get_title(org: ROR) -> Dict[str, str]:
    """Labels by language, as InvenioRDM title."""
    return org.labels


def to_invenio_rdm(org: ROR) -> InvenioRDMAffiliation:
    ror, _ = validate_ror(org.id)
    acronyms = org.acronyms
    return InvenioRDMAffiliation(
        acronym=acronyms[0] if acronyms else None,
        id=ror,
        country=org.country_code or None,
        identifiers=[InvenioIdentifier(identifier=ror, scheme="ror")],
        name=org.display_name,
        title=get_title(org),
    )


def _format_float(value: Optional[float]) -> str:
    return f"{value:f}" if value is not None else ""


def to_csv_row(org: ROR) -> Dict[str, str]:
    """Flatten an organization into the ROR CSV columns."""
    labels = [
        f"{n.lang}: {n.value}" if n.lang else n.value
        for n in org.names_of_type(LABEL)
        if ROR_DISPLAY not in n.types
    ]
    row = {
        "id": org.id,
        "name": org.display_name,
        "types": "; ".join(dict.fromkeys(org.types)),
        "status": org.status,
        "links": org.website,
        "aliases": "; ".join(org.aliases),
        "labels": "; ".join(labels),
        "acronyms": "; ".join(a for a in org.acronyms if a),
        "wikipedia_url": org.wikipedia_url,
        "established": str(org.established) if org.established else "",
    }
    if org.locations:
        location = org.locations[0]
        details = location.geonames_details
        row.update(
            {
                "addresses[0].lat": _format_float(details.lat),
                "addresses[0].lng": _format_float(details.lng),
                "addresses[0].geonames_city.name": details.name,
                "addresses[0].geonames_city.id": str(location.geonames_id or ""),
                "addresses[0].geonames_city.geonames_admin1.name": details.country_subdivision_name,
                "addresses[0].geonames_city.geonames_admin1.code": details.country_subdivision_code,
                "country.country_code": details.country_code,
                "country.country_name": details.country_name,
            }
        )
    for column, id_type in CSV_EXTERNAL_IDS.items():
        external_id = org.external_id(id_type)
        if external_id is not None:
            row[f"external_ids.{column}.preferred"] = external_id.preferred or ""
            row[f"external_ids.{column}.all"] = ";".join(external_id.all)

    parts = []
    for rel_type, label in RELATIONSHIP_LABELS.items():
        ids = [r.id for r in org.relationships if r.type == rel_type]
        if ids:
            parts.append(f"{label}: {', '.join(ids)}")
    row["relationships"] = "; ".join(parts)
    return {field: row.get(field, "") for field in CSV_FIELDS}


def _split(value: Optional[str], separator: str = ";") -> List[str]:
    return [v.strip() for v in (value or "").split(separator) if v.strip()]


def from_csv_row(row: Dict[str, str]) -> ROR:
    """Rebuild an organization from a ROR CSV row (lossy)."""
    names: List[Dict[str, Any]] = []
    display = row.get("name") or ""
    if display:
        names.append({"value": display, "types": [ROR_DISPLAY]})
    for label in _split(row.get("labels")):
        lang, _, value = label.partition(": ")
        if not value:
            lang, value = "", label
        names.append({"value": value, "types": [LABEL], "lang": lang or None})
    names.extend({"value": v, "types": [ALIAS]} for v in _split(row.get("aliases")))
    names.extend({"value": v, "types": [ACRONYM]} for v in _split(row.get("acronyms")))

    links = []
    if row.get("links"):
        links.append({"type": "website", "value": row["links"]})
    if row.get("wikipedia_url"):
        links.append({"type": "wikipedia", "value": row["wikipedia_url"]})

    external_ids = []
    for column, id_type in CSV_EXTERNAL_IDS.items():
        all_ids = _split(row.get(f"external_ids.{column}.all"))
        preferred = row.get(f"external_ids.{column}.preferred") or None
        if all_ids or preferred:
            external_ids.append({"type": id_type, "all": all_ids, "preferred": preferred})

    locations = []
    if row.get("country.country_code"):
        locations.append(
            {
                "geonames_id": int(row["addresses[0].geonames_city.id"])
                if row.get("addresses[0].geonames_city.id")
                else None,
                "geonames_details": {
                    "country_code": row.get("country.country_code", ""),
                    "country_name": row.get("country.country_name", ""),
                    "country_subdivision_name": row.get(
                        "addresses[0].geonames_city.geonames_admin1.name", ""
                    ),
                    "country_subdivision_code": row.get(
                        "addresses[0].geonames_city.geonames_admin1.code", ""
                    ),
                    "lat": float(row["addresses[0].lat"]) if row.get("addresses[0].lat") else None,
                    "lng": float(row["addresses[0].lng"]) if row.get("addresses[0].lng") else None,
                    "name": row.get("addresses[0].geonames_city.name", ""),
                },
            }
        )

    relationships = []
    labels = {v: k for k, v in RELATIONSHIP_LABELS.items()}
    for part in _split(row.get("relationships")):
        label, _, ids = part.partition(": ")
        for rel_id in _split(ids, ","):
            relationships.append({"type": labels.get(label, "related"), "id": rel_id})

    return ROR.model_validate(
        {
            "id": row.get("id", ""),
            "names": names,
            "types": _split(row.get("types")),
            "status": row.get("status") or "active",
            "links": links,
            "established": int(row["established"]) if row.get("established") else None,
            "external_ids": external_ids,
            "locations": locations,
            "relationships": relationships,
        }
    )


# ============================================================================
# Writers
# ============================================================================


def write(org: ROR) -> bytes:
    return dump_json(org.to_dict())


def encode_avro(catalog: Catalog) -> bytes:
    buffer = io.BytesIO()
    fastavro.writer(buffer, avro_schema(), [org.to_avro() for org in catalog.values()])
    return buffer.getvalue()


def encode_csv(catalog: Catalog) -> bytes:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_FIELDS, lineterminator="\n")
    writer.writeheader()
    for org in catalog.values():
        writer.writerow(to_csv_row(org))
    return buffer.getvalue().encode("utf-8")


def write_all(catalog: Catalog, extension: str = ".json") -> bytes:
    """Serialize a catalog as .avro, .yaml, .json, .jsonl or .csv.

    Raises:
        InvalidExtensionError: unsupported extension
    """
    if extension == ".avro":
        return encode_avro(catalog)
    if extension == ".csv":
        return encode_csv(catalog)
    items = [org.to_dict() for org in catalog.values()]
    if extension == ".yaml":
        return dump_yaml(items)
    if extension == ".json":
        return dump_json(items)
    if extension == ".jsonl":
        return dump_jsonl(items)
    raise InvalidExtensionError(
        f"Unsupported extension {extension} for ROR, expected one of {', '.join(CATALOG_EXTENSIONS)}"
    )


def write_invenio_rdm(org: ROR) -> bytes:
    return dump_yaml(to_invenio_rdm(org).to_dict())


def write_all_invenio_rdm(catalog: Catalog, extension: str = ".yaml") -> bytes:
    """Serialize a catalog as InvenioRDM affiliations vocabulary (.yaml or .json).

    Raises:
        InvalidExtensionError: unsupported extension
    """
    items = [to_invenio_rdm(org).to_dict() for org in catalog.values()]
    if extension == ".yaml":
        return dump_yaml(items)
    if extension == ".json":
        return dump_json(items)
    raise InvalidExtensionError(
        f"Unsupported extension {extension} for InvenioRDM, expected one of "
        f"{', '.join(INVENIORDM_EXTENSIONS)}"
    )


def filter_catalog(
    catalog: Catalog,
    type: str = "",
    country: str = "",
    date_updated: str = "",
    file: str = "",
    number: int = 0,
    page: int = 1,
) -> Catalog:
    """Filter a catalog by type, country and modification date, then page it.

    ``funders.yaml`` keeps funders only and drops their acronyms;
    ``affiliations_ror.yaml`` drops locations. The result is sorted by id.

    Raises:
        ValueError: date_updated is not YYYY-MM-DD
    """
    if date_updated:
        try:
            datetime.strptime(date_updated, "%Y-%m-%d")
        except ValueError as e:
            raise ValueError(f"Invalid date {date_updated}, expected YYYY-MM-DD") from e
    if file == FUNDERS_FILE:
        type = "funder"
    country = country.upper()

    filtered = []
    for org_id in sorted(catalog):
        org = catalog[org_id]
        if type and type not in org.types:
            continue
        if country and not any(
            loc.geonames_details.country_code == country for loc in org.locations
        ):
            continue
        if date_updated and org.last_modified < date_updated:
            continue
        if file == FUNDERS_FILE:
            org = org.model_copy(
                update={"names": [n for n in org.names if ACRONYM not in n.types]}
            )
        elif file == AFFILIATIONS_FILE:
            org = org.model_copy(update={"locations": []})
        filtered.append(org)

    if number > 0:
        start = (max(page, 1) - 1) * number
        filtered = filtered[start : start + number]
    logger.debug("Filtered ROR catalog", total=len(catalog), filtered=len(filtered))
    return {org.id: org for org in filtered}
