"""Identifier layer: DOI, ORCID, ROR, ISSN, ISBN, URL, UUID and OpenAlex ids,
Crockford base32, dates, names and text helpers."""
