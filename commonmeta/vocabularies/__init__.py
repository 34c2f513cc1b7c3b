"""Embedded vocabularies: SPDX licenses, languages, OECD fields of science,
countries and cities, and InvenioRDM awards. Each table is loaded once per
process on first use and is read-only afterwards."""
