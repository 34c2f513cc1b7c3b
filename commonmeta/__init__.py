"""Commonmeta - scholarly metadata interchange.

Reads bibliographic records in Crossref, DataCite, InvenioRDM, CSL-JSON,
Schema.org, JSON Feed and OpenAlex formats, normalizes them into the
Commonmeta model, and writes them back out in any supported format.
"""

__version__ = "0.9.0"
__all__ = ["__version__"]
