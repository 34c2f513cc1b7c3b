"""Registration clients: deposit records with Crossref, DataCite and InvenioRDM.

Every client returns one ``APIResponse`` envelope per record.
"""

from commonmeta.registration.response import APIResponse

__all__ = ["APIResponse"]
