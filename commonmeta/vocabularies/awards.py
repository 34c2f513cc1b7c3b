"""InvenioRDM awards vocabulary."""

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from commonmeta.core.fileio import decode_yaml, read_file

DATA_FILE = Path(__file__).parent / "data" / "awards.yaml"


@lru_cache(maxsize=1)
def load_awards() -> Tuple[Dict[str, Any], ...]:
    content = decode_yaml(read_file(DATA_FILE), str(DATA_FILE)) or []
    return tuple(content)


def find_award(number: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the vocabulary entry whose id equals the award number."""
    if not number:
        return None
    for award in load_awards():
        if str(award.get("id")) == number:
            return award
    return None
