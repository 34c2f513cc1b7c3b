"""
Bounded fan-out for list and registration operations.

Architecture Context
--------------------
List reads that fetch one document per item and registration runs that
send one request per record are the only places that run in parallel:

    crossrefxml.fetch_all ─┐
    schemaorg.fetch_all   ─┤
    datacite.upsert_all   ─┼──►  run_ordered(func, items)  ──►  HttpClient
    inveniordm.upsert_all ─┤          ThreadPoolExecutor          │
    crossref.upsert_all   ─┘                                      ▼
                                                      TokenBucket per origin

Workers share the process-wide limiter of each origin (core.http), so the
number of workers bounds concurrency but never the request rate.

Design Decisions
----------------
1. **Input order**: results come back in the order of the items, whatever
   order the workers finish in.
2. **Errors stay with the caller**: ``func`` is expected to turn per-item
   failures into a result (an envelope, a skipped record). Anything it
   raises cancels the pending items and is re-raised.
3. **One worker is sequential**: ``workers=1`` runs in the calling thread.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from commonmeta.core.config import get_settings
from commonmeta.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def worker_count(workers: Optional[int] = None, items: int = 0) -> int:
    """Workers to use for ``items`` tasks: the setting, capped by the task count."""
    count = workers or get_settings().workers
    if items:
        count = min(count, items)
    return max(1, count)


def _cancel_futures(futures: Dict[Any, int]) -> None:
    for future in futures:
        future.cancel()


def run_ordered(
    func: Callable[[T], R],
    items: Iterable[T],
    workers: Optional[int] = None,
) -> List[R]:
    """
    Call ``func`` for every item on a bounded thread pool.

    Args:
        func: Called once per item
        items: Inputs, consumed eagerly
        workers: Pool size; defaults to Settings.workers

    Returns:
        One result per item, in input order
    """
    items = list(items)
    count = worker_count(workers, len(items))
    if count == 1:
        return [func(item) for item in items]

    results: List[Any] = [None] * len(items)
    logger.debug("Starting workers", workers=count, items=len(items))
    with ThreadPoolExecutor(max_workers=count) as executor:
        futures = {executor.submit(func, item): index for index, item in enumerate(items)}
        for future in as_completed(futures):
            try:
                results[futures[future]] = future.result()
            except Exception:
                _cancel_futures(futures)
                raise
    return results
