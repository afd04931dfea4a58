"""
Apply one compiled plan to many pages in parallel.

Each page gets its own document, so `remove_selection` never touches state
shared between workers. The plan itself is read-only and shared.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional

from .finder import Finder
from .settings import get_settings
from .value import Value

logger = logging.getLogger(__name__)


def _parse_page(finder: Finder, page: str, parser: Optional[str], position: int) -> Value:
    """
    Parse a single page (runs in thread pool).
    """
    try:
        return finder.parse(page, parser)
    except Exception as e:
        logger.error(f"[batch] Error parsing page {position} with plan {finder.name!r}: {e}", exc_info=True)
        return Value.null()


def parse_many(
    finder: Finder,
    pages: Iterable[str],
    max_workers: Optional[int] = None,
    parser: Optional[str] = None,
) -> List[Value]:
    """
    Parse pages concurrently with one shared plan.

    Args:
        finder: compiled plan
        pages: HTML pages
        max_workers: pool size, defaults to DOMFINDER_MAX_WORKERS
        parser: BeautifulSoup tree builder for every page

    Returns:
        One result per page, in input order. A page that fails yields Null.
    """
    pages = list(pages)
    if not pages:
        return []

    workers = max_workers or get_settings().max_workers
    workers = min(workers, len(pages))

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="domfinder") as executor:
        futures = [
            executor.submit(_parse_page, finder, page, parser, position)
            for position, page in enumerate(pages)
        ]
        results = [future.result() for future in futures]

    logger.info(f"[batch] Parsed {len(results)} pages with plan {finder.name!r} ({workers} workers)")
    return results
