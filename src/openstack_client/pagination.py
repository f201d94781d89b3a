"""Cursor-following pagination over GET requests.

OpenStack list APIs return a page object with an optional ``next`` field
holding the path of the following page. The helpers here follow that cursor
strictly sequentially until it is absent or empty.
"""

import logging
from enum import Enum
from typing import Any, Callable, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

from .errors import MissingAttributeError, ProtocolError

logger = logging.getLogger(__name__)

QueryParams = Optional[Mapping[str, Any]]
Fetch = Callable[[str], Any]


class PageAction(Enum):
    """Value a visit callback may return to steer the pagination loop."""

    CONTINUE = "continue"
    STOP = "stop"


Visitor = Callable[[Any], Optional[PageAction]]


def encode_query(params: QueryParams) -> str:
    """URL-encode params with names in sorted order.

    Sequence values expand into repeated keys. Identical maps always encode
    to identical strings.
    """
    if not params:
        return ""
    return urlencode(sorted(params.items()), doseq=True)


def merge_query(path: str, params: QueryParams) -> str:
    """Append encoded params to path, reusing an existing query string."""
    query = encode_query(params)
    if not query:
        return path
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{query}"


def next_path(page: Any) -> Optional[str]:
    """Return the page's ``next`` cursor, or None when pagination is done.

    Raises:
        ProtocolError: If the cursor is present but not a string
    """
    if not isinstance(page, dict):
        return None
    cursor = page.get("next")
    if not cursor:
        return None
    if not isinstance(cursor, str):
        raise ProtocolError(
            f"Expected a string 'next' cursor, got {type(cursor).__name__}"
        )
    return cursor


def result_items(page: Any, attribute: str, path: str) -> List[Any]:
    """Return the list stored under ``attribute`` in a page."""
    if not isinstance(page, dict) or attribute not in page:
        raise MissingAttributeError(attribute, path)
    items = page[attribute]
    if not isinstance(items, list):
        raise MissingAttributeError(attribute, path)
    return items


def _fetch_pages(
    fetch: Fetch, path: str, params: QueryParams
) -> Iterator[Tuple[str, Any]]:
    # The first page is always requested, even for an empty path.
    current = path
    page_number = 0

    while True:
        request_path = merge_query(current, params)
        page = fetch(request_path)
        page_number += 1
        logger.debug(f"Fetched page {page_number} from {request_path}")

        yield request_path, page

        cursor = next_path(page)
        if cursor is None:
            break
        current = cursor


def iterate_pages(fetch: Fetch, path: str, params: QueryParams = None) -> Iterator[Any]:
    """Yield decoded pages, requesting page N+1 only after page N is consumed."""
    for _, page in _fetch_pages(fetch, path, params):
        yield page


def iterate_items(
    fetch: Fetch, path: str, attribute: str, params: QueryParams = None
) -> Iterator[Any]:
    """Yield every item found under ``attribute`` across all pages."""
    for request_path, page in _fetch_pages(fetch, path, params):
        yield from result_items(page, attribute, request_path)


def visit_pages(
    fetch: Fetch, path: str, callback: Visitor, params: QueryParams = None
) -> None:
    """Call ``callback`` once per page until exhausted or it returns STOP."""
    for page in iterate_pages(fetch, path, params):
        if callback(page) is PageAction.STOP:
            return


def visit_items(
    fetch: Fetch,
    path: str,
    attribute: str,
    callback: Visitor,
    params: QueryParams = None,
) -> None:
    """Call ``callback`` once per result item until exhausted or it returns STOP."""
    for item in iterate_items(fetch, path, attribute, params):
        if callback(item) is PageAction.STOP:
            return


def collect_items(
    fetch: Fetch, path: str, attribute: str, params: QueryParams = None
) -> List[Any]:
    """Return all result items across all pages, in order."""
    return list(iterate_items(fetch, path, attribute, params))

