"""
Pagination helper shared by zone and record listing.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple, Type, TypeVar

from zonekeeper.provider.errors import PaginationError, ProviderAPIError

T = TypeVar("T")

Cursor = Optional[Any]
PageFetcher = Callable[[Cursor], Tuple[List[T], Cursor]]

logger = logging.getLogger("zonekeeper.provider.pagination")


def collect_pages(
    fetch: PageFetcher,
    error_cls: Type[PaginationError] = PaginationError,
    what: str = "items",
) -> List[T]:
    """
    Walk a cursor-based collection until a page carries no next cursor.

    Args:
        fetch: Callable taking a cursor (None for the first page) and returning
            the page items and the next cursor, or None on the last page
        error_cls: Error raised when a page cannot be fetched
        what: Name of the collection, used in messages

    Returns:
        List: Items of every page, in response order

    Raises:
        PaginationError: A page failed; ``partial`` holds the items collected so far
    """
    items: List[T] = []
    cursor: Cursor = None
    seen = set()
    pages = 0

    while True:
        try:
            page, next_cursor = fetch(cursor)
        except ProviderAPIError as e:
            raise error_cls(
                f"failed to list {what} (page {pages + 1}): {e}", partial=items
            ) from e

        pages += 1
        items.extend(page)

        if next_cursor is None:
            break
        # A cursor that comes back twice would page forever
        if next_cursor in seen:
            raise error_cls(
                f"failed to list {what}: provider repeated cursor {next_cursor!r}",
                partial=items,
            )
        seen.add(next_cursor)
        cursor = next_cursor

    logger.debug(f"Listed {len(items)} {what} in {pages} page(s)")
    return items
