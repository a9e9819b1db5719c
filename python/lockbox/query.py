"""Scan result and pagination."""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from lockbox.client import DatabaseClient


class ScanResult:
    """Result of a table scan with automatic pagination.

    Rows come back in primary key order. Iterate over results and use
    `next_offset` to resume a scan later.

    Example:
        >>> results = client.scan("users", page_size=100)
        >>> for item in results:
        ...     print(item["name"])
        >>>
        >>> # Resume from where an earlier scan stopped
        >>> if results.next_offset is not None:
        ...     more = client.scan("users", page_size=100, offset=results.next_offset)
    """

    def __init__(
        self,
        client: "DatabaseClient",
        table: str,
        attributes: Optional[list[str]] = None,
        page_size: Optional[int] = None,
        offset: int = 0,
    ):
        self._client = client
        self._table = table
        self._attributes = attributes
        self._page_size = page_size
        self._offset = offset

        self._current_page: list[dict[str, Any]] = []
        self._page_index = 0
        self._exhausted = False

    @property
    def next_offset(self) -> Optional[int]:
        """Offset of the first row not yet fetched.

        Returns None once all rows have been fetched.
        """
        if self._exhausted:
            return None
        return self._offset

    def __iter__(self) -> "ScanResult":
        return self

    def __next__(self) -> dict[str, Any]:
        # If we have items in current page, return next one
        if self._page_index < len(self._current_page):
            item = self._current_page[self._page_index]
            self._page_index += 1
            return item

        # If exhausted, stop
        if self._exhausted:
            raise StopIteration

        # Fetch next page
        self._fetch_next_page()

        # If no items after fetch, stop
        if not self._current_page:
            raise StopIteration

        item = self._current_page[self._page_index]
        self._page_index += 1
        return item

    def _fetch_next_page(self) -> None:
        """Fetch the next page of rows."""
        items, _ = self._client.scan_page(
            self._table,
            attributes=self._attributes,
            limit=self._page_size,
            offset=self._offset,
        )

        self._current_page = items
        self._page_index = 0
        self._offset += len(items)

        # A short page (or an unpaged scan) is the final page
        if self._page_size is None or len(items) < self._page_size:
            self._exhausted = True
