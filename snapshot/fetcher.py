"""
Cursor-paginated record retrieval for one table at a time
"""

from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from core.config import settings
from core.exceptions import SnapshotException
from schemas.snapshot import TableFetchResult
from snapshot.client import AirtableClient
import logging

logger = logging.getLogger(__name__)


class PaginatedFetcher:
    """
    Fetch every record of a table by following the ``offset`` cursor.

    Requests go through the client's shared throttle. A failing page ends
    the fetch for that table only; the pages already retrieved are kept and
    the failure is reported on the result instead of being raised.
    """

    def __init__(
        self,
        client: AirtableClient,
        base_id: str,
        page_size: Optional[int] = None
    ):
        self.client = client
        self.base_id = base_id
        self.page_size = page_size or settings.AIRTABLE_PAGE_SIZE

    async def iter_pages(self, table_id: str) -> AsyncIterator[List[Dict[str, Any]]]:
        """Yield record pages until the API stops returning a cursor"""
        offset = None
        while True:
            page = await self.client.list_records(
                self.base_id, table_id, offset=offset, page_size=self.page_size
            )
            yield page.records
            offset = page.offset
            if not offset:
                break

    async def fetch_all(self, table_id: str) -> TableFetchResult:
        records: List[Dict[str, Any]] = []
        pages = 0

        try:
            async for page_records in self.iter_pages(table_id):
                pages += 1
                records.extend(page_records)
                logger.info(
                    f"Fetched {len(page_records)} records for {table_id}. Total: {len(records)}"
                )

        except (SnapshotException, httpx.HTTPError, ValueError) as e:
            logger.error(
                f"Failed to fetch records for table {table_id} after {pages} pages: {str(e)}",
                extra={"error_context": {
                    "event": "table_fetch_failed",
                    "table_id": table_id,
                    "pages_fetched": pages,
                    "records_fetched": len(records),
                }}
            )
            return TableFetchResult(
                table_id=table_id,
                records=records,
                pages_fetched=pages,
                error=getattr(e, "message", None) or str(e)
            )

        logger.info(f"Finished fetching. Total {len(records)} records for table {table_id}")
        return TableFetchResult(table_id=table_id, records=records, pages_fetched=pages)
