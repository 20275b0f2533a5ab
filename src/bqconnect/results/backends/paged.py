"""Paged backend: successive page-fetch requests against the job result."""

import threading
from typing import TYPE_CHECKING, Any, List, Optional

from bqconnect.common.exceptions import ErrorCode, backend_read_error
from bqconnect.constants import BackendKind
from bqconnect.logging import get_logger
from bqconnect.results.backends.base import Backend
from bqconnect.results.metadata import JobMetadata

if TYPE_CHECKING:
    from bqconnect.protocols.services import PageFetchService

logger = get_logger(__name__)


class PagedBackend(Backend):
    """Serves the resident first page, then fetches pages by token.

    Exhausted once the service returns no next-page token and every held
    row has been delivered. A job with no resident rows and no token but
    a non-zero (or unknown) row count is read from the start.
    """

    kind = BackendKind.PAGED

    def __init__(
        self,
        metadata: JobMetadata,
        page_service: "PageFetchService",
        cancel_event: Optional[threading.Event] = None,
    ):
        super().__init__(metadata.job_id, cancel_event)
        self.page_service = page_service
        self.pages_fetched = 0
        self._page_token: Optional[str] = metadata.first_page_token
        self._pending = list(metadata.first_page)

        nothing_resident = not metadata.first_page and metadata.first_page_token is None
        if metadata.dry_run or metadata.total_rows == 0:
            self._remote_done = True
        elif not nothing_resident:
            self._remote_done = metadata.first_page_token is None

        # Nothing resident yet: the first fetch starts at the beginning.
        self._fetch_from_start = not self._remote_done and nothing_resident

    def _fetch(self, max_rows: int) -> List[Any]:
        token = self._page_token
        if token is None and not self._fetch_from_start:
            self._remote_done = True
            return []

        try:
            page = self.page_service.fetch_page(self.job_id, token, max_rows)
        except Exception as exc:
            raise backend_read_error(
                "Page fetch failed",
                exc,
                error_code=ErrorCode.PAGE_FETCH_ERROR,
                **{"job.id": self.job_id, "page.index": self.pages_fetched},
            ) from exc

        self._fetch_from_start = False
        self.pages_fetched += 1
        self._page_token = page.next_page_token
        if page.next_page_token is None:
            self._remote_done = True

        logger.debug(
            "Page fetched",
            extra=self._log_payload(
                **{"page.index": self.pages_fetched, "page.rows": len(page.rows)},
                has_next=page.next_page_token is not None,
            ),
        )
        return list(page.rows)
