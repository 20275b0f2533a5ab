"""Adaptive forward-only cursor over a query job's result rows.

The cursor decides once, at creation, whether rows come from the paged
backend or the streaming backend, then serves them through a bounded
read-ahead buffer. Callers never see which backend is active except via
``backend_kind``.

Example:
    >>> with connection.execute_select("SELECT name FROM people") as cursor:
    ...     for row in cursor:
    ...         print(row)
"""

import threading
import time
from typing import TYPE_CHECKING, Any, Callable, Iterator, List, Optional

import pandas as pd

from bqconnect.common.exceptions import BQConnectError, CursorStateError, backend_read_error
from bqconnect.config.read_client import ReadClientConfiguration
from bqconnect.constants import (
    BackendKind,
    CursorState,
    DEFAULT_MAX_STREAM_PARTITIONS,
    PLATFORM_NAME,
)
from bqconnect.logging import get_logger
from bqconnect.results.backends import Backend, PagedBackend, StreamingBackend
from bqconnect.results.buffer import ReadAheadBuffer
from bqconnect.results.metadata import JobMetadata, SchemaField

if TYPE_CHECKING:
    from bqconnect.protocols.services import PageFetchService, StreamingReadService

logger = get_logger(__name__)


def select_backend(metadata: JobMetadata, configuration: ReadClientConfiguration) -> BackendKind:
    """Pick the backend for a job from its size estimates.

    1. Below ``minimum_table_size``: paged.
    2. Empty first page: paged.
    3. ``total / first_page >= total_to_first_page_size_ratio``: streaming
       (equality qualifies), otherwise paged.

    Dry runs and jobs without a size estimate are always paged.
    """
    total = metadata.total_estimated_size
    if metadata.dry_run or total is None:
        return BackendKind.PAGED
    if total < configuration.minimum_table_size:
        return BackendKind.PAGED

    first_page = metadata.first_page_size
    if first_page == 0:
        return BackendKind.PAGED

    # Integer form of total / first_page >= ratio.
    if total >= configuration.total_to_first_page_size_ratio * first_page:
        return BackendKind.STREAMING
    return BackendKind.PAGED


class ResultCursor:
    """Forward-only row cursor backed by a paged or streaming backend.

    State machine::

        CREATED -> ACTIVE -> EXHAUSTED
        CREATED/ACTIVE -> CLOSED
        ACTIVE -> FAILED

    ``next()`` in a terminal state raises ``CursorStateError`` without any
    I/O; after a failure the error's ``cause`` is the original read error.
    Traversal is not synchronized; one caller must drive a cursor at a time.
    ``close()`` may be called from any thread.

    Attributes:
        metadata: Job metadata the cursor was built from
        configuration: Thresholds used for backend selection and buffering
        backend_kind: Backend chosen at creation
        current_row: Row positioned by the last ``advance()`` call
    """

    def __init__(
        self,
        metadata: JobMetadata,
        configuration: ReadClientConfiguration,
        page_service: "PageFetchService",
        streaming_service: Optional["StreamingReadService"] = None,
        *,
        max_results: Optional[int] = None,
        strict_ordering: bool = False,
        max_stream_partitions: int = DEFAULT_MAX_STREAM_PARTITIONS,
        on_close: Optional[Callable[["ResultCursor"], None]] = None,
    ):
        self.metadata = metadata
        self.configuration = configuration
        self.max_results = max_results
        self.current_row: Any = None

        self._lock = threading.RLock()
        self._cancel = threading.Event()
        self._state = CursorState.CREATED
        self._failure: Optional[BaseException] = None
        self._row_number = 0
        self._on_close = on_close
        self._created_at = time.time()
        self._buffer = ReadAheadBuffer(configuration.buffer_size)

        selected = select_backend(metadata, configuration)
        if selected is BackendKind.STREAMING and streaming_service is None:
            logger.debug(
                "Streaming selected but no streaming service configured; using paged reads",
                extra=self._log_payload(),
            )
            selected = BackendKind.PAGED
        self.backend_kind = selected

        if selected is BackendKind.STREAMING:
            self._backend: Backend = StreamingBackend(
                metadata.job_id,
                streaming_service,
                cancel_event=self._cancel,
                max_partitions=max_stream_partitions,
                strict_ordering=strict_ordering,
            )
        else:
            self._backend = PagedBackend(metadata, page_service, cancel_event=self._cancel)

        logger.info(
            "Result cursor created",
            extra=self._log_payload(
                **{
                    "result.total_size": metadata.total_estimated_size,
                    "result.size_unit": metadata.size_unit,
                    "result.first_page_size": metadata.first_page_size,
                    "config.ratio": configuration.total_to_first_page_size_ratio,
                    "config.minimum_table_size": configuration.minimum_table_size,
                    "config.buffer_size": configuration.buffer_size,
                }
            ),
        )

    # -- properties ---------------------------------------------------------

    @property
    def state(self) -> CursorState:
        return self._state

    @property
    def job_id(self) -> str:
        return self.metadata.job_id

    @property
    def schema(self) -> List[SchemaField]:
        return list(self.metadata.schema_fields)

    @property
    def row_number(self) -> int:
        """Number of rows delivered so far."""
        return self._row_number

    @property
    def buffered_rows(self) -> int:
        return len(self._buffer)

    @property
    def buffer(self) -> ReadAheadBuffer:
        return self._buffer

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    # -- traversal ----------------------------------------------------------

    def next(self) -> Any:
        """Return the next row, or ``None`` once the result is exhausted.

        Raises:
            CursorStateError: If the cursor is exhausted, closed or failed
            BackendReadError: If fetching rows fails; the cursor is then FAILED
        """
        self._check_readable()

        if self._cap_reached():
            self._finish()
            return None

        if not len(self._buffer):
            self._refill()
            if not len(self._buffer):
                self._finish()
                return None

        row = self._buffer.pop()
        self._row_number += 1
        return row

    def advance(self) -> bool:
        """Move to the next row and expose it as ``current_row``.

        Returns:
            False once the result is exhausted
        """
        row = self.next()
        self.current_row = row
        return row is not None

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Any:
        if self._state is CursorState.EXHAUSTED:
            raise StopIteration
        row = self.next()
        if row is None:
            raise StopIteration
        return row

    def fetchmany(self, size: int) -> List[Any]:
        """Return up to ``size`` rows; an empty list once exhausted."""
        rows: List[Any] = []
        while len(rows) < size:
            try:
                rows.append(next(self))
            except StopIteration:
                break
        return rows

    def fetchall(self) -> List[Any]:
        return list(self)

    def to_dataframe(self) -> pd.DataFrame:
        """Drain the remaining rows into a DataFrame with the schema's column names."""
        start_time = time.time()
        rows = self.fetchall()
        columns = self.metadata.column_names or None
        df = pd.DataFrame(rows, columns=columns) if rows else pd.DataFrame(columns=columns)
        logger.info(
            "DataFrame fetched",
            extra=self._log_payload(
                rows=len(df), **{"duration.seconds": f"{time.time() - start_time:.6f}"}
            ),
        )
        return df

    # -- lifecycle ----------------------------------------------------------

    def close(self) -> None:
        """Release the backend and buffer. No-op in a terminal state."""
        with self._lock:
            if self._state.is_terminal:
                return
            self._cancel.set()
            self._state = CursorState.CLOSED
            self._release()
        logger.info("Result cursor closed", extra=self._log_payload(rows=self._row_number))

    def __enter__(self) -> "ResultCursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # -- internals ----------------------------------------------------------

    def _check_readable(self) -> None:
        with self._lock:
            state = self._state
            if not state.is_terminal:
                return
            cause = self._failure if state is CursorState.FAILED else None
        raise CursorStateError(
            f"Cursor for job {self.job_id} is {state.value}",
            details={"job.id": self.job_id, "cursor.state": state.value},
            cause=cause,
        )

    def _cap_reached(self) -> bool:
        return self.max_results is not None and self._row_number >= self.max_results

    def _fill_capacity(self) -> int:
        capacity = self._buffer.remaining_capacity
        if self.max_results is not None:
            capacity = min(capacity, self.max_results - self._row_number - len(self._buffer))
        return capacity

    def _refill(self) -> None:
        with self._lock:
            if self._state is CursorState.CREATED:
                self._state = CursorState.ACTIVE

        try:
            self._backend.fill(self._buffer, self._fill_capacity())
        except Exception as exc:
            if self._cancel.is_set():
                raise CursorStateError(
                    f"Cursor for job {self.job_id} was closed during a read",
                    details={"job.id": self.job_id},
                    cause=exc,
                ) from exc
            error = exc if isinstance(exc, BQConnectError) else backend_read_error("Backend fill failed", exc)
            self._fail(error)
            if error is exc:
                raise
            raise error from exc

        if self._cancel.is_set():
            raise CursorStateError(
                f"Cursor for job {self.job_id} was closed during a read",
                details={"job.id": self.job_id},
            )

    def _finish(self) -> None:
        with self._lock:
            if self._state.is_terminal:
                return
            self._state = CursorState.EXHAUSTED
            self._release()
        logger.info(
            "Result cursor exhausted",
            extra=self._log_payload(
                rows=self._row_number,
                capped=self._cap_reached(),
                **{"duration.seconds": f"{time.time() - self._created_at:.6f}"},
            ),
        )

    def _fail(self, error: BaseException) -> None:
        with self._lock:
            if self._state.is_terminal:
                return
            self._state = CursorState.FAILED
            self._failure = error
            self._cancel.set()
            self._release()

    def _release(self) -> None:
        self._buffer.close()
        self._backend.close()
        if self._on_close is not None:
            callback, self._on_close = self._on_close, None
            callback(self)

    def _log_payload(self, **extra: Any) -> dict:
        payload = {
            "db.platform": PLATFORM_NAME,
            "job.id": self.metadata.job_id,
            "cursor.backend": getattr(self, "backend_kind", None),
            "cursor.state": self._state.value,
        }
        payload.update(extra)
        return payload
