from abc import ABC, abstractmethod
import threading
import time
from typing import Any, Dict, List, Optional

from bqconnect.constants import BackendKind, PLATFORM_NAME
from bqconnect.logging import get_logger
from bqconnect.results.buffer import ReadAheadBuffer
from bqconnect.utils.decorators import traced

logger = get_logger(__name__)


class Backend(ABC):
    """Row-producing strategy behind a result cursor.

    A backend pulls rows from a remote result set into the cursor's
    read-ahead buffer. Each ``fill`` call appends at most ``capacity`` rows;
    anything the remote side returned beyond that is held back in
    ``_pending`` and delivered by later fills.

    Subclasses implement:
        - _fetch(): Pull the next batch of rows from the remote side
        - _release(): Free remote resources (open streams)

    Cancellation:
        The cursor passes a ``threading.Event``. Once it is set, ``fill``
        stops at the next fetch boundary and appends nothing.
    """

    kind: BackendKind

    def __init__(self, job_id: str, cancel_event: Optional[threading.Event] = None):
        self.job_id = job_id
        self._cancel = cancel_event or threading.Event()
        self._pending: List[Any] = []
        self._remote_done = False
        self._closed = False
        self.fill_count = 0

    @property
    def exhausted(self) -> bool:
        """True once the remote side is drained and nothing is held back."""
        return self._remote_done and not self._pending

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def _stopped(self) -> bool:
        return self._closed or self._cancel.is_set()

    @traced(
        span_name="bqconnect.results.backend.fill",
        attribute_getter=lambda self, buffer, capacity: self._log_payload(capacity=capacity),
    )
    def fill(self, buffer: ReadAheadBuffer, capacity: int) -> bool:
        """Append up to ``capacity`` rows to ``buffer``.

        Fetches from the remote side until at least one row can be
        delivered, the remote side is drained, or the cursor is closed.

        Args:
            buffer: Destination buffer
            capacity: Maximum rows to append in this call

        Returns:
            True when the backend is exhausted after this call

        Raises:
            BackendReadError: If a page or stream read fails
        """
        self.fill_count += 1
        start_time = time.time()
        capacity = min(capacity, buffer.remaining_capacity)
        if capacity <= 0:
            return self.exhausted

        while not self._pending and not self._remote_done and not self._stopped:
            self._pending.extend(self._fetch(capacity))

        if self._stopped:
            return self.exhausted

        batch, self._pending = self._pending[:capacity], self._pending[capacity:]
        appended = buffer.extend(batch)

        logger.debug(
            "Backend fill completed",
            extra=self._log_payload(
                rows=appended,
                held_back=len(self._pending),
                exhausted=self.exhausted,
                **{"duration.seconds": f"{time.time() - start_time:.6f}"},
            ),
        )
        return self.exhausted

    def close(self) -> None:
        """Release remote resources. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._pending = []
        self._release()

    @abstractmethod
    def _fetch(self, max_rows: int) -> List[Any]:
        """Return the next rows from the remote side.

        Must set ``self._remote_done`` once nothing is left. May return an
        empty list without finishing (e.g. an empty page or stream switch).
        """
        ...

    def _release(self) -> None:
        pass

    def _log_payload(self, **extra: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "db.platform": PLATFORM_NAME,
            "job.id": self.job_id,
            "cursor.backend": self.kind.value,
            "backend.fill": self.fill_count,
        }
        payload.update(extra)
        return payload
