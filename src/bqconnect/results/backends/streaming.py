"""Streaming backend: ordered read streams over result partitions."""

import threading
from typing import TYPE_CHECKING, Any, List, Optional

from bqconnect.common.exceptions import ErrorCode, backend_read_error
from bqconnect.constants import BackendKind, DEFAULT_MAX_STREAM_PARTITIONS
from bqconnect.logging import get_logger
from bqconnect.results.backends.base import Backend

if TYPE_CHECKING:
    from bqconnect.protocols.services import PartitionSpec, StreamingReadService

logger = get_logger(__name__)


class StreamingBackend(Backend):
    """Reads partitions one at a time, in the order the service plans them.

    Only one stream is open at any moment, so rows reach the buffer in
    partition order and a single writer fills it. With ``strict_ordering``
    the service is asked for exactly one partition, which keeps the
    result's global row order.

    The job's resident first page is not used: the streams cover the
    whole result set from the first row.
    """

    kind = BackendKind.STREAMING

    def __init__(
        self,
        job_id: str,
        streaming_service: "StreamingReadService",
        cancel_event: Optional[threading.Event] = None,
        max_partitions: int = DEFAULT_MAX_STREAM_PARTITIONS,
        strict_ordering: bool = False,
    ):
        super().__init__(job_id, cancel_event)
        self.streaming_service = streaming_service
        self.max_partitions = 1 if strict_ordering else max(max_partitions, 1)
        self.strict_ordering = strict_ordering
        self._partitions: Optional[List["PartitionSpec"]] = None
        self._partition_index = 0
        self._handle: Any = None
        self._handle_lock = threading.Lock()

    @property
    def has_open_stream(self) -> bool:
        return self._handle is not None

    @property
    def partitions(self) -> List["PartitionSpec"]:
        return list(self._partitions or [])

    def _fetch(self, max_rows: int) -> List[Any]:
        from bqconnect.protocols.services import END_OF_STREAM

        try:
            if self._partitions is None:
                self._plan()
                return []

            if self._handle is None:
                partition = self._partitions[self._partition_index]
                handle = self.streaming_service.open_stream(self.job_id, partition)
                with self._handle_lock:
                    if not self._closed and not self._cancel.is_set():
                        self._handle, handle = handle, None
                if handle is not None:
                    # Closed while the stream was opening.
                    self._close_handle(handle)
                    return []
                logger.debug(
                    "Stream opened",
                    extra=self._log_payload(**{"stream.partition": partition.name}),
                )

            handle = self._handle
            if handle is None:
                return []
            chunk = self.streaming_service.read_chunk(handle)
            if self._closed:
                return []
        except Exception as exc:
            self._release()
            raise backend_read_error(
                "Stream read failed",
                exc,
                error_code=ErrorCode.STREAM_READ_ERROR,
                **{"job.id": self.job_id, "stream.partition_index": self._partition_index},
            ) from exc

        if chunk is END_OF_STREAM:
            self._release()
            self._partition_index += 1
            if self._partition_index >= len(self._partitions):
                self._remote_done = True
            return []

        return list(chunk)

    def _plan(self) -> None:
        partitions = list(self.streaming_service.plan_partitions(self.job_id, self.max_partitions))
        if self.strict_ordering and len(partitions) > 1:
            logger.warning(
                "Streaming service returned several partitions under strict ordering; reading them in sequence",
                extra=self._log_payload(**{"stream.partitions": len(partitions)}),
            )
        self._partitions = partitions
        if not partitions:
            self._remote_done = True
        logger.info(
            "Stream partitions planned",
            extra=self._log_payload(**{"stream.partitions": len(partitions)}),
        )

    def _release(self) -> None:
        with self._handle_lock:
            handle, self._handle = self._handle, None
        if handle is not None:
            self._close_handle(handle)

    def _close_handle(self, handle: Any) -> None:
        try:
            self.streaming_service.close_stream(handle)
        except Exception as exc:
            logger.warning(
                "Failed to close stream",
                extra=self._log_payload(error=str(exc)),
                exc_info=True,
            )
