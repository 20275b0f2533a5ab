"""Bounded FIFO read-ahead buffer shared by cursors and backends."""

import threading
from collections import deque
from typing import Any, Deque, Iterable

from bqconnect.common.exceptions import BufferOverflowError, ValidationError


class ReadAheadBuffer:
    """Bounded FIFO of rows fetched ahead of consumption.

    Backends append, the cursor pops. Appending past ``capacity`` raises
    ``BufferOverflowError``. Once closed, the buffer drops its rows and
    silently ignores further appends so an in-flight fill racing with
    ``close()`` cannot resurrect rows.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValidationError(f"Buffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._rows: Deque[Any] = deque()
        self._closed = threading.Event()
        self.high_water_mark = 0

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def remaining_capacity(self) -> int:
        return max(self.capacity - len(self._rows), 0)

    def extend(self, rows: Iterable[Any]) -> int:
        """Append rows in order; return how many were appended.

        Raises:
            BufferOverflowError: If the rows do not fit
        """
        rows = list(rows)
        if self.closed:
            return 0
        if len(rows) > self.remaining_capacity:
            raise BufferOverflowError(
                f"Cannot append {len(rows)} rows: only {self.remaining_capacity} "
                f"of {self.capacity} slots free",
                details={"capacity": self.capacity, "resident": len(self._rows)},
            )
        self._rows.extend(rows)
        self.high_water_mark = max(self.high_water_mark, len(self._rows))
        return len(rows)

    def pop(self) -> Any:
        """Remove and return the oldest row. Raises ``IndexError`` when empty."""
        return self._rows.popleft()

    def close(self) -> None:
        self._closed.set()
        self._rows.clear()
