"""Stateful query connection: session options plus ``execute_select``.

A ``Connection`` holds every option a query is submitted with, snapshots
them into :class:`QueryOptions` on each ``execute_select`` call, and hands
the resulting job to a :class:`ResultCursor`. Changing an option affects
later queries only.

Example:
    >>> connection = Connection(submission, pages, streaming)
    >>> connection.labels = {"team": "analytics"}
    >>> connection.maximum_bytes_billed = 10 * 1024 ** 3
    >>> with connection.execute_select("SELECT * FROM sales") as cursor:
    ...     df = cursor.to_dataframe()
"""

import threading
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from opentelemetry.trace import SpanKind

from bqconnect.common.exceptions import (
    BigQueryError,
    ClientInfoError,
    ErrorCode,
    IllegalStateError,
    QueryTimeoutError,
    validation_error,
    wrap_submission_error,
)
from bqconnect.config.read_client import ReadClientConfiguration
from bqconnect.connection.types import (
    ConnectionProperty,
    DatasetId,
    QueryOptions,
    QueryParameter,
    validate_label,
)
from bqconnect.constants import PLATFORM_NAME
from bqconnect.logging import get_logger
from bqconnect.protocols.services import (
    ClientInfoService,
    PageFetchService,
    QuerySubmissionService,
    StreamingReadService,
)
from bqconnect.results.cursor import ResultCursor
from bqconnect.results.metadata import JobMetadata
from bqconnect.settings.connection import ConnectionSettings
from bqconnect.utils.decorators import call_with_timeout, traced

logger = get_logger(__name__)

PropertyLike = Union[ConnectionProperty, Tuple[str, str]]


class Connection:
    """Session that submits queries and opens adaptive result cursors.

    Connection-level settings are read when a query is submitted, so
    concurrent ``execute_select`` calls on one connection need external
    synchronization. Closing the connection closes every cursor it opened.
    Once closed, every method raises ``IllegalStateError`` (client info
    methods raise ``ClientInfoError``).

    Attributes:
        submission_service: Runs query jobs
        page_service: Fetches result pages
        streaming_service: Opens result streams; without it cursors always page
        client_info_service: Validates client info properties remotely
    """

    def __init__(
        self,
        submission_service: QuerySubmissionService,
        page_service: PageFetchService,
        streaming_service: Optional[StreamingReadService] = None,
        client_info_service: Optional[ClientInfoService] = None,
        *,
        read_client_configuration: Optional[ReadClientConfiguration] = None,
        settings: Optional[ConnectionSettings] = None,
    ):
        self.submission_service = submission_service
        self.page_service = page_service
        self.streaming_service = streaming_service
        self.client_info_service = client_info_service

        settings = settings or ConnectionSettings()
        self._lock = threading.RLock()
        self._closed = False
        self._open_cursors: Set[ResultCursor] = set()

        self._synchronous_response_timeout: Optional[float] = settings.synchronous_response_timeout
        self._dry_run = settings.dry_run
        self._use_legacy_sql = settings.use_legacy_sql
        self._use_query_cache = settings.use_query_cache
        self._max_results: Optional[int] = settings.max_results
        self._maximum_bytes_billed: Optional[int] = settings.maximum_bytes_billed
        self._strict_ordering = settings.strict_ordering
        self._max_stream_partitions = settings.max_stream_partitions
        self._project_id = settings.project_id
        self._default_dataset: Optional[DatasetId] = (
            DatasetId.parse(settings.default_dataset, settings.project_id)
            if settings.default_dataset
            else None
        )
        self._connection_properties: List[ConnectionProperty] = []
        self._query_parameters: List[QueryParameter] = []
        self._labels: Dict[str, str] = {}
        self._client_info: Dict[str, str] = {}
        self._read_client_configuration = (
            read_client_configuration or settings.read_client.to_configuration()
        )

    @classmethod
    def from_settings(
        cls,
        settings: ConnectionSettings,
        submission_service: QuerySubmissionService,
        page_service: PageFetchService,
        streaming_service: Optional[StreamingReadService] = None,
        client_info_service: Optional[ClientInfoService] = None,
    ) -> "Connection":
        """Build a connection whose defaults come from ``settings``."""
        return cls(
            submission_service,
            page_service,
            streaming_service,
            client_info_service,
            settings=settings,
        )

    # -- lifecycle ----------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def open_cursors(self) -> List[ResultCursor]:
        with self._lock:
            return list(self._open_cursors)

    def close(self) -> None:
        """Close the connection and every cursor it opened. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            cursors = list(self._open_cursors)
            self._open_cursors.clear()

        for cursor in cursors:
            cursor.close()
        logger.info(
            "Connection closed",
            extra={"db.platform": PLATFORM_NAME, "cursors.closed": len(cursors)},
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise IllegalStateError(
                "Connection is closed",
                details={"db.platform": PLATFORM_NAME},
            )

    # -- query options ------------------------------------------------------

    @property
    def synchronous_response_timeout(self) -> Optional[float]:
        """Seconds ``execute_select`` waits for the job response; ``None`` waits forever."""
        self._ensure_open()
        return self._synchronous_response_timeout

    @synchronous_response_timeout.setter
    def synchronous_response_timeout(self, timeout: Optional[float]) -> None:
        self._ensure_open()
        if timeout is not None and timeout <= 0:
            raise validation_error(
                "Synchronous response timeout must be positive",
                field="synchronous_response_timeout",
                value=timeout,
            )
        self._synchronous_response_timeout = timeout

    @property
    def dry_run(self) -> bool:
        self._ensure_open()
        return self._dry_run

    @dry_run.setter
    def dry_run(self, dry_run: bool) -> None:
        self._ensure_open()
        self._dry_run = bool(dry_run)

    @property
    def use_legacy_sql(self) -> bool:
        self._ensure_open()
        return self._use_legacy_sql

    @use_legacy_sql.setter
    def use_legacy_sql(self, use_legacy_sql: bool) -> None:
        self._ensure_open()
        self._use_legacy_sql = bool(use_legacy_sql)

    @property
    def use_query_cache(self) -> bool:
        self._ensure_open()
        return self._use_query_cache

    @use_query_cache.setter
    def use_query_cache(self, use_query_cache: bool) -> None:
        self._ensure_open()
        self._use_query_cache = bool(use_query_cache)

    @property
    def max_results(self) -> Optional[int]:
        """Cap on rows a cursor delivers; reaching it reports exhaustion."""
        self._ensure_open()
        return self._max_results

    @max_results.setter
    def max_results(self, max_results: Optional[int]) -> None:
        self._ensure_open()
        self._max_results = self._positive_or_none("max_results", max_results)

    @property
    def maximum_bytes_billed(self) -> Optional[int]:
        self._ensure_open()
        return self._maximum_bytes_billed

    @maximum_bytes_billed.setter
    def maximum_bytes_billed(self, maximum_bytes_billed: Optional[int]) -> None:
        self._ensure_open()
        self._maximum_bytes_billed = self._positive_or_none("maximum_bytes_billed", maximum_bytes_billed)

    @property
    def default_dataset(self) -> Optional[DatasetId]:
        self._ensure_open()
        return self._default_dataset

    @default_dataset.setter
    def default_dataset(self, dataset: Union[DatasetId, str, None]) -> None:
        self._ensure_open()
        if isinstance(dataset, str):
            if not dataset.strip():
                raise validation_error("Default dataset must not be empty", field="default_dataset")
            dataset = DatasetId.parse(dataset.strip(), self._project_id)
        self._default_dataset = dataset

    @property
    def connection_properties(self) -> List[ConnectionProperty]:
        self._ensure_open()
        return list(self._connection_properties)

    @connection_properties.setter
    def connection_properties(
        self, properties: Union[Iterable[PropertyLike], Mapping[str, str], None]
    ) -> None:
        self._ensure_open()
        if properties is None:
            self._connection_properties = []
            return
        if isinstance(properties, Mapping):
            properties = list(properties.items())

        normalized: List[ConnectionProperty] = []
        for prop in properties:
            if not isinstance(prop, ConnectionProperty):
                try:
                    key, value = prop
                except (TypeError, ValueError):
                    raise validation_error(
                        "Connection properties must be ConnectionProperty or (key, value) pairs",
                        field="connection_properties",
                        value=prop,
                    )
                if not isinstance(key, str) or not key:
                    raise validation_error(
                        "Connection property key must be a non-empty string",
                        field="connection_properties",
                        value=key,
                    )
                prop = ConnectionProperty(key=key, value=str(value))
            if not prop.is_recognized:
                logger.debug(
                    "Forwarding unrecognized connection property",
                    extra={"db.platform": PLATFORM_NAME, "property.key": prop.key},
                )
            normalized.append(prop)
        self._connection_properties = normalized

    @property
    def query_parameters(self) -> List[QueryParameter]:
        self._ensure_open()
        return list(self._query_parameters)

    @query_parameters.setter
    def query_parameters(self, parameters: Optional[Iterable[QueryParameter]]) -> None:
        self._ensure_open()
        parameters = list(parameters or [])
        for param in parameters:
            if not isinstance(param, QueryParameter):
                raise validation_error(
                    "Query parameters must be QueryParameter instances",
                    field="query_parameters",
                    value=param,
                )
        named = [p.name is not None for p in parameters]
        if any(named) and not all(named):
            raise validation_error(
                "Query parameters must be all named or all positional",
                field="query_parameters",
            )
        self._query_parameters = parameters

    @property
    def strict_ordering(self) -> bool:
        """Stream from a single partition so rows keep the result's global order."""
        self._ensure_open()
        return self._strict_ordering

    @strict_ordering.setter
    def strict_ordering(self, strict: bool) -> None:
        self._ensure_open()
        self._strict_ordering = bool(strict)

    @property
    def read_client_configuration(self) -> ReadClientConfiguration:
        self._ensure_open()
        return self._read_client_configuration

    @read_client_configuration.setter
    def read_client_configuration(self, configuration: ReadClientConfiguration) -> None:
        self._ensure_open()
        if not isinstance(configuration, ReadClientConfiguration):
            raise validation_error(
                "Expected a ReadClientConfiguration",
                field="read_client_configuration",
                value=type(configuration).__name__,
            )
        self._read_client_configuration = configuration

    # -- labels -------------------------------------------------------------

    @property
    def labels(self) -> Dict[str, str]:
        self._ensure_open()
        return dict(self._labels)

    @labels.setter
    def labels(self, labels: Optional[Mapping[str, Optional[str]]]) -> None:
        self.set_labels(labels)

    def set_labels(self, labels: Optional[Mapping[str, Optional[str]]]) -> None:
        """Replace all labels. Values are optional; ``None`` stores an empty value.

        Raises:
            ValidationError: If any key or value breaks the label rules
        """
        self._ensure_open()
        normalized: Dict[str, str] = {}
        for key, value in (labels or {}).items():
            problems = validate_label(key, value)
            if problems:
                raise validation_error(
                    "; ".join(problems),
                    field="labels",
                    value=key,
                    error_code=ErrorCode.INVALID_LABEL,
                )
            normalized[key] = value or ""
        self._labels = normalized

    def get_labels(self) -> Dict[str, str]:
        return self.labels

    def clear_labels(self) -> None:
        """Remove every label. Idempotent."""
        self._ensure_open()
        self._labels.clear()

    # Legacy misspelled name.
    clea_labels = clear_labels

    # -- client info --------------------------------------------------------

    @property
    def client_info(self) -> Dict[str, str]:
        self._ensure_open()
        return dict(self._client_info)

    def set_client_info(self, name: str, value: Optional[str]) -> None:
        """Set (or, with ``None``/empty ``value``, clear) a client info property.

        Raises:
            ClientInfoError: If the connection is closed or the service
                rejects the property
        """
        if self._closed:
            raise ClientInfoError(
                "Cannot set client info on a closed connection",
                failed_properties={str(name): "connection closed"},
            )
        if not isinstance(name, str) or not name.strip():
            raise validation_error("Client info name must be a non-empty string", field="name", value=name)

        value = value or None
        if self.client_info_service is not None:
            try:
                self.client_info_service.set_property(name, value)
            except Exception as exc:
                raise ClientInfoError(
                    f"Client info property '{name}' was rejected: {exc}",
                    failed_properties={name: str(exc)},
                    cause=exc,
                ) from exc

        if value is None:
            self._client_info.pop(name, None)
        else:
            self._client_info[name] = value

    def get_client_info(self, name: str) -> Optional[str]:
        """Return the client info property, or ``None`` if it is not set."""
        self._ensure_open()
        return self._client_info.get(name)

    # -- execution ----------------------------------------------------------

    def query_options(self) -> QueryOptions:
        """Snapshot the current settings as submission options."""
        self._ensure_open()
        return QueryOptions(
            dry_run=self._dry_run,
            use_legacy_sql=self._use_legacy_sql,
            use_query_cache=self._use_query_cache,
            maximum_bytes_billed=self._maximum_bytes_billed,
            max_results=self._max_results,
            timeout_seconds=self._synchronous_response_timeout,
            default_dataset=self._default_dataset,
            labels=dict(self._labels),
            query_parameters=tuple(self._query_parameters),
            connection_properties=tuple(self._connection_properties),
        )

    def _span_attributes(self, sql: Any) -> Dict[str, Any]:
        statement = sql.strip() if isinstance(sql, str) else ""
        attributes: Dict[str, Any] = {
            "db.system": PLATFORM_NAME,
            "db.operation": "execute_select",
            "bqconnect.dry_run": self._dry_run,
            "bqconnect.labels.count": len(self._labels),
        }
        if statement:
            attributes["db.statement"] = statement
        return attributes

    @traced(
        span_name="bqconnect.connection.execute_select",
        kind=SpanKind.CLIENT,
        attribute_getter=lambda self, sql: self._span_attributes(sql),
    )
    def execute_select(self, sql: str) -> ResultCursor:
        """Submit a SELECT and return a cursor over its rows.

        Args:
            sql: Query text

        Returns:
            ResultCursor bound to this connection

        Raises:
            IllegalStateError: If the connection is closed
            ValidationError: If ``sql`` is empty
            QueryTimeoutError: If the job does not respond within the
                synchronous response timeout
            BigQueryError: If the submission service reports a failure
        """
        self._ensure_open()
        if not isinstance(sql, str) or not sql.strip():
            raise validation_error("SQL statement must be a non-empty string", field="sql")

        options = self.query_options()
        payload: Dict[str, Any] = {"db.platform": PLATFORM_NAME, "dry_run": options.dry_run}
        start_time = time.time()

        try:
            metadata = call_with_timeout(
                self.submission_service.submit,
                options.timeout_seconds,
                sql,
                options,
                timeout_exception=QueryTimeoutError,
            )
        except Exception as exc:
            error = wrap_submission_error(exc, sql)
            if error is exc:
                raise
            raise error from exc

        if not isinstance(metadata, JobMetadata):
            raise BigQueryError(
                f"Submission service returned {type(metadata).__name__}, expected JobMetadata",
                details={"query": sql[:100]},
            )

        logger.info(
            "Query job submitted",
            extra={
                **payload,
                "job.id": metadata.job_id,
                "result.total_rows": metadata.total_rows,
                "duration.seconds": f"{time.time() - start_time:.6f}",
            },
        )

        with self._lock:
            self._ensure_open()
            cursor = ResultCursor(
                metadata,
                self._read_client_configuration,
                self.page_service,
                self.streaming_service,
                max_results=options.max_results,
                strict_ordering=self._strict_ordering,
                max_stream_partitions=self._max_stream_partitions,
                on_close=self._forget_cursor,
            )
            self._open_cursors.add(cursor)
        return cursor

    def _forget_cursor(self, cursor: ResultCursor) -> None:
        with self._lock:
            self._open_cursors.discard(cursor)

    @staticmethod
    def _positive_or_none(field: str, value: Optional[int]) -> Optional[int]:
        if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value <= 0):
            raise validation_error(f"{field} must be a positive integer", field=field, value=value)
        return value
