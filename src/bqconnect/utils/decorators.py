import concurrent.futures
import functools
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from opentelemetry.trace import SpanKind, Status, StatusCode

from bqconnect.telemetry import get_tracer


F = TypeVar('F', bound=Callable[..., Any])
T = TypeVar('T')

logger = None


def _get_logger():
    """Get logger instance lazily."""
    global logger
    if logger is None:
        from bqconnect.logging import get_logger
        logger = get_logger(__name__)
    return logger


def traced(
    span_name: Optional[str] = None,
    *,
    kind: SpanKind = SpanKind.INTERNAL,
    attributes: Optional[Dict[str, Any]] = None,
    attribute_getter: Optional[Callable[..., Optional[Dict[str, Any]]]] = None,
) -> Callable[[F], F]:
    """Instrument a function with an OpenTelemetry span.

    Args:
        span_name: Optional explicit span name. Defaults to module-qualified function name.
        kind: Span kind, defaults to INTERNAL.
        attributes: Static span attributes to attach.
        attribute_getter: Callable returning additional attributes at call time.
    """

    def decorator(func: F) -> F:

        def _collect_attributes(args: tuple, kwargs: dict) -> Dict[str, Any]:
            collected: Dict[str, Any] = {}
            if attributes:
                collected.update({k: v for k, v in attributes.items() if v is not None})

            if attribute_getter:
                try:
                    dynamic_attrs = attribute_getter(*args, **kwargs)
                except Exception as exc:  # pragma: no cover
                    _get_logger().warning("trace attribute getter failed: %s", exc)
                    dynamic_attrs = None

                if dynamic_attrs:
                    collected.update({k: v for k, v in dynamic_attrs.items() if v is not None})

            return collected

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = get_tracer(func.__module__)
            name = span_name or f"{func.__module__}.{func.__qualname__}"

            with tracer.start_as_current_span(name, kind=kind) as span:
                for key, value in _collect_attributes(args, kwargs).items():
                    span.set_attribute(key, value)

                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    span.record_exception(exc)
                    span.set_status(Status(StatusCode.ERROR, str(exc)))
                    raise

        return wrapper  # type: ignore[return-value]

    return decorator


def call_with_timeout(
    func: Callable[..., T],
    timeout_seconds: Optional[float],
    *args: Any,
    timeout_exception: Optional[Type[Exception]] = None,
    **kwargs: Any,
) -> T:
    """Run a blocking call with a client-side deadline.

    The call runs on a single worker thread. When the deadline passes the
    caller gets control back immediately; the worker is abandoned, not
    interrupted, so the remote side may still finish on its own.

    Args:
        func: Blocking callable to run.
        timeout_seconds: Deadline in seconds. ``None`` waits indefinitely.
        *args: Positional arguments for ``func``.
        timeout_exception: Exception type raised on timeout. Defaults to
            the builtin ``TimeoutError``.
        **kwargs: Keyword arguments for ``func``.

    Returns:
        Whatever ``func`` returns.

    Raises:
        timeout_exception: If ``func`` does not finish in time.
        Exception: Anything ``func`` raises, unchanged.

    Example:
        >>> metadata = call_with_timeout(service.submit, 30.0, sql, options)
    """
    if timeout_seconds is None:
        return func(*args, **kwargs)

    executor = concurrent.futures.ThreadPoolExecutor(
        max_workers=1, thread_name_prefix="bqconnect-submit"
    )
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout_seconds)
    except concurrent.futures.TimeoutError as e:
        future.cancel()
        message = f"{getattr(func, '__name__', 'call')} timed out after {timeout_seconds} seconds"
        if timeout_exception:
            raise timeout_exception(message) from e
        raise TimeoutError(message) from e
    finally:
        executor.shutdown(wait=False)


def with_timeout(
    timeout_seconds: float,
    timeout_exception: Optional[Type[Exception]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator form of :func:`call_with_timeout` for fixed deadlines.

    Example:
        >>> @with_timeout(5.0, timeout_exception=QueryTimeoutError)
        ... def ping():
        ...     return service.ping()
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            return call_with_timeout(
                func, timeout_seconds, *args, timeout_exception=timeout_exception, **kwargs
            )
        return wrapper
    return decorator
