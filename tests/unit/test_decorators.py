"""Unit tests for tracing and timeout helpers."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from opentelemetry.trace import SpanKind

from bqconnect.common.exceptions import QueryTimeoutError
from bqconnect.utils.decorators import call_with_timeout, traced, with_timeout


class TestCallWithTimeout:

    def test_returns_result(self):
        assert call_with_timeout(lambda a, b=0: a + b, 1.0, 2, b=3) == 5

    def test_none_timeout_calls_inline(self):
        caller = threading.current_thread()
        seen = []

        call_with_timeout(lambda: seen.append(threading.current_thread()), None)

        assert seen == [caller]

    def test_errors_propagate_unchanged(self):
        def fail():
            raise KeyError("missing")

        with pytest.raises(KeyError):
            call_with_timeout(fail, 1.0)

    def test_timeout_raises_requested_exception(self):
        release = threading.Event()
        try:
            with pytest.raises(QueryTimeoutError, match="timed out after 0.05 seconds"):
                call_with_timeout(release.wait, 0.05, 5, timeout_exception=QueryTimeoutError)
        finally:
            release.set()

    def test_timeout_defaults_to_builtin(self):
        release = threading.Event()
        try:
            with pytest.raises(TimeoutError):
                call_with_timeout(release.wait, 0.05, 5)
        finally:
            release.set()

    def test_with_timeout_decorator(self):
        release = threading.Event()

        @with_timeout(0.05, timeout_exception=QueryTimeoutError)
        def slow():
            release.wait(5)

        @with_timeout(1.0)
        def fast(value):
            return value * 2

        try:
            with pytest.raises(QueryTimeoutError):
                slow()
        finally:
            release.set()
        assert fast(21) == 42
        assert slow.__name__ == "slow"


class TestTraced:

    def _patched_tracer(self):
        span = MagicMock()
        tracer = MagicMock()
        tracer.start_as_current_span.return_value.__enter__.return_value = span
        return tracer, span

    def test_span_name_kind_and_attributes(self):
        tracer, span = self._patched_tracer()

        @traced(
            span_name="bqconnect.test.op",
            kind=SpanKind.CLIENT,
            attributes={"static": "yes", "skipped": None},
            attribute_getter=lambda value: {"value": value},
        )
        def op(value):
            return value + 1

        with patch("bqconnect.utils.decorators.get_tracer", return_value=tracer):
            assert op(1) == 2

        tracer.start_as_current_span.assert_called_once_with("bqconnect.test.op", kind=SpanKind.CLIENT)
        span.set_attribute.assert_any_call("static", "yes")
        span.set_attribute.assert_any_call("value", 1)
        assert all(call.args[0] != "skipped" for call in span.set_attribute.call_args_list)

    def test_default_span_name(self):
        tracer, _ = self._patched_tracer()

        @traced()
        def op():
            return None

        with patch("bqconnect.utils.decorators.get_tracer", return_value=tracer):
            op()

        name = tracer.start_as_current_span.call_args.args[0]
        assert name.endswith("op")
        assert name.startswith(__name__)

    def test_exceptions_are_recorded_and_reraised(self):
        tracer, span = self._patched_tracer()

        @traced()
        def op():
            raise ValueError("bad")

        with patch("bqconnect.utils.decorators.get_tracer", return_value=tracer):
            with pytest.raises(ValueError):
                op()

        span.record_exception.assert_called_once()
        span.set_status.assert_called_once()
