"""Unit tests for Connection options, client info and execute_select."""

import threading
from unittest.mock import Mock

import pytest

from bqconnect.common.exceptions import (
    BigQueryError,
    ClientInfoError,
    ErrorCode,
    IllegalStateError,
    QueryTimeoutError,
    ValidationError,
)
from bqconnect.config.read_client import ReadClientConfiguration
from bqconnect.connection import Connection, ConnectionProperty, DatasetId, QueryParameter
from bqconnect.constants import BackendKind, CursorState
from bqconnect.settings.connection import ConnectionSettings

from tests.helpers.fakes import FakeSubmissionService, make_metadata


@pytest.fixture
def metadata(rows):
    return make_metadata(500, first_page_rows=100, rows=rows)


@pytest.fixture
def submission(metadata):
    return FakeSubmissionService(metadata)


@pytest.fixture
def connection(submission, page_service, streaming_service, client_info_service, config, settings):
    return Connection(
        submission,
        page_service,
        streaming_service,
        client_info_service,
        read_client_configuration=config,
        settings=settings,
    )


class TestExecuteSelect:

    def test_returns_streaming_cursor_for_large_result(self, connection, rows):
        cursor = connection.execute_select("SELECT * FROM big")

        assert cursor.backend_kind is BackendKind.STREAMING
        assert cursor.fetchall() == rows

    def test_submits_snapshot_of_options(self, connection, submission):
        connection.dry_run = True
        connection.use_legacy_sql = True
        connection.use_query_cache = False
        connection.maximum_bytes_billed = 1_000_000
        connection.max_results = 50
        connection.default_dataset = "proj.sales"
        connection.labels = {"team": "analytics", "env": None}
        connection.query_parameters = [QueryParameter(name="region", parameter_type="string", value="eu")]
        connection.connection_properties = {"time_zone": "UTC", "custom_flag": "1"}

        connection.execute_select("SELECT 1")

        sql, options = submission.calls[0]
        assert sql == "SELECT 1"
        assert options.dry_run is True
        assert options.use_legacy_sql is True
        assert options.use_query_cache is False
        assert options.maximum_bytes_billed == 1_000_000
        assert options.max_results == 50
        assert options.default_dataset == DatasetId(project="proj", dataset="sales")
        assert options.labels == {"team": "analytics", "env": ""}
        assert options.query_parameters[0].parameter_type == "STRING"
        assert [p.key for p in options.connection_properties] == ["time_zone", "custom_flag"]
        assert options.timeout_seconds == connection.synchronous_response_timeout

    def test_later_changes_do_not_affect_open_cursor(self, connection, rows):
        connection.max_results = 30
        cursor = connection.execute_select("SELECT * FROM big")

        connection.max_results = 5
        connection.read_client_configuration = ReadClientConfiguration.new_builder().set_buffer_size(10).build()

        assert cursor.max_results == 30
        assert cursor.configuration.buffer_size == 20
        assert cursor.fetchall() == rows[:30]

    @pytest.mark.parametrize("sql", ["", "   ", None])
    def test_empty_sql_is_rejected_without_io(self, connection, submission, sql):
        with pytest.raises(ValidationError):
            connection.execute_select(sql)

        assert submission.calls == []

    def test_submission_failure_is_wrapped(self, connection, submission):
        cause = RuntimeError("Access Denied: Table proj:ds.t")
        cause.reason = "accessDenied"
        cause.code = 403
        submission.error = cause

        with pytest.raises(BigQueryError) as exc_info:
            connection.execute_select("SELECT * FROM t")

        error = exc_info.value
        assert error.cause is cause
        assert error.reason == "accessDenied"
        assert error.code == 403
        assert error.error_code is ErrorCode.QUERY_EXECUTION_ERROR
        assert connection.open_cursors == []

    def test_submission_timeout(self, connection):
        release = threading.Event()
        service = Mock()
        service.submit.side_effect = lambda sql, options: release.wait(5)
        connection.submission_service = service
        connection.synchronous_response_timeout = 0.05

        try:
            with pytest.raises(QueryTimeoutError) as exc_info:
                connection.execute_select("SELECT SLEEP()")
        finally:
            release.set()

        assert isinstance(exc_info.value, TimeoutError)
        assert connection.open_cursors == []

    def test_unexpected_submission_response(self, connection, submission):
        submission.metadata = {"job_id": "not-a-model"}

        with pytest.raises(BigQueryError, match="expected JobMetadata"):
            connection.execute_select("SELECT 1")


class TestConnectionOptions:

    def test_defaults_come_from_settings(self, connection, settings):
        assert connection.synchronous_response_timeout == settings.synchronous_response_timeout
        assert connection.dry_run is False
        assert connection.use_legacy_sql is False
        assert connection.use_query_cache is True
        assert connection.max_results is None
        assert connection.maximum_bytes_billed is None
        assert connection.default_dataset is None
        assert connection.labels == {}
        assert connection.connection_properties == []
        assert connection.query_parameters == []

    @pytest.mark.parametrize("field,value", [
        ("max_results", 0),
        ("max_results", -5),
        ("maximum_bytes_billed", 0),
        ("synchronous_response_timeout", 0),
        ("synchronous_response_timeout", -1.5),
    ])
    def test_invalid_numeric_options(self, connection, field, value):
        with pytest.raises(ValidationError):
            setattr(connection, field, value)

    def test_none_clears_optional_caps(self, connection):
        connection.max_results = 10
        connection.max_results = None
        connection.synchronous_response_timeout = None

        assert connection.max_results is None
        assert connection.synchronous_response_timeout is None

    def test_default_dataset_without_project_uses_settings_project(self, submission, page_service, settings):
        settings = settings.model_copy(update={"project_id": "acme"})
        connection = Connection(submission, page_service, settings=settings)

        connection.default_dataset = "warehouse"

        assert str(connection.default_dataset) == "acme.warehouse"

    def test_connection_properties_accept_pairs(self, connection):
        connection.connection_properties = [("session_id", "abc"), ConnectionProperty(key="x", value="y")]

        props = connection.connection_properties
        assert [(p.key, p.value) for p in props] == [("session_id", "abc"), ("x", "y")]
        assert props[0].is_recognized
        assert not props[1].is_recognized

    @pytest.mark.parametrize("bad", [["just-a-key"], [("", "v")], [42]])
    def test_invalid_connection_properties(self, connection, bad):
        with pytest.raises(ValidationError):
            connection.connection_properties = bad

    def test_mixed_query_parameters_rejected(self, connection):
        with pytest.raises(ValidationError, match="all named or all positional"):
            connection.query_parameters = [
                QueryParameter(name="a", parameter_type="INT64", value=1),
                QueryParameter(parameter_type="INT64", value=2),
            ]


class TestLabels:

    def test_set_and_get(self, connection):
        connection.set_labels({"team": "data-eng", "cost_center": "cc_42", "release": None})

        assert connection.get_labels() == {"team": "data-eng", "cost_center": "cc_42", "release": ""}

    def test_international_characters_allowed(self, connection):
        connection.labels = {"équipe": "données"}

        assert connection.labels == {"équipe": "données"}

    @pytest.mark.parametrize("labels", [
        {"Team": "x"},
        {"1team": "x"},
        {"_team": "x"},
        {"team": "Prod"},
        {"team": "has space"},
        {"k" * 64: "x"},
        {"team": "v" * 64},
        {"": "x"},
        {"team\n": "a"},
        {"team": "x\n"},
        {"team": 5},
        {1: "x"},
    ])
    def test_invalid_labels_rejected(self, connection, labels):
        with pytest.raises(ValidationError) as exc_info:
            connection.labels = labels

        assert exc_info.value.error_code is ErrorCode.INVALID_LABEL
        assert connection.labels == {}

    def test_clear_labels_is_idempotent(self, connection):
        connection.labels = {"team": "x"}

        connection.clea_labels()
        connection.clea_labels()
        connection.clear_labels()

        assert connection.labels == {}


class TestClientInfo:

    def test_set_and_get(self, connection, client_info_service):
        connection.set_client_info("ApplicationName", "reports")

        assert connection.get_client_info("ApplicationName") == "reports"
        assert client_info_service.properties == {"ApplicationName": "reports"}

    @pytest.mark.parametrize("empty", [None, ""])
    def test_empty_value_clears(self, connection, client_info_service, empty):
        connection.set_client_info("ApplicationName", "reports")

        connection.set_client_info("ApplicationName", empty)

        assert connection.get_client_info("ApplicationName") is None
        assert client_info_service.properties == {}

    def test_unknown_property_returns_none(self, connection):
        assert connection.get_client_info("Missing") is None

    def test_rejected_property(self, connection):
        with pytest.raises(ClientInfoError) as exc_info:
            connection.set_client_info("Unsupported", "x")

        assert "Unsupported" in exc_info.value.failed_properties
        assert connection.get_client_info("Unsupported") is None

    def test_closed_connection(self, connection):
        connection.close()

        with pytest.raises(ClientInfoError):
            connection.set_client_info("ApplicationName", "reports")

    def test_without_service_values_are_kept_locally(self, submission, page_service, settings):
        connection = Connection(submission, page_service, settings=settings)

        connection.set_client_info("ClientUser", "alice")

        assert connection.client_info == {"ClientUser": "alice"}


class TestConnectionLifecycle:

    def test_close_closes_open_cursors(self, connection, streaming_service):
        first = connection.execute_select("SELECT * FROM big")
        second = connection.execute_select("SELECT * FROM big")
        first.next()
        second.fetchmany(30)

        connection.close()

        assert first.state is CursorState.CLOSED
        assert second.state is CursorState.CLOSED
        assert streaming_service.open_handles == {}
        assert connection.open_cursors == []

    def test_exhausted_cursor_is_forgotten(self, connection):
        cursor = connection.execute_select("SELECT * FROM big")
        assert connection.open_cursors == [cursor]

        cursor.fetchall()

        assert connection.open_cursors == []

    def test_close_is_idempotent(self, connection):
        connection.close()
        connection.close()

        assert connection.closed

    @pytest.mark.parametrize("action", [
        lambda c: c.execute_select("SELECT 1"),
        lambda c: c.dry_run,
        lambda c: setattr(c, "dry_run", True),
        lambda c: c.labels,
        lambda c: c.clea_labels(),
        lambda c: c.get_client_info("x"),
        lambda c: setattr(c, "max_results", 10),
        lambda c: c.read_client_configuration,
        lambda c: c.query_options(),
    ])
    def test_closed_connection_rejects_calls(self, connection, action):
        connection.close()

        with pytest.raises(IllegalStateError):
            action(connection)

    def test_context_manager(self, submission, page_service, settings):
        with Connection(submission, page_service, settings=settings) as connection:
            cursor = connection.execute_select("SELECT * FROM big")

        assert connection.closed
        assert cursor.state is CursorState.CLOSED


class TestFromSettings:

    def test_environment_drives_defaults(self, monkeypatch, submission, page_service):
        monkeypatch.setenv("BQCONNECT_DRY_RUN", "true")
        monkeypatch.setenv("BQCONNECT_MAX_RESULTS", "25")
        monkeypatch.setenv("BQCONNECT_PROJECT_ID", "acme")
        monkeypatch.setenv("BQCONNECT_DEFAULT_DATASET", "sales")
        monkeypatch.setenv("BQCONNECT_READ_CLIENT__BUFFER_SIZE", "50")
        monkeypatch.setenv("BQCONNECT_READ_CLIENT__MINIMUM_TABLE_SIZE", "7")

        connection = Connection.from_settings(ConnectionSettings(_env_file=None), submission, page_service)

        assert connection.dry_run is True
        assert connection.max_results == 25
        assert connection.default_dataset == DatasetId(project="acme", dataset="sales")
        assert connection.read_client_configuration.buffer_size == 50
        assert connection.read_client_configuration.minimum_table_size == 7

    def test_invalid_environment_threshold_fails(self, monkeypatch, submission, page_service):
        monkeypatch.setenv("BQCONNECT_READ_CLIENT__BUFFER_SIZE", "0")

        with pytest.raises(ValidationError):
            Connection.from_settings(ConnectionSettings(_env_file=None), submission, page_service)
