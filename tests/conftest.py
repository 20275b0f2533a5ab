import os

import pytest

from bqconnect.config.read_client import ReadClientConfiguration
from bqconnect.settings.connection import ConnectionSettings

from tests.helpers.fakes import FakeClientInfoService, FakePageService, FakeStreamingService, make_rows


@pytest.fixture
def config():
    """Small thresholds so tests can cross them with a few hundred rows."""
    return (
        ReadClientConfiguration.new_builder()
        .set_total_to_first_page_size_ratio(5)
        .set_minimum_table_size(50)
        .set_buffer_size(20)
        .build()
    )


@pytest.fixture
def settings(monkeypatch):
    """Settings isolated from the developer's environment and .env file."""
    for name in list(os.environ):
        if name.upper().startswith("BQCONNECT_"):
            monkeypatch.delenv(name, raising=False)
    return ConnectionSettings(_env_file=None)


@pytest.fixture
def rows():
    return make_rows(500)


@pytest.fixture
def page_service(rows):
    return FakePageService(rows)


@pytest.fixture
def streaming_service(rows):
    return FakeStreamingService([rows[:200], rows[200:350], rows[350:]])


@pytest.fixture
def client_info_service():
    return FakeClientInfoService(rejected={"Unsupported"})
