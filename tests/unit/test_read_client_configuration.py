"""Unit tests for the streaming-selection configuration builder."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from bqconnect.common.exceptions import ErrorCode, ValidationError
from bqconnect.config.read_client import ReadClientConfiguration
from bqconnect.constants import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_MINIMUM_TABLE_SIZE,
    DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO,
    MIN_PAGE_SIZE,
)
from bqconnect.settings.connection import ReadClientSettings


class TestReadClientConfigurationBuilder:

    def test_build_with_explicit_values(self):
        config = (
            ReadClientConfiguration.new_builder()
            .set_total_to_first_page_size_ratio(5)
            .set_minimum_table_size(50)
            .set_buffer_size(1000)
            .build()
        )

        assert config.total_to_first_page_size_ratio == 5
        assert config.minimum_table_size == 50
        assert config.buffer_size == 1000

    def test_defaults(self):
        config = ReadClientConfiguration.default()

        assert config.total_to_first_page_size_ratio == DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO
        assert config.minimum_table_size == DEFAULT_MINIMUM_TABLE_SIZE
        assert config.buffer_size == DEFAULT_BUFFER_SIZE

    def test_zero_minimum_table_size_is_rejected(self):
        builder = ReadClientConfiguration.new_builder().set_minimum_table_size(0)

        with pytest.raises(ValidationError, match="minimum_table_size must be a positive integer") as exc_info:
            builder.build()

        assert exc_info.value.error_code is ErrorCode.INVALID_CONFIGURATION

    @pytest.mark.parametrize(
        "setter,value",
        [
            ("set_total_to_first_page_size_ratio", 0),
            ("set_total_to_first_page_size_ratio", -3),
            ("set_minimum_table_size", -1),
            ("set_buffer_size", 0),
            ("set_buffer_size", -20),
        ],
    )
    def test_non_positive_thresholds_are_rejected(self, setter, value):
        builder = getattr(ReadClientConfiguration.new_builder(), setter)(value)

        with pytest.raises(ValidationError):
            builder.build()

    def test_buffer_smaller_than_minimum_page_is_rejected(self):
        builder = ReadClientConfiguration.new_builder().set_buffer_size(MIN_PAGE_SIZE - 1)

        with pytest.raises(ValidationError, match="at least"):
            builder.build()

    def test_buffer_equal_to_minimum_page_is_accepted(self):
        config = ReadClientConfiguration.new_builder().set_buffer_size(MIN_PAGE_SIZE).build()
        assert config.buffer_size == MIN_PAGE_SIZE

    def test_non_integer_threshold_is_rejected(self):
        builder = ReadClientConfiguration.new_builder().set_buffer_size("100")

        with pytest.raises(ValidationError) as exc_info:
            builder.build()

        assert exc_info.value.details["field"] == "buffer_size"

    def test_validation_error_is_also_a_value_error(self):
        with pytest.raises(ValueError):
            ReadClientConfiguration.new_builder().set_minimum_table_size(0).build()

    def test_built_configuration_is_immutable(self):
        config = ReadClientConfiguration.default()

        with pytest.raises(PydanticValidationError):
            config.buffer_size = 5

    def test_to_builder_round_trip_allows_adjustment(self):
        original = ReadClientConfiguration.new_builder().set_total_to_first_page_size_ratio(7).build()

        changed = original.to_builder().set_buffer_size(500).build()

        assert changed.total_to_first_page_size_ratio == 7
        assert changed.buffer_size == 500
        assert original.buffer_size == DEFAULT_BUFFER_SIZE

    def test_configuration_can_be_shared(self):
        a = ReadClientConfiguration.default()
        b = ReadClientConfiguration.default()
        assert a == b
        assert hash(a) == hash(b)


class TestReadClientSettings:

    def test_settings_build_configuration(self):
        settings = ReadClientSettings(total_to_first_page_size_ratio=4, minimum_table_size=10, buffer_size=30)

        config = settings.to_configuration()

        assert config.total_to_first_page_size_ratio == 4
        assert config.minimum_table_size == 10
        assert config.buffer_size == 30

    def test_invalid_settings_fail_when_built(self):
        with pytest.raises(ValidationError):
            ReadClientSettings(minimum_table_size=0).to_configuration()
