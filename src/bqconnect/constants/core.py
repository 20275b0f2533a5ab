"""Library-wide defaults and limits."""

# Smallest page a backend may request; buffer_size below this is rejected.
MIN_PAGE_SIZE = 10

DEFAULT_TOTAL_TO_FIRST_PAGE_SIZE_RATIO = 3
DEFAULT_MINIMUM_TABLE_SIZE = 100
DEFAULT_BUFFER_SIZE = 20_000

DEFAULT_SYNCHRONOUS_RESPONSE_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_STREAM_PARTITIONS = 4

# Label keys/values: lowercase letters (international allowed), digits, '_' and '-'.
LABEL_MAX_LENGTH = 63
LABEL_KEY_PATTERN = r"[^\W\d_A-Z][\w-]{0,62}"
LABEL_VALUE_PATTERN = r"[\w-]{0,63}"

PLATFORM_NAME = "bigquery"
