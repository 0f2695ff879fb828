"""Internal constants shared across the library."""

#: Freshness window for signed submissions (5 minutes).
MAX_TIMESTAMP_SKEW_MS = 5 * 60 * 1000

#: Field separator of the canonical signing string.
SIGN_SEPARATOR = ":"

MAX_KEY_LENGTH = 255

DEFAULT_CACHE_PREFIX = "devlog"
DEFAULT_MAX_RANGE_DAYS = 31

#: Largest page an event listing serves.
MAX_PAGE_SIZE = 100
