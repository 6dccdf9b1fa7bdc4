"""Internal constants shared across the library."""

BASE_URL = "http://localhost:8080"
USER_AGENT = "regionfeed/0.3"

#: Client-side cache entries go stale after 24 hours.
DEFAULT_CACHE_TTL_SECONDS: float = 24 * 3600

#: Courtesy delays (seconds) between page fetches and between keys.
DEFAULT_PAGE_DELAY: float = 0.05
DEFAULT_KEY_DELAY: float = 0.1

#: Wait before resolving an empty key set a second time.
DEFAULT_EMPTY_KEYS_RETRY_DELAY: float = 1.0

DEFAULT_REQUEST_TIMEOUT: float = 30.0

#: Property on municipality features holding the most common postcode.
POSTCODE_PROPERTY = "meestVoorkomendePostcode"
POSTCODE4_PATTERN = r"^\d{4}$"
BAG_POSTCODE4_PATTERN = r"^[1-9][0-9]{3}$"

PROGRESS_FAILED_MESSAGE = "Failed to load region data"
