"""Configuration constants for the maps client"""

# API Configuration
LEGACY_BASE_URL = "https://maps.googleapis.com/maps/api"
PLACES_BASE_URL = "https://places.googleapis.com/v1"
API_KEY_ENV_VAR = "GOOGLE_MAPS_API_KEY"
API_KEY_HEADER = "X-Goog-Api-Key"
FIELD_MASK_HEADER = "X-Goog-FieldMask"

# Retry configuration (seconds)
INITIAL_BACKOFF = 0.5
BACKOFF_MULTIPLIER = 1.5
MAX_BACKOFF = 60.0
MAX_ELAPSED_TIME = 900.0  # 15 minutes
JITTER_FRACTION = 0.5
MAX_ATTEMPTS = None  # Bounded by MAX_ELAPSED_TIME only

# Timeouts
DEFAULT_REQUEST_TIMEOUT = 30.0  # Seconds, per attempt

# Legacy page tokens are not valid until shortly after they are issued
LEGACY_PAGE_TOKEN_DELAY = 2.0

# Session tokens
SESSION_TOKEN_MAX_LENGTH = 36
SESSION_TOKEN_BYTES = 27  # 27 random bytes -> 36 base64url characters

# Places API (New) limits
TEXT_SEARCH_MAX_PAGE_SIZE = 20
