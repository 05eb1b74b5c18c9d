"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Subtracted from every upstream token lifetime so in-flight requests never carry a just-expired token.
TOKEN_EXPIRY_BUFFER_SECONDS = 60
DEFAULT_TOKEN_TTL_SECONDS = 3600
DEFAULT_TOKEN_CACHE_KEY = "saras:token"

DEFAULT_SARAS_TIMEOUT_SECONDS = 30
DEFAULT_RETRY_ATTEMPTS = 2
DEFAULT_RETRY_DELAY_MS = 500
DEFAULT_PLUGIN_NAME = "knowledgeRepo"

PROJECT_SYNC_PAGE_SIZE = 50
DEFAULT_AUTO_CHECKOUT_TIME = "22:00"

LOCAL_ENTRY_PREFIX = "local_"
