# src/libs/lookup-common/lookup_common/config.py
import os
from dotenv import load_dotenv

# Load environment variables from a .env file for local development.
load_dotenv()


# Upstream Lookup API
LOOKUP_API_BASE_URL = os.getenv("LOOKUP_API_BASE_URL", "http://erp-api:8080/api/v1")
LOOKUP_HTTP_TIMEOUT_SECONDS = float(os.getenv("LOOKUP_HTTP_TIMEOUT_SECONDS", "10"))

# Pagination
LOOKUP_DEFAULT_LIMIT = int(os.getenv("LOOKUP_DEFAULT_LIMIT", "20"))
LOOKUP_DROPDOWN_LIMIT = int(os.getenv("LOOKUP_DROPDOWN_LIMIT", "10"))
LOOKUP_MAX_ITEMS = int(os.getenv("LOOKUP_MAX_ITEMS", "500"))

# Retry policy for idempotent lookup reads
LOOKUP_RETRY_ATTEMPTS = int(os.getenv("LOOKUP_RETRY_ATTEMPTS", "3"))
LOOKUP_RETRY_DELAY_MS = int(os.getenv("LOOKUP_RETRY_DELAY_MS", "500"))

# Gateway service
LOOKUP_GATEWAY_HOST = os.getenv("LOOKUP_GATEWAY_HOST", "0.0.0.0")
LOOKUP_GATEWAY_PORT = int(os.getenv("LOOKUP_GATEWAY_PORT", "8090"))
