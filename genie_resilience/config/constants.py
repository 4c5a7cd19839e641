"""Pure constants for genie_resilience. No side effects at import time."""

# === Retry Policy Defaults ===
DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY_MS = 1000  # 1 second
DEFAULT_MAX_DELAY_MS = 30000  # 30 seconds
DEFAULT_JITTER_FRACTION = 0.1  # 10% of the computed delay
BACKOFF_MULTIPLIER = 2

# === Batch Execution ===
DEFAULT_CONCURRENCY = 3  # Operations in flight per group
DEFAULT_BATCH_DELAY_MS = 500  # Pause between groups

# === Stability Monitor ===
DEFAULT_MONITOR_INTERVAL = 30.0  # seconds between health checks
DEFAULT_MONITOR_MAX_FAILURES = 3  # consecutive failures before recovery

# === Labels ===
DEFAULT_JOB_CONTEXT = "operation"

# === Legacy error text patterns ===
# Lowercase substrings matched against error messages and codes.
# Checked in order, so timeout phrases win over the broader network ones.
DEADLINE_PATTERNS = (
    "deadline-exceeded",
    "connection timeout",
    "network timeout",
)
RESOURCE_EXHAUSTED_PATTERNS = ("resource-exhausted",)
ABORTED_PATTERNS = ("aborted",)
NETWORK_PATTERNS = (
    "transport errored",
    "webchannelconnection",
    "network error",
    "unavailable",
    "failed to fetch",
    "fetch error",
)
INTERNAL_PATTERNS = ("internal",)

# === HTTP status mapping ===
HTTP_RESOURCE_EXHAUSTED_STATUSES = frozenset({429})
HTTP_UNAVAILABLE_STATUSES = frozenset({502, 503})
HTTP_DEADLINE_STATUSES = frozenset({408, 504})
HTTP_ABORTED_STATUSES = frozenset({409})
