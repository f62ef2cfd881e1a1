"""Prometheus metrics definitions for authentication and audit."""

from prometheus_client import Counter, Histogram

# FAST: request handling, DB queries (0.5ms ~ 5s)
_BUCKETS_FAST = (
    0.0005, 0.001, 0.002, 0.005, 0.01,
    0.02, 0.05, 0.1, 0.2, 0.5,
    1, 2, 5,
)

# =============================================================================
# HTTP
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "folioguard_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

HTTP_REQUEST_DURATION = Histogram(
    "folioguard_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "endpoint"],
    buckets=_BUCKETS_FAST,
)

# =============================================================================
# Authentication
# =============================================================================

# outcome: success | failure | rate_limited
AUTH_LOGIN_TOTAL = Counter(
    "folioguard_auth_login_total",
    "Admin login attempts by outcome",
    ["outcome"],
)

# reason: insufficient_role | unauthorized_identity
AUTH_ACCESS_DENIED_TOTAL = Counter(
    "folioguard_auth_access_denied_total",
    "Admin gate rejections by reason",
    ["reason"],
)

# scope: login | api
RATE_LIMITED_TOTAL = Counter(
    "folioguard_rate_limited_total",
    "Requests rejected by a rate limiter",
    ["scope"],
)

# =============================================================================
# Audit
# =============================================================================

AUDIT_ENTRIES_TOTAL = Counter(
    "folioguard_audit_entries_total",
    "Audit entries written",
    ["action", "severity"],
)

AUDIT_WRITE_FAILURES_TOTAL = Counter(
    "folioguard_audit_write_failures_total",
    "Audit entries that could not be persisted",
)

MAINTENANCE_PURGED_TOTAL = Counter(
    "folioguard_maintenance_purged_total",
    "Rows removed by retention maintenance",
    ["table"],
)
