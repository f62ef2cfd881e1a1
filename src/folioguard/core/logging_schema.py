"""Logging field schema - v1.0

Standard fields (added to all logs):
- schema_version: Log schema version
- service: Service name (folioguard)
- component: Component name (AUTH, AUDIT, MAINT, API)
- event: Event type (login_failed, admin_access_denied, etc.)
- trace_id: Request trace ID
- duration_ms: Duration in milliseconds

High cardinality fields (OK in logs, NOT in metric labels):
- user_id: Identity ID
- identifier: Attempted login identifier
- ip: Client IP address
"""

from enum import StrEnum


class LogEvent(StrEnum):
    """Standard log event types.

    Use these event types in the 'event' extra field for consistent
    log filtering and analysis.
    """

    # Authentication events
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGIN_RATE_LIMITED = "login_rate_limited"
    LOGOUT = "logout"
    SESSION_REJECTED = "session_rejected"
    ADMIN_ACCESS_DENIED = "admin_access_denied"
    STORE_UNAVAILABLE = "store_unavailable"

    # Audit events
    AUDIT_WRITE_FAILED = "audit_write_failed"

    # Maintenance events
    MAINTENANCE_STARTED = "maintenance_started"
    MAINTENANCE_COMPLETE = "maintenance_complete"
    MAINTENANCE_FAILED = "maintenance_failed"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"

    # Lifecycle events
    APP_STARTED = "app_started"
    APP_STOPPED = "app_stopped"
    DB_CONNECTED = "db_connected"
    DB_ERROR = "db_error"

    # API events
    REQUEST_COMPLETE = "request_complete"
    REQUEST_FAILED = "request_failed"
    REQUEST_SLOW = "request_slow"


class Component(StrEnum):
    """Component identifiers for log filtering."""

    AUTH = "auth"  # Login, sessions, gates
    AUDIT = "audit"  # Audit trail writer
    MAINT = "maint"  # Maintenance service
    API = "api"  # REST API
