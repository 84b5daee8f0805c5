"""
Custom error classes for the AR engagement toolkit.
Structured errors with codes for batch-level contract violations.

Per-record data problems are never raised: bad rows are excluded or zeroed
by the parser. Only whole-batch misuse surfaces as one of these.

Hierarchy:
    EngagementError
    ├── DataError
    │   ├── ConfigError
    │   ├── SchemaValidationError
    │   └── DataFetchError
    ├── ScoringError
    └── ReportError
"""


class EngagementError(Exception):
    """Base exception for all engagement toolkit errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- Data Errors ---

class DataError(EngagementError):
    """Base class for data loading errors."""
    pass


class ConfigError(DataError):
    """Configuration file error."""

    def __init__(self, message: str, config_path: str = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"config_path": config_path},
        )


class SchemaValidationError(DataError):
    """Input doesn't match the expected shape."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message, code="SCHEMA_INVALID", details={"field": field},
        )


class DataFetchError(DataError):
    """Failed to load a raw log export from storage."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED", details={"source": source},
        )


# --- Engine Errors ---

class ScoringError(EngagementError):
    """Scoring was invoked without a required batch-level input."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="SCORING_ERROR", details=kwargs)


class ReportError(EngagementError):
    """Report rendering was asked for something it cannot produce."""

    def __init__(self, message: str, code: str = "REPORT_ERROR", **kwargs):
        super().__init__(message, code=code, details=kwargs)
