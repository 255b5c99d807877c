"""
Core Module - Error Types.

============================================================
PURPOSE
============================================================
Shared error hierarchy for the civic report platform.

Report stores raise StoreError subclasses. The intelligence
components catch those at their best-effort boundaries and fall
back to neutral results; pure scoring code never raises.

    CivicPlatformError
    ├── ConfigurationError
    └── StoreError
        ├── StoreUnavailableError
        └── StoreQueryError

============================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class Severity(Enum):
    """How loudly an error should be reported."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ============================================================
# BASE ERROR
# ============================================================

class CivicPlatformError(Exception):
    """
    Root of every platform error.

    Carries a severity, a free-form context dict and the time it was
    raised. When wrapping another exception, pass it as `cause`; its
    type and message are copied into the context.
    """

    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity if severity is not None else self.default_severity
        self.cause = cause
        self.raised_at = datetime.now(timezone.utc)

        self.context: Dict[str, Any] = dict(context or {})
        if cause is not None:
            self.context.setdefault("cause_type", cause.__class__.__name__)
            self.context.setdefault("cause_message", str(cause))

    @property
    def timestamp(self) -> datetime:
        return self.raised_at

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for log records and CLI output."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.raised_at.isoformat(),
            "cause": None if self.cause is None else str(self.cause),
        }


def _with_extra(kwargs: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
    """Merge non-empty extras into the `context` kwarg."""
    context = dict(kwargs.pop("context", None) or {})
    context.update({key: value for key, value in extra.items() if value is not None})
    kwargs["context"] = context
    return kwargs


# ============================================================
# CONFIGURATION
# ============================================================

class ConfigurationError(CivicPlatformError):
    """A setting is missing, malformed or out of range."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs: Any,
    ):
        shown = None if actual_value is None else str(actual_value)[:100]
        super().__init__(
            message,
            **_with_extra(kwargs, config_key=config_key or None, actual_value=shown),
        )


# ============================================================
# REPORT STORE
# ============================================================

class StoreError(CivicPlatformError):
    """The report store could not serve a request."""

    default_severity = Severity.HIGH


class StoreUnavailableError(StoreError):
    default_severity = Severity.CRITICAL


class StoreQueryError(StoreError):
    """A single store operation failed; `operation` names it."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs: Any):
        super().__init__(message, **_with_extra(kwargs, operation=operation or None))


__all__ = [
    "Severity",
    "CivicPlatformError",
    "ConfigurationError",
    "StoreError",
    "StoreUnavailableError",
    "StoreQueryError",
]
