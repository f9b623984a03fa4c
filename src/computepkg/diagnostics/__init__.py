"""Run-level error log for computepkg."""

from .error_collector import CollectedError, ErrorCollector, ErrorContext, ErrorSeverity

__all__ = [
    "CollectedError",
    "ErrorCollector",
    "ErrorContext",
    "ErrorSeverity",
]
