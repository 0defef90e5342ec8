"""proxycurl_mcp package exports."""

from .core import (
    CallFailure,
    CallSuccess,
    ErrorClassifier,
    ExhaustedRetries,
    NonRetryableFailure,
    NoResumableSearch,
    PaginationCursorStore,
    ProxycurlClient,
    ProxycurlClientError,
    ProxycurlModelValidationError,
    ProxycurlParseError,
    RetryClass,
    RetryExecutor,
    RetryPolicy,
    SearchOperation,
    discover_tool_modules,
    register_discovered_tools,
)

__all__ = [
    # Client
    "ProxycurlClient",
    "RetryPolicy",
    "ErrorClassifier",
    "RetryClass",
    "RetryExecutor",
    "CallSuccess",
    "CallFailure",
    # Pagination
    "PaginationCursorStore",
    "SearchOperation",
    # Exceptions
    "ProxycurlClientError",
    "ProxycurlParseError",
    "ProxycurlModelValidationError",
    "NoResumableSearch",
    "NonRetryableFailure",
    "ExhaustedRetries",
    # Server utilities
    "discover_tool_modules",
    "register_discovered_tools",
]
